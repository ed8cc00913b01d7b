"""
Intake Context

Responsibilities:
- Reads the plain text of CVs (.docx, .pdf or text files)
- Extracts CV records with local regex heuristics

Owns: Section detection, contact and entry extraction
Never: Renders templates, invents values the CV does not contain
"""

from vellum.contexts.intake.cv_parser import (
    extract_cv_file,
    extract_cv_record,
    extract_docx_text,
    extract_pdf_text,
)

__all__ = [
    "extract_cv_record",
    "extract_cv_file",
    "extract_docx_text",
    "extract_pdf_text",
]
