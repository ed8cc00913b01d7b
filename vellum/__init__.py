"""
VELLUM - Variable Expansion of Layout-Locked Uploaded Manuscripts

A CV re-formatting system that takes structured CV data and re-emits it into
user-supplied Word (.docx) templates written with a small directive language.

Architecture:
- Intake Context: Local heuristic extraction of CV records from plain text or .docx
- Templating Context: Directive interpretation over fragmented document markup
"""

__version__ = "0.1.0"
