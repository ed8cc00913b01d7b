"""
Templating Context

Responsibilities:
- Reads and writes .docx document packages
- Reconstructs the visible text of Word runs, with formatting provenance
- Interprets the template directive language ([FIELD], {{#loop}}, {{#if flag}})
- Derives binding contexts from CV records
- Re-emits resolved text as WordprocessingML, keeping template formatting

Owns: Directive syntax and semantics, binding context shape, package round-tripping
Never: Extracts data from CVs, invents data the caller did not supply
"""

from vellum.contexts.templating.binding_context import BindingContext, build_binding_context
from vellum.contexts.templating.engine import (
    RenderOptions,
    RenderResult,
    TemplateReport,
    inspect_template,
    load_render_options,
    render_cv,
    render_document,
    render_template_file,
)
from vellum.contexts.templating.interpreter import EvaluationOptions, MismatchPolicy, evaluate

__all__ = [
    # Library rendering
    "render_document",
    "render_cv",
    "inspect_template",
    "TemplateReport",
    # Orchestration
    "render_template_file",
    "RenderResult",
    "RenderOptions",
    "load_render_options",
    # Interpreter and data
    "evaluate",
    "EvaluationOptions",
    "MismatchPolicy",
    "BindingContext",
    "build_binding_context",
]
