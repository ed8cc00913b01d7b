"""
Document Template Engine

Main module tying the pipeline together:

    package bytes -> XML part -> text streams -> directive evaluation
                  -> re-materialized markup -> package bytes

This module exports:
- Library functions: render_part_xml, render_document, render_cv, inspect_template
- Orchestration function: render_template_file (files in, files out, logging)
- Options and results: RenderOptions, load_render_options, RenderResult, TemplateReport
"""

import os
import time
from collections import Counter
from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv
from lxml import etree
from omegaconf import OmegaConf

from vellum.contexts.templating.binding_context import BindingContext, build_binding_context
from vellum.contexts.templating.computed_fields import COMPUTED_FIELDS
from vellum.contexts.templating.defaults import sample_cv_record
from vellum.contexts.templating.directive_patterns import DIRECTIVE_HINT, BlockKind
from vellum.contexts.templating.interpreter import (
    SIMPLE_FIELDS,
    DirectiveKind,
    EvaluationOptions,
    MismatchPolicy,
    evaluate,
    scan_directives,
    unbalanced_tags,
)
from vellum.contexts.templating.logger import (
    _log_error,
    log_part_rendered,
    log_render_result,
    log_render_start,
    setup_templating_logger,
)
from vellum.contexts.templating.markup import render_block, render_inline, replace_scope_content
from vellum.contexts.templating.package import (
    BODY_PART,
    DocumentPackage,
    find_parts,
    get_part_text,
    open_package,
    parse_xml,
    serialize_package,
    serialize_xml,
    with_part_text,
)
from vellum.contexts.templating.registries import CONFIG_PATH, taxonomy_registry
from vellum.contexts.templating.text_stream import build_stream, iter_scopes, outer_scopes
from vellum.utils.timestamp import now

load_dotenv()
LOGS_PATH = Path(os.getenv("VELLUM_LOGS_PATH", "outs/logs"))
RENDER_OPTIONS_PATH = CONFIG_PATH / "render_options.yaml"


# ============================================================================
# Options
# ============================================================================


@dataclass(frozen=True)
class RenderOptions:
    """
    Engine settings for one render.

    Attributes:
        mismatch_policy: Handling of unbalanced loop/conditional tags
        drop_emptied_paragraphs: Remove paragraphs emptied by directives
        template_parts: Glob patterns of XML parts to interpret
        taxonomy: Skill taxonomy name for [SKILLS_BY_CATEGORY]
    """

    mismatch_policy: MismatchPolicy = MismatchPolicy.DROP
    drop_emptied_paragraphs: bool = True
    template_parts: Tuple[str, ...] = (BODY_PART,)
    taxonomy: str = "default"

    def evaluation_options(self, current_year: Optional[int] = None) -> EvaluationOptions:
        return EvaluationOptions(
            mismatch_policy=self.mismatch_policy,
            taxonomy=taxonomy_registry.get_taxonomy(self.taxonomy),
            current_year=current_year,
        )


def load_render_options(config_path: Optional[Path] = None, **overrides) -> RenderOptions:
    """
    Build RenderOptions from the YAML defaults plus explicit overrides.

    Precedence: dataclass defaults < config file < overrides. Overrides set to
    None are ignored, so CLI flags can be passed through unconditionally.

    Args:
        config_path: YAML file (defaults to config/render_options.yaml)
        **overrides: Field values that win over the file

    Returns:
        RenderOptions

    Raises:
        ValueError: On unknown keys or an unknown mismatch policy
    """
    config_path = Path(config_path) if config_path else RENDER_OPTIONS_PATH
    known = {f.name for f in fields(RenderOptions)}

    # Plain values only: enums by value, tuples as lists
    plain_overrides = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        plain_overrides[key] = value

    merged = OmegaConf.create({})
    if config_path.exists():
        merged = OmegaConf.merge(merged, OmegaConf.load(config_path))
    merged = OmegaConf.merge(merged, OmegaConf.create(plain_overrides))
    values: Dict[str, Any] = OmegaConf.to_container(merged, resolve=True)

    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown render option(s): {', '.join(sorted(unknown))}")

    if "mismatch_policy" in values:
        values["mismatch_policy"] = MismatchPolicy(str(values["mismatch_policy"]).lower())
    if "template_parts" in values:
        parts = values["template_parts"]
        values["template_parts"] = (parts,) if isinstance(parts, str) else tuple(parts)
    return RenderOptions(**values)


# ============================================================================
# Library functions
# ============================================================================


def _render_scope(
    scope: etree._Element,
    context: BindingContext,
    options: RenderOptions,
    evaluation: EvaluationOptions,
    tally: Counter,
) -> None:
    """
    Resolve one scope, then the scopes nested inside it.

    Objects a loop repeated are rendered against the item scope recorded on
    them, everything else against the scope's own context.
    """
    tally["scopes"] += 1
    stream = build_stream(scope)
    if stream is None:
        nested = [(child, context) for child in scope if isinstance(child.tag, str)]
    elif not DIRECTIVE_HINT.search(stream.text.plain()):
        nested = [(element, context) for element in stream.elements]
    else:
        resolved = evaluate(stream.text, context, evaluation)
        if resolved == stream.text:
            nested = [(element, context) for element in stream.elements]
        else:
            if stream.block:
                rendered = render_block(resolved, stream, options.drop_emptied_paragraphs)
            else:
                rendered = render_inline(resolved, stream)
            replace_scope_content(scope, stream, rendered.elements)
            tally["rewritten"] += 1
            nested = [
                (element, context if item_scope is None else item_scope)
                for element, item_scope in rendered.objects
            ]

    for element, element_context in nested:
        for inner in outer_scopes(element):
            _render_scope(inner, element_context, options, evaluation, tally)


def render_part_xml(
    xml_text: str,
    context: Mapping,
    options: Optional[RenderOptions] = None,
    part_name: str = BODY_PART,
    current_year: Optional[int] = None,
) -> str:
    """
    Resolve directives in one XML part.

    Every structural scope is reconstructed, evaluated and re-materialized,
    outermost first. Tables, hyperlinks and text boxes repeated by a loop are
    resolved afterwards against their own loop item. Scopes without
    directives are left untouched, and a part with nothing to resolve is
    returned exactly as given.

    Args:
        xml_text: Part XML
        context: Binding context (or plain mapping)
        options: Render options (defaults from config)
        part_name: Part name for error messages and logs
        current_year: Year "present" stands for in [EXPERIENCE_SUMMARY]

    Returns:
        New part XML

    Raises:
        InvalidPackageError: If the part is not well-formed XML
        TemplateSyntaxError: On unbalanced tags under the strict policy
    """
    options = options or load_render_options()
    evaluation = options.evaluation_options(current_year)
    scope_context = context if isinstance(context, BindingContext) else BindingContext(context)

    root, standalone = parse_xml(xml_text, part_name)

    tally: Counter = Counter()
    for scope in outer_scopes(root):
        _render_scope(scope, scope_context, options, evaluation, tally)

    log_part_rendered(part_name, tally["rewritten"], tally["scopes"])
    if not tally["rewritten"]:
        return xml_text
    return serialize_xml(root, standalone)


def render_package(
    package: DocumentPackage,
    context: Mapping,
    options: Optional[RenderOptions] = None,
    current_year: Optional[int] = None,
) -> Tuple[DocumentPackage, List[str]]:
    """
    Render every template part of an opened package.

    Returns:
        (new package, names of the parts that were interpreted)
    """
    options = options or load_render_options()
    part_names = find_parts(package, options.template_parts)

    for part_name in part_names:
        original = get_part_text(package, part_name)
        rendered = render_part_xml(original, context, options, part_name, current_year)
        if rendered is not original:
            package = with_part_text(package, part_name, rendered)

    return package, part_names


def render_document(
    template: bytes,
    context: Mapping,
    options: Optional[RenderOptions] = None,
    current_year: Optional[int] = None,
) -> bytes:
    """
    Render a template package against a binding context.

    Args:
        template: Template .docx bytes
        context: Binding context (or plain mapping shaped like one)
        options: Render options (defaults from config)
        current_year: Year "present" stands for in [EXPERIENCE_SUMMARY]

    Returns:
        Rendered .docx bytes with the same part set as the template

    Raises:
        InvalidPackageError: Unreadable archive or malformed processed part
        MissingBodyPartError: No word/document.xml
        TemplateSyntaxError: Unbalanced tags under the strict policy

    Example:
        output = render_document(template_bytes, {"name": "Ada", "skills": ["Rust", "Go"]})
    """
    package = open_package(template)
    rendered, _ = render_package(package, context, options, current_year)
    return serialize_package(rendered)


def render_cv(
    template: bytes,
    cv_record: Mapping,
    options: Optional[RenderOptions] = None,
    today: Optional[date] = None,
) -> bytes:
    """
    Render a template from a CV record.

    Builds the binding context (flags, first-entry shorthands, [DATE]) and
    renders the template with it.

    Args:
        template: Template .docx bytes
        cv_record: CV record mapping
        options: Render options
        today: Generation date (defaults to today)

    Returns:
        Rendered .docx bytes
    """
    context = build_binding_context(cv_record, today=today)
    current_year = today.year if today else None
    return render_document(template, context, options, current_year)


# ============================================================================
# Inspection
# ============================================================================


@dataclass
class TemplateReport:
    """Directives found in a template, after run fragments are joined."""

    parts: List[str] = field(default_factory=list)
    placeholders: List[str] = field(default_factory=list)
    computed: List[str] = field(default_factory=list)
    unknown: List[str] = field(default_factory=list)
    loops: List[str] = field(default_factory=list)
    conditionals: List[str] = field(default_factory=list)
    unbalanced: List[str] = field(default_factory=list)

    @property
    def is_balanced(self) -> bool:
        return not self.unbalanced


def _add_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)


def inspect_template(template: bytes, options: Optional[RenderOptions] = None) -> TemplateReport:
    """
    List the directives a template uses.

    Placeholders are split into the simple catalog, the computed catalog and
    unknown names (which resolve by lower-case key, usually to nothing).
    Unbalanced tags are reported with the scope they were found in.

    Raises:
        InvalidPackageError, MissingBodyPartError: As for render_document
    """
    options = options or load_render_options()
    package = open_package(template)
    report = TemplateReport(parts=find_parts(package, options.template_parts))

    for part_name in report.parts:
        root, _ = parse_xml(get_part_text(package, part_name), part_name)
        for scope in iter_scopes(root):
            stream = build_stream(scope)
            if stream is None or not DIRECTIVE_HINT.search(stream.text.plain()):
                continue

            for directive in scan_directives(stream.text):
                if directive.kind is DirectiveKind.PLACEHOLDER:
                    if directive.name in COMPUTED_FIELDS:
                        _add_unique(report.computed, directive.name)
                    elif directive.name in SIMPLE_FIELDS:
                        _add_unique(report.placeholders, directive.name)
                    else:
                        _add_unique(report.unknown, directive.name)
                elif directive.kind is DirectiveKind.LOOP_OPEN:
                    _add_unique(report.loops, directive.name)
                elif directive.kind is DirectiveKind.CONDITIONAL_OPEN:
                    _add_unique(report.conditionals, directive.name)

            plain = stream.text.plain()
            for kind in BlockKind:
                for tag in unbalanced_tags(stream.text, kind):
                    scope_name = scope.tag.rsplit("}", 1)[-1]
                    report.unbalanced.append(
                        f"{part_name} ({scope_name}): {plain[tag.start:tag.end]}"
                    )

    return report


# ============================================================================
# Orchestration
# ============================================================================


@dataclass
class RenderResult:
    """Result from render_template_file() orchestration function."""

    success: bool
    template_path: Optional[Path] = None
    output_path: Optional[Path] = None
    error: Optional[str] = None
    time_s: float = 0.0
    log_dir: Optional[Path] = None
    parts_processed: List[str] = field(default_factory=list)
    used_sample_fallback: bool = False


def load_record(data_path: Path) -> Dict[str, Any]:
    """
    Load a CV record or binding data file (YAML or JSON).

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file does not hold a mapping
    """
    data_path = Path(data_path)
    if not data_path.exists():
        raise FileNotFoundError(f"Data file not found: {data_path}")

    data = OmegaConf.to_container(OmegaConf.load(data_path), resolve=True)
    if not isinstance(data, dict):
        raise ValueError(f"Data file must hold a mapping at the top level: {data_path}")
    return data


def render_template_file(
    template_path: Path,
    data_path: Optional[Path],
    output_path: Path,
    options: Optional[RenderOptions] = None,
    cv_record: bool = True,
    sample_fallback: bool = False,
    today: Optional[date] = None,
) -> RenderResult:
    """
    Render a template file with a data file, with logging.

    Handles:
    1. Setup logging
    2. Load the data (CV record or ready-made binding data)
    3. Substitute the sample record if asked to and the data is missing or empty
    4. Render and write the output; nothing is written on failure

    Args:
        template_path: Template .docx
        data_path: YAML/JSON data file (may be None with sample_fallback)
        output_path: Destination .docx
        options: Render options (defaults from config)
        cv_record: True if the data is a CV record, False if it is binding data
        sample_fallback: Use the sample CV record when the data can't be used
        today: Generation date

    Returns:
        RenderResult with success status, paths, processed parts and timing
    """
    start_time = time.time()
    template_path = Path(template_path)
    output_path = Path(output_path)

    log_dir = LOGS_PATH / f"render_{now()}"
    log_file = setup_templating_logger(log_dir, template_name=template_path.name)
    log_render_start(template_path.name, data_path, log_file)

    result = RenderResult(success=False, template_path=template_path, log_dir=log_dir)
    try:
        options = options or load_render_options()

        data: Optional[Dict[str, Any]] = None
        try:
            data = load_record(data_path) if data_path else None
        except (FileNotFoundError, ValueError) as e:
            if not sample_fallback:
                raise
            _log_error(f"Could not load data: {e}")

        if not data:
            if not sample_fallback:
                raise ValueError("No data to render with")
            data = sample_cv_record()
            cv_record = True
            result.used_sample_fallback = True

        template = template_path.read_bytes()
        package = open_package(template)
        context = build_binding_context(data, today=today) if cv_record else BindingContext(data)
        current_year = today.year if today else None
        rendered, result.parts_processed = render_package(package, context, options, current_year)
        output = serialize_package(rendered)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(output)
        result.output_path = output_path
        result.success = True
    except Exception as e:
        result.error = str(e)

    result.time_s = time.time() - start_time
    log_render_result(template_path.name, result, result.time_s)
    return result
