"""
Directive Interpreter

Evaluates the template mini-language against a binding context.

Passes run in a fixed order, each returning a new value:

1. Loops           {{#name}} ... {{/name}}
2. Conditionals    {{#if name}} ... {{/if name}}
3. Computed placeholders [ALL_EXPERIENCES], [SKILLS_BY_CATEGORY], ...
4. Simple placeholders   [NAME], [EMAIL], ... and any [UPPER_NAME]

Block bodies are evaluated recursively (loop bodies once per item, against an
item scope). Each iteration records its item scope on the text it produces,
so tables and hyperlinks repeated by a loop are later rendered against the
item they belong to. Everything a pass substitutes is marked resolved and
never scanned again, so data containing "[X]" or "{{#x}}" comes out literally.

Works on plain strings and on LogicalText; with LogicalText every substituted
value inherits the formatting origin of the token it replaces.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from vellum.contexts.templating.binding_context import BindingContext
from vellum.contexts.templating.computed_fields import COMPUTED_FIELDS
from vellum.contexts.templating.directive_patterns import (
    PLACEHOLDER_RE,
    BlockKind,
    BlockPatterns,
    ConditionPrefixes,
    LoopFields,
)
from vellum.contexts.templating.exceptions import TemplateSyntaxError
from vellum.contexts.templating.logger import _log_debug, log_dropped_tag
from vellum.contexts.templating.registries import SkillTaxonomy, taxonomy_registry
from vellum.contexts.templating.text_stream import EMPTY_TEXT, LogicalText


class MismatchPolicy(str, Enum):
    """What to do with unbalanced or mismatched block tags."""

    DROP = "drop"
    WARN = "warn"
    STRICT = "strict"


@dataclass(frozen=True)
class EvaluationOptions:
    """
    Settings for one evaluation.

    Attributes:
        mismatch_policy: Handling of mismatched pairs, unmatched opens and
            stray closes
        taxonomy: Skill taxonomy for [SKILLS_BY_CATEGORY] (None = 'default')
        current_year: Year "present" stands for in durations (None = this year)
    """

    mismatch_policy: MismatchPolicy = MismatchPolicy.DROP
    taxonomy: Optional[SkillTaxonomy] = None
    current_year: Optional[int] = None

    def skill_taxonomy(self) -> SkillTaxonomy:
        return self.taxonomy or taxonomy_registry.get_taxonomy("default")


@dataclass(frozen=True)
class PlaceholderField:
    """
    How a simple placeholder renders.

    Attributes:
        key: Binding context key
        joiner: Separator for list values
        bullet: Prefix for each list entry, if any
    """

    key: str
    joiner: str = ", "
    bullet: Optional[str] = None


SIMPLE_FIELDS: Dict[str, PlaceholderField] = {
    "NAME": PlaceholderField("name"),
    "EMAIL": PlaceholderField("email"),
    "PHONE": PlaceholderField("phone"),
    "LOCATION": PlaceholderField("location"),
    "LINKEDIN": PlaceholderField("linkedin"),
    "PORTFOLIO": PlaceholderField("portfolio"),
    "GITHUB": PlaceholderField("github"),
    "TITLE": PlaceholderField("title"),
    "SUMMARY": PlaceholderField("summary"),
    "SKILLS": PlaceholderField("skills"),
    "JOB_TITLE": PlaceholderField("job_title"),
    "COMPANY": PlaceholderField("company"),
    "DURATION": PlaceholderField("duration"),
    "JOB_LOCATION": PlaceholderField("job_location"),
    "ACHIEVEMENTS": PlaceholderField("achievements", joiner="\n", bullet="•"),
    "DEGREE": PlaceholderField("degree"),
    "INSTITUTION": PlaceholderField("institution"),
    "YEAR": PlaceholderField("year"),
    "EDUCATION_LOCATION": PlaceholderField("education_location"),
    "CERTIFICATIONS": PlaceholderField("certifications"),
    "LANGUAGES": PlaceholderField("languages"),
    "PROJECTS": PlaceholderField("projects", joiner="\n"),
    "DATE": PlaceholderField("date"),
}


# ============================================================================
# Directive scanning
# ============================================================================


class DirectiveKind(str, Enum):
    PLACEHOLDER = "placeholder"
    LOOP_OPEN = "loop_open"
    LOOP_CLOSE = "loop_close"
    CONDITIONAL_OPEN = "conditional_open"
    CONDITIONAL_CLOSE = "conditional_close"


@dataclass(frozen=True)
class Directive:
    """One directive occurrence in a text, with its span."""

    kind: DirectiveKind
    name: str
    start: int
    end: int

    @property
    def is_open(self) -> bool:
        return self.kind in (DirectiveKind.LOOP_OPEN, DirectiveKind.CONDITIONAL_OPEN)


_OPEN_KIND = {BlockKind.LOOP: DirectiveKind.LOOP_OPEN, BlockKind.CONDITIONAL: DirectiveKind.CONDITIONAL_OPEN}
_CLOSE_KIND = {BlockKind.LOOP: DirectiveKind.LOOP_CLOSE, BlockKind.CONDITIONAL: DirectiveKind.CONDITIONAL_CLOSE}


def _as_logical(text: Union[str, LogicalText]) -> LogicalText:
    return text if isinstance(text, LogicalText) else LogicalText.from_text(text)


def scan_tags(text: Union[str, LogicalText], kind: BlockKind) -> List[Directive]:
    """Open and close tags of one block kind, in document order."""
    tags = []
    for match in _as_logical(text).finditer(kind.pattern):
        opening = match.group("marker") == BlockPatterns.OPEN_MARKER
        tags.append(
            Directive(
                kind=_OPEN_KIND[kind] if opening else _CLOSE_KIND[kind],
                name=match.group("name"),
                start=match.start(),
                end=match.end(),
            )
        )
    return tags


def scan_directives(text: Union[str, LogicalText]) -> List[Directive]:
    """Every directive in unresolved text, in document order."""
    logical = _as_logical(text)
    directives = scan_tags(logical, BlockKind.LOOP) + scan_tags(logical, BlockKind.CONDITIONAL)
    directives.extend(
        Directive(DirectiveKind.PLACEHOLDER, match.group("name"), match.start(), match.end())
        for match in logical.finditer(PLACEHOLDER_RE)
    )
    return sorted(directives, key=lambda directive: directive.start)


@dataclass
class _Block:
    """A paired open/close tag (names may differ) and the blocks nested in it."""

    open: Directive
    close: Directive
    children: list

    @property
    def matched(self) -> bool:
        return self.open.name == self.close.name


@dataclass
class _Stray:
    """A tag with no partner."""

    tag: Directive


def pair_tags(tags: List[Directive]) -> List[Union[_Block, _Stray]]:
    """
    Pair open and close tags with a stack.

    A close binds to the innermost unclosed open, so same-name nesting is
    balanced. A close whose open has a different name forms a mismatched
    block. A close with nothing open, or an open never closed, is a stray;
    blocks nested in an unclosed open move up one level.

    Returns:
        Top-level blocks and strays in document order
    """
    top: list = []
    frames: List[Tuple[Directive, list]] = []

    for tag in tags:
        if tag.is_open:
            frames.append((tag, []))
            continue
        if not frames:
            top.append(_Stray(tag))
            continue
        opener, children = frames.pop()
        block = _Block(opener, tag, children)
        (frames[-1][1] if frames else top).append(block)

    while frames:
        opener, children = frames.pop()
        (frames[-1][1] if frames else top).extend([_Stray(opener)] + children)

    return top


def unbalanced_tags(text: Union[str, LogicalText], kind: BlockKind) -> List[Directive]:
    """Tags of one kind that would be dropped as mismatched or unmatched."""
    problems: List[Directive] = []
    pending = pair_tags(scan_tags(text, kind))
    while pending:
        item = pending.pop(0)
        if isinstance(item, _Stray):
            problems.append(item.tag)
            continue
        if not item.matched:
            problems.extend([item.open, item.close])
        pending.extend(item.children)
    return sorted(problems, key=lambda tag: tag.start)


# ============================================================================
# Value formatting
# ============================================================================


def format_value(value: Any, joiner: str = ", ", bullet: Optional[str] = None) -> str:
    """
    Render a binding value as placeholder text.

    None -> "", booleans -> "true" / "", lists -> joined scalar entries,
    mappings -> "" (they only make sense as loop items).
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else ""
    if isinstance(value, Mapping):
        return ""
    if isinstance(value, (list, tuple)):
        entries = [format_value(item) for item in value if not isinstance(item, Mapping)]
        entries = [entry for entry in entries if entry.strip()]
        if bullet:
            entries = [f"{bullet} {entry}" for entry in entries]
        return joiner.join(entries)
    return str(value)


def _has_content(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def is_truthy(name: str, scope: Mapping) -> bool:
    """
    Truth value of a conditional name.

    - has_<field>: the field has content (non-empty list, non-blank string,
      otherwise bool). If <field> is absent, the has_<field> value itself.
    - not_empty_<field>: the field renders to non-blank text.
    - anything else: bool of the value; absent is false.
    """
    if name.startswith(ConditionPrefixes.HAS):
        field = name[len(ConditionPrefixes.HAS):]
        if field in scope:
            return _has_content(scope[field])
        return bool(scope.get(name))

    if name.startswith(ConditionPrefixes.NOT_EMPTY):
        field = name[len(ConditionPrefixes.NOT_EMPTY):]
        return bool(format_value(scope.get(field)).strip())

    return bool(scope.get(name))


# ============================================================================
# Evaluation
# ============================================================================


def evaluate(
    text: Union[str, LogicalText],
    context: Mapping,
    options: Optional[EvaluationOptions] = None,
) -> Union[str, LogicalText]:
    """
    Resolve every directive in text against a binding context.

    Args:
        text: Template text (str, or LogicalText from a text stream)
        context: BindingContext or any mapping of binding values
        options: Evaluation settings (defaults: DROP policy, default taxonomy)

    Returns:
        Same type as text, with directives resolved

    Raises:
        TemplateSyntaxError: On unbalanced tags under MismatchPolicy.STRICT

    Example:
        evaluate("Hello [NAME]. {{#if has_skills}}Skills: [SKILLS]{{/if has_skills}}",
                 {"name": "Ada", "skills": ["Rust", "Go"]})
        # "Hello Ada. Skills: Rust, Go"
    """
    options = options or EvaluationOptions()
    scope = context if isinstance(context, BindingContext) else BindingContext(context)

    if isinstance(text, LogicalText):
        return _evaluate(text, scope, options)
    return _evaluate(LogicalText.from_text(text), scope, options).plain()


def _evaluate(text: LogicalText, scope: BindingContext, options: EvaluationOptions) -> LogicalText:
    text = _expand_blocks(text, scope, options, BlockKind.LOOP)
    text = _expand_blocks(text, scope, options, BlockKind.CONDITIONAL)
    text = _substitute_computed(text, scope, options)
    return _substitute_simple(text, scope)


def _apply_edits(text: LogicalText, edits: List[Tuple[int, int, LogicalText]]) -> LogicalText:
    """Rebuild text with non-overlapping (start, end, replacement) edits."""
    if not edits:
        return text
    pieces = []
    cursor = 0
    for start, end, replacement in edits:
        pieces.append(text.slice(cursor, start))
        pieces.append(replacement)
        cursor = end
    pieces.append(text.slice(cursor))
    return LogicalText.join(pieces)


def _report_mismatch(
    options: EvaluationOptions,
    kind: BlockKind,
    message: str,
    name: str,
    snippet: str,
) -> None:
    if options.mismatch_policy is MismatchPolicy.STRICT:
        raise TemplateSyntaxError(message, kind=kind.value, name=name, snippet=snippet)
    log_dropped_tag(kind.value, name, message, warn=options.mismatch_policy is MismatchPolicy.WARN)


def _expand_blocks(
    text: LogicalText,
    scope: BindingContext,
    options: EvaluationOptions,
    kind: BlockKind,
) -> LogicalText:
    tags = scan_tags(text, kind)
    if not tags:
        return text

    plain = text.plain()
    edits = []
    for item in pair_tags(tags):
        if isinstance(item, _Stray):
            tag = item.tag
            which = "opening" if tag.is_open else "closing"
            _report_mismatch(
                options, kind, f"Unmatched {which} tag", tag.name, plain[tag.start:tag.end]
            )
            edits.append((tag.start, tag.end, EMPTY_TEXT))
            continue

        start, end = item.open.start, item.close.end
        if not item.matched:
            _report_mismatch(
                options,
                kind,
                f"Tag '{kind.open_tag(item.open.name)}' closed by '{kind.close_tag(item.close.name)}'",
                item.open.name,
                plain[start:end],
            )
            edits.append((start, end, EMPTY_TEXT))
            continue

        body = text.slice(item.open.end, item.close.start)
        if kind is BlockKind.LOOP:
            replacement = _expand_loop(item.open.name, body, scope, options)
        else:
            replacement = _expand_conditional(item.open.name, body, scope, options)
        edits.append((start, end, replacement))

    return _apply_edits(text, edits)


def _expand_loop(
    name: str, body: LogicalText, scope: BindingContext, options: EvaluationOptions
) -> LogicalText:
    items = scope.get(name)
    if not isinstance(items, (list, tuple)) or not items:
        _log_debug(f"Loop '{name}' has no items; removed")
        return EMPTY_TEXT

    last = len(items) - 1
    iterations = []
    for position, item in enumerate(items):
        fields = dict(item) if isinstance(item, Mapping) else {LoopFields.ITEM: item}
        fields[LoopFields.INDEX] = position + 1
        fields[LoopFields.IS_FIRST] = position == 0
        fields[LoopFields.IS_LAST] = position == last
        item_scope = scope.child(fields)
        iterations.append(_evaluate(body, item_scope, options).with_scope(item_scope))

    return LogicalText.join(iterations).lock()


def _expand_conditional(
    name: str, body: LogicalText, scope: BindingContext, options: EvaluationOptions
) -> LogicalText:
    if not is_truthy(name, scope):
        return EMPTY_TEXT
    return _evaluate(body, scope, options).lock()


def _substitute_computed(
    text: LogicalText, scope: BindingContext, options: EvaluationOptions
) -> LogicalText:
    computed: Dict[str, str] = {}
    edits = []
    for match in text.finditer(PLACEHOLDER_RE):
        name = match.group("name")
        if name not in COMPUTED_FIELDS:
            continue
        if name not in computed:
            computed[name] = COMPUTED_FIELDS[name](
                scope, options.skill_taxonomy(), options.current_year
            )
        edits.append(_placeholder_edit(text, match.start(), match.end(), computed[name]))
    return _apply_edits(text, edits)


def _substitute_simple(text: LogicalText, scope: BindingContext) -> LogicalText:
    edits = []
    for match in text.finditer(PLACEHOLDER_RE):
        name = match.group("name")
        field = SIMPLE_FIELDS.get(name) or PlaceholderField(name.lower())
        value = format_value(scope.get(field.key), field.joiner, field.bullet)
        edits.append(_placeholder_edit(text, match.start(), match.end(), value))
    return _apply_edits(text, edits)


def _placeholder_edit(
    text: LogicalText, start: int, end: int, value: str
) -> Tuple[int, int, LogicalText]:
    if not value.strip():
        return start, end, EMPTY_TEXT
    return start, end, LogicalText.from_text(value, text.source_at(start), resolved=True)
