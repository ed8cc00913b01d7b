"""
Text Reconstruction

Rebuilds the visible text of one structural scope (a document body, a table
cell, a header, a hyperlink, ...) from the formatting-carrying runs Word splits
it into, and keeps track of which run produced every character.

The result is a TextStream: a LogicalText (the reconstructed string, stored as
attributed segments) plus the fragments the segments point back to. Paragraph
boundaries become PARAGRAPH_MARK characters and anything the engine does not
interpret (drawings, bookmarks, fields, nested tables) becomes an OBJECT_MARK
character carrying the original markup, so directives can move, repeat or remove
them like ordinary text.

Example:
    Runs "[NA" (bold) + "ME]" (italic) in one paragraph give the logical text
    "[NAME]\\u2029" with offsets 0-2 attributed to the bold run, 3-5 to the
    italic run and 6 to the paragraph mark.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from lxml import etree

from vellum.contexts.templating.wordml_patterns import (
    RUN_CHILD_TEXT,
    TEXT_WRAPPING_BREAKS,
    Attributes,
    BlockTags,
    RunTags,
    ScopeTags,
)

PARAGRAPH_MARK = "\u2029"
OBJECT_MARK = "\ufffc"

# Scope children that stay where they are (section and cell properties)
FIXED_CHILDREN = frozenset({BlockTags.SECT_PR, BlockTags.TC_PR})

# Attributes Word regenerates; repeated paragraphs must not share them
VOLATILE_PARAGRAPH_ATTRIBUTES = frozenset({Attributes.PARA_ID, Attributes.TEXT_ID})


# ============================================================================
# Logical text
# ============================================================================


@dataclass(frozen=True)
class Segment:
    """
    A slice of logical text with a single origin.

    Attributes:
        text: The characters
        source: Index of the originating fragment in the stream, or None for
            text with no origin (plain strings)
        resolved: True for text produced by directive evaluation; resolved
            text is never scanned for directives again
        scope: Binding scope of the loop iteration that produced the text,
            or None outside loops. Objects carried along are rendered
            against it.
    """

    text: str
    source: Optional[int] = None
    resolved: bool = False
    scope: Optional[Mapping] = field(default=None, compare=False)


class LogicalText:
    """
    Immutable attributed string.

    Behaves like a str for slicing, concatenation and length, and carries the
    origin of every character along. Every operation returns a new value.
    """

    __slots__ = ("_segments", "_starts", "_text")

    def __init__(self, segments: Iterable[Segment] = ()):
        merged: List[Segment] = []
        for segment in segments:
            if not segment.text:
                continue
            if (
                merged
                and (merged[-1].source, merged[-1].resolved) == (segment.source, segment.resolved)
                and merged[-1].scope is segment.scope
            ):
                previous = merged.pop()
                segment = Segment(
                    previous.text + segment.text, segment.source, segment.resolved, segment.scope
                )
            merged.append(segment)

        starts = []
        offset = 0
        for segment in merged:
            starts.append(offset)
            offset += len(segment.text)

        self._segments = tuple(merged)
        self._starts = tuple(starts)
        self._text = "".join(segment.text for segment in merged)

    @classmethod
    def from_text(
        cls, text: str, source: Optional[int] = None, resolved: bool = False
    ) -> "LogicalText":
        return cls([Segment(text, source, resolved)])

    @classmethod
    def join(cls, parts: Iterable["LogicalText"]) -> "LogicalText":
        """Concatenate several logical texts."""
        segments: List[Segment] = []
        for part in parts:
            segments.extend(part.segments)
        return cls(segments)

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return self._segments

    def plain(self) -> str:
        """The characters without attribution."""
        return self._text

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"LogicalText({self._text!r}, segments={len(self._segments)})"

    def __len__(self) -> int:
        return len(self._text)

    def __bool__(self) -> bool:
        return bool(self._text)

    def __eq__(self, other) -> bool:
        if isinstance(other, LogicalText):
            return self._segments == other._segments
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._segments)

    def __add__(self, other: "LogicalText") -> "LogicalText":
        if not isinstance(other, LogicalText):
            return NotImplemented
        return LogicalText(self._segments + other._segments)

    def __getitem__(self, key: slice) -> "LogicalText":
        if not isinstance(key, slice) or key.step not in (None, 1):
            raise TypeError("LogicalText only supports contiguous slicing")
        start, stop, _ = key.indices(len(self._text))
        return self.slice(start, stop)

    def slice(self, start: int, end: Optional[int] = None) -> "LogicalText":
        """Sub-text between two offsets, keeping attribution."""
        length = len(self._text)
        end = length if end is None else min(end, length)
        start = max(start, 0)
        if start >= end:
            return EMPTY_TEXT

        pieces = []
        for seg_start, segment in zip(self._starts, self._segments):
            seg_end = seg_start + len(segment.text)
            if seg_end <= start:
                continue
            if seg_start >= end:
                break
            lo = max(start, seg_start) - seg_start
            hi = min(end, seg_end) - seg_start
            pieces.append(
                Segment(segment.text[lo:hi], segment.source, segment.resolved, segment.scope)
            )
        return LogicalText(pieces)

    def source_at(self, offset: int) -> Optional[int]:
        """Fragment index that produced the character at an offset."""
        if not self._segments or offset < 0 or offset >= len(self._text):
            return None
        return self._segments[bisect_right(self._starts, offset) - 1].source

    def lock(self) -> "LogicalText":
        """Same text with every segment marked resolved."""
        return LogicalText(
            Segment(segment.text, segment.source, True, segment.scope) for segment in self._segments
        )

    def with_scope(self, scope: Mapping) -> "LogicalText":
        """
        Same text with scope recorded on every segment that has none yet.

        Nested loops record their own item scopes first, so each segment ends
        up with the innermost iteration that produced it.
        """
        return LogicalText(
            Segment(
                segment.text,
                segment.source,
                segment.resolved,
                scope if segment.scope is None else segment.scope,
            )
            for segment in self._segments
        )

    def template_windows(self) -> Iterator[Tuple[int, int]]:
        """Yield (start, end) of each maximal run of unresolved text."""
        window_start = None
        for seg_start, segment in zip(self._starts, self._segments):
            if segment.resolved:
                if window_start is not None:
                    yield window_start, seg_start
                    window_start = None
            elif window_start is None:
                window_start = seg_start
        if window_start is not None:
            yield window_start, len(self._text)

    def finditer(self, pattern: "re.Pattern") -> Iterator["re.Match"]:
        """
        Find pattern matches inside unresolved text only.

        Match offsets are absolute; a match never spans resolved text.
        """
        for start, end in self.template_windows():
            yield from pattern.finditer(self._text, start, end)


EMPTY_TEXT = LogicalText()


# ============================================================================
# Fragments
# ============================================================================


@dataclass(frozen=True)
class RunFragment:
    """
    Visible text of one run.

    Attributes:
        text: Text contributed by the run
        properties: Serialized w:rPr, or None if the run had none
        paragraph: Fragment index of the paragraph mark that ends the run's
            paragraph (None in inline scopes)
    """

    text: str
    properties: Optional[bytes]
    paragraph: Optional[int] = None


@dataclass(frozen=True)
class ParagraphMark:
    """
    End of a paragraph.

    Attributes:
        properties: Serialized w:pPr, or None
        attributes: Paragraph element attributes without volatile ids
        had_text: Whether the template paragraph showed any non-blank text
    """

    properties: Optional[bytes]
    attributes: Tuple[Tuple[str, str], ...] = ()
    had_text: bool = False


@dataclass(frozen=True)
class InlineObject:
    """Opaque paragraph content (drawing run, bookmark, field, nested scope)."""

    markup: bytes
    paragraph: Optional[int] = None


@dataclass(frozen=True)
class BlockObject:
    """Opaque block content (table, block-level content control)."""

    markup: bytes


Fragment = Union[RunFragment, ParagraphMark, InlineObject, BlockObject]


@dataclass(frozen=True)
class TextStream:
    """
    Reconstructed text of one scope.

    Attributes:
        text: Logical text whose segment sources index into fragments
        fragments: Every fragment that contributed characters
        elements: Scope children the stream was built from (re-materialization
            replaces exactly these)
        block: True for block scopes (paragraph children), False for inline
            scopes (run children)
    """

    text: LogicalText
    fragments: Tuple[Fragment, ...]
    elements: Tuple[etree._Element, ...]
    block: bool = True

    def fragment_at(self, offset: int) -> Optional[Fragment]:
        source = self.text.source_at(offset)
        return None if source is None else self.fragments[source]

    @property
    def first_run_properties(self) -> Optional[bytes]:
        for fragment in self.fragments:
            if isinstance(fragment, RunFragment) and fragment.properties is not None:
                return fragment.properties
        return None


# ============================================================================
# Reconstruction
# ============================================================================


def iter_scopes(root: etree._Element) -> List[etree._Element]:
    """
    Every structural scope under root (inclusive), innermost first.

    Used for read-only walks such as template inspection. Rendering goes
    outermost first through outer_scopes.
    """
    scope_tags = ScopeTags.BLOCK | ScopeTags.INLINE
    scopes = [element for element in root.iter() if element.tag in scope_tags]
    scopes.reverse()
    return scopes


def outer_scopes(element: etree._Element) -> List[etree._Element]:
    """
    Scopes at or below element that are not nested in another such scope.

    A table yields its cells, a paragraph yields its hyperlinks and text box
    contents; scopes inside those are left for the cell or hyperlink to find.
    """
    if element.tag in ScopeTags.BLOCK | ScopeTags.INLINE:
        return [element]
    found: List[etree._Element] = []
    for child in element:
        if isinstance(child.tag, str):
            found.extend(outer_scopes(child))
    return found


def scope_mode(scope: etree._Element) -> Optional[str]:
    """'block', 'inline', or None when the scope holds no text-bearing children."""
    tags = {child.tag for child in scope}
    if BlockTags.P in tags:
        return "block"
    if RunTags.R in tags:
        return "inline"
    return None


def build_stream(scope: etree._Element) -> Optional[TextStream]:
    """
    Reconstruct the logical text of one scope.

    Args:
        scope: A block scope (w:body, w:tc, w:hdr, ...) or inline scope
            (w:hyperlink, w:smartTag, ...)

    Returns:
        TextStream, or None when the scope has no paragraphs or runs

    The scope is only read, never modified.
    """
    mode = scope_mode(scope)
    if mode is None:
        return None

    segments: List[Segment] = []
    fragments: List[Fragment] = []
    elements: List[etree._Element] = []

    for child in scope:
        if not isinstance(child.tag, str) or child.tag in FIXED_CHILDREN:
            continue
        elements.append(child)

        if mode == "block":
            if child.tag == BlockTags.P:
                _read_paragraph(child, segments, fragments)
            else:
                segments.append(Segment(OBJECT_MARK, len(fragments)))
                fragments.append(BlockObject(_serialize(child)))
        else:
            _read_inline(child, None, segments, fragments)

    return TextStream(
        text=LogicalText(segments),
        fragments=tuple(fragments),
        elements=tuple(elements),
        block=mode == "block",
    )


def _read_paragraph(
    paragraph: etree._Element, segments: List[Segment], fragments: List[Fragment]
) -> None:
    """Append a paragraph's content and its terminating mark."""
    content = [child for child in paragraph if isinstance(child.tag, str)]
    properties = None

    # Runs point at the mark, which is appended after them
    inline_count = 0
    for child in content:
        if child.tag == BlockTags.P_PR:
            properties = _serialize(child)
        elif child.tag != RunTags.PROOF_ERR:
            inline_count += 1
    mark_index = len(fragments) + inline_count

    visible = []
    for child in content:
        if child.tag in (BlockTags.P_PR, RunTags.PROOF_ERR):
            continue
        text = _read_inline(child, mark_index, segments, fragments)
        if text:
            visible.append(text)

    attributes = tuple(
        (key, value)
        for key, value in paragraph.attrib.items()
        if key not in VOLATILE_PARAGRAPH_ATTRIBUTES
    )
    segments.append(Segment(PARAGRAPH_MARK, len(fragments)))
    fragments.append(
        ParagraphMark(
            properties=properties,
            attributes=attributes,
            had_text=bool("".join(visible).strip()),
        )
    )


def _read_inline(
    element: etree._Element,
    paragraph: Optional[int],
    segments: List[Segment],
    fragments: List[Fragment],
) -> Optional[str]:
    """
    Append one paragraph-level element as a run fragment or opaque object.

    Always appends exactly one fragment so fragment indices stay predictable.

    Returns:
        The run's text, or None for an opaque object
    """
    text = run_text(element) if element.tag == RunTags.R else None
    if text is None:
        segments.append(Segment(OBJECT_MARK, len(fragments)))
        fragments.append(InlineObject(_serialize(element), paragraph))
        return None

    properties = element.find(RunTags.R_PR)
    segments.append(Segment(text, len(fragments)))
    fragments.append(
        RunFragment(
            text=text,
            properties=_serialize(properties) if properties is not None else None,
            paragraph=paragraph,
        )
    )
    return text


def run_text(run: etree._Element) -> Optional[str]:
    """
    Visible text of a w:r, or None if the run holds anything non-textual.

    Text, tabs, line breaks and special hyphens are textual. Drawings,
    page breaks, field characters, symbols and the like make the whole run
    opaque.
    """
    parts = []
    for child in run:
        if not isinstance(child.tag, str):
            continue
        tag = child.tag
        if tag == RunTags.T:
            parts.append(child.text or "")
        elif tag in RUN_CHILD_TEXT:
            parts.append(RUN_CHILD_TEXT[tag])
        elif tag == RunTags.BR:
            if child.get(Attributes.BR_TYPE) not in TEXT_WRAPPING_BREAKS:
                return None
            parts.append("\n")
        elif tag in (RunTags.R_PR, RunTags.LAST_RENDERED_PAGE_BREAK):
            continue
        else:
            return None
    return "".join(parts)


def paragraph_text(paragraph: etree._Element) -> str:
    """
    Visible text of a paragraph, including runs inside hyperlinks and other
    inline containers but not paragraphs nested in text boxes.
    """
    parts = []
    for run in paragraph.iter(RunTags.R):
        owner = next(run.iterancestors(BlockTags.P), None)
        if owner is not paragraph:
            continue
        text = run_text(run)
        if text:
            parts.append(text)
    return "".join(parts)


def _serialize(element: etree._Element) -> bytes:
    return etree.tostring(element, with_tail=False)
