"""
Markup Re-materialization

Turns evaluated logical text back into WordprocessingML.

Every run of characters sharing one origin becomes one w:r carrying a copy of
the originating run's w:rPr. Paragraph marks become w:p elements with their
original w:pPr, and object characters put the original markup back wherever
they ended up after evaluation (repeated by loops, removed by conditionals).
"""

import re
from dataclasses import dataclass, field
from typing import List, Mapping, NamedTuple, Optional, Tuple, Union

from lxml import etree

from vellum.contexts.templating.text_stream import (
    OBJECT_MARK,
    PARAGRAPH_MARK,
    BlockObject,
    InlineObject,
    LogicalText,
    ParagraphMark,
    RunFragment,
    TextStream,
)
from vellum.contexts.templating.wordml_patterns import (
    W_NS,
    Attributes,
    BlockTags,
    RunTags,
)

NSMAP = {"w": W_NS}

_MARKS = re.compile(f"([{PARAGRAPH_MARK}{OBJECT_MARK}])")

# Characters XML 1.0 cannot carry at all
_XML_INVALID = re.compile("[^\u0009\u000a\u000d\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

# Characters that become their own run child instead of w:t text
_SPECIAL_CHARS = {
    "\n": RunTags.BR,
    "\t": RunTags.TAB,
    "\u2011": RunTags.NO_BREAK_HYPHEN,
    "\u00ad": RunTags.SOFT_HYPHEN,
}


class _Placed(NamedTuple):
    """An inline object and the loop scope it was emitted under."""

    fragment: InlineObject
    scope: Optional[Mapping]


# Inline content waiting for its paragraph: (text, source) or a placed object
_Piece = Union[Tuple[str, Optional[int]], _Placed]


@dataclass
class RenderedScope:
    """
    New content for one scope.

    Attributes:
        elements: Paragraphs, tables and runs, in order
        objects: Every re-emitted object element with the loop scope it was
            emitted under (None outside loops). Scopes nested in these
            objects still hold unresolved directives.
    """

    elements: List[etree._Element] = field(default_factory=list)
    objects: List[Tuple[etree._Element, Optional[Mapping]]] = field(default_factory=list)


def clean_text(text: str) -> str:
    """Normalize line endings and drop characters XML cannot represent."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _XML_INVALID.sub("", text)


def _parse(markup: bytes) -> etree._Element:
    return etree.fromstring(markup)


def make_run(text: str, properties: Optional[bytes]) -> etree._Element:
    """
    Build a w:r for text with a copy of the given w:rPr.

    Line breaks, tabs and special hyphens become w:br, w:tab,
    w:noBreakHyphen and w:softHyphen; everything else goes into w:t
    elements, with xml:space="preserve" where whitespace would be lost.
    """
    run = etree.Element(RunTags.R, nsmap=NSMAP)
    if properties is not None:
        run.append(_parse(properties))

    buffer: List[str] = []

    def flush():
        if not buffer:
            return
        value = "".join(buffer)
        t = etree.SubElement(run, RunTags.T)
        t.text = value
        if value != value.strip() or "  " in value:
            t.set(Attributes.XML_SPACE, "preserve")
        buffer.clear()

    for char in clean_text(text):
        tag = _SPECIAL_CHARS.get(char)
        if tag is None:
            buffer.append(char)
            continue
        flush()
        etree.SubElement(run, tag)
    flush()
    return run


def _fallback_properties(stream: TextStream, mark_index: Optional[int]) -> Optional[bytes]:
    """Formatting for text with no origin: the paragraph's first run, else the stream's."""
    if mark_index is not None:
        for fragment in stream.fragments:
            if isinstance(fragment, RunFragment) and fragment.paragraph == mark_index:
                return fragment.properties
    return stream.first_run_properties


def _inline_elements(
    pieces: List[_Piece],
    stream: TextStream,
    mark_index: Optional[int],
    rendered: RenderedScope,
) -> List[etree._Element]:
    """Runs and objects for a paragraph's worth of pieces."""
    elements = []
    group_text: List[str] = []
    group_source: Optional[int] = None

    def flush():
        if not group_text:
            return
        fragment = stream.fragments[group_source] if group_source is not None else None
        if isinstance(fragment, RunFragment):
            properties = fragment.properties
        else:
            properties = _fallback_properties(stream, mark_index)
        elements.append(make_run("".join(group_text), properties))
        group_text.clear()

    for piece in pieces:
        if isinstance(piece, _Placed):
            flush()
            element = _parse(piece.fragment.markup)
            rendered.objects.append((element, piece.scope))
            elements.append(element)
            continue
        text, source = piece
        if group_text and source != group_source:
            flush()
        group_source = source
        group_text.append(text)
    flush()
    return elements


def _collect_pieces(text: LogicalText, stream: TextStream):
    """
    Walk the logical text, yielding pieces and structural marks.

    Mark characters only act as marks when their fragment is a paragraph mark
    or an object; the same characters arriving inside data stay text.

    Yields:
        ("piece", _Piece), ("paragraph", (ParagraphMark, index)) or
        ("block", (BlockObject, scope))
    """
    for segment in text.segments:
        fragment = stream.fragments[segment.source] if segment.source is not None else None
        for chunk in _MARKS.split(segment.text):
            if not chunk:
                continue
            if chunk == PARAGRAPH_MARK and isinstance(fragment, ParagraphMark):
                yield "paragraph", (fragment, segment.source)
            elif chunk == PARAGRAPH_MARK:
                yield "piece", ("\n", segment.source)
            elif chunk == OBJECT_MARK and isinstance(fragment, BlockObject):
                yield "block", (fragment, segment.scope)
            elif chunk == OBJECT_MARK and isinstance(fragment, InlineObject):
                yield "piece", _Placed(fragment, segment.scope)
            else:
                yield "piece", (chunk, segment.source)


def _make_paragraph(
    mark: Optional[ParagraphMark],
    mark_index: Optional[int],
    pieces: List[_Piece],
    stream: TextStream,
    rendered: RenderedScope,
) -> etree._Element:
    paragraph = etree.Element(BlockTags.P, nsmap=NSMAP)
    if mark is not None:
        for key, value in mark.attributes:
            paragraph.set(key, value)
        if mark.properties is not None:
            paragraph.append(_parse(mark.properties))
    for element in _inline_elements(pieces, stream, mark_index, rendered):
        paragraph.append(element)
    return paragraph


def _is_emptied(mark: Optional[ParagraphMark], pieces: List[_Piece]) -> bool:
    """True if a paragraph that showed text in the template now shows nothing."""
    if mark is None or not mark.had_text:
        return False
    if any(isinstance(piece, _Placed) for piece in pieces):
        return False
    return not "".join(piece[0] for piece in pieces).strip()


def _owning_mark(
    pieces: List[_Piece], stream: TextStream
) -> Tuple[Optional[ParagraphMark], Optional[int]]:
    """Paragraph mark of the first piece that remembers its paragraph."""
    for piece in pieces:
        if isinstance(piece, _Placed):
            index = piece.fragment.paragraph
        else:
            source = piece[1]
            fragment = stream.fragments[source] if source is not None else None
            index = getattr(fragment, "paragraph", None)
        if index is not None:
            return stream.fragments[index], index
    return None, None


def render_block(
    text: LogicalText, stream: TextStream, drop_emptied_paragraphs: bool = True
) -> RenderedScope:
    """
    Re-materialize the evaluated text of a block scope.

    Args:
        text: Evaluated logical text (sources index into stream.fragments)
        stream: The stream the template text came from
        drop_emptied_paragraphs: Remove paragraphs that had text in the
            template but resolve to whitespace only

    Returns:
        RenderedScope with the new paragraph and table elements, in order
    """
    rendered = RenderedScope()
    pending: List[_Piece] = []

    def emit(mark, mark_index, pieces):
        if drop_emptied_paragraphs and _is_emptied(mark, pieces):
            return
        rendered.elements.append(_make_paragraph(mark, mark_index, pieces, stream, rendered))

    for kind, value in _collect_pieces(text, stream):
        if kind == "piece":
            pending.append(value)
        elif kind == "paragraph":
            mark, mark_index = value
            emit(mark, mark_index, pending)
            pending = []
        else:
            if pending:
                emit(*_owning_mark(pending, stream), pending)
                pending = []
            fragment, scope = value
            element = _parse(fragment.markup)
            rendered.objects.append((element, scope))
            rendered.elements.append(element)

    if pending:
        emit(*_owning_mark(pending, stream), pending)

    # Cells (and every other block container) must end with a paragraph
    if not rendered.elements or rendered.elements[-1].tag != BlockTags.P:
        rendered.elements.append(etree.Element(BlockTags.P, nsmap=NSMAP))
    return rendered


def render_inline(text: LogicalText, stream: TextStream) -> RenderedScope:
    """Re-materialize the evaluated text of an inline scope as runs and objects."""
    rendered = RenderedScope()
    pieces: List[_Piece] = []
    for kind, value in _collect_pieces(text, stream):
        if kind == "piece":
            pieces.append(value)
        elif kind == "paragraph":
            pieces.append(("\n", None))
    rendered.elements = _inline_elements(pieces, stream, None, rendered)
    return rendered


def replace_scope_content(
    scope: etree._Element, stream: TextStream, elements: List[etree._Element]
) -> None:
    """
    Swap the children a stream was built from for re-materialized elements.

    Fixed children (section and cell properties) keep their positions; the
    new elements go where the first replaced child was.
    """
    if stream.elements:
        index = scope.index(stream.elements[0])
        for child in stream.elements:
            scope.remove(child)
    else:
        index = len(scope)

    for offset, element in enumerate(elements):
        scope.insert(index + offset, element)
