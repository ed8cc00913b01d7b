"""Unit tests for text reconstruction and LogicalText."""

import pytest

from vellum.contexts.templating.directive_patterns import PLACEHOLDER_RE
from vellum.contexts.templating.package import parse_xml
from vellum.contexts.templating.text_stream import (
    OBJECT_MARK,
    PARAGRAPH_MARK,
    BlockObject,
    InlineObject,
    LogicalText,
    ParagraphMark,
    RunFragment,
    Segment,
    build_stream,
    iter_scopes,
    outer_scopes,
    paragraph_text,
    run_text,
    scope_mode,
)
from vellum.contexts.templating.wordml_patterns import BlockTags, RunTags

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"


def _body(inner: str):
    root, _ = parse_xml(f'<w:document xmlns:w="{W_NS}"><w:body>{inner}</w:body></w:document>')
    return root[0]


# ============================================================================
# LogicalText
# ============================================================================


@pytest.mark.unit
def test_logical_text_merges_adjacent_segments():
    """Test that neighbouring segments with the same origin are merged."""
    text = LogicalText([Segment("[NA", 0), Segment("ME]", 0), Segment("!", 1)])

    assert text.plain() == "[NAME]!"
    assert len(text.segments) == 2
    assert text.source_at(4) == 0
    assert text.source_at(6) == 1


@pytest.mark.unit
def test_logical_text_slice_keeps_attribution():
    """Test slicing across a segment boundary."""
    text = LogicalText([Segment("[NA", 0), Segment("ME]", 1)])

    middle = text[1:5]

    assert middle.plain() == "NAME"
    assert [segment.source for segment in middle.segments] == [0, 1]
    assert text[3:3].plain() == ""


@pytest.mark.unit
def test_logical_text_rejects_stepped_slices():
    text = LogicalText.from_text("abc")

    with pytest.raises(TypeError):
        text[::2]


@pytest.mark.unit
def test_with_scope_keeps_innermost_scope():
    """Test that an outer loop scope does not overwrite one already recorded."""
    inner, outer = {"level": "inner"}, {"level": "outer"}
    text = LogicalText([Segment("a", 0), Segment(OBJECT_MARK, 1, scope=inner)])

    scoped = text.with_scope(outer)

    assert [segment.scope for segment in scoped.segments] == [outer, inner]
    assert scoped.lock().segments[1].scope is inner
    assert scoped[1:2].segments[0].scope is inner


@pytest.mark.unit
def test_segments_with_different_scopes_stay_apart():
    text = LogicalText(
        [Segment(OBJECT_MARK, 0, scope={"n": 1}), Segment(OBJECT_MARK, 0, scope={"n": 2})]
    )

    assert len(text.segments) == 2
    assert Segment("a", 0, scope={"n": 1}) == Segment("a", 0)


@pytest.mark.unit
def test_logical_text_is_immutable_value():
    """Test that operations return new values and leave the original alone."""
    text = LogicalText.from_text("[NAME]", 0)

    text.lock()
    text.with_scope({"name": "Ada"})

    assert text.plain() == "[NAME]"
    assert not any(segment.resolved for segment in text.segments)
    assert all(segment.scope is None for segment in text.segments)


@pytest.mark.unit
def test_finditer_skips_resolved_text():
    """Test that directives inside resolved text are not found."""
    text = LogicalText(
        [Segment("[A] ", 0), Segment("[B]", 0, resolved=True), Segment(" [C]", 0)]
    )

    names = [match.group("name") for match in text.finditer(PLACEHOLDER_RE)]

    assert names == ["A", "C"]


@pytest.mark.unit
def test_template_windows():
    text = LogicalText(
        [Segment("ab", 0), Segment("cd", 0, resolved=True), Segment("ef", 1)]
    )

    assert list(text.template_windows()) == [(0, 2), (4, 6)]


@pytest.mark.unit
def test_join_and_add():
    left = LogicalText.from_text("Hello ", 0)
    right = LogicalText.from_text("Ada", 1, resolved=True)

    assert (left + right).plain() == "Hello Ada"
    assert LogicalText.join([left, right, left]).plain() == "Hello AdaHello "


# ============================================================================
# Runs and scopes
# ============================================================================


@pytest.mark.unit
def test_run_text_textual_children():
    """Test tabs, text-wrapping breaks and special hyphens."""
    root, _ = parse_xml(
        f'<w:r xmlns:w="{W_NS}"><w:rPr><w:b/></w:rPr><w:t>a</w:t><w:tab/>'
        "<w:t>b</w:t><w:br/><w:t>c</w:t><w:noBreakHyphen/><w:t>d</w:t></w:r>"
    )

    assert run_text(root) == "a\tb\nc\u2011d"


@pytest.mark.unit
def test_run_text_opaque_children():
    """Test that page breaks and drawings make a run opaque."""
    page_break, _ = parse_xml(f'<w:r xmlns:w="{W_NS}"><w:br w:type="page"/></w:r>')
    drawing, _ = parse_xml(f'<w:r xmlns:w="{W_NS}"><w:drawing/></w:r>')

    assert run_text(page_break) is None
    assert run_text(drawing) is None


@pytest.mark.unit
def test_build_stream_reconstructs_fragmented_placeholder(wml):
    """Test that "[NA" (bold) + "ME]" (italic) reads as one placeholder."""
    body = _body(wml.paragraph(wml.run("[NA", bold=True), wml.run("ME]", italic=True)))

    stream = build_stream(body)

    assert stream.block is True
    assert stream.text.plain() == "[NAME]" + PARAGRAPH_MARK
    first, second, mark = stream.fragments
    assert isinstance(first, RunFragment) and b"<w:b/>" in first.properties
    assert isinstance(second, RunFragment) and b"<w:i/>" in second.properties
    assert isinstance(mark, ParagraphMark) and mark.had_text is True
    assert first.paragraph == 2
    assert stream.text.source_at(0) == 0
    assert stream.text.source_at(3) == 1


@pytest.mark.unit
def test_build_stream_objects_and_fixed_children(wml):
    """Test that tables become object characters and sectPr is not part of the stream."""
    body = _body(
        wml.text("Before")
        + wml.table([wml.text("cell")])
        + '<w:p><w:r><w:drawing/></w:r></w:p>'
        + "<w:sectPr/>"
    )

    stream = build_stream(body)

    assert stream.text.plain() == (
        "Before" + PARAGRAPH_MARK + OBJECT_MARK + OBJECT_MARK + PARAGRAPH_MARK
    )
    assert isinstance(stream.fragments[2], BlockObject)
    assert isinstance(stream.fragments[3], InlineObject)
    assert len(stream.elements) == 3
    assert all(element.tag != BlockTags.SECT_PR for element in stream.elements)


@pytest.mark.unit
def test_empty_paragraph_mark_had_no_text(wml):
    body = _body("<w:p/>")

    stream = build_stream(body)

    assert stream.text.plain() == PARAGRAPH_MARK
    assert stream.fragments[0].had_text is False


@pytest.mark.unit
def test_scope_mode(wml):
    body = _body(wml.text("x"))
    hyperlink, _ = parse_xml(
        f'<w:hyperlink xmlns:w="{W_NS}"><w:r><w:t>link</w:t></w:r></w:hyperlink>'
    )
    empty, _ = parse_xml(f'<w:tc xmlns:w="{W_NS}"><w:tcPr/></w:tc>')

    assert scope_mode(body) == "block"
    assert scope_mode(hyperlink) == "inline"
    assert scope_mode(empty) is None
    assert build_stream(empty) is None


@pytest.mark.unit
def test_iter_scopes_innermost_first(wml):
    """Test that table cells come before the body that contains them."""
    body = _body(wml.table([wml.text("a"), wml.text("b")]))
    root = body.getparent()

    scopes = iter_scopes(root)

    assert [scope.tag.rsplit("}", 1)[-1] for scope in scopes] == ["tc", "tc", "body"]


@pytest.mark.unit
def test_outer_scopes_stop_at_the_first_scope(wml):
    """Test that a table yields its cells but not the scopes nested in them."""
    nested = wml.table([wml.text("inner")])
    body = _body(
        wml.table([wml.text("a") + nested, wml.text("b")])
        + '<w:p><w:hyperlink><w:r><w:t>x</w:t></w:r></w:hyperlink></w:p>'
    )
    table, paragraph = body[0], body[1]

    cells = outer_scopes(table)

    assert [cell.tag.rsplit("}", 1)[-1] for cell in cells] == ["tc", "tc"]
    assert [scope.tag.rsplit("}", 1)[-1] for scope in outer_scopes(paragraph)] == ["hyperlink"]
    assert outer_scopes(body.getparent()) == [body]


@pytest.mark.unit
def test_paragraph_text_includes_hyperlink_runs(wml):
    root, _ = parse_xml(
        f'<w:p xmlns:w="{W_NS}"><w:r><w:t>See </w:t></w:r>'
        "<w:hyperlink><w:r><w:t>site</w:t></w:r></w:hyperlink></w:p>"
    )

    assert paragraph_text(root) == "See site"
    assert root.find(RunTags.R) is not None
