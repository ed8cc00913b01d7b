"""
WordprocessingML Constants

Namespace URIs and qualified tag names used by text reconstruction and markup
re-materialization. Grouped into frozen dataclasses like the directive patterns.
"""

from dataclasses import dataclass

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
W14_NS = "http://schemas.microsoft.com/office/word/2010/wordml"
XML_NS = "http://www.w3.org/XML/1998/namespace"


def w(local_name: str) -> str:
    """Clark-notation name in the main WordprocessingML namespace."""
    return f"{{{W_NS}}}{local_name}"


@dataclass(frozen=True)
class BlockTags:
    """Block-level elements."""
    P: str = w("p")
    P_PR: str = w("pPr")
    TBL: str = w("tbl")
    SECT_PR: str = w("sectPr")
    TC_PR: str = w("tcPr")


@dataclass(frozen=True)
class RunTags:
    """Run-level elements and the text-bearing run children."""
    R: str = w("r")
    R_PR: str = w("rPr")
    T: str = w("t")
    TAB: str = w("tab")
    BR: str = w("br")
    CR: str = w("cr")
    NO_BREAK_HYPHEN: str = w("noBreakHyphen")
    SOFT_HYPHEN: str = w("softHyphen")
    LAST_RENDERED_PAGE_BREAK: str = w("lastRenderedPageBreak")
    PROOF_ERR: str = w("proofErr")


@dataclass(frozen=True)
class ScopeTags:
    """
    Containers that own a logical text stream.

    Block scopes hold paragraphs and tables; inline scopes hold runs.
    """
    BLOCK: frozenset = frozenset(
        w(name)
        for name in (
            "body",
            "tc",
            "txbxContent",
            "hdr",
            "ftr",
            "sdtContent",
            "footnote",
            "endnote",
            "comment",
        )
    )
    INLINE: frozenset = frozenset(
        w(name) for name in ("hyperlink", "smartTag", "fldSimple", "ins")
    )


@dataclass(frozen=True)
class Attributes:
    """Attribute names touched during re-materialization."""
    BR_TYPE: str = w("type")
    XML_SPACE: str = f"{{{XML_NS}}}space"
    PARA_ID: str = f"{{{W14_NS}}}paraId"
    TEXT_ID: str = f"{{{W14_NS}}}textId"


# Characters each text-bearing run child contributes to the logical text
RUN_CHILD_TEXT = {
    RunTags.TAB: "\t",
    RunTags.CR: "\n",
    RunTags.NO_BREAK_HYPHEN: "\u2011",
    RunTags.SOFT_HYPHEN: "\u00ad",
}

# Break types that are line breaks (anything else, e.g. "page", is opaque)
TEXT_WRAPPING_BREAKS = {None, "textWrapping"}
