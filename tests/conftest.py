"""
Shared fixtures: hand-built .docx packages.

Templates are written as raw WordprocessingML so every test controls exactly
how text is split into runs.
"""

import io
import zipfile
from xml.sax.saxutils import escape

import pytest
from lxml import etree

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    '<Override PartName="/word/styles.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.styles+xml"/>'
    '<Override PartName="/word/header1.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.header+xml"/>'
    "</Types>"
)

PACKAGE_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="word/document.xml"/>'
    "</Relationships>"
)

DOCUMENT_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/styles" '
    'Target="styles.xml"/>'
    '<Relationship Id="rId2" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/header" '
    'Target="header1.xml"/>'
    "</Relationships>"
)

STYLES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    f'<w:styles xmlns:w="{W_NS}">'
    '<w:style w:type="paragraph" w:default="1" w:styleId="Normal"><w:name w:val="Normal"/></w:style>'
    '<w:style w:type="paragraph" w:styleId="Heading1"><w:name w:val="heading 1"/></w:style>'
    "</w:styles>"
)


class WordML:
    """Builders for WordprocessingML snippets."""

    @staticmethod
    def run(text: str, bold: bool = False, italic: bool = False) -> str:
        properties = ""
        if bold or italic:
            properties = "<w:rPr>" + ("<w:b/>" if bold else "") + ("<w:i/>" if italic else "") + "</w:rPr>"
        return f'<w:r>{properties}<w:t xml:space="preserve">{escape(text)}</w:t></w:r>'

    @staticmethod
    def paragraph(*runs: str, style: str = None) -> str:
        properties = f'<w:pPr><w:pStyle w:val="{style}"/></w:pPr>' if style else ""
        return f"<w:p>{properties}{''.join(runs)}</w:p>"

    @classmethod
    def text(cls, text: str, style: str = None) -> str:
        """Paragraph holding a single plain run."""
        return cls.paragraph(cls.run(text), style=style)

    @staticmethod
    def table(*rows) -> str:
        """Table from rows of cell contents (each cell a string of paragraphs)."""
        body = "".join(
            "<w:tr>" + "".join(f"<w:tc><w:tcPr/>{cell}</w:tc>" for cell in row) + "</w:tr>"
            for row in rows
        )
        return f"<w:tbl><w:tblPr/><w:tblGrid/>{body}</w:tbl>"

    @staticmethod
    def document(*blocks: str) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<w:document xmlns:w="{W_NS}" xmlns:r="{R_NS}"><w:body>'
            + "".join(blocks)
            + '<w:sectPr><w:pgSz w:w="12240" w:h="15840"/></w:sectPr>'
            "</w:body></w:document>"
        )

    @staticmethod
    def header(*blocks: str) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<w:hdr xmlns:w="{W_NS}">' + "".join(blocks) + "</w:hdr>"
        )


def build_docx(document_xml: str, header_xml: str = None) -> bytes:
    """Zip a minimal package python-docx can open."""
    header_xml = header_xml or WordML.header(WordML.text("Header"))
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in (
            ("[Content_Types].xml", CONTENT_TYPES),
            ("_rels/.rels", PACKAGE_RELS),
            ("word/document.xml", document_xml),
            ("word/_rels/document.xml.rels", DOCUMENT_RELS),
            ("word/styles.xml", STYLES),
            ("word/header1.xml", header_xml),
        ):
            info = zipfile.ZipInfo(name, date_time=(2024, 1, 1, 0, 0, 0))
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, content)
    return buffer.getvalue()


def read_paragraphs(data: bytes, part_name: str = "word/document.xml") -> list:
    """Visible text of every paragraph in a part, in document order."""
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        root = etree.fromstring(archive.read(part_name))

    texts = []
    for paragraph in root.iter(f"{{{W_NS}}}p"):
        parts = []
        for node in paragraph.iter(f"{{{W_NS}}}t", f"{{{W_NS}}}tab", f"{{{W_NS}}}br"):
            if node.tag == f"{{{W_NS}}}t":
                parts.append(node.text or "")
            elif node.tag == f"{{{W_NS}}}tab":
                parts.append("\t")
            else:
                parts.append("\n")
        texts.append("".join(parts))
    return texts


def read_part(data: bytes, part_name: str) -> bytes:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return archive.read(part_name)


@pytest.fixture
def wml():
    return WordML


@pytest.fixture
def make_docx():
    """Build a .docx from body blocks (and optional header blocks)."""

    def _make(*blocks: str, header: tuple = None) -> bytes:
        header_xml = WordML.header(*header) if header else None
        return build_docx(WordML.document(*blocks), header_xml)

    return _make


@pytest.fixture
def paragraphs():
    return read_paragraphs


@pytest.fixture
def part_bytes():
    return read_part


@pytest.fixture
def cv_record():
    """A small, complete CV record."""
    return {
        "personal_info": {
            "full_name": "Ada Lovelace",
            "email": "ada@example.com",
            "phone": "+44 20 7946 0958",
            "location": "London",
            "linkedin": "https://linkedin.com/in/ada",
            "portfolio": "",
        },
        "professional_summary": "Mathematician and first programmer.",
        "skills": ["Python", "Rust", "Docker", "Mentoring"],
        "experience": [
            {
                "job_title": "Analyst",
                "company": "Analytical Engines Ltd",
                "duration": "2018 - 2021",
                "location": "London",
                "achievements": ["Wrote the first algorithm", "Annotated the memoir"],
            },
            {
                "job_title": "Engineer",
                "company": "Babbage & Co",
                "duration": "2021 - Present",
                "location": "Remote",
                "achievements": ["Built the difference engine driver"],
            },
        ],
        "education": [
            {
                "degree": "BSc Mathematics",
                "institution": "University of London",
                "year": "2017",
                "location": "London",
            }
        ],
        "certifications": ["AWS Certified Developer"],
        "projects": [],
        "languages": ["English", "French"],
    }


@pytest.fixture
def make_raw_docx():
    """Build a .docx around a complete word/document.xml string."""
    return build_docx
