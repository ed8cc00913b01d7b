"""
Document Package Reader/Writer

Opens a .docx archive, exposes its XML parts as text and re-packs a new archive
from the original entries plus rewritten parts. Untouched parts (styles,
relationships, media) are written back byte-for-byte, in their original order,
with their original compression and timestamps, so re-packing is deterministic.
"""

import fnmatch
import io
import re
import zipfile
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

from lxml import etree

from vellum.contexts.templating.exceptions import InvalidPackageError, MissingBodyPartError

BODY_PART = "word/document.xml"

_XML_DECLARATION = re.compile(r'^\s*<\?xml[^>]*\?>')
_ENCODING_ATTR = re.compile(rb'encoding=["\']([A-Za-z0-9._-]+)["\']')
_STANDALONE_ATTR = re.compile(r'standalone=["\']yes["\']')


@dataclass(frozen=True)
class PartEntry:
    """Archive metadata for one part, kept so the writer can reproduce it."""

    name: str
    date_time: Tuple[int, int, int, int, int, int]
    compress_type: int
    external_attr: int = 0
    create_system: int = 0


@dataclass(frozen=True)
class DocumentPackage:
    """
    An opened document package.

    Attributes:
        entries: Archive entries in original order
        parts: Part name -> raw bytes (read-only view)
        body_part: Name of the part subject to templating
    """

    entries: Tuple[PartEntry, ...]
    parts: Mapping[str, bytes]
    body_part: str = BODY_PART

    @property
    def part_names(self) -> List[str]:
        return [entry.name for entry in self.entries]


def open_package(data: bytes, body_part: str = BODY_PART) -> DocumentPackage:
    """
    Open a document package from raw bytes.

    Args:
        data: Archive bytes (e.g., the uploaded template)
        body_part: Name of the main document part

    Returns:
        DocumentPackage holding every part in memory

    Raises:
        InvalidPackageError: If the bytes are not a readable ZIP archive
        MissingBodyPartError: If the archive has no body part
    """
    if not isinstance(data, (bytes, bytearray)):
        raise InvalidPackageError(f"Expected archive bytes, got {type(data).__name__}")

    try:
        with zipfile.ZipFile(io.BytesIO(bytes(data))) as archive:
            entries = []
            parts = {}
            for info in archive.infolist():
                if info.is_dir():
                    continue
                entries.append(
                    PartEntry(
                        name=info.filename,
                        date_time=info.date_time,
                        compress_type=info.compress_type,
                        external_attr=info.external_attr,
                        create_system=info.create_system,
                    )
                )
                parts[info.filename] = archive.read(info)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError) as e:
        raise InvalidPackageError(f"Template is not a readable document package: {e}") from e
    except (NotImplementedError, RuntimeError) as e:
        # Unsupported compression method or encrypted entries
        raise InvalidPackageError(f"Template archive cannot be decoded: {e}") from e

    if body_part not in parts:
        raise MissingBodyPartError(body_part, available=list(parts))

    return DocumentPackage(
        entries=tuple(entries),
        parts=MappingProxyType(parts),
        body_part=body_part,
    )


def find_parts(package: DocumentPackage, patterns: Iterable[str]) -> List[str]:
    """
    Select part names matching any of the glob patterns, in archive order.

    Args:
        package: Opened package
        patterns: Glob patterns (e.g., ["word/document.xml", "word/header*.xml"])

    Returns:
        Matching part names, each listed once
    """
    patterns = list(patterns)
    return [
        name
        for name in package.part_names
        if any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)
    ]


def get_part_text(package: DocumentPackage, part_name: str) -> str:
    """
    Decode an XML part to text using the encoding its declaration names.

    Raises:
        MissingBodyPartError: If the part does not exist
        InvalidPackageError: If the bytes cannot be decoded
    """
    if part_name not in package.parts:
        raise MissingBodyPartError(part_name, available=package.part_names)

    raw = package.parts[part_name]
    encoding = _declared_encoding(raw)
    try:
        return raw.decode(encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise InvalidPackageError(f"Part is not valid {encoding} text: {e}", part_name) from e


def with_part_text(package: DocumentPackage, part_name: str, text: str) -> DocumentPackage:
    """
    Return a new package whose part is replaced by UTF-8 encoded text.

    The original package is left untouched. An XML declaration naming another
    encoding is rewritten so the bytes and the declaration agree.
    """
    if part_name not in package.parts:
        raise MissingBodyPartError(part_name, available=package.part_names)

    declaration = _XML_DECLARATION.match(text)
    if declaration:
        fixed = re.sub(
            r'encoding=["\'][^"\']*["\']', 'encoding="UTF-8"', declaration.group(0)
        )
        text = fixed + text[declaration.end():]

    parts = dict(package.parts)
    parts[part_name] = text.encode("utf-8")
    return replace(package, parts=MappingProxyType(parts))


def get_body_text(package: DocumentPackage) -> str:
    """Body part XML as text."""
    return get_part_text(package, package.body_part)


def with_body_text(package: DocumentPackage, text: str) -> DocumentPackage:
    """New package with the body part replaced."""
    return with_part_text(package, package.body_part, text)


def serialize_package(package: DocumentPackage) -> bytes:
    """
    Re-pack the package into archive bytes.

    Entries keep their original order, timestamps and compression method, so
    serializing the same package twice yields identical bytes.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for entry in package.entries:
            info = zipfile.ZipInfo(entry.name, date_time=entry.date_time)
            info.compress_type = entry.compress_type
            info.external_attr = entry.external_attr
            info.create_system = entry.create_system
            archive.writestr(info, package.parts[entry.name])
    return buffer.getvalue()


def parse_xml(text: str, part_name: Optional[str] = None) -> Tuple[etree._Element, bool]:
    """
    Parse an XML part.

    Entity resolution and network access are disabled; parts come from
    user uploads.

    Args:
        text: Part XML as text
        part_name: Part name for error messages

    Returns:
        (root element, whether the declaration said standalone="yes")

    Raises:
        InvalidPackageError: If the part is not well-formed XML
    """
    declaration = _XML_DECLARATION.match(text)
    standalone = bool(declaration and _STANDALONE_ATTR.search(declaration.group(0)))
    body = text[declaration.end():] if declaration else text

    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(body.encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        raise InvalidPackageError(f"Part is not well-formed XML: {e}", part_name) from e
    return root, standalone


def serialize_xml(root: etree._Element, standalone: bool = True) -> str:
    """Serialize a part root with a UTF-8 XML declaration."""
    data = etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        standalone=True if standalone else None,
    )
    return data.decode("utf-8")


def _declared_encoding(raw: bytes) -> str:
    """Encoding named in the XML declaration, defaulting to UTF-8."""
    if raw.startswith((b"\xff\xfe", b"\xfe\xff")):
        return "utf-16"
    head = raw[:200]
    if head.startswith(b"<?xml"):
        match = _ENCODING_ATTR.search(head.split(b"?>", 1)[0])
        if match:
            return match.group(1).decode("ascii")
    if raw.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    return "utf-8"
