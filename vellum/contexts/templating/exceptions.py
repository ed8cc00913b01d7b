"""Custom exceptions for the templating context."""

from typing import Optional


class PackageError(Exception):
    """Base class for document package failures. Always fatal for a request."""


class InvalidPackageError(PackageError):
    """
    Exception raised when template bytes cannot be read as a document package.

    Covers archives that are not ZIP files at all and processed XML parts that
    are not well-formed.

    Attributes:
        message: Error description
        part_name: Name of the offending part, when the archive itself was readable
    """

    def __init__(self, message: str, part_name: Optional[str] = None):
        self.message = message
        self.part_name = part_name

        if part_name:
            message = f"{message} (part: {part_name})"

        super().__init__(message)


class MissingBodyPartError(PackageError):
    """
    Exception raised when the archive lacks the main document part.

    Attributes:
        part_name: Expected body part name (e.g., 'word/document.xml')
        available: Part names actually present in the archive
    """

    def __init__(self, part_name: str, available: Optional[list] = None):
        self.part_name = part_name
        self.available = available or []

        parts = [f"Document package has no body part '{part_name}'"]
        if self.available:
            listing = ", ".join(self.available[:10])
            if len(self.available) > 10:
                listing += ", ..."
            parts.append(f"Parts present: {listing}")

        super().__init__("\n".join(parts))


class TemplateSyntaxError(Exception):
    """
    Exception raised for unbalanced or mismatched directive tags.

    Only raised when the mismatch policy is STRICT; the default policy drops
    the offending span silently.

    Attributes:
        message: Error description
        kind: Directive kind ('loop' or 'conditional')
        name: Tag name as written in the template
        snippet: The template text around the offending tags
    """

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        name: Optional[str] = None,
        snippet: Optional[str] = None,
    ):
        self.message = message
        self.kind = kind
        self.name = name
        self.snippet = snippet

        parts = [message]

        if kind and name:
            parts.append(f"Directive: {kind} '{name}'")

        if snippet:
            # Truncate snippet if too long
            snippet = snippet[:200] + "..." if len(snippet) > 200 else snippet
            parts.append(f"\nTemplate text:\n{snippet}")

        super().__init__("\n".join(parts))


class InvalidRecordError(ValueError):
    """
    Exception raised when a CV record or binding data is not a mapping.

    Records come from JSON/YAML or an upstream extraction step; anything other
    than an object at the top level cannot be bound to a template.
    """

    pass
