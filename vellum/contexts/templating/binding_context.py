"""
Binding Context

Immutable, scoped data the directive interpreter resolves names against, and
the builder that derives one from a CV record.

A BindingContext is a read-only Mapping. Loop iterations push a child scope
whose values shadow the parent's; lookups that miss fall through to the
parent. Nested lists and dicts are frozen on construction.
"""

import re
from datetime import date
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

from vellum.contexts.templating.exceptions import InvalidRecordError
from vellum.utils.timestamp import format_long_date


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping) and not isinstance(value, BindingContext):
        return MappingProxyType({str(key): _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


class BindingContext(Mapping):
    """
    Scoped, read-only name -> value mapping.

    Attributes:
        values: This scope's own values (frozen)
        parent: Enclosing scope, or None for the root

    Example:
        root = BindingContext({"name": "Ada", "skills": ["Rust"]})
        item = root.child({"name": "Grace", "index": 1})
        item["name"]    # "Grace" (shadows the root)
        item["skills"]  # ("Rust",) (falls through)
    """

    __slots__ = ("_values", "_parent")

    def __init__(self, values: Optional[Mapping] = None, parent: "BindingContext" = None):
        self._values = _freeze(dict(values or {}))
        self._parent = parent

    @property
    def values(self) -> Mapping:
        return self._values

    @property
    def parent(self) -> Optional["BindingContext"]:
        return self._parent

    def child(self, values: Mapping) -> "BindingContext":
        """Push a scope whose values shadow this one."""
        return BindingContext(values, parent=self)

    def __getitem__(self, key: str) -> Any:
        scope = self
        while scope is not None:
            if key in scope._values:
                return scope._values[key]
            scope = scope._parent
        raise KeyError(key)

    def __contains__(self, key) -> bool:
        scope = self
        while scope is not None:
            if key in scope._values:
                return True
            scope = scope._parent
        return False

    def __iter__(self) -> Iterator[str]:
        seen = set()
        scope = self
        while scope is not None:
            for key in scope._values:
                if key not in seen:
                    seen.add(key)
                    yield key
            scope = scope._parent

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        depth = 0
        scope = self._parent
        while scope is not None:
            depth += 1
            scope = scope._parent
        return f"BindingContext(keys={list(self._values)}, depth={depth})"


# ============================================================================
# CV record -> binding context
# ============================================================================

PERSONAL_FIELDS = ("name", "email", "phone", "location", "linkedin", "portfolio", "github", "title")

LIST_SECTIONS = ("skills", "certifications", "projects", "languages")

# Alternate spellings accepted from upstream extractors
PERSONAL_ALIASES = {
    "name": ("name", "full_name", "fullName"),
    "title": ("title", "headline", "job_title"),
    "linkedin": ("linkedin", "linkedIn", "linkedin_url"),
    "portfolio": ("portfolio", "website", "portfolio_url"),
    "github": ("github", "github_url"),
}

_LINK_KINDS = (
    ("linkedin", re.compile(r'linkedin\.com', re.IGNORECASE)),
    ("github", re.compile(r'github\.com', re.IGNORECASE)),
)


def _first_present(source: Mapping, keys) -> Any:
    for key in keys:
        value = source.get(key)
        if value not in (None, ""):
            return value
    return None


def _string(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _string_list(value: Any) -> List[str]:
    """None -> [], scalar -> [scalar], blanks dropped, entries stringified."""
    if value is None:
        return []
    if isinstance(value, (str, int, float)):
        value = [value]
    if isinstance(value, Mapping):
        value = list(value.values())
    items = []
    for item in value:
        if isinstance(item, Mapping):
            # {"name": "Python"} style entries
            item = _first_present(item, ("name", "title", "value"))
        text = _string(item)
        if text:
            items.append(text)
    return items


def _record_list(value: Any) -> List[Mapping]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [value]
    return [item for item in value if isinstance(item, Mapping)]


def _classify_links(links: Any) -> Dict[str, str]:
    """Sort a links dict or list into linkedin/github/portfolio."""
    found: Dict[str, str] = {}
    if isinstance(links, Mapping):
        for key, url in links.items():
            url = _string(url)
            key = str(key).lower()
            if not url:
                continue
            if key in ("linkedin", "github", "portfolio"):
                found.setdefault(key, url)
            elif key in ("website", "site", "homepage"):
                found.setdefault("portfolio", url)
        return found

    for url in _string_list(links):
        for kind, pattern in _LINK_KINDS:
            if pattern.search(url):
                found.setdefault(kind, url)
                break
        else:
            found.setdefault("portfolio", url)
    return found


def _experience_item(entry: Mapping) -> Dict[str, Any]:
    title = _string(_first_present(entry, ("job_title", "title", "position", "role")))
    location = _string(_first_present(entry, ("location", "job_location")))
    return {
        "job_title": title,
        "title": title,
        "company": _string(_first_present(entry, ("company", "employer", "organization"))),
        "duration": _string(_first_present(entry, ("duration", "dates", "period"))),
        "location": location,
        "job_location": location,
        "achievements": _string_list(
            _first_present(entry, ("achievements", "responsibilities", "highlights"))
        ),
        "description": _string(entry.get("description")),
    }


def _education_item(entry: Mapping) -> Dict[str, Any]:
    location = _string(_first_present(entry, ("location", "education_location")))
    return {
        "degree": _string(entry.get("degree")),
        "institution": _string(_first_present(entry, ("institution", "school", "university"))),
        "year": _string(_first_present(entry, ("year", "graduation_year", "dates"))),
        "location": location,
        "education_location": location,
        "gpa": _string(entry.get("gpa")),
        "honors": _string(entry.get("honors")),
    }


def normalize_cv_record(record: Any) -> Dict[str, Any]:
    """
    Normalize a loosely shaped CV record into the canonical field set.

    Args:
        record: Mapping parsed from JSON/YAML or produced by intake

    Returns:
        Dict with string personal fields, list sections and normalized
        experience/education entries

    Raises:
        InvalidRecordError: If record is not a mapping
    """
    if not isinstance(record, Mapping):
        raise InvalidRecordError(
            f"CV record must be a mapping, got {type(record).__name__}"
        )

    personal = _first_present(record, ("personal_info", "personal", "personalInfo"))
    personal = personal if isinstance(personal, Mapping) else {}

    normalized: Dict[str, Any] = {}
    for field in PERSONAL_FIELDS:
        keys = PERSONAL_ALIASES.get(field, (field,))
        value = _first_present(personal, keys)
        if value is None:
            value = _first_present(record, keys)
        normalized[field] = _string(value)

    links = _classify_links(personal.get("links") or record.get("links"))
    for kind, url in links.items():
        if not normalized[kind]:
            normalized[kind] = url

    normalized["summary"] = _string(
        _first_present(record, ("professional_summary", "summary", "professionalSummary"))
    )
    for section in LIST_SECTIONS:
        normalized[section] = _string_list(record.get(section))

    normalized["experience"] = [
        _experience_item(entry)
        for entry in _record_list(_first_present(record, ("experience", "experiences", "work_experience")))
    ]
    normalized["education"] = [
        _education_item(entry) for entry in _record_list(record.get("education"))
    ]
    return normalized


def build_binding_context(record: Any, today: Optional[date] = None) -> BindingContext:
    """
    Derive a binding context from a CV record.

    Adds the presence flags, the first-entry shorthands used outside loops
    ([JOB_TITLE], [DEGREE], ...) and the generation date.

    Args:
        record: CV record mapping
        today: Generation date for [DATE] (defaults to the current date)

    Returns:
        Root BindingContext

    Raises:
        InvalidRecordError: If record is not a mapping
    """
    data = normalize_cv_record(record)
    experiences = data["experience"]
    education = data["education"]

    values: Dict[str, Any] = dict(data)
    values["experiences"] = experiences

    values["has_summary"] = bool(data["summary"])
    values["has_skills"] = bool(data["skills"])
    values["has_experience"] = bool(experiences)
    values["has_experiences"] = bool(experiences)
    values["has_education"] = bool(education)
    values["has_certifications"] = bool(data["certifications"])
    values["has_projects"] = bool(data["projects"])
    values["has_languages"] = bool(data["languages"])

    first_job = experiences[0] if experiences else {}
    values["job_title"] = first_job.get("job_title", "")
    values["company"] = first_job.get("company", "")
    values["duration"] = first_job.get("duration", "")
    values["job_location"] = first_job.get("job_location", "")
    values["achievements"] = first_job.get("achievements", [])

    first_school = education[0] if education else {}
    values["degree"] = first_school.get("degree", "")
    values["institution"] = first_school.get("institution", "")
    values["year"] = first_school.get("year", "")
    values["education_location"] = first_school.get("education_location", "")

    values["date"] = format_long_date(today)

    return BindingContext(values)
