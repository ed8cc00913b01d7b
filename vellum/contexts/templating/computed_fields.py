"""
Computed Placeholders

Placeholders whose value is derived from whole sections of the binding
context rather than looked up by name:

- [ALL_EXPERIENCES]       every position with its achievements
- [ALL_EDUCATION]         one line per degree
- [SKILLS_BY_CATEGORY]    skills grouped through a skill taxonomy
- [BULLETED_ACHIEVEMENTS] achievements of every position as bullets
- [EXPERIENCE_SUMMARY]    "3 positions over 7 years at 2 companies (...)"

All functions are pure: they read the scope they are given and return a
string, empty when there is nothing to show.
"""

import re
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional

from vellum.contexts.templating.registries import SkillTaxonomy

BULLET = "•"

_YEAR = re.compile(r'(?<!\d)\d{4}(?!\d)')
_PRESENT = re.compile(r'present', re.IGNORECASE)


def _entries(scope: Mapping, *keys: str) -> List[Mapping]:
    """First list found under any key, keeping only mapping entries."""
    for key in keys:
        value = scope.get(key)
        if isinstance(value, (list, tuple)):
            return [entry for entry in value if isinstance(entry, Mapping)]
    return []


def _text(entry: Mapping, *keys: str) -> str:
    for key in keys:
        value = entry.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


def _strings(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def _experiences(scope: Mapping) -> List[Mapping]:
    return _entries(scope, "experiences", "experience")


def all_experiences(scope: Mapping) -> str:
    """
    Every experience entry as a heading line plus indented achievement bullets.

    Example:
        Engineer at Acme (2019 - 2022) - Berlin
          • Shipped the billing service
    """
    blocks = []
    for entry in _experiences(scope):
        title = _text(entry, "job_title", "title")
        company = _text(entry, "company")
        line = " at ".join(part for part in (title, company) if part)

        duration = _text(entry, "duration")
        if duration:
            line += f" ({duration})"
        location = _text(entry, "job_location", "location")
        if location:
            line += f" - {location}"

        achievements = _strings(entry.get("achievements"))
        if achievements:
            line += "\n" + "\n".join(f"  {BULLET} {item}" for item in achievements)

        if line.strip():
            blocks.append(line.strip("\n"))
    return "\n\n".join(blocks)


def all_education(scope: Mapping) -> str:
    """One line per education entry: "Degree, Institution (Year) - Location"."""
    lines = []
    for entry in _entries(scope, "education"):
        line = ", ".join(
            part for part in (_text(entry, "degree"), _text(entry, "institution")) if part
        )
        year = _text(entry, "year")
        if year:
            line += f" ({year})"
        location = _text(entry, "education_location", "location")
        if location:
            line += f" - {location}"
        if line.strip():
            lines.append(line.strip())
    return "\n".join(lines)


def skills_by_category(scope: Mapping, taxonomy: SkillTaxonomy) -> str:
    """
    Skills grouped by taxonomy category.

    Example:
        Programming Languages:
          • Python, Rust

        Other Skills:
          • Mentoring
    """
    skills = _strings(scope.get("skills"))
    if not skills:
        return ""
    groups = taxonomy.categorize(skills)
    return "\n\n".join(
        f"{category}:\n  {BULLET} {', '.join(items)}" for category, items in groups.items()
    )


def bulleted_achievements(scope: Mapping) -> str:
    """Achievements of every experience entry, one bullet per line."""
    bullets = []
    for entry in _experiences(scope):
        bullets.extend(f"{BULLET} {item}" for item in _strings(entry.get("achievements")))
    return "\n".join(bullets)


def experience_years(experiences: List[Mapping], current_year: Optional[int] = None) -> int:
    """
    Total years of experience across entries.

    Each duration contributes end - start of its first two four-digit years,
    with "present" counting as the current year. The total is at least 1.

    Args:
        experiences: Experience entries with a 'duration' field
        current_year: Year that "present" stands for (defaults to this year)

    Returns:
        Whole years, never below 1

    Examples:
        "2018 - 2021"    -> 3
        "2020 - Present" -> current_year - 2020
    """
    if current_year is None:
        current_year = date.today().year

    total = 0
    for entry in experiences:
        duration = _text(entry, "duration")
        years = [int(token) for token in _YEAR.findall(duration)]
        if _PRESENT.search(duration):
            years.append(current_year)
        if len(years) >= 2:
            total += max(0, years[1] - years[0])
    return max(1, total)


def experience_summary(scope: Mapping, current_year: Optional[int] = None) -> str:
    """
    One-sentence overview of the experience section.

    Example:
        "3 positions over 7 years at 2 companies (Acme, Initech)"

    Companies are listed only when there are at most three.
    """
    experiences = _experiences(scope)
    if not experiences:
        return ""

    count = len(experiences)
    summary = f"{count} position{'s' if count > 1 else ''}"

    years = experience_years(experiences, current_year)
    summary += f" over {years} year{'s' if years > 1 else ''}"

    companies: List[str] = []
    for entry in experiences:
        company = _text(entry, "company")
        if company and company not in companies:
            companies.append(company)
    if companies:
        summary += f" at {len(companies)} compan{'ies' if len(companies) > 1 else 'y'}"
        if len(companies) <= 3:
            summary += f" ({', '.join(companies)})"
    return summary


# Placeholder name -> function(scope, taxonomy, current_year)
COMPUTED_FIELDS: Dict[str, Callable[[Mapping, SkillTaxonomy, Optional[int]], str]] = {
    "ALL_EXPERIENCES": lambda scope, taxonomy, year: all_experiences(scope),
    "ALL_EDUCATION": lambda scope, taxonomy, year: all_education(scope),
    "SKILLS_BY_CATEGORY": lambda scope, taxonomy, year: skills_by_category(scope, taxonomy),
    "BULLETED_ACHIEVEMENTS": lambda scope, taxonomy, year: bulleted_achievements(scope),
    "EXPERIENCE_SUMMARY": lambda scope, taxonomy, year: experience_summary(scope, year),
}
