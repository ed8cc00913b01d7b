"""
Local heuristic CV extraction for the Intake context.

Turns the plain text of a CV into a CV record (the shape
build_binding_context() consumes) using section headers and regex
heuristics. No network calls, no model.

Fields the text does not provide stay empty; nothing is made up. Callers that
need a complete record fall back to templating.defaults.sample_cv_record().
"""

import re
from pathlib import Path
from typing import Dict, List

import pdfplumber

from vellum.contexts.intake.cv_patterns import (
    BUSINESS_SKILLS,
    CERTIFICATION_KEYWORDS,
    COMMON_LANGUAGES,
    COMMON_LOCATIONS,
    JOB_TITLE_WORDS,
    PROJECT_KEYWORDS,
    SECTION_NAMES,
    SOCIAL_DOMAINS,
    TECHNICAL_SKILLS,
    ContactPatterns,
    EntryPatterns,
    keyword_pattern,
    match_section_header,
)
from vellum.contexts.intake.logger import _log_debug, _log_info, _log_warning
from vellum.contexts.templating.package import get_body_text, open_package, parse_xml
from vellum.contexts.templating.text_stream import paragraph_text
from vellum.contexts.templating.wordml_patterns import BlockTags

MAX_SUMMARY_CHARS = 500
MAX_FALLBACK_SUMMARY_CHARS = 300
MAX_SKILLS = 15
MIN_SECTION_SKILLS = 5
MAX_EXPERIENCES = 5
MAX_EDUCATION = 3
MAX_CERTIFICATIONS = 5
MAX_PROJECTS = 3
MAX_LANGUAGES = 5

_EMAIL_RE = re.compile(ContactPatterns.EMAIL)
_PHONE_RES = [re.compile(pattern) for pattern in ContactPatterns.PHONE]
_LINKEDIN_RE = re.compile(ContactPatterns.LINKEDIN, re.IGNORECASE)
_URL_RE = re.compile(ContactPatterns.URL)
_LOCATION_RES = [re.compile(pattern, re.IGNORECASE) for pattern in ContactPatterns.LOCATION_LABEL]
_NAME_RE = re.compile(ContactPatterns.NAME)
_NAME_LABEL_RE = re.compile(ContactPatterns.NAME_LABEL, re.IGNORECASE)

_BULLET_RE = re.compile(EntryPatterns.BULLET)
_JOB_LINE_RE = re.compile(EntryPatterns.JOB_LINE)
_DATE_RANGE_RE = re.compile(EntryPatterns.DATE_RANGE, re.IGNORECASE)
_DEGREE_LINE_RE = re.compile(EntryPatterns.DEGREE_LINE)
_INSTITUTION_RE = re.compile(EntryPatterns.INSTITUTION_WORD, re.IGNORECASE)
_DEGREE_WORD_RE = re.compile(EntryPatterns.DEGREE_WORD)
_YEAR_RE = re.compile(EntryPatterns.YEAR)
_SKILL_SPLIT_RE = re.compile(EntryPatterns.SKILL_SEPARATORS)


def clean_cv_text(text: str) -> str:
    """Normalize line endings and spacing, and drop blank lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    text = re.sub(r" +", " ", text)
    lines = (line.strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def detect_sections(text: str) -> Dict[str, List[str]]:
    """
    Split cleaned CV text into sections by header lines.

    Lines before the first header belong to "personal". Header lines are not
    included in their section. Lines under unknown headers are discarded.
    All-caps lines before the first known header (usually the name) stay in
    "personal".
    """
    sections: Dict[str, List[str]] = {"personal": [], "other": []}
    sections.update({name: [] for name in SECTION_NAMES})

    current = "personal"
    for line in text.split("\n"):
        header = match_section_header(line)
        if header == "other" and current == "personal":
            header = None
        if header:
            current = header
            continue
        sections[current].append(line)

    sections.pop("other")
    return sections


def _unique(items: List[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


def _strip_bullet(line: str) -> str:
    return _BULLET_RE.sub("", line).strip()


# =============================================================================
# PERSONAL INFO
# =============================================================================


def extract_name(personal_lines: List[str]) -> str:
    """Name from the first lines of the CV, or a "Name:" label."""
    for line in personal_lines[:3]:
        candidate = line.strip()
        if candidate.isupper():
            candidate = candidate.title()
        match = _NAME_RE.match(candidate)
        if match and len(line) < 50:
            return match.group(1)

    match = _NAME_LABEL_RE.search("\n".join(personal_lines))
    return match.group(1).strip() if match else ""


def extract_email(text: str) -> str:
    match = _EMAIL_RE.search(text)
    return match.group(0) if match else ""


def extract_phone(text: str) -> str:
    for pattern in _PHONE_RES:
        match = pattern.search(text)
        if match:
            return match.group(0).strip()
    return ""


def extract_linkedin(text: str) -> str:
    match = _LINKEDIN_RE.search(text)
    return match.group(0) if match else ""


def extract_portfolio(text: str) -> str:
    """First URL that is not a social profile or part of an email address."""
    without_emails = _EMAIL_RE.sub(" ", text)
    for match in _URL_RE.finditer(without_emails):
        url = match.group(0)
        if not any(domain in url.lower() for domain in SOCIAL_DOMAINS):
            return url
    return ""


def extract_location(text: str) -> str:
    """Labelled location ("Location: Berlin", "based in Lisbon") or a well-known place."""
    for pattern in _LOCATION_RES:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()

    for location in COMMON_LOCATIONS:
        if keyword_pattern(location).search(text):
            return location
    return ""


def extract_personal_info(text: str, sections: Dict[str, List[str]]) -> Dict[str, str]:
    return {
        "full_name": extract_name(sections["personal"]),
        "email": extract_email(text),
        "phone": extract_phone(text),
        "location": extract_location(text),
        "linkedin": extract_linkedin(text),
        "portfolio": extract_portfolio(text),
    }


# =============================================================================
# SUMMARY AND SKILLS
# =============================================================================


def extract_summary(text: str, sections: Dict[str, List[str]]) -> str:
    """Summary section, else the first long line that is not contact details."""
    if sections["summary"]:
        return " ".join(sections["summary"])[:MAX_SUMMARY_CHARS]

    for line in text.split("\n"):
        if len(line) > 20 and not _EMAIL_RE.search(line) and not _PHONE_RES[0].search(line):
            return line[:MAX_FALLBACK_SUMMARY_CHARS]
    return ""


def skills_from_lines(lines: List[str]) -> List[str]:
    """Split skill section lines on , ; | and sentence breaks."""
    skills = []
    for line in lines:
        for part in _SKILL_SPLIT_RE.split(_strip_bullet(line)):
            skill = _strip_bullet(part)
            if 2 < len(skill) < 50 and not skill.isdigit():
                skills.append(skill)
    return skills


def skills_from_text(text: str) -> List[str]:
    """Known technical and business skills mentioned anywhere in the text."""
    return [
        skill
        for skill in TECHNICAL_SKILLS + BUSINESS_SKILLS
        if keyword_pattern(skill).search(text)
    ]


def extract_skills(text: str, sections: Dict[str, List[str]]) -> List[str]:
    skills = skills_from_lines(sections["skills"])
    if len(skills) < MIN_SECTION_SKILLS:
        skills += skills_from_text(text)
    return _unique(skills)[:MAX_SKILLS]


# =============================================================================
# EXPERIENCE AND EDUCATION
# =============================================================================


def parse_experience_section(lines: List[str]) -> List[Dict]:
    """
    Parse experience lines into entries.

    A "Title at Company (Duration)" line opens an entry; bullet lines become
    achievements; a date range line sets a missing duration; the first other
    line is taken as the location.
    """
    experiences = []
    current = None

    for line in lines:
        is_bullet = bool(_BULLET_RE.match(line))

        if not is_bullet and _DATE_RANGE_RE.match(line):
            if current and not current["duration"]:
                current["duration"] = line
            continue

        job = None if is_bullet else _JOB_LINE_RE.match(line)
        if job:
            if current:
                experiences.append(current)
            current = {
                "job_title": job.group("title").strip(),
                "company": job.group("company").strip(),
                "duration": (job.group("duration") or "").strip(),
                "location": "",
                "achievements": [],
            }
        elif current and is_bullet:
            achievement = _strip_bullet(line)
            if achievement:
                current["achievements"].append(achievement)
        elif current and not current["location"]:
            current["location"] = line.strip()

    if current:
        experiences.append(current)
    return experiences[:MAX_EXPERIENCES]


def find_jobs_in_text(text: str) -> List[Dict]:
    """Fallback for CVs without an experience header: "<Title> at <Company>" lines."""
    experiences = []
    for line in text.split("\n"):
        if " at " not in line or not 10 < len(line) < 100:
            continue
        if not any(word in line for word in JOB_TITLE_WORDS):
            continue
        title, company = line.split(" at ", 1)
        experiences.append(
            {
                "job_title": title.strip(),
                "company": company.strip(),
                "duration": "",
                "location": "",
                "achievements": [],
            }
        )
        if len(experiences) >= 3:
            break
    return experiences


def extract_experience(text: str, sections: Dict[str, List[str]]) -> List[Dict]:
    experiences = parse_experience_section(sections["experience"])
    return experiences or find_jobs_in_text(text)


def parse_education_section(lines: List[str]) -> List[Dict]:
    """Parse "Degree, Institution (Year)" lines; bare institution lines are kept too."""
    education = []
    for line in lines:
        line = _strip_bullet(line)
        match = _DEGREE_LINE_RE.match(line)
        if match:
            year = match.group("year") or ""
            if not year:
                found = _YEAR_RE.search(line)
                year = found.group(0) if found else ""
            education.append(
                {
                    "degree": match.group("degree").strip(),
                    "institution": match.group("institution").strip(),
                    "year": year.strip(),
                    "location": "",
                }
            )
        elif _INSTITUTION_RE.search(line) and len(line) > 5:
            found = _YEAR_RE.search(line)
            education.append(
                {
                    "degree": "",
                    "institution": line,
                    "year": found.group(0) if found else "",
                    "location": "",
                }
            )
    return education[:MAX_EDUCATION]


def find_education_in_text(text: str) -> List[Dict]:
    """Fallback for CVs without an education header: lines naming a degree or school."""
    education = []
    for line in text.split("\n"):
        if len(line) <= 10 or not _DEGREE_WORD_RE.search(line):
            continue
        found = _YEAR_RE.search(line)
        education.append(
            {
                "degree": line.split(",")[0].strip(),
                "institution": line,
                "year": found.group(0) if found else "",
                "location": "",
            }
        )
        if len(education) >= 2:
            break
    return education


def extract_education(text: str, sections: Dict[str, List[str]]) -> List[Dict]:
    education = parse_education_section(sections["education"])
    return education or find_education_in_text(text)


# =============================================================================
# LIST SECTIONS
# =============================================================================


def parse_list_section(lines: List[str]) -> List[str]:
    """List items of a section: bullet lines and short lines not ending in '.' or ':'."""
    items = []
    for line in lines:
        item = _strip_bullet(line)
        if 2 < len(item) < 100 and not item.endswith((".", ":")):
            items.append(item)
    return items


def extract_certifications(text: str, sections: Dict[str, List[str]]) -> List[str]:
    certifications = parse_list_section(sections["certifications"])
    for line in text.split("\n"):
        if len(line) > 5 and any(keyword in line for keyword in CERTIFICATION_KEYWORDS):
            if "certif" in line.lower() or line in sections["certifications"]:
                certifications.append(_strip_bullet(line))
    return _unique(certifications)[:MAX_CERTIFICATIONS]


def extract_projects(text: str, sections: Dict[str, List[str]]) -> List[str]:
    projects = parse_list_section(sections["projects"])
    for line in text.split("\n"):
        if len(line) > 10 and any(keyword in line for keyword in PROJECT_KEYWORDS):
            if match_section_header(line) is None:
                projects.append(_strip_bullet(line))
    return _unique(projects)[:MAX_PROJECTS]


def extract_languages(text: str, sections: Dict[str, List[str]]) -> List[str]:
    languages = parse_list_section(sections["languages"])
    languages += [
        language for language in COMMON_LANGUAGES if keyword_pattern(language).search(text)
    ]
    return _unique(languages)[:MAX_LANGUAGES]


# =============================================================================
# ENTRY POINTS
# =============================================================================


def extract_cv_record(text: str) -> Dict:
    """
    Extract a CV record from plain CV text.

    Args:
        text: CV text (one paragraph per line)

    Returns:
        CV record with personal_info, professional_summary, skills, experience,
        education, certifications, projects and languages

    Example:
        record = extract_cv_record(Path("cv.txt").read_text())
        record["personal_info"]["full_name"]  # "Ada Lovelace"
    """
    cleaned = clean_cv_text(text)
    sections = detect_sections(cleaned)
    _log_debug(
        "Sections found: "
        + ", ".join(f"{name}={len(lines)}" for name, lines in sections.items() if lines)
    )

    record = {
        "personal_info": extract_personal_info(cleaned, sections),
        "professional_summary": extract_summary(cleaned, sections),
        "skills": extract_skills(cleaned, sections),
        "experience": extract_experience(cleaned, sections),
        "education": extract_education(cleaned, sections),
        "certifications": extract_certifications(cleaned, sections),
        "projects": extract_projects(cleaned, sections),
        "languages": extract_languages(cleaned, sections),
    }
    _log_info(
        f"Extracted {len(record['skills'])} skills, {len(record['experience'])} positions, "
        f"{len(record['education'])} education entries"
    )
    if not record["personal_info"]["full_name"]:
        _log_warning("No name found in the first lines of the CV")
    return record


def extract_docx_text(data: bytes) -> str:
    """
    Plain text of a .docx CV, one line per paragraph.

    Raises:
        InvalidPackageError, MissingBodyPartError: If the bytes are not a readable .docx
    """
    package = open_package(data)
    root, _ = parse_xml(get_body_text(package), package.body_part)
    return "\n".join(paragraph_text(paragraph) for paragraph in root.iter(BlockTags.P))


def extract_pdf_text(path: Path) -> str:
    """
    Plain text of a PDF CV, pages joined by blank lines.

    Only the text layer is read; scanned pages without one contribute nothing.
    """
    pages = []
    with pdfplumber.open(path) as pdf:
        for page_num, page in enumerate(pdf.pages, start=1):
            page_text = page.extract_text() or ""
            if not page_text.strip():
                _log_debug(f"Page {page_num} of {Path(path).name} has no text layer")
                continue
            pages.append(page_text)
    return "\n\n".join(pages)


def extract_cv_file(path: Path) -> Dict:
    """
    Extract a CV record from a .docx, .pdf or plain-text file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: For unsupported file types
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CV file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".docx":
        text = extract_docx_text(path.read_bytes())
    elif suffix == ".pdf":
        text = extract_pdf_text(path)
    elif suffix in (".txt", ".md", ""):
        text = path.read_text(encoding="utf-8", errors="replace")
    else:
        raise ValueError(f"Unsupported CV file type '{suffix}' (expected .docx, .pdf or .txt)")

    _log_info(f"Read {len(text)} characters from {path.name}")
    if not text.strip():
        _log_warning(f"No text found in {path.name}")
    return extract_cv_record(text)
