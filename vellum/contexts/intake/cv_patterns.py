"""
Pattern matching for CV section detection and field extraction.

Pattern classes follow the convention from templating/directive_patterns.py:
- Dataclasses with frozen=True for immutability
- Class-level constants for patterns
- Helper functions that use these patterns
"""

import re
from dataclasses import dataclass
from typing import Optional

# =============================================================================
# SECTION HEADERS
# =============================================================================


@dataclass(frozen=True)
class SectionHeaderPatterns:
    """
    Header lines that open a CV section.

    A header is a short line made only of the header phrase (an optional
    trailing colon is allowed), so "Experienced engineer..." is not a header.
    """

    SUMMARY: str = r"(?:professional summary|summary|objective|about me|profile)"
    EXPERIENCE: str = r"(?:work experience|professional experience|experience|employment(?: history)?|work history)"
    EDUCATION: str = r"(?:education|academic background|academics?|qualifications)"
    SKILLS: str = r"(?:technical skills|skills|core competencies|competencies)"
    CERTIFICATIONS: str = r"(?:certifications|certificates|licenses)"
    PROJECTS: str = r"(?:projects|portfolio)"
    LANGUAGES: str = r"(?:language skills|languages)"

    # Any other all-caps line ends the current section ("REFERENCES", "HOBBIES")
    OTHER_HEADER: str = r"^[A-Z][A-Z &/]{3,}:?$"


SECTION_NAMES = ("summary", "experience", "education", "skills", "certifications", "projects", "languages")

_HEADER_RES = {
    name: re.compile(rf"^{getattr(SectionHeaderPatterns, name.upper())}\s*:?\s*$", re.IGNORECASE)
    for name in SECTION_NAMES
}
_OTHER_HEADER_RE = re.compile(SectionHeaderPatterns.OTHER_HEADER)


def match_section_header(line: str) -> Optional[str]:
    """
    Identify a section header line.

    Returns:
        Section name, "other" for an unknown all-caps header, or None for
        ordinary content

    Examples:
        match_section_header("WORK EXPERIENCE")  # "experience"
        match_section_header("Skills:")          # "skills"
        match_section_header("HOBBIES")          # "other"
        match_section_header("Built a compiler") # None
    """
    stripped = line.strip()
    for name, pattern in _HEADER_RES.items():
        if pattern.match(stripped):
            return name
    if _OTHER_HEADER_RE.match(stripped):
        return "other"
    return None


# =============================================================================
# CONTACT DETAILS
# =============================================================================


@dataclass(frozen=True)
class ContactPatterns:
    """Contact detail patterns searched across the whole CV."""

    EMAIL: str = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"
    PHONE: tuple = (
        r"(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}",
        # International formats
        r"(?:\+?\d{1,3}[-.\s]?)?\(?\d{2}\)?[-.\s]?\d{4}[-.\s]?\d{4}",
    )
    LINKEDIN: str = r"(?:https?://)?(?:www\.)?linkedin\.com/(?:in|company|pub)/[a-zA-Z0-9-]+"
    URL: str = r"(?:https?://)?(?:www\.)?[a-zA-Z0-9-]+(?:\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}(?:/[^\s]*)?"
    LOCATION_LABEL: tuple = (
        r"(?:location|address|city)\s*:\s*([^\n,]+)",
        r"(?:located in|based in)\s+([^\n,.]+)",
    )
    # Name with an optional honorific, 2-4 capitalized words
    NAME: str = r"^(?:(?:Dr|Mr|Ms|Mrs)\.\s*)?([A-Z][a-z]+(?:[ '-][A-Z][a-z]+){1,3})$"
    NAME_LABEL: str = r"(?:full name|name)\s*:\s*([^\n]+)"


# Domains that are never a portfolio
SOCIAL_DOMAINS = ("linkedin", "facebook", "twitter", "instagram")

COMMON_LOCATIONS = (
    "New York", "London", "San Francisco", "Bangalore", "Berlin", "Toronto",
    "Sydney", "Singapore", "Remote", "United States", "United Kingdom", "UK",
    "India", "Canada", "Australia", "Germany", "France", "Japan", "China",
)


# =============================================================================
# SECTION ENTRIES
# =============================================================================


@dataclass(frozen=True)
class EntryPatterns:
    """Patterns for lines inside experience, education and list sections."""

    BULLET: str = r"^\s*[-•*·▪]\s*"
    # "Engineer at Acme (2019 - 2022)", "Engineer @ Acme", "Engineer - Acme"
    JOB_LINE: str = r"^(?P<title>.+?)\s+(?:at|@|-|–)\s+(?P<company>.+?)(?:\s+\((?P<duration>[^()]+)\))?$"
    # "Jan 2019 - Present", "2018 to 2021" on a line of its own
    DATE_RANGE: str = r"^(?:\w+\.?\s+)?\d{4}\s*(?:-|–|to)\s*(?:(?:\w+\.?\s+)?\d{4}|present|current)$"
    # "BSc Computer Science, MIT (2015)", "MSc - Oxford", "PhD at ETH (2020)"
    DEGREE_LINE: str = r"^(?P<degree>.+?)(?:\s+-\s+|\s+at\s+|\s*,\s+)(?P<institution>.+?)(?:\s+\((?P<year>[^()]+)\))?$"
    INSTITUTION_WORD: str = r"\b(?:University|College|Institute|School|Academy)\b"
    DEGREE_WORD: str = r"\b(?:University|College|Bachelor|Master|PhD|B\.Sc|M\.Sc|BSc|MSc|MBA)\b"
    YEAR: str = r"(?:19|20)\d{2}"
    SKILL_SEPARATORS: str = r"[,;|]|\.\s+"


JOB_TITLE_WORDS = (
    "Developer", "Engineer", "Manager", "Analyst", "Designer", "Architect",
    "Consultant", "Specialist", "Coordinator", "Director", "Lead", "Head",
)

CERTIFICATION_KEYWORDS = ("AWS", "Google", "Microsoft", "Certified", "Scrum", "Agile", "PMP")

PROJECT_KEYWORDS = ("Project", "GitHub", "Portfolio")

COMMON_LANGUAGES = ("English", "Spanish", "French", "German", "Hindi", "Chinese", "Japanese")

TECHNICAL_SKILLS = (
    # Programming languages
    "JavaScript", "Python", "Java", "C++", "C#", "Ruby", "Go", "Rust", "Swift", "Kotlin",
    "TypeScript", "PHP", "Perl", "Scala", "R", "MATLAB",
    # Web
    "React", "Angular", "Vue.js", "Node.js", "Express", "Django", "Flask", "Spring",
    "HTML", "CSS", "SASS", "LESS", "Bootstrap", "jQuery",
    # Databases
    "SQL", "MySQL", "PostgreSQL", "MongoDB", "Redis", "Oracle", "SQLite", "Cassandra",
    # Cloud & DevOps
    "AWS", "Azure", "Google Cloud", "Docker", "Kubernetes", "Jenkins", "Git", "CI/CD",
    "Terraform", "Ansible", "Linux", "Unix",
    # Mobile
    "React Native", "Flutter", "Android", "iOS", "Xamarin",
    # Data
    "Machine Learning", "Data Analysis", "TensorFlow", "PyTorch", "Pandas", "NumPy",
    "Tableau", "Power BI", "Apache Spark", "Hadoop",
)

BUSINESS_SKILLS = (
    "Project Management", "Agile", "Scrum", "Kanban", "Team Leadership",
    "Problem Solving", "Communication", "Analytical Thinking", "Strategic Planning",
    "Product Management", "Business Analysis", "Stakeholder Management",
)


def keyword_pattern(keyword: str) -> "re.Pattern":
    """
    Whole-word pattern for a skill keyword.

    Keywords of one or two letters ("R", "Go") match case-sensitively so
    ordinary words are not mistaken for them.
    """
    flags = 0 if len(keyword) <= 2 else re.IGNORECASE
    return re.compile(rf"(?<![A-Za-z0-9]){re.escape(keyword)}(?![A-Za-z0-9])", flags)
