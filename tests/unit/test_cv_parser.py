"""Unit tests for local CV extraction."""

import pytest

from vellum.contexts.intake.cv_parser import (
    MAX_EXPERIENCES,
    MAX_SKILLS,
    clean_cv_text,
    detect_sections,
    extract_cv_file,
    extract_cv_record,
    extract_docx_text,
    extract_pdf_text,
    parse_education_section,
    parse_experience_section,
)
from vellum.contexts.intake.cv_patterns import match_section_header

SAMPLE_CV = """ADA LOVELACE
ada@example.com | +1 555 123 4567
Location: London
https://linkedin.com/in/ada-lovelace
https://ada.dev

SUMMARY
Mathematician turned software engineer with a passion for analytical engines.

EXPERIENCE
Senior Engineer at Analytical Engines Ltd (2019 - Present)
London, UK
- Designed the first published algorithm
- Led a team of four
Analyst at Babbage & Co
2016 - 2019
• Automated difference tables

EDUCATION
BSc Mathematics, University of London (2015)

SKILLS
Python, Rust, Docker; SQL | Machine Learning

LANGUAGES
English
French

HOBBIES
Chess
"""


@pytest.fixture
def record():
    return extract_cv_record(SAMPLE_CV)


@pytest.mark.unit
@pytest.mark.parametrize(
    "line,expected",
    [
        ("WORK EXPERIENCE", "experience"),
        ("Skills:", "skills"),
        ("Professional Summary", "summary"),
        ("HOBBIES", "other"),
        ("Experienced engineer who ships", None),
        ("Built a compiler", None),
    ],
)
def test_match_section_header(line, expected):
    assert match_section_header(line) == expected


@pytest.mark.unit
def test_clean_cv_text():
    assert clean_cv_text("a\r\n\r\n  b\t\tc  \rd") == "a\nb c\nd"


@pytest.mark.unit
def test_detect_sections_keeps_caps_name_in_personal():
    sections = detect_sections(clean_cv_text(SAMPLE_CV))

    assert sections["personal"][0] == "ADA LOVELACE"
    assert sections["skills"] == ["Python, Rust, Docker; SQL | Machine Learning"]
    assert "Chess" not in sum(sections.values(), [])


@pytest.mark.unit
def test_personal_info(record):
    personal = record["personal_info"]

    assert personal["full_name"] == "Ada Lovelace"
    assert personal["email"] == "ada@example.com"
    assert personal["phone"] == "+1 555 123 4567"
    assert personal["location"] == "London"
    assert personal["linkedin"] == "https://linkedin.com/in/ada-lovelace"
    assert personal["portfolio"] == "https://ada.dev"


@pytest.mark.unit
def test_summary_and_skills(record):
    assert record["professional_summary"].startswith("Mathematician turned software engineer")
    assert record["skills"] == ["Python", "Rust", "Docker", "SQL", "Machine Learning"]


@pytest.mark.unit
def test_experience_entries(record):
    first, second = record["experience"]

    assert first["job_title"] == "Senior Engineer"
    assert first["company"] == "Analytical Engines Ltd"
    assert first["duration"] == "2019 - Present"
    assert first["location"] == "London, UK"
    assert first["achievements"] == ["Designed the first published algorithm", "Led a team of four"]

    assert second["job_title"] == "Analyst"
    assert second["company"] == "Babbage & Co"
    assert second["duration"] == "2016 - 2019"
    assert second["achievements"] == ["Automated difference tables"]


@pytest.mark.unit
def test_education_and_languages(record):
    assert record["education"] == [
        {
            "degree": "BSc Mathematics",
            "institution": "University of London",
            "year": "2015",
            "location": "",
        }
    ]
    assert record["languages"] == ["English", "French"]
    assert record["certifications"] == []
    assert record["projects"] == []


@pytest.mark.unit
def test_cv_without_headers_uses_text_scans():
    text = (
        "John Smith\n"
        "Software Engineer at Google\n"
        "Experienced developer skilled in Python, Docker and AWS.\n"
        "Bachelor of Science, Stanford University 2014\n"
    )

    record = extract_cv_record(text)

    assert record["personal_info"]["full_name"] == "John Smith"
    assert record["experience"][0]["job_title"] == "Software Engineer"
    assert record["experience"][0]["company"] == "Google"
    assert set(record["skills"]) == {"Python", "Docker", "AWS"}
    assert record["education"][0]["year"] == "2014"


@pytest.mark.unit
def test_empty_text_yields_empty_record():
    """Test that nothing is made up when the CV has no content."""
    record = extract_cv_record("")

    assert record["personal_info"] == {
        "full_name": "",
        "email": "",
        "phone": "",
        "location": "",
        "linkedin": "",
        "portfolio": "",
    }
    assert record["professional_summary"] == ""
    for section in ("skills", "experience", "education", "certifications", "projects", "languages"):
        assert record[section] == []


@pytest.mark.unit
def test_experience_is_capped():
    lines = [f"Engineer at Company{number}" for number in range(MAX_EXPERIENCES + 3)]

    assert len(parse_experience_section(lines)) == MAX_EXPERIENCES


@pytest.mark.unit
def test_skills_are_capped_and_deduplicated():
    text = "SKILLS\nPython, python\n" + "Used " + ", ".join(
        ["JavaScript", "Java", "Ruby", "Swift", "Kotlin", "TypeScript", "PHP", "Scala",
         "React", "Angular", "Django", "Flask", "HTML", "CSS", "SQL", "Redis"]
    )

    skills = extract_cv_record(text)["skills"]

    assert len(skills) == MAX_SKILLS
    assert [skill.lower() for skill in skills].count("python") == 1


@pytest.mark.unit
def test_education_institution_only_line():
    assert parse_education_section(["Imperial College 2012"]) == [
        {"degree": "", "institution": "Imperial College 2012", "year": "2012", "location": ""}
    ]


@pytest.mark.unit
def test_certifications_from_section_and_keywords():
    text = "CERTIFICATIONS\nAWS Certified Solutions Architect\nCertified Scrum Master\n"

    record = extract_cv_record(text)

    assert record["certifications"] == [
        "AWS Certified Solutions Architect",
        "Certified Scrum Master",
    ]


@pytest.mark.unit
def test_extract_docx_text(make_docx, wml):
    data = make_docx(
        wml.text("Ada Lovelace"),
        wml.paragraph(wml.run("SKI", bold=True), wml.run("LLS")),
        wml.text("Python, Rust"),
    )

    assert extract_docx_text(data) == "Ada Lovelace\nSKILLS\nPython, Rust"


@pytest.mark.unit
def test_extract_cv_file_txt(tmp_path):
    cv_path = tmp_path / "cv.txt"
    cv_path.write_text(SAMPLE_CV, encoding="utf-8")

    assert extract_cv_file(cv_path)["personal_info"]["email"] == "ada@example.com"


@pytest.mark.unit
def test_extract_cv_file_docx(tmp_path, make_docx, wml):
    cv_path = tmp_path / "cv.docx"
    cv_path.write_bytes(make_docx(wml.text("Grace Hopper"), wml.text("grace@navy.mil")))

    personal = extract_cv_file(cv_path)["personal_info"]

    assert personal["full_name"] == "Grace Hopper"
    assert personal["email"] == "grace@navy.mil"


@pytest.mark.unit
def test_extract_cv_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        extract_cv_file(tmp_path / "missing.txt")

    odt = tmp_path / "cv.odt"
    odt.write_bytes(b"PK")
    with pytest.raises(ValueError):
        extract_cv_file(odt)


def _pdf_with_lines(*lines: str) -> bytes:
    """Single-page PDF drawing each line in Helvetica, top to bottom."""
    content = "BT /F1 12 Tf 72 720 Td 14 TL " + " ".join(f"({line}) Tj T*" for line in lines) + " ET"
    objects = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        "<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        "/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>",
        f"<< /Length {len(content)} >>\nstream\n{content}\nendstream",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    body = b"%PDF-1.4\n"
    offsets = []
    for number, obj in enumerate(objects, start=1):
        offsets.append(len(body))
        body += f"{number} 0 obj\n{obj}\nendobj\n".encode("latin-1")

    xref = len(body)
    body += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("latin-1")
    for offset in offsets:
        body += f"{offset:010d} 00000 n \n".encode("latin-1")
    body += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref}\n%%EOF\n".encode(
        "latin-1"
    )
    return body


@pytest.mark.unit
def test_extract_pdf_text(tmp_path):
    pdf = tmp_path / "cv.pdf"
    pdf.write_bytes(_pdf_with_lines("Grace Hopper", "grace@navy.mil"))

    lines = [line.strip() for line in extract_pdf_text(pdf).splitlines()]

    assert lines == ["Grace Hopper", "grace@navy.mil"]


@pytest.mark.unit
def test_extract_cv_file_pdf(tmp_path):
    pdf = tmp_path / "cv.pdf"
    pdf.write_bytes(_pdf_with_lines("Grace Hopper", "grace@navy.mil", "SKILLS", "COBOL, Python"))

    record = extract_cv_file(pdf)

    assert record["personal_info"]["full_name"] == "Grace Hopper"
    assert record["personal_info"]["email"] == "grace@navy.mil"
    assert "Python" in record["skills"]
