"""Unit tests for computed placeholders."""

import pytest

from vellum.contexts.templating.computed_fields import (
    COMPUTED_FIELDS,
    all_education,
    all_experiences,
    bulleted_achievements,
    experience_summary,
    experience_years,
    skills_by_category,
)
from vellum.contexts.templating.registries import SkillTaxonomy

TAXONOMY = SkillTaxonomy(
    name="test",
    categories=(
        ("Programming Languages", ("Python", "Go", "C++")),
        ("Cloud & DevOps", ("Docker", "AWS")),
    ),
)

EXPERIENCES = [
    {
        "job_title": "Analyst",
        "company": "Acme",
        "duration": "2018 - 2021",
        "job_location": "Berlin",
        "achievements": ["Built reports", "Cut costs"],
    },
    {
        "job_title": "Engineer",
        "company": "Initech",
        "duration": "Jan2021 - Present",
        "achievements": [],
    },
]


@pytest.mark.unit
def test_all_experiences_layout():
    text = all_experiences({"experiences": EXPERIENCES})

    assert text == (
        "Analyst at Acme (2018 - 2021) - Berlin\n"
        "  • Built reports\n"
        "  • Cut costs\n"
        "\n"
        "Engineer at Initech (Jan2021 - Present)"
    )


@pytest.mark.unit
def test_all_experiences_empty():
    assert all_experiences({}) == ""
    assert all_experiences({"experiences": []}) == ""


@pytest.mark.unit
def test_all_education_lines():
    education = [
        {"degree": "BSc Maths", "institution": "UCL", "year": "2017", "education_location": "London"},
        {"degree": "", "institution": "Open University", "year": ""},
    ]

    assert all_education({"education": education}) == (
        "BSc Maths, UCL (2017) - London\nOpen University"
    )


@pytest.mark.unit
def test_skills_by_category_groups_in_taxonomy_order():
    scope = {"skills": ["Docker", "Python", "Public speaking", "Go"]}

    assert skills_by_category(scope, TAXONOMY) == (
        "Programming Languages:\n  • Python, Go\n\n"
        "Cloud & DevOps:\n  • Docker\n\n"
        "Other Skills:\n  • Public speaking"
    )


@pytest.mark.unit
def test_skills_by_category_without_skills():
    assert skills_by_category({"skills": []}, TAXONOMY) == ""


@pytest.mark.unit
def test_bulleted_achievements():
    assert bulleted_achievements({"experiences": EXPERIENCES}) == "• Built reports\n• Cut costs"


@pytest.mark.unit
@pytest.mark.parametrize(
    "durations,expected",
    [
        (["2018 - 2021"], 3),
        (["2018 - 2021", "2021 - Present"], 6),
        (["Jan2019 - Dec2020"], 1),
        (["Duration not specified"], 1),
        ([], 1),
    ],
)
def test_experience_years(durations, expected):
    experiences = [{"duration": duration} for duration in durations]

    assert experience_years(experiences, current_year=2024) == expected


@pytest.mark.unit
def test_experience_summary():
    summary = experience_summary({"experiences": EXPERIENCES}, current_year=2024)

    assert summary == "2 positions over 6 years at 2 companies (Acme, Initech)"


@pytest.mark.unit
def test_experience_summary_singular_and_many_companies():
    one = experience_summary({"experiences": [{"company": "Acme", "duration": "2020 - 2021"}]})
    many = experience_summary(
        {"experiences": [{"company": name} for name in ("A", "B", "C", "D")]}
    )

    assert one == "1 position over 1 year at 1 company (Acme)"
    assert many == "4 positions over 1 year at 4 companies"


@pytest.mark.unit
def test_experience_summary_empty():
    assert experience_summary({}) == ""


@pytest.mark.unit
def test_computed_catalog():
    assert set(COMPUTED_FIELDS) == {
        "ALL_EXPERIENCES",
        "ALL_EDUCATION",
        "SKILLS_BY_CATEGORY",
        "BULLETED_ACHIEVEMENTS",
        "EXPERIENCE_SUMMARY",
    }
