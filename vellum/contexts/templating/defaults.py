"""
Default values for VELLUM CV records.

Provides the sample record used when a caller asks for a fallback binding
context (e.g., `render_cv.py render --sample-fallback` after extraction
produced nothing). The engine never substitutes it on its own.
"""

import copy
from typing import Any, Dict

DEFAULT_SKILLS = [
    "JavaScript",
    "React",
    "Node.js",
    "Python",
    "SQL",
    "Git",
    "HTML",
    "CSS",
    "AWS",
    "Project Management",
    "Problem Solving",
]

DEFAULT_EXPERIENCE = [
    {
        "job_title": "Professional Role",
        "company": "Company Name",
        "duration": "Duration not specified",
        "location": "City, Country",
        "achievements": [
            "Responsible for key deliverables and project objectives",
            "Collaborated with cross-functional teams",
            "Achieved measurable results and improvements",
        ],
    }
]

DEFAULT_EDUCATION = [
    {
        "degree": "Bachelor's Degree in Relevant Field",
        "institution": "University Name",
        "year": "Year",
        "location": "City, Country",
    }
]

SAMPLE_CV_RECORD = {
    "personal_info": {
        "full_name": "Professional Candidate",
        "email": "email@example.com",
        "phone": "+1 (555) 123-4567",
        "location": "City, Country",
        "linkedin": "",
        "portfolio": "",
    },
    "professional_summary": (
        "Experienced professional with demonstrated skills and achievements. "
        "Strong analytical and problem-solving capabilities with excellent "
        "communication skills."
    ),
    "skills": DEFAULT_SKILLS,
    "experience": DEFAULT_EXPERIENCE,
    "education": DEFAULT_EDUCATION,
    "certifications": [],
    "projects": [],
    "languages": ["English"],
}


def sample_cv_record() -> Dict[str, Any]:
    """
    Get a complete sample CV record.

    Returns a deep copy, so callers can modify it freely.
    """
    return copy.deepcopy(SAMPLE_CV_RECORD)
