"""Pydantic contracts for the extraction pipeline."""

from models.schemas.confidence import ConfidenceField
from models.schemas.resume_parsed import (
    Certification,
    DateRange,
    Education,
    Language,
    ParsedResume,
    PersonalInfo,
    Project,
    Skill,
    WorkExperience,
)

__all__ = [
    "ConfidenceField",
    "Certification",
    "DateRange",
    "Education",
    "Language",
    "ParsedResume",
    "PersonalInfo",
    "Project",
    "Skill",
    "WorkExperience",
]
