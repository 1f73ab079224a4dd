"""Structured, confidence-scored resume record returned by the pipeline."""

from typing import Optional

from pydantic import Field

from models.schemas.confidence import CamelModel, ConfidenceField, ScoredText


def _text(value: str = ""):
    return Field(default_factory=lambda: ConfidenceField[str](value=value))


def _maybe_text():
    return Field(default_factory=lambda: ConfidenceField[Optional[str]](value=None))


def _scored_text():
    return Field(default_factory=lambda: ConfidenceField[ScoredText](value=""))


def _text_list():
    return Field(default_factory=lambda: ConfidenceField[list[str]](value=[]))


def _maybe_text_list():
    return Field(default_factory=lambda: ConfidenceField[Optional[list[str]]](value=None))


class PersonalInfo(CamelModel):
    name: ConfidenceField[str] = _text()
    email: ConfidenceField[str] = _text()
    phone: ConfidenceField[str] = _text()
    location: ConfidenceField[Optional[str]] = _maybe_text()
    linkedin: ConfidenceField[Optional[str]] = _maybe_text()
    github: ConfidenceField[Optional[str]] = _maybe_text()
    website: ConfidenceField[Optional[str]] = _maybe_text()
    summary: ConfidenceField[Optional[str]] = _maybe_text()


class Skill(CamelModel):
    name: ConfidenceField[ScoredText] = _scored_text()
    category: ConfidenceField[Optional[str]] = _maybe_text()
    proficiency: ConfidenceField[Optional[str]] = _maybe_text()
    years_of_experience: ConfidenceField[Optional[float]] = Field(
        default_factory=lambda: ConfidenceField[Optional[float]](value=None)
    )


class DateRange(CamelModel):
    """Start/end of a period. ``current`` true means the end is still open."""

    start_date: ConfidenceField[Optional[str]] = _maybe_text()
    end_date: ConfidenceField[Optional[str]] = _maybe_text()
    duration_in_months: ConfidenceField[Optional[int]] = Field(
        default_factory=lambda: ConfidenceField[Optional[int]](value=None)
    )
    current: ConfidenceField[bool] = Field(
        default_factory=lambda: ConfidenceField[bool](value=False)
    )


class WorkExperience(CamelModel):
    company: ConfidenceField[str] = _text()
    title: ConfidenceField[str] = _text()
    location: ConfidenceField[Optional[str]] = _maybe_text()
    dates: DateRange = Field(default_factory=DateRange)
    responsibilities: ConfidenceField[list[str]] = _text_list()
    technologies: ConfidenceField[list[str]] = _text_list()
    achievements: ConfidenceField[list[str]] = _text_list()


class Education(CamelModel):
    institution: ConfidenceField[str] = _text()
    degree: ConfidenceField[ScoredText] = _scored_text()
    field: ConfidenceField[ScoredText] = _scored_text()
    dates: DateRange = Field(default_factory=DateRange)
    gpa: ConfidenceField[Optional[str]] = _maybe_text()
    coursework: ConfidenceField[Optional[list[str]]] = _maybe_text_list()
    achievements: ConfidenceField[Optional[list[str]]] = _maybe_text_list()


class Project(CamelModel):
    name: ConfidenceField[str] = _text()
    description: ConfidenceField[str] = _text()
    technologies: ConfidenceField[list[str]] = _text_list()
    urls: ConfidenceField[Optional[list[str]]] = _maybe_text_list()
    dates: ConfidenceField[Optional[DateRange]] = Field(
        default_factory=lambda: ConfidenceField[Optional[DateRange]](value=None)
    )
    role: ConfidenceField[Optional[str]] = _maybe_text()


class Certification(CamelModel):
    name: ConfidenceField[str] = _text()
    issuer: ConfidenceField[Optional[str]] = _maybe_text()
    date: ConfidenceField[Optional[str]] = _maybe_text()
    expiry_date: ConfidenceField[Optional[str]] = _maybe_text()
    id: ConfidenceField[Optional[str]] = _maybe_text()


class Language(CamelModel):
    name: ConfidenceField[str] = _text()
    proficiency: ConfidenceField[Optional[str]] = _maybe_text()


class ParsedResume(CamelModel):
    """Top-level extraction result.

    Every leaf scalar in every sub-entity is a ConfidenceField; the three
    trailing fields are recomputed by the aggregator.
    """

    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    skills: list[Skill] = []
    work_experience: list[WorkExperience] = []
    education: list[Education] = []
    projects: list[Project] = []
    certifications: list[Certification] = []
    languages: list[Language] = []
    overall_confidence: float = Field(0.0, ge=0.0, le=1.0)
    missing_fields: list[str] = []
    detected_sections: list[str] = []
