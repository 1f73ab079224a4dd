from pydantic import Field

from config import settings
from models.schemas.confidence import CamelModel


class ParserOptions(CamelModel):
    confidence_threshold: float = Field(
        settings.default_confidence_threshold, ge=0.0, le=1.0,
        description="Minimum confidence score threshold (0-1)",
    )
    standardization_enabled: bool = Field(True, description="Whether to standardize terminology")
    extract_summary: bool = Field(True, description="Whether to extract the resume summary")
    extract_languages: bool = Field(True, description="Whether to extract language proficiencies")
    section_priorities: list[str] = Field(
        default_factory=list,
        description="Sections to prioritize in extraction",
        examples=[["skills", "workExperience"]],
    )


class ParseResumeRequest(CamelModel):
    resume_text: str = Field(
        ..., min_length=1, max_length=settings.max_resume_length,
        description="The raw text of the resume to parse",
    )
    options: ParserOptions = Field(default_factory=ParserOptions)
