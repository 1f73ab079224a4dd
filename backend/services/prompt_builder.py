"""Prompt templates and builders for the extraction oracle.

Templates are plain immutable data keyed by operation (``extract``,
``validate``, ``confidence``) plus the retry task and per-call system
instructions. ``DEFAULT_TEMPLATES`` is created once at import time and
injected into the orchestrator; tests can inject their own.
"""

import json
from dataclasses import dataclass
from typing import Any

CONFIDENCE_SCALE = """Confidence scores range from 0 to 1, where:
   - 0.9-1.0: Very high confidence (clear, unambiguous data)
   - 0.7-0.9: High confidence (likely correct, but could have minor issues)
   - 0.5-0.7: Medium confidence (possibly correct, but some uncertainty)
   - 0.3-0.5: Low confidence (significant uncertainty)
   - 0.0-0.3: Very low confidence (likely incorrect or missing data)"""

EXTRACT_TEMPLATE = f"""Extract structured data from the following resume with HIGH PRECISION.

IMPORTANT GUIDELINES:
1. {CONFIDENCE_SCALE}

2. Standardization notes should be provided whenever you transform or normalize the data, such as:
   - Converting abbreviations to full forms (e.g., "BS" -> "Bachelor of Science")
   - Normalizing job titles (e.g., "Dev" -> "Developer")
   - Standardizing technology names (e.g., "JS" -> "JavaScript")
   - Date format standardization
   - If no standardization was performed, use null

3. For missing or unavailable data:
   - Use null for string fields that are missing
   - Use empty array [] for array fields that are missing
   - Use 0 as the confidence score for missing fields
   - Add the field path to missingFields array (e.g., "personalInfo.website")

4. For dates:
   - Use ISO format (YYYY-MM) whenever possible
   - Mark current positions with current: true and null endDate
   - Calculate durationInMonths when possible

5. For skills:
   - Infer categories when possible (e.g., "Programming Languages", "Tools", "Frameworks")
   - Infer proficiency when mentioned ("Beginner", "Intermediate", "Advanced", "Expert")
   - Detect years of experience when mentioned

6. For work experience:
   - Extract technologies used in each role when mentioned
   - Separate responsibilities from achievements when possible
   - Standardize job titles to industry norms

7. DO NOT fabricate or assume information not present in the resume. If information is missing, use null with a confidence score of 0.

8. The overallConfidence score should be a weighted average of all fields, giving more weight to critical fields like name, contact info, work experience, and education.

9. The detectedSections array should list all major sections found in the resume (e.g., personal_information, skills, experience, education, etc.)."""

VALIDATE_TEMPLATE = """Validate the following resume data for consistency, accuracy, and standardization.

For each field in the data:
1. Check for inconsistencies and validate format
2. Standardize terminology where appropriate:
   - Degree names (e.g., "BS" -> "Bachelor of Science", "MS" -> "Master of Science")
   - Job titles (e.g., "SWE" -> "Software Engineer", "PM" -> "Product Manager")
   - Technology names (e.g., "JS" -> "JavaScript", "TS" -> "TypeScript")
   - Institution names (e.g., "NYU" -> "New York University")
3. Validate dates:
   - Ensure date ranges are logical (start before end)
   - Verify that duration calculations are accurate
   - Check for overlapping or inconsistent date ranges
4. Look for contradictions:
   - Skills mentioned in work experience but not in skills section
   - Technologies that don't match the responsibilities
   - Date inconsistencies between sections
5. Update confidence scores:
   - Increase confidence for validated fields
   - Decrease confidence for fields with detected issues
   - Add standardization notes when changes are made

Return the validated and standardized data in the exact same format, including:
- All confidence scores updated based on validation
- Standardization notes added for any changes made
- Overall confidence score recalculated
- Missing fields list updated if additional missing fields are found

If you detect serious inconsistencies or potential fabrications, mark those fields with lower confidence scores and add appropriate standardization notes."""

CONFIDENCE_TEMPLATE = f"""Confidence scoring criteria by field type:

1. Personal Information:
   - Name: Check for full name vs. partial, common formats
   - Email: Validate format, check for standard patterns
   - Phone: Validate format, check country code presence
   - Location: Check for specificity (city/state/country)
   - Social/Web: Validate URL formats and completeness

2. Skills:
   - Compare against known technology/skill names
   - Check for specificity (general vs. specific skills)
   - Look for proficiency indicators
   - Consider consistency with work experience

3. Work Experience:
   - Validate company names against known entities
   - Check job title standardization
   - Verify date formats and calculations
   - Evaluate responsibility descriptions (specific vs. vague)
   - Look for quantifiable achievements

4. Education:
   - Validate institution names
   - Check degree nomenclature standardization
   - Verify field of study specificity
   - Validate date formats and ranges
   - Check GPA format and range

5. Projects & Certifications:
   - Evaluate description specificity
   - Check URL validity
   - Verify technology consistency with skills
   - Validate certification issuers

{CONFIDENCE_SCALE}

For any field where confidence is below 0.7, include specific reasons in the standardization notes."""

RETRY_TEMPLATE = """A previous extraction of this resume came back incomplete or with low confidence.

Re-extract the resume, focusing on these gaps:
{gaps}

Rules:
- Keep every value from the previous attempt that is already correct, with its confidence.
- Fill the gaps only with information actually present in the resume text.
- If a gap really is absent from the resume, keep it null/empty with confidence 0.
- Return the complete record, not just the changed fields."""

EXTRACT_SYSTEM = """You are a precise resume parser that extracts structured data from resumes.
Always return valid JSON with confidence scores for each field.
If you're unsure about a field, provide a lower confidence score rather than making assumptions.
Standardize terminology where possible and indicate when standardization occurs."""

VALIDATE_SYSTEM = """You are a precise resume data validator. You check for inconsistencies,
standardize terminology, and ensure data quality. Always return valid JSON with updated confidence scores."""


@dataclass(frozen=True)
class PromptTemplates:
    extract: str = EXTRACT_TEMPLATE
    validate: str = VALIDATE_TEMPLATE
    confidence: str = CONFIDENCE_TEMPLATE
    retry: str = RETRY_TEMPLATE
    extract_system: str = EXTRACT_SYSTEM
    validate_system: str = VALIDATE_SYSTEM

    def for_operation(self, operation: str) -> str:
        if operation not in ("extract", "validate", "confidence", "retry"):
            raise KeyError(f"Unknown prompt operation: {operation}")
        return getattr(self, operation)


DEFAULT_TEMPLATES = PromptTemplates()


def _option_notes(
    extract_summary: bool = True,
    extract_languages: bool = True,
    section_priorities: list[str] | None = None,
) -> str:
    notes = []
    if section_priorities:
        notes.append(
            "Prioritize these sections and extract them with extra care: "
            + ", ".join(section_priorities)
        )
    if not extract_summary:
        notes.append("Do not extract a summary: set personalInfo.summary to null with confidence 0.")
    if not extract_languages:
        notes.append("Do not extract spoken languages: return an empty languages array.")
    if not notes:
        return ""
    return "\n\nADDITIONAL INSTRUCTIONS:\n" + "\n".join(f"- {n}" for n in notes)


def build_extract_prompt(
    resume_text: str,
    templates: PromptTemplates = DEFAULT_TEMPLATES,
    **options: Any,
) -> str:
    """Initial extraction: instructions, option notes, then the resume."""
    return f"""{templates.for_operation("extract")}{_option_notes(**options)}

Resume:
---
{resume_text}
---"""


def build_retry_prompt(
    resume_text: str,
    previous: dict[str, Any],
    gaps: list[str],
    contact_hints: dict[str, str | None] | None = None,
    templates: PromptTemplates = DEFAULT_TEMPLATES,
    **options: Any,
) -> str:
    """Gap-filling retry: previous attempt plus what it missed.

    Includes regex contact hints as a reference for the oracle to check
    against, not as final values.
    """
    gap_lines = "\n".join(f"- {gap}" for gap in gaps) or "- overall confidence is low"
    hints = {k: v for k, v in (contact_hints or {}).items() if v}
    hint_section = ""
    if hints:
        hint_section = (
            "\n\nLOCAL PRE-SCAN (use as a reference, verify against the resume):\n"
            + "\n".join(f"- {k}: {v}" for k, v in hints.items())
        )

    retry = templates.for_operation("retry").format(gaps=gap_lines)
    return f"""{templates.for_operation("extract")}{_option_notes(**options)}

{retry}{hint_section}

PREVIOUS ATTEMPT:
---
{json.dumps(previous, ensure_ascii=False)}
---

Resume:
---
{resume_text}
---"""


def build_standardize_prompt(
    data: dict[str, Any],
    templates: PromptTemplates = DEFAULT_TEMPLATES,
) -> str:
    """Standardization pass: validate terminology and rescore confidences."""
    return f"""{templates.for_operation("validate")}

{templates.for_operation("confidence")}

Data:
{json.dumps(data, ensure_ascii=False)}"""
