"""Post-processing: derived durations, overall confidence, missing fields.

Deterministic and oracle-free. ``aggregate`` never raises: if anything goes
wrong it logs an AggregationFailure and hands back the record it was given.

The weights below are tunable heuristics, not calibrated priors.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Union

from exceptions import AggregationFailure
from models.schemas.confidence import ConfidenceField, intrinsic_confidence
from models.schemas.resume_parsed import (
    DateRange,
    Education,
    ParsedResume,
    WorkExperience,
)
from services.section_parser import months_between, parse_year_month

logger = logging.getLogger(__name__)

# Confidence given to a duration computed from dates rather than extracted
DERIVED_DURATION_CONFIDENCE = 0.8

W_PERSONAL_INFO = 1.0
W_SKILL_NAME = 1.0
W_IDENTITY_FIELD = 1.5  # company/title, institution/degree

REQUIRED_CONTACT_FIELDS = ("name", "email", "phone")
# attribute -> reported section name
REQUIRED_SECTIONS = {
    "skills": "skills",
    "work_experience": "workExperience",
    "education": "education",
}


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, ConfidenceField):
        return _is_blank(value.value)
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


# ---------------------------------------------------------------------------
# Duration backfill
# ---------------------------------------------------------------------------


def compute_duration(dates: DateRange, now: datetime | None = None) -> int | None:
    """Whole months covered by ``dates``, or None if the start is unreadable.

    The end is ``endDate`` when it parses and the range is not current,
    otherwise ``now``. Day of month is ignored, so boundary months can be off
    by one.
    """
    now = now or datetime.now()
    start = parse_year_month(dates.start_date.value, now)
    if start is None:
        return None
    end = None
    if not dates.current.value:
        end = parse_year_month(dates.end_date.value, now)
    if end is None:
        end = (now.year, now.month)
    return max(0, months_between(start, end))


def backfill_durations(
    entries: Iterable[Union[WorkExperience, Education]], now: datetime | None = None
) -> int:
    """Fill ``durationInMonths`` where it is missing. Returns how many were filled."""
    filled = 0
    for entry in entries:
        dates = entry.dates
        if dates.duration_in_months.value is not None:
            continue
        months = compute_duration(dates, now)
        if months is None:
            continue
        dates.duration_in_months = ConfidenceField[Optional[int]](
            value=months, confidence=DERIVED_DURATION_CONFIDENCE
        )
        filled += 1
    return filled


# ---------------------------------------------------------------------------
# Overall confidence
# ---------------------------------------------------------------------------


def _weighted_scores(record: ParsedResume) -> list[tuple[float, float]]:
    scores: list[tuple[float, float]] = []
    info = record.personal_info
    for name in type(info).model_fields:
        scores.append((getattr(info, name).confidence, W_PERSONAL_INFO))
    for skill in record.skills:
        scores.append((intrinsic_confidence(skill.name), W_SKILL_NAME))
    for job in record.work_experience:
        scores.append((job.company.confidence, W_IDENTITY_FIELD))
        scores.append((job.title.confidence, W_IDENTITY_FIELD))
    for edu in record.education:
        scores.append((edu.institution.confidence, W_IDENTITY_FIELD))
        scores.append((intrinsic_confidence(edu.degree), W_IDENTITY_FIELD))
    return scores


def compute_overall_confidence(record: ParsedResume) -> float:
    """Weighted mean of the key leaf confidences, rounded to 2 decimals."""
    scores = _weighted_scores(record)
    total_weight = sum(weight for _, weight in scores)
    if not scores or total_weight == 0:
        return 0.0
    mean = sum(score * weight for score, weight in scores) / total_weight
    return round(min(1.0, max(0.0, mean)), 2)


# ---------------------------------------------------------------------------
# Missing fields
# ---------------------------------------------------------------------------


def find_missing_fields(record: ParsedResume, threshold: float) -> list[str]:
    """Paths of required fields that are empty or scored below ``threshold``."""
    missing: list[str] = []
    for name in REQUIRED_CONTACT_FIELDS:
        field = getattr(record.personal_info, name)
        if _is_blank(field.value) or field.confidence < threshold:
            missing.append(f"personalInfo.{name}")
    for attr, section in REQUIRED_SECTIONS.items():
        if not getattr(record, attr):
            missing.append(section)
    return missing


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def aggregate(
    record: ParsedResume, threshold: float, now: datetime | None = None
) -> ParsedResume:
    """Return a copy of ``record`` with durations, overall confidence and
    missing fields recomputed. On any internal error the input comes back
    unchanged."""
    try:
        result = record.model_copy(deep=True)
        filled = backfill_durations(result.work_experience, now)
        filled += backfill_durations(result.education, now)
        result.overall_confidence = compute_overall_confidence(result)
        result.missing_fields = find_missing_fields(result, threshold)
    except Exception as e:
        failure = AggregationFailure(
            "Post-processing failed, returning the record unchanged",
            details={"error": f"{type(e).__name__}: {e}"},
        )
        logger.warning("%r", failure, exc_info=True)
        return record

    logger.info(
        "Aggregated record: overall_confidence=%.2f, %d durations derived, missing=%s",
        result.overall_confidence, filled, result.missing_fields,
    )
    return result
