"""Oracle response -> fully wrapped ParsedResume.

The oracle is untrusted: a slot may be missing, a bare value, a
``{value, confidence, standardization}`` wrapper, or a wrapper around another
wrapper. Every slot is classified first and then coerced to the kind the
record expects, so nothing unchecked reaches ``ParsedResume.model_validate``.

Defaults:
    missing slot                 null / "" / [] / false with confidence 0
    value without a confidence   NEUTRAL_CONFIDENCE (0.5), or 0 when empty
    confidence outside [0, 1]    clamped
"""

import logging
import math
from typing import Any, Literal

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from exceptions import OracleMalformedResponse
from models.schemas.resume_parsed import ParsedResume
from services.section_parser import detect_sections

logger = logging.getLogger(__name__)

# Neutral prior for values the oracle returned without a score. Tunable policy,
# not a calibrated figure.
NEUTRAL_CONFIDENCE = 0.5

SlotShape = Literal["missing", "wrapped", "nested", "bare"]

# Slot kinds
TEXT = "text"
MAYBE_TEXT = "maybe_text"
SCORED_TEXT = "scored_text"  # plain text or a nested ConfidenceField[str]
NUMBER = "number"
INTEGER = "integer"
BOOL = "bool"
TEXT_LIST = "text_list"
MAYBE_TEXT_LIST = "maybe_text_list"
DATE_RANGE_FIELD = "date_range_field"  # ConfidenceField[DateRange | None]

DATE_RANGE = {
    "startDate": MAYBE_TEXT,
    "endDate": MAYBE_TEXT,
    "durationInMonths": INTEGER,
    "current": BOOL,
}

PERSONAL_INFO = {
    "name": TEXT,
    "email": TEXT,
    "phone": TEXT,
    "location": MAYBE_TEXT,
    "linkedin": MAYBE_TEXT,
    "github": MAYBE_TEXT,
    "website": MAYBE_TEXT,
    "summary": MAYBE_TEXT,
}

SKILL = {
    "name": SCORED_TEXT,
    "category": MAYBE_TEXT,
    "proficiency": MAYBE_TEXT,
    "yearsOfExperience": NUMBER,
}

WORK_EXPERIENCE = {
    "company": TEXT,
    "title": TEXT,
    "location": MAYBE_TEXT,
    "dates": DATE_RANGE,
    "responsibilities": TEXT_LIST,
    "technologies": TEXT_LIST,
    "achievements": TEXT_LIST,
}

EDUCATION = {
    "institution": TEXT,
    "degree": SCORED_TEXT,
    "field": SCORED_TEXT,
    "dates": DATE_RANGE,
    "gpa": MAYBE_TEXT,
    "coursework": MAYBE_TEXT_LIST,
    "achievements": MAYBE_TEXT_LIST,
}

PROJECT = {
    "name": TEXT,
    "description": TEXT,
    "technologies": TEXT_LIST,
    "urls": MAYBE_TEXT_LIST,
    "dates": DATE_RANGE_FIELD,
    "role": MAYBE_TEXT,
}

CERTIFICATION = {
    "name": TEXT,
    "issuer": MAYBE_TEXT,
    "date": MAYBE_TEXT,
    "expiryDate": MAYBE_TEXT,
    "id": MAYBE_TEXT,
}

LANGUAGE = {
    "name": TEXT,
    "proficiency": MAYBE_TEXT,
}

ENTITY_LISTS = {
    "skills": SKILL,
    "workExperience": WORK_EXPERIENCE,
    "education": EDUCATION,
    "projects": PROJECT,
    "certifications": CERTIFICATION,
    "languages": LANGUAGE,
}

TOP_LEVEL_KEYS = {
    "personalInfo", *ENTITY_LISTS, "overallConfidence", "missingFields", "detectedSections",
}

# Sections a follow-up answer must restate in full; the rest are recomputed
RECORD_KEYS = ("personalInfo", *ENTITY_LISTS)


# ---------------------------------------------------------------------------
# Slot classification and coercion
# ---------------------------------------------------------------------------


def _pick(obj: dict, key: str) -> Any:
    """Read a camelCase key, falling back to its snake_case spelling."""
    if key in obj:
        return obj[key]
    return obj.get(to_snake(key))


def _is_wrapper(raw: Any) -> bool:
    return isinstance(raw, dict) and ("value" in raw or "confidence" in raw)


def classify(raw: Any) -> SlotShape:
    if raw is None:
        return "missing"
    if _is_wrapper(raw):
        return "nested" if _is_wrapper(raw.get("value")) else "wrapped"
    return "bare"


def clamp_confidence(raw: Any, default: float) -> float:
    if isinstance(raw, bool):
        return default
    if isinstance(raw, str):
        try:
            raw = float(raw)
        except ValueError:
            return default
    if not isinstance(raw, (int, float)) or raw != raw:  # NaN
        return default
    return min(1.0, max(0.0, float(raw)))


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def _to_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        parts = [_to_text(v) for v in value]
        return ", ".join(p for p in parts if p)
    return None


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    return None


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "current", "present")
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _to_text_list(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, list):
        items = [_to_text(v) for v in value]
        return [item for item in items if item]
    text = _to_text(value)
    return [text] if text else []


def coerce(value: Any, kind: str) -> Any:
    if kind == TEXT:
        return _to_text(value) or ""
    if kind == MAYBE_TEXT:
        return _to_text(value) or None
    if kind == NUMBER:
        return _to_number(value)
    if kind == INTEGER:
        number = _to_number(value)
        return None if number is None else int(round(number))
    if kind == BOOL:
        return _to_bool(value)
    if kind == TEXT_LIST:
        return _to_text_list(value) or []
    if kind == MAYBE_TEXT_LIST:
        return _to_text_list(value)
    raise ValueError(f"Unknown slot kind: {kind}")


def _note(raw: dict) -> str | None:
    note = raw.get("standardization")
    if isinstance(note, str) and note.strip():
        return note.strip()
    return None


def _field(value: Any, raw_confidence: Any, note: str | None) -> dict:
    default = 0.0 if _is_empty(value) else NEUTRAL_CONFIDENCE
    return {
        "value": value,
        "confidence": clamp_confidence(raw_confidence, default),
        "standardization": note,
    }


def normalize_field(raw: Any, kind: str) -> dict:
    """One ConfidenceField slot as a validated-ready dict."""
    shape = classify(raw)
    if kind == SCORED_TEXT and shape == "nested":
        inner = normalize_field(raw["value"], TEXT)
        return _field(inner, raw.get("confidence"), _note(raw))
    if kind == SCORED_TEXT:
        kind = TEXT

    if shape == "missing":
        return _field(coerce(None, kind), 0.0, None)
    if shape == "bare":
        return _field(coerce(raw, kind), None, None)
    if shape == "nested":
        # Nesting is only meaningful for scored text; flatten to the inner value
        inner = raw["value"]
        return _field(coerce(inner.get("value"), kind), raw.get("confidence"), _note(raw))
    return _field(coerce(raw.get("value"), kind), raw.get("confidence"), _note(raw))


def _looks_like_date_range(raw: Any) -> bool:
    return isinstance(raw, dict) and any(
        key in raw or to_snake(key) in raw for key in DATE_RANGE
    )


def _normalize_date_range_field(raw: Any) -> dict:
    if raw is None:
        return _field(None, 0.0, None)
    if _looks_like_date_range(raw):
        return _field(normalize_entity(raw, DATE_RANGE), None, None)
    if _is_wrapper(raw):
        inner = raw.get("value")
        value = normalize_entity(inner, DATE_RANGE) if isinstance(inner, dict) else None
        return _field(value, raw.get("confidence"), _note(raw))
    return _field(None, 0.0, None)


def normalize_entity(raw: Any, slots: dict) -> dict:
    """Normalize one object against its slot table. Non-objects become empty."""
    if not isinstance(raw, dict):
        raw = {}
    out: dict[str, Any] = {}
    for key, kind in slots.items():
        slot = _pick(raw, key)
        if isinstance(kind, dict):
            # A plain sub-object the oracle may still have wrapped
            if _is_wrapper(slot) and not _looks_like_date_range(slot):
                slot = slot.get("value")
            out[key] = normalize_entity(slot, kind)
        elif kind == DATE_RANGE_FIELD:
            out[key] = _normalize_date_range_field(slot)
        else:
            out[key] = normalize_field(slot, kind)
    return out


def _string_list(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [item.strip() for item in raw if isinstance(item, str) and item.strip()]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def reported_confidence(payload: Any) -> float | None:
    """The oracle's self-reported overall confidence, if it gave a usable one."""
    if not isinstance(payload, dict):
        return None
    raw = _pick(payload, "overallConfidence")
    if _is_wrapper(raw):
        raw = raw.get("value")
    if raw is None:
        return None
    score = clamp_confidence(raw, -1.0)
    return None if score < 0 else score


def normalize(
    payload: Any, resume_text: str | None = None, complete: bool = False
) -> ParsedResume:
    """Convert an oracle response into a ParsedResume.

    Raises OracleMalformedResponse if the payload is not an object or carries
    none of the record's top-level keys. With ``complete`` every section in
    RECORD_KEYS must be present, so a partial answer cannot replace a full
    record.
    """
    if not isinstance(payload, dict):
        raise OracleMalformedResponse(
            "Oracle response is not a JSON object",
            details={"type": type(payload).__name__},
        )
    known = {key for key in TOP_LEVEL_KEYS if _pick(payload, key) is not None}
    if not known:
        raise OracleMalformedResponse(
            "Oracle response has none of the expected fields",
            details={"keys": sorted(payload)[:20]},
        )
    if complete:
        absent = [key for key in RECORD_KEYS if _pick(payload, key) is None]
        if absent:
            raise OracleMalformedResponse(
                "Oracle response is missing required sections",
                details={"missing": absent},
            )

    data: dict[str, Any] = {
        "personalInfo": normalize_entity(_pick(payload, "personalInfo"), PERSONAL_INFO),
    }
    for key, slots in ENTITY_LISTS.items():
        items = _pick(payload, key)
        if not isinstance(items, list):
            items = []
        data[key] = [normalize_entity(item, slots) for item in items if isinstance(item, dict)]

    data["overallConfidence"] = reported_confidence(payload) or 0.0
    data["missingFields"] = _string_list(_pick(payload, "missingFields"))
    sections = _string_list(_pick(payload, "detectedSections"))
    if not sections and resume_text:
        sections = detect_sections(resume_text)
        logger.debug("Oracle returned no sections, detected %s from text", sections)
    data["detectedSections"] = sections

    try:
        return ParsedResume.model_validate(data)
    except ValidationError as e:
        logger.error("Normalized oracle response failed validation: %s", e)
        raise OracleMalformedResponse(
            "Oracle response does not fit the resume schema",
            details={"errors": e.errors(include_url=False, include_input=False, include_context=False)},
        ) from e
