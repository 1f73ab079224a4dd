"""Resume parsing entry point used by the API."""

import logging

from config import settings
from exceptions import InvalidInput
from models.requests import ParserOptions
from models.schemas.resume_parsed import ParsedResume
from services.gemini_client import GeminiOracle
from services.pipeline.base import ExtractionOracle
from services.pipeline.orchestrator import ExtractionOrchestrator

logger = logging.getLogger(__name__)


def validate_resume_text(resume_text: str) -> str:
    text = (resume_text or "").strip()
    if len(text) < settings.min_resume_length:
        raise InvalidInput(
            f"Resume text is too short (minimum {settings.min_resume_length} characters)",
            details={"length": len(text), "minimum": settings.min_resume_length},
        )
    if len(text) > settings.max_resume_length:
        raise InvalidInput(
            f"Resume text is too long (maximum {settings.max_resume_length} characters)",
            details={"length": len(text), "maximum": settings.max_resume_length},
        )
    return text


async def parse_resume(
    resume_text: str,
    options: ParserOptions | None = None,
    oracle: ExtractionOracle | None = None,
) -> ParsedResume:
    """Extract a confidence-scored record from raw resume text.

    Raises InvalidInput before any oracle call, and ExtractionFailed when the
    initial extraction cannot produce a record. Later stage failures only
    degrade the result.
    """
    text = validate_resume_text(resume_text)
    options = options or ParserOptions()
    oracle = oracle or GeminiOracle()

    orchestrator = ExtractionOrchestrator(
        oracle, retry_threshold=settings.retry_confidence_threshold
    )
    logger.info("Parsing resume (%d chars) with oracle %s", len(text), oracle.name)
    outcome = await orchestrator.run(text, options)

    for stage in outcome.stages:
        logger.debug("Stage %s -> %s%s", stage.stage.value, stage.status.value,
                     f" ({stage.reason})" if stage.reason else "")
    logger.info(
        "Resume parsed: overall_confidence=%.2f, missing=%d, degraded=%s",
        outcome.record.overall_confidence,
        len(outcome.record.missing_fields),
        [s.value for s in outcome.degraded_stages] or "none",
    )
    return outcome.record
