"""Extraction orchestrator: sequences the oracle calls for one resume.

Flow:
    resume_text
      ├─ INITIAL_EXTRACT   oracle(extract prompt)            fatal on failure
      ├─ QUALITY_CHECK     gaps? low confidence?
      ├─ RETRY_EXTRACT     oracle(retry prompt + 1st attempt) best effort
      ├─ STANDARDIZE       oracle(validate + confidence)      best effort, optional
      └─ POST_PROCESS      options + aggregate()             never raises
                       ↓
                 PipelineOutcome(record, stages)

Every stage returns a StageResult carrying the record the next stage starts
from; a failed best-effort stage returns the record it was given.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from exceptions import ErrorCode, ExtractionFailed, OracleError
from models.requests import ParserOptions
from models.schemas.confidence import ConfidenceField
from models.schemas.resume_parsed import ParsedResume
from services import prompt_builder
from services.pipeline import aggregator, normalizer
from services.pipeline.base import ExtractionOracle, Stage, StageResult
from services.pipeline.schema_transformer import get_oracle_schema
from services.prompt_builder import DEFAULT_TEMPLATES, PromptTemplates
from services.section_parser import extract_contact_info

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = ("name", "email")


@dataclass
class PipelineOutcome:
    record: ParsedResume
    stages: list[StageResult] = field(default_factory=list)

    @property
    def degraded_stages(self) -> list[Stage]:
        return [s.stage for s in self.stages if s.is_degraded]


def find_gaps(
    record: ParsedResume, reported: float | None, retry_threshold: float
) -> list[str]:
    """Reasons the initial extraction should be retried (empty if none).

    Uses the oracle's self-reported overall confidence when it gave one,
    otherwise a provisional aggregation of the record.
    """
    gaps = []
    info = record.personal_info
    for name in IDENTITY_FIELDS:
        if not getattr(info, name).value.strip():
            gaps.append(f"personalInfo.{name} is empty")
    if not record.skills:
        gaps.append("skills list is empty")
    if not record.work_experience:
        gaps.append("workExperience list is empty")

    overall = reported if reported is not None else aggregator.compute_overall_confidence(record)
    if overall < retry_threshold:
        gaps.append(f"overall confidence {overall:.2f} is below {retry_threshold:.2f}")
    return gaps


def apply_options(record: ParsedResume, options: ParserOptions) -> ParsedResume:
    """Drop what the caller opted out of, whatever the oracle returned."""
    if not options.extract_summary:
        record.personal_info.summary = ConfidenceField[Optional[str]](value=None)
    if not options.extract_languages:
        record.languages = []
    return record


class ExtractionOrchestrator:
    """Drives one resume through the extraction stages.

    Holds no per-request state, so a single instance can serve concurrent
    requests.
    """

    def __init__(
        self,
        oracle: ExtractionOracle,
        templates: PromptTemplates = DEFAULT_TEMPLATES,
        retry_threshold: float = 0.5,
    ) -> None:
        self.oracle = oracle
        self.templates = templates
        self.retry_threshold = retry_threshold

    # --- stages ---------------------------------------------------------

    async def initial_extract(
        self, resume_text: str, options: ParserOptions
    ) -> tuple[StageResult, float | None]:
        prompt = prompt_builder.build_extract_prompt(
            resume_text,
            self.templates,
            **_prompt_options(options),
        )
        try:
            payload = await self.oracle.generate(
                system_instruction=self.templates.extract_system,
                prompt=prompt,
                schema=get_oracle_schema(),
            )
            record = normalizer.normalize(payload, resume_text)
        except OracleError as e:
            logger.error("Initial extraction failed [%s]: %s", e.code.value, e.message)
            raise ExtractionFailed(e) from e

        reported = normalizer.reported_confidence(payload)
        return StageResult.ok(Stage.INITIAL_EXTRACT, record), reported

    async def retry_extract(
        self,
        resume_text: str,
        record: ParsedResume,
        gaps: list[str],
        options: ParserOptions,
    ) -> StageResult:
        prompt = prompt_builder.build_retry_prompt(
            resume_text,
            previous=record.model_dump(by_alias=True),
            gaps=gaps,
            contact_hints=extract_contact_info(resume_text),
            templates=self.templates,
            **_prompt_options(options),
        )
        try:
            payload = await self.oracle.generate(
                system_instruction=self.templates.extract_system,
                prompt=prompt,
                schema=get_oracle_schema(),
            )
            retried = normalizer.normalize(payload, resume_text, complete=True)
        except OracleError as e:
            logger.warning("Retry extraction failed, keeping first attempt [%s]: %s",
                           e.code.value, e.message)
            return StageResult.degraded(Stage.RETRY_EXTRACT, record, e.code.value)
        except Exception:
            logger.exception("Retry extraction crashed, keeping first attempt")
            return StageResult.degraded(
                Stage.RETRY_EXTRACT, record, ErrorCode.INTERNAL_ERROR.value
            )
        return StageResult.ok(Stage.RETRY_EXTRACT, retried)

    async def standardize(self, resume_text: str, record: ParsedResume) -> StageResult:
        prompt = prompt_builder.build_standardize_prompt(
            record.model_dump(by_alias=True), self.templates
        )
        try:
            payload = await self.oracle.generate(
                system_instruction=self.templates.validate_system,
                prompt=prompt,
                schema=get_oracle_schema(),
            )
            standardized = normalizer.normalize(payload, resume_text, complete=True)
        except OracleError as e:
            logger.warning("Standardization failed, keeping extracted data [%s]: %s",
                           e.code.value, e.message)
            return StageResult.degraded(Stage.STANDARDIZE, record, e.code.value)
        except Exception:
            logger.exception("Standardization crashed, keeping extracted data")
            return StageResult.degraded(
                Stage.STANDARDIZE, record, ErrorCode.INTERNAL_ERROR.value
            )
        return StageResult.ok(Stage.STANDARDIZE, standardized)

    def post_process(
        self, record: ParsedResume, options: ParserOptions, now: datetime | None = None
    ) -> StageResult:
        record = apply_options(record.model_copy(deep=True), options)
        return StageResult.ok(
            Stage.POST_PROCESS,
            aggregator.aggregate(record, options.confidence_threshold, now),
        )

    # --- driver ---------------------------------------------------------

    async def run(
        self,
        resume_text: str,
        options: ParserOptions | None = None,
        now: datetime | None = None,
    ) -> PipelineOutcome:
        options = options or ParserOptions()
        stages: list[StageResult] = []

        logger.info("Stage %s", Stage.INITIAL_EXTRACT.value)
        result, reported = await self.initial_extract(resume_text, options)
        stages.append(result)

        gaps = find_gaps(result.record, reported, self.retry_threshold)
        logger.info("Stage %s: %d gap(s)", Stage.QUALITY_CHECK.value, len(gaps))
        stages.append(
            StageResult.ok(Stage.QUALITY_CHECK, result.record, "; ".join(gaps) or None)
        )
        if gaps:
            logger.info("Stage %s: %s", Stage.RETRY_EXTRACT.value, "; ".join(gaps))
            result = await self.retry_extract(resume_text, result.record, gaps, options)
        else:
            result = StageResult.skipped(
                Stage.RETRY_EXTRACT, result.record, "quality check passed"
            )
        stages.append(result)

        if options.standardization_enabled:
            logger.info("Stage %s", Stage.STANDARDIZE.value)
            result = await self.standardize(resume_text, result.record)
        else:
            result = StageResult.skipped(
                Stage.STANDARDIZE, result.record, "disabled by options"
            )
        stages.append(result)

        result = self.post_process(result.record, options, now)
        stages.append(result)

        outcome = PipelineOutcome(record=result.record, stages=stages)
        if outcome.degraded_stages:
            logger.warning("Pipeline finished with degraded stages: %s",
                           [s.value for s in outcome.degraded_stages])
        return outcome


def _prompt_options(options: ParserOptions) -> dict:
    return {
        "extract_summary": options.extract_summary,
        "extract_languages": options.extract_languages,
        "section_priorities": options.section_priorities,
    }
