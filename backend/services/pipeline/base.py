"""Shared contracts for the extraction pipeline stages."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from models.schemas.resume_parsed import ParsedResume


class ExtractionOracle(ABC):
    """External structured-output model.

    Implementations send system instructions, a task prompt and an
    oracle-safe JSON schema, and return the parsed JSON object. Failures are
    raised as ``OracleUnavailable``, ``OracleEmptyResponse`` or
    ``OracleMalformedResponse``.
    """

    name: str = ""

    @abstractmethod
    async def generate(
        self, *, system_instruction: str, prompt: str, schema: dict[str, Any]
    ) -> dict[str, Any]:
        """Run one structured extraction call."""


class Stage(str, Enum):
    INITIAL_EXTRACT = "initial_extract"
    QUALITY_CHECK = "quality_check"
    RETRY_EXTRACT = "retry_extract"
    STANDARDIZE = "standardize"
    POST_PROCESS = "post_process"


class StageStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StageResult:
    """Outcome of one pipeline stage.

    A degraded or skipped stage still carries a record: the last known good
    one, so the next stage can always continue from ``result.record``.
    """

    stage: Stage
    status: StageStatus
    record: ParsedResume
    reason: Optional[str] = None

    @classmethod
    def ok(
        cls, stage: Stage, record: ParsedResume, reason: Optional[str] = None
    ) -> "StageResult":
        return cls(stage, StageStatus.OK, record, reason)

    @classmethod
    def degraded(cls, stage: Stage, record: ParsedResume, reason: str) -> "StageResult":
        return cls(stage, StageStatus.DEGRADED, record, reason)

    @classmethod
    def skipped(cls, stage: Stage, record: ParsedResume, reason: str) -> "StageResult":
        return cls(stage, StageStatus.SKIPPED, record, reason)

    @property
    def is_degraded(self) -> bool:
        return self.status is StageStatus.DEGRADED
