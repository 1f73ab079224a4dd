"""Tests for the extraction orchestrator."""

import copy
from datetime import datetime

import pytest

from exceptions import ErrorCode, ExtractionFailed, OracleMalformedResponse, OracleUnavailable
from models.requests import ParserOptions
from services.pipeline.base import Stage, StageStatus
from services.pipeline.normalizer import normalize
from services.pipeline.orchestrator import ExtractionOrchestrator, apply_options, find_gaps

NOW = datetime(2024, 6, 15)


def _weak_payload(payload):
    """First attempt that missed the name and the skills."""
    payload["personalInfo"]["name"] = {"value": None, "confidence": 0}
    payload["skills"] = []
    payload["overallConfidence"] = 0.4
    return payload


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_good_extraction_skips_retry(self, fake_oracle, jane_payload, jane_text):
        oracle = fake_oracle(jane_payload, jane_payload)
        outcome = await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)

        assert len(oracle.calls) == 2  # extract + standardize
        assert [s.stage for s in outcome.stages] == [
            Stage.INITIAL_EXTRACT,
            Stage.QUALITY_CHECK,
            Stage.RETRY_EXTRACT,
            Stage.STANDARDIZE,
            Stage.POST_PROCESS,
        ]
        assert outcome.stages[1].status is StageStatus.OK
        assert outcome.stages[1].reason is None
        assert outcome.stages[2].status is StageStatus.SKIPPED
        assert outcome.degraded_stages == []

    @pytest.mark.asyncio
    async def test_end_to_end_jane_roe(self, fake_oracle, jane_payload, jane_text):
        oracle = fake_oracle(jane_payload, jane_payload)
        record = (await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)).record

        assert record.personal_info.name.value == "Jane Roe"
        duration = record.work_experience[0].dates.duration_in_months
        assert duration.value == 36
        assert duration.confidence == 0.8
        assert "personalInfo.name" not in record.missing_fields
        assert "education" in record.missing_fields
        assert 0 < record.overall_confidence <= 1

    @pytest.mark.asyncio
    async def test_every_call_gets_the_oracle_schema(self, fake_oracle, jane_payload, jane_text):
        oracle = fake_oracle(jane_payload, jane_payload)
        await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)
        for call in oracle.calls:
            assert call["schema"]["type"] == "object"
            assert call["schema"]["additionalProperties"] is False
        assert jane_text.strip() in oracle.calls[0]["prompt"]


class TestRetry:
    @pytest.mark.asyncio
    async def test_gaps_trigger_retry(self, fake_oracle, jane_payload, jane_text):
        weak = _weak_payload(copy.deepcopy(jane_payload))
        oracle = fake_oracle(weak, jane_payload, jane_payload)
        outcome = await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)

        assert len(oracle.calls) == 3
        retry_prompt = oracle.calls[1]["prompt"]
        assert "personalInfo.name is empty" in retry_prompt
        assert "skills list is empty" in retry_prompt
        assert "LOCAL PRE-SCAN" in retry_prompt
        assert "jane@x.com" in retry_prompt
        quality = outcome.stages[1]
        assert quality.stage is Stage.QUALITY_CHECK
        assert "personalInfo.name is empty" in quality.reason
        assert "skills list is empty" in quality.reason
        assert quality.record.skills == []
        assert outcome.stages[2].status is StageStatus.OK
        assert outcome.record.personal_info.name.value == "Jane Roe"

    @pytest.mark.asyncio
    async def test_low_reported_confidence_triggers_retry(self, fake_oracle, jane_payload, jane_text):
        low = copy.deepcopy(jane_payload)
        low["overallConfidence"] = 0.3
        oracle = fake_oracle(low, jane_payload, jane_payload)
        await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)
        assert len(oracle.calls) == 3
        assert "overall confidence 0.30" in oracle.calls[1]["prompt"]

    @pytest.mark.asyncio
    async def test_retry_failure_keeps_first_attempt(self, fake_oracle, jane_payload, jane_text):
        weak = _weak_payload(copy.deepcopy(jane_payload))
        oracle = fake_oracle(weak, OracleUnavailable("down"))
        options = ParserOptions(standardization_enabled=False)
        outcome = await ExtractionOrchestrator(oracle).run(jane_text, options, now=NOW)

        assert outcome.stages[2].status is StageStatus.DEGRADED
        assert outcome.stages[2].reason == ErrorCode.ORACLE_UNAVAILABLE.value
        assert outcome.degraded_stages == [Stage.RETRY_EXTRACT]
        record = outcome.record
        assert record.personal_info.email.value == "jane@x.com"
        assert record.personal_info.name.value == ""
        assert "personalInfo.name" in record.missing_fields
        assert "skills" in record.missing_fields

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", [
        OracleMalformedResponse("bad json"),
        {"nothing": 1},
        {"personalInfo": {"name": {"value": "Jane Roe", "confidence": 0.95}}},
    ])
    async def test_unusable_retry_keeps_first_attempt(
        self, fake_oracle, jane_payload, jane_text, answer
    ):
        low = copy.deepcopy(jane_payload)
        low["overallConfidence"] = 0.3
        oracle = fake_oracle(low, answer)
        options = ParserOptions(standardization_enabled=False)
        outcome = await ExtractionOrchestrator(oracle).run(jane_text, options, now=NOW)

        assert len(oracle.calls) == 2
        assert outcome.stages[2].status is StageStatus.DEGRADED
        assert outcome.stages[2].reason == ErrorCode.ORACLE_MALFORMED_RESPONSE.value
        record = outcome.record
        assert [s.name.value for s in record.skills] == ["Python", "SQL"]
        assert record.work_experience[0].company.value == "Acme"

    @pytest.mark.asyncio
    async def test_retry_crash_keeps_first_attempt(self, fake_oracle, jane_payload, jane_text):
        low = copy.deepcopy(jane_payload)
        low["overallConfidence"] = 0.3
        oracle = fake_oracle(low, RuntimeError("sdk blew up"), jane_payload)
        outcome = await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)

        assert outcome.stages[2].status is StageStatus.DEGRADED
        assert outcome.stages[2].reason == ErrorCode.INTERNAL_ERROR.value
        assert outcome.degraded_stages == [Stage.RETRY_EXTRACT]
        assert outcome.record.personal_info.name.value == "Jane Roe"


class TestStandardize:
    @pytest.mark.asyncio
    async def test_failure_still_aggregates(self, fake_oracle, jane_payload, jane_text):
        oracle = fake_oracle(jane_payload, OracleMalformedResponse("bad json"))
        outcome = await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)

        assert outcome.stages[3].status is StageStatus.DEGRADED
        assert outcome.stages[4].status is StageStatus.OK
        record = outcome.record
        assert record.work_experience[0].dates.duration_in_months.value == 36
        assert record.overall_confidence > 0

    @pytest.mark.asyncio
    async def test_partial_answer_keeps_extracted(self, fake_oracle, jane_payload, jane_text):
        partial = {"personalInfo": copy.deepcopy(jane_payload["personalInfo"])}
        oracle = fake_oracle(jane_payload, partial)
        outcome = await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)

        assert outcome.stages[3].status is StageStatus.DEGRADED
        assert outcome.stages[3].reason == ErrorCode.ORACLE_MALFORMED_RESPONSE.value
        record = outcome.record
        assert len(record.skills) == 2
        assert record.work_experience[0].dates.duration_in_months.value == 36
        assert "skills" not in record.missing_fields

    @pytest.mark.asyncio
    async def test_crash_keeps_extracted(self, fake_oracle, jane_payload, jane_text):
        oracle = fake_oracle(jane_payload, RuntimeError("sdk blew up"))
        outcome = await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)

        assert outcome.stages[3].status is StageStatus.DEGRADED
        assert outcome.stages[3].reason == ErrorCode.INTERNAL_ERROR.value
        assert outcome.stages[4].status is StageStatus.OK
        assert outcome.record.personal_info.email.value == "jane@x.com"
        assert len(outcome.record.skills) == 2

    @pytest.mark.asyncio
    async def test_disabled_makes_one_call(self, fake_oracle, jane_payload, jane_text):
        oracle = fake_oracle(jane_payload)
        options = ParserOptions(standardization_enabled=False)
        outcome = await ExtractionOrchestrator(oracle).run(jane_text, options, now=NOW)

        assert len(oracle.calls) == 1
        assert outcome.stages[3].status is StageStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_standardized_values_replace_extracted(self, fake_oracle, jane_payload, jane_text):
        standardized = copy.deepcopy(jane_payload)
        standardized["skills"][1]["name"] = {
            "value": "Structured Query Language",
            "confidence": 0.9,
            "standardization": 'Standardized from "SQL"',
        }
        oracle = fake_oracle(jane_payload, standardized)
        record = (await ExtractionOrchestrator(oracle).run(jane_text, now=NOW)).record
        assert record.skills[1].name.value == "Structured Query Language"
        assert record.skills[1].name.standardization == 'Standardized from "SQL"'
        assert "Data:" in oracle.calls[1]["prompt"]


class TestInitialFailure:
    @pytest.mark.asyncio
    async def test_oracle_error_is_fatal(self, fake_oracle, jane_text):
        oracle = fake_oracle(
            OracleUnavailable("quota", code=ErrorCode.ORACLE_RATE_LIMITED)
        )
        with pytest.raises(ExtractionFailed) as exc_info:
            await ExtractionOrchestrator(oracle).run(jane_text)
        assert exc_info.value.code is ErrorCode.ORACLE_RATE_LIMITED
        assert "rate limited" in exc_info.value.message
        assert len(oracle.calls) == 1

    @pytest.mark.asyncio
    async def test_unusable_payload_is_fatal(self, fake_oracle, jane_text):
        oracle = fake_oracle({"unexpected": True})
        with pytest.raises(ExtractionFailed) as exc_info:
            await ExtractionOrchestrator(oracle).run(jane_text)
        assert exc_info.value.code is ErrorCode.ORACLE_MALFORMED_RESPONSE


class TestOptions:
    @pytest.mark.asyncio
    async def test_summary_and_languages_dropped(self, fake_oracle, jane_payload, jane_text):
        jane_payload["personalInfo"]["summary"] = {"value": "Backend engineer", "confidence": 0.8}
        jane_payload["languages"] = [{"name": {"value": "English", "confidence": 0.9}}]
        oracle = fake_oracle(jane_payload)
        options = ParserOptions(
            standardization_enabled=False, extract_summary=False, extract_languages=False,
            section_priorities=["skills"],
        )
        record = (await ExtractionOrchestrator(oracle).run(jane_text, options, now=NOW)).record

        assert record.personal_info.summary.value is None
        assert record.personal_info.summary.confidence == 0
        assert record.languages == []
        prompt = oracle.calls[0]["prompt"]
        assert "Do not extract a summary" in prompt
        assert "Prioritize these sections" in prompt

    def test_apply_options_keeps_fields_by_default(self, jane_payload):
        jane_payload["languages"] = [{"name": {"value": "English", "confidence": 0.9}}]
        record = apply_options(normalize(jane_payload), ParserOptions())
        assert len(record.languages) == 1

    @pytest.mark.asyncio
    async def test_threshold_controls_missing_fields(self, fake_oracle, jane_payload, jane_text):
        jane_payload["personalInfo"]["phone"] = {"value": "+1 555 010 2000", "confidence": 0.6}
        oracle = fake_oracle(jane_payload)
        options = ParserOptions(standardization_enabled=False, confidence_threshold=0.7)
        record = (await ExtractionOrchestrator(oracle).run(jane_text, options, now=NOW)).record
        assert "personalInfo.phone" in record.missing_fields


def test_find_gaps_uses_computed_confidence_without_report(jane_payload):
    del jane_payload["overallConfidence"]
    for info_field in jane_payload["personalInfo"].values():
        info_field["confidence"] = 0.1
    record = normalize(jane_payload)
    gaps = find_gaps(record, None, 0.5)
    assert len(gaps) == 1
    assert gaps[0].startswith("overall confidence")


def test_find_gaps_empty_for_good_record(jane_payload):
    assert find_gaps(normalize(jane_payload), 0.9, 0.5) == []
