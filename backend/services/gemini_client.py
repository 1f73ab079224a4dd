"""Google Gemini structured-output oracle with typed error handling."""

import asyncio
import json
import logging
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from config import settings
from exceptions import (
    ErrorCode,
    OracleEmptyResponse,
    OracleMalformedResponse,
    OracleUnavailable,
)
from services.pipeline.base import ExtractionOracle

logger = logging.getLogger(__name__)

_client: genai.Client | None = None


def get_client() -> genai.Client | None:
    global _client
    if not settings.gemini_api_key:
        logger.warning("No GEMINI_API_KEY set - extraction oracle disabled")
        return None
    if _client is None:
        _client = genai.Client(api_key=settings.gemini_api_key)
    return _client


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
    return text


def parse_json_object(text: str | None) -> dict[str, Any]:
    """Parse oracle output text into a JSON object or raise the matching error."""
    if text is None or not text.strip():
        raise OracleEmptyResponse("Empty response from Gemini")
    try:
        data = json.loads(_strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise OracleMalformedResponse(
            "Failed to parse Gemini response as JSON",
            details={"error": str(e), "preview": text[:200]},
        ) from e
    if not isinstance(data, dict):
        raise OracleMalformedResponse(
            "Gemini response is not a JSON object",
            details={"type": type(data).__name__},
        )
    return data


def _classify_api_error(e: genai_errors.APIError) -> OracleUnavailable:
    status = getattr(e, "code", None)
    if status == 429:
        code = ErrorCode.ORACLE_RATE_LIMITED
    elif status in (401, 403):
        code = ErrorCode.ORACLE_AUTH_FAILED
    else:
        code = ErrorCode.ORACLE_UNAVAILABLE
    return OracleUnavailable(
        f"Gemini API error: {e}",
        code=code,
        details={"status": status},
    )


class GeminiOracle(ExtractionOracle):
    """ExtractionOracle backed by Gemini's JSON-schema response mode.

    The google-genai client is synchronous, so each call runs in a worker
    thread under a per-call timeout.
    """

    name = "gemini"

    def __init__(
        self,
        model: str | None = None,
        timeout: float | None = None,
        client: genai.Client | None = None,
    ) -> None:
        self.model = model or settings.gemini_model
        self.timeout = timeout if timeout is not None else settings.oracle_timeout_seconds
        self._client = client

    def _get_client(self) -> genai.Client:
        client = self._client or get_client()
        if client is None:
            raise OracleUnavailable(
                "Gemini API key not configured",
                code=ErrorCode.ORACLE_AUTH_FAILED,
            )
        return client

    async def generate(
        self, *, system_instruction: str, prompt: str, schema: dict[str, Any]
    ) -> dict[str, Any]:
        client = self._get_client()
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=settings.gemini_temperature,
            max_output_tokens=settings.gemini_max_output_tokens,
            response_mime_type="application/json",
            response_json_schema=schema,
        )

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    client.models.generate_content,
                    model=self.model,
                    contents=prompt,
                    config=config,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Gemini call timed out after %.0fs", self.timeout)
            raise OracleUnavailable(
                f"Gemini call timed out after {self.timeout:.0f} seconds",
                code=ErrorCode.ORACLE_TIMEOUT,
                details={"timeout_seconds": self.timeout},
            ) from e
        except genai_errors.APIError as e:
            logger.error("Gemini API error: %s", e)
            raise _classify_api_error(e) from e
        except Exception as e:
            logger.error("Gemini request failed: %s", e)
            raise OracleUnavailable(
                f"Gemini request failed: {type(e).__name__}: {e}"
            ) from e

        data = parse_json_object(response.text)
        logger.info("Gemini response parsed (%d top-level fields)", len(data))
        return data
