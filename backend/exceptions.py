"""Error kinds raised by the extraction pipeline.

Hierarchy:
    ResumeParserError
    ├── InvalidInput             rejected before any oracle call
    ├── OracleError
    │   ├── OracleUnavailable    network / auth / rate limit / timeout
    │   ├── OracleEmptyResponse  call succeeded, no content
    │   └── OracleMalformedResponse  content does not parse against the schema
    ├── AggregationFailure       post-processing threw
    └── ExtractionFailed         fatal request-level failure, wraps its cause

The error code, not the class, carries the detailed reason.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    ORACLE_UNAVAILABLE = "ORACLE_UNAVAILABLE"
    ORACLE_RATE_LIMITED = "ORACLE_RATE_LIMITED"
    ORACLE_AUTH_FAILED = "ORACLE_AUTH_FAILED"
    ORACLE_TIMEOUT = "ORACLE_TIMEOUT"
    ORACLE_EMPTY_RESPONSE = "ORACLE_EMPTY_RESPONSE"
    ORACLE_MALFORMED_RESPONSE = "ORACLE_MALFORMED_RESPONSE"

    AGGREGATION_FAILURE = "AGGREGATION_FAILURE"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"

    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ResumeParserError(Exception):
    """Base error with a stable code and optional structured details."""

    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message, "code": self.code.value}
        if self.details:
            body["details"] = self.details
        return body


class InvalidInput(ResumeParserError):
    default_code = ErrorCode.INVALID_INPUT


class OracleError(ResumeParserError):
    """Any failure talking to the extraction oracle."""


class OracleUnavailable(OracleError):
    default_code = ErrorCode.ORACLE_UNAVAILABLE


class OracleEmptyResponse(OracleError):
    default_code = ErrorCode.ORACLE_EMPTY_RESPONSE


class OracleMalformedResponse(OracleError):
    default_code = ErrorCode.ORACLE_MALFORMED_RESPONSE


class AggregationFailure(ResumeParserError):
    default_code = ErrorCode.AGGREGATION_FAILURE


_USER_MESSAGES = {
    ErrorCode.ORACLE_RATE_LIMITED: (
        "The extraction service is rate limited. Please try again in a moment."
    ),
    ErrorCode.ORACLE_AUTH_FAILED: (
        "The extraction service rejected our credentials. Check the API key configuration."
    ),
    ErrorCode.ORACLE_TIMEOUT: "The extraction service timed out. Please try again.",
}
_GENERIC_MESSAGE = "Failed to extract resume data."


class ExtractionFailed(ResumeParserError):
    """Fatal failure of the initial extraction stage.

    Takes the code of the oracle error that caused it, so callers can tell a
    rate limit from an auth problem from a generic failure.
    """

    default_code = ErrorCode.EXTRACTION_FAILED

    def __init__(self, cause: ResumeParserError):
        message = _USER_MESSAGES.get(cause.code, _GENERIC_MESSAGE)
        details = {"reason": cause.message, **cause.details}
        super().__init__(message, code=cause.code, details=details)
        self.cause = cause


HTTP_STATUS = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ORACLE_RATE_LIMITED: 429,
    ErrorCode.ORACLE_UNAVAILABLE: 502,
    ErrorCode.ORACLE_AUTH_FAILED: 502,
    ErrorCode.ORACLE_EMPTY_RESPONSE: 502,
    ErrorCode.ORACLE_MALFORMED_RESPONSE: 502,
    ErrorCode.ORACLE_TIMEOUT: 504,
}


def http_status_for(error: ResumeParserError) -> int:
    return HTTP_STATUS.get(error.code, 500)
