from typing import Any, Literal, Optional

from models.schemas.confidence import CamelModel
from models.schemas.resume_parsed import ParsedResume


class ErrorBody(CamelModel):
    message: str
    code: str
    details: Optional[Any] = None


class ParseResumeResponse(CamelModel):
    success: Literal[True] = True
    data: ParsedResume


class ErrorResponse(CamelModel):
    success: Literal[False] = False
    error: ErrorBody


class HealthResponse(CamelModel):
    status: str = "ok"
    version: str
    service: str
    timestamp: str
    gemini_configured: bool
