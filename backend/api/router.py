from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import get_oracle
from config import settings
from models.requests import ParseResumeRequest
from models.responses import ErrorResponse, HealthResponse, ParseResumeResponse
from services import resume_parser
from services.pipeline.base import ExtractionOracle

SERVICE_NAME = "resume-parser-api"
VERSION = "1.0.0"

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
async def health():
    return HealthResponse(
        version=VERSION,
        service=SERVICE_NAME,
        timestamp=datetime.now(timezone.utc).isoformat(),
        gemini_configured=bool(settings.gemini_api_key),
    )


@router.post(
    "/api/parse",
    response_model=ParseResumeResponse,
    response_model_by_alias=True,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def parse(
    request: Request,
    body: ParseResumeRequest,
    oracle: ExtractionOracle = Depends(get_oracle),
):
    record = await resume_parser.parse_resume(body.resume_text, body.options, oracle)
    return ParseResumeResponse(data=record)
