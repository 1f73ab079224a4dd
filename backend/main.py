import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.router import VERSION, limiter, router
from config import settings
from exceptions import ErrorCode, ResumeParserError, http_status_for

logging.basicConfig(
    level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Resume Parser API",
    description="Confidence-scored structured extraction from resume text",
    version=VERSION,
    debug=settings.debug,
)
app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str, code: str, details=None) -> JSONResponse:
    error = {"message": message, "code": code}
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@app.exception_handler(ResumeParserError)
async def resume_parser_error_handler(request: Request, exc: ResumeParserError):
    status_code = http_status_for(exc)
    if status_code >= 500:
        logger.error("Request failed: %r", exc)
    else:
        logger.info("Request rejected: %r", exc)
    return _error(status_code, exc.message, exc.code.value, exc.details or None)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"path": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error(400, "Invalid request", ErrorCode.VALIDATION_ERROR.value, details)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return _error(429, f"Rate limit exceeded: {exc.detail}", "RATE_LIMITED")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _error(404, f"Route {request.method} {request.url.path} not found",
                      ErrorCode.NOT_FOUND.value)
    return _error(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.debug else "An unexpected error occurred"
    return _error(500, message, ErrorCode.INTERNAL_ERROR.value)


app.include_router(router)
