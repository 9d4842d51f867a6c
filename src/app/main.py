from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.app.config import get_settings
from src.app.routes import router, submissions
from src.schemas.lead import ErrorResponse
from src.services.errors import LeadPipelineError, RateLimitExceededError
from src.utils.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)
app.include_router(router)
app.include_router(submissions)
app.include_router(submissions, prefix="/api")


@app.exception_handler(LeadPipelineError)
async def lead_pipeline_error_handler(request: Request, exc: LeadPipelineError) -> JSONResponse:
    retry_after = exc.retry_after if isinstance(exc, RateLimitExceededError) else None
    body = ErrorResponse(error=exc.message, details=exc.details or None, retry_after=retry_after)
    headers = {"Retry-After": str(retry_after)} if retry_after is not None else {}
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.details)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = ErrorResponse(
        error="An error occurred while processing your request",
        details=None if get_settings().is_production else repr(exc),
    )
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True, exclude_none=True))
