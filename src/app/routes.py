from __future__ import annotations

import json
import logging
from typing import Any, Callable, Type

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.app.config import Settings
from src.app.dependencies import get_lead_service, get_rate_limiter, get_settings
from src.schemas.lead import (
    CompleteLeadSubmission,
    FormLeadSubmission,
    LeadSubmissionResponse,
    PartialLeadSubmission,
    validate_submission,
)
from src.services.errors import InvalidPayloadError, RateLimitExceededError
from src.services.lead import ClientInfo, LeadService, LeadSubmissionResult
from src.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter()
submissions = APIRouter()

SUBMIT_PATHS = ("/submit-partial", "/submit-lead", "/submit-form")
CORS_PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _client_info(request: Request) -> ClientInfo:
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() if forwarded else ""
    if not ip:
        ip = request.headers.get("x-real-ip") or (request.client.host if request.client else "") or "unknown"
    return ClientInfo(ip_address=ip, user_agent=request.headers.get("user-agent", "unknown"))


async def _read_json(request: Request) -> Any:
    body = await request.body()
    try:
        payload = json.loads(body or b"")
    except ValueError as exc:
        raise InvalidPayloadError("Invalid JSON in request body") from exc
    if not isinstance(payload, dict):
        raise InvalidPayloadError("Request body must be a JSON object")
    return payload


async def _handle_submission(
    request: Request,
    model: Type,
    submit: Callable[[Any, ClientInfo], LeadSubmissionResult],
    rate_limiter: RateLimiter,
) -> LeadSubmissionResponse:
    client = _client_info(request)
    limit = rate_limiter.check(client.ip_address)
    if not limit.success:
        logger.info("Rate limit exceeded for %s on %s", client.ip_address, request.url.path)
        raise RateLimitExceededError(limit.retry_after)

    payload = await _read_json(request)
    submission = validate_submission(model, payload)
    result = await run_in_threadpool(submit, submission, client)
    return LeadSubmissionResponse(
        success=True,
        lead_id=result.lead.lead_id,
        message=result.message,
        warning=result.warning,
    )


@router.get("/health", status_code=status.HTTP_200_OK)
def health(settings: Settings = Depends(get_settings)) -> dict:
    return {"app": settings.app_name, "status": "ok"}


@submissions.post("/submit-partial", response_model=LeadSubmissionResponse, response_model_exclude_none=True)
async def submit_partial(
    request: Request,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    lead_service: LeadService = Depends(get_lead_service),
) -> LeadSubmissionResponse:
    return await _handle_submission(request, PartialLeadSubmission, lead_service.submit_partial, rate_limiter)


@submissions.post("/submit-lead", response_model=LeadSubmissionResponse, response_model_exclude_none=True)
async def submit_lead(
    request: Request,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    lead_service: LeadService = Depends(get_lead_service),
) -> LeadSubmissionResponse:
    return await _handle_submission(request, CompleteLeadSubmission, lead_service.submit_complete, rate_limiter)


@submissions.post("/submit-form", response_model=LeadSubmissionResponse, response_model_exclude_none=True)
async def submit_form(
    request: Request,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    lead_service: LeadService = Depends(get_lead_service),
) -> LeadSubmissionResponse:
    return await _handle_submission(request, FormLeadSubmission, lead_service.submit_form, rate_limiter)


def method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"error": "Method not allowed. This endpoint only accepts POST requests."},
        headers={"Allow": "POST, OPTIONS"},
    )


def preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_PREFLIGHT_HEADERS)


for _path in SUBMIT_PATHS:
    submissions.add_api_route(_path, method_not_allowed, methods=["GET"], include_in_schema=False)
    submissions.add_api_route(_path, preflight, methods=["OPTIONS"], include_in_schema=False)
