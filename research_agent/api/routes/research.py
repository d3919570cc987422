from __future__ import annotations

import asyncio
import json
from uuid import uuid4

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from research_agent.agents.orchestrator import ResearchOrchestrator
from research_agent.api.deps import get_orchestrator
from research_agent.config import settings
from research_agent.errors import ConfigurationError, ResearchTimeoutError, normalize_error_message
from research_agent.models.schemas import ErrorResponse, ResearchRequest, ResearchResponse
from research_agent.services import logger as log_service
from research_agent.services.progress import LoggingProgressReporter

router = APIRouter(prefix="/api/research", tags=["research"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


async def _parse_request(request: Request) -> ResearchRequest | JSONResponse:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "Invalid JSON body")

    if not isinstance(payload, dict):
        return _error(400, "Topic is required")
    try:
        parsed = ResearchRequest.model_validate(payload)
    except ValidationError:
        return _error(400, "Topic is required")
    if not parsed.topic:
        return _error(400, "Topic is required")
    return parsed


@router.options("")
async def research_preflight() -> Response:
    """Answer CORS pre-flight requests that bypass the middleware."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(
    "",
    response_model=ResearchResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def run_research(
    request: Request,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """Run a full research loop and return the report once it is written."""
    parsed = await _parse_request(request)
    if isinstance(parsed, JSONResponse):
        return parsed

    request_id = str(uuid4())
    log_service.log_event(
        event_type="research_started",
        message="Research started",
        request_id=request_id,
        topic=parsed.topic[:100],
        max_depth=parsed.max_depth,
    )

    try:
        try:
            result = await asyncio.wait_for(
                orchestrator.run(
                    parsed.topic,
                    parsed.max_depth,
                    LoggingProgressReporter(request_id),
                ),
                timeout=settings.research_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ResearchTimeoutError(
                f"Research request timed out after {settings.research_timeout_seconds:.0f}s"
            ) from e
    except ConfigurationError as e:
        log_service.log_event(
            event_type="research_config_error",
            message=str(e),
            request_id=request_id,
        )
        return _error(500, str(e))
    except Exception as e:
        log_service.logger.exception(f"Deep research error for request {request_id}")
        return _error(500, normalize_error_message(e))

    log_service.log_event(
        event_type="research_completed",
        message="Research completed",
        request_id=request_id,
        total_findings=result.total_findings,
        sources=len(result.sources),
    )
    return JSONResponse(content=result.model_dump(by_alias=True))
