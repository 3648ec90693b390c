"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers

from recipe_ingest.api.errors import error_response, register_error_handlers
from recipe_ingest.api.models import AnalyzeResponse, ErrorBody
from recipe_ingest.app_logging import configure_logging
from recipe_ingest.containers import AppContainer
from recipe_ingest.errors import RateLimitError

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status_code: {"model": ErrorBody} for status_code in (400, 415, 429, 500)
}


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """CORS middleware whose preflight answers carry headers but no body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in {"content-length", "content-type"}
        }
        return Response(status_code=response.status_code, headers=headers)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.add_middleware(
        EmptyPreflightCORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.options("/api/analyze")
    async def analyze_preflight() -> Response:
        """Answer bare OPTIONS requests with permissive CORS headers."""
        return Response(status_code=200, headers=_CORS_HEADERS)

    @app.post(
        "/api/analyze",
        response_model=AnalyzeResponse,
        responses=_ERROR_RESPONSES,
    )
    async def analyze(request: Request) -> AnalyzeResponse | JSONResponse:
        """Extract a weighted ingredient list from recipe text and/or photos."""
        state_container: AppContainer = request.app.state.container
        include_details = state_container.settings.debug_errors
        client_id = _client_id(request)
        try:
            decision = state_container.rate_limiter.admit(client_id)
            if not decision.allowed:
                logger.info(
                    "Rate limited client=%s reason=%s", client_id, decision.reason
                )
                raise RateLimitError(decision.reason, decision.retry_after_seconds)
            extraction_request = await state_container.normalizer.parse(request)
            ingredients = await state_container.ingestion_service.extract(
                extraction_request
            )
        except Exception as exc:
            return error_response(exc, include_details=include_details)
        return AnalyzeResponse(data=ingredients)

    return app


def _client_id(request: Request) -> str:
    """Identify the caller by forwarded address or socket peer.

    Trusts ``X-Forwarded-For`` as set by the Vercel edge proxy, which
    overwrites any client-supplied value. Behind a proxy that passes the
    header through unchanged, callers can choose their own rate-limit key.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",", maxsplit=1)[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
