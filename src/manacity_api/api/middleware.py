"""CORS, security headers, and request trace id middleware."""

import re
import uuid
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from manacity_api.core.config import Settings

_TRACE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware on the FastAPI app."""
    kwargs: dict[str, Any] = {
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
        "expose_headers": [settings.trace_id_header],
    }
    if settings.cors_origin_list:
        kwargs["allow_origins"] = settings.cors_origin_list
    if settings.cors_origin_regex.strip():
        kwargs["allow_origin_regex"] = settings.cors_origin_regex.strip()
    app.add_middleware(CORSMiddleware, **kwargs)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a trace id.

    A well-formed inbound trace id header is reused; otherwise a new id is
    generated. The id is exposed as ``request.state.trace_id``, bound to
    log records emitted while handling the request, and echoed on the
    response.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Trace-Id") -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        inbound = request.headers.get(self.header_name, "").strip()
        trace_id = inbound if _TRACE_ID_PATTERN.match(inbound) else uuid.uuid4().hex
        request.state.trace_id = trace_id
        with logger.contextualize(trace_id=trace_id):
            response = await call_next(request)
        response.headers[self.header_name] = trace_id
        return response
