"""
CORS Gate - CORS Middleware
===========================
Mounts a CorsService on a FastAPI/Starlette application
"""

from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ...core.config import settings
from ...core.logging import logger
from ...cors.messages import RequestMessage, ResponseMessage
from ...cors.service import RESPONSE_HEADERS, CorsService


class CorsPolicyMiddleware(BaseHTTPMiddleware):
    """
    Middleware applying a CORS policy to every request.

    Preflight requests are answered directly; actual requests are passed
    on and their responses annotated.
    """

    def __init__(self, app: ASGIApp, service: CorsService):
        super().__init__(app)
        self.service = service

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        message = RequestMessage.from_starlette(request)

        if not self.service.is_cors_request(message):
            return await call_next(request)

        if self.service.is_preflight_request(message):
            return self.service.handle_preflight_request(message).to_starlette()

        response = await call_next(request)

        original = ResponseMessage.from_starlette(response)
        annotated = self.service.add_actual_request_headers(original, message)
        apply_cors_headers(response, original, annotated)

        return response


def apply_cors_headers(
    response: Response, original: ResponseMessage, annotated: ResponseMessage
) -> None:
    """Copy the CORS headers that changed during annotation onto ``response``."""
    for name in RESPONSE_HEADERS:
        if not annotated.has_header(name):
            continue
        value = annotated.get_header_line(name)
        if not original.has_header(name) or original.get_header_line(name) != value:
            response.headers[name] = value


def setup_cors_middleware(app: FastAPI, service: Optional[CorsService] = None) -> CorsService:
    """
    Configure CORS middleware for the application.

    Args:
        app: FastAPI application instance
        service: Policy engine to mount; built from settings when omitted

    Returns:
        The mounted CorsService, also available as ``app.state.cors``
    """
    if service is None:
        service = CorsService(settings.cors_options)

    config = service.config
    if not config.allowed_origins and not config.allowed_origins_patterns:
        logger.warning("No CORS origins configured, cross-origin requests will be rejected")

    app.state.cors = service
    app.add_middleware(CorsPolicyMiddleware, service=service)

    logger.info(
        "CORS middleware configured",
        origins=list(config.allowed_origins),
        patterns=[p.pattern for p in config.allowed_origins_patterns],
    )
    return service
