"""
CORS Gate - Policy Engine
=========================
Origin, method and header negotiation for cross-origin requests
"""

import threading
from typing import Any, Mapping, Optional

from ..core.logging import logger
from .messages import HttpRequest, HttpResponse, ResponseFactory, ResponseMessage
from .options import CorsConfigurationError, CorsOptions, PolicyConfig


# =============================================================================
# Header Names
# =============================================================================

ALLOW_ORIGIN = "Access-Control-Allow-Origin"
ALLOW_METHODS = "Access-Control-Allow-Methods"
ALLOW_HEADERS = "Access-Control-Allow-Headers"
ALLOW_CREDENTIALS = "Access-Control-Allow-Credentials"
EXPOSE_HEADERS = "Access-Control-Expose-Headers"
MAX_AGE = "Access-Control-Max-Age"
REQUEST_METHOD = "Access-Control-Request-Method"
REQUEST_HEADERS = "Access-Control-Request-Headers"
VARY = "Vary"

RESPONSE_HEADERS = (
    ALLOW_ORIGIN,
    ALLOW_METHODS,
    ALLOW_HEADERS,
    ALLOW_CREDENTIALS,
    EXPOSE_HEADERS,
    MAX_AGE,
    VARY,
)


class CorsService:
    """
    CORS policy engine.

    Holds an immutable PolicyConfig and annotates responses according to
    it. Every per-request method reads the configuration once, so a single
    evaluation never mixes two policies even while ``reconfigure`` runs.

    Usage:
        service = CorsService({"allowedOrigins": ["https://app.example.com"]})
        if service.is_preflight_request(request):
            return service.handle_preflight_request(request)
        response = service.add_actual_request_headers(response, request)
    """

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        response_factory: ResponseFactory = ResponseMessage.create,
    ):
        self._response_factory = response_factory
        self._lock = threading.Lock()
        self._config = PolicyConfig()

        if options:
            self.reconfigure(options)

    @property
    def config(self) -> PolicyConfig:
        """Current policy snapshot."""
        return self._config

    # =========================================================================
    # Configuration
    # =========================================================================

    def reconfigure(self, options: Mapping[str, Any]) -> PolicyConfig:
        """
        Apply an option bag on top of the current policy.

        Options missing from the bag keep their current value. The new
        policy is fully built before it replaces the old one.

        Args:
            options: camelCase or snake_case CORS options

        Returns:
            The policy now in effect

        Raises:
            CorsConfigurationError: If an option has an invalid type or value
        """
        try:
            update = CorsOptions.parse(options)
        except CorsConfigurationError as e:
            logger.warning("Rejected CORS configuration", errors=e.errors or str(e))
            raise

        unknown = sorted(set(options) - CorsOptions.known_keys())
        if unknown:
            logger.warning("Ignoring unknown CORS options", keys=unknown)

        with self._lock:
            config = PolicyConfig.from_options(self._config.options.merge(update))
            self._config = config

        logger.info(
            "CORS policy reconfigured",
            origins=len(config.allowed_origins),
            patterns=len(config.allowed_origins_patterns),
            allow_all_origins=config.allow_all_origins,
            supports_credentials=config.supports_credentials,
        )
        return config

    # =========================================================================
    # Classification
    # =========================================================================

    def is_cors_request(self, request: HttpRequest) -> bool:
        return request.has_header("Origin")

    def is_preflight_request(self, request: HttpRequest) -> bool:
        return request.method == "OPTIONS" and request.has_header(REQUEST_METHOD)

    def is_origin_allowed(self, request: HttpRequest) -> bool:
        return self._is_origin_allowed(self._config, request)

    def _is_origin_allowed(self, config: PolicyConfig, request: HttpRequest) -> bool:
        if config.allow_all_origins:
            return True

        origin = request.get_header_line("Origin")
        if origin == "":
            return False

        if origin in config.allowed_origins:
            return True

        return any(pattern.search(origin) for pattern in config.allowed_origins_patterns)

    # =========================================================================
    # Response Annotation
    # =========================================================================

    def handle_preflight_request(self, request: HttpRequest) -> HttpResponse:
        """Create a 204 preflight response carrying the CORS headers."""
        response = self._response_factory(204)
        return self.add_preflight_request_headers(response, request)

    def add_preflight_request_headers(
        self, response: HttpResponse, request: HttpRequest
    ) -> HttpResponse:
        config = self._config
        if not self.is_cors_request(request):
            return response

        response = self._configure_allowed_origin(config, response, request)
        if not response.has_header(ALLOW_ORIGIN):
            return response

        response = self._configure_allowed_methods(config, response, request)
        response = self._configure_allowed_headers(config, response, request)
        response = self._configure_allow_credentials(config, response)
        return self._configure_max_age(config, response)

    def add_actual_request_headers(
        self, response: HttpResponse, request: HttpRequest
    ) -> HttpResponse:
        config = self._config
        if not self.is_cors_request(request):
            return response

        response = self._configure_allowed_origin(config, response, request)
        if not response.has_header(ALLOW_ORIGIN):
            return response

        response = self._configure_allow_credentials(config, response)
        return self._configure_exposed_headers(config, response)

    def _configure_allowed_origin(
        self, config: PolicyConfig, response: HttpResponse, request: HttpRequest
    ) -> HttpResponse:
        # "*" is never valid together with credentials
        if config.allow_all_origins and not config.supports_credentials:
            return response.with_header(ALLOW_ORIGIN, "*")

        # Static origin, cacheable without Vary
        single_origin = config.single_origin
        if single_origin is not None:
            if single_origin:
                return response.with_header(ALLOW_ORIGIN, single_origin)
            return response

        if self._is_origin_allowed(config, request):
            response = response.with_header(ALLOW_ORIGIN, request.get_header_line("Origin"))
        else:
            logger.debug("CORS origin rejected", origin=request.get_header_line("Origin"))

        return self.vary_header(response, "Origin")

    def _configure_allowed_methods(
        self, config: PolicyConfig, response: HttpResponse, request: HttpRequest
    ) -> HttpResponse:
        if config.allow_all_methods:
            allow_methods = request.get_header_line(REQUEST_METHOD)
            response = self.vary_header(response, REQUEST_METHOD)
        else:
            allow_methods = ", ".join(config.allowed_methods)

        return response.with_header(ALLOW_METHODS, allow_methods)

    def _configure_allowed_headers(
        self, config: PolicyConfig, response: HttpResponse, request: HttpRequest
    ) -> HttpResponse:
        if config.allow_all_headers:
            allow_headers = request.get_header_line(REQUEST_HEADERS)
            response = self.vary_header(response, REQUEST_HEADERS)
        else:
            allow_headers = ", ".join(config.allowed_headers)

        return response.with_header(ALLOW_HEADERS, allow_headers)

    def _configure_allow_credentials(
        self, config: PolicyConfig, response: HttpResponse
    ) -> HttpResponse:
        if config.supports_credentials:
            return response.with_header(ALLOW_CREDENTIALS, "true")
        return response

    def _configure_exposed_headers(
        self, config: PolicyConfig, response: HttpResponse
    ) -> HttpResponse:
        if config.exposed_headers:
            return response.with_header(EXPOSE_HEADERS, ", ".join(config.exposed_headers))
        return response

    def _configure_max_age(self, config: PolicyConfig, response: HttpResponse) -> HttpResponse:
        if config.max_age is not None:
            return response.with_header(MAX_AGE, str(config.max_age))
        return response

    # =========================================================================
    # Vary
    # =========================================================================

    def vary_header(self, response: HttpResponse, header: str) -> HttpResponse:
        """
        Add ``header`` to the response's Vary list.

        Existing tokens keep their order and new ones are appended, so
        applying the same header twice is a no-op.
        """
        if not response.has_header(VARY):
            return response.with_header(VARY, header)

        parts = [part.strip() for part in response.get_header_line(VARY).split(",")]
        parts = [part for part in parts if part]
        if header in parts:
            return response

        parts.append(header)
        return response.with_header(VARY, ", ".join(parts))
