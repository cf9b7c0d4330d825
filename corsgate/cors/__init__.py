"""
CORS Gate - CORS Policy
=======================
Policy engine, options and message types
"""

from .messages import HttpRequest, HttpResponse, RequestMessage, ResponseFactory, ResponseMessage
from .options import CorsConfigurationError, CorsOptions, PolicyConfig, convert_wildcard_to_pattern
from .service import CorsService

__all__ = [
    "CorsConfigurationError",
    "CorsOptions",
    "CorsService",
    "HttpRequest",
    "HttpResponse",
    "PolicyConfig",
    "RequestMessage",
    "ResponseFactory",
    "ResponseMessage",
    "convert_wildcard_to_pattern",
]
