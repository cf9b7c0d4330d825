"""
CORS Gate - Logging Configuration
=================================
Structured logging for policy decisions and configuration changes
"""

import logging
import re
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.types import Processor

from .config import settings


# Request-supplied values (Origin, requested headers) end up in log events
CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
MAX_LOGGED_VALUE = 256
REQUEST_DERIVED_KEYS = frozenset({"origin", "path"})


def escape_untrusted(value: Any, truncate: bool = False) -> Any:
    """
    Make a value safe to log.

    Control characters are escaped so a crafted header cannot forge log
    lines. With ``truncate``, strings longer than MAX_LOGGED_VALUE are cut;
    only request-derived keys are truncated, configuration values such as
    origin patterns are logged in full.
    """
    if isinstance(value, str):
        result = CONTROL_CHARS.sub(lambda m: f"\\x{ord(m.group()):02x}", value)
        if truncate and len(result) > MAX_LOGGED_VALUE:
            result = result[:MAX_LOGGED_VALUE] + "..."
        return result
    elif isinstance(value, list):
        return [escape_untrusted(item, truncate) for item in value]
    return value


# =============================================================================
# Custom Processors
# =============================================================================


def untrusted_value_escaper(
    logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Structlog processor escaping request-derived values."""
    return {
        k: v if k == "event" else escape_untrusted(v, truncate=k in REQUEST_DERIVED_KEYS)
        for k, v in event_dict.items()
    }


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Add application context to log events."""
    event_dict["app"] = settings.app_name
    event_dict["version"] = settings.app_version
    event_dict["environment"] = "development" if settings.dev_mode else "production"
    return event_dict


# =============================================================================
# Logger Configuration
# =============================================================================


def configure_logging() -> None:
    """Configure structlog and standard logging."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # Suppress noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        untrusted_value_escaper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Use JSON in production, console in development
    if settings.dev_mode:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Optional logger name

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


# Initialize logging on module load
configure_logging()

# Default logger instance
logger = get_logger("corsgate")
