"""
Structured logging configuration using structlog.

Events are JSON by default (one object per line on stdout); set
LOG_FORMAT=console for a human-readable renderer while developing.
"""
import structlog
import logging
import sys
from typing import Any, Dict, Mapping

from app.config import settings

REDACTED = "***"
SECRET_KEYS = frozenset({"passphrase", "merchant_key", "signature", "api_key"})


def resolve_level(current=settings) -> int:
    if current.LOG_LEVEL:
        return logging.getLevelName(current.LOG_LEVEL.upper())
    return logging.DEBUG if current.DEBUG else logging.INFO


# Configure standard library logging
logging.basicConfig(
    format="%(message)s",
    stream=sys.stdout,
    level=resolve_level(),
)


def add_app_context(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """Tag every entry with the service name and environment."""
    event_dict['app'] = 'shop-orders'
    event_dict['environment'] = settings.ENVIRONMENT
    return event_dict


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED if k in SECRET_KEYS and v else _redact(v)
            for k, v in value.items()
        }
    return value


def redact_secrets(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """Mask gateway credentials, including inside logged payload dicts."""
    return _redact(event_dict)


def configure_logging(log_format: str = settings.LOG_FORMAT):
    """Configure structlog with processors."""
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_app_context,
            redact_secrets,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Initialize logging
configure_logging()


def get_logger(name: str = __name__):
    """Get a structured logger instance."""
    return structlog.get_logger(name)
