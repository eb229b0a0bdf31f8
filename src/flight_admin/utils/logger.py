"""
Structured logging for the flight admin services.

Every event carries the service name and environment. Events emitted while
an HTTP request is being handled also carry its ``request_id``, bound
through structlog's context variables by the request middleware, so call
admission, retries and calendar rebuilds can be traced back to the request
that caused them.
"""

import logging
import structlog
from typing import Any, Dict, List, Optional

from ..config import config


SERVICE_NAME = "flight-admin"


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Stamp the service name and environment on every event"""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", config.server.environment)
    return event_dict


def build_processors(log_format: str) -> List[Any]:
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_service_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Setup structured logging configuration"""
    level = (level or config.logging.level).upper()
    log_format = (log_format or config.logging.log_format).lower()

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level, logging.INFO),
    )
    # httpx logs every request at INFO; the booking client logs its own
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.configure(
        processors=build_processors(log_format),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def bind_request_context(request_id: str, **extra: Any) -> None:
    """Attach ``request_id`` to every event logged until the request ends"""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **extra)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)
