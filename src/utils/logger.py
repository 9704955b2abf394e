import logging
import sys

import structlog
from fastapi import Request
from structlog.stdlib import ProcessorFormatter


def get_client_ip(request: Request) -> str:
    if "x-forwarded-for" in request.headers:
        return request.headers["x-forwarded-for"].split(",")[0].strip()
    elif request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"  # localhost for development


# Values under these keys are replaced before rendering
REDACTED_KEYS = frozenset(
    {"authorization", "token", "stripe_signature", "input_data", "output_data"}
)


def redact_sensitive_fields(
    logger: structlog.BoundLogger, method_name: str, event_dict: dict
) -> dict:
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "[redacted]"
    return event_dict


def setup_logging(is_production: bool = False, debug: bool = False):
    """Setup structlog configuration with different formats for dev/prod."""
    log_level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        redact_sensitive_fields,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers = []

    if is_production:
        # JSON lines for log shipping
        formatter = ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(sort_keys=False),
        )
    else:
        formatter = ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=True, pad_event=8),
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    logging.getLogger("uvicorn").handlers = []
    logging.getLogger("uvicorn.access").handlers = []

    # Third-party clients are chatty at INFO
    logging.getLogger("stripe").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger = structlog.get_logger()
    return logger


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger instance with optional name."""
    return structlog.get_logger(name)
