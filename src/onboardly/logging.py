import logging

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Event keys that may carry bearer secrets or their digests
SECRET_KEYS = frozenset({"token", "token_hash", "refresh_token", "access_token", "authorization", "jwt_secret_key"})
REDACTED = "[redacted]"


def redact_secrets(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Mask secret-bearing keys so a stray keyword argument cannot leak a credential."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def setup_logging(debug: bool) -> None:
    """Route structlog through stdlib logging: console output in debug, JSON lines otherwise."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format="%(message)s")
    # Driver chatter (topology, heartbeats) is only useful when debugging the driver itself
    logging.getLogger("pymongo").setLevel(logging.WARNING)

    renderer: Processor = structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
