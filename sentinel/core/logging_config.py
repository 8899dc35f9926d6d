import logging
from typing import Optional

import structlog

from sentinel.core.config import settings


def configure_logging(debug: Optional[bool] = None) -> None:
    """Configure structlog on top of stdlib logging.

    Console output while debugging, one JSON object per line otherwise, so the
    sweep worker and the host process emit the same event shape.
    """
    debug = settings.DEBUG if debug is None else debug
    renderer = structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )
    # SQL echo is controlled by the engine, keep the driver chatter out of INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
