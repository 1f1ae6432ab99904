"""structlog configuration for the engine and its host application."""

from __future__ import annotations

import logging

import structlog

from certlab.config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    """Route engine events through structlog, rendered as JSON or for the console.

    Engine operations bind ``user_id`` and ``tenant_id`` as context variables,
    so every event emitted inside one orchestration call carries them.
    """
    settings = settings or get_settings()
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level)
    logging.getLogger("certlab").setLevel(level)
