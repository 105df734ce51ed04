"""Structured logging using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def setup_logging(*, debug: bool = False, json_output: bool = False) -> None:
    """Configure structlog and stdlib logging for an application.

    Library modules only create loggers; call this once from the host.

    Args:
        debug: Enable DEBUG level logging.
        json_output: Use JSON output format instead of console.
    """
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )
    logging.getLogger("agentflow").setLevel(level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "agentflow", **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, optionally pre-bound with context values."""
    return structlog.get_logger(name, **initial_values)


INVOCATION_CONTEXT_KEYS = ("user_id", "session_id", "invocation_id")


def bind_invocation_context(*, user_id: str, session_id: str, invocation_id: str) -> None:
    """Tag every structlog line emitted in this context with the invocation ids."""
    structlog.contextvars.bind_contextvars(
        user_id=user_id, session_id=session_id, invocation_id=invocation_id,
    )


def clear_invocation_context() -> None:
    structlog.contextvars.unbind_contextvars(*INVOCATION_CONTEXT_KEYS)
