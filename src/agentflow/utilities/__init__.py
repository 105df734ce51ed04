"""Utilities: logging setup and instruction templating."""

from agentflow.utilities.instructions import inject_session_state
from agentflow.utilities.logger import (
    bind_invocation_context,
    clear_invocation_context,
    get_logger,
    setup_logging,
)

__all__ = [
    "bind_invocation_context",
    "clear_invocation_context",
    "get_logger",
    "inject_session_state",
    "setup_logging",
]
