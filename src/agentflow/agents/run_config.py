"""Per-run settings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class StreamingMode(StrEnum):
    NONE = "none"
    SSE = "sse"
    BIDI = "bidi"


@dataclass(slots=True)
class RunConfig:
    """Settings for one run of an agent.

    ``max_llm_calls`` bounds the model calls of a single invocation;
    0 or a negative value disables the guard.
    """

    streaming_mode: StreamingMode = StreamingMode.NONE
    max_llm_calls: int = 500
