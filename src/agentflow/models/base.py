"""Model boundary protocol.

The engine never talks to a vendor directly. Anything that can turn an
:class:`LlmRequest` into one or more :class:`LlmResponse` objects can drive
an agent.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from agentflow.types.llm import LlmRequest, LlmResponse


@runtime_checkable
class BaseLlm(Protocol):
    """Protocol for model clients.

    ``generate`` yields exactly one non-partial response when ``stream`` is
    false. When ``stream`` is true it yields zero or more partial responses
    followed by one non-partial response.
    """

    @property
    def model(self) -> str: ...

    def generate(
        self,
        request: LlmRequest,
        *,
        stream: bool = False,
    ) -> AsyncIterator[LlmResponse]: ...
