"""Scripted model client for testing."""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from agentflow.types.content import Content, Part, Role
from agentflow.types.llm import FinishReason, LlmRequest, LlmResponse, TokenUsage

Script = LlmResponse | list[LlmResponse]


@dataclass
class MockLlm:
    """Model client that replays scripted responses in order.

    Each scripted item is either a single response or a list of responses
    yielded together (a streamed sequence). Once the script runs out,
    ``default_response`` is returned.
    """

    model: str = "mock"
    responses: list[Script] = field(default_factory=list)
    response_fn: Callable[[LlmRequest], Awaitable[Script]] | None = None
    default_response: LlmResponse = field(
        default_factory=lambda: LlmResponse(
            content=Content.from_text("Mock response", role=Role.MODEL),
            finish_reason=FinishReason.STOP,
            usage=TokenUsage(prompt_tokens=10, candidates_tokens=5, total_tokens=15),
        )
    )
    call_history: list[tuple[LlmRequest, bool]] = field(default_factory=list)
    _response_index: int = field(default=0, init=False)

    @property
    def call_count(self) -> int:
        return len(self.call_history)

    @property
    def last_request(self) -> LlmRequest | None:
        return self.call_history[-1][0] if self.call_history else None

    async def generate(
        self,
        request: LlmRequest,
        *,
        stream: bool = False,
    ) -> AsyncIterator[LlmResponse]:
        self.call_history.append((request, stream))
        script = await self._next_script(request)
        items = script if isinstance(script, list) else [script]
        for item in items:
            yield copy.deepcopy(item)

    async def _next_script(self, request: LlmRequest) -> Script:
        if self.response_fn is not None:
            return await self.response_fn(request)
        if self._response_index < len(self.responses):
            script = self.responses[self._response_index]
            self._response_index += 1
            return script
        return self.default_response

    def add_response(
        self,
        text: str = "",
        *,
        function_calls: list[tuple[str, dict[str, Any]]] | None = None,
        finish_reason: FinishReason = FinishReason.STOP,
        usage: TokenUsage | None = None,
    ) -> MockLlm:
        parts: list[Part] = []
        if text:
            parts.append(Part(text=text))
        for name, args in function_calls or []:
            parts.append(Part.from_function_call(name, args))
        self.responses.append(
            LlmResponse(
                content=Content(role=Role.MODEL, parts=parts),
                finish_reason=finish_reason,
                usage=usage or TokenUsage(prompt_tokens=10, candidates_tokens=5, total_tokens=15),
            )
        )
        return self

    def add_function_calls(self, *calls: tuple[str, dict[str, Any]], text: str = "") -> MockLlm:
        return self.add_response(text, function_calls=list(calls))

    def add_streamed_text(self, chunks: list[str], *, complete: bool = True) -> MockLlm:
        """Script a streamed reply: one partial response per chunk.

        With ``complete`` the run ends in a non-partial response holding the
        full text; without it the stream is cut off after the last chunk.
        """
        stream: list[LlmResponse] = [
            LlmResponse(content=Content.from_text(chunk, role=Role.MODEL), partial=True)
            for chunk in chunks
        ]
        if complete:
            stream.append(
                LlmResponse(
                    content=Content.from_text("".join(chunks), role=Role.MODEL),
                    finish_reason=FinishReason.STOP,
                    turn_complete=True,
                )
            )
        self.responses.append(stream)
        return self

    def reset(self) -> None:
        self.call_history.clear()
        self._response_index = 0
