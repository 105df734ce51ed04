"""Code executor contract.

Sandboxing is the executor's business. The engine extracts code from model
output, hands it over as a :class:`CodeExecutionInput`, and records the
returned :class:`CodeExecutionOutput` in the transcript.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentflow.agents.invocation_context import InvocationContext


@dataclass(slots=True)
class CodeExecutionInput:
    code: str
    execution_id: str | None = None


@dataclass(slots=True)
class CodeExecutionOutput:
    stdout: str = ""
    stderr: str = ""


class BaseCodeExecutor(ABC):
    """Runs code blocks the model writes.

    ``code_block_delimiters`` are the (opening, closing) fences that mark
    code to execute; ``execution_result_delimiters`` fence results when they
    are replayed to the model as text.
    """

    code_block_delimiters: list[tuple[str, str]] = [
        ("```tool_code\n", "\n```"),
        ("```python\n", "\n```"),
    ]
    execution_result_delimiters: tuple[str, str] = ("```tool_output\n", "\n```")

    @abstractmethod
    async def execute_code(
        self,
        invocation_context: InvocationContext,
        code_execution_input: CodeExecutionInput,
    ) -> CodeExecutionOutput: ...
