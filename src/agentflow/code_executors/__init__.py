"""Code execution contract for agents that run model-written code."""

from agentflow.code_executors.base import (
    BaseCodeExecutor,
    CodeExecutionInput,
    CodeExecutionOutput,
)

__all__ = [
    "BaseCodeExecutor",
    "CodeExecutionInput",
    "CodeExecutionOutput",
]
