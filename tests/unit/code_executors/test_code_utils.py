"""Tests for code block extraction and result formatting."""

from __future__ import annotations

from agentflow.code_executors.base import BaseCodeExecutor, CodeExecutionOutput
from agentflow.code_executors.utils import (
    build_code_execution_result_part,
    build_executable_code_part,
    convert_code_execution_parts,
    extract_code_and_truncate_content,
)
from agentflow.types.content import Content, Outcome, Part, Role

DELIMITERS = BaseCodeExecutor.code_block_delimiters
RESULT_DELIMITERS = BaseCodeExecutor.execution_result_delimiters


class TestExtract:
    def test_no_code(self) -> None:
        content = Content.from_text("just words", role=Role.MODEL)
        assert extract_code_and_truncate_content(content, DELIMITERS) is None
        assert content.parts[0].text == "just words"

    def test_first_block_wins_and_rest_dropped(self) -> None:
        content = Content.from_text(
            "Run this:\n```tool_code\na = 1\n```\nthen\n```python\nb = 2\n```",
            role=Role.MODEL,
        )
        code = extract_code_and_truncate_content(content, DELIMITERS)
        assert code == "a = 1"
        assert len(content.parts) == 2
        assert content.parts[0].text == "Run this:\n"
        assert content.parts[1].executable_code is not None

    def test_block_without_prefix(self) -> None:
        content = Content.from_text("```python\nprint(1)\n```", role=Role.MODEL)
        assert extract_code_and_truncate_content(content, DELIMITERS) == "print(1)"
        assert len(content.parts) == 1

    def test_existing_executable_code_part(self) -> None:
        content = Content(
            role=Role.MODEL,
            parts=[Part(text="intro"), build_executable_code_part("x = 3"), Part(text="tail")],
        )
        assert extract_code_and_truncate_content(content, DELIMITERS) == "x = 3"
        assert len(content.parts) == 2

    def test_already_executed_part_skipped(self) -> None:
        content = Content(
            role=Role.MODEL,
            parts=[
                build_executable_code_part("x = 3"),
                build_code_execution_result_part(CodeExecutionOutput(stdout="")),
            ],
        )
        assert extract_code_and_truncate_content(content, DELIMITERS) is None


class TestResultParts:
    def test_success_output(self) -> None:
        result = build_code_execution_result_part(CodeExecutionOutput(stdout="5")).code_execution_result
        assert result is not None
        assert result.outcome == Outcome.OK
        assert result.output == "Code execution result:\n5\n"

    def test_no_output(self) -> None:
        result = build_code_execution_result_part(CodeExecutionOutput()).code_execution_result
        assert result is not None
        assert result.output == "Code execution result: no output\n"

    def test_stderr_is_failure(self) -> None:
        result = build_code_execution_result_part(
            CodeExecutionOutput(stdout="partial", stderr="boom")
        ).code_execution_result
        assert result is not None
        assert result.outcome == Outcome.FAILED
        assert result.output == "boom"


class TestConvertParts:
    def test_code_part_to_text(self) -> None:
        content = Content(role=Role.MODEL, parts=[Part(text="hi"), build_executable_code_part("x")])
        convert_code_execution_parts(content, DELIMITERS[0], RESULT_DELIMITERS)
        assert content.parts[-1].text == "```tool_code\nx\n```"
        assert content.role == Role.MODEL

    def test_result_part_to_user_text(self) -> None:
        content = Content(
            role=Role.MODEL,
            parts=[build_code_execution_result_part(CodeExecutionOutput(stdout="1"))],
        )
        convert_code_execution_parts(content, DELIMITERS[0], RESULT_DELIMITERS)
        assert content.role == Role.USER
        assert content.parts[0].text == "```tool_output\nCode execution result:\n1\n\n```"

    def test_plain_text_untouched(self) -> None:
        content = Content.from_text("hello", role=Role.MODEL)
        convert_code_execution_parts(content, DELIMITERS[0], RESULT_DELIMITERS)
        assert content.parts[0].text == "hello"
