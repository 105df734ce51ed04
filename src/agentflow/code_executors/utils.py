"""Helpers for moving code between model text and structured parts."""

from __future__ import annotations

import re

from agentflow.code_executors.base import CodeExecutionOutput
from agentflow.types.content import (
    CodeExecutionResult,
    Content,
    ExecutableCode,
    Outcome,
    Part,
    Role,
)


def extract_code_and_truncate_content(
    content: Content, code_block_delimiters: list[tuple[str, str]]
) -> str | None:
    """Pull the first code block out of ``content``.

    Existing ``executable_code`` parts win. Otherwise the text parts are
    scanned for the first fenced block; on a match the content is rewritten
    to the text before the block followed by an ``executable_code`` part,
    and everything after the block is dropped.
    """
    if not content.parts:
        return None

    for i, part in enumerate(content.parts):
        if part.executable_code is not None:
            if i < len(content.parts) - 1 and content.parts[i + 1].code_execution_result:
                continue
            content.parts = content.parts[: i + 1]
            return part.executable_code.code

    text_parts = [p for p in content.parts if p.text and not p.thought]
    if not text_parts:
        return None
    response_text = "\n".join(p.text or "" for p in text_parts)

    alternatives = "|".join(
        rf"{re.escape(start)}(?P<code_{n}>.*?){re.escape(end)}"
        for n, (start, end) in enumerate(code_block_delimiters)
    )
    match = re.search(rf"(?P<prefix>.*?)(?:{alternatives})", response_text, re.DOTALL)
    if match is None:
        return None
    code = next(v for k, v in match.groupdict().items() if k.startswith("code_") and v is not None)

    parts: list[Part] = []
    prefix = match.group("prefix")
    if prefix:
        parts.append(Part(text=prefix))
    parts.append(build_executable_code_part(code))
    content.parts = parts
    return code


def build_executable_code_part(code: str) -> Part:
    return Part(executable_code=ExecutableCode(code=code, language="python"))


def build_code_execution_result_part(output: CodeExecutionOutput) -> Part:
    if output.stderr:
        return Part(
            code_execution_result=CodeExecutionResult(
                outcome=Outcome.FAILED, output=output.stderr,
            )
        )
    text = f"Code execution result:\n{output.stdout}\n" if output.stdout else (
        "Code execution result: no output\n"
    )
    return Part(code_execution_result=CodeExecutionResult(outcome=Outcome.OK, output=text))


def convert_code_execution_parts(
    content: Content,
    code_block_delimiter: tuple[str, str],
    execution_result_delimiters: tuple[str, str],
) -> None:
    """Rewrite a trailing code or result part as fenced text, in place."""
    if not content.parts:
        return
    last = content.parts[-1]
    if last.executable_code is not None:
        start, end = code_block_delimiter
        content.parts[-1] = Part(text=f"{start}{last.executable_code.code}{end}")
    elif len(content.parts) == 1 and last.code_execution_result is not None:
        start, end = execution_result_delimiters
        content.parts[-1] = Part(text=f"{start}{last.code_execution_result.output}{end}")
        content.role = Role.USER
