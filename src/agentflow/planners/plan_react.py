"""Plan-Re-Act planner: plan, reason and act in tagged sections."""

from __future__ import annotations

from typing import TYPE_CHECKING

from agentflow.planners.base import BasePlanner
from agentflow.types.content import Part

if TYPE_CHECKING:
    from agentflow.agents.callback_context import CallbackContext, ReadonlyContext
    from agentflow.types.llm import LlmRequest

PLANNING_TAG = "/*PLANNING*/"
REPLANNING_TAG = "/*REPLANNING*/"
REASONING_TAG = "/*REASONING*/"
ACTION_TAG = "/*ACTION*/"
FINAL_ANSWER_TAG = "/*FINAL_ANSWER*/"

_THOUGHT_TAGS = (PLANNING_TAG, REPLANNING_TAG, REASONING_TAG, ACTION_TAG)


def _split_by_last_pattern(text: str, separator: str) -> tuple[str, str]:
    index = text.rfind(separator)
    if index == -1:
        return text, ""
    cut = index + len(separator)
    return text[:cut], text[cut:]


class PlanReActPlanner(BasePlanner):
    """Asks the model for a plan before any action and tags each section.

    Planning, reasoning and action text comes back marked as thought; the
    text after the final-answer tag is the answer. Only the first run of
    function calls in a response is kept.
    """

    def build_planning_instruction(
        self, readonly_context: ReadonlyContext, llm_request: LlmRequest
    ) -> str:
        return _PLANNING_INSTRUCTION

    def process_planning_response(
        self, callback_context: CallbackContext, response_parts: list[Part]
    ) -> list[Part] | None:
        if not response_parts:
            return None

        preserved: list[Part] = []
        first_call_index = -1
        for i, part in enumerate(response_parts):
            if part.function_call is not None:
                if not part.function_call.name:
                    continue
                preserved.append(part)
                first_call_index = i
                break
            self._handle_non_function_call_part(part, preserved)

        if first_call_index >= 0:
            for part in response_parts[first_call_index + 1:]:
                if part.function_call is None:
                    break
                preserved.append(part)

        return preserved

    def _handle_non_function_call_part(self, part: Part, preserved: list[Part]) -> None:
        if part.text and FINAL_ANSWER_TAG in part.text:
            reasoning, final_answer = _split_by_last_pattern(part.text, FINAL_ANSWER_TAG)
            if reasoning:
                preserved.append(Part(text=reasoning, thought=True))
            if final_answer:
                preserved.append(Part(text=final_answer))
            return
        if part.text and part.text.startswith(_THOUGHT_TAGS):
            part.thought = True
        preserved.append(part)


_PLANNING_INSTRUCTION = f"""\
When answering the question, try to leverage the available tools to gather the \
information instead of your memorized knowledge.

Follow this process when answering the question: (1) first come up with a plan \
in natural language text format; (2) then use tools to execute the plan and \
provide reasoning between tool code snippets to make a summary of current state \
and next step; (3) in the end, return one final answer.

Follow this format when answering the question: (1) the planning part should be \
under {PLANNING_TAG}; (2) the tool calls should be under {ACTION_TAG}, and the \
reasoning parts should be under {REASONING_TAG}; (3) the final answer part \
should be under {FINAL_ANSWER_TAG}.

Planning requirements: the plan is a numbered list of steps, each step using \
one or more of the available tools. If the initial plan cannot be executed \
successfully, revise it under {REPLANNING_TAG} and continue.

Reasoning requirements: summarize what has been learned so far and what the \
next step is, based on the plan and the tool results.

Final answer requirements: give a precise answer that follows any formatting \
the user asked for. If the question cannot be answered, explain why and ask \
for the information needed."""
