"""Tests for the Plan-Re-Act planner."""

from __future__ import annotations

from agentflow.planners.plan_react import (
    ACTION_TAG,
    FINAL_ANSWER_TAG,
    PLANNING_TAG,
    REASONING_TAG,
    PlanReActPlanner,
)
from agentflow.types.content import Part


def _process(parts: list[Part]) -> list[Part] | None:
    # Context is unused by this planner.
    return PlanReActPlanner().process_planning_response(None, parts)  # type: ignore[arg-type]


class TestPlanReAct:
    def test_instruction_mentions_tags(self) -> None:
        instruction = PlanReActPlanner().build_planning_instruction(None, None)  # type: ignore[arg-type]
        for tag in (PLANNING_TAG, REASONING_TAG, ACTION_TAG, FINAL_ANSWER_TAG):
            assert tag in instruction

    def test_empty(self) -> None:
        assert _process([]) is None

    def test_final_answer_split(self) -> None:
        parts = _process([Part(text=f"{PLANNING_TAG} look it up {FINAL_ANSWER_TAG} 42")])
        assert parts is not None
        thought, answer = parts
        assert thought.thought
        assert thought.text == f"{PLANNING_TAG} look it up {FINAL_ANSWER_TAG}"
        assert answer.text == " 42"
        assert not answer.thought

    def test_tagged_sections_marked_as_thought(self) -> None:
        parts = _process([Part(text=f"{REASONING_TAG} next, search"), Part(text="plain")])
        assert parts is not None
        assert [p.thought for p in parts] == [True, False]

    def test_only_first_run_of_calls_kept(self) -> None:
        parts = _process(
            [
                Part(text=f"{ACTION_TAG} searching"),
                Part.from_function_call("search", {"q": "a"}),
                Part.from_function_call("search", {"q": "b"}),
                Part(text="between"),
                Part.from_function_call("search", {"q": "c"}),
            ]
        )
        assert parts is not None
        calls = [p.function_call.args["q"] for p in parts if p.function_call]
        assert calls == ["a", "b"]
        assert all(p.text != "between" for p in parts)

    def test_unnamed_call_skipped(self) -> None:
        parts = _process([Part.from_function_call("", {}), Part(text="after")])
        assert parts is not None
        assert [p.text for p in parts] == ["after"]
