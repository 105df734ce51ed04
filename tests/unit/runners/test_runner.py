"""Tests for Runner session handling and agent selection."""

from __future__ import annotations

import pytest

from agentflow.agents.llm_agent import LlmAgent
from agentflow.errors import SessionNotFoundError
from agentflow.models.mock import MockLlm
from agentflow.runners import InMemoryRunner
from agentflow.types.content import Content
from agentflow.types.events import USER_AUTHOR
from tests.helpers import collect_turn, new_runner
from tests.helpers.fixtures import APP_NAME, SESSION_ID, USER_ID


async def _stored_events(runner: InMemoryRunner):
    session = await runner.session_service.get_session(
        app_name=APP_NAME, user_id=USER_ID, session_id=SESSION_ID,
    )
    assert session is not None
    return session.events


class TestRunner:
    @pytest.mark.asyncio
    async def test_missing_session(self) -> None:
        runner = InMemoryRunner(LlmAgent(name="a", model=MockLlm()))
        with pytest.raises(SessionNotFoundError):
            async for _ in runner.run_async(user_id="u", session_id="nope", new_message="hi"):
                pass

    @pytest.mark.asyncio
    async def test_user_message_and_events_persisted(self) -> None:
        llm = MockLlm().add_response("hello")
        runner = await new_runner(LlmAgent(name="a", model=llm))

        events = await collect_turn(runner, Content.from_text("hi"))

        stored = await _stored_events(runner)
        assert [e.author for e in stored] == [USER_AUTHOR, "a"]
        assert stored[1].id == events[0].id
        assert stored[0].invocation_id == stored[1].invocation_id
        assert stored[0].invocation_id.startswith("e-")

    @pytest.mark.asyncio
    async def test_each_turn_new_invocation(self) -> None:
        runner = await new_runner(LlmAgent(name="a", model=MockLlm()))
        first = await collect_turn(runner, "one")
        second = await collect_turn(runner, "two")
        assert first[0].invocation_id != second[0].invocation_id

    @pytest.mark.asyncio
    async def test_temp_state_cleared_after_turn(self) -> None:
        llm = MockLlm().add_response("ok")
        seen: list[object] = []

        def before(cc):
            cc.state["temp_scratch"] = "x"

        def after(cc):
            seen.append(cc.state.get("temp_scratch"))

        agent = LlmAgent(
            name="a", model=llm, before_agent_callbacks=[before], after_agent_callbacks=[after],
        )
        runner = await new_runner(agent)

        await collect_turn(runner, "hi")
        await collect_turn(runner, "again")

        assert seen == ["x", "x"]
        session = await runner.session_service.get_session(
            app_name=APP_NAME, user_id=USER_ID, session_id=SESSION_ID,
        )
        assert session is not None
        assert "temp_scratch" not in session.state


class TestAgentSelection:
    @pytest.mark.asyncio
    async def test_conversation_stays_with_transferred_agent(self) -> None:
        billing_llm = MockLlm().add_response("Balance is $5.").add_response("Paid.")
        billing = LlmAgent(name="billing-agent", model=billing_llm)
        root_llm = MockLlm().add_function_calls(
            ("transfer_to_agent", {"agent_name": "billing-agent"})
        )
        runner = await new_runner(LlmAgent(name="root", model=root_llm, sub_agents=[billing]))

        await collect_turn(runner, "what do I owe?")
        events = await collect_turn(runner, "pay it")

        assert [e.author for e in events] == ["billing-agent"]
        assert events[0].text == "Paid."
        assert root_llm.call_count == 1

    @pytest.mark.asyncio
    async def test_returns_to_root_when_agent_cannot_transfer_back(self) -> None:
        worker_llm = MockLlm().add_response("done")
        worker = LlmAgent(name="worker", model=worker_llm, disallow_transfer_to_parent=True)
        root_llm = (
            MockLlm()
            .add_function_calls(("transfer_to_agent", {"agent_name": "worker"}))
            .add_response("root again")
        )
        runner = await new_runner(LlmAgent(name="root", model=root_llm, sub_agents=[worker]))

        await collect_turn(runner, "do work")
        events = await collect_turn(runner, "next")

        assert [e.author for e in events] == ["root"]
        assert events[0].text == "root again"
