"""Tests for the in-memory and SQLite session services."""

from __future__ import annotations

import json
from pathlib import Path

import aiosqlite
import pytest

from agentflow.sessions.base import BaseSessionService
from agentflow.sessions.in_memory import InMemorySessionService
from agentflow.sessions.sqlite import SqliteSessionService
from agentflow.types.content import Content, Role
from agentflow.types.events import Event, EventActions

APP = "shop"


def _delta_event(delta: dict, *, author: str = "agent", partial: bool = False) -> Event:
    return Event(
        invocation_id="e-1",
        author=author,
        content=Content.from_text("ok", role=Role.MODEL),
        actions=EventActions(state_delta=delta),
        partial=partial,
    )


@pytest.fixture(params=["memory", "sqlite"])
async def service(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        yield InMemorySessionService()
        return
    async with SqliteSessionService(tmp_path / "s.db") as sqlite_service:
        yield sqlite_service


class TestSessionLifecycle:
    @pytest.mark.asyncio
    async def test_create_and_get(self, service: BaseSessionService) -> None:
        created = await service.create_session(
            app_name=APP, user_id="alice", state={"cart": []}, session_id="s1",
        )
        assert created.id == "s1"
        fetched = await service.get_session(app_name=APP, user_id="alice", session_id="s1")
        assert fetched is not None
        assert fetched.state == {"cart": []}
        assert fetched.events == []

    @pytest.mark.asyncio
    async def test_generated_id(self, service: BaseSessionService) -> None:
        created = await service.create_session(app_name=APP, user_id="alice")
        assert created.id.startswith("session-")

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, service: BaseSessionService) -> None:
        await service.create_session(app_name=APP, user_id="alice", session_id="dup")
        with pytest.raises(ValueError, match="already exists"):
            await service.create_session(app_name=APP, user_id="alice", session_id="dup")

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, service: BaseSessionService) -> None:
        assert await service.get_session(app_name=APP, user_id="alice", session_id="x") is None

    @pytest.mark.asyncio
    async def test_list_sessions_carries_no_events(self, service: BaseSessionService) -> None:
        s1 = await service.create_session(app_name=APP, user_id="alice")
        await service.create_session(app_name=APP, user_id="alice")
        await service.create_session(app_name=APP, user_id="bob")
        await service.append_event(s1, _delta_event({"k": 1}))

        listed = await service.list_sessions(app_name=APP, user_id="alice")
        assert len(listed) == 2
        assert all(s.events == [] for s in listed)

    @pytest.mark.asyncio
    async def test_delete(self, service: BaseSessionService) -> None:
        s = await service.create_session(app_name=APP, user_id="alice")
        await service.delete_session(app_name=APP, user_id="alice", session_id=s.id)
        assert await service.get_session(app_name=APP, user_id="alice", session_id=s.id) is None

    @pytest.mark.asyncio
    async def test_update_session_persists_private_state(self, service: BaseSessionService) -> None:
        s = await service.create_session(app_name=APP, user_id="alice")
        s.state["note"] = "hello"
        await service.update_session(s)
        fetched = await service.get_session(app_name=APP, user_id="alice", session_id=s.id)
        assert fetched is not None
        assert fetched.state["note"] == "hello"

    @pytest.mark.asyncio
    async def test_update_session_keeps_newer_scoped_writes(
        self, service: BaseSessionService
    ) -> None:
        first = await service.create_session(app_name=APP, user_id="alice", state={"app_k": 1})
        second = await service.create_session(app_name=APP, user_id="bob")
        await service.append_event(second, _delta_event({"app_k": 2, "user_k": "bob"}))

        first.state["note"] = "stale view"
        await service.update_session(first)

        fetched = await service.get_session(app_name=APP, user_id="bob", session_id=second.id)
        assert fetched is not None
        assert fetched.state["app_k"] == 2
        refreshed = await service.get_session(app_name=APP, user_id="alice", session_id=first.id)
        assert refreshed is not None
        assert refreshed.state["app_k"] == 2
        assert refreshed.state["note"] == "stale view"


class TestAppendEvent:
    @pytest.mark.asyncio
    async def test_applies_delta_and_appends(self, service: BaseSessionService) -> None:
        s = await service.create_session(app_name=APP, user_id="alice")
        event = _delta_event({"count": 1})
        returned = await service.append_event(s, event)

        assert returned is event
        assert s.state["count"] == 1
        assert s.events == [event]
        assert s.last_update_time == event.timestamp

        fetched = await service.get_session(app_name=APP, user_id="alice", session_id=s.id)
        assert fetched is not None
        assert fetched.state["count"] == 1
        assert [e.id for e in fetched.events] == [event.id]

    @pytest.mark.asyncio
    async def test_partial_event_is_ignored(self, service: BaseSessionService) -> None:
        s = await service.create_session(app_name=APP, user_id="alice")
        await service.append_event(s, _delta_event({"count": 1}, partial=True))
        assert s.events == []
        assert "count" not in s.state

    @pytest.mark.asyncio
    async def test_temp_keys_never_persisted(self, service: BaseSessionService) -> None:
        s = await service.create_session(app_name=APP, user_id="alice")
        event = _delta_event({"temp_token": "secret", "kept": "v"})

        await service.append_event(s, event)
        assert s.temp_state == {"temp_token": "secret"}
        assert "temp_token" not in s.state

        fetched = await service.get_session(app_name=APP, user_id="alice", session_id=s.id)
        assert fetched is not None
        assert "temp_token" not in fetched.state
        assert fetched.state["kept"] == "v"

    @pytest.mark.asyncio
    async def test_temp_keys_stripped_from_stored_event(self, service: BaseSessionService) -> None:
        s = await service.create_session(app_name=APP, user_id="alice")
        event = _delta_event({"temp_auth_k": {"token": "SECRET"}, "x": 1})

        await service.append_event(s, event)

        assert event.actions.state_delta["temp_auth_k"] == {"token": "SECRET"}
        fetched = await service.get_session(app_name=APP, user_id="alice", session_id=s.id)
        assert fetched is not None
        assert fetched.events[0].actions.state_delta == {"x": 1}

    @pytest.mark.asyncio
    async def test_later_write_overwrites(self, service: BaseSessionService) -> None:
        s = await service.create_session(app_name=APP, user_id="alice")
        await service.append_event(s, _delta_event({"k": 1}))
        await service.append_event(s, _delta_event({"k": 2}))
        fetched = await service.get_session(app_name=APP, user_id="alice", session_id=s.id)
        assert fetched is not None
        assert fetched.state["k"] == 2


class TestScoping:
    @pytest.mark.asyncio
    async def test_app_key_visible_across_users(self, service: BaseSessionService) -> None:
        alice = await service.create_session(app_name=APP, user_id="alice")
        bob = await service.create_session(app_name=APP, user_id="bob")

        await service.append_event(alice, _delta_event({"app_banner": "sale"}))

        fetched = await service.get_session(app_name=APP, user_id="bob", session_id=bob.id)
        assert fetched is not None
        assert fetched.state["app_banner"] == "sale"

    @pytest.mark.asyncio
    async def test_app_key_not_visible_in_other_app(self, service: BaseSessionService) -> None:
        alice = await service.create_session(app_name=APP, user_id="alice")
        other = await service.create_session(app_name="other", user_id="alice")
        await service.append_event(alice, _delta_event({"app_banner": "sale"}))

        fetched = await service.get_session(app_name="other", user_id="alice", session_id=other.id)
        assert fetched is not None
        assert "app_banner" not in fetched.state

    @pytest.mark.asyncio
    async def test_user_key_scoped_to_user(self, service: BaseSessionService) -> None:
        alice_1 = await service.create_session(app_name=APP, user_id="alice")
        alice_2 = await service.create_session(app_name=APP, user_id="alice")
        bob = await service.create_session(app_name=APP, user_id="bob")

        await service.append_event(alice_1, _delta_event({"user_lang": "fr"}))

        same_user = await service.get_session(app_name=APP, user_id="alice", session_id=alice_2.id)
        other_user = await service.get_session(app_name=APP, user_id="bob", session_id=bob.id)
        assert same_user is not None and same_user.state["user_lang"] == "fr"
        assert other_user is not None and "user_lang" not in other_user.state

    @pytest.mark.asyncio
    async def test_session_key_is_private(self, service: BaseSessionService) -> None:
        s1 = await service.create_session(app_name=APP, user_id="alice")
        s2 = await service.create_session(app_name=APP, user_id="alice")
        await service.append_event(s1, _delta_event({"draft": "x"}))
        fetched = await service.get_session(app_name=APP, user_id="alice", session_id=s2.id)
        assert fetched is not None
        assert "draft" not in fetched.state

    @pytest.mark.asyncio
    async def test_initial_state_routed_by_scope(self, service: BaseSessionService) -> None:
        await service.create_session(
            app_name=APP, user_id="alice", state={"app_limit": 3, "user_tier": "gold"},
        )
        later = await service.create_session(app_name=APP, user_id="alice")
        assert later.state == {"app_limit": 3, "user_tier": "gold"}


class TestInMemoryIdempotency:
    @pytest.mark.asyncio
    async def test_applying_same_event_twice(self) -> None:
        service = InMemorySessionService()
        s = await service.create_session(app_name=APP, user_id="alice")
        event = _delta_event({"temp_scratch": 1, "k": "v", "app_flag": True})

        await service.append_event(s, event)
        first = await service.get_session(app_name=APP, user_id="alice", session_id=s.id)
        await service.append_event(s, event)
        second = await service.get_session(app_name=APP, user_id="alice", session_id=s.id)

        assert first is not None and second is not None
        assert first.state == second.state == {"k": "v", "app_flag": True}

    @pytest.mark.asyncio
    async def test_get_returns_independent_copy(self) -> None:
        service = InMemorySessionService()
        s = await service.create_session(app_name=APP, user_id="alice")
        fetched = await service.get_session(app_name=APP, user_id="alice", session_id=s.id)
        assert fetched is not None
        fetched.state["local"] = 1
        again = await service.get_session(app_name=APP, user_id="alice", session_id=s.id)
        assert again is not None
        assert "local" not in again.state


class TestSqliteService:
    @pytest.mark.asyncio
    async def test_requires_initialize(self, tmp_path: Path) -> None:
        service = SqliteSessionService(tmp_path / "s.db")
        with pytest.raises(RuntimeError, match="not initialized"):
            await service.create_session(app_name=APP, user_id="alice")

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path: Path) -> None:
        db = tmp_path / "nested" / "s.db"
        async with SqliteSessionService(db) as service:
            s = await service.create_session(app_name=APP, user_id="alice", session_id="s1")
            await service.append_event(s, _delta_event({"k": 1, "app_a": 2}))

        async with SqliteSessionService(db) as service:
            fetched = await service.get_session(app_name=APP, user_id="alice", session_id="s1")
        assert fetched is not None
        assert fetched.state == {"k": 1, "app_a": 2}
        assert fetched.events[0].text == "ok"

    @pytest.mark.asyncio
    async def test_event_rows_hold_no_temp_keys(self, tmp_path: Path) -> None:
        db = tmp_path / "s.db"
        async with SqliteSessionService(db) as service:
            s = await service.create_session(app_name=APP, user_id="alice", session_id="s1")
            await service.append_event(s, _delta_event({"temp_auth_k": {"token": "SECRET"}}))
            s.events.append(_delta_event({"_temp_scratch": 1}))
            await service.update_session(s)

        async with aiosqlite.connect(db) as conn:
            async with conn.execute("SELECT data FROM events ORDER BY seq") as cursor:
                rows = await cursor.fetchall()
        assert len(rows) == 2
        for (data,) in rows:
            assert "SECRET" not in data
            assert json.loads(data)["actions"]["state_delta"] == {}
