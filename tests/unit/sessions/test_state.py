"""Tests for scoped state helpers and the delta-aware State view."""

from __future__ import annotations

import pytest

from agentflow.sessions.state import (
    State,
    extract_state_delta,
    is_ephemeral,
    merge_state,
)


class TestExtractStateDelta:
    def test_routes_by_prefix(self) -> None:
        split = extract_state_delta(
            {"app_theme": "dark", "user_lang": "en", "temp_token": "t", "count": 1}
        )
        assert split.app == {"app_theme": "dark"}
        assert split.user == {"user_lang": "en"}
        assert split.session == {"count": 1}
        assert split.temp == {"temp_token": "t"}

    def test_legacy_temp_prefix_is_ephemeral(self) -> None:
        split = extract_state_delta({"_temp_scratch": 1})
        assert split.temp == {"_temp_scratch": 1}
        assert not split.session

    def test_none_delta(self) -> None:
        split = extract_state_delta(None)
        assert not (split.app or split.user or split.session or split.temp)

    @pytest.mark.parametrize(
        "key,expected",
        [("temp_x", True), ("_temp_x", True), ("temperature", False), ("x_temp_", False)],
    )
    def test_is_ephemeral(self, key: str, expected: bool) -> None:
        assert is_ephemeral(key) is expected


class TestMergeState:
    def test_overlays_win(self) -> None:
        merged = merge_state({"a": 1, "app_x": "old"}, {"app_x": "new"}, {"user_y": 2})
        assert merged == {"a": 1, "app_x": "new", "user_y": 2}

    def test_does_not_mutate_session_state(self) -> None:
        private = {"a": 1}
        merge_state(private, {"app_x": 1})
        assert private == {"a": 1}


class TestState:
    def test_reads_prefer_delta(self) -> None:
        state = State(value={"k": "base"}, delta={"k": "pending"})
        assert state["k"] == "pending"

    def test_writes_go_to_delta_only(self) -> None:
        base: dict = {"k": 1}
        delta: dict = {}
        state = State(value=base, delta=delta)
        state["k"] = 2
        state["new"] = 3
        assert base == {"k": 1}
        assert delta == {"k": 2, "new": 3}
        assert state.has_delta()

    def test_get_and_contains(self) -> None:
        state = State(value={"a": 1}, delta={"b": 2})
        assert "a" in state and "b" in state
        assert state.get("missing", "dflt") == "dflt"
        assert state.to_dict() == {"a": 1, "b": 2}

    def test_missing_key_raises(self) -> None:
        state = State(value={}, delta={})
        with pytest.raises(KeyError):
            state["nope"]
