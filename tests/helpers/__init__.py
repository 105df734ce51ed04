"""Shared test helpers for the agentflow test suite."""

from __future__ import annotations

from tests.helpers.fixtures import collect_turn, new_runner, texts_by_author

__all__ = ["collect_turn", "new_runner", "texts_by_author"]
