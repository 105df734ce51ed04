"""Configuration loading and management."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from agentflow.agents.run_config import RunConfig, StreamingMode
from agentflow.errors import ConfigurationError
from agentflow.sessions.base import BaseSessionService
from agentflow.sessions.in_memory import InMemorySessionService
from agentflow.sessions.sqlite import SqliteSessionService

DEFAULT_APP_NAME = "agentflow"
DEFAULT_MAX_LLM_CALLS = 500

# Config file names
PROJECT_DIR = ".agentflow"
PROJECT_YAML = "agentflow.yaml"
ENV_PREFIX = "AGENTFLOW_"

SESSION_BACKENDS = ("memory", "sqlite")
STREAMING_MODES = ("none", "sse")


@dataclass(slots=True)
class FlowConfig:
    """Merged configuration from all sources.

    Priority: overrides > env vars > project config > defaults
    """
    app_name: str = DEFAULT_APP_NAME
    default_model: str = ""

    # Execution
    streaming: str = "none"
    max_llm_calls: int = DEFAULT_MAX_LLM_CALLS

    # Sessions
    session_backend: str = "memory"
    session_db_path: str = ""

    # Logging
    debug: bool = False
    json_logs: bool = False

    def to_run_config(self) -> RunConfig:
        mode = StreamingMode.SSE if self.streaming == "sse" else StreamingMode.NONE
        return RunConfig(streaming_mode=mode, max_llm_calls=self.max_llm_calls)


def find_project_root(start: Path | None = None) -> Path | None:
    """Find the project root by looking for agentflow.yaml or .agentflow/."""
    current = start or Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / PROJECT_YAML).exists() or (parent / PROJECT_DIR).is_dir():
            return parent
    return None


def load_json_config(path: Path) -> dict[str, Any]:
    """Load a JSON config file, returning empty dict if not found."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else {}
    except (json.JSONDecodeError, OSError):
        return {}


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML config file, returning empty dict if not found."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else {}
    except (yaml.YAMLError, OSError):
        return {}


def load_config(
    *,
    overrides: dict[str, Any] | None = None,
    working_dir: str | None = None,
) -> FlowConfig:
    """Load configuration from all sources with proper priority.

    Priority: overrides > env vars (including ``.env``) > project config > defaults

    Raises:
        ConfigurationError: a value is out of range or of the wrong type.
    """
    config = FlowConfig()
    cwd = Path(working_dir or os.getcwd())

    # 1. Project-level config (agentflow.yaml, then .agentflow/config.json)
    project_root = find_project_root(cwd)
    if project_root:
        project_config = load_yaml_config(project_root / PROJECT_YAML)
        if not project_config:
            project_config = load_json_config(project_root / PROJECT_DIR / "config.json")
        _apply_dict(config, project_config)
        if not config.session_db_path:
            config.session_db_path = str(project_root / PROJECT_DIR / "sessions.db")

    # 2. Environment variables; .env never overrides the real environment
    load_dotenv(cwd / ".env", override=False)
    _apply_dict(config, _env_values())

    # 3. Explicit overrides (highest priority)
    _apply_dict(config, overrides or {})

    if not config.session_db_path:
        config.session_db_path = str(cwd / PROJECT_DIR / "sessions.db")

    _validate(config)
    return config


def create_session_service(config: FlowConfig) -> BaseSessionService:
    """Build the session service the config selects.

    A sqlite service still needs ``await service.initialize()``.
    """
    if config.session_backend == "sqlite":
        return SqliteSessionService(config.session_db_path)
    return InMemorySessionService()


def _env_values() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key in _FIELD_MAP:
        raw = os.environ.get(ENV_PREFIX + key.upper())
        if raw is not None and key == _FIELD_MAP[key]:
            values[key] = raw
    return values


def _apply_dict(config: FlowConfig, data: dict[str, Any]) -> None:
    """Apply dictionary values to config, only for known fields."""
    for key, attr in _FIELD_MAP.items():
        if key in data and data[key] is not None:
            setattr(config, attr, _coerce(attr, data[key]))


def _coerce(attr: str, value: Any) -> Any:
    if attr in ("debug", "json_logs"):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if attr == "max_llm_calls":
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"max_llm_calls must be an integer, got {value!r}") from e
    if attr in ("streaming", "session_backend"):
        return str(value).strip().lower()
    return str(value)


def _validate(config: FlowConfig) -> None:
    if config.streaming not in STREAMING_MODES:
        raise ConfigurationError(
            f"streaming must be one of {', '.join(STREAMING_MODES)}, got {config.streaming!r}"
        )
    if config.session_backend not in SESSION_BACKENDS:
        raise ConfigurationError(
            f"session_backend must be one of {', '.join(SESSION_BACKENDS)}, "
            f"got {config.session_backend!r}"
        )
    if config.max_llm_calls < 0:
        raise ConfigurationError("max_llm_calls must be >= 0 (0 disables the limit)")


_FIELD_MAP: dict[str, str] = {
    "app_name": "app_name",
    "default_model": "default_model",
    "streaming": "streaming",
    "max_llm_calls": "max_llm_calls",
    "session_backend": "session_backend",
    "session_db_path": "session_db_path",
    "debug": "debug",
    "json_logs": "json_logs",
    # Aliases from JSON config
    "appName": "app_name",
    "defaultModel": "default_model",
    "maxLlmCalls": "max_llm_calls",
    "sessionBackend": "session_backend",
    "sessionDbPath": "session_db_path",
    "jsonLogs": "json_logs",
}
