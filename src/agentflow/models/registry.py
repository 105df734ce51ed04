"""Model registry: resolves model names to client instances."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from agentflow.errors import ConfigurationError
from agentflow.models.base import BaseLlm

logger = logging.getLogger(__name__)

LlmFactory = Callable[[str], BaseLlm]


class LlmRegistry:
    """Maps model-name patterns to client factories.

    Patterns are regular expressions matched against the full model name.
    Later registrations take precedence over earlier ones.
    """

    _factories: list[tuple[re.Pattern[str], LlmFactory]] = []

    @classmethod
    def register(cls, pattern: str, factory: LlmFactory) -> None:
        cls._factories.insert(0, (re.compile(pattern), factory))

    @classmethod
    def resolve(cls, model: str) -> LlmFactory:
        for pattern, factory in cls._factories:
            if pattern.fullmatch(model):
                return factory
        raise ConfigurationError(f"No model client registered for '{model}'")

    @classmethod
    def new_llm(cls, model: str) -> BaseLlm:
        llm = cls.resolve(model)(model)
        logger.debug("Resolved model %s to %s", model, type(llm).__name__)
        return llm

    @classmethod
    def clear(cls) -> None:
        cls._factories.clear()
        _register_builtins()


def _register_builtins() -> None:
    from agentflow.models.mock import MockLlm

    LlmRegistry.register(r"mock(-.*)?", lambda name: MockLlm(model=name))


_register_builtins()
