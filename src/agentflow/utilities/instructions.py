"""Session-state placeholder substitution for instructions."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from agentflow.errors import StateKeyError

if TYPE_CHECKING:
    from agentflow.agents.callback_context import ReadonlyContext

_PLACEHOLDER = re.compile(r"{+[^{}]*}+")


async def inject_session_state(template: str, readonly_context: ReadonlyContext) -> str:
    """Replace ``{key}`` placeholders in ``template`` with session-state values.

    ``{key?}`` renders as an empty string when the key is absent. Braces that
    do not enclose a valid state name are left as they are.

    Raises:
        StateKeyError: a required key is not in session state.
    """
    state = readonly_context.state

    def replace(match: re.Match[str]) -> str:
        raw = match.group()
        name = raw.lstrip("{").rstrip("}").strip()
        optional = name.endswith("?")
        if optional:
            name = name[:-1]
        if not name.isidentifier():
            return raw
        if name in state:
            return str(state[name])
        if optional:
            return ""
        raise StateKeyError(name)

    return _PLACEHOLDER.sub(replace, template)
