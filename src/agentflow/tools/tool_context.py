"""Per-call context given to a tool."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from agentflow.agents.callback_context import CallbackContext
from agentflow.tools.auth import AuthConfig
from agentflow.types.events import EventActions

if TYPE_CHECKING:
    from agentflow.agents.invocation_context import InvocationContext


class ToolContext(CallbackContext):
    """Callback context bound to a single function call.

    ``function_call_id`` identifies the call being served. The dispatcher
    hands every call of one model turn the same action bundle, so state
    written here is visible to later calls of that turn and lands in the
    merged function-response event.
    """

    def __init__(
        self,
        invocation_context: InvocationContext,
        *,
        function_call_id: str | None = None,
        event_actions: EventActions | None = None,
    ) -> None:
        super().__init__(invocation_context, event_actions=event_actions)
        self.function_call_id = function_call_id

    def request_credential(self, auth_config: AuthConfig) -> None:
        """Ask the caller for credentials before this call can complete."""
        if not self.function_call_id:
            raise ValueError("request_credential requires a function_call_id")
        self.actions.requested_auth_configs[self.function_call_id] = auth_config.to_dict()

    def get_auth_response(self, auth_config: AuthConfig) -> dict[str, Any] | None:
        """Credential supplied by the caller for ``auth_config``, if any."""
        return self.state.get(auth_config.state_key)
