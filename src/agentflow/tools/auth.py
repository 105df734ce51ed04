"""Credential request descriptors.

Issuing credentials is left to the host application. The engine only
carries an :class:`AuthConfig` from the tool that needs it to the caller
(as an ``af_request_credential`` function call) and back.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

REQUEST_CREDENTIAL_FUNCTION_CALL_NAME = "af_request_credential"
CREDENTIAL_STATE_PREFIX = "temp_auth_"


@dataclass
class AuthConfig:
    """What a tool needs from the caller to authenticate."""

    auth_scheme: str
    credential_key: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    scopes: list[str] = field(default_factory=list)
    exchanged_credential: dict[str, Any] | None = None

    @property
    def state_key(self) -> str:
        return f"{CREDENTIAL_STATE_PREFIX}{self.credential_key}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "auth_scheme": self.auth_scheme,
            "credential_key": self.credential_key,
            "scopes": list(self.scopes),
            "exchanged_credential": self.exchanged_credential,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthConfig:
        return cls(
            auth_scheme=data["auth_scheme"],
            credential_key=data.get("credential_key") or uuid.uuid4().hex[:12],
            scopes=list(data.get("scopes") or []),
            exchanged_credential=data.get("exchanged_credential"),
        )
