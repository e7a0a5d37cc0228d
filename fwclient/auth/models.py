from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fwclient.auth.config import AuthMode

CredentialKind = Literal["basic", "local"]
SessionStatus = Literal["idle", "loading", "succeeded", "failed"]


@dataclass(frozen=True)
class CredentialRecord:
    """Locally cached credentials with an absolute expiry (epoch milliseconds)."""

    identity: str
    expires_at: int
    secret: Optional[str] = None  # None for the identity-only (local) shape

    @property
    def has_secret(self) -> bool:
        return bool(self.secret)

    def is_expired(self, now_ms: int) -> bool:
        return now_ms >= self.expires_at

    def to_json_dict(self) -> Dict[str, Any]:
        # Wire names are shared with records written by earlier clients.
        payload: Dict[str, Any] = {"username": self.identity, "exp": self.expires_at}
        if self.secret is not None:
            payload["password"] = self.secret
        return payload


class Profile(BaseModel):
    """
    Normalized user profile.

    The server may send the identifier as `id` or `user_id`; whichever is present
    wins (in that order) and a missing identifier resolves to 0. Unknown fields
    (article counters etc.) are kept as-is.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int = 0
    name: str = ""
    avatar_url: Optional[str] = Field(default=None, alias="ava")

    @model_validator(mode="before")
    @classmethod
    def _resolve_id(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        if out.get("id") is None:
            user_id = out.get("user_id")
            out["id"] = user_id if user_id is not None else 0
        if out.get("name") is None:
            out["name"] = ""
        return out

    @classmethod
    def placeholder(cls, identity: str) -> "Profile":
        """Profile used when no server round-trip happens (local mode)."""
        return cls(id=0, name=identity, ava="")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class SessionState:
    mode: AuthMode
    profile: Optional[Profile] = None
    status: SessionStatus = "idle"
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.profile is not None
