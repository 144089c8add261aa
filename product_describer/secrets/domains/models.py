"""Domain models for scoped secrets."""
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Well-known name of the per-user generation credential
CREDENTIAL_NAME = "openai_api_key"

SCOPE_USER = "user"
SCOPE_ACCOUNT = "account"


@dataclass(frozen=True)
class Scope:
    """Partition a secret belongs to.

    A ``user`` scope is only visible to that user; an ``account`` scope is
    shared by every user of the account.
    """
    type: str
    user: Optional[str] = None

    def __post_init__(self):
        if self.type == SCOPE_USER and not self.user:
            raise ValueError("user scope requires a user id")
        if self.type == SCOPE_ACCOUNT and self.user:
            raise ValueError("account scope does not take a user id")
        if self.type not in (SCOPE_USER, SCOPE_ACCOUNT):
            raise ValueError(f"Unsupported scope type: {self.type}")

    @classmethod
    def for_user(cls, user_id: str) -> "Scope":
        return cls(type=SCOPE_USER, user=user_id)

    @classmethod
    def account(cls) -> "Scope":
        return cls(type=SCOPE_ACCOUNT)

    def to_params(self) -> Dict[str, str]:
        """Form-encoded representation used by the secret store API."""
        params = {"scope[type]": self.type}
        if self.user:
            params["scope[user]"] = self.user
        return params


@dataclass
class Secret:
    """A secret as reported by the store. ``payload`` is None unless expanded."""
    scope: Scope
    name: str
    payload: Optional[str] = None
    expires_at: Optional[int] = None
    id: Optional[str] = None
    created: Optional[int] = None
    livemode: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any], scope: Scope) -> "Secret":
        """Build a Secret from a store response, falling back to the request scope."""
        raw_scope = data.get("scope")
        if isinstance(raw_scope, dict) and raw_scope.get("type"):
            scope = Scope(type=raw_scope["type"], user=raw_scope.get("user"))
        return cls(
            scope=scope,
            name=data["name"],
            payload=data.get("payload"),
            expires_at=data.get("expires_at"),
            id=data.get("id"),
            created=data.get("created"),
            livemode=bool(data.get("livemode", False)),
        )

    def masked_payload(self) -> str:
        """Payload safe for display: only the last four characters are kept."""
        if not self.payload:
            return ""
        if len(self.payload) <= 4:
            return "****"
        return f"****{self.payload[-4:]}"


@dataclass(frozen=True)
class HostContext:
    """Identity and selected record supplied by the hosting runtime."""
    user_id: str
    user_name: Optional[str] = None
    record_id: Optional[str] = None
