"""
Core types for the Headscale control-plane API.

These dataclasses mirror the JSON shapes served by the ``/api/v1`` gateway
and the outcome model every resource operation returns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from headscale_client.core.client import ClientError

T = TypeVar("T")

# RFC 3339 with an optional fraction of any length; the gateway emits nanoseconds.
_TIMESTAMP_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d{2}:\d{2})?$"
)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a protobuf/RFC 3339 timestamp into an aware datetime."""
    if not value:
        return None
    match = _TIMESTAMP_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = match.group("base")
    frac = match.group("frac")
    if frac:
        text += "." + frac[:6].ljust(6, "0")
    tz = match.group("tz")
    text += "+00:00" if tz in (None, "Z") else tz
    return datetime.fromisoformat(text)


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way the gateway expects protobuf timestamps."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# =============================================================================
# Outcome Types
# =============================================================================


class Status(Enum):
    """Semantic result of an operation, independent of the HTTP status code."""

    CREATED = "created"
    EXISTS = "exists"
    DELETED = "deleted"
    UNKNOWN = "unknown"
    ERROR = "error"


# Per-resource names for the shared status set
UserStatus = Status
PreAuthKeyStatus = Status


class ResourceKind(Enum):
    """Resource an outcome belongs to."""

    USER = "user"
    PRE_AUTH_KEY = "preauthkey"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of a single resource operation.

    ``status`` is the single source of truth. ``value`` is only populated when
    the server returned a success body, and ``error`` holds the semantic error
    (unauthorized, not found) when one was detected. When no rule matched the
    response, ``unresolved`` is True and ``http_status``/``body`` keep the raw
    reply for the caller to inspect.
    """

    kind: ResourceKind
    status: Status
    value: T | None = None
    error: ClientError | None = None
    http_status: int | None = None
    body: str = ""

    @property
    def ok(self) -> bool:
        """Check if the operation reached a confirmed successful state."""
        return self.error is None and self.status in (Status.CREATED, Status.EXISTS, Status.DELETED)

    @property
    def unresolved(self) -> bool:
        """Check if the response matched no classification rule."""
        return self.error is None and self.status in (Status.UNKNOWN, Status.ERROR)

    def raise_for_error(self) -> Outcome[T]:
        """Raise the semantic error, if any; otherwise return self."""
        if self.error is not None:
            raise self.error
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"kind": self.kind.value, "status": self.status.value}
        if self.value is not None and hasattr(self.value, "to_dict"):
            result["data"] = self.value.to_dict()
        if self.error is not None:
            result["error"] = self.error.message
        if self.unresolved:
            result["http_status"] = self.http_status
            result["body"] = self.body
        return result


# =============================================================================
# User Types
# =============================================================================


@dataclass(frozen=True)
class UserConfig:
    """A Headscale user (namespace owner)."""

    id: int
    name: str
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserConfig:
        """Create from API response dict."""
        # The gateway serializes uint64 ids as strings
        return cls(
            id=int(data.get("id") or 0),
            name=data["name"],
            created_at=parse_timestamp(data.get("createdAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# =============================================================================
# Pre-Auth Key Types
# =============================================================================


@dataclass(frozen=True)
class PreAuthKeyConfig:
    """Request-side description of a pre-auth key to create."""

    user: str
    reusable: bool = False
    ephemeral: bool = False
    expiration: datetime | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class PreAuthKey:
    """Server snapshot of a pre-auth key."""

    user: str
    id: str
    key: str
    reusable: bool = False
    ephemeral: bool = False
    used: bool = False
    expiration: datetime | None = None
    created_at: datetime | None = None
    acl_tags: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PreAuthKey:
        """Create from API response dict."""
        return cls(
            user=data.get("user") or "",
            id=str(data.get("id") or ""),
            key=data.get("key") or "",
            reusable=bool(data.get("reusable", False)),
            ephemeral=bool(data.get("ephemeral", False)),
            used=bool(data.get("used", False)),
            expiration=parse_timestamp(data.get("expiration")),
            created_at=parse_timestamp(data.get("createdAt")),
            acl_tags=list(data.get("aclTags") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user": self.user,
            "id": self.id,
            "key": self.key,
            "reusable": self.reusable,
            "ephemeral": self.ephemeral,
            "used": self.used,
            "expiration": self.expiration.isoformat() if self.expiration else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "acl_tags": self.acl_tags,
        }


@dataclass(frozen=True)
class PreAuthKeyResponse:
    """Envelope returned by key creation."""

    pre_auth_key: PreAuthKey

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PreAuthKeyResponse:
        """Create from API response dict."""
        return cls(pre_auth_key=PreAuthKey.from_dict(data["preAuthKey"]))

    def to_dict(self) -> dict[str, Any]:
        return {"pre_auth_key": self.pre_auth_key.to_dict()}
