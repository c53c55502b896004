"""
Core layer - Raw types, HTTP client and response classification.

This layer provides:
- Typed dataclasses matching the gateway JSON
- Low-level HTTP client with auth and body release
- The classification protocol shared by all resource handlers
"""

from headscale_client.core.classify import ErrorReason, ResponseRules, classify
from headscale_client.core.client import (
    APIClient,
    APIError,
    ClientError,
    DecodeError,
    RawResponse,
    TransportError,
    UnauthorizedError,
    UserNotFoundError,
    ValidationError,
)
from headscale_client.core.types import (
    Outcome,
    PreAuthKey,
    PreAuthKeyConfig,
    PreAuthKeyResponse,
    PreAuthKeyStatus,
    ResourceKind,
    Status,
    UserConfig,
    UserStatus,
)

__all__ = [
    "APIClient",
    "APIError",
    "ClientError",
    "DecodeError",
    "ErrorReason",
    "Outcome",
    "PreAuthKey",
    "PreAuthKeyConfig",
    "PreAuthKeyResponse",
    "PreAuthKeyStatus",
    "RawResponse",
    "ResourceKind",
    "ResponseRules",
    "Status",
    "TransportError",
    "UnauthorizedError",
    "UserConfig",
    "UserNotFoundError",
    "UserStatus",
    "ValidationError",
    "classify",
]
