"""
Headscale client - Three-layer architecture for the Headscale API.

Layers:
- core: Raw types, HTTP client and response classification
- sdk: HeadscaleClient with typed outcomes for users and pre-auth keys
- cli: Small command-line interface
"""

from headscale_client.core.client import (
    ClientError,
    DecodeError,
    TransportError,
    UnauthorizedError,
    UserNotFoundError,
)
from headscale_client.core.types import Outcome, PreAuthKeyConfig, Status, UserConfig
from headscale_client.sdk import HeadscaleClient

__version__ = "0.1.0"
__all__ = [
    "ClientError",
    "DecodeError",
    "HeadscaleClient",
    "Outcome",
    "PreAuthKeyConfig",
    "Status",
    "TransportError",
    "UnauthorizedError",
    "UserConfig",
    "UserNotFoundError",
]
