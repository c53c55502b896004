"""
Core HTTP client for the Headscale API.

Handles authentication, request encoding and the error hierarchy. Unlike the
resource layer, this client never interprets status codes: every HTTP reply,
success or not, comes back as a ``RawResponse`` with its body fully read.
"""

import http.client
import json
import logging
import os
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

# Configuration
DEFAULT_BASE_URL = "http://127.0.0.1:8080"
DEFAULT_TIMEOUT = 60
API_PREFIX = "/api/v1"

logger = logging.getLogger("headscale_client.core.client")


class ClientError(Exception):
    """Base error class for client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class APIError(ClientError):
    """API error with status code and message."""

    def __init__(self, message: str, status: int = 0, details: dict | None = None):
        super().__init__(message, details)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        return result


class TransportError(APIError):
    """The request never produced an HTTP reply (network, timeout, missing credentials)."""


class DecodeError(APIError):
    """A success body could not be decoded."""


class UnauthorizedError(APIError):
    """The server rejected the API key."""


class UserNotFoundError(APIError):
    """The named user does not exist on the control plane."""


class ValidationError(ClientError):
    """Validation error for local input/data issues (not API errors)."""


@dataclass(frozen=True)
class RawResponse:
    """An HTTP reply whose body has already been read and released."""

    status: int
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON, raising DecodeError on malformed content."""
        try:
            return json.loads(self.body or b"null")
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"Invalid JSON response: {e}", status=self.status) from e


class APIClient:
    """
    Low-level HTTP client for the Headscale API.

    Handles:
    - Authentication via API key (Bearer token)
    - HTTP methods (GET, POST, DELETE)
    - Draining and releasing every response body

    The client keeps no per-request state, so one instance can be shared
    between threads.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the API client.

        Args:
            api_key: Headscale API key (or HEADSCALE_API_KEY env var)
            base_url: Server URL (or HEADSCALE_URL env var)
            timeout: Default request timeout in seconds

        """
        self.api_key = api_key or os.environ.get("HEADSCALE_API_KEY")
        self.base_url = (base_url or os.environ.get("HEADSCALE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout

    def _ensure_api_key(self) -> str:
        """Ensure API key is configured."""
        if not self.api_key:
            raise TransportError("HEADSCALE_API_KEY environment variable not set")
        return self.api_key

    def _build_url(self, path: str) -> str:
        """Build full URL from path."""
        return f"{self.base_url}{API_PREFIX}{path}"

    def _make_request(
        self,
        method: str,
        path: str,
        data: dict | None = None,
        timeout: float | None = None,
    ) -> RawResponse:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (GET, POST, DELETE)
            path: API path below /api/v1 (e.g., /user/alice)
            data: Request body for POST
            timeout: Request timeout override

        Returns:
            RawResponse with the status code and the full body

        Raises:
            TransportError: When no HTTP reply was received

        """
        api_key = self._ensure_api_key()

        url = self._build_url(path)
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        body = json.dumps(data).encode("utf-8") if data is not None else None
        request_timeout = timeout if timeout is not None else self.timeout
        logger.debug("%s %s", method, url)

        try:
            req = urllib.request.Request(url, data=body, headers=headers, method=method)
            with urllib.request.urlopen(req, timeout=request_timeout) as response:
                return RawResponse(status=response.status, body=response.read())

        except urllib.error.HTTPError as e:
            try:
                error_body = e.read()
            finally:
                e.close()
            logger.debug("%s %s -> %s", method, url, e.code)
            return RawResponse(status=e.code, body=error_body or b"")

        except urllib.error.URLError as e:
            raise TransportError(f"Connection error: {e.reason}") from e

        except TimeoutError as e:
            raise TransportError(f"Request timed out after {request_timeout} seconds") from e

        except (OSError, http.client.HTTPException) as e:
            raise TransportError(f"Connection error: {e}") from e

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def get(self, path: str, timeout: float | None = None) -> RawResponse:
        """Make a GET request."""
        return self._make_request("GET", path, timeout=timeout)

    def post(self, path: str, data: dict | None = None, timeout: float | None = None) -> RawResponse:
        """Make a POST request."""
        return self._make_request("POST", path, data, timeout=timeout)

    def delete(self, path: str, timeout: float | None = None) -> RawResponse:
        """Make a DELETE request."""
        return self._make_request("DELETE", path, timeout=timeout)
