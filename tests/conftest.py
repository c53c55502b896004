"""Pytest configuration - loads .env for integration tests and provides a fake HTTP primitive."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

from headscale_client.core.client import RawResponse
from headscale_client.sdk import HeadscaleClient

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


@dataclass
class RecordedCall:
    method: str
    path: str
    data: dict | None
    timeout: float | None


class FakeHTTP:
    """Stand-in for APIClient that replays queued replies and records requests."""

    def __init__(self) -> None:
        self.api_key = "test-key"
        self.calls: list[RecordedCall] = []
        self._replies: list[RawResponse | Exception] = []

    def reply(self, status: int, body: Any = b"") -> "FakeHTTP":
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._replies.append(RawResponse(status=status, body=body))
        return self

    def fail(self, error: Exception) -> "FakeHTTP":
        self._replies.append(error)
        return self

    def _next(self, method: str, path: str, data: dict | None, timeout: float | None) -> RawResponse:
        self.calls.append(RecordedCall(method, path, data, timeout))
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def get(self, path: str, timeout: float | None = None) -> RawResponse:
        return self._next("GET", path, None, timeout)

    def post(self, path: str, data: dict | None = None, timeout: float | None = None) -> RawResponse:
        return self._next("POST", path, data, timeout)

    def delete(self, path: str, timeout: float | None = None) -> RawResponse:
        return self._next("DELETE", path, None, timeout)


@pytest.fixture
def fake_http() -> FakeHTTP:
    return FakeHTTP()


@pytest.fixture
def client(fake_http: FakeHTTP) -> HeadscaleClient:
    return HeadscaleClient(http=fake_http)


USER_BODY = {"user": {"id": "7", "name": "bar", "createdAt": "2024-03-01T10:20:30.123456789Z"}}

PRE_AUTH_KEY_BODY = {
    "preAuthKey": {
        "user": "bar",
        "id": "12",
        "key": "f1d2d2f924e986ac86fdf7b36c94bcdf32beec15",
        "reusable": True,
        "ephemeral": False,
        "used": False,
        "expiration": "2024-03-01T11:20:30Z",
        "createdAt": "2024-03-01T10:20:30.5Z",
        "aclTags": ["tag:hello", "tag:world"],
    }
}


@pytest.fixture
def user_body() -> dict[str, Any]:
    return json.loads(json.dumps(USER_BODY))


@pytest.fixture
def pre_auth_key_body() -> dict[str, Any]:
    return json.loads(json.dumps(PRE_AUTH_KEY_BODY))
