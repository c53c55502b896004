"""
Headscale SDK - High-level client with typed outcomes.

This layer turns the raw HTTP replies of the core APIClient into ``Outcome``
values. Transport and decode failures are raised; semantic failures
(unauthorized, unknown user) are reported through ``Outcome.status`` and
``Outcome.error``.
"""

import builtins
import logging
import urllib.parse
from collections.abc import Callable
from dataclasses import replace
from http import HTTPStatus
from typing import Any

from headscale_client.core.classify import (
    ErrorReason,
    ReasonRule,
    ResponseRules,
    classify,
    decode_body,
)
from headscale_client.core.client import DEFAULT_TIMEOUT, APIClient, RawResponse, UserNotFoundError, ValidationError
from headscale_client.core.types import (
    Outcome,
    PreAuthKeyConfig,
    PreAuthKeyResponse,
    ResourceKind,
    Status,
    UserConfig,
    format_timestamp,
)

logger = logging.getLogger("headscale_client.sdk")

TAG_PREFIX = "tag:"


class HeadscaleClient:
    """
    High-level Headscale API client.

    Example:
        client = HeadscaleClient()

        outcome = client.users.create("alice")
        if outcome.status is Status.CREATED:
            print(outcome.value.id)

        key = client.preauthkeys.create(PreAuthKeyConfig(user="alice", tags=("server",)))
        key.raise_for_error()

    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        http: APIClient | None = None,
    ):
        """
        Initialize the Headscale client.

        Args:
            api_key: Headscale API key (or HEADSCALE_API_KEY env var)
            base_url: Server URL (or HEADSCALE_URL env var)
            timeout: Default request timeout in seconds
            http: Preconfigured HTTP primitive; overrides the other arguments

        """
        self._client = http or APIClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
        )

        self.users = UserOperations(self._client)
        self.preauthkeys = PreAuthKeyOperations(self._client)

    @property
    def api_key(self) -> str | None:
        """Get the API key used for requests."""
        return self._client.api_key

    @api_key.setter
    def api_key(self, value: str) -> None:
        """Set the API key used for requests."""
        self._client.api_key = value

    def list_users(self, timeout: float | None = None) -> builtins.list[UserConfig]:
        return self.users.list(timeout=timeout)

    def get_user(self, name: str, timeout: float | None = None) -> Outcome[UserConfig]:
        return self.users.get(name, timeout=timeout)

    def create_user(self, name: str, timeout: float | None = None) -> Outcome[UserConfig]:
        return self.users.create(name, timeout=timeout)

    def delete_user(self, name: str, timeout: float | None = None) -> Outcome[None]:
        return self.users.delete(name, timeout=timeout)

    def create_pre_auth_key(
        self,
        config: PreAuthKeyConfig,
        timeout: float | None = None,
    ) -> Outcome[PreAuthKeyResponse]:
        return self.preauthkeys.create(config, timeout=timeout)


def _resolve(
    response: RawResponse,
    rules: ResponseRules,
    parser: Callable[[Any], Any],
) -> Outcome[Any]:
    """Classify a reply and decode its body only when it is a success."""
    outcome = classify(response, rules)
    if response.status != HTTPStatus.OK:
        return outcome
    return replace(outcome, value=decode_body(response, parser))


# =============================================================================
# User Operations
# =============================================================================


USER_GET_RULES = ResponseRules(
    kind=ResourceKind.USER,
    success=Status.EXISTS,
    unclassified=Status.ERROR,
    reasons={ErrorReason.ALREADY_EXISTS: ReasonRule(Status.EXISTS)},
)

USER_CREATE_RULES = replace(USER_GET_RULES, success=Status.CREATED)

USER_DELETE_RULES = ResponseRules(
    kind=ResourceKind.USER,
    success=Status.DELETED,
    unclassified=Status.ERROR,
    reasons={ErrorReason.NOT_FOUND: ReasonRule(Status.UNKNOWN, UserNotFoundError)},
)


def _parse_user_envelope(data: dict[str, Any]) -> UserConfig:
    return UserConfig.from_dict(data["user"])


def _parse_user_list(data: Any) -> builtins.list[UserConfig]:
    # Older servers answer with a bare array
    if isinstance(data, dict):
        data = data.get("users") or []
    return [UserConfig.from_dict(u) for u in data]


def _user_path(name: str) -> str:
    if not name:
        raise ValidationError("User name must not be empty")
    return "/user/" + urllib.parse.quote(name, safe="")


class UserOperations:
    """Operations for managing users."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self, timeout: float | None = None) -> builtins.list[UserConfig]:
        """
        List all users on the control plane.

        Returns:
            List of UserConfig; empty when the server does not answer 200

        """
        response = self._client.get("/user", timeout=timeout)
        if response.status != HTTPStatus.OK:
            logger.warning("Listing users returned HTTP %s: %s", response.status, response.text[:200])
            return []
        return decode_body(response, _parse_user_list)

    def get(self, name: str, timeout: float | None = None) -> Outcome[UserConfig]:
        """
        Get a user by name.

        Returns:
            Outcome with status EXISTS and the user on success

        """
        response = self._client.get(_user_path(name), timeout=timeout)
        return _resolve(response, USER_GET_RULES, _parse_user_envelope)

    def create(self, name: str, timeout: float | None = None) -> Outcome[UserConfig]:
        """
        Create a user.

        Creating a user that already exists reports EXISTS with no error.

        Returns:
            Outcome with status CREATED and the new user on success

        """
        if not name:
            raise ValidationError("User name must not be empty")
        response = self._client.post("/user", {"name": name}, timeout=timeout)
        return _resolve(response, USER_CREATE_RULES, _parse_user_envelope)

    def delete(self, name: str, timeout: float | None = None) -> Outcome[None]:
        """
        Delete a user.

        Returns:
            Outcome with status DELETED, or UNKNOWN with UserNotFoundError
            when the user does not exist

        """
        response = self._client.delete(_user_path(name), timeout=timeout)
        return classify(response, USER_DELETE_RULES)


# =============================================================================
# Pre-Auth Key Operations
# =============================================================================


PRE_AUTH_KEY_CREATE_RULES = ResponseRules(
    kind=ResourceKind.PRE_AUTH_KEY,
    success=Status.CREATED,
    unclassified=Status.UNKNOWN,
    reasons={ErrorReason.NOT_FOUND: ReasonRule(Status.ERROR, UserNotFoundError)},
)


def normalize_tag(tag: str) -> str:
    """
    Lower-case a tag and give it the ``tag:`` prefix ACLs expect.

    A tag that already carries the prefix (in any case) is only lower-cased,
    so ``"tag:Web"`` becomes ``"tag:web"`` rather than ``"tag:tag:web"``.
    """
    tag = tag.lower()
    if tag.startswith(TAG_PREFIX):
        return tag
    return TAG_PREFIX + tag


def include_expiration_if_set(config: PreAuthKeyConfig) -> dict[str, Any]:
    if config.expiration is None:
        return {}
    return {"expiration": format_timestamp(config.expiration)}


def include_tags_if_any(config: PreAuthKeyConfig) -> dict[str, Any]:
    if not config.tags:
        return {}
    return {"acl_tags": [normalize_tag(t) for t in config.tags]}


# Each policy owns distinct keys
PAYLOAD_POLICIES: tuple[Callable[[PreAuthKeyConfig], dict[str, Any]], ...] = (
    include_expiration_if_set,
    include_tags_if_any,
)


def build_pre_auth_key_payload(config: PreAuthKeyConfig) -> dict[str, Any]:
    """Build the request body for key creation from its config."""
    payload: dict[str, Any] = {
        "user": config.user,
        "reusable": config.reusable,
        "ephemeral": config.ephemeral,
    }
    for policy in PAYLOAD_POLICIES:
        payload.update(policy(config))
    return payload


class PreAuthKeyOperations:
    """Operations for managing pre-authentication keys."""

    def __init__(self, client: APIClient):
        self._client = client

    def create(self, config: PreAuthKeyConfig, timeout: float | None = None) -> Outcome[PreAuthKeyResponse]:
        """
        Create a pre-auth key for a user.

        Args:
            config: Key options (user, reusable, ephemeral, expiration, tags)
            timeout: Request timeout override

        Returns:
            Outcome with status CREATED and the key on success. Any other
            status carries no key.

        """
        if not config.user:
            raise ValidationError("Pre-auth key user must not be empty")
        response = self._client.post("/preauthkey", build_pre_auth_key_payload(config), timeout=timeout)
        return _resolve(response, PRE_AUTH_KEY_CREATE_RULES, PreAuthKeyResponse.from_dict)
