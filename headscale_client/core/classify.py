"""
Response classification shared by every resource handler.

A handler describes how its endpoint answers with a ``ResponseRules`` table;
``classify`` turns a ``RawResponse`` into an ``Outcome`` from that table.
Error bodies are decoded into every ``ErrorReason`` they carry, from the
structured gateway error (``error_code`` or gRPC ``code``) and from the prose
by substring match. Unauthorized takes precedence; otherwise the first reason
the endpoint has a rule for decides.
"""

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any, TypeVar

from headscale_client.core.client import (
    APIError,
    DecodeError,
    RawResponse,
    UnauthorizedError,
    UserNotFoundError,
)
from headscale_client.core.types import Outcome, ResourceKind, Status

T = TypeVar("T")

logger = logging.getLogger("headscale_client.core.classify")


class ErrorReason(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"


# gRPC status codes as relayed by grpc-gateway
GRPC_CODE_REASONS: dict[int, ErrorReason] = {
    16: ErrorReason.UNAUTHORIZED,
    5: ErrorReason.NOT_FOUND,
    6: ErrorReason.ALREADY_EXISTS,
}

# Checked in order: an unauthorized reply wins over any other marker
LEGACY_MARKERS: tuple[tuple[str, ErrorReason], ...] = (
    ("Unauthorized", ErrorReason.UNAUTHORIZED),
    ("User not found", ErrorReason.NOT_FOUND),
    ("User already exists", ErrorReason.ALREADY_EXISTS),
)


def decode_structured_reason(body: str) -> ErrorReason | None:
    """Read the reason from a JSON error envelope, if the server sent one."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(data, dict):
        return None

    error_code = data.get("error_code")
    if isinstance(error_code, str):
        try:
            return ErrorReason(error_code.upper())
        except ValueError:
            pass

    code = data.get("code")
    if isinstance(code, int) and not isinstance(code, bool):
        return GRPC_CODE_REASONS.get(code)
    return None


def decode_legacy_reasons(body: str) -> tuple[ErrorReason, ...]:
    """Match the prose error messages of older servers, in marker order."""
    return tuple(reason for marker, reason in LEGACY_MARKERS if marker in body)


def decode_error_reasons(body: str) -> tuple[ErrorReason, ...]:
    """Every reason the body carries: the structured one first, then prose matches."""
    found: list[ErrorReason] = []
    for reason in (decode_structured_reason(body), *decode_legacy_reasons(body)):
        if reason is not None and reason not in found:
            found.append(reason)
    return tuple(found)


@dataclass(frozen=True)
class ReasonRule:
    """Status (and optional error type) an endpoint reports for an error reason."""

    status: Status
    error: type[APIError] | None = None


UNAUTHORIZED_RULE = ReasonRule(Status.ERROR, UnauthorizedError)

ERROR_MESSAGES: dict[type[APIError], str] = {
    UnauthorizedError: "Unauthorized",
    UserNotFoundError: "User not found",
}


@dataclass(frozen=True)
class ResponseRules:
    """
    Classification table for one endpoint.

    Args:
        kind: Resource the endpoint serves
        success: Status reported for HTTP 200
        unclassified: Status reported when no rule matches
        reasons: Extra reason rules applied to HTTP 500 bodies; the
            unauthorized rule is always present and always checked first

    """

    kind: ResourceKind
    success: Status
    unclassified: Status
    reasons: Mapping[ErrorReason, ReasonRule] = field(default_factory=dict)

    def rule_for(self, reasons: tuple[ErrorReason, ...]) -> ReasonRule | None:
        """Pick the rule for the first reason this endpoint handles; unauthorized always wins."""
        if ErrorReason.UNAUTHORIZED in reasons:
            return UNAUTHORIZED_RULE
        for reason in reasons:
            if reason in self.reasons:
                return self.reasons[reason]
        return None


def classify(response: RawResponse, rules: ResponseRules) -> Outcome[Any]:
    """
    Turn an HTTP reply into an outcome without a payload.

    Returns:
        Outcome carrying the status, and the semantic error when one was
        recognized. Unmatched replies keep their status code and body.

    """
    if response.status == HTTPStatus.OK:
        return Outcome(kind=rules.kind, status=rules.success, http_status=response.status)

    text = response.text
    if response.status == HTTPStatus.INTERNAL_SERVER_ERROR:
        rule = rules.rule_for(decode_error_reasons(text))
        if rule is not None:
            error = None
            if rule.error is not None:
                error = rule.error(
                    ERROR_MESSAGES.get(rule.error, text),
                    status=response.status,
                    details={"body": text} if text else None,
                )
            return Outcome(
                kind=rules.kind,
                status=rule.status,
                error=error,
                http_status=response.status,
                body=text,
            )

    logger.warning(
        "Unclassified %s response: HTTP %s %s",
        rules.kind.value,
        response.status,
        text[:200],
    )
    return Outcome(
        kind=rules.kind,
        status=rules.unclassified,
        http_status=response.status,
        body=text,
    )


def decode_body(response: RawResponse, parser: Callable[[Any], T]) -> T:
    """Parse a success body, turning shape mismatches into DecodeError."""
    data = response.json()
    try:
        return parser(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Unexpected response shape: {e}", status=response.status) from e
