"""Tests for pre-auth key creation and its request payload."""

from datetime import datetime, timedelta, timezone

import pytest

from headscale_client.core.client import DecodeError, UnauthorizedError, UserNotFoundError, ValidationError
from headscale_client.core.types import PreAuthKeyConfig, PreAuthKeyResponse, ResourceKind, Status
from headscale_client.sdk import build_pre_auth_key_payload, normalize_tag

# =============================================================================
# Payload
# =============================================================================


class TestPayload:
    def test_simplest_request(self):
        payload = build_pre_auth_key_payload(PreAuthKeyConfig(user="bar"))
        assert payload == {"user": "bar", "reusable": False, "ephemeral": False}

    def test_all_parameters(self):
        config = PreAuthKeyConfig(
            user="bar",
            reusable=True,
            ephemeral=True,
            expiration=datetime(2030, 1, 2, 3, 4, 5, 600000, tzinfo=timezone.utc),
            tags=("Hello", "World"),
        )

        payload = build_pre_auth_key_payload(config)

        assert payload == {
            "user": "bar",
            "reusable": True,
            "ephemeral": True,
            "expiration": "2030-01-02T03:04:05.600000Z",
            "acl_tags": ["tag:hello", "tag:world"],
        }

    def test_expiration_converted_to_utc(self):
        local = timezone(timedelta(hours=2))
        config = PreAuthKeyConfig(user="bar", expiration=datetime(2030, 1, 2, 12, 0, tzinfo=local))
        assert build_pre_auth_key_payload(config)["expiration"] == "2030-01-02T10:00:00.000000Z"

    def test_empty_tags_omitted(self):
        assert "acl_tags" not in build_pre_auth_key_payload(PreAuthKeyConfig(user="bar", tags=()))

    def test_tag_order_preserved(self):
        payload = build_pre_auth_key_payload(PreAuthKeyConfig(user="bar", tags=("b", "A", "c")))
        assert payload["acl_tags"] == ["tag:b", "tag:a", "tag:c"]

    @pytest.mark.parametrize(
        "tag,expected",
        [("Server", "tag:server"), ("tag:web", "tag:web"), ("TAG:Db", "tag:db")],
    )
    def test_normalize_tag(self, tag, expected):
        assert normalize_tag(tag) == expected


# =============================================================================
# Create
# =============================================================================


class TestCreatePreAuthKey:
    def test_created(self, client, fake_http, pre_auth_key_body):
        fake_http.reply(200, pre_auth_key_body)

        outcome = client.preauthkeys.create(PreAuthKeyConfig(user="bar", reusable=True, tags=("Hello", "World")))

        assert outcome.kind is ResourceKind.PRE_AUTH_KEY
        assert outcome.status is Status.CREATED
        assert outcome.error is None
        assert isinstance(outcome.value, PreAuthKeyResponse)
        key = outcome.value.pre_auth_key
        assert key.user == "bar"
        assert key.id == "12"
        assert key.reusable is True
        assert key.acl_tags == ["tag:hello", "tag:world"]
        assert key.created_at == datetime(2024, 3, 1, 10, 20, 30, 500000, tzinfo=timezone.utc)

        call = fake_http.calls[0]
        assert call.method == "POST"
        assert call.path == "/preauthkey"
        assert call.data["acl_tags"] == ["tag:hello", "tag:world"]

    def test_user_not_found(self, client, fake_http):
        fake_http.reply(500, "User not found")

        outcome = client.create_pre_auth_key(PreAuthKeyConfig(user="baz"))

        assert outcome.status is Status.ERROR
        assert isinstance(outcome.error, UserNotFoundError)
        assert outcome.value is None

    def test_unauthorized(self, client, fake_http):
        fake_http.reply(500, "Unauthorized")

        outcome = client.preauthkeys.create(PreAuthKeyConfig(user="bar"))

        assert outcome.status is Status.ERROR
        assert isinstance(outcome.error, UnauthorizedError)
        assert outcome.value is None

    def test_structured_not_found(self, client, fake_http):
        fake_http.reply(500, {"error_code": "NOT_FOUND", "message": "no such user"})

        outcome = client.preauthkeys.create(PreAuthKeyConfig(user="baz"))

        assert isinstance(outcome.error, UserNotFoundError)

    @pytest.mark.parametrize("status,body", [(500, "boom"), (403, "Unauthorized"), (502, "")])
    def test_unclassified_is_unknown(self, client, fake_http, status, body):
        fake_http.reply(status, body)

        outcome = client.preauthkeys.create(PreAuthKeyConfig(user="bar"))

        assert outcome.status is Status.UNKNOWN
        assert outcome.error is None
        assert outcome.value is None
        assert outcome.unresolved
        assert outcome.http_status == status

    def test_malformed_success_body(self, client, fake_http):
        fake_http.reply(200, {"preAuthKey": None})
        with pytest.raises(DecodeError):
            client.preauthkeys.create(PreAuthKeyConfig(user="bar"))

    def test_empty_user_rejected(self, client, fake_http):
        with pytest.raises(ValidationError):
            client.preauthkeys.create(PreAuthKeyConfig(user=""))
        assert fake_http.calls == []

    def test_unauthorized_text_beats_structured_code(self, client, fake_http):
        fake_http.reply(500, '{"code": 5, "message": "Unauthorized"}')

        outcome = client.preauthkeys.create(PreAuthKeyConfig(user="bar"))

        assert outcome.status is Status.ERROR
        assert isinstance(outcome.error, UnauthorizedError)
