"""Tests for tokens, settings and realtime event payloads."""

from datetime import datetime, timezone
from pathlib import Path

import jwt
import pytest
from pydantic import ValidationError

from fitup.config import Settings, parse_duration
from fitup.exceptions import UnauthenticatedError
from fitup.models.profile import UserRole
from fitup.realtime.events import (
    EVENT_VERSION,
    EventType,
    build_event,
    conversation_id_from_channel,
    parse_client_frame,
)
from fitup.web.auth import TokenService

TEST_SECRET = "another-test-secret-key-long-enough-for-hs256"


@pytest.fixture
def tokens():
    return TokenService(TEST_SECRET)


class TestTokenService:
    """Tests for JWT issuance and verification."""

    def test_access_token_round_trip(self, tokens):
        token = tokens.create_access_token("coach1", UserRole.COACH, "coach@example.com")
        user = tokens.authenticate(token)

        assert user.user_id == "coach1"
        assert user.role == UserRole.COACH
        assert user.email == "coach@example.com"
        assert user.is_coach
        assert not user.is_admin

    def test_expired_token(self, tokens):
        token = tokens.create_access_token("alice", expires_in=-10)
        with pytest.raises(UnauthenticatedError, match="expired"):
            tokens.authenticate(token)

    def test_wrong_secret(self, tokens):
        other = TokenService("another-secret-that-is-also-long-enough")
        with pytest.raises(UnauthenticatedError):
            tokens.authenticate(other.create_access_token("alice"))

    def test_refresh_token_is_not_an_access_token(self, tokens):
        refresh = tokens.create_refresh_token("alice")
        with pytest.raises(UnauthenticatedError):
            tokens.authenticate(refresh)
        assert tokens.verify(refresh, expected_type="refresh")["sub"] == "alice"

    def test_unknown_role(self, tokens):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "alice", "role": "superuser", "type": "access", "iat": now, "exp": now.timestamp() + 60},
            TEST_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(UnauthenticatedError):
            tokens.authenticate(token)

    def test_garbage_token(self, tokens):
        with pytest.raises(UnauthenticatedError):
            tokens.authenticate("not-a-jwt")


class TestSettings:
    """Tests for environment configuration."""

    def test_durations(self):
        assert parse_duration("24h") == 86400
        assert parse_duration("15m") == 900
        assert parse_duration("90") == 90
        assert parse_duration(30) == 30
        with pytest.raises(ValueError):
            parse_duration("soon")

    def test_secret_must_be_long(self):
        with pytest.raises(ValidationError):
            Settings(jwt_secret="short")

    def test_placeholder_secret_rejected(self):
        with pytest.raises(ValidationError):
            Settings(jwt_secret="your-jwt-secret-key-change-in-production")

    def test_invalid_duration_rejected(self):
        with pytest.raises(ValidationError):
            Settings(jwt_secret=TEST_SECRET, jwt_exp="tomorrow")

    def test_database_path_from_url(self):
        settings = Settings(jwt_secret=TEST_SECRET, database_url="sqlite+aiosqlite:///tmp/app.db")
        assert settings.database_path == Path("tmp/app.db")
        assert settings.jwt_exp_seconds == 86400
        assert settings.refresh_token_exp_seconds == 168 * 3600


class TestEvents:
    """Tests for realtime event payloads and client frames."""

    def test_event_omits_unset_fields(self):
        event = build_event(EventType.MESSAGE_DELETED, 4, message_id=9)
        assert event["version"] == EVENT_VERSION
        assert event["type"] == "message_deleted"
        assert event["message_id"] == 9
        assert "message" not in event
        assert "read_by" not in event

    def test_client_frames(self):
        assert parse_client_frame({"type": "ping"}).kind == "ping"
        frame = parse_client_frame({"action": "subscribe", "channel": "conversation:3"})
        assert (frame.kind, frame.channel) == ("subscribe", "conversation:3")
        assert parse_client_frame({"action": "subscribe"}).kind == "unknown"
        assert parse_client_frame("hello").kind == "unknown"

    def test_channel_parsing(self):
        assert conversation_id_from_channel("conversation:12") == 12
        assert conversation_id_from_channel("conversation:abc") is None
        assert conversation_id_from_channel("user:12") is None
