"""
Tests for admin login and token verification.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from hyplanner_admin.auth import (
    DEFAULT_EXPIRY,
    AdminAuthService,
    TokenService,
    parse_expires_in,
)
from hyplanner_admin.config import AuthConfig
from hyplanner_admin.errors import AuthenticationError, ValidationError


@pytest.fixture
def auth():
    return AdminAuthService.from_config(
        AuthConfig(jwt_secret="test-secret", admin_username="root", admin_password="hunter2")
    )


class TestParseExpiresIn:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("3600", timedelta(hours=1)),
            ("45m", timedelta(minutes=45)),
            ("12h", timedelta(hours=12)),
            ("7d", timedelta(days=7)),
            ("30S", timedelta(seconds=30)),
        ],
    )
    def test_supported_formats(self, raw, expected):
        assert parse_expires_in(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "soon", "0", "-5m"])
    def test_falls_back_to_one_day(self, raw):
        assert parse_expires_in(raw) == DEFAULT_EXPIRY


class TestLogin:
    def test_success_returns_token_and_user(self, auth):
        result = auth.login("root", "hunter2")

        assert result["user"] == {"id": "root", "username": "root", "role": "admin"}
        claims = jwt.decode(result["token"], "test-secret", algorithms=["HS256"])
        assert claims["username"] == "root"
        assert claims["exp"] - claims["iat"] == int(DEFAULT_EXPIRY.total_seconds())

    def test_missing_fields(self, auth):
        with pytest.raises(ValidationError):
            auth.login("root", None)
        with pytest.raises(ValidationError):
            auth.login("", "hunter2")

    def test_wrong_credentials(self, auth):
        with pytest.raises(AuthenticationError) as excinfo:
            auth.login("root", "wrong")
        assert excinfo.value.message == "Invalid credentials"


class TestVerify:
    def test_bearer_token(self, auth):
        token = auth.login("root", "hunter2")["token"]
        assert auth.verify(f"Bearer {token}").username == "root"

    def test_missing_token(self, auth):
        with pytest.raises(AuthenticationError) as excinfo:
            auth.verify(None)
        assert excinfo.value.message == "No token provided"

    def test_expired_token(self, auth):
        identity = auth.credentials.administrator()
        tokens = TokenService("test-secret", timedelta(seconds=1))
        token = tokens.issue(identity, now=datetime.now(timezone.utc) - timedelta(hours=1))

        with pytest.raises(AuthenticationError) as excinfo:
            auth.verify(f"Bearer {token}")
        assert excinfo.value.message == "Token has expired"

    def test_foreign_signature(self, auth):
        identity = auth.credentials.administrator()
        token = TokenService("another-secret").issue(identity)

        with pytest.raises(AuthenticationError) as excinfo:
            auth.verify(token)
        assert excinfo.value.message == "Invalid token"
