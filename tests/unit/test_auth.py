"""Tests for auth utility functions."""
from datetime import timedelta

import pytest
from jose import JWTError, jwt


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_create_and_verify_token(self):
        """A freshly created token yields its subject."""
        from worklog.utils.auth import create_access_token, verify_access_token

        token = create_access_token(user_id="user123")

        assert isinstance(token, str)
        assert verify_access_token(token) == "user123"

    def test_expired_token(self):
        """Expired tokens are rejected."""
        from worklog.utils.auth import create_access_token, verify_access_token

        token = create_access_token(user_id="user123", expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            verify_access_token(token)

    def test_token_without_subject(self):
        """Tokens must carry a sub claim."""
        from worklog.config import settings
        from worklog.utils.auth import verify_access_token

        token = jwt.encode({"foo": "bar"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)

        with pytest.raises(JWTError, match="sub"):
            verify_access_token(token)

    def test_token_with_wrong_secret(self):
        """Tokens signed elsewhere are rejected."""
        from worklog.utils.auth import verify_access_token

        token = jwt.encode({"sub": "user123"}, "other-secret", algorithm="HS256")

        with pytest.raises(JWTError):
            verify_access_token(token)
