"""Access token verification against the identity provider's settings."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from betthat.auth.jwt import create_access_token, verify_token
from betthat.config import get_settings


def _encode(payload: dict) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class TestVerifyToken:
    def test_round_trip_subject_and_email(self):
        payload = verify_token(create_access_token("user-1", "u1@example.com"))
        assert payload["sub"] == "user-1"
        assert payload["email"] == "u1@example.com"
        assert payload["aud"] == "authenticated"

    def test_expired(self):
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(create_access_token("user-1", expires_minutes=-1))

    def test_wrong_audience(self):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(_encode({"sub": "user-1", "aud": "anon", "exp": exp}))

    def test_missing_subject(self):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(_encode({"aud": "authenticated", "exp": exp}))

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": "user-1", "aud": "authenticated", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "someone-elses-secret-that-is-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)
