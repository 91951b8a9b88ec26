"""Tests for JWT token management."""

from datetime import timedelta

import jwt
import pytest

from salvambiente.auth.jwt import (
    ACCESS,
    GOOGLE_PENDING,
    OAUTH_STATE,
    create_pending_token,
    create_session_token,
    create_state_token,
    verify_token,
)
from salvambiente.auth.schemas import TokenClaims
from salvambiente.auth.roles import Role


class TestSessionToken:
    def test_create_and_verify(self):
        token = create_session_token(user_id=7, username="ana", email="ana@example.com", role="usuario", role_id=3)
        payload = verify_token(token)
        assert payload["id"] == 7
        assert payload["usuario"] == "ana"
        assert payload["correo"] == "ana@example.com"
        assert payload["rol"] == "usuario"
        assert payload["rol_id"] == 3
        assert payload["type"] == ACCESS

    def test_lifetime_is_four_hours(self):
        token = create_session_token(user_id=1, username="a", email="a@x.com", role="admin", role_id=1)
        payload = verify_token(token)
        assert payload["exp"] - payload["iat"] == 4 * 3600

    def test_expired_token_raises_expired(self):
        token = create_session_token(
            user_id=1, username="a", email="a@x.com", role="usuario", role_id=3, ttl=timedelta(seconds=-1)
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            verify_token(token)

    def test_forged_signature_rejected(self):
        forged = jwt.encode({"id": 1, "type": ACCESS}, "another-secret-of-sufficient-length!!", algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(forged)

    def test_garbage_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token("not-a-jwt")


class TestPendingAndStateTokens:
    def test_pending_token_carries_google_identity(self):
        token = create_pending_token("g@example.com", "Gabi")
        payload = verify_token(token, expected_type=GOOGLE_PENDING)
        assert payload["email"] == "g@example.com"
        assert payload["name"] == "Gabi"
        assert payload["verified"] is False
        assert payload["exp"] - payload["iat"] == 10 * 60

    def test_pending_token_is_not_a_session(self):
        token = create_pending_token("g@example.com", None)
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token)

    def test_state_token_round_trip(self):
        assert verify_token(create_state_token(), expected_type=OAUTH_STATE)["type"] == OAUTH_STATE

    def test_session_token_is_not_a_state(self):
        token = create_session_token(user_id=1, username="a", email="a@x.com", role="usuario", role_id=3)
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type=OAUTH_STATE)


class TestTokenClaims:
    def test_missing_role_defaults_to_user(self):
        claims = TokenClaims.from_payload({"id": 1, "usuario": "a", "correo": "a@x.com", "rol": None})
        assert claims.rol is Role.USER

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            TokenClaims.from_payload({"id": 1, "usuario": "a", "correo": "a@x.com", "rol": "superuser"})
