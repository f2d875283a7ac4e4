"""Password hashing and token handling."""

from datetime import timedelta

import pytest
from fastapi import HTTPException

from sphire.core.security import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    create_token,
    decode_token,
    get_password_hash,
    verify_password,
)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = get_password_hash("secret123")

        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_is_a_mismatch(self):
        assert verify_password("secret123", "not-a-bcrypt-hash") is False


class TestTokens:
    def test_access_token_round_trip(self):
        assert decode_token(create_token(42)) == 42

    def test_refresh_token_not_accepted_as_access(self):
        token = create_token(42, REFRESH_TOKEN)

        assert decode_token(token, REFRESH_TOKEN) == 42
        with pytest.raises(HTTPException) as exc:
            decode_token(token, ACCESS_TOKEN)
        assert exc.value.status_code == 401

    def test_expired_token(self):
        token = create_token(42, expires_delta=timedelta(seconds=-1))

        with pytest.raises(HTTPException) as exc:
            decode_token(token)
        assert exc.value.detail == "Token has expired"

    def test_garbage_token(self):
        with pytest.raises(HTTPException) as exc:
            decode_token("abc.def.ghi")
        assert exc.value.detail == "Invalid or expired token"
