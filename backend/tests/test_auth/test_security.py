"""Unit tests for password hashing and JWT creation, decoding, and validation."""

from datetime import timedelta

import pytest
from jose import JWTError

from stayhub.auth.security import (
    create_access_token,
    create_refresh_token,
    create_reset_token,
    create_token_pair,
    decode_token,
    hash_password,
    password_fingerprint,
    reset_token_matches,
    verify_password,
)


class TestPasswords:
    """Test bcrypt hashing and verification."""

    def test_hash_differs_from_plaintext(self):
        assert hash_password("mypassword") != "mypassword"

    def test_same_password_different_salts(self):
        assert hash_password("samepassword") != hash_password("samepassword")

    def test_verify_correct_password(self):
        hashed = hash_password("correct")
        assert verify_password("correct", hashed) is True

    def test_verify_wrong_password(self):
        hashed = hash_password("correct")
        assert verify_password("wrong", hashed) is False


class TestCreateTokens:
    """Test token creation for each type."""

    def test_access_token_type(self):
        payload = decode_token(create_access_token({"sub": "user-123"}))
        assert payload["type"] == "access"
        assert payload["sub"] == "user-123"
        assert "iat" in payload and "exp" in payload

    def test_refresh_token_type(self):
        payload = decode_token(create_refresh_token({"sub": "user-xyz"}))
        assert payload["type"] == "refresh"

    def test_token_pair(self):
        tokens = create_token_pair("user-1")
        assert tokens["token_type"] == "bearer"
        assert decode_token(tokens["access_token"])["type"] == "access"
        assert decode_token(tokens["refresh_token"])["type"] == "refresh"

    def test_reset_token_binds_password_hash(self):
        hashed = hash_password("old-password")
        payload = decode_token(create_reset_token("user-1", hashed), expected_type="reset")
        assert payload["sub"] == "user-1"
        assert reset_token_matches(payload, hashed)
        assert not reset_token_matches(payload, hash_password("new-password"))

    def test_reset_token_does_not_expose_the_hash(self):
        hashed = hash_password("old-password")
        payload = decode_token(create_reset_token("user-1", hashed), expected_type="reset")
        assert payload["pwd"] == password_fingerprint(hashed)
        assert hashed[-10:] not in payload["pwd"]
        assert len(payload["pwd"]) == 64


class TestDecodeToken:
    """Test token decoding and validation."""

    def test_expired_token_raises(self):
        token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_token(token)

    def test_invalid_token_raises(self):
        with pytest.raises(JWTError):
            decode_token("not.a.valid.token")

    def test_expected_type_mismatch_raises(self):
        token = create_refresh_token({"sub": "user-123"})
        with pytest.raises(JWTError):
            decode_token(token, expected_type="access")

    def test_expected_type_match(self):
        token = create_access_token({"sub": "user-123"})
        assert decode_token(token, expected_type="access")["sub"] == "user-123"
