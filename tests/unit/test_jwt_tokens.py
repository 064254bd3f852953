"""JWT issuance and verification."""

import jwt
import pytest

from focusarena.auth.jwt import create_access_token, create_refresh_token, hash_token, verify_token


class TestTokens:
    def test_access_token_round_trip(self):
        payload = verify_token(create_access_token(7, "ada@example.com"), expected_type="access")
        assert payload["sub"] == "7"
        assert payload["email"] == "ada@example.com"

    def test_refresh_token_carries_jti(self):
        payload = verify_token(create_refresh_token(7, token_id="abc"), expected_type="refresh")
        assert payload["jti"] == "abc"

    def test_wrong_type_rejected(self):
        token = create_refresh_token(7, token_id="abc")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type="access")

    def test_foreign_signature_rejected(self):
        token = jwt.encode(
            {"sub": "7", "type": "access", "iss": "focusarena"},
            "some-other-secret-with-enough-length-123",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_hash_is_stable_and_opaque(self):
        assert hash_token("secret") == hash_token("secret")
        assert hash_token("secret") != "secret"
        assert len(hash_token("secret")) == 64
