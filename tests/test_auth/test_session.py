"""
Tests for identity provider session token handling.
"""

import pytest
from jose import jwt

from nitroauth.auth.session import extract_identity, get_rsa_key, validate_session_token
from nitroauth.core.exceptions import UnauthorizedException

JWKS = {
    "keys": [
        {"kty": "RSA", "kid": "key-1", "use": "sig", "n": "abc", "e": "AQAB", "alg": "RS256"},
        {"kty": "RSA", "kid": "key-2", "use": "sig", "n": "def", "e": "AQAB"},
    ]
}


def test_get_rsa_key():
    key = get_rsa_key(JWKS, "key-2")
    assert key == {"kty": "RSA", "kid": "key-2", "use": "sig", "n": "def", "e": "AQAB"}
    assert get_rsa_key(JWKS, "key-9") is None


def test_extract_identity():
    identity = extract_identity({"sub": "user_a", "email": "a@example.com", "sid": "sess_1"})
    assert identity == {"user_id": "user_a", "email": "a@example.com", "session_id": "sess_1"}


def test_extract_identity_requires_subject():
    with pytest.raises(UnauthorizedException):
        extract_identity({"email": "a@example.com"})


@pytest.mark.asyncio
async def test_token_without_key_id_rejected():
    token = jwt.encode({"sub": "user_a"}, "secret", algorithm="HS256")
    with pytest.raises(UnauthorizedException):
        await validate_session_token(token)


@pytest.mark.asyncio
async def test_garbage_token_rejected():
    with pytest.raises(UnauthorizedException):
        await validate_session_token("not-a-jwt")
