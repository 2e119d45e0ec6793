"""
Tests for the redirect token codec.
"""

import pytest
from jose import jwt

from nitroauth.auth.catalog import Role
from nitroauth.auth.tokens import TOKEN_ALGORITHM, TokenCodec, TokenStatus
from nitroauth.core.exceptions import TokenConfigurationError

SECRET = "unit-test-secret"


@pytest.fixture
def codec(clock) -> TokenCodec:
    return TokenCodec(secret=SECRET, clock=clock)


class TestMintAndVerify:

    def test_round_trip(self, codec):
        token = codec.mint("user_1", Role.PREMIUM)
        result = codec.verify(token)

        assert result.status is TokenStatus.VALID
        assert result.claims.subject_id == "user_1"
        assert result.claims.role == "premium"

    def test_issued_at_is_milliseconds(self, codec, clock):
        token = codec.mint("user_1", Role.GUEST)
        assert codec.verify(token).claims.issued_at == int(clock.now * 1000)

    def test_expiry_claim_is_one_hour(self, codec, clock):
        token = codec.mint("user_1", Role.GUEST)
        claims = jwt.get_unverified_claims(token)
        assert claims["exp"] - claims["iat"] == 3600

    @pytest.mark.parametrize("minutes, status", [
        (0, TokenStatus.VALID),
        (59, TokenStatus.VALID),
        (60, TokenStatus.EXPIRED),
        (61, TokenStatus.EXPIRED),
    ])
    def test_expiry_boundary(self, codec, clock, minutes, status):
        token = codec.mint("user_1", Role.STANDARD)
        clock.advance(minutes * 60)

        result = codec.verify(token)
        assert result.status is status
        # Expired tokens still report who they were issued to
        assert result.claims.subject_id == "user_1"

    def test_is_expired_fast_path(self, codec, clock):
        token = codec.mint("user_1", Role.STANDARD)
        assert codec.is_expired(token) is False

        clock.advance(61 * 60)
        assert codec.is_expired(token) is True

    def test_mid_second_issue_keeps_full_hour(self, codec, clock):
        clock.now = 1_700_000_000.9
        token = codec.mint("user_1", Role.STANDARD)

        clock.advance(3599.5)
        assert codec.verify(token).status is TokenStatus.VALID
        assert codec.is_expired(token) is False

        clock.advance(0.6)
        assert codec.verify(token).status is TokenStatus.EXPIRED

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_garbage_counts_as_expired_and_invalid(self, codec, token):
        assert codec.is_expired(token) is True
        assert codec.verify(token).status is TokenStatus.INVALID


class TestTampering:

    def test_wrong_secret(self, codec, clock):
        other = TokenCodec(secret="another-secret", clock=clock)
        token = other.mint("user_1", Role.ADMIN)
        assert codec.verify(token).status is TokenStatus.INVALID

    def test_single_character_mutations(self, codec):
        token = codec.mint("user_1", Role.ADMIN)
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"

        rejected = 0
        positions = 0
        for i, char in enumerate(token):
            if char == ".":
                continue
            positions += 1
            replacement = alphabet[(alphabet.index(char) + 17) % len(alphabet)]
            mutated = token[:i] + replacement + token[i + 1:]
            if codec.verify(mutated).status is not TokenStatus.VALID:
                rejected += 1

        assert rejected / positions >= 0.95

    def test_forged_role_is_rejected(self, codec, clock):
        token = codec.mint("user_1", Role.GUEST)
        claims = jwt.get_unverified_claims(token)
        claims["role"] = "super_admin"
        forged = jwt.encode(claims, "guessed-secret", algorithm=TOKEN_ALGORITHM)

        assert codec.verify(forged).status is TokenStatus.INVALID

    def test_issued_in_the_future_is_invalid(self, codec, clock):
        future = TokenCodec(secret=SECRET, clock=lambda: clock.now + 600)
        token = future.mint("user_1", Role.GUEST)
        assert codec.verify(token).status is TokenStatus.INVALID


class TestConfiguration:

    def test_production_without_secret_refuses_to_mint(self):
        codec = TokenCodec(secret=None, production=True)
        with pytest.raises(TokenConfigurationError):
            codec.mint("user_1", Role.GUEST)

    def test_development_without_secret_uses_fallback(self):
        codec = TokenCodec(secret=None, production=False)
        token = codec.mint("user_1", Role.GUEST)
        assert codec.verify(token).is_valid
