"""
Tests for redirect token validation.
"""

import time

import pytest

from nitroauth.auth.catalog import Role, SitePermissions
from nitroauth.auth.tokens import TokenCodec
from nitroauth.services.cache import ValidationCache
from nitroauth.services.principals import InMemoryPrincipalDirectory
from nitroauth.services.validation import InvalidReason, ValidationService


class FailingDirectory(InMemoryPrincipalDirectory):
    async def get_principal(self, principal_id):
        raise ConnectionError("directory down")


@pytest.fixture
def service(directory, token_codec, validation_cache) -> ValidationService:
    return ValidationService(directory, token_codec, cache=validation_cache)


class TestTokenChecks:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token,user_id", [(None, "user_1"), ("", "user_1"), ("abc", None)])
    async def test_missing_parameters(self, service, token, user_id):
        verdict = await service.validate(token, user_id)
        assert verdict.valid is False
        assert verdict.error == InvalidReason.MISSING_PARAMETERS.value

    @pytest.mark.asyncio
    async def test_user_mismatch(self, service, directory, make_principal, token_codec):
        directory.add(make_principal("user_a", Role.PREMIUM))
        directory.add(make_principal("user_b", Role.PREMIUM))
        token = token_codec.mint("user_a", Role.PREMIUM)

        verdict = await service.validate(token, "user_b")

        assert verdict.valid is False
        assert verdict.error == "Token user mismatch"
        assert verdict.user is None

    @pytest.mark.asyncio
    async def test_expired_token(self, service, directory, make_principal):
        directory.add(make_principal("user_a", Role.STANDARD))
        old_codec = TokenCodec(secret="test-signing-secret", clock=lambda: time.time() - 2 * 3600)
        token = old_codec.mint("user_a", Role.STANDARD)

        verdict = await service.validate(token, "user_a")

        assert verdict.valid is False
        assert verdict.error == InvalidReason.TOKEN_EXPIRED.value

    @pytest.mark.asyncio
    async def test_wrong_signature(self, service, directory, make_principal):
        directory.add(make_principal("user_a", Role.STANDARD))
        token = TokenCodec(secret="another-secret").mint("user_a", Role.STANDARD)

        verdict = await service.validate(token, "user_a")

        assert verdict.valid is False
        assert verdict.error == InvalidReason.INVALID_TOKEN.value

    @pytest.mark.asyncio
    async def test_unknown_user(self, service, token_codec):
        token = token_codec.mint("user_gone", Role.STANDARD)

        verdict = await service.validate(token, "user_gone")

        assert verdict.valid is False
        assert verdict.error == InvalidReason.USER_NOT_FOUND.value

    @pytest.mark.asyncio
    async def test_directory_failure(self, token_codec):
        service = ValidationService(FailingDirectory(), token_codec)
        token = token_codec.mint("user_a", Role.STANDARD)

        verdict = await service.validate(token, "user_a")

        assert verdict.valid is False
        assert verdict.error == InvalidReason.LOOKUP_FAILED.value


class TestFullValidation:

    @pytest.mark.asyncio
    async def test_reports_current_state(self, service, directory, make_principal, token_codec):
        directory.add(make_principal("user_a", Role.STANDARD, [SitePermissions.CRM_SITE]))
        token = token_codec.mint("user_a", Role.STANDARD)

        verdict = await service.validate(token, "user_a")

        assert verdict.valid is True
        assert verdict.error is None
        assert verdict.user.id == "user_a"
        assert verdict.user.role == "standard"
        assert verdict.user.site_access == [SitePermissions.CRM_SITE]
        assert set(verdict.user.permissions) == {
            SitePermissions.STANDARD_SITES,
            SitePermissions.CRM_SITE,
        }
        assert verdict.token_issued_at is not None
        assert verdict.capabilities is None

    @pytest.mark.asyncio
    async def test_role_read_from_directory_not_token(
        self, service, directory, make_principal, token_codec
    ):
        directory.add(make_principal("user_a", Role.GUEST))
        token = token_codec.mint("user_a", Role.ADMIN)

        verdict = await service.validate(token, "user_a")

        assert verdict.valid is True
        assert verdict.user.role == "guest"

    @pytest.mark.asyncio
    async def test_capabilities_for_site(self, service, directory, make_principal, token_codec):
        directory.add(make_principal("user_a", Role.STANDARD, ["reports_admin"]))
        token = token_codec.mint("user_a", Role.STANDARD)

        verdict = await service.validate(token, "user_a", site_id="crm")

        assert verdict.capabilities["dashboard:read"] is True
        assert verdict.capabilities["reports:admin"] is True
        assert verdict.capabilities["billing:read"] is False
        assert verdict.capabilities["site_specific:admin"] is False

    @pytest.mark.asyncio
    async def test_requested_permissions(self, service, directory, make_principal, token_codec):
        directory.add(make_principal("user_a", Role.PREMIUM))
        token = token_codec.mint("user_a", Role.PREMIUM)

        verdict = await service.validate(
            token,
            "user_a",
            site_id="crm",
            requested_permissions=[
                SitePermissions.PREMIUM_SITES,
                SitePermissions.NITROAUTH_ADMIN,
                "dashboard:write",
            ],
        )

        assert verdict.requested_permissions == {
            SitePermissions.PREMIUM_SITES: True,
            SitePermissions.NITROAUTH_ADMIN: False,
            "dashboard:write": True,
        }

    @pytest.mark.asyncio
    async def test_full_validation_fills_cache(
        self, service, directory, make_principal, token_codec, validation_cache
    ):
        directory.add(make_principal("user_a", Role.PREMIUM))
        token = token_codec.mint("user_a", Role.PREMIUM)

        await service.validate(token, "user_a")

        cached = await validation_cache.get("user_a")
        assert cached["role"] == "premium"
        assert cached["siteAccess"] == []


class TestQuickValidation:

    @pytest.mark.asyncio
    async def test_reads_directory_on_miss(self, service, directory, make_principal, token_codec):
        directory.add(make_principal("user_a", Role.PREMIUM))
        token = token_codec.mint("user_a", Role.PREMIUM)

        verdict = await service.validate_quick(token, "user_a")

        assert verdict.valid is True
        assert verdict.role == "premium"
        assert verdict.token_issued_at is not None

    @pytest.mark.asyncio
    async def test_prefers_cache(self, service, directory, make_principal, token_codec, validation_cache):
        directory.add(make_principal("user_a", Role.PREMIUM))
        token = token_codec.mint("user_a", Role.PREMIUM)
        await validation_cache.set("user_a", {"role": "standard", "siteAccess": []})

        verdict = await service.validate_quick(token, "user_a")

        assert verdict.role == "standard"

    @pytest.mark.asyncio
    async def test_same_token_checks(self, service, directory, make_principal, token_codec):
        directory.add(make_principal("user_a", Role.PREMIUM))
        token = token_codec.mint("user_a", Role.PREMIUM)

        mismatch = await service.validate_quick(token, "user_b")
        missing = await service.validate_quick(None, "user_a")

        assert mismatch.valid is False
        assert mismatch.error == InvalidReason.USER_MISMATCH.value
        assert missing.error == InvalidReason.MISSING_PARAMETERS.value

    @pytest.mark.asyncio
    async def test_without_cache(self, directory, make_principal, token_codec):
        service = ValidationService(directory, token_codec, cache=None)
        directory.add(make_principal("user_a", Role.ADMIN))
        token = token_codec.mint("user_a", Role.ADMIN)

        verdict = await service.validate_quick(token, "user_a")

        assert verdict.valid is True
        assert verdict.role == "admin"


class TestValidationCache:

    @pytest.mark.asyncio
    async def test_entries_expire(self, clock):
        cache = ValidationCache(ttl_seconds=300, clock=clock)
        await cache.set("user_a", {"role": "premium"})

        clock.advance(299)
        assert (await cache.get("user_a"))["role"] == "premium"

        clock.advance(1)
        assert await cache.get("user_a") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_delete_and_clear(self):
        cache = ValidationCache()
        await cache.set("user_a", {"role": "premium"})
        await cache.set("user_b", {"role": "guest"})

        await cache.delete("user_a")
        await cache.delete("user_missing")
        assert await cache.get("user_a") is None
        assert len(cache) == 1

        await cache.clear()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_returns_copies(self):
        cache = ValidationCache()
        await cache.set("user_a", {"role": "premium"})

        value = await cache.get("user_a")
        value["role"] = "super_admin"

        assert (await cache.get("user_a"))["role"] == "premium"

    @pytest.mark.asyncio
    async def test_expired_entries_purged_without_reads(self, clock):
        cache = ValidationCache(ttl_seconds=300, clock=clock)
        await cache.set("user_a", {"role": "premium"})
        await cache.set("user_b", {"role": "guest"})

        clock.advance(301)
        # Writing another key drops the stale ones that were never read again
        await cache.set("user_c", {"role": "standard"})
        assert len(cache) == 1

        clock.advance(301)
        assert await cache.purge_expired() == 1
        assert len(cache) == 0
