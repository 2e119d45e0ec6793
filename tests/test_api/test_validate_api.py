"""
Tests for the token validation endpoints used by target applications.
"""

import pytest
from httpx import AsyncClient

from nitroauth.auth.catalog import Role, SitePermissions
from nitroauth.auth.tokens import TokenCodec


@pytest.mark.asyncio
async def test_validate_round_trip(client: AsyncClient, identity, seed_user):
    """A token from a granted redirect validates for the same user."""
    await seed_user("user_prem", role="premium", site_access=[SitePermissions.CRM_SITE])
    identity["user_id"] = "user_prem"

    granted = await client.post(
        "/api/v1/auth/authorize",
        json={"requestedSite": SitePermissions.CRM_SITE, "redirectUrl": "https://crm.example.com/sso"},
    )
    assert granted.status_code == 200
    redirect = granted.json()["redirectUrl"]
    token = redirect.split("auth_token=")[1].split("&")[0]

    response = await client.post(
        "/api/v1/validate",
        json={"auth_token": token, "user_id": "user_prem", "siteId": "crm"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["user"]["role"] == "premium"
    assert data["user"]["siteAccess"] == [SitePermissions.CRM_SITE]
    assert isinstance(data["tokenIssuedAt"], int)
    assert data["capabilities"]["dashboard:write"] is True
    assert data["capabilities"]["site_specific:admin"] is True
    assert "X-RateLimit-Limit" in response.headers


@pytest.mark.asyncio
async def test_validate_mismatched_user(client: AsyncClient, seed_user, token_codec):
    await seed_user("user_a", role="premium")
    await seed_user("user_b", role="premium")
    token = token_codec.mint("user_a", Role.PREMIUM)

    response = await client.post(
        "/api/v1/validate",
        json={"auth_token": token, "user_id": "user_b"},
    )

    assert response.status_code == 401
    assert response.json() == {"valid": False, "error": "Token user mismatch"}


@pytest.mark.asyncio
async def test_validate_missing_parameters(client: AsyncClient):
    response = await client.post("/api/v1/validate", json={"user_id": "user_a"})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing required parameters"


@pytest.mark.asyncio
async def test_validate_forged_token(client: AsyncClient, seed_user):
    await seed_user("user_a", role="guest")
    forged = TokenCodec(secret="attacker-secret").mint("user_a", Role.SUPER_ADMIN)

    response = await client.post(
        "/api/v1/validate",
        json={"auth_token": forged, "user_id": "user_a"},
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token"


@pytest.mark.asyncio
async def test_validate_requested_permissions(client: AsyncClient, seed_user, token_codec):
    await seed_user("user_a", role="standard")
    token = token_codec.mint("user_a", Role.STANDARD)

    response = await client.post(
        "/api/v1/validate",
        json={
            "auth_token": token,
            "user_id": "user_a",
            "requestedPermissions": [SitePermissions.STANDARD_SITES, SitePermissions.PREMIUM_SITES],
        },
    )

    assert response.status_code == 200
    assert response.json()["requestedPermissions"] == {
        SitePermissions.STANDARD_SITES: True,
        SitePermissions.PREMIUM_SITES: False,
    }


@pytest.mark.asyncio
async def test_quick_validate(client: AsyncClient, seed_user, token_codec):
    await seed_user("user_a", role="admin")
    token = token_codec.mint("user_a", Role.ADMIN)

    response = await client.get(
        "/api/v1/validate",
        params={"auth_token": token, "user_id": "user_a"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["role"] == "admin"
    assert "user" not in data


@pytest.mark.asyncio
async def test_quick_validate_invalid_is_ok_status(client: AsyncClient, token_codec):
    token = token_codec.mint("user_a", Role.ADMIN)

    response = await client.get(
        "/api/v1/validate",
        params={"auth_token": token, "user_id": "user_b"},
    )

    assert response.status_code == 200
    assert response.json() == {"valid": False, "error": "Token user mismatch"}


@pytest.mark.asyncio
async def test_quick_validate_missing_parameters(client: AsyncClient):
    response = await client.get("/api/v1/validate", params={"user_id": "user_a"})

    assert response.status_code == 400
    assert response.json()["valid"] is False
