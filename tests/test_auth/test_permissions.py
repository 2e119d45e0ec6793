"""
Tests for site permission evaluation and the capability matrix.
"""

import pytest

from nitroauth.auth.catalog import (
    ADMIN_DASHBOARD_URL,
    BASIC_TOOLS_URL,
    PREMIUM_TOOLS_URL,
    Role,
    SitePermissions,
    default_permissions,
)
from nitroauth.auth.permissions import (
    ALL_CAPABILITIES,
    SITE_ADMIN_CAPABILITY,
    capability_matrix,
    effective_permissions,
    is_target_authorized,
    normalize_target,
)
from nitroauth.models.site import Site, SiteCategory


def _site(category: SiteCategory, url: str = "https://app.example.com", name: str = "App") -> Site:
    return Site(name=name, url=url, category=category, is_active=True)


def _authorized(role: Role, target: str, grants: list[str] | None = None, site: Site | None = None) -> bool:
    return is_target_authorized(role, effective_permissions(role, grants or []), target, site)


class TestEffectivePermissions:

    def test_union_of_defaults_and_grants(self):
        result = effective_permissions(Role.STANDARD, ["https://partner.example.com"])
        assert result == {SitePermissions.STANDARD_SITES, "https://partner.example.com"}

    def test_duplicates_are_harmless(self):
        result = effective_permissions(Role.STANDARD, ["standard_sites", "standard_sites"])
        assert result == default_permissions(Role.STANDARD)


class TestExactMatch:

    def test_guest_with_explicit_url_grant(self):
        assert _authorized(Role.GUEST, "https://partner.example.com", ["https://partner.example.com"])

    def test_url_comparison_ignores_trailing_slash_and_host_case(self):
        assert _authorized(Role.GUEST, "https://Partner.Example.com/", ["https://partner.example.com"])

    def test_guest_without_grants_is_denied_everywhere(self):
        assert not _authorized(Role.GUEST, "https://partner.example.com")
        assert not _authorized(Role.GUEST, SitePermissions.STANDARD_SITES)

    def test_canonical_destination_of_held_permission(self):
        assert _authorized(Role.STANDARD, BASIC_TOOLS_URL)
        assert _authorized(Role.ADMIN, ADMIN_DASHBOARD_URL)
        assert not _authorized(Role.STANDARD, PREMIUM_TOOLS_URL)

    def test_registered_site_name_or_url_grant(self):
        site = _site(SiteCategory.PREMIUM, url="https://crm.example.com", name="CRM")
        assert _authorized(Role.GUEST, "CRM", ["https://crm.example.com"], site)
        assert _authorized(Role.GUEST, "https://crm.example.com", ["CRM"], site)


class TestBroadMarkers:

    def test_standard_cannot_reach_premium_marker(self):
        assert not _authorized(Role.STANDARD, SitePermissions.PREMIUM_SITES)

    def test_premium_reaches_standard_and_premium_categories(self):
        assert _authorized(Role.PREMIUM, "https://a.example.com", site=_site(SiteCategory.PREMIUM))
        assert _authorized(Role.PREMIUM, "https://a.example.com", site=_site(SiteCategory.STANDARD))

    def test_standard_denied_for_premium_category(self):
        assert not _authorized(Role.STANDARD, "https://a.example.com", site=_site(SiteCategory.PREMIUM))

    def test_admin_category_requires_admin_marker(self):
        site = _site(SiteCategory.ADMIN)
        assert _authorized(Role.ADMIN, "https://a.example.com", site=site)
        assert not _authorized(Role.PREMIUM, "https://a.example.com", site=site)
        # all_sites does not reach admin targets
        assert not _authorized(Role.GUEST, "https://a.example.com", [SitePermissions.ALL_SITES], site)

    def test_all_sites_reaches_uncategorized_targets(self):
        assert _authorized(Role.GUEST, "https://unregistered.example.com", [SitePermissions.ALL_SITES])
        assert not _authorized(Role.PREMIUM, "https://unregistered.example.com")

    def test_all_sites_reaches_category_markers(self):
        assert _authorized(Role.GUEST, SitePermissions.PREMIUM_SITES, [SitePermissions.ALL_SITES])
        assert not _authorized(Role.GUEST, SitePermissions.NITROAUTH_ADMIN, [SitePermissions.ALL_SITES])


class TestSuperAdmin:

    @pytest.mark.parametrize("target", [
        "https://anything.example.com",
        SitePermissions.NITROAUTH_ADMIN,
        "custom_url_5",
    ])
    def test_authorized_for_everything(self, target):
        assert is_target_authorized(Role.SUPER_ADMIN, frozenset(), target)

    def test_role_string_is_normalized(self):
        assert not is_target_authorized("SUPER_ADMIN", frozenset(), "https://anything.example.com")


class TestNormalizeTarget:

    def test_identifiers_untouched(self):
        assert normalize_target("premium_sites") == "premium_sites"

    def test_url_normalized(self):
        assert normalize_target("HTTPS://Example.COM/path/") == "https://example.com/path"


class TestCapabilityMatrix:

    def test_guest_reads_dashboard_only(self):
        matrix = capability_matrix(Role.GUEST, [], "site-1")
        assert matrix["dashboard:read"] is True
        assert matrix["users:read"] is False
        assert matrix[SITE_ADMIN_CAPABILITY] is False

    def test_every_capability_reported(self):
        matrix = capability_matrix(Role.STANDARD, [], "site-1")
        assert set(ALL_CAPABILITIES) <= set(matrix)

    def test_super_admin_has_everything(self):
        matrix = capability_matrix(Role.SUPER_ADMIN, [], "site-1")
        assert all(matrix[c] for c in ALL_CAPABILITIES)

    def test_grants_unlock_capabilities(self):
        matrix = capability_matrix(Role.STANDARD, ["premium_sites", "billing_admin"], "site-1")
        assert matrix["analytics:write"] is True
        assert matrix["reports:write"] is True
        assert matrix["billing:admin"] is True
        assert matrix["users:delete"] is False

    def test_site_specific_grant(self):
        matrix = capability_matrix(Role.GUEST, ["https://site-1.example.com"], "site-1")
        assert matrix[SITE_ADMIN_CAPABILITY] is True
