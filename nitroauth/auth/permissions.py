"""
Site permission evaluation.

Decides whether an effective permission set reaches a requested target and
derives the fine-grained capability matrix reported to target applications.
"""

from collections.abc import Iterable
from urllib.parse import urlsplit

from nitroauth.auth.catalog import (
    PERMISSION_URLS,
    Role,
    SitePermissions,
    canonical_url,
    default_permissions,
)
from nitroauth.models.site import Site, SiteCategory


# Broad markers are independent grants. Each one reaches a single site
# category; holding ``all_sites`` does not add ``premium_sites`` to the set,
# it only reaches the same non-admin categories. Admin targets are reached
# through ``nitroauth_admin`` alone.
CATEGORY_MARKERS: dict[SiteCategory, frozenset[str]] = {
    SiteCategory.ADMIN: frozenset({SitePermissions.NITROAUTH_ADMIN}),
    SiteCategory.PREMIUM: frozenset({
        SitePermissions.PREMIUM_SITES,
        SitePermissions.ALL_SITES,
    }),
    SiteCategory.STANDARD: frozenset({
        SitePermissions.STANDARD_SITES,
        SitePermissions.ALL_SITES,
    }),
}

# Requesting a marker by name is a request for its category
_MARKER_CATEGORIES: dict[str, SiteCategory] = {
    SitePermissions.NITROAUTH_ADMIN: SiteCategory.ADMIN,
    SitePermissions.PREMIUM_SITES: SiteCategory.PREMIUM,
    SitePermissions.STANDARD_SITES: SiteCategory.STANDARD,
}


def effective_permissions(role: Role | str, site_access: Iterable[str] = ()) -> frozenset[str]:
    """Union of the role's defaults and the explicit grants."""
    return default_permissions(role) | frozenset(site_access)


def normalize_target(value: str) -> str:
    """
    Comparable form of a target identifier.

    URLs are compared case-insensitively on scheme and host and without a
    trailing slash; other identifiers are compared as given.
    """
    candidate = value.strip()
    if "://" not in candidate:
        return candidate
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return candidate
    if not parts.scheme or not parts.netloc:
        return candidate
    path = parts.path.rstrip("/")
    normalized = f"{parts.scheme.lower()}://{parts.netloc.lower()}{path}"
    if parts.query:
        normalized = f"{normalized}?{parts.query}"
    return normalized


def target_category(target: str, site: Site | None = None) -> SiteCategory | None:
    """
    Category a target belongs to.

    A registered site carries its own category; marker names and the
    built-in destinations map onto theirs. Anything else has none.
    """
    if site is not None:
        return site.category
    if target in _MARKER_CATEGORIES:
        return _MARKER_CATEGORIES[target]

    normalized = normalize_target(target)
    for permission, url in PERMISSION_URLS.items():
        if normalize_target(url) == normalized and permission in _MARKER_CATEGORIES:
            return _MARKER_CATEGORIES[permission]
    return None


def is_target_authorized(
    role: Role | str,
    permissions: Iterable[str],
    target: str,
    site: Site | None = None,
) -> bool:
    """
    Check whether a permission set reaches a target.

    Authorized when any of the following holds:
    - the role is super admin
    - a held permission equals the target, its registered name or URL, or
      has the target as its canonical destination
    - a held broad marker covers the target's category; ``all_sites`` also
      covers targets with no category at all

    Args:
        role: Current role of the principal
        permissions: Effective permission set
        target: Requested target identifier or URL
        site: Registered site resolved from the target, if any
    """
    if Role.normalize(role) is Role.SUPER_ADMIN:
        return True

    held = frozenset(permissions)
    if not target:
        return False

    identifiers = {normalize_target(target)}
    if site is not None:
        identifiers.add(site.name)
        identifiers.add(normalize_target(site.url))

    for permission in held:
        if normalize_target(permission) in identifiers:
            return True
        url = canonical_url(permission)
        if url is not None and normalize_target(url) in identifiers:
            return True

    category = target_category(target, site)
    if category is None:
        return SitePermissions.ALL_SITES in held
    return bool(held & CATEGORY_MARKERS[category])


def accessible_destinations(permissions: Iterable[str]) -> list[tuple[str, str | None]]:
    """Held permissions paired with their canonical URL, sorted by permission."""
    return [(permission, canonical_url(permission)) for permission in sorted(set(permissions))]


# ---------------------------------------------------------------------------
# Capability matrix
# ---------------------------------------------------------------------------

_CAPABILITY_AREAS = ("dashboard", "users", "reports", "settings", "analytics", "billing")

ALL_CAPABILITIES: tuple[str, ...] = tuple(
    f"{area}:{level}"
    for area in _CAPABILITY_AREAS
    for level in ("read", "write", "admin")
) + ("users:delete",)

ROLE_CAPABILITIES: dict[Role, frozenset[str]] = {
    Role.SUPER_ADMIN: frozenset(ALL_CAPABILITIES),
    Role.ADMIN: frozenset({
        "dashboard:read", "dashboard:write",
        "users:read", "users:write",
        "reports:read", "reports:write",
        "settings:read", "settings:write",
        "analytics:read", "analytics:write",
        "billing:read",
    }),
    Role.PREMIUM: frozenset({
        "dashboard:read", "dashboard:write",
        "users:read", "reports:read", "settings:read",
        "analytics:read", "billing:read",
    }),
    Role.STANDARD: frozenset({
        "dashboard:read", "users:read", "settings:read", "analytics:read",
    }),
    Role.GUEST: frozenset({"dashboard:read"}),
}

# Extra capabilities unlocked by specific grants
GRANT_CAPABILITIES: dict[str, frozenset[str]] = {
    "admin_dashboard": frozenset({"dashboard:admin", "users:admin"}),
    "admin_sites": frozenset({"dashboard:admin", "users:admin"}),
    "user_management_full": frozenset({"users:admin", "users:delete"}),
    "reports_admin": frozenset({"reports:admin"}),
    "analytics_admin": frozenset({"analytics:admin"}),
    "billing_admin": frozenset({"billing:admin"}),
    SitePermissions.PREMIUM_SITES: frozenset({"analytics:write", "reports:write"}),
    SitePermissions.ALL_SITES: frozenset(ALL_CAPABILITIES),
}

SITE_ADMIN_CAPABILITY = "site_specific:admin"


def capability_matrix(role: Role | str, site_access: Iterable[str], site_id: str) -> dict[str, bool]:
    """
    Fine-grained capabilities of a principal on one target application.

    Starts from the role's capabilities and adds those unlocked by explicit
    grants. A grant that mentions ``site_id`` adds ``site_specific:admin``.
    Every known capability is present in the result.
    """
    granted = set(ROLE_CAPABILITIES[Role.normalize(role)])
    for access in site_access:
        granted |= GRANT_CAPABILITIES.get(access, frozenset())
        if site_id and site_id in access:
            granted.add(SITE_ADMIN_CAPABILITY)

    matrix = {capability: capability in granted for capability in ALL_CAPABILITIES}
    matrix[SITE_ADMIN_CAPABILITY] = SITE_ADMIN_CAPABILITY in granted
    return matrix
