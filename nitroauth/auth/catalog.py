"""
Role and site permission catalog.

Static data only: the role hierarchy, the default permission set of each
role, canonical destination URLs and per-role landing pages.
"""

import enum
import re
from urllib.parse import urlsplit


class Role(str, enum.Enum):
    """
    Privilege tiers, strictly ordered:
    guest < standard < premium < admin < super_admin.
    """
    GUEST = "guest"
    STANDARD = "standard"
    PREMIUM = "premium"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self) -> int:
        return _ROLE_ORDER.index(self)

    # Ordering follows the hierarchy, not the alphabetical order of the values
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def normalize(cls, value: object) -> "Role":
        """
        Map a stored or externally sourced role string onto the enumeration.

        Only exact values are recognized. Anything else, including a
        differently-cased spelling, is the lowest-privilege role.
        """
        if isinstance(value, Role):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        return cls.GUEST

    @property
    def is_admin(self) -> bool:
        return self >= Role.ADMIN


_ROLE_ORDER = [Role.GUEST, Role.STANDARD, Role.PREMIUM, Role.ADMIN, Role.SUPER_ADMIN]


class SitePermissions:
    """Known site permission identifiers."""

    NITROAUTH_ADMIN = "nitroauth_admin"

    # Broad-access markers
    ALL_SITES = "all_sites"
    PREMIUM_SITES = "premium_sites"
    STANDARD_SITES = "standard_sites"

    # Specific sites
    HOUSE_ATREIDES = "https://www.houseatreides.space"
    ANALYTICS_SITE = "https://analytics.example.com"
    CRM_SITE = "https://crm.example.com"

    # Custom slots an admin can hand out
    CUSTOM_URL_1 = "custom_url_1"
    CUSTOM_URL_2 = "custom_url_2"
    CUSTOM_URL_3 = "custom_url_3"
    CUSTOM_URL_4 = "custom_url_4"
    CUSTOM_URL_5 = "custom_url_5"


KNOWN_PERMISSIONS: frozenset[str] = frozenset(
    value
    for name, value in vars(SitePermissions).items()
    if name.isupper()
)

BROAD_ACCESS_MARKERS: frozenset[str] = frozenset({
    SitePermissions.ALL_SITES,
    SitePermissions.PREMIUM_SITES,
    SitePermissions.STANDARD_SITES,
})

ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    Role.SUPER_ADMIN: frozenset({
        SitePermissions.ALL_SITES,
        SitePermissions.NITROAUTH_ADMIN,
    }),
    Role.ADMIN: frozenset({
        SitePermissions.PREMIUM_SITES,
        SitePermissions.STANDARD_SITES,
        SitePermissions.NITROAUTH_ADMIN,
    }),
    Role.PREMIUM: frozenset({
        SitePermissions.PREMIUM_SITES,
        SitePermissions.STANDARD_SITES,
    }),
    Role.STANDARD: frozenset({
        SitePermissions.STANDARD_SITES,
    }),
    # Guests have no default access; they must be granted specific sites
    Role.GUEST: frozenset(),
}

ADMIN_DASHBOARD_URL = "https://admin.nitroauth.com"
PREMIUM_TOOLS_URL = "https://premium.nitroauth.com"
BASIC_TOOLS_URL = "https://tools.nitroauth.com"
PROFILE_URL = "https://profile.nitroauth.com"

PERMISSION_URLS: dict[str, str] = {
    SitePermissions.NITROAUTH_ADMIN: ADMIN_DASHBOARD_URL,
    SitePermissions.PREMIUM_SITES: PREMIUM_TOOLS_URL,
    SitePermissions.STANDARD_SITES: BASIC_TOOLS_URL,
}

DEFAULT_REDIRECTS: dict[Role, str] = {
    Role.SUPER_ADMIN: ADMIN_DASHBOARD_URL,
    Role.ADMIN: ADMIN_DASHBOARD_URL,
    Role.PREMIUM: PREMIUM_TOOLS_URL,
    Role.STANDARD: BASIC_TOOLS_URL,
    Role.GUEST: PROFILE_URL,
}


def default_permissions(role: Role | str) -> frozenset[str]:
    """Default permission set of a role; unknown roles get the guest set."""
    return ROLE_PERMISSIONS[Role.normalize(role)]


def canonical_url(permission: str) -> str | None:
    """
    Canonical destination of a permission.

    URL-shaped permissions are their own destination; broad markers and
    custom slots without a mapping have none.
    """
    if permission in PERMISSION_URLS:
        return PERMISSION_URLS[permission]
    if _is_https_url(permission):
        return permission
    return None


def default_redirect(role: Role | str) -> str:
    """Landing page for a role, used as the fallback on denial."""
    return DEFAULT_REDIRECTS.get(Role.normalize(role), PROFILE_URL)


# ---------------------------------------------------------------------------
# Permission format validation
# ---------------------------------------------------------------------------

MAX_PERMISSION_LENGTH = 512

_IDENTIFIER = re.compile(r"^[a-z0-9][a-z0-9_\-.]*$")
_SCRIPT_MARKERS = ("<", ">", '"', "'", "javascript:", "data:", "vbscript:", "script")


class InvalidPermissionError(ValueError):
    """Raised when a permission string fails format validation."""


def parse_site_permission(value: str) -> str:
    """
    Validate a permission identifier at the API boundary.

    Accepts either a lowercase identifier (``premium_sites``) or an https URL.
    Rejects oversized values, script markers and non-https URLs.

    Raises:
        InvalidPermissionError: If the value is unsafe or malformed
    """
    if not isinstance(value, str):
        raise InvalidPermissionError("Permission must be a string")

    candidate = value.strip()
    if not candidate:
        raise InvalidPermissionError("Permission must not be empty")
    if len(candidate) > MAX_PERMISSION_LENGTH:
        raise InvalidPermissionError(
            f"Permission exceeds {MAX_PERMISSION_LENGTH} characters"
        )

    lowered = candidate.lower()
    if any(marker in lowered for marker in _SCRIPT_MARKERS):
        raise InvalidPermissionError("Permission contains forbidden content")

    if "://" in candidate:
        if not _is_https_url(candidate):
            raise InvalidPermissionError("URL permissions must use https")
        return candidate

    if not _IDENTIFIER.match(candidate):
        raise InvalidPermissionError("Permission identifier has invalid characters")
    return candidate


def _is_https_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme == "https" and bool(parts.hostname)
