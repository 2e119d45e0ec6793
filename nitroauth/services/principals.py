"""
Principal directory: the source of truth for roles and explicit grants.

Two backends share one interface. The database backend reads the local
``users`` table; the HTTP backend talks to the identity provider's user API
and keeps role and grants in the user's public metadata.
"""

import abc
import logging
from typing import Any

import httpx
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from nitroauth.auth.catalog import Role
from nitroauth.config import Settings
from nitroauth.core.exceptions import IdentityProviderError
from nitroauth.models.user import User
from nitroauth.schemas.principal import Principal

logger = logging.getLogger(__name__)

# Key for the Postgres transaction-scoped advisory lock around super admin changes
SUPER_ADMIN_LOCK_KEY = 0x4E41_5341


class SuperAdminInvariantError(Exception):
    """The role change would break the super admin invariant. Nothing was changed."""


class PrincipalDirectory(abc.ABC):
    """Read and mutate principal role/grant state."""

    @abc.abstractmethod
    async def get_principal(self, principal_id: str) -> Principal | None:
        """Current state of a principal, or None if it does not exist."""

    @abc.abstractmethod
    async def list_principals(self, limit: int = 50, offset: int = 0) -> tuple[list[Principal], int]:
        """A page of principals and the total count."""

    @abc.abstractmethod
    async def count_with_role(self, role: Role) -> int:
        """Number of principals currently holding ``role``."""

    @abc.abstractmethod
    async def update_role(self, principal_id: str, role: Role) -> Principal | None:
        """Set the role. Explicit grants are left untouched."""

    @abc.abstractmethod
    async def update_site_access(self, principal_id: str, site_access: list[str]) -> Principal | None:
        """Replace the explicit grants."""

    async def demote_super_admin(self, principal_id: str, role: Role) -> Principal | None:
        """
        Move a super admin to ``role`` unless it is the last one.

        The default is check-then-write and relies on the caller to
        serialize. Backends with transactions override it.

        Raises:
            SuperAdminInvariantError: If no super admin would remain
        """
        if await self.count_with_role(Role.SUPER_ADMIN) <= 1:
            raise SuperAdminInvariantError("Cannot demote the last super admin")
        return await self.update_role(principal_id, role)

    async def claim_super_admin(self, principal_id: str) -> Principal | None:
        """
        Promote ``principal_id`` to super admin only while none exists.

        Raises:
            SuperAdminInvariantError: If a super admin already exists
        """
        if await self.count_with_role(Role.SUPER_ADMIN) > 0:
            raise SuperAdminInvariantError("A super admin already exists")
        return await self.update_role(principal_id, Role.SUPER_ADMIN)


class DatabasePrincipalDirectory(PrincipalDirectory):
    """Principal directory backed by the ``users`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_user(self, principal_id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.id == principal_id))
        return result.scalar_one_or_none()

    async def get_principal(self, principal_id: str) -> Principal | None:
        user = await self._get_user(principal_id)
        return Principal.model_validate(user) if user else None

    async def list_principals(self, limit: int = 50, offset: int = 0) -> tuple[list[Principal], int]:
        total = await self.db.scalar(select(func.count()).select_from(User))

        result = await self.db.execute(
            select(User).order_by(User.created_at.desc(), User.id).offset(offset).limit(limit)
        )
        users = result.scalars().all()
        return [Principal.model_validate(u) for u in users], total or 0

    async def count_with_role(self, role: Role) -> int:
        count = await self.db.scalar(
            select(func.count()).select_from(User).where(User.role == role.value)
        )
        return count or 0

    async def update_role(self, principal_id: str, role: Role) -> Principal | None:
        user = await self._get_user(principal_id)
        if not user:
            return None

        user.role = role.value
        await self.db.flush()
        await self.db.refresh(user)
        return Principal.model_validate(user)

    async def update_site_access(self, principal_id: str, site_access: list[str]) -> Principal | None:
        user = await self._get_user(principal_id)
        if not user:
            return None

        user.site_access = list(site_access)
        await self.db.flush()
        await self.db.refresh(user)
        return Principal.model_validate(user)

    async def demote_super_admin(self, principal_id: str, role: Role) -> Principal | None:
        return await self._change_role_checked(
            principal_id,
            role,
            lambda remaining: remaining >= 1,
            "Cannot demote the last super admin",
        )

    async def claim_super_admin(self, principal_id: str) -> Principal | None:
        if await self.count_with_role(Role.SUPER_ADMIN) > 0:
            raise SuperAdminInvariantError("A super admin already exists")
        return await self._change_role_checked(
            principal_id,
            Role.SUPER_ADMIN,
            lambda remaining: remaining == 1,
            "A super admin already exists",
        )

    async def _change_role_checked(self, principal_id, role, accept, message) -> Principal | None:
        """
        Write the role first, then count super admins inside the same
        transaction. The write holds the database write lock (SQLite) or the
        advisory lock (Postgres) until the caller commits, so a concurrent
        change counts only after this one is visible. A rejected change rolls
        the session back.
        """
        if self.db.get_bind().dialect.name == "postgresql":
            await self.db.execute(
                text("SELECT pg_advisory_xact_lock(:key)"), {"key": SUPER_ADMIN_LOCK_KEY}
            )

        user = await self._get_user(principal_id)
        if not user:
            return None

        user.role = role.value
        await self.db.flush()

        if not accept(await self.count_with_role(Role.SUPER_ADMIN)):
            await self.db.rollback()
            raise SuperAdminInvariantError(message)

        await self.db.refresh(user)
        return Principal.model_validate(user)


class HttpPrincipalDirectory(PrincipalDirectory):
    """
    Principal directory backed by the identity provider's user API.

    Transport failures and unexpected statuses raise
    ``IdentityProviderError`` with a generic message; details are logged.
    """

    PAGE_SIZE = 100

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Identity provider request failed: {method} {path}: {e}")
            raise IdentityProviderError()

        if response.status_code == 404:
            return None
        if response.is_error:
            logger.error(
                f"Identity provider returned {response.status_code} for {method} {path}"
            )
            raise IdentityProviderError()

        try:
            return response.json()
        except ValueError:
            logger.error(f"Identity provider returned invalid JSON for {method} {path}")
            raise IdentityProviderError()

    async def get_principal(self, principal_id: str) -> Principal | None:
        data = await self._request("GET", f"/users/{principal_id}")
        return _principal_from_user(data) if data else None

    async def list_principals(self, limit: int = 50, offset: int = 0) -> tuple[list[Principal], int]:
        data = await self._request("GET", "/users", params={"limit": limit, "offset": offset})
        users = _user_list(data)

        count = await self._request("GET", "/users/count")
        total = count.get("total_count", len(users)) if isinstance(count, dict) else len(users)
        return [_principal_from_user(u) for u in users], total

    async def count_with_role(self, role: Role) -> int:
        # The user API cannot filter on metadata, so page through everyone
        matched = 0
        offset = 0
        while True:
            data = await self._request(
                "GET", "/users", params={"limit": self.PAGE_SIZE, "offset": offset}
            )
            users = _user_list(data)
            matched += sum(1 for u in users if _principal_from_user(u).role is role)
            if len(users) < self.PAGE_SIZE:
                return matched
            offset += self.PAGE_SIZE

    async def update_role(self, principal_id: str, role: Role) -> Principal | None:
        current = await self.get_principal(principal_id)
        if current is None:
            return None
        return await self._patch_metadata(
            principal_id,
            {"role": role.value, "siteAccess": sorted(current.site_access)},
        )

    async def update_site_access(self, principal_id: str, site_access: list[str]) -> Principal | None:
        current = await self.get_principal(principal_id)
        if current is None:
            return None
        return await self._patch_metadata(
            principal_id,
            {"role": current.role.value, "siteAccess": list(site_access)},
        )

    async def _patch_metadata(self, principal_id: str, metadata: dict[str, Any]) -> Principal | None:
        data = await self._request(
            "PATCH",
            f"/users/{principal_id}/metadata",
            json={"public_metadata": metadata},
        )
        return _principal_from_user(data) if data else None


def _user_list(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        return data["data"]
    return []


def _principal_from_user(data: dict[str, Any]) -> Principal:
    """Map an identity provider user object onto a Principal."""
    metadata = data.get("public_metadata") or {}
    emails = data.get("email_addresses") or []
    email = ""
    if emails and isinstance(emails[0], dict):
        email = emails[0].get("email_address") or ""

    return Principal(
        id=str(data.get("id", "")),
        email=email,
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        role=metadata.get("role"),
        site_access=metadata.get("siteAccess") or [],
    )


def build_principal_directory(settings: Settings, db: AsyncSession) -> PrincipalDirectory:
    """Select the backend configured by ``PRINCIPAL_BACKEND``."""
    if settings.PRINCIPAL_BACKEND == "http":
        return HttpPrincipalDirectory(
            base_url=settings.IDENTITY_PROVIDER_API_URL,
            api_key=settings.IDENTITY_PROVIDER_API_KEY,
            timeout=settings.IDENTITY_PROVIDER_TIMEOUT,
        )
    return DatabasePrincipalDirectory(db)


class InMemoryPrincipalDirectory(PrincipalDirectory):
    """Process-local directory for tests and local experiments."""

    def __init__(self, principals: list[Principal] | None = None):
        self._principals: dict[str, Principal] = {p.id: p for p in principals or []}

    def add(self, principal: Principal) -> None:
        self._principals[principal.id] = principal

    async def get_principal(self, principal_id: str) -> Principal | None:
        return self._principals.get(principal_id)

    async def list_principals(self, limit: int = 50, offset: int = 0) -> tuple[list[Principal], int]:
        ordered = sorted(self._principals.values(), key=lambda p: p.id)
        return ordered[offset:offset + limit], len(ordered)

    async def count_with_role(self, role: Role) -> int:
        return sum(1 for p in self._principals.values() if p.role is role)

    async def update_role(self, principal_id: str, role: Role) -> Principal | None:
        current = self._principals.get(principal_id)
        if current is None:
            return None
        updated = current.model_copy(update={"role": role})
        self._principals[principal_id] = updated
        return updated

    async def update_site_access(self, principal_id: str, site_access: list[str]) -> Principal | None:
        current = self._principals.get(principal_id)
        if current is None:
            return None
        updated = current.model_copy(update={"site_access": frozenset(site_access)})
        self._principals[principal_id] = updated
        return updated
