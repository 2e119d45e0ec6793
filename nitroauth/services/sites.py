"""
Site service - Business logic for the site registry.
"""

import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nitroauth.auth.permissions import normalize_target
from nitroauth.core.exceptions import ConflictException, NotFoundException, ValidationException
from nitroauth.core.http import is_absolute_url, sanitize_string
from nitroauth.models.site import Site
from nitroauth.schemas.site import SiteCreate, SiteUpdate

logger = logging.getLogger(__name__)


class SiteService:
    """Service class for registered sites."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active(self) -> Sequence[Site]:
        """List active sites ordered by name."""
        result = await self.db.execute(
            select(Site).where(Site.is_active.is_(True)).order_by(Site.name.asc())
        )
        return result.scalars().all()

    async def get(self, site_id: str) -> Site | None:
        """Get an active site by ID."""
        result = await self.db.execute(
            select(Site).where(Site.id == site_id, Site.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def find_by_target(self, target: str) -> Site | None:
        """
        Resolve a requested target to an active site.

        Matches the site name exactly or the URL after normalization.
        """
        if not target:
            return None

        normalized = normalize_target(target)
        for site in await self.list_active():
            if site.name == target or normalize_target(site.url) == normalized:
                return site
        return None

    async def active_urls(self) -> set[str]:
        """Normalized URLs of every active site."""
        return {normalize_target(site.url) for site in await self.list_active()}

    async def create(self, data: SiteCreate) -> Site:
        """
        Register a site.

        Raises:
            ValidationException: If the URL is not an absolute https URL
            ConflictException: If an active site already uses the URL
        """
        url = self._validate_url(data.url)
        await self._ensure_url_free(url)

        site = Site(
            name=sanitize_string(data.name),
            url=url,
            description=sanitize_string(data.description) if data.description else None,
            category=data.category,
            is_active=True,
        )
        self.db.add(site)
        await self.db.flush()
        await self.db.refresh(site)

        logger.info(f"Created site {site.id} ({site.url})")
        return site

    async def update(self, site_id: str, data: SiteUpdate) -> Site:
        """
        Update a site.

        Raises:
            NotFoundException: If the site does not exist or is inactive
            ValidationException: If a new URL is invalid
            ConflictException: If a new URL collides with another active site
        """
        site = await self.get(site_id)
        if not site:
            raise NotFoundException("Site", site_id)

        if data.url is not None:
            url = self._validate_url(data.url)
            if normalize_target(url) != normalize_target(site.url):
                await self._ensure_url_free(url, exclude_id=site.id)
            site.url = url
        if data.name is not None:
            site.name = sanitize_string(data.name)
        if data.description is not None:
            site.description = sanitize_string(data.description)
        if data.category is not None:
            site.category = data.category

        await self.db.flush()
        await self.db.refresh(site)

        logger.info(f"Updated site {site.id}")
        return site

    async def soft_delete(self, site_id: str) -> Site:
        """
        Deactivate a site. The row is kept.

        Raises:
            NotFoundException: If the site does not exist or is inactive
        """
        site = await self.get(site_id)
        if not site:
            raise NotFoundException("Site", site_id)

        site.is_active = False
        await self.db.flush()
        await self.db.refresh(site)

        logger.info(f"Deactivated site {site.id}")
        return site

    @staticmethod
    def _validate_url(value: str) -> str:
        url = value.strip()
        if not is_absolute_url(url, require_https=True):
            raise ValidationException(
                "Site URL must be an absolute https URL",
                details={"url": value},
            )
        return url

    async def _ensure_url_free(self, url: str, exclude_id: str | None = None) -> None:
        normalized = normalize_target(url)
        for site in await self.list_active():
            if site.id != exclude_id and normalize_target(site.url) == normalized:
                raise ConflictException(
                    "An active site with this URL already exists",
                    details={"url": url, "siteId": site.id},
                )
