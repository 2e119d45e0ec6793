"""
Audit trail and security event logging.

``AuditLogger`` records entries as a side effect of decisions and admin
mutations. ``record`` writes in its own session so an entry survives a
request that is rolled back (rejections, authorization decisions) and never
raises: a failed write is logged. ``stage`` adds the entry to the request
session instead, so a successful mutation and its entry commit together.
``AuditService`` is the query/append interface behind the audit log API.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nitroauth.core.http import ClientMetadata
from nitroauth.models.audit import AuditAction, AuditLog

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("nitroauth.security")


def _build_entry(
    action: AuditAction | str,
    details: str,
    admin_id: str,
    admin_email: str | None,
    target_user_id: str | None,
    target_user_email: str | None,
    site_id: str | None,
    client: ClientMetadata | None,
) -> AuditLog:
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    security_logger.info(
        f"{action_value}: {details} "
        f"(actor={admin_id}, target_user={target_user_id}, site={site_id}, "
        f"ip={client.ip_address if client else None}, "
        f"user_agent={client.user_agent if client else None})"
    )
    return AuditLog(
        action=action_value,
        details=details,
        admin_id=admin_id,
        admin_email=admin_email or "",
        target_user_id=target_user_id,
        target_user_email=target_user_email,
        site_id=site_id,
        ip_address=client.ip_address if client else None,
        user_agent=client.user_agent if client else None,
    )


class AuditLogger:
    """Fire-and-forget audit writer."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        db: AsyncSession | None = None,
    ):
        self._session_factory = session_factory
        self._db = db

    async def record(
        self,
        action: AuditAction | str,
        details: str,
        admin_id: str,
        admin_email: str | None = None,
        target_user_id: str | None = None,
        target_user_email: str | None = None,
        site_id: str | None = None,
        client: ClientMetadata | None = None,
    ) -> AuditLog | None:
        """
        Write an audit entry in a dedicated session.

        Returns:
            The stored entry, or None if the write failed
        """
        entry = _build_entry(
            action, details, admin_id, admin_email,
            target_user_id, target_user_email, site_id, client,
        )

        try:
            async with self._session_factory() as session:
                session.add(entry)
                await session.commit()
        except Exception:
            logger.exception(f"Failed to write audit entry {entry.action} for {admin_id}")
            return None

        return entry

    async def stage(
        self,
        action: AuditAction | str,
        details: str,
        admin_id: str,
        admin_email: str | None = None,
        target_user_id: str | None = None,
        target_user_email: str | None = None,
        site_id: str | None = None,
        client: ClientMetadata | None = None,
    ) -> AuditLog | None:
        """
        Add an audit entry to the request session, committed with the
        change it documents. Falls back to ``record`` without one.
        """
        if self._db is None:
            return await self.record(
                action, details, admin_id, admin_email,
                target_user_id, target_user_email, site_id, client,
            )

        entry = _build_entry(
            action, details, admin_id, admin_email,
            target_user_id, target_user_email, site_id, client,
        )
        self._db.add(entry)
        return entry


class AuditService:
    """Query and append audit entries within the request session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_entries(
        self,
        limit: int = 50,
        offset: int = 0,
        action: str | None = None,
        admin_id: str | None = None,
    ) -> tuple[list[AuditLog], int]:
        """
        List entries newest first.

        Returns:
            Tuple of (entries, total_count)
        """
        filters: list[Any] = []
        if action:
            filters.append(AuditLog.action == action)
        if admin_id:
            filters.append(AuditLog.admin_id == admin_id)

        total = await self.db.scalar(
            select(func.count()).select_from(AuditLog).where(*filters)
        )

        result = await self.db.execute(
            select(AuditLog)
            .where(*filters)
            .order_by(AuditLog.timestamp.desc(), AuditLog.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def append(
        self,
        action: str,
        details: str,
        admin_id: str,
        admin_email: str | None = None,
        target_user_id: str | None = None,
        target_user_email: str | None = None,
        site_id: str | None = None,
        client: ClientMetadata | None = None,
    ) -> AuditLog:
        """Insert a manual entry."""
        entry = _build_entry(
            action, details, admin_id, admin_email,
            target_user_id, target_user_email, site_id, client,
        )
        self.db.add(entry)
        await self.db.flush()
        await self.db.refresh(entry)
        return entry
