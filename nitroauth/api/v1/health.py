"""
Health and metrics endpoints.
No authentication required.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy import text, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nitroauth.db.session import get_db, is_using_sqlite_fallback
from nitroauth.models.audit import AuditLog
from nitroauth.models.site import Site
from nitroauth.services.metrics import get_metrics_collector
from nitroauth.services.rate_limit import get_rate_limiter

router = APIRouter()


async def _registry_counts(db: AsyncSession) -> tuple[int, int]:
    sites = await db.scalar(select(func.count(Site.id)).where(Site.is_active.is_(True)))
    audit_entries = await db.scalar(select(func.count(AuditLog.id)))
    return sites or 0, audit_entries or 0


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Service health check endpoint.

    Returns:
        {"status": "ok"} when service is healthy
        {"status": "degraded", "issues": [...]} when there are issues
    """
    issues = []
    warnings = []

    # Check if using SQLite fallback
    if is_using_sqlite_fallback():
        warnings.append("Using SQLite dev fallback - PostgreSQL not available")

    # Check database connectivity
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        issues.append(f"Database: {type(e).__name__}")

    if issues:
        return {
            "status": "degraded",
            "issues": issues,
        }

    response = {
        "status": "ok",
        "database": "sqlite (dev fallback)" if is_using_sqlite_fallback() else "postgresql",
    }

    if warnings:
        response["warnings"] = warnings

    return response


@router.get("/metrics")
async def metrics(db: AsyncSession = Depends(get_db)):
    """
    Service metrics as JSON: request counts, response times, error rates,
    authorization outcomes and registry sizes.
    """
    collector = get_metrics_collector()

    try:
        active_sites, audit_entries = await _registry_counts(db)
    except Exception:
        active_sites, audit_entries = -1, -1

    metrics_data = collector.get_metrics()
    metrics_data["registry"] = {
        "active_sites": active_sites,
        "audit_entries": audit_entries,
        "rate_limit_windows": len(get_rate_limiter()),
    }

    return metrics_data


@router.get("/metrics/prometheus", response_class=PlainTextResponse)
async def metrics_prometheus(db: AsyncSession = Depends(get_db)):
    """
    Prometheus text exposition format endpoint.
    Compatible with Prometheus scraping.
    """
    collector = get_metrics_collector()

    text_output = collector.to_prometheus()

    try:
        active_sites, audit_entries = await _registry_counts(db)
    except Exception:
        active_sites, audit_entries = None, None

    if active_sites is not None:
        text_output += "# HELP nitroauth_sites_active Number of active registered sites\n"
        text_output += "# TYPE nitroauth_sites_active gauge\n"
        text_output += f"nitroauth_sites_active {active_sites}\n\n"
        text_output += "# HELP nitroauth_audit_entries_total Number of audit log entries\n"
        text_output += "# TYPE nitroauth_audit_entries_total gauge\n"
        text_output += f"nitroauth_audit_entries_total {audit_entries}\n"

    return PlainTextResponse(
        content=text_output,
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
