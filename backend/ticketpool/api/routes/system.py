"""
System log endpoints (admin only).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ticketpool.api.deps import get_log_sink
from ticketpool.core.security import Principal, require_role
from ticketpool.db.session import get_db
from ticketpool.schemas.system_log import ClearLogsResponse, SystemLogPage
from ticketpool.services.system_log import SystemLogSink, clear_old_logs, get_logs

router = APIRouter(prefix="/system", tags=["System"])


@router.get("/logs", response_model=SystemLogPage)
async def read_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    actor_type: Optional[str] = Query(None, pattern="^(vendor|customer|admin|system)$"),
    principal: Principal = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    return await get_logs(db, page, limit, actor_type)


@router.delete("/logs", response_model=ClearLogsResponse)
async def delete_old_logs(
    days: int = Query(30, ge=1),
    principal: Principal = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    sink: SystemLogSink = Depends(get_log_sink),
):
    """Delete log entries older than `days`."""
    deleted = await clear_old_logs(db, sink, days)
    return ClearLogsResponse(deleted=deleted, older_than_days=days)
