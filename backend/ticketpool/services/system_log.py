"""
System log sink and read side.

The sink is handed to the allocator and to ingestion explicitly. It writes
each record in its own short transaction on its own session, after the
caller's transaction has committed, and swallows every failure: an audit
record that cannot be written must never undo or delay a sale.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ticketpool.core.logging import get_logger
from ticketpool.core.metrics import system_log_failures
from ticketpool.db.session import begin_write
from ticketpool.models.system_log import SystemLog

logger = get_logger(__name__)


class LogSink(Protocol):
    async def log(
        self,
        action: str,
        description: str,
        actor_type: str = "system",
        actor_id: Optional[int] = None,
    ) -> None: ...


class NullLogSink:
    """Sink for callers that do not want audit records persisted."""

    async def log(self, action, description, actor_type="system", actor_id=None) -> None:
        logger.debug("system_log_discarded", action=action, actor_type=actor_type, actor_id=actor_id)


class SystemLogSink:

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def log(
        self,
        action: str,
        description: str,
        actor_type: str = "system",
        actor_id: Optional[int] = None,
    ) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await begin_write(session)
                    session.add(
                        SystemLog(
                            action=action,
                            description=description,
                            actor_type=actor_type,
                            actor_id=actor_id,
                        )
                    )
            logger.info("system_log", action=action, actor_type=actor_type, actor_id=actor_id, description=description)
        except Exception as e:
            system_log_failures.inc()
            logger.error(
                "system_log_write_failed",
                action=action,
                actor_type=actor_type,
                actor_id=actor_id,
                description=description,
                error=str(e),
            )


async def get_logs(
    db: AsyncSession,
    page: int = 1,
    limit: int = 50,
    actor_type: Optional[str] = None,
) -> dict:
    """Newest first, paginated."""
    query = select(SystemLog)
    count_query = select(func.count(SystemLog.id))
    if actor_type:
        query = query.where(SystemLog.actor_type == actor_type)
        count_query = count_query.where(SystemLog.actor_type == actor_type)

    result = await db.execute(
        query.order_by(SystemLog.timestamp.desc(), SystemLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    logs = list(result.scalars().all())
    total = (await db.execute(count_query)).scalar_one()

    return {
        "logs": logs,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
        },
    }


async def clear_old_logs(db: AsyncSession, sink: LogSink, days: int = 30) -> int:
    """Delete entries older than `days`, then record the maintenance itself."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    async with db.begin():
        await begin_write(db)
        result = await db.execute(
            delete(SystemLog)
            .where(SystemLog.timestamp < cutoff)
            .execution_options(synchronize_session=False)
        )
    deleted = result.rowcount

    await sink.log(
        "SYSTEM_MAINTENANCE",
        f"Cleared {deleted} old log entries (older than {days} days)",
    )
    return deleted
