"""
Read-only views of the pool.

Nothing here takes a row lock; these queries see committed data under the
database's normal read-committed semantics and never wait on a purchase.
Counts are always live. Only the enriched listing goes through the cache.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketpool.core.logging import get_logger
from ticketpool.models.customer import Customer
from ticketpool.models.system_log import SystemLog
from ticketpool.models.ticket import TicketStatus
from ticketpool.models.vendor import Vendor
from ticketpool.repositories.ticket_store import TicketStore
from ticketpool.schemas.ticket import TicketFilter, TicketListItem, TicketListResponse
from ticketpool.services.cache_service import get_cached_listing, set_cached_listing

logger = get_logger(__name__)


async def count_by_status(db: AsyncSession, status: TicketStatus) -> int:
    return await TicketStore(db).count_by_status(status)


async def available_count(db: AsyncSession) -> int:
    return await count_by_status(db, TicketStatus.AVAILABLE)


async def list_tickets(db: AsyncSession, ticket_filter: TicketFilter) -> TicketListResponse:
    cached = await get_cached_listing(ticket_filter)
    if cached:
        logger.debug("ticket_list_cache_hit", page=ticket_filter.page)
        cached["cached"] = True
        return TicketListResponse(**cached)

    rows, total = await TicketStore(db).list_with_joins(ticket_filter)
    response = TicketListResponse(
        tickets=[TicketListItem.model_validate(row) for row in rows],
        total=total,
        page=ticket_filter.page,
        page_size=ticket_filter.page_size,
    )
    await set_cached_listing(ticket_filter, response.model_dump(mode="json"))
    return response


async def purchase_history(db: AsyncSession, customer_id: int) -> list[dict]:
    """A customer's sold tickets, most recent purchase first."""
    return await TicketStore(db).list_purchases(customer_id)


async def _account_totals(db: AsyncSession, model) -> dict[str, int]:
    result = await db.execute(
        select(
            func.count(model.id),
            func.coalesce(func.sum(case((model.is_active.is_(True), 1), else_=0)), 0),
        )
    )
    total, active = result.one()
    return {"total": int(total), "active": int(active)}


async def system_stats(db: AsyncSession) -> dict:
    """Ticket totals, account totals and system-log activity in the last hour."""
    tickets = await TicketStore(db).status_summary()
    vendors = await _account_totals(db, Vendor)
    customers = await _account_totals(db, Customer)

    since = datetime.now(timezone.utc) - timedelta(hours=1)
    recent = (
        await db.execute(select(func.count(SystemLog.id)).where(SystemLog.timestamp >= since))
    ).scalar_one()

    return {
        "tickets": tickets,
        "vendors": vendors,
        "customers": customers,
        "recent_activity": recent,
        "last_updated": datetime.now(timezone.utc),
    }
