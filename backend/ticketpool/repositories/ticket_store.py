"""
Ticket record store: the only code that issues SQL against `tickets`.

A TicketStore is bound to one AsyncSession and never commits; the caller
owns the transaction. That is what lets the allocator run
select-for-update -> mark-sold -> commit as one unit, and lets ingestion
insert a whole batch or nothing.

Locking
=======
`select_one_available_for_update` takes the lowest-id available row with
SELECT ... FOR UPDATE. With SKIP LOCKED (the default) concurrent buyers
each lock a different row and nobody waits. Without it they queue on the
same row; PostgreSQL re-checks `status` once the first holder commits.
Either way a row is only visible as selectable to one transaction at a time.
"""

from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import Select, case, func, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketpool.models.customer import Customer
from ticketpool.models.ticket import Ticket, TicketStatus
from ticketpool.models.vendor import Vendor
from ticketpool.schemas.ticket import TicketDraft, TicketFilter


def available_row_for_update(skip_locked: bool = True) -> Select:
    """Lowest-id available ticket, locked for the rest of the transaction."""
    return (
        select(Ticket)
        .where(Ticket.status == TicketStatus.AVAILABLE.value)
        .order_by(Ticket.id.asc())
        .limit(1)
        .with_for_update(skip_locked=skip_locked)
    )


class TicketStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    @property
    def dialect_name(self) -> str:
        return self.db.get_bind().dialect.name

    async def apply_lock_timeout(self, timeout_ms: int) -> None:
        """Bound row-lock waits for the rest of the current transaction."""
        if self.dialect_name == "postgresql":
            await self.db.execute(text(f"SET LOCAL lock_timeout = '{int(timeout_ms)}ms'"))

    async def insert_batch(self, drafts: Sequence[TicketDraft]) -> int:
        tickets = [
            Ticket(
                ticket_number=draft.ticket_number,
                vendor_id=draft.vendor_id,
                price=draft.price,
                status=TicketStatus.AVAILABLE.value,
            )
            for draft in drafts
        ]
        self.db.add_all(tickets)
        await self.db.flush()
        return len(tickets)

    async def select_one_available_for_update(self, skip_locked: bool = True) -> Optional[Ticket]:
        result = await self.db.execute(available_row_for_update(skip_locked))
        return result.scalar_one_or_none()

    async def mark_sold(self, ticket_id: int, customer_id: int, sold_at: datetime) -> int:
        """Returns the affected row count: 1 on success, 0 if the row was not available."""
        result = await self.db.execute(
            update(Ticket)
            .where(
                Ticket.id == ticket_id,
                Ticket.status == TicketStatus.AVAILABLE.value,
            )
            .values(
                status=TicketStatus.SOLD.value,
                customer_id=customer_id,
                sold_at=sold_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def count_by_status(self, status: TicketStatus) -> int:
        result = await self.db.execute(
            select(func.count(Ticket.id)).where(Ticket.status == TicketStatus(status).value)
        )
        return result.scalar_one()

    async def status_summary(self) -> dict[str, int]:
        result = await self.db.execute(
            select(
                func.count(Ticket.id),
                func.coalesce(func.sum(case((Ticket.status == TicketStatus.AVAILABLE.value, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Ticket.status == TicketStatus.SOLD.value, 1), else_=0)), 0),
            )
        )
        total, available, sold = result.one()
        return {"total": int(total), "available": int(available), "sold": int(sold)}

    async def list_with_joins(self, ticket_filter: TicketFilter) -> tuple[list[dict[str, Any]], int]:
        """Enriched listing (ticket + vendor/customer names), newest first, one page."""
        conditions = []
        if ticket_filter.status is not None:
            conditions.append(Ticket.status == ticket_filter.status.value)
        if ticket_filter.vendor_id is not None:
            conditions.append(Ticket.vendor_id == ticket_filter.vendor_id)
        if ticket_filter.customer_id is not None:
            conditions.append(Ticket.customer_id == ticket_filter.customer_id)

        total = (
            await self.db.execute(select(func.count(Ticket.id)).where(*conditions))
        ).scalar_one()

        stmt = (
            select(
                Ticket.id,
                Ticket.ticket_number,
                Ticket.status,
                Ticket.price,
                Ticket.vendor_id,
                Ticket.customer_id,
                Ticket.created_at,
                Ticket.sold_at,
                Vendor.name.label("vendor_name"),
                Customer.name.label("customer_name"),
            )
            .outerjoin(Vendor, Ticket.vendor_id == Vendor.id)
            .outerjoin(Customer, Ticket.customer_id == Customer.id)
            .where(*conditions)
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
            .offset((ticket_filter.page - 1) * ticket_filter.page_size)
            .limit(ticket_filter.page_size)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()], total

    async def list_purchases(self, customer_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(
                Ticket.id,
                Ticket.ticket_number,
                Ticket.price,
                Ticket.sold_at,
                Vendor.name.label("vendor_name"),
            )
            .outerjoin(Vendor, Ticket.vendor_id == Vendor.id)
            .where(
                Ticket.customer_id == customer_id,
                Ticket.status == TicketStatus.SOLD.value,
            )
            .order_by(Ticket.sold_at.desc(), Ticket.id.desc())
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]
