"""
Inventory ingestion: a vendor's release enters the pool all at once or not at all.

Drafts are validated up front; a bad draft is reported before any
transaction is opened. The rows are then inserted in a single transaction,
so a failure on any row (unknown vendor, constraint violation, lost
connection) rolls the whole batch back and no partial release is ever
visible to buyers.
"""

import uuid
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ticketpool.core.config import get_settings
from ticketpool.core.exceptions import IngestionFailed, NotFound, ValidationFailed
from ticketpool.core.logging import get_logger
from ticketpool.core.metrics import record_ingestion
from ticketpool.db.session import begin_write
from ticketpool.models.vendor import Vendor
from ticketpool.repositories.ticket_store import TicketStore
from ticketpool.schemas.ticket import TicketDraft
from ticketpool.services.cache_service import invalidate_listing_cache
from ticketpool.services.system_log import LogSink, NullLogSink

logger = get_logger(__name__)


def validate_drafts(drafts: Sequence[TicketDraft], default_price: Decimal) -> list[TicketDraft]:
    """
    Check every draft and apply the default price where none is set.
    Raises ValidationFailed listing every problem found.
    """
    settings = get_settings()
    errors = []
    if not drafts:
        errors.append("Batch must contain at least one ticket")
    elif len(drafts) > settings.MAX_BATCH_SIZE:
        errors.append(f"Batch exceeds the maximum of {settings.MAX_BATCH_SIZE} tickets")

    normalized = []
    for position, draft in enumerate(drafts, start=1):
        number = (draft.ticket_number or "").strip()
        if not number:
            errors.append(f"Ticket {position}: ticket_number is required")
        if draft.vendor_id is None or draft.vendor_id <= 0:
            errors.append(f"Ticket {position}: a valid vendor_id is required")

        price = default_price if draft.price is None else draft.price
        try:
            if not Decimal(price).is_finite() or Decimal(price) <= 0:
                errors.append(f"Ticket {position}: price must be a positive amount")
        except (InvalidOperation, TypeError, ValueError):
            errors.append(f"Ticket {position}: price must be a positive amount")

        normalized.append(TicketDraft(ticket_number=number, vendor_id=draft.vendor_id, price=price))

    if errors:
        raise ValidationFailed(errors)
    return normalized


class InventoryIngestion:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        log_sink: Optional[LogSink] = None,
    ):
        self._session_factory = session_factory
        self._log_sink = log_sink or NullLogSink()

    async def add_tickets(self, batch: Sequence[TicketDraft]) -> int:
        """Insert the batch atomically. Returns the number of tickets committed."""
        settings = get_settings()
        try:
            drafts = validate_drafts(batch, settings.DEFAULT_TICKET_PRICE)
        except ValidationFailed as exc:
            record_ingestion("rejected")
            logger.warning("ingestion_rejected", batch_size=len(batch), errors=exc.errors)
            raise

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await begin_write(session)
                    added = await TicketStore(session).insert_batch(drafts)
        except SQLAlchemyError as exc:
            record_ingestion("failed")
            logger.error("ingestion_failed", batch_size=len(drafts), error=str(exc))
            raise IngestionFailed(
                f"Batch of {len(drafts)} tickets was rolled back: {type(exc).__name__}",
                batch_size=len(drafts),
            ) from exc

        record_ingestion("committed", added)
        vendor_ids = sorted({draft.vendor_id for draft in drafts})
        logger.info("tickets_added", count=added, vendor_ids=vendor_ids)
        for vendor_id in vendor_ids:
            vendor_count = sum(1 for draft in drafts if draft.vendor_id == vendor_id)
            await self._log_sink.log(
                "TICKETS_RELEASED",
                f"Vendor {vendor_id} released {vendor_count} tickets",
                "vendor",
                vendor_id,
            )
        await invalidate_listing_cache()
        return added

    async def release_for_vendor(self, vendor_id: int, count: Optional[int] = None) -> int:
        """
        Release a generated batch for a vendor. `count` defaults to the
        vendor's configured tickets_per_release.
        """
        if count is None:
            async with self._session_factory() as session:
                result = await session.execute(select(Vendor.tickets_per_release).where(Vendor.id == vendor_id))
                count = result.scalar_one_or_none()
            if count is None:
                raise NotFound(f"Vendor {vendor_id} not found")

        drafts = [
            TicketDraft(ticket_number=f"{vendor_id}-{uuid.uuid4().hex[:8]}", vendor_id=vendor_id)
            for _ in range(count)
        ]
        return await self.add_tickets(drafts)
