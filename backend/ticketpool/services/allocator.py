"""
Ticket allocator: hands each ticket in the pool to exactly one buyer.

CONCURRENCY STRATEGY: Pessimistic Row Locking, One Transaction Per Request
==========================================================================

Problem:
  N customers hit "buy" at the same moment and M tickets are left.
  If two requests both read the same row as available and both mark it
  sold, one ticket is sold twice.

Solution:
  Every purchase runs in its own transaction on its own session:

  1. SELECT the lowest-id available row ... FOR UPDATE [SKIP LOCKED]
     -> the row is exclusively locked until this transaction ends
  2. None found -> roll back, report SOLD_OUT (a normal result)
  3. UPDATE tickets SET status='sold', customer_id=:c, sold_at=:now
     WHERE id=:id AND status='available'
  4. COMMIT and return the ticket

  Any store failure (lock timeout, deadlock, lost connection, or the
  update in step 3 touching no row) rolls the transaction back and raises
  AllocationFailed. Nothing was written, so the caller may retry.

  The allocator keeps no in-process state: the database is the lock
  domain, so the guarantee holds across any number of API instances.
  The lock is held only across select -> update -> commit.

After commit, and outside the transaction:
  - a TICKET_PURCHASED record goes to the injected log sink (best effort)
  - cached listings are invalidated (best effort)
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ticketpool.core.config import get_settings
from ticketpool.core.exceptions import AllocationFailed
from ticketpool.core.logging import get_logger
from ticketpool.core.metrics import purchase_latency, purchase_retries, record_purchase
from ticketpool.db.session import begin_write
from ticketpool.repositories.ticket_store import TicketStore
from ticketpool.services.cache_service import invalidate_listing_cache
from ticketpool.services.system_log import LogSink, NullLogSink

logger = get_logger(__name__)


class PurchaseStatus(str, Enum):
    ALLOCATED = "allocated"
    SOLD_OUT = "sold_out"


@dataclass(frozen=True)
class AllocatedTicket:
    id: int
    ticket_number: str
    vendor_id: int
    price: Decimal
    sold_at: datetime


@dataclass(frozen=True)
class PurchaseResult:
    status: PurchaseStatus
    ticket: Optional[AllocatedTicket] = None

    @property
    def allocated(self) -> bool:
        return self.status is PurchaseStatus.ALLOCATED


SOLD_OUT = PurchaseResult(status=PurchaseStatus.SOLD_OUT)


async def _rollback(session: AsyncSession, customer_id: int) -> None:
    try:
        await session.rollback()
    except SQLAlchemyError as exc:
        # The session discards the connection on close; locks die with it.
        logger.error("allocation_rollback_failed", customer_id=customer_id, error=str(exc))


class TicketAllocator:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        log_sink: Optional[LogSink] = None,
        lock_timeout_ms: Optional[int] = None,
        skip_locked: Optional[bool] = None,
    ):
        settings = get_settings()
        self._session_factory = session_factory
        self._log_sink = log_sink or NullLogSink()
        self._lock_timeout_ms = (
            settings.ALLOCATION_LOCK_TIMEOUT_MS if lock_timeout_ms is None else lock_timeout_ms
        )
        self._skip_locked = settings.ALLOCATION_SKIP_LOCKED if skip_locked is None else skip_locked

    async def purchase(self, customer_id: int) -> PurchaseResult:
        """
        Allocate one ticket to `customer_id`.
        Returns ALLOCATED with the ticket, or SOLD_OUT.
        Raises AllocationFailed on a transient store failure.
        """
        start = time.perf_counter()
        try:
            result = await self._allocate(customer_id)
        except AllocationFailed:
            record_purchase("failed")
            raise
        finally:
            purchase_latency.observe(time.perf_counter() - start)

        if not result.allocated:
            record_purchase("sold_out")
            logger.info("purchase_sold_out", customer_id=customer_id)
            return result

        ticket = result.ticket
        record_purchase("allocated")
        logger.info(
            "ticket_purchased",
            ticket_id=ticket.id,
            ticket_number=ticket.ticket_number,
            customer_id=customer_id,
        )
        await self._log_sink.log(
            "TICKET_PURCHASED",
            f"Ticket {ticket.ticket_number} sold to customer {customer_id}",
            "customer",
            customer_id,
        )
        await invalidate_listing_cache()
        return result

    async def purchase_with_retry(self, customer_id: int, attempts: Optional[int] = None) -> PurchaseResult:
        """Retry AllocationFailed with linear backoff; SOLD_OUT is returned as is."""
        settings = get_settings()
        if attempts is None:
            attempts = settings.PURCHASE_MAX_ATTEMPTS
        if attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {attempts}")
        backoff = settings.PURCHASE_RETRY_BACKOFF_MS / 1000

        for attempt in range(1, attempts + 1):
            try:
                return await self.purchase(customer_id)
            except AllocationFailed as exc:
                if attempt == attempts:
                    logger.warning(
                        "purchase_failed",
                        customer_id=customer_id,
                        attempts=attempts,
                        error=exc.message,
                    )
                    raise
                purchase_retries.inc()
                logger.info("purchase_retry", customer_id=customer_id, attempt=attempt, error=exc.message)
                await asyncio.sleep(backoff * attempt)

    async def _allocate(self, customer_id: int) -> PurchaseResult:
        async with self._session_factory() as session:
            store = TicketStore(session)
            try:
                await begin_write(session)
                await store.apply_lock_timeout(self._lock_timeout_ms)
                row = await store.select_one_available_for_update(skip_locked=self._skip_locked)
                if row is None:
                    await session.rollback()
                    return SOLD_OUT

                # Rollback expires `row`; copy what we need while it is loaded.
                sold_at = datetime.now(timezone.utc)
                ticket = AllocatedTicket(
                    id=row.id,
                    ticket_number=row.ticket_number,
                    vendor_id=row.vendor_id,
                    price=row.price,
                    sold_at=sold_at,
                )
                affected = await store.mark_sold(ticket.id, customer_id, sold_at)
                if affected != 1:
                    await session.rollback()
                    logger.warning("allocation_lost_row", ticket_id=ticket.id, customer_id=customer_id)
                    raise AllocationFailed(f"Ticket {ticket.id} was taken by a concurrent purchase")

                await session.commit()
                return PurchaseResult(status=PurchaseStatus.ALLOCATED, ticket=ticket)

            except SQLAlchemyError as exc:
                await _rollback(session, customer_id)
                logger.warning(
                    "allocation_failed",
                    customer_id=customer_id,
                    error=str(exc.orig if getattr(exc, "orig", None) is not None else exc),
                )
                raise AllocationFailed(cause=exc) from exc
            except asyncio.CancelledError:
                await asyncio.shield(session.rollback())
                logger.info("allocation_cancelled", customer_id=customer_id)
                raise
