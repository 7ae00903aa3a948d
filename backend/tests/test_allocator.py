"""
Tests for the purchase protocol, including concurrent buyers.
"""

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from ticketpool.core.exceptions import AllocationFailed
from ticketpool.models.system_log import SystemLog
from ticketpool.models.ticket import TicketStatus
from ticketpool.repositories.ticket_store import TicketStore
from ticketpool.services.allocator import PurchaseStatus, TicketAllocator
from ticketpool.services.system_log import SystemLogSink
from tests.conftest import all_tickets, count_status, seed_tickets


@pytest.mark.asyncio
async def test_purchase_allocates_one_ticket(session_factory, vendor, customer, pool_of_three):
    result = await TicketAllocator(session_factory).purchase(customer.id)

    assert result.status is PurchaseStatus.ALLOCATED
    assert result.ticket.vendor_id == vendor.id
    assert await count_status(session_factory, TicketStatus.AVAILABLE) == 2
    assert await count_status(session_factory, TicketStatus.SOLD) == 1


@pytest.mark.asyncio
async def test_empty_pool_is_sold_out(session_factory, customer):
    result = await TicketAllocator(session_factory).purchase(customer.id)

    assert result.status is PurchaseStatus.SOLD_OUT
    assert result.ticket is None


@pytest.mark.asyncio
async def test_five_buyers_three_tickets(session_factory, customers, pool_of_three):
    """Exactly three purchases succeed with distinct tickets; two are sold out."""
    allocator = TicketAllocator(session_factory)

    results = await asyncio.gather(*(allocator.purchase(c.id) for c in customers))

    allocated = [r for r in results if r.allocated]
    sold_out = [r for r in results if r.status is PurchaseStatus.SOLD_OUT]
    assert len(allocated) == 3
    assert len(sold_out) == 2
    assert len({r.ticket.id for r in allocated}) == 3

    tickets = await all_tickets(session_factory)
    assert all(t.status == TicketStatus.SOLD.value for t in tickets)
    assert len({t.customer_id for t in tickets}) == 3


@pytest.mark.asyncio
async def test_no_double_sale_with_more_buyers_than_tickets(session_factory, vendor, customers):
    await seed_tickets(session_factory, vendor.id, 4)
    allocator = TicketAllocator(session_factory)

    # Every customer tries twice at once.
    buyers = [c.id for c in customers] * 2
    results = await asyncio.gather(*(allocator.purchase(b) for b in buyers))

    ids = [r.ticket.id for r in results if r.allocated]
    assert len(ids) == 4
    assert len(set(ids)) == 4
    assert await count_status(session_factory, TicketStatus.AVAILABLE) == 0


@pytest.mark.asyncio
async def test_exhausted_pool_stays_unchanged(session_factory, customers, pool_of_three):
    allocator = TicketAllocator(session_factory)
    for c in customers[:3]:
        assert (await allocator.purchase(c.id)).allocated

    for c in customers:
        result = await allocator.purchase(c.id)
        assert result.status is PurchaseStatus.SOLD_OUT

    assert await count_status(session_factory, TicketStatus.AVAILABLE) == 0
    assert await count_status(session_factory, TicketStatus.SOLD) == 3


@pytest.mark.asyncio
async def test_status_invariant_holds_for_every_row(session_factory, vendor, customers):
    await seed_tickets(session_factory, vendor.id, 6)
    allocator = TicketAllocator(session_factory)
    await asyncio.gather(*(allocator.purchase(c.id) for c in customers[:4]))

    for ticket in await all_tickets(session_factory):
        sold = ticket.status == TicketStatus.SOLD.value
        assert sold == (ticket.customer_id is not None and ticket.sold_at is not None)


@pytest.mark.asyncio
async def test_store_failure_rolls_back(session_factory, customer, pool_of_three, monkeypatch):
    async def broken_mark_sold(self, ticket_id, customer_id, sold_at):
        raise OperationalError("UPDATE tickets", {}, Exception("lock wait timeout"))

    monkeypatch.setattr(TicketStore, "mark_sold", broken_mark_sold)

    with pytest.raises(AllocationFailed):
        await TicketAllocator(session_factory).purchase(customer.id)

    assert await count_status(session_factory, TicketStatus.AVAILABLE) == 3
    assert await count_status(session_factory, TicketStatus.SOLD) == 0


@pytest.mark.asyncio
async def test_lost_row_is_reported_as_allocation_failure(session_factory, customer, pool_of_three, monkeypatch):
    async def nothing_updated(self, ticket_id, customer_id, sold_at):
        return 0

    monkeypatch.setattr(TicketStore, "mark_sold", nothing_updated)

    with pytest.raises(AllocationFailed) as exc_info:
        await TicketAllocator(session_factory).purchase(customer.id)

    assert "taken by a concurrent purchase" in exc_info.value.message
    assert exc_info.value.cause is None

    assert await count_status(session_factory, TicketStatus.AVAILABLE) == 3


@pytest.mark.asyncio
async def test_retry_recovers_from_transient_failure(session_factory, customer, pool_of_three, monkeypatch):
    original = TicketStore.mark_sold
    calls = {"count": 0}

    async def flaky_mark_sold(self, ticket_id, customer_id, sold_at):
        calls["count"] += 1
        if calls["count"] == 1:
            raise OperationalError("UPDATE tickets", {}, Exception("deadlock detected"))
        return await original(self, ticket_id, customer_id, sold_at)

    monkeypatch.setattr(TicketStore, "mark_sold", flaky_mark_sold)

    result = await TicketAllocator(session_factory).purchase_with_retry(customer.id, attempts=3)

    assert result.allocated
    assert calls["count"] == 2
    assert await count_status(session_factory, TicketStatus.SOLD) == 1


@pytest.mark.asyncio
async def test_retry_gives_up_after_max_attempts(session_factory, customer, pool_of_three, monkeypatch):
    async def broken_mark_sold(self, ticket_id, customer_id, sold_at):
        raise OperationalError("UPDATE tickets", {}, Exception("connection lost"))

    monkeypatch.setattr(TicketStore, "mark_sold", broken_mark_sold)

    with pytest.raises(AllocationFailed):
        await TicketAllocator(session_factory).purchase_with_retry(customer.id, attempts=2)

    assert await count_status(session_factory, TicketStatus.AVAILABLE) == 3


@pytest.mark.asyncio
async def test_purchase_is_logged(session_factory, customer, pool_of_three):
    allocator = TicketAllocator(session_factory, log_sink=SystemLogSink(session_factory))

    result = await allocator.purchase(customer.id)

    async with session_factory() as session:
        logs = (await session.execute(select(SystemLog))).scalars().all()
    assert [log.action for log in logs] == ["TICKET_PURCHASED"]
    assert logs[0].actor_type == "customer"
    assert logs[0].actor_id == customer.id
    assert result.ticket.ticket_number in logs[0].description


@pytest.mark.asyncio
async def test_log_failure_does_not_undo_sale(session_factory, customer, pool_of_three):
    def broken_factory():
        raise RuntimeError("log database unavailable")

    allocator = TicketAllocator(session_factory, log_sink=SystemLogSink(broken_factory))

    result = await allocator.purchase(customer.id)

    assert result.allocated
    assert await count_status(session_factory, TicketStatus.SOLD) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("attempts", [0, -1])
async def test_retry_rejects_non_positive_attempts(session_factory, customer, pool_of_three, attempts):
    with pytest.raises(ValueError):
        await TicketAllocator(session_factory).purchase_with_retry(customer.id, attempts=attempts)

    assert await count_status(session_factory, TicketStatus.AVAILABLE) == 3


@pytest.mark.asyncio
async def test_cancelled_purchase_rolls_back(session_factory, customers, pool_of_three, monkeypatch):
    """A purchase cancelled while holding its lock leaves the pool untouched."""
    original = TicketStore.mark_sold
    holding = asyncio.Event()
    never = asyncio.Event()

    async def stalled_mark_sold(self, ticket_id, customer_id, sold_at):
        holding.set()
        await never.wait()

    monkeypatch.setattr(TicketStore, "mark_sold", stalled_mark_sold)
    allocator = TicketAllocator(session_factory)

    task = asyncio.create_task(allocator.purchase(customers[0].id))
    await asyncio.wait_for(holding.wait(), timeout=5)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await count_status(session_factory, TicketStatus.AVAILABLE) == 3

    monkeypatch.setattr(TicketStore, "mark_sold", original)
    result = await asyncio.wait_for(allocator.purchase(customers[1].id), timeout=5)
    assert result.allocated
    assert await count_status(session_factory, TicketStatus.SOLD) == 1


@pytest.mark.asyncio
async def test_open_read_session_does_not_block_purchase(session_factory, customer, pool_of_three):
    async with session_factory() as reader:
        assert await TicketStore(reader).count_by_status(TicketStatus.AVAILABLE) == 3

        result = await asyncio.wait_for(TicketAllocator(session_factory).purchase(customer.id), timeout=2)

        assert result.allocated
        await reader.rollback()
        assert await TicketStore(reader).count_by_status(TicketStatus.AVAILABLE) == 2
