"""
Tests for the best-effort system log sink and its read side.
"""

from datetime import datetime, timedelta, timezone

import pytest

from ticketpool.models.system_log import SystemLog
from ticketpool.services.system_log import NullLogSink, SystemLogSink, clear_old_logs, get_logs


@pytest.mark.asyncio
async def test_sink_persists_record(session_factory):
    await SystemLogSink(session_factory).log("SERVER_START", "Server started", "system")

    async with session_factory() as session:
        page = await get_logs(session)

    assert page["pagination"]["total"] == 1
    assert page["logs"][0].action == "SERVER_START"
    assert page["logs"][0].actor_id is None


@pytest.mark.asyncio
async def test_sink_swallows_write_failures():
    def broken_factory():
        raise RuntimeError("database is down")

    # Must not raise.
    await SystemLogSink(broken_factory).log("TICKET_PURCHASED", "Ticket sold", "customer", 7)


@pytest.mark.asyncio
async def test_sink_swallows_constraint_violations(session_factory):
    await SystemLogSink(session_factory).log("ODD", "Unknown actor type", "robot", 1)

    async with session_factory() as session:
        page = await get_logs(session)
    assert page["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_null_sink_writes_nothing(session_factory):
    await NullLogSink().log("ANY", "Nothing stored")

    async with session_factory() as session:
        assert (await get_logs(session))["logs"] == []


@pytest.mark.asyncio
async def test_get_logs_paginates_and_filters(session_factory):
    sink = SystemLogSink(session_factory)
    for n in range(5):
        await sink.log("TICKET_PURCHASED", f"Sale {n}", "customer", n + 1)
    await sink.log("TICKETS_RELEASED", "Release", "vendor", 1)

    async with session_factory() as session:
        page = await get_logs(session, page=2, limit=2, actor_type="customer")

    assert page["pagination"] == {"page": 2, "limit": 2, "total": 5, "total_pages": 3}
    assert len(page["logs"]) == 2
    assert all(log.actor_type == "customer" for log in page["logs"])


@pytest.mark.asyncio
async def test_clear_old_logs(session_factory):
    async with session_factory() as session:
        session.add(
            SystemLog(
                action="OLD",
                description="Ancient entry",
                actor_type="system",
                timestamp=datetime.now(timezone.utc) - timedelta(days=45),
            )
        )
        session.add(SystemLog(action="NEW", description="Fresh entry", actor_type="system"))
        await session.commit()

    sink = SystemLogSink(session_factory)
    async with session_factory() as session:
        deleted = await clear_old_logs(session, sink, days=30)

    assert deleted == 1
    async with session_factory() as session:
        actions = {log.action for log in (await get_logs(session))["logs"]}
    assert actions == {"NEW", "SYSTEM_MAINTENANCE"}
