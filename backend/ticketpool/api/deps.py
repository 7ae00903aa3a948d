"""
Dependency wiring for the components that own transactions.

Each request gets components built around the shared session factory; the
components open their own per-call sessions, so nothing here is shared
mutable state.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ticketpool.db.session import get_session_factory
from ticketpool.services.allocator import TicketAllocator
from ticketpool.services.ingestion import InventoryIngestion
from ticketpool.services.system_log import SystemLogSink


def get_log_sink(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SystemLogSink:
    return SystemLogSink(session_factory)


def get_allocator(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    log_sink: SystemLogSink = Depends(get_log_sink),
) -> TicketAllocator:
    return TicketAllocator(session_factory, log_sink=log_sink)


def get_ingestion(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    log_sink: SystemLogSink = Depends(get_log_sink),
) -> InventoryIngestion:
    return InventoryIngestion(session_factory, log_sink=log_sink)
