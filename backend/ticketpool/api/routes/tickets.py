"""
Ticket endpoints: purchase, vendor releases, listings and counts.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ticketpool.api.deps import get_allocator, get_ingestion
from ticketpool.core.security import Principal, require_role
from ticketpool.db.session import get_db
from ticketpool.models.ticket import TicketStatus
from ticketpool.schemas.ticket import (
    AllocatedTicketResponse,
    BatchResultResponse,
    CountResponse,
    SoldOutResponse,
    SystemStatsResponse,
    TicketBatchCreate,
    TicketDraft,
    TicketFilter,
    TicketListResponse,
    TicketReleaseRequest,
)
from ticketpool.services import reporting
from ticketpool.services.allocator import TicketAllocator
from ticketpool.services.ingestion import InventoryIngestion

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post(
    "/purchase",
    response_model=AllocatedTicketResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_409_CONFLICT: {"model": SoldOutResponse}},
)
async def purchase_ticket(
    principal: Principal = Depends(require_role("customer")),
    allocator: TicketAllocator = Depends(get_allocator),
):
    """
    Buy one ticket from the pool.

    201 with the allocated ticket, 409 when the pool is sold out, 503 when
    the store kept failing after retries (nothing was sold; retry later).
    """
    result = await allocator.purchase_with_retry(principal.user_id)
    if not result.allocated:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=SoldOutResponse().model_dump(),
        )
    return result.ticket


@router.post("/batch", response_model=BatchResultResponse, status_code=status.HTTP_201_CREATED)
async def add_ticket_batch(
    batch: TicketBatchCreate,
    principal: Principal = Depends(require_role("vendor")),
    ingestion: InventoryIngestion = Depends(get_ingestion),
    db: AsyncSession = Depends(get_db),
):
    """Release a batch of tickets. All of them are added, or none are."""
    drafts = [
        TicketDraft(ticket_number=draft.ticket_number, vendor_id=principal.user_id, price=draft.price)
        for draft in batch.tickets
    ]
    added = await ingestion.add_tickets(drafts)
    return BatchResultResponse(added=added, available=await reporting.available_count(db))


@router.post("/release", response_model=BatchResultResponse, status_code=status.HTTP_201_CREATED)
async def release_tickets(
    release: TicketReleaseRequest,
    principal: Principal = Depends(require_role("vendor")),
    ingestion: InventoryIngestion = Depends(get_ingestion),
    db: AsyncSession = Depends(get_db),
):
    """Release generated tickets; defaults to the vendor's tickets_per_release."""
    added = await ingestion.release_for_vendor(principal.user_id, release.count)
    return BatchResultResponse(added=added, available=await reporting.available_count(db))


@router.get("/", response_model=TicketListResponse)
async def list_tickets(
    ticket_status: Optional[TicketStatus] = Query(None, alias="status"),
    vendor_id: Optional[int] = Query(None),
    customer_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(require_role("vendor", "admin")),
    db: AsyncSession = Depends(get_db),
):
    """Enriched listing with vendor and customer names, newest first."""
    ticket_filter = TicketFilter(
        status=ticket_status,
        vendor_id=vendor_id,
        customer_id=customer_id,
        page=page,
        page_size=page_size,
    )
    return await reporting.list_tickets(db, ticket_filter)


@router.get("/available/count", response_model=CountResponse)
async def available_count(db: AsyncSession = Depends(get_db)):
    """Live number of tickets left in the pool."""
    return CountResponse(status=TicketStatus.AVAILABLE, count=await reporting.available_count(db))


@router.get("/count", response_model=CountResponse)
async def count_by_status(
    ticket_status: TicketStatus = Query(..., alias="status"),
    db: AsyncSession = Depends(get_db),
):
    return CountResponse(status=ticket_status, count=await reporting.count_by_status(db, ticket_status))


@router.get("/stats", response_model=SystemStatsResponse)
async def system_stats(
    principal: Principal = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    return await reporting.system_stats(db)
