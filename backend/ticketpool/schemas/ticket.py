"""
Pydantic schemas for ticket ingestion, allocation and reporting.

Drafts are intentionally loose: field presence and ranges are checked by
the ingestion service so that HTTP callers and in-process callers get the
same ValidationFailed errors.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ticketpool.models.ticket import TicketStatus


class TicketDraft(BaseModel):
    ticket_number: Optional[str] = None
    vendor_id: Optional[int] = None
    price: Optional[Decimal] = None


class TicketDraftIn(BaseModel):
    """A draft as posted by a vendor; the vendor id comes from the token."""

    ticket_number: Optional[str] = None
    price: Optional[Decimal] = None


class TicketBatchCreate(BaseModel):
    tickets: list[TicketDraftIn]


class TicketReleaseRequest(BaseModel):
    count: Optional[int] = Field(default=None, gt=0, le=1000)


class BatchResultResponse(BaseModel):
    added: int
    available: int


class AllocatedTicketResponse(BaseModel):
    id: int
    ticket_number: str
    vendor_id: int
    price: Decimal
    sold_at: datetime

    model_config = {"from_attributes": True}


class SoldOutResponse(BaseModel):
    detail: str = "Sold out"
    status: str = "sold_out"


class TicketFilter(BaseModel):
    status: Optional[TicketStatus] = None
    vendor_id: Optional[int] = None
    customer_id: Optional[int] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=200)


class TicketListItem(BaseModel):
    id: int
    ticket_number: str
    status: TicketStatus
    price: Decimal
    vendor_id: int
    vendor_name: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    created_at: datetime
    sold_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TicketListResponse(BaseModel):
    tickets: list[TicketListItem]
    total: int
    page: int
    page_size: int
    cached: bool = False


class PurchaseHistoryItem(BaseModel):
    id: int
    ticket_number: str
    price: Decimal
    sold_at: datetime
    vendor_name: Optional[str] = None

    model_config = {"from_attributes": True}


class CountResponse(BaseModel):
    status: TicketStatus
    count: int


class TicketTotals(BaseModel):
    total: int
    available: int
    sold: int


class AccountTotals(BaseModel):
    total: int
    active: int


class SystemStatsResponse(BaseModel):
    tickets: TicketTotals
    vendors: AccountTotals
    customers: AccountTotals
    recent_activity: int
    last_updated: datetime
