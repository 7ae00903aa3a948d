"""
Customer endpoints: purchase history.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketpool.core.security import Principal, require_role
from ticketpool.db.session import get_db
from ticketpool.schemas.ticket import PurchaseHistoryItem
from ticketpool.services import reporting

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.get("/me/tickets", response_model=list[PurchaseHistoryItem])
async def my_tickets(
    principal: Principal = Depends(require_role("customer")),
    db: AsyncSession = Depends(get_db),
):
    """Tickets bought by the authenticated customer, most recent first."""
    return await reporting.purchase_history(db, principal.user_id)
