"""
Ticket model: one sellable unit in the shared pool.

Key design decisions:
- Two-state lifecycle (available -> sold), no reserved/pending state
- status, customer_id and sold_at move together; a CHECK constraint keeps
  `status = 'sold'` equivalent to both buyer columns being set
- Composite index on (status, id) serves the allocator's
  "lowest-id available row" lookup and the live availability count
"""

import enum
from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from ticketpool.db.base import Base, utcnow


class TicketStatus(str, enum.Enum):
    AVAILABLE = "available"
    SOLD = "sold"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    ticket_number = Column(String(100), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    price = Column(Numeric(10, 2), nullable=False, default=Decimal("50.00"))
    status = Column(String(20), nullable=False, default=TicketStatus.AVAILABLE.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    sold_at = Column(DateTime(timezone=True), nullable=True)

    vendor = relationship("Vendor", back_populates="tickets")
    customer = relationship("Customer", back_populates="tickets")

    __table_args__ = (
        CheckConstraint("status IN ('available', 'sold')", name="check_ticket_status"),
        CheckConstraint("price > 0", name="check_ticket_price_positive"),
        CheckConstraint(
            "(status = 'sold' AND customer_id IS NOT NULL AND sold_at IS NOT NULL)"
            " OR (status = 'available' AND customer_id IS NULL AND sold_at IS NULL)",
            name="check_ticket_sold_fields",
        ),
        Index("ix_tickets_status_id", "status", "id"),
        Index("ix_tickets_customer_sold_at", "customer_id", "sold_at"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, number={self.ticket_number}, status={self.status})>"
