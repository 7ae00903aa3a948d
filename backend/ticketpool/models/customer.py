"""
Customer model: display name and retrieval parameters for a buyer.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from ticketpool.db.base import Base, utcnow


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    retrieval_interval = Column(Integer, nullable=False, default=2000)  # milliseconds
    priority_level = Column(String(20), nullable=False, default="standard")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    tickets = relationship("Ticket", back_populates="customer")

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name})>"
