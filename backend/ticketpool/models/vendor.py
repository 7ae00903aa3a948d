"""
Vendor model. Accounts are owned by the identity provider; this row holds
the display name used in listings and the vendor's release parameters.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from ticketpool.db.base import Base, utcnow


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    tickets_per_release = Column(Integer, nullable=False, default=5)
    release_interval = Column(Integer, nullable=False, default=1000)  # milliseconds
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    tickets = relationship("Ticket", back_populates="vendor")

    def __repr__(self) -> str:
        return f"<Vendor(id={self.id}, name={self.name})>"
