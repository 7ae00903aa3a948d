"""
Persisted pool configuration. The newest row is the current one; older rows
are kept as history.
"""

from sqlalchemy import Column, Integer

from ticketpool.db.base import Base, TimestampMixin


class Configuration(Base, TimestampMixin):
    __tablename__ = "configurations"

    id = Column(Integer, primary_key=True, index=True)
    total_tickets = Column(Integer, nullable=False)
    ticket_release_rate = Column(Integer, nullable=False)
    customer_retrieval_rate = Column(Integer, nullable=False)
    max_ticket_capacity = Column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<Configuration(id={self.id}, total={self.total_tickets}, capacity={self.max_ticket_capacity})>"
