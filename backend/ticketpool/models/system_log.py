"""
System log record written by the best-effort log sink.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, String, Text, func

from ticketpool.db.base import Base, utcnow


class SystemLog(Base):
    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    actor_type = Column(String(20), nullable=False, default="system")
    actor_id = Column(Integer, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "actor_type IN ('vendor', 'customer', 'admin', 'system')",
            name="check_system_log_actor_type",
        ),
        Index("ix_system_logs_timestamp", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<SystemLog(id={self.id}, action={self.action}, actor={self.actor_type}:{self.actor_id})>"
