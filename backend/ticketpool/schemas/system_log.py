"""
Pydantic schemas for reading the system log.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SystemLogResponse(BaseModel):
    id: int
    action: str
    description: Optional[str]
    actor_type: str
    actor_id: Optional[int]
    timestamp: datetime

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class SystemLogPage(BaseModel):
    logs: list[SystemLogResponse]
    pagination: Pagination


class ClearLogsResponse(BaseModel):
    deleted: int
    older_than_days: int
