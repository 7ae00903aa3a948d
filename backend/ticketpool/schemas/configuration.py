"""
Pydantic schemas for the configuration store.
Range checks live in the service so their messages match the stored rules.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ConfigurationCreate(BaseModel):
    total_tickets: int
    ticket_release_rate: int
    customer_retrieval_rate: int
    max_ticket_capacity: int


class ConfigurationUpdate(BaseModel):
    total_tickets: Optional[int] = None
    ticket_release_rate: Optional[int] = None
    customer_retrieval_rate: Optional[int] = None
    max_ticket_capacity: Optional[int] = None


class ConfigurationResponse(BaseModel):
    id: int
    total_tickets: int
    ticket_release_rate: int
    customer_retrieval_rate: int
    max_ticket_capacity: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReleaseParameters(BaseModel):
    vendor_id: int
    tickets_per_release: int
    release_interval: int


class RetrievalParameters(BaseModel):
    customer_id: int
    retrieval_interval: int
