from ticketpool.schemas.configuration import ConfigurationCreate, ConfigurationResponse, ConfigurationUpdate
from ticketpool.schemas.system_log import SystemLogPage, SystemLogResponse
from ticketpool.schemas.ticket import (
    AllocatedTicketResponse,
    TicketDraft,
    TicketFilter,
    TicketListResponse,
)

__all__ = [
    "ConfigurationCreate", "ConfigurationUpdate", "ConfigurationResponse",
    "SystemLogPage", "SystemLogResponse",
    "AllocatedTicketResponse", "TicketDraft", "TicketFilter", "TicketListResponse",
]
