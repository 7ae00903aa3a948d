from ticketpool.models.configuration import Configuration
from ticketpool.models.customer import Customer
from ticketpool.models.system_log import SystemLog
from ticketpool.models.ticket import Ticket, TicketStatus
from ticketpool.models.vendor import Vendor

__all__ = ["Configuration", "Customer", "SystemLog", "Ticket", "TicketStatus", "Vendor"]
