"""
Domain errors for the ticket pool.

Every error carries the HTTP status it maps to, so routes can let them
propagate and the handlers in `ticketpool.core.error_handlers` render them.
A sold-out pool is not an error; see `ticketpool.services.allocator`.
"""

from typing import Optional

from fastapi import status


class TicketPoolError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(TicketPoolError):
    """Malformed ingestion or configuration input. Nothing was written."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors) or "Invalid input")
        self.errors = list(errors)


class AllocationFailed(TicketPoolError):
    """
    Transient store failure during a purchase (lock timeout, deadlock,
    lost connection). The transaction was rolled back, so retrying is safe.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Ticket allocation failed, please retry", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class IngestionFailed(TicketPoolError):
    """A row of the batch could not be inserted; the whole batch was rolled back."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, batch_size: int = 0):
        super().__init__(message)
        self.batch_size = batch_size


class NotFound(TicketPoolError):
    status_code = status.HTTP_404_NOT_FOUND
