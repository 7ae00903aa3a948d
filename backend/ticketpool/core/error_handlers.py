"""
Exception handlers translating domain errors into JSON responses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ticketpool.core.exceptions import TicketPoolError, ValidationFailed
from ticketpool.core.logging import get_logger

logger = get_logger(__name__)


async def ticket_pool_error_handler(request: Request, exc: TicketPoolError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("domain_error", error=exc.message, error_type=type(exc).__name__)
    else:
        logger.warning("domain_error", error=exc.message, error_type=type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def validation_failed_handler(request: Request, exc: ValidationFailed) -> JSONResponse:
    logger.warning("validation_failed", errors=exc.errors)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.errors})


EXCEPTION_HANDLERS = {
    ValidationFailed: validation_failed_handler,
    TicketPoolError: ticket_pool_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
