"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from ticketpool.api.routes import config, customers, system, tickets

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(tickets.router)
api_router.include_router(customers.router)
api_router.include_router(system.router)
api_router.include_router(config.router)
