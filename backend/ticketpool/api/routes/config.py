"""
Configuration store endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketpool.core.exceptions import NotFound
from ticketpool.core.security import Principal, require_role
from ticketpool.db.session import get_db
from ticketpool.schemas.configuration import (
    ConfigurationCreate,
    ConfigurationResponse,
    ConfigurationUpdate,
    ReleaseParameters,
    RetrievalParameters,
)
from ticketpool.services import config_store

router = APIRouter(prefix="/config", tags=["Configuration"])


@router.get("/", response_model=ConfigurationResponse)
async def current_configuration(
    principal: Principal = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    configuration = await config_store.get_current_configuration(db)
    if configuration is None:
        raise NotFound("No configuration saved yet")
    return configuration


@router.post("/", response_model=ConfigurationResponse, status_code=status.HTTP_201_CREATED)
async def save_configuration(
    config: ConfigurationCreate,
    principal: Principal = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    return await config_store.save_configuration(db, config)


@router.get("/history", response_model=list[ConfigurationResponse])
async def configuration_history(
    principal: Principal = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    return await config_store.list_configurations(db)


@router.patch("/{configuration_id}", response_model=ConfigurationResponse)
async def update_configuration(
    configuration_id: int,
    changes: ConfigurationUpdate,
    principal: Principal = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    return await config_store.update_configuration(db, configuration_id, changes)


@router.get("/release/me", response_model=ReleaseParameters)
async def my_release_parameters(
    principal: Principal = Depends(require_role("vendor")),
    db: AsyncSession = Depends(get_db),
):
    tickets_per_release, release_interval = await config_store.vendor_release_parameters(db, principal.user_id)
    return ReleaseParameters(
        vendor_id=principal.user_id,
        tickets_per_release=tickets_per_release,
        release_interval=release_interval,
    )


@router.get("/retrieval/me", response_model=RetrievalParameters)
async def my_retrieval_parameters(
    principal: Principal = Depends(require_role("customer")),
    db: AsyncSession = Depends(get_db),
):
    interval = await config_store.customer_retrieval_interval(db, principal.user_id)
    return RetrievalParameters(customer_id=principal.user_id, retrieval_interval=interval)
