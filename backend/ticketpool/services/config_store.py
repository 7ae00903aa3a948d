"""
Configuration store: release and retrieval parameters.

The values are persisted and served to whoever drives releases and
retrievals; the allocator and ingestion never read them.
"""

from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketpool.core.exceptions import NotFound, ValidationFailed
from ticketpool.core.logging import get_logger
from ticketpool.models.configuration import Configuration
from ticketpool.models.customer import Customer
from ticketpool.models.vendor import Vendor
from ticketpool.schemas.configuration import ConfigurationCreate, ConfigurationUpdate

logger = get_logger(__name__)

_POSITIVE_FIELDS = {
    "total_tickets": "Total tickets",
    "ticket_release_rate": "Ticket release rate",
    "customer_retrieval_rate": "Customer retrieval rate",
    "max_ticket_capacity": "Maximum ticket capacity",
}


def validate_configuration(config: Union[ConfigurationCreate, dict]) -> list[str]:
    """Returns a list of error messages; empty when the configuration is valid."""
    values = config if isinstance(config, dict) else config.model_dump()
    errors = []

    for field, label in _POSITIVE_FIELDS.items():
        value = values.get(field)
        if value is None or value <= 0:
            errors.append(f"{label} must be a positive number")

    total = values.get("total_tickets")
    capacity = values.get("max_ticket_capacity")
    if total and capacity and capacity < total:
        errors.append("Maximum ticket capacity cannot be less than total tickets")

    return errors


async def save_configuration(db: AsyncSession, config: ConfigurationCreate) -> Configuration:
    errors = validate_configuration(config)
    if errors:
        raise ValidationFailed(errors)

    configuration = Configuration(**config.model_dump())
    db.add(configuration)
    await db.commit()
    await db.refresh(configuration)

    logger.info("configuration_saved", configuration_id=configuration.id)
    return configuration


async def get_current_configuration(db: AsyncSession) -> Optional[Configuration]:
    result = await db.execute(
        select(Configuration)
        .order_by(Configuration.created_at.desc(), Configuration.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_configurations(db: AsyncSession) -> list[Configuration]:
    result = await db.execute(
        select(Configuration).order_by(Configuration.created_at.desc(), Configuration.id.desc())
    )
    return list(result.scalars().all())


async def update_configuration(db: AsyncSession, configuration_id: int, changes: ConfigurationUpdate) -> Configuration:
    updates = changes.model_dump(exclude_none=True)
    if not updates:
        raise ValidationFailed(["No fields to update"])

    configuration = await db.get(Configuration, configuration_id)
    if configuration is None:
        raise NotFound(f"Configuration {configuration_id} not found")

    merged = {field: getattr(configuration, field) for field in _POSITIVE_FIELDS}
    merged.update(updates)
    errors = validate_configuration(merged)
    if errors:
        raise ValidationFailed(errors)

    for field, value in updates.items():
        setattr(configuration, field, value)
    await db.commit()
    await db.refresh(configuration)

    logger.info("configuration_updated", configuration_id=configuration.id, fields=sorted(updates))
    return configuration


async def vendor_release_parameters(db: AsyncSession, vendor_id: int) -> tuple[int, int]:
    """(tickets_per_release, release_interval in ms) for a vendor."""
    result = await db.execute(
        select(Vendor.tickets_per_release, Vendor.release_interval).where(Vendor.id == vendor_id)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFound(f"Vendor {vendor_id} not found")
    return row.tickets_per_release, row.release_interval


async def customer_retrieval_interval(db: AsyncSession, customer_id: int) -> int:
    result = await db.execute(select(Customer.retrieval_interval).where(Customer.id == customer_id))
    interval = result.scalar_one_or_none()
    if interval is None:
        raise NotFound(f"Customer {customer_id} not found")
    return interval
