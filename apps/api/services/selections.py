"""Per-user streaming service selection helpers."""

from __future__ import annotations

import uuid
from typing import Dict, Iterable, List, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.user_service import UserServiceSelection
from services.connectors import STREAMING_PROVIDERS
from services.errors import PersistenceError, ValidationError


def selection_map(connected_ids: Iterable[str]) -> Dict[str, bool]:
    """Every catalog provider mapped to whether it appears in ``connected_ids``."""
    connected = set(connected_ids)
    return {provider_id: provider_id in connected for provider_id in STREAMING_PROVIDERS}


async def list_selections(db: AsyncSession, user_id: str) -> Dict[str, bool]:
    try:
        result = await db.execute(select(UserServiceSelection).where(UserServiceSelection.user_id == user_id))
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Could not read service selections: {exc}") from exc

    selections = selection_map(())
    for row in result.scalars().all():
        if row.service_name in selections:
            selections[row.service_name] = bool(row.connected)
    return selections


async def connected_service_ids(db: AsyncSession, user_id: str) -> List[str]:
    selections = await list_selections(db, user_id)
    return [provider_id for provider_id, connected in selections.items() if connected]


async def set_selection(
    db: AsyncSession,
    user_id: str,
    service_name: str,
    connected: bool,
    *,
    commit: bool = True,
) -> None:
    """Upsert one (user, service) flag."""
    try:
        result = await db.execute(
            select(UserServiceSelection).where(
                UserServiceSelection.user_id == user_id,
                UserServiceSelection.service_name == service_name,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            db.add(
                UserServiceSelection(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    service_name=service_name,
                    connected=bool(connected),
                )
            )
        else:
            row.connected = bool(connected)
        if commit:
            await db.commit()
        else:
            await db.flush()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise PersistenceError(f"Could not update {service_name} selection: {exc}") from exc


def validate_selection_update(updates: Mapping[str, bool]) -> Dict[str, bool]:
    unknown = sorted(key for key in updates if key not in STREAMING_PROVIDERS)
    if unknown:
        raise ValidationError(f"Unknown streaming services: {', '.join(unknown)}")
    return {key: bool(value) for key, value in updates.items()}


async def set_selections(db: AsyncSession, user_id: str, updates: Mapping[str, bool]) -> Dict[str, bool]:
    """Apply several toggles in one transaction and return the resulting map."""
    cleaned = validate_selection_update(updates)
    for service_name, connected in cleaned.items():
        await set_selection(db, user_id, service_name, connected, commit=False)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise PersistenceError(f"Could not save service selections: {exc}") from exc
    return await list_selections(db, user_id)
