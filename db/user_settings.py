"""Per-user settings aggregate with lazy default-row creation."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from app.types.settings_contract import UserSettingsEdit, UserSettingsView
from config import settings
from db.db import get_session
from db.models import UserSettings

_LOGGER = logging.getLogger(__name__)


async def _load(user_id: int) -> UserSettings | None:
    async with get_session() as s:
        return await s.get(UserSettings, user_id)


async def get_or_create_settings(user_id: int) -> UserSettingsView:
    row = await _load(user_id)
    if row is None:
        row = UserSettings(user_id=user_id, timezone=settings.DEFAULT_TIMEZONE)
        try:
            async with get_session() as s:
                s.add(row)
                await s.commit()
                await s.refresh(row)
        except IntegrityError:
            row = await _load(user_id)
            if row is None:
                raise
            _LOGGER.debug("Settings for user %s created concurrently", user_id)
    return UserSettingsView.model_validate(row)


async def update_settings(user_id: int, **fields: Any) -> UserSettingsView:
    """Validated partial update; creates the default row first if needed."""
    values = UserSettingsEdit.model_validate(fields).model_dump(exclude_unset=True)
    await get_or_create_settings(user_id)
    if values:
        async with get_session() as s:
            await s.execute(
                update(UserSettings)
                .where(UserSettings.user_id == user_id)
                .values(**values, updated_at=func.now())
            )
            await s.commit()
    return await get_or_create_settings(user_id)


async def selected_calendar_id(user_id: int) -> str:
    async with get_session() as s:
        chosen = await s.scalar(
            select(UserSettings.selected_calendar_id).where(UserSettings.user_id == user_id)
        )
    return chosen or settings.DEFAULT_CALENDAR_ID
