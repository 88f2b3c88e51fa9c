"""Channel registry: tracked conversation endpoints, scoped per user."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import NamedTuple

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError

from config import settings
from db.db import get_session, utc_now
from db.errors import ChannelNotFound
from db.models import BackfillStatus, Channel, ChannelKind, SourceType

_LOGGER = logging.getLogger(__name__)

MANUAL_CHANNEL_IDENTIFIER = "manual"
MANUAL_CHANNEL_NAME = "Manual reminders"


class TrackedChannel(NamedTuple):
    tracked: bool
    channel_id: int | None
    channel_type: str | None


# ──────────────────────────────────────────────────────────────────────
# Lookups
# ──────────────────────────────────────────────────────────────────────
async def get_channel(user_id: int, channel_id: int) -> Channel | None:
    async with get_session() as s:
        res = await s.execute(
            select(Channel).where(Channel.id == channel_id, Channel.user_id == user_id)
        )
        return res.scalar_one_or_none()


async def get_channel_by_identifier(
    user_id: int, source_type: SourceType | str, identifier: str
) -> Channel | None:
    async with get_session() as s:
        res = await s.execute(
            select(Channel).where(
                Channel.user_id == user_id,
                Channel.source_type == SourceType(source_type).value,
                Channel.identifier == identifier,
            )
        )
        return res.scalar_one_or_none()


async def list_channels(
    user_id: int,
    source_type: SourceType | str | None = None,
    enabled_only: bool = False,
) -> list[Channel]:
    async with get_session() as s:
        stmt = select(Channel).where(Channel.user_id == user_id)
        if source_type is not None:
            stmt = stmt.where(Channel.source_type == SourceType(source_type).value)
        if enabled_only:
            stmt = stmt.where(Channel.enabled.is_(True))
        stmt = stmt.order_by(Channel.created_at.desc(), Channel.id.desc())
        res = await s.execute(stmt)
        return list(res.scalars())


async def is_tracked(
    user_id: int, source_type: SourceType | str, identifier: str
) -> TrackedChannel:
    """Report whether an enabled channel exists for this endpoint.

    A source type this service does not know is simply untracked.
    """
    try:
        source = SourceType(source_type).value
    except ValueError:
        return TrackedChannel(False, None, None)
    async with get_session() as s:
        res = await s.execute(
            select(Channel.id, Channel.type).where(
                Channel.user_id == user_id,
                Channel.source_type == source,
                Channel.identifier == identifier,
                Channel.enabled.is_(True),
            )
        )
        row = res.first()
    if row is None:
        return TrackedChannel(False, None, None)
    return TrackedChannel(True, row.id, row.type)


# ──────────────────────────────────────────────────────────────────────
# Creation
# ──────────────────────────────────────────────────────────────────────
async def create_channel(
    user_id: int,
    source_type: SourceType | str,
    identifier: str,
    name: str,
    *,
    calendar_id: str | None = None,
    channel_type: ChannelKind | str = ChannelKind.SENDER,
    enabled: bool = True,
) -> Channel:
    """Insert a channel; duplicates raise ``IntegrityError``."""
    channel = Channel(
        user_id=user_id,
        source_type=SourceType(source_type).value,
        type=ChannelKind(channel_type).value,
        identifier=identifier,
        name=name,
        calendar_id=calendar_id or settings.DEFAULT_CALENDAR_ID,
        enabled=enabled,
    )
    async with get_session() as s:
        s.add(channel)
        await s.commit()
        await s.refresh(channel)
    return channel


async def get_or_create_channel(
    user_id: int,
    source_type: SourceType | str,
    identifier: str,
    name: str,
    *,
    calendar_id: str | None = None,
) -> Channel:
    """Return the channel for this endpoint, creating it on first sight.

    Concurrent creators converge on one row: whoever loses the unique
    constraint race re-reads the winner's row.
    """
    existing = await get_channel_by_identifier(user_id, source_type, identifier)
    if existing is not None:
        return existing

    try:
        return await create_channel(
            user_id, source_type, identifier, name, calendar_id=calendar_id
        )
    except IntegrityError as exc:
        winner = await get_channel_by_identifier(user_id, source_type, identifier)
        if winner is None:
            raise
        _LOGGER.debug(
            "Channel %s/%s for user %s created concurrently (%s); using id %s",
            source_type, identifier, user_id, exc.orig, winner.id,
        )
        return winner


async def ensure_manual_channel(user_id: int) -> Channel:
    """Stable synthetic channel that holds user-authored reminders."""
    return await get_or_create_channel(
        user_id,
        SourceType.MANUAL,
        MANUAL_CHANNEL_IDENTIFIER,
        MANUAL_CHANNEL_NAME,
    )


# ──────────────────────────────────────────────────────────────────────
# Mutations
# ──────────────────────────────────────────────────────────────────────
async def update_channel(
    user_id: int,
    channel_id: int,
    *,
    name: str | None = None,
    calendar_id: str | None = None,
    enabled: bool | None = None,
) -> bool:
    values: dict = {}
    if name is not None:
        values["name"] = name
    if calendar_id is not None:
        values["calendar_id"] = calendar_id
    if enabled is not None:
        values["enabled"] = enabled
    if not values:
        return await get_channel(user_id, channel_id) is not None

    async with get_session() as s:
        res = await s.execute(
            update(Channel)
            .where(Channel.id == channel_id, Channel.user_id == user_id)
            .values(**values)
        )
        await s.commit()
        return res.rowcount > 0


async def delete_channel(user_id: int, channel_id: int) -> bool:
    """Delete a channel together with its reminders, events and history.

    Dependent rows go through ``ON DELETE CASCADE`` on their foreign keys.
    """
    async with get_session() as s:
        res = await s.execute(
            delete(Channel).where(Channel.id == channel_id, Channel.user_id == user_id)
        )
        await s.commit()
    if res.rowcount:
        _LOGGER.info("Deleted channel %s for user %s", channel_id, user_id)
    return res.rowcount > 0


async def update_channel_stats(
    user_id: int,
    channel_id: int,
    total_message_count: int,
    last_message_at: datetime | None,
) -> bool:
    async with get_session() as s:
        res = await s.execute(
            update(Channel)
            .where(Channel.id == channel_id, Channel.user_id == user_id)
            .values(total_message_count=total_message_count, last_message_at=last_message_at)
        )
        await s.commit()
        return res.rowcount > 0


async def update_backfill_status(
    user_id: int, channel_id: int, status: BackfillStatus | str
) -> bool:
    """Record initial backfill progress for a channel.

    Terminal statuses stamp ``initial_backfill_at`` and cannot be replaced
    afterwards; in that case this returns False. Raises ``ChannelNotFound``
    if the user has no such channel.
    """
    status = BackfillStatus(status)
    values: dict = {"initial_backfill_status": status.value}
    if status.is_terminal:
        values["initial_backfill_at"] = utc_now()

    async with get_session() as s:
        res = await s.execute(
            update(Channel)
            .where(
                Channel.id == channel_id,
                Channel.user_id == user_id,
                or_(
                    Channel.initial_backfill_status.is_(None),
                    Channel.initial_backfill_status == BackfillStatus.IN_PROGRESS.value,
                ),
            )
            .values(**values)
        )
        await s.commit()
    if res.rowcount > 0:
        return True
    if await get_channel(user_id, channel_id) is None:
        raise ChannelNotFound(channel_id, user_id)
    return False
