"""Inbound message history: append-only log per channel feeding classifier context."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from config import settings
from db.db import get_session
from db.errors import ChannelNotFound
from db.models import Channel, MessageHistory, SourceType

_LOGGER = logging.getLogger(__name__)


def _dedup_key(row: MessageHistory) -> tuple:
    return (
        row.source_type,
        row.channel_id,
        row.sender_id,
        row.subject or "",
        row.message_text,
        row.timestamp,
    )


async def append(
    channel_id: int,
    sender_id: str,
    sender_name: str | None,
    text: str,
    subject: str | None,
    timestamp: datetime,
    source_type: SourceType | str | None = None,
) -> MessageHistory:
    """Store one inbound message.

    ``user_id`` and (unless given) ``source_type`` are copied from the channel.
    """
    async with get_session() as s:
        channel = (
            await s.execute(
                select(Channel.user_id, Channel.source_type).where(Channel.id == channel_id)
            )
        ).first()
        if channel is None:
            raise ChannelNotFound(channel_id)

        row = MessageHistory(
            user_id=channel.user_id,
            channel_id=channel_id,
            source_type=SourceType(source_type or channel.source_type).value,
            sender_id=sender_id,
            sender_name=sender_name,
            message_text=text,
            subject=subject,
            timestamp=timestamp,
        )
        s.add(row)
        try:
            await s.commit()
        except IntegrityError as exc:
            # channel deleted between the lookup and the insert
            await s.rollback()
            raise ChannelNotFound(channel_id) from exc
        await s.refresh(row)
    return row


async def get_recent(channel_id: int, limit: int) -> list[MessageHistory]:
    """Return up to ``limit`` distinct messages, oldest first.

    Duplicates (same sender, subject, text and timestamp) collapse to their
    newest row; a missing subject equals an empty one. Over-fetches so that heavy duplication still fills ``limit``.
    """
    if limit <= 0:
        return []
    fetch = min(max(limit * settings.HISTORY_FETCH_MULTIPLIER, limit), settings.HISTORY_FETCH_CEILING)

    async with get_session() as s:
        res = await s.execute(
            select(MessageHistory)
            .where(MessageHistory.channel_id == channel_id)
            .order_by(MessageHistory.timestamp.desc(), MessageHistory.id.desc())
            .limit(fetch)
        )
        rows = list(res.scalars())

    seen: set[tuple] = set()
    kept: list[MessageHistory] = []
    for row in rows:
        key = _dedup_key(row)
        if key in seen:
            continue
        seen.add(key)
        kept.append(row)
        if len(kept) == limit:
            break
    kept.reverse()
    return kept


async def prune(channel_id: int, keep_count: int | None = None) -> int:
    """Delete all but the ``keep_count`` newest rows of one channel.

    Returns the number of deleted rows.
    """
    if keep_count is None:
        keep_count = settings.HISTORY_KEEP_COUNT
    if keep_count < 0:
        raise ValueError("keep_count must be >= 0")

    newest = (
        select(MessageHistory.id)
        .where(MessageHistory.channel_id == channel_id)
        .order_by(MessageHistory.timestamp.desc(), MessageHistory.id.desc())
        .limit(keep_count)
    )
    stmt = delete(MessageHistory).where(MessageHistory.channel_id == channel_id)
    if keep_count > 0:
        stmt = stmt.where(MessageHistory.id.not_in(select(newest.subquery().c.id)))

    async with get_session() as s:
        res = await s.execute(stmt)
        await s.commit()
    if res.rowcount:
        _LOGGER.debug("Pruned %s history rows from channel %s", res.rowcount, channel_id)
    return res.rowcount


async def get_message(message_id: int) -> MessageHistory | None:
    async with get_session() as s:
        return await s.get(MessageHistory, message_id)


async def count(channel_id: int) -> int:
    async with get_session() as s:
        n = await s.scalar(
            select(func.count())
            .select_from(MessageHistory)
            .where(MessageHistory.channel_id == channel_id)
        )
    return int(n or 0)
