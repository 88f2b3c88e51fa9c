"""Cached per-user list of most active contacts, refreshed in bulk."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from sqlalchemy import delete, select

from db.db import get_session, utc_now
from db.models import SourceType, TopContact

_LOGGER = logging.getLogger(__name__)


async def replace_top_contacts(
    user_id: int,
    source_type: SourceType | str,
    contacts: Iterable[Mapping],
) -> int:
    """Swap the cached contacts for one (user, source) in a single transaction.

    Each contact is a mapping with ``identifier`` and optional ``name`` /
    ``message_count``. On any error nothing is changed.
    """
    source = SourceType(source_type).value
    refreshed_at = utc_now()
    rows = [
        TopContact(
            user_id=user_id,
            source_type=source,
            identifier=c["identifier"],
            name=c.get("name"),
            message_count=int(c.get("message_count", 0)),
            refreshed_at=refreshed_at,
        )
        for c in contacts
    ]

    async with get_session() as s:
        async with s.begin():
            await s.execute(
                delete(TopContact).where(
                    TopContact.user_id == user_id, TopContact.source_type == source
                )
            )
            s.add_all(rows)
    _LOGGER.info("Replaced %s top contacts for user %s (%s)", len(rows), user_id, source)
    return len(rows)


async def get_top_contacts(
    user_id: int,
    source_type: SourceType | str,
    limit: int | None = None,
) -> list[TopContact]:
    stmt = (
        select(TopContact)
        .where(
            TopContact.user_id == user_id,
            TopContact.source_type == SourceType(source_type).value,
        )
        .order_by(TopContact.message_count.desc(), TopContact.id.asc())
    )
    if limit is not None and limit > 0:
        stmt = stmt.limit(limit)
    async with get_session() as s:
        res = await s.execute(stmt)
        return list(res.scalars())
