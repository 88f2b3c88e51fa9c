"""Attendees of a calendar event, replaced as a set when the event is synced."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from sqlalchemy import delete, select

from app.types.item_contract import AttendeeIn
from db.db import get_session, utc_now
from db.models import CalendarEvent, EventAttendee

_LOGGER = logging.getLogger(__name__)


def _owned_event(user_id: int, event_id: int):
    return select(CalendarEvent.id).where(
        CalendarEvent.id == event_id, CalendarEvent.user_id == user_id
    )


async def get_event_attendees(user_id: int, event_id: int) -> list[EventAttendee]:
    async with get_session() as s:
        res = await s.execute(
            select(EventAttendee)
            .where(EventAttendee.event_id.in_(_owned_event(user_id, event_id)))
            .order_by(EventAttendee.id)
        )
        return list(res.scalars())


async def set_event_attendees(
    user_id: int,
    event_id: int,
    attendees: Iterable[AttendeeIn | Mapping],
) -> list[EventAttendee] | None:
    """Swap the attendee list of one event in a single transaction.

    Returns None when the event does not exist for ``user_id``. On any
    error the previous attendees are kept.
    """
    created_at = utc_now()
    rows = []
    for a in attendees:
        if not isinstance(a, AttendeeIn):
            a = AttendeeIn.model_validate(a)
        rows.append(
            EventAttendee(
                event_id=event_id,
                email=a.email,
                display_name=a.display_name,
                optional=a.optional,
                created_at=created_at,
            )
        )

    async with get_session() as s:
        async with s.begin():
            if await s.scalar(_owned_event(user_id, event_id)) is None:
                return None
            await s.execute(delete(EventAttendee).where(EventAttendee.event_id == event_id))
            s.add_all(rows)
    _LOGGER.info("Replaced %s attendees for event %s (user=%s)", len(rows), event_id, user_id)
    return rows


async def add_event_attendee(
    user_id: int,
    event_id: int,
    email: str,
    display_name: str | None = None,
    optional: bool = False,
) -> EventAttendee | None:
    attendee = AttendeeIn(email=email, display_name=display_name, optional=optional)
    async with get_session() as s:
        async with s.begin():
            if await s.scalar(_owned_event(user_id, event_id)) is None:
                return None
            row = EventAttendee(
                event_id=event_id,
                email=attendee.email,
                display_name=attendee.display_name,
                optional=attendee.optional,
                created_at=utc_now(),
            )
            s.add(row)
    return row


async def delete_event_attendee(user_id: int, attendee_id: int) -> bool:
    async with get_session() as s:
        res = await s.execute(
            delete(EventAttendee).where(
                EventAttendee.id == attendee_id,
                EventAttendee.event_id.in_(
                    select(CalendarEvent.id).where(CalendarEvent.user_id == user_id)
                ),
            )
        )
        await s.commit()
    return res.rowcount > 0
