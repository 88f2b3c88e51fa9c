"""
Item store: reminders and calendar events.

Both entities share one state machine, one schedule ordering and one
due-notification queue, so the logic lives once in :class:`ItemStore` and
each entity contributes an :class:`ItemKind` describing its columns.

Every write is a single statement; the guards (status, notified marker)
live in the WHERE clause so concurrent callers never interleave a
read-then-write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Generic, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from app.types.item_contract import EventDraft, EventEdit, ReminderDraft, ReminderEdit
from db.db import UTCDateTime, get_session
from db.errors import ChannelNotFound, UpdateResult
from db.models import CalendarEvent, Channel, EventStatus, Reminder, ReminderStatus

_LOGGER = logging.getLogger(__name__)

DEFAULT_DUE_LIMIT = 50

PENDING = "pending"
# Statuses an item can hold while still "live" (shown to the classifier)
ACTIVE_STATUSES = ("pending", "confirmed", "synced")
# Statuses eligible for a due notification
DUE_STATUSES = ("confirmed", "synced")
EXTERNALLY_EDITABLE_STATUSES = ("confirmed", "synced")

ItemT = TypeVar("ItemT", Reminder, CalendarEvent)


@dataclass(frozen=True)
class ItemKind:
    """Column accessors for one item entity."""

    name: str
    model: type
    statuses: type[Enum]
    schedule_field: str
    # first non-null wins; the notification trigger time
    trigger_fields: tuple[str, ...]
    draft_type: type[BaseModel]
    edit_type: type[BaseModel]
    # relationships to load on a freshly created row
    eager: tuple[str, ...] = ()


REMINDER_KIND = ItemKind(
    name="reminder",
    model=Reminder,
    statuses=ReminderStatus,
    schedule_field="due_date",
    trigger_fields=("reminder_time", "due_date"),
    draft_type=ReminderDraft,
    edit_type=ReminderEdit,
)

EVENT_KIND = ItemKind(
    name="event",
    model=CalendarEvent,
    statuses=EventStatus,
    schedule_field="start_time",
    trigger_fields=("start_time",),
    draft_type=EventDraft,
    edit_type=EventEdit,
    eager=("attendees",),
)


class ItemStore(Generic[ItemT]):
    def __init__(self, kind: ItemKind) -> None:
        self.kind = kind
        self.model = kind.model

    # ------------------------------------------------------------------
    # Column helpers
    # ------------------------------------------------------------------
    @property
    def _schedule(self):
        return getattr(self.model, self.kind.schedule_field)

    @property
    def _trigger(self):
        cols = [getattr(self.model, f) for f in self.kind.trigger_fields]
        if len(cols) == 1:
            return cols[0]
        return func.coalesce(*cols, type_=UTCDateTime())

    def _schedule_order(self):
        # nulls last, then ascending, then insertion order
        col = self._schedule
        return (col.is_(None), col.asc(), self.model.id.asc())

    def _status(self, status: Enum | str) -> str:
        return self.kind.statuses(status).value

    def _content_values(self, fields: dict[str, Any]) -> dict[str, Any]:
        if not fields:
            raise ValueError(f"no {self.kind.name} fields to update")
        edit = self.kind.edit_type.model_validate(fields)
        values = edit.model_dump(exclude_unset=True)
        values["updated_at"] = func.now()
        return values

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    async def create(self, draft: BaseModel | dict) -> ItemT:
        """Persist a classifier draft as a new ``pending`` item.

        Raises ``ChannelNotFound`` when the channel is missing or belongs to
        another user.
        """
        if not isinstance(draft, self.kind.draft_type):
            draft = self.kind.draft_type.model_validate(
                draft if isinstance(draft, dict) else draft.model_dump()
            )
        values = draft.model_dump()

        async with get_session() as s:
            channel = (
                await s.execute(
                    select(Channel.id, Channel.calendar_id).where(
                        Channel.id == draft.channel_id,
                        Channel.user_id == draft.user_id,
                    )
                )
            ).first()
            if channel is None:
                raise ChannelNotFound(draft.channel_id, draft.user_id)

            values["calendar_id"] = values.get("calendar_id") or channel.calendar_id
            item = self.model(**values, status=PENDING)
            s.add(item)
            try:
                await s.commit()
            except IntegrityError as exc:
                await s.rollback()
                still_there = await s.scalar(
                    select(Channel.id).where(Channel.id == draft.channel_id)
                )
                if still_there is None:
                    raise ChannelNotFound(draft.channel_id, draft.user_id) from exc
                raise
            await s.refresh(item)
            if self.kind.eager:
                await s.refresh(item, attribute_names=list(self.kind.eager))

        _LOGGER.info(
            "Created pending %s %s (user=%s channel=%s action=%s)",
            self.kind.name, item.id, item.user_id, item.channel_id, item.action_type,
        )
        return item

    # ------------------------------------------------------------------
    # Guarded content updates
    # ------------------------------------------------------------------
    async def _guarded_update(
        self,
        user_id: int,
        item_id: int,
        allowed_statuses: Sequence[str],
        values: dict[str, Any],
    ) -> UpdateResult:
        async with get_session() as s:
            res = await s.execute(
                update(self.model)
                .where(
                    self.model.id == item_id,
                    self.model.user_id == user_id,
                    self.model.status.in_(allowed_statuses),
                )
                .values(**values)
            )
            await s.commit()
        if res.rowcount > 0:
            return UpdateResult.UPDATED

        current = await self.get_by_id_for_user(user_id, item_id)
        if current is None:
            return UpdateResult.NOT_FOUND
        _LOGGER.debug(
            "Skipped update of %s %s: status %s not in %s",
            self.kind.name, item_id, current.status, list(allowed_statuses),
        )
        return UpdateResult.WRONG_STATUS

    async def update_pending_content(
        self, user_id: int, item_id: int, **fields: Any
    ) -> UpdateResult:
        """Edit title/time/location of a ``pending`` item.

        Any other status leaves the row untouched and yields
        ``UpdateResult.WRONG_STATUS``; nothing is raised.
        """
        values = self._content_values(fields)
        return await self._guarded_update(user_id, item_id, (PENDING,), values)

    async def update_synced_content_from_external(
        self, user_id: int, item_id: int, **fields: Any
    ) -> UpdateResult:
        """Apply content from the external calendar to a confirmed/synced item.

        Status is never changed by this call.
        """
        values = self._content_values(fields)
        return await self._guarded_update(
            user_id, item_id, EXTERNALLY_EDITABLE_STATUSES, values
        )

    # ------------------------------------------------------------------
    # Status and sync
    # ------------------------------------------------------------------
    async def transition_status(
        self, user_id: int, item_id: int, status: Enum | str
    ) -> bool:
        """Write ``status`` unconditionally.

        Used by sync paths that own the status; user actions go through
        :meth:`transition_from`.
        """
        new_status = self._status(status)
        async with get_session() as s:
            res = await s.execute(
                update(self.model)
                .where(self.model.id == item_id, self.model.user_id == user_id)
                .values(status=new_status, updated_at=func.now())
            )
            await s.commit()
        return res.rowcount > 0

    async def transition_from(
        self,
        user_id: int,
        item_id: int,
        from_statuses: Sequence[Enum | str],
        status: Enum | str,
    ) -> UpdateResult:
        """Write ``status`` only while the item still holds one of ``from_statuses``.

        The check and the write are one statement, so a concurrent status
        change between a caller's read and this call yields
        ``UpdateResult.WRONG_STATUS`` instead of being overwritten.
        """
        values = {"status": self._status(status), "updated_at": func.now()}
        allowed = [self._status(s) for s in from_statuses]
        return await self._guarded_update(user_id, item_id, allowed, values)

    async def set_external_id(
        self, user_id: int, item_id: int, external_id: str
    ) -> bool:
        """Record the external calendar id and mark the item ``synced``."""
        async with get_session() as s:
            res = await s.execute(
                update(self.model)
                .where(self.model.id == item_id, self.model.user_id == user_id)
                .values(
                    google_event_id=external_id,
                    status=self._status("synced"),
                    updated_at=func.now(),
                )
            )
            await s.commit()
        return res.rowcount > 0

    async def delete(self, user_id: int, item_id: int) -> bool:
        async with get_session() as s:
            res = await s.execute(
                delete(self.model).where(
                    self.model.id == item_id, self.model.user_id == user_id
                )
            )
            await s.commit()
        return res.rowcount > 0

    # ------------------------------------------------------------------
    # Lookups (absent -> None)
    # ------------------------------------------------------------------
    async def _one(self, *criteria) -> ItemT | None:
        async with get_session() as s:
            res = await s.execute(
                select(self.model).where(*criteria).order_by(self.model.id).limit(1)
            )
            return res.scalar_one_or_none()

    async def get_by_id(self, item_id: int) -> ItemT | None:
        return await self._one(self.model.id == item_id)

    async def get_by_id_for_user(self, user_id: int, item_id: int) -> ItemT | None:
        return await self._one(self.model.id == item_id, self.model.user_id == user_id)

    async def get_by_external_id(self, external_id: str) -> ItemT | None:
        return await self._one(self.model.google_event_id == external_id)

    async def get_by_external_id_for_user(
        self, user_id: int, external_id: str
    ) -> ItemT | None:
        return await self._one(
            self.model.google_event_id == external_id, self.model.user_id == user_id
        )

    async def list_for_user(
        self,
        user_id: int,
        status: Enum | str | None = None,
        channel_id: int | None = None,
    ) -> list[ItemT]:
        stmt = select(self.model).where(self.model.user_id == user_id)
        if status is not None:
            stmt = stmt.where(self.model.status == self._status(status))
        if channel_id is not None:
            stmt = stmt.where(self.model.channel_id == channel_id)
        async with get_session() as s:
            res = await s.execute(stmt.order_by(*self._schedule_order()))
            return list(res.scalars())

    async def get_active_for_channel(self, user_id: int, channel_id: int) -> list[ItemT]:
        """Pending, confirmed and synced items of one channel, schedule-ordered."""
        async with get_session() as s:
            res = await s.execute(
                select(self.model)
                .where(
                    self.model.user_id == user_id,
                    self.model.channel_id == channel_id,
                    self.model.status.in_(ACTIVE_STATUSES),
                )
                .order_by(*self._schedule_order())
            )
            return list(res.scalars())

    async def count_pending(self, user_id: int) -> int:
        async with get_session() as s:
            count = await s.scalar(
                select(func.count())
                .select_from(self.model)
                .where(self.model.user_id == user_id, self.model.status == PENDING)
            )
        return int(count or 0)

    async def list_upcoming(
        self, user_id: int, now: datetime, window: timedelta
    ) -> list[ItemT]:
        """Confirmed/synced items scheduled within ``[now, now + window]``."""
        col = self._schedule
        async with get_session() as s:
            res = await s.execute(
                select(self.model)
                .where(
                    self.model.user_id == user_id,
                    self.model.status.in_(DUE_STATUSES),
                    col.is_not(None),
                    col >= now,
                    col <= now + window,
                )
                .order_by(*self._schedule_order())
            )
            return list(res.scalars())

    # ------------------------------------------------------------------
    # Due-notification queue
    # ------------------------------------------------------------------
    async def select_due(self, now: datetime, limit: int = DEFAULT_DUE_LIMIT) -> list[ItemT]:
        """Items whose trigger time has passed and that were never notified.

        Read-only; safe to call any number of times.
        """
        if limit <= 0:
            limit = DEFAULT_DUE_LIMIT
        trigger = self._trigger
        async with get_session() as s:
            res = await s.execute(
                select(self.model)
                .where(
                    self.model.status.in_(DUE_STATUSES),
                    trigger.is_not(None),
                    trigger <= now,
                    self.model.due_notification_sent_at.is_(None),
                )
                .order_by(trigger.asc(), self.model.id.asc())
                .limit(limit)
            )
            return list(res.scalars())

    async def mark_notified(self, item_id: int, sent_at: datetime) -> bool:
        """Claim the due notification for ``item_id``.

        Returns True only for the single caller whose statement flipped the
        marker from NULL; every other caller gets False.
        """
        async with get_session() as s:
            res = await s.execute(
                update(self.model)
                .where(
                    self.model.id == item_id,
                    self.model.due_notification_sent_at.is_(None),
                )
                .values(due_notification_sent_at=sent_at, updated_at=func.now())
            )
            await s.commit()
        return res.rowcount > 0


reminders: ItemStore[Reminder] = ItemStore(REMINDER_KIND)
events: ItemStore[CalendarEvent] = ItemStore(EVENT_KIND)
