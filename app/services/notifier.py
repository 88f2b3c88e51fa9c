"""
Due-notification dispatcher.

Each poll selects due items, claims them one by one with ``mark_notified``
and only then delivers. A claim that returns False means another poller got
there first. Delivery happens after the claim, so a failed send is logged and
never retried (at-most-once).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.types.settings_contract import UserSettingsView
from app.utils.sms import send_sms
from config import settings
from db.db import utc_now
from db.items import ItemStore, events, reminders
from db.user_settings import get_or_create_settings

_LOGGER = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    selected: int = 0
    claimed: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0

    def merge(self, other: "DispatchReport") -> None:
        self.selected += other.selected
        self.claimed += other.claimed
        self.sent += other.sent
        self.skipped += other.skipped
        self.failed += other.failed


def _local(ts: datetime | None, tz_name: str) -> str:
    if ts is None:
        return ""
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = ZoneInfo("UTC")
    return ts.astimezone(tz).strftime("%a %d %b %H:%M")


def format_message(kind: str, item, prefs: UserSettingsView) -> str:
    """SMS body for one due item."""
    if kind == "reminder":
        when = _local(item.due_date, prefs.timezone)
        body = f"Reminder: {item.title}"
    else:
        when = _local(item.start_time, prefs.timezone)
        body = f"Upcoming: {item.title}"
    if when:
        body += f" ({when})"
    if item.location:
        body += f" @ {item.location}"
    return body


async def _process_store(store: ItemStore, now: datetime, limit: int) -> DispatchReport:
    report = DispatchReport()
    due = await store.select_due(now, limit)
    report.selected = len(due)

    for item in due:
        if not await store.mark_notified(item.id, utc_now()):
            continue
        report.claimed += 1

        prefs = await get_or_create_settings(item.user_id)
        if not prefs.can_receive_sms:
            report.skipped += 1
            _LOGGER.debug(
                "User %s has no SMS target; %s %s marked without delivery",
                item.user_id, store.kind.name, item.id,
            )
            continue

        body = format_message(store.kind.name, item, prefs)
        try:
            # telnyx is a blocking client
            await asyncio.to_thread(send_sms, prefs.notify_phone, body)
        except Exception:  # noqa: BLE001
            report.failed += 1
            _LOGGER.exception(
                "Delivery failed for %s %s (user %s); not retried",
                store.kind.name, item.id, item.user_id,
            )
            continue
        report.sent += 1
    return report


async def process_due(now: datetime | None = None, limit: int | None = None) -> DispatchReport:
    """Run one poll over reminders then events."""
    now = now or utc_now()
    limit = limit or settings.DUE_BATCH_SIZE

    report = DispatchReport()
    for store in (reminders, events):
        report.merge(await _process_store(store, now, limit))

    if report.selected:
        _LOGGER.info(
            "Due poll: selected=%s claimed=%s sent=%s skipped=%s failed=%s",
            report.selected, report.claimed, report.sent, report.skipped, report.failed,
        )
    return report
