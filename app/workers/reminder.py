"""Periodic due-notification poll."""

from __future__ import annotations

import asyncio
import logging

import db
from app.celery_app import celery_app
from app.services.notifier import process_due

_LOGGER = logging.getLogger(__name__)


async def _run_poll():
    try:
        return await process_due()
    finally:
        # the engine is bound to this asyncio.run loop
        await db.dispose_engine()


# ---------------------------------------------------------------------------
# Celery Tasks
# ---------------------------------------------------------------------------

@celery_app.task(name="app.workers.reminder.dispatch_due", bind=True, max_retries=3)
def dispatch_due(self):  # noqa: D401
    """Claim and deliver every due reminder and event."""
    try:
        report = asyncio.run(_run_poll())
    except Exception as exc:  # noqa: BLE001
        _LOGGER.warning("Due poll failed: %s", exc)
        raise self.retry(exc=exc, countdown=30)
    return {
        "selected": report.selected,
        "claimed": report.claimed,
        "sent": report.sent,
        "skipped": report.skipped,
        "failed": report.failed,
    }
