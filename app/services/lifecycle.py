"""Status state machine for reminders and calendar events.

The store writes whatever status it is given; callers that act on behalf of
a user pass :func:`sources_for` as the guard of a conditional write.
"""

from __future__ import annotations

from enum import Enum

from db.models import EventStatus, ReminderStatus

_R = ReminderStatus
_E = EventStatus

REMINDER_TRANSITIONS: dict[str, frozenset[str]] = {
    _R.PENDING: frozenset({_R.CONFIRMED, _R.REJECTED, _R.COMPLETED, _R.DISMISSED}),
    _R.CONFIRMED: frozenset({_R.SYNCED, _R.COMPLETED, _R.DISMISSED}),
    _R.SYNCED: frozenset({_R.COMPLETED, _R.DISMISSED}),
    _R.REJECTED: frozenset(),
    _R.COMPLETED: frozenset(),
    _R.DISMISSED: frozenset(),
}

EVENT_TRANSITIONS: dict[str, frozenset[str]] = {
    _E.PENDING: frozenset({_E.CONFIRMED, _E.REJECTED, _E.DELETED}),
    _E.CONFIRMED: frozenset({_E.SYNCED, _E.REJECTED, _E.DELETED}),
    _E.SYNCED: frozenset({_E.REJECTED, _E.DELETED}),
    _E.REJECTED: frozenset(),
    _E.DELETED: frozenset(),
}

_TABLES = {
    "reminder": (ReminderStatus, REMINDER_TRANSITIONS),
    "event": (EventStatus, EVENT_TRANSITIONS),
}


def can_transition(kind: str, current: Enum | str, target: Enum | str) -> bool:
    """True if ``kind`` ("reminder" or "event") may move from ``current`` to ``target``.

    Unknown statuses are never valid.
    """
    try:
        statuses, table = _TABLES[kind]
    except KeyError:
        raise ValueError(f"unknown item kind {kind!r}") from None
    try:
        src, dst = statuses(current), statuses(target)
    except ValueError:
        return False
    return dst in table[src]


def sources_for(kind: str, target: Enum | str) -> frozenset[str]:
    """Every status of ``kind`` from which ``target`` is reachable in one step."""
    statuses, _ = _TABLES.get(kind, (None, None))
    if statuses is None:
        raise ValueError(f"unknown item kind {kind!r}")
    return frozenset(s.value for s in statuses if can_transition(kind, s, target))
