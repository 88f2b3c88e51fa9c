import asyncio

import pytest

from app.types.item_contract import EventDraft, ReminderDraft
from db.items import events, reminders


async def _confirmed(user_id, channel_id, **kw):
    kw.setdefault("title", "Pay rent")
    item = await reminders.create(ReminderDraft(user_id=user_id, channel_id=channel_id, **kw))
    await reminders.transition_status(user_id, item.id, "confirmed")
    return item


@pytest.mark.asyncio
async def test_due_scenario_marks_once(database, user_id, channel, now, hours):
    past = await _confirmed(user_id, channel.id, due_date=hours(-1))
    future = await _confirmed(user_id, channel.id, due_date=hours(1))

    due = await reminders.select_due(now, 10)
    assert [r.id for r in due] == [past.id]
    assert future.id not in {r.id for r in due}

    assert await reminders.mark_notified(past.id, now) is True
    assert await reminders.select_due(now, 10) == []
    assert await reminders.mark_notified(past.id, now) is False

    fresh = await reminders.get_by_id(past.id)
    assert fresh.due_notification_sent_at == now


@pytest.mark.asyncio
async def test_select_due_is_read_only(database, user_id, channel, now, hours):
    item = await _confirmed(user_id, channel.id, due_date=hours(-2))
    first = await reminders.select_due(now)
    second = await reminders.select_due(now)
    assert [r.id for r in first] == [r.id for r in second] == [item.id]


@pytest.mark.asyncio
async def test_concurrent_mark_notified_has_one_winner(database, user_id, channel, now, hours):
    item = await _confirmed(user_id, channel.id, due_date=hours(-1))

    results = await asyncio.gather(
        *(reminders.mark_notified(item.id, now) for _ in range(8))
    )
    assert results.count(True) == 1
    assert results.count(False) == 7


@pytest.mark.asyncio
async def test_reminder_time_takes_precedence(database, user_id, channel, now, hours):
    # due tomorrow, but the user asked to be pinged an hour ago
    early_ping = await _confirmed(
        user_id, channel.id, due_date=hours(24), reminder_time=hours(-1)
    )
    # due an hour ago, but the ping is set for later
    late_ping = await _confirmed(
        user_id, channel.id, due_date=hours(-1), reminder_time=hours(2)
    )
    due = await reminders.select_due(now)
    assert [r.id for r in due] == [early_ping.id]
    assert late_ping.id not in {r.id for r in due}


@pytest.mark.asyncio
async def test_only_confirmed_or_synced_are_due(database, user_id, channel, now, hours):
    pending = await reminders.create(
        ReminderDraft(user_id=user_id, channel_id=channel.id, title="p", due_date=hours(-1))
    )
    synced = await _confirmed(user_id, channel.id, due_date=hours(-3))
    await reminders.set_external_id(user_id, synced.id, "gcal-9")
    done = await _confirmed(user_id, channel.id, due_date=hours(-2))
    await reminders.transition_status(user_id, done.id, "completed")
    undated = await _confirmed(user_id, channel.id)

    due_ids = [r.id for r in await reminders.select_due(now)]
    assert due_ids == [synced.id]
    assert pending.id not in due_ids
    assert undated.id not in due_ids


@pytest.mark.asyncio
async def test_due_ordering_and_limit(database, user_id, channel, now, hours):
    b = await _confirmed(user_id, channel.id, due_date=hours(-1))
    a = await _confirmed(user_id, channel.id, due_date=hours(-3))
    c = await _confirmed(user_id, channel.id, due_date=hours(-1))

    assert [r.id for r in await reminders.select_due(now)] == [a.id, b.id, c.id]
    assert [r.id for r in await reminders.select_due(now, 2)] == [a.id, b.id]
    # non-positive limits fall back to the default batch
    assert len(await reminders.select_due(now, 0)) == 3
    assert len(await reminders.select_due(now, -5)) == 3


@pytest.mark.asyncio
async def test_external_update_keeps_notified_marker(database, user_id, channel, now, hours):
    item = await _confirmed(user_id, channel.id, due_date=hours(-1))
    assert await reminders.mark_notified(item.id, now)
    await reminders.update_synced_content_from_external(user_id, item.id, due_date=hours(-0.5))
    assert await reminders.select_due(now) == []


@pytest.mark.asyncio
async def test_events_due_on_start_time(database, user_id, channel, now, hours):
    started = await events.create(
        EventDraft(user_id=user_id, channel_id=channel.id, title="Standup", start_time=hours(-0.25))
    )
    later = await events.create(
        EventDraft(user_id=user_id, channel_id=channel.id, title="Review", start_time=hours(3))
    )
    for ev in (started, later):
        await events.transition_status(user_id, ev.id, "confirmed")

    assert [e.id for e in await events.select_due(now)] == [started.id]
    assert await events.mark_notified(started.id, now)
    assert await events.select_due(now) == []
