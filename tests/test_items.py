from datetime import timedelta

import pytest

from app.types.item_contract import EventDraft, ReminderDraft
from db import channels
from db.errors import ChannelNotFound, UpdateResult
from db.items import events, reminders


def _draft(user_id, channel_id, **kw):
    kw.setdefault("title", "Dentist")
    return ReminderDraft(user_id=user_id, channel_id=channel_id, **kw)


@pytest.mark.asyncio
async def test_create_forces_pending_and_stamps(database, user_id, channel, hours):
    item = await reminders.create(
        _draft(
            user_id, channel.id,
            due_date=hours(2),
            llm_reasoning="explicit date",
            llm_confidence=0.9,
            quality_flags=["vague_time"],
        )
    )
    assert item.id is not None
    assert item.status == "pending"
    assert item.calendar_id == "primary"
    assert item.quality_flags == ["vague_time"]
    assert item.created_at.tzinfo is not None
    assert item.due_notification_sent_at is None
    assert item.due_date == hours(2)


@pytest.mark.asyncio
async def test_create_accepts_plain_dict(database, user_id, channel):
    item = await reminders.create(
        {"user_id": user_id, "channel_id": channel.id, "title": "Renew passport"}
    )
    assert item.priority == "normal"


@pytest.mark.asyncio
async def test_create_inherits_channel_calendar(database, user_id):
    ch = await channels.create_channel(user_id, "gmail", "x@example.com", "X", calendar_id="work")
    item = await reminders.create(_draft(user_id, ch.id))
    assert item.calendar_id == "work"


@pytest.mark.asyncio
async def test_create_unknown_channel(database, user_id):
    with pytest.raises(ChannelNotFound) as info:
        await reminders.create(_draft(user_id, 4242))
    assert info.value.channel_id == 4242


@pytest.mark.asyncio
async def test_create_on_foreign_channel(database, user_id, channel):
    with pytest.raises(ChannelNotFound):
        await reminders.create(_draft(user_id + 1, channel.id))


@pytest.mark.asyncio
async def test_pending_content_update(database, user_id, channel, hours):
    item = await reminders.create(_draft(user_id, channel.id))
    result = await reminders.update_pending_content(
        user_id, item.id, title="Dentist at 3", due_date=hours(3)
    )
    assert result is UpdateResult.UPDATED
    fresh = await reminders.get_by_id(item.id)
    assert fresh.title == "Dentist at 3"
    assert fresh.due_date == hours(3)
    assert fresh.status == "pending"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["confirmed", "synced", "rejected", "completed"])
async def test_non_pending_is_never_edited(database, user_id, channel, status):
    item = await reminders.create(_draft(user_id, channel.id))
    await reminders.transition_status(user_id, item.id, status)

    result = await reminders.update_pending_content(user_id, item.id, title="Changed")
    assert result is UpdateResult.WRONG_STATUS
    assert not result
    fresh = await reminders.get_by_id(item.id)
    assert fresh.title == "Dentist"
    assert fresh.status == status


@pytest.mark.asyncio
async def test_update_missing_or_foreign_item(database, user_id, channel):
    item = await reminders.create(_draft(user_id, channel.id))
    assert await reminders.update_pending_content(user_id, 999, title="x") is UpdateResult.NOT_FOUND
    assert (
        await reminders.update_pending_content(user_id + 1, item.id, title="x")
        is UpdateResult.NOT_FOUND
    )


@pytest.mark.asyncio
async def test_external_update_only_for_confirmed_or_synced(database, user_id, channel, hours):
    item = await reminders.create(_draft(user_id, channel.id))
    assert (
        await reminders.update_synced_content_from_external(user_id, item.id, title="Ext")
        is UpdateResult.WRONG_STATUS
    )

    await reminders.set_external_id(user_id, item.id, "gcal-1")
    result = await reminders.update_synced_content_from_external(
        user_id, item.id, title="Moved", due_date=hours(5)
    )
    assert result is UpdateResult.UPDATED
    fresh = await reminders.get_by_external_id("gcal-1")
    assert fresh.id == item.id
    assert fresh.status == "synced"
    assert fresh.title == "Moved"


@pytest.mark.asyncio
async def test_transition_rejects_unknown_status(database, user_id, channel):
    item = await reminders.create(_draft(user_id, channel.id))
    with pytest.raises(ValueError):
        await reminders.transition_status(user_id, item.id, "deleted")


@pytest.mark.asyncio
async def test_transition_from_checks_status_in_the_write(database, user_id, channel):
    item = await reminders.create(_draft(user_id, channel.id))
    await reminders.transition_status(user_id, item.id, "confirmed")
    await reminders.set_external_id(user_id, item.id, "gcal-1")

    result = await reminders.transition_from(user_id, item.id, ["pending", "confirmed"], "rejected")
    assert result is UpdateResult.WRONG_STATUS
    assert (await reminders.get_by_id(item.id)).status == "synced"

    result = await reminders.transition_from(user_id, item.id, ["synced"], "completed")
    assert result is UpdateResult.UPDATED
    assert (await reminders.get_by_id(item.id)).status == "completed"

    assert (
        await reminders.transition_from(user_id + 1, item.id, ["completed"], "dismissed")
        is UpdateResult.NOT_FOUND
    )


@pytest.mark.asyncio
async def test_lookups_return_none_when_absent(database, user_id, channel):
    item = await reminders.create(_draft(user_id, channel.id))
    await reminders.set_external_id(user_id, item.id, "gcal-7")

    assert await reminders.get_by_id(12345) is None
    assert await reminders.get_by_id_for_user(user_id + 1, item.id) is None
    assert await reminders.get_by_external_id("missing") is None
    assert await reminders.get_by_external_id_for_user(user_id + 1, "gcal-7") is None
    assert (await reminders.get_by_external_id_for_user(user_id, "gcal-7")).id == item.id


@pytest.mark.asyncio
async def test_active_for_channel_ordering(database, user_id, channel, hours):
    undated = await reminders.create(_draft(user_id, channel.id, title="someday"))
    late = await reminders.create(_draft(user_id, channel.id, title="late", due_date=hours(5)))
    early = await reminders.create(_draft(user_id, channel.id, title="early", due_date=hours(1)))
    tie = await reminders.create(_draft(user_id, channel.id, title="tie", due_date=hours(1)))
    gone = await reminders.create(_draft(user_id, channel.id, title="gone", due_date=hours(0)))
    await reminders.transition_status(user_id, gone.id, "rejected")
    await reminders.transition_status(user_id, late.id, "confirmed")

    active = await reminders.get_active_for_channel(user_id, channel.id)
    assert [r.id for r in active] == [early.id, tie.id, late.id, undated.id]
    assert await reminders.get_active_for_channel(user_id + 1, channel.id) == []


@pytest.mark.asyncio
async def test_list_and_count(database, user_id, channel, hours):
    a = await reminders.create(_draft(user_id, channel.id, due_date=hours(2)))
    b = await reminders.create(_draft(user_id, channel.id, due_date=hours(1)))
    await reminders.transition_status(user_id, a.id, "confirmed")

    assert [r.id for r in await reminders.list_for_user(user_id)] == [b.id, a.id]
    assert [r.id for r in await reminders.list_for_user(user_id, status="confirmed")] == [a.id]
    assert await reminders.count_pending(user_id) == 1
    assert await reminders.count_pending(user_id + 1) == 0
    assert await reminders.list_for_user(user_id + 1) == []


@pytest.mark.asyncio
async def test_list_upcoming_window(database, user_id, channel, now, hours):
    soon = await reminders.create(_draft(user_id, channel.id, due_date=hours(1)))
    later = await reminders.create(_draft(user_id, channel.id, due_date=hours(30)))
    pending = await reminders.create(_draft(user_id, channel.id, due_date=hours(2)))
    for item in (soon, later):
        await reminders.transition_status(user_id, item.id, "confirmed")

    upcoming = await reminders.list_upcoming(user_id, now, timedelta(hours=24))
    assert [r.id for r in upcoming] == [soon.id]
    assert pending.id not in {r.id for r in upcoming}


@pytest.mark.asyncio
async def test_delete_is_scoped(database, user_id, channel):
    item = await reminders.create(_draft(user_id, channel.id))
    assert not await reminders.delete(user_id + 1, item.id)
    assert await reminders.delete(user_id, item.id)
    assert not await reminders.delete(user_id, item.id)


@pytest.mark.asyncio
async def test_event_store(database, user_id, channel, hours):
    ev = await events.create(
        EventDraft(
            user_id=user_id,
            channel_id=channel.id,
            title="Dinner",
            start_time=hours(6),
            end_time=hours(8),
            location="Luigi's",
        )
    )
    assert ev.status == "pending"
    assert await events.update_pending_content(user_id, ev.id, location="Mario's")
    await events.transition_status(user_id, ev.id, "confirmed")
    assert (
        await events.update_pending_content(user_id, ev.id, title="Lunch")
        is UpdateResult.WRONG_STATUS
    )
    assert await events.set_external_id(user_id, ev.id, "gcal-ev")
    fresh = await events.get_by_external_id_for_user(user_id, "gcal-ev")
    assert fresh.status == "synced"
    assert fresh.location == "Mario's"
    assert fresh.end_time == hours(8)


@pytest.mark.asyncio
async def test_empty_update_rejected(database, user_id, channel):
    item = await reminders.create(_draft(user_id, channel.id))
    with pytest.raises(ValueError):
        await reminders.update_pending_content(user_id, item.id)
