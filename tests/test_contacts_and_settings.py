import asyncio

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from db import contacts, user_settings


@pytest.mark.asyncio
async def test_replace_top_contacts_swaps_list(database, user_id):
    await contacts.replace_top_contacts(
        user_id,
        "gmail",
        [
            {"identifier": "a@example.com", "name": "A", "message_count": 3},
            {"identifier": "b@example.com", "name": "B", "message_count": 9},
        ],
    )
    top = await contacts.get_top_contacts(user_id, "gmail")
    assert [c.identifier for c in top] == ["b@example.com", "a@example.com"]

    await contacts.replace_top_contacts(
        user_id, "gmail", [{"identifier": "c@example.com", "message_count": 1}]
    )
    assert [c.identifier for c in await contacts.get_top_contacts(user_id, "gmail")] == [
        "c@example.com"
    ]


@pytest.mark.asyncio
async def test_replace_top_contacts_rolls_back_on_error(database, user_id):
    await contacts.replace_top_contacts(user_id, "whatsapp", [{"identifier": "+1"}])

    # duplicate identifiers violate the unique constraint mid-transaction
    with pytest.raises(IntegrityError):
        await contacts.replace_top_contacts(
            user_id, "whatsapp", [{"identifier": "+2"}, {"identifier": "+2"}]
        )
    assert [c.identifier for c in await contacts.get_top_contacts(user_id, "whatsapp")] == ["+1"]


@pytest.mark.asyncio
async def test_top_contacts_scoped_by_source_and_user(database, user_id):
    await contacts.replace_top_contacts(user_id, "gmail", [{"identifier": "x"}])
    await contacts.replace_top_contacts(user_id, "telegram", [{"identifier": "y"}])
    await contacts.replace_top_contacts(user_id + 1, "gmail", [{"identifier": "z"}])

    await contacts.replace_top_contacts(user_id, "gmail", [])
    assert await contacts.get_top_contacts(user_id, "gmail") == []
    assert len(await contacts.get_top_contacts(user_id, "telegram")) == 1
    assert len(await contacts.get_top_contacts(user_id + 1, "gmail")) == 1


@pytest.mark.asyncio
async def test_settings_created_lazily_with_defaults(database, user_id):
    prefs = await user_settings.get_or_create_settings(user_id)
    assert prefs.user_id == user_id
    assert prefs.timezone == "UTC"
    assert prefs.sms_notifications_enabled is False
    assert not prefs.can_receive_sms
    assert await user_settings.selected_calendar_id(user_id) == "primary"


@pytest.mark.asyncio
async def test_settings_creation_race(database, user_id):
    views = await asyncio.gather(
        *(user_settings.get_or_create_settings(user_id) for _ in range(3))
    )
    assert {v.user_id for v in views} == {user_id}


@pytest.mark.asyncio
async def test_update_settings(database, user_id):
    prefs = await user_settings.update_settings(
        user_id,
        sms_notifications_enabled=True,
        notify_phone="+15557654321",
        selected_calendar_id="work@group.calendar.google.com",
        timezone="Europe/Berlin",
    )
    assert prefs.can_receive_sms
    assert prefs.timezone == "Europe/Berlin"
    assert await user_settings.selected_calendar_id(user_id) == "work@group.calendar.google.com"


@pytest.mark.asyncio
async def test_update_settings_validates(database, user_id):
    with pytest.raises(ValidationError):
        await user_settings.update_settings(user_id, timezone="Mars/Olympus")
    with pytest.raises(ValidationError):
        await user_settings.update_settings(user_id, favourite_colour="blue")
