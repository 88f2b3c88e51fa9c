import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response, status

import db
from app.services.lifecycle import sources_for
from app.types.item_contract import (
    AttendeeIn,
    AttendeeOut,
    EventDetail,
    EventEdit,
    EventOut,
    ManualReminderIn,
    MessageOut,
    ReminderDetail,
    ReminderDraft,
    ReminderEdit,
    ReminderOut,
)
from db import attendees, channels, messages
from db.items import ItemStore, events, reminders
from db.models import EventStatus, ReminderStatus
from db.user_settings import selected_calendar_id

_LOGGER = logging.getLogger(__name__)

REMINDER_ACTIONS = {
    "confirm": ReminderStatus.CONFIRMED,
    "reject": ReminderStatus.REJECTED,
    "complete": ReminderStatus.COMPLETED,
    "dismiss": ReminderStatus.DISMISSED,
}
EVENT_ACTIONS = {
    "confirm": EventStatus.CONFIRMED,
    "reject": EventStatus.REJECTED,
}

app = FastAPI(title="Reminder lifecycle engine")


@app.on_event("shutdown")
async def shutdown_event():
    await db.dispose_engine()


# --------------------------------------------
# Auth: the gateway in front of us sets X-User-ID
# --------------------------------------------
async def current_user(x_user_id: Optional[str] = Header(default=None)) -> int:
    try:
        user_id = int(x_user_id or "")
    except ValueError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "authentication required")
    if user_id <= 0:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "authentication required")
    return user_id


# --------------------------------------------
# Shared item helpers
# --------------------------------------------
async def _load_or_404(store: ItemStore, user_id: int, item_id: int):
    item = await store.get_by_id_for_user(user_id, item_id)
    if item is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"{store.kind.name} not found")
    return item


async def _trigger_message(item) -> Optional[MessageOut]:
    if item.original_message_id is None:
        return None
    msg = await messages.get_message(item.original_message_id)
    if msg is None or msg.user_id != item.user_id:
        return None
    return MessageOut.model_validate(msg)


async def _edit(store: ItemStore, user_id: int, item_id: int, fields: dict):
    if not fields:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, "no fields to update")
    result = await store.update_pending_content(user_id, item_id, **fields)
    if result is db.UpdateResult.NOT_FOUND:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"{store.kind.name} not found")
    if result is db.UpdateResult.WRONG_STATUS:
        raise HTTPException(
            status.HTTP_409_CONFLICT, f"can only update pending {store.kind.name}s"
        )
    return await _load_or_404(store, user_id, item_id)


async def _apply_action(store: ItemStore, actions: dict, user_id: int, item_id: int, action: str):
    target = actions.get(action)
    if target is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"unknown action {action!r}")
    sources = sources_for(store.kind.name, target)
    result = await store.transition_from(user_id, item_id, sources, target)
    if result is db.UpdateResult.NOT_FOUND:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"{store.kind.name} not found")
    item = await _load_or_404(store, user_id, item_id)
    if result is db.UpdateResult.WRONG_STATUS:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            f"cannot {action} a {item.status} {store.kind.name}",
        )
    _LOGGER.info(
        "User %s moved %s %s to %s", user_id, store.kind.name, item_id, target.value
    )
    return item


async def _delete(store: ItemStore, user_id: int, item_id: int) -> Response:
    if not await store.delete(user_id, item_id):
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"{store.kind.name} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


# --------------------------------------------
# Reminders
# --------------------------------------------
@app.get("/v1/reminders", response_model=List[ReminderOut])
async def list_reminders(
    status_filter: Optional[ReminderStatus] = Query(default=None, alias="status"),
    channel_id: Optional[int] = None,
    user_id: int = Depends(current_user),
):
    return await reminders.list_for_user(user_id, status=status_filter, channel_id=channel_id)


@app.post("/v1/reminders", response_model=ReminderOut, status_code=status.HTTP_201_CREATED)
async def create_reminder(body: ManualReminderIn, user_id: int = Depends(current_user)):
    channel = await channels.ensure_manual_channel(user_id)
    draft = ReminderDraft(
        user_id=user_id,
        channel_id=channel.id,
        calendar_id=await selected_calendar_id(user_id),
        title=body.title,
        description=body.description,
        location=body.location,
        due_date=body.due_date,
        reminder_time=body.reminder_time,
        priority=body.priority,
        llm_reasoning="manual reminder created by user",
        llm_confidence=1.0,
        source="manual",
    )
    # manual reminders go through the same pending review as detected ones
    return await reminders.create(draft)


@app.get("/v1/reminders/{reminder_id}", response_model=ReminderDetail)
async def get_reminder(reminder_id: int, user_id: int = Depends(current_user)):
    item = await _load_or_404(reminders, user_id, reminder_id)
    return ReminderDetail(
        reminder=ReminderOut.model_validate(item),
        trigger_message=await _trigger_message(item),
    )


@app.patch("/v1/reminders/{reminder_id}", response_model=ReminderOut)
async def update_reminder(
    reminder_id: int, body: ReminderEdit, user_id: int = Depends(current_user)
):
    return await _edit(reminders, user_id, reminder_id, body.model_dump(exclude_unset=True))


@app.delete("/v1/reminders/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reminder(reminder_id: int, user_id: int = Depends(current_user)):
    return await _delete(reminders, user_id, reminder_id)


@app.post("/v1/reminders/{reminder_id}/{action}", response_model=ReminderOut)
async def reminder_action(reminder_id: int, action: str, user_id: int = Depends(current_user)):
    return await _apply_action(reminders, REMINDER_ACTIONS, user_id, reminder_id, action)


# --------------------------------------------
# Calendar events
# --------------------------------------------
@app.get("/v1/events", response_model=List[EventOut])
async def list_events(
    status_filter: Optional[EventStatus] = Query(default=None, alias="status"),
    channel_id: Optional[int] = None,
    user_id: int = Depends(current_user),
):
    return await events.list_for_user(user_id, status=status_filter, channel_id=channel_id)


@app.get("/v1/events/{event_id}", response_model=EventDetail)
async def get_event(event_id: int, user_id: int = Depends(current_user)):
    item = await _load_or_404(events, user_id, event_id)
    return EventDetail(
        event=EventOut.model_validate(item),
        trigger_message=await _trigger_message(item),
    )


@app.patch("/v1/events/{event_id}", response_model=EventOut)
async def update_event(event_id: int, body: EventEdit, user_id: int = Depends(current_user)):
    return await _edit(events, user_id, event_id, body.model_dump(exclude_unset=True))


@app.delete("/v1/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(event_id: int, user_id: int = Depends(current_user)):
    return await _delete(events, user_id, event_id)


@app.put("/v1/events/{event_id}/attendees", response_model=List[AttendeeOut])
async def replace_event_attendees(
    event_id: int, body: List[AttendeeIn], user_id: int = Depends(current_user)
):
    rows = await attendees.set_event_attendees(user_id, event_id, body)
    if rows is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "event not found")
    return rows


@app.post("/v1/events/{event_id}/{action}", response_model=EventOut)
async def event_action(event_id: int, action: str, user_id: int = Depends(current_user)):
    return await _apply_action(events, EVENT_ACTIONS, user_id, event_id, action)
