"""Pydantic models that define the contract between the classifier, the API
and the item store.

Drafts describe a freshly detected item (what the classifier proposes), edits
describe content changes, and the ``*Out`` models are the read shape handed
to callers.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Priority = Literal["low", "normal", "high"]
ActionType = Literal["create", "update", "delete"]


def _require_aware(v: Optional[datetime]) -> Optional[datetime]:
    if v is not None and (v.tzinfo is None or v.utcoffset() is None):
        raise ValueError("datetime must be timezone-aware")
    return v


def _clean_title(v: Optional[str]) -> str:
    if v is None or not v.strip():
        raise ValueError("title must be a non-empty string")
    return v.strip()


# ──────────────────────────────
# Drafts (classifier → store)
# ──────────────────────────────


class _ItemDraft(BaseModel):
    """Fields shared by reminder and event drafts.

    ``status`` and timestamps are deliberately absent: the store decides them.
    """

    user_id: int
    channel_id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    calendar_id: Optional[str] = None  # falls back to the channel's calendar
    google_event_id: Optional[str] = None
    action_type: ActionType = "create"
    original_message_id: Optional[int] = None
    llm_reasoning: Optional[str] = None
    llm_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    quality_flags: List[str] = Field(default_factory=list)
    source: Optional[str] = None

    @field_validator("title")
    def _title(cls, v):  # noqa: N805
        return _clean_title(v)

    # Normalise flags to lowercase, keep order, drop blanks
    @field_validator("quality_flags")
    def _flags(cls, v: list[str]):  # noqa: N805
        return [f.strip().lower() for f in v if f and f.strip()]


class ReminderDraft(_ItemDraft):
    due_date: Optional[datetime] = None
    reminder_time: Optional[datetime] = None
    priority: Priority = "normal"

    @field_validator("due_date", "reminder_time")
    def _aware(cls, v):  # noqa: N805
        return _require_aware(v)


class EventDraft(_ItemDraft):
    start_time: datetime
    end_time: Optional[datetime] = None

    @field_validator("start_time", "end_time")
    def _aware(cls, v):  # noqa: N805
        return _require_aware(v)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


# ──────────────────────────────
# Edits (content updates)
# ──────────────────────────────


class ReminderEdit(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    due_date: Optional[datetime] = None
    reminder_time: Optional[datetime] = None
    priority: Optional[Priority] = None

    @field_validator("title")
    def _title(cls, v):  # noqa: N805
        return _clean_title(v)

    @field_validator("due_date", "reminder_time")
    def _aware(cls, v):  # noqa: N805
        return _require_aware(v)

    @field_validator("priority")
    def _priority(cls, v):  # noqa: N805
        if v is None:
            raise ValueError("priority cannot be cleared")
        return v


class EventEdit(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_validator("title")
    def _title(cls, v):  # noqa: N805
        return _clean_title(v)

    @field_validator("start_time", "end_time")
    def _aware(cls, v):  # noqa: N805
        return _require_aware(v)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class ManualReminderIn(BaseModel):
    """Body of a user-authored reminder (no classifier involved)."""

    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    due_date: Optional[datetime] = None
    reminder_time: Optional[datetime] = None
    priority: Priority = "normal"

    @field_validator("title")
    def _title(cls, v):  # noqa: N805
        return _clean_title(v)

    @field_validator("due_date", "reminder_time")
    def _aware(cls, v):  # noqa: N805
        return _require_aware(v)


# ──────────────────────────────
# Read models
# ──────────────────────────────


class _ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    channel_id: int
    google_event_id: Optional[str] = None
    calendar_id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    status: str
    action_type: str
    original_message_id: Optional[int] = None
    llm_reasoning: Optional[str] = None
    llm_confidence: float = 0.0
    quality_flags: List[str] = Field(default_factory=list)
    source: Optional[str] = None
    due_notification_sent_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ReminderOut(_ItemOut):
    due_date: Optional[datetime] = None
    reminder_time: Optional[datetime] = None
    priority: str


class AttendeeIn(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    display_name: Optional[str] = Field(default=None, max_length=255)
    optional: bool = False

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("email must contain @")
        return v


class AttendeeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    email: str
    display_name: Optional[str] = None
    optional: bool = False


class EventOut(_ItemOut):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    attendees: List[AttendeeOut] = Field(default_factory=list)


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    channel_id: int
    source_type: str
    sender_id: str
    sender_name: Optional[str] = None
    message_text: str
    subject: Optional[str] = None
    timestamp: datetime


class ReminderDetail(BaseModel):
    reminder: ReminderOut
    trigger_message: Optional[MessageOut] = None


class EventDetail(BaseModel):
    event: EventOut
    trigger_message: Optional[MessageOut] = None
