"""ORM models and the closed vocabularies stored in their columns."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON, BigInteger, CheckConstraint, Float, ForeignKey, Index, Integer,
    String, Text, UniqueConstraint, func
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.db import Base, UTCDateTime

# SQLite only autoincrements INTEGER PRIMARY KEY
PK = BigInteger().with_variant(Integer, "sqlite")


class SourceType(str, Enum):
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    GMAIL = "gmail"
    MANUAL = "manual"


class ChannelKind(str, Enum):
    SENDER = "sender"


class BackfillStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not BackfillStatus.IN_PROGRESS


class ReminderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SYNCED = "synced"
    REJECTED = "rejected"
    COMPLETED = "completed"
    DISMISSED = "dismissed"


class EventStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SYNCED = "synced"
    REJECTED = "rejected"
    DELETED = "deleted"


class ActionType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


def _in(column: str, enum: type[Enum]) -> str:
    values = ", ".join(f"'{m.value}'" for m in enum)
    return f"{column} IN ({values})"


# ──────────────────────────────────────────────────────────────────────
# Channels
# ──────────────────────────────────────────────────────────────────────
class Channel(Base):
    __tablename__ = "channels"
    __table_args__ = (
        UniqueConstraint("user_id", "source_type", "identifier", name="uq_channels_user_source_identifier"),
        CheckConstraint(_in("source_type", SourceType), name="ck_channels_source_type"),
        CheckConstraint(_in("type", ChannelKind), name="ck_channels_type"),
        CheckConstraint(
            f"initial_backfill_status IS NULL OR {_in('initial_backfill_status', BackfillStatus)}",
            name="ck_channels_backfill_status",
        ),
        Index("ix_channels_user_source", "user_id", "source_type"),
    )

    id:          Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    user_id:     Mapped[int] = mapped_column(BigInteger, index=True)
    source_type: Mapped[str] = mapped_column(String(32))
    type:        Mapped[str] = mapped_column(String(32), default=ChannelKind.SENDER.value)
    identifier:  Mapped[str] = mapped_column(String(320))
    name:        Mapped[str] = mapped_column(String(255))
    calendar_id: Mapped[str] = mapped_column(String(255), default="primary")
    enabled:     Mapped[bool] = mapped_column(default=True)
    total_message_count:     Mapped[int] = mapped_column(default=0)
    last_message_at:         Mapped[datetime | None] = mapped_column(UTCDateTime)
    initial_backfill_status: Mapped[str | None] = mapped_column(String(32))
    initial_backfill_at:     Mapped[datetime | None] = mapped_column(UTCDateTime)
    created_at:  Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now())


# ──────────────────────────────────────────────────────────────────────
# Items: reminders and calendar events share one column layout
# ──────────────────────────────────────────────────────────────────────
class _ItemColumns:
    id:              Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    user_id:         Mapped[int] = mapped_column(BigInteger, index=True)
    google_event_id: Mapped[str | None] = mapped_column(String(255), index=True)
    calendar_id:     Mapped[str] = mapped_column(String(255), default="primary")
    title:           Mapped[str] = mapped_column(Text)
    description:     Mapped[str | None] = mapped_column(Text)
    location:        Mapped[str | None] = mapped_column(Text)
    status:          Mapped[str] = mapped_column(String(16), default="pending")
    action_type:     Mapped[str] = mapped_column(String(16), default=ActionType.CREATE.value)
    original_message_id: Mapped[int | None] = mapped_column(BigInteger)
    llm_reasoning:   Mapped[str | None] = mapped_column(Text)
    llm_confidence:  Mapped[float] = mapped_column(Float, default=0.0)
    quality_flags:   Mapped[list[str]] = mapped_column(JSON, default=list)
    source:          Mapped[str | None] = mapped_column(String(32))
    due_notification_sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    created_at:      Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now())
    updated_at:      Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now())


class Reminder(_ItemColumns, Base):
    __tablename__ = "reminders"
    __table_args__ = (
        CheckConstraint(_in("status", ReminderStatus), name="ck_reminders_status"),
        CheckConstraint(_in("action_type", ActionType), name="ck_reminders_action_type"),
        CheckConstraint(_in("priority", Priority), name="ck_reminders_priority"),
        Index("ix_reminders_channel_status", "channel_id", "status"),
        Index(
            "ix_reminders_due_notification_queue",
            "status", "due_notification_sent_at", "reminder_time", "due_date",
        ),
    )

    channel_id:    Mapped[int] = mapped_column(ForeignKey("channels.id", ondelete="CASCADE"))
    due_date:      Mapped[datetime | None] = mapped_column(UTCDateTime)
    reminder_time: Mapped[datetime | None] = mapped_column(UTCDateTime)
    priority:      Mapped[str] = mapped_column(String(16), default=Priority.NORMAL.value)


class CalendarEvent(_ItemColumns, Base):
    __tablename__ = "calendar_events"
    __table_args__ = (
        CheckConstraint(_in("status", EventStatus), name="ck_calendar_events_status"),
        CheckConstraint(_in("action_type", ActionType), name="ck_calendar_events_action_type"),
        Index("ix_calendar_events_channel_status", "channel_id", "status"),
        Index(
            "ix_calendar_events_due_notification_queue",
            "status", "due_notification_sent_at", "start_time",
        ),
    )

    channel_id: Mapped[int] = mapped_column(ForeignKey("channels.id", ondelete="CASCADE"))
    start_time: Mapped[datetime | None] = mapped_column(UTCDateTime)
    end_time:   Mapped[datetime | None] = mapped_column(UTCDateTime)

    # eager: sessions are closed before callers read the event
    attendees: Mapped[list["EventAttendee"]] = relationship(
        back_populates="event",
        lazy="selectin",
        order_by="EventAttendee.id",
        passive_deletes=True,
    )


class EventAttendee(Base):
    __tablename__ = "event_attendees"

    id:           Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    event_id:     Mapped[int] = mapped_column(
        ForeignKey("calendar_events.id", ondelete="CASCADE"), index=True
    )
    email:        Mapped[str] = mapped_column(String(320))
    display_name: Mapped[str | None] = mapped_column(String(255))
    optional:     Mapped[bool] = mapped_column(default=False)
    created_at:   Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now())

    event: Mapped["CalendarEvent"] = relationship(back_populates="attendees")


# ──────────────────────────────────────────────────────────────────────
# Message history
# ──────────────────────────────────────────────────────────────────────
class MessageHistory(Base):
    __tablename__ = "message_history"
    __table_args__ = (
        CheckConstraint(_in("source_type", SourceType), name="ck_message_history_source_type"),
        Index("ix_message_history_channel_timestamp", "channel_id", "timestamp"),
    )

    id:           Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    user_id:      Mapped[int] = mapped_column(BigInteger, index=True)
    channel_id:   Mapped[int] = mapped_column(ForeignKey("channels.id", ondelete="CASCADE"))
    source_type:  Mapped[str] = mapped_column(String(32))
    sender_id:    Mapped[str] = mapped_column(String(320))
    sender_name:  Mapped[str | None] = mapped_column(String(255))
    message_text: Mapped[str] = mapped_column(Text)
    subject:      Mapped[str | None] = mapped_column(Text)
    timestamp:    Mapped[datetime] = mapped_column(UTCDateTime)
    created_at:   Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now())


# ──────────────────────────────────────────────────────────────────────
# Per-user caches and settings
# ──────────────────────────────────────────────────────────────────────
class TopContact(Base):
    __tablename__ = "top_contacts"
    __table_args__ = (
        UniqueConstraint("user_id", "source_type", "identifier", name="uq_top_contacts_user_source_identifier"),
        CheckConstraint(_in("source_type", SourceType), name="ck_top_contacts_source_type"),
    )

    id:            Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    user_id:       Mapped[int] = mapped_column(BigInteger, index=True)
    source_type:   Mapped[str] = mapped_column(String(32))
    identifier:    Mapped[str] = mapped_column(String(320))
    name:          Mapped[str | None] = mapped_column(String(255))
    message_count: Mapped[int] = mapped_column(default=0)
    refreshed_at:  Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now())


class UserSettings(Base):
    __tablename__ = "user_settings"

    user_id:                Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    calendar_sync_enabled:  Mapped[bool] = mapped_column(default=False)
    selected_calendar_id:   Mapped[str | None] = mapped_column(String(255))
    selected_calendar_name: Mapped[str | None] = mapped_column(String(255))
    sms_notifications_enabled: Mapped[bool] = mapped_column(default=False)
    notify_phone:           Mapped[str | None] = mapped_column(String(32))
    timezone:               Mapped[str] = mapped_column(String(64), default="UTC")
    created_at:             Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now())
    updated_at:             Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now())
