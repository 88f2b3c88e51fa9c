"""initial lifecycle schema: channels, items, history, contacts, settings

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261019_01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
TS = sa.DateTime(timezone=True)

SOURCE_TYPES = "('whatsapp', 'telegram', 'gmail', 'manual')"
ACTION_TYPES = "('create', 'update', 'delete')"


def _item_columns() -> list:
    return [
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "channel_id",
            PK,
            sa.ForeignKey("channels.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("google_event_id", sa.String(255), nullable=True),
        sa.Column("calendar_id", sa.String(255), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("action_type", sa.String(16), nullable=False),
        sa.Column("original_message_id", sa.BigInteger(), nullable=True),
        sa.Column("llm_reasoning", sa.Text(), nullable=True),
        sa.Column("llm_confidence", sa.Float(), nullable=False),
        sa.Column("quality_flags", sa.JSON(), nullable=False),
        sa.Column("source", sa.String(32), nullable=True),
        sa.Column("due_notification_sent_at", TS, nullable=True),
        sa.Column("created_at", TS, server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", TS, server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "channels",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("source_type", sa.String(32), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("identifier", sa.String(320), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("calendar_id", sa.String(255), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("total_message_count", sa.Integer(), nullable=False),
        sa.Column("last_message_at", TS, nullable=True),
        sa.Column("initial_backfill_status", sa.String(32), nullable=True),
        sa.Column("initial_backfill_at", TS, nullable=True),
        sa.Column("created_at", TS, server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            "user_id", "source_type", "identifier",
            name="uq_channels_user_source_identifier",
        ),
        sa.CheckConstraint(f"source_type IN {SOURCE_TYPES}", name="ck_channels_source_type"),
        sa.CheckConstraint("type IN ('sender')", name="ck_channels_type"),
        sa.CheckConstraint(
            "initial_backfill_status IS NULL OR initial_backfill_status IN "
            "('in_progress', 'completed', 'failed', 'skipped')",
            name="ck_channels_backfill_status",
        ),
    )
    op.create_index("ix_channels_user_id", "channels", ["user_id"])
    op.create_index("ix_channels_user_source", "channels", ["user_id", "source_type"])

    op.create_table(
        "reminders",
        *_item_columns(),
        sa.Column("due_date", TS, nullable=True),
        sa.Column("reminder_time", TS, nullable=True),
        sa.Column("priority", sa.String(16), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'synced', 'rejected', 'completed', 'dismissed')",
            name="ck_reminders_status",
        ),
        sa.CheckConstraint(f"action_type IN {ACTION_TYPES}", name="ck_reminders_action_type"),
        sa.CheckConstraint("priority IN ('low', 'normal', 'high')", name="ck_reminders_priority"),
    )
    op.create_index("ix_reminders_user_id", "reminders", ["user_id"])
    op.create_index("ix_reminders_google_event_id", "reminders", ["google_event_id"])
    op.create_index("ix_reminders_channel_status", "reminders", ["channel_id", "status"])
    op.create_index(
        "ix_reminders_due_notification_queue",
        "reminders",
        ["status", "due_notification_sent_at", "reminder_time", "due_date"],
    )

    op.create_table(
        "calendar_events",
        *_item_columns(),
        sa.Column("start_time", TS, nullable=True),
        sa.Column("end_time", TS, nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'synced', 'rejected', 'deleted')",
            name="ck_calendar_events_status",
        ),
        sa.CheckConstraint(
            f"action_type IN {ACTION_TYPES}", name="ck_calendar_events_action_type"
        ),
    )
    op.create_index("ix_calendar_events_user_id", "calendar_events", ["user_id"])
    op.create_index(
        "ix_calendar_events_google_event_id", "calendar_events", ["google_event_id"]
    )
    op.create_index(
        "ix_calendar_events_channel_status", "calendar_events", ["channel_id", "status"]
    )
    op.create_index(
        "ix_calendar_events_due_notification_queue",
        "calendar_events",
        ["status", "due_notification_sent_at", "start_time"],
    )

    op.create_table(
        "event_attendees",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column(
            "event_id",
            PK,
            sa.ForeignKey("calendar_events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("optional", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_event_attendees_event_id", "event_attendees", ["event_id"])

    op.create_table(
        "message_history",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "channel_id",
            PK,
            sa.ForeignKey("channels.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("source_type", sa.String(32), nullable=False),
        sa.Column("sender_id", sa.String(320), nullable=False),
        sa.Column("sender_name", sa.String(255), nullable=True),
        sa.Column("message_text", sa.Text(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=True),
        sa.Column("timestamp", TS, nullable=False),
        sa.Column("created_at", TS, server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            f"source_type IN {SOURCE_TYPES}", name="ck_message_history_source_type"
        ),
    )
    op.create_index("ix_message_history_user_id", "message_history", ["user_id"])
    op.create_index(
        "ix_message_history_channel_timestamp", "message_history", ["channel_id", "timestamp"]
    )

    op.create_table(
        "top_contacts",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("source_type", sa.String(32), nullable=False),
        sa.Column("identifier", sa.String(320), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("message_count", sa.Integer(), nullable=False),
        sa.Column("refreshed_at", TS, server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            "user_id", "source_type", "identifier",
            name="uq_top_contacts_user_source_identifier",
        ),
        sa.CheckConstraint(f"source_type IN {SOURCE_TYPES}", name="ck_top_contacts_source_type"),
    )
    op.create_index("ix_top_contacts_user_id", "top_contacts", ["user_id"])

    op.create_table(
        "user_settings",
        sa.Column("user_id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("calendar_sync_enabled", sa.Boolean(), nullable=False),
        sa.Column("selected_calendar_id", sa.String(255), nullable=True),
        sa.Column("selected_calendar_name", sa.String(255), nullable=True),
        sa.Column("sms_notifications_enabled", sa.Boolean(), nullable=False),
        sa.Column("notify_phone", sa.String(32), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=False),
        sa.Column("created_at", TS, server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", TS, server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("user_settings")
    op.drop_index("ix_top_contacts_user_id", table_name="top_contacts")
    op.drop_table("top_contacts")
    op.drop_index("ix_message_history_channel_timestamp", table_name="message_history")
    op.drop_index("ix_message_history_user_id", table_name="message_history")
    op.drop_table("message_history")
    op.drop_index("ix_event_attendees_event_id", table_name="event_attendees")
    op.drop_table("event_attendees")
    for name in (
        "ix_calendar_events_due_notification_queue",
        "ix_calendar_events_channel_status",
        "ix_calendar_events_google_event_id",
        "ix_calendar_events_user_id",
    ):
        op.drop_index(name, table_name="calendar_events")
    op.drop_table("calendar_events")
    for name in (
        "ix_reminders_due_notification_queue",
        "ix_reminders_channel_status",
        "ix_reminders_google_event_id",
        "ix_reminders_user_id",
    ):
        op.drop_index(name, table_name="reminders")
    op.drop_table("reminders")
    op.drop_index("ix_channels_user_source", table_name="channels")
    op.drop_index("ix_channels_user_id", table_name="channels")
    op.drop_table("channels")
