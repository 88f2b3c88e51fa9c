"""Per-user settings as seen by callers, and the shape of a partial update."""

from __future__ import annotations

from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, field_validator


class UserSettingsView(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: int
    calendar_sync_enabled: bool = False
    selected_calendar_id: Optional[str] = None
    selected_calendar_name: Optional[str] = None
    sms_notifications_enabled: bool = False
    notify_phone: Optional[str] = None
    timezone: str = "UTC"

    @property
    def can_receive_sms(self) -> bool:
        return self.sms_notifications_enabled and bool(self.notify_phone)


class UserSettingsEdit(BaseModel):
    model_config = ConfigDict(extra="forbid")

    calendar_sync_enabled: Optional[bool] = None
    selected_calendar_id: Optional[str] = None
    selected_calendar_name: Optional[str] = None
    sms_notifications_enabled: Optional[bool] = None
    notify_phone: Optional[str] = None
    timezone: Optional[str] = None

    @field_validator("timezone")
    def _known_zone(cls, v):  # noqa: N805
        if v is None:
            raise ValueError("timezone cannot be cleared")
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {v!r}") from exc
        return v

    @field_validator("calendar_sync_enabled", "sms_notifications_enabled")
    def _no_null_flags(cls, v):  # noqa: N805
        if v is None:
            raise ValueError("flag cannot be cleared")
        return v
