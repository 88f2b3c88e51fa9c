"""Store exceptions and the result type for guarded writes.

Lookups signal absence by returning ``None``; only referential failures are
raised. Guarded updates report their outcome through :class:`UpdateResult`
instead of raising.
"""

from __future__ import annotations

from enum import Enum


class StoreError(Exception):
    """Base class for errors raised by the lifecycle store."""


class ReferentialViolation(StoreError):
    """A write referenced a row that does not exist.

    Not retryable without operator intervention.
    """


class ChannelNotFound(ReferentialViolation):
    def __init__(self, channel_id: int, user_id: int | None = None) -> None:
        if user_id is None:
            msg = f"channel {channel_id} does not exist"
        else:
            msg = f"channel {channel_id} does not exist for user {user_id}"
        super().__init__(msg)
        self.channel_id = channel_id
        self.user_id = user_id


class UpdateResult(str, Enum):
    UPDATED = "updated"
    NOT_FOUND = "not_found"
    WRONG_STATUS = "wrong_status"

    def __bool__(self) -> bool:
        return self is UpdateResult.UPDATED
