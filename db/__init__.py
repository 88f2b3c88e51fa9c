from .db import (
    Base,
    UTCDateTime,
    create_all,
    dispose_engine,
    get_engine,
    get_session,
    utc_now,
)  # noqa: F401
from .errors import (
    ChannelNotFound,
    ReferentialViolation,
    StoreError,
    UpdateResult,
)  # noqa: F401
