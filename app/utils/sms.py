import logging

import telnyx

from config import settings

_LOGGER = logging.getLogger(__name__)

FROM_NUM = settings.TELNYX_FROM_NUMBER
TELNYX_API_KEY = settings.TELNYX_API_KEY
if TELNYX_API_KEY:
    telnyx.api_key = TELNYX_API_KEY


def send_sms(to: str, body: str) -> None:
    if not TELNYX_API_KEY or not FROM_NUM:
        _LOGGER.info("[SMS] DEV mode: would send to %s: %s", to, body)
        return
    telnyx.Message.create(from_=FROM_NUM, to=to, text=body)
    _LOGGER.debug("SMS sent to %s", to)
