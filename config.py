import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    # --- Database ---
    DATABASE_URL = os.environ.get("DATABASE_URL")
    DATABASE_PUBLIC_URL = os.environ.get("DATABASE_PUBLIC_URL")
    SQL_ECHO = os.environ.get("SQL_ECHO", "").lower() == "true"

    # --- Redis ---
    REDIS_URL = os.environ.get("REDIS_URL")

    # --- Telnyx (SMS) ---
    TELNYX_API_KEY = os.environ.get("TELNYX_API_KEY")
    TELNYX_FROM_NUMBER = os.environ.get("TELNYX_FROM_NUMBER")

    # --- Due-notification poller ---
    DUE_POLL_INTERVAL = float(os.environ.get("DUE_POLL_INTERVAL", "60"))
    DUE_BATCH_SIZE = int(os.environ.get("DUE_BATCH_SIZE", "50"))

    # --- Message history (classifier context window) ---
    HISTORY_FETCH_MULTIPLIER = int(os.environ.get("HISTORY_FETCH_MULTIPLIER", "5"))
    HISTORY_FETCH_CEILING = int(os.environ.get("HISTORY_FETCH_CEILING", "500"))
    HISTORY_KEEP_COUNT = int(os.environ.get("HISTORY_KEEP_COUNT", "200"))

    # --- Calendar / timezone defaults ---
    DEFAULT_CALENDAR_ID = os.environ.get("DEFAULT_CALENDAR_ID", "primary")
    DEFAULT_TIMEZONE = os.environ.get("DEFAULT_TIMEZONE", "UTC")


settings = Settings()
