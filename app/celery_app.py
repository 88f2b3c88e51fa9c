"""Celery application instance shared across the backend.

Start a worker with beat embedded:
    celery -A app.celery_app worker -B -Q reminder -l info --concurrency=2
"""

from celery import Celery

from config import settings

BROKER_URL = settings.REDIS_URL or "redis://localhost:6379/0"

celery_app = Celery("lifecycle_engine", broker=BROKER_URL, backend=BROKER_URL)

# Global task settings
celery_app.conf.task_acks_late = True
celery_app.conf.task_reject_on_worker_lost = True
celery_app.conf.task_default_retry_delay = 30  # seconds

celery_app.conf.task_routes = {
    "app.workers.reminder.dispatch_due": {"queue": "reminder"},
}

# Beat schedule: poll for due reminders and events
celery_app.conf.beat_schedule = {
    "dispatch-due-reminders": {
        "task": "app.workers.reminder.dispatch_due",
        "schedule": settings.DUE_POLL_INTERVAL,
    }
}

# --- Ensure tasks are registered ---
import app.workers.reminder  # noqa: E402,F401
