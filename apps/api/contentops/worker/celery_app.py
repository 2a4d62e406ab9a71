import os
from pathlib import Path

from celery import Celery

from contentops.core.celery_settings import is_test_env

# Load .env for BOTH API + Celery worker (worker often runs without `source .env`)
try:
    from dotenv import load_dotenv

    # apps/api/contentops/worker/celery_app.py -> parents[2] is apps/api
    env_path = Path(__file__).resolve().parents[2] / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)
except ImportError:
    pass


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v and v.strip() else default


BROKER_URL = (
    _env("CELERY_BROKER_URL")
    or _env("REDIS_URL")
    or "redis://localhost:6379/0"
)

RESULT_BACKEND = _env("CELERY_RESULT_BACKEND") or BROKER_URL

# IMPORTANT: the variable name MUST be `celery_app`
celery_app = Celery(
    "contentops",
    broker=BROKER_URL,
    backend=RESULT_BACKEND,
)

celery_app.autodiscover_tasks(["contentops.worker"])

celery_app.conf.update(
    task_track_started=True,
    result_extended=True,
    enable_utc=True,
    timezone="UTC",
    # jobs are at-least-once: ack after the handler returns
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "sweeps.fail_stuck_outputs": {
            "task": "sweeps.fail_stuck_outputs",
            "schedule": 300.0,
        },
        "sweeps.redispatch_pending_outputs": {
            "task": "sweeps.redispatch_pending_outputs",
            "schedule": 120.0,
        },
    },
)

if is_test_env():
    celery_app.conf.update(
        task_always_eager=True,
        task_eager_propagates=True,
        broker_url="memory://",
        result_backend="cache+memory://",
    )

__all__ = ["celery_app"]
