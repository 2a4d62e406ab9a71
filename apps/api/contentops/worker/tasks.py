import logging
from functools import lru_cache

from sqlalchemy.orm import Session

from contentops.core.config import settings
from contentops.core.logging import setup_logging
from contentops.db.session import SessionLocal
from contentops.services import sweeps
from contentops.services.backends.media import build_backends
from contentops.services.job_queue import CeleryJobQueue
from contentops.worker import handlers
from contentops.worker.celery_app import celery_app

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# provider ids can reach us before our own write lands; retry the lookup a few times
COMPLETE_MAX_RETRIES = 5
COMPLETE_RETRY_DELAY_SEC = 30


@lru_cache(maxsize=1)
def get_backends():
    return build_backends(settings)


@celery_app.task(name="media.generate_output")
def generate_output(output_id: int, **_: object) -> dict:
    db: Session = SessionLocal()
    try:
        status = handlers.run_generate_output(db, get_backends(), output_id)
        return {"ok": True, "output_id": output_id, "status": status}
    finally:
        db.close()


@celery_app.task(name="media.generate_script")
def generate_script(output_id: int, **_: object) -> dict:
    db: Session = SessionLocal()
    try:
        status = handlers.run_generate_script(db, get_backends(), output_id)
        return {"ok": True, "output_id": output_id, "status": status}
    finally:
        db.close()


@celery_app.task(name="media.render_media")
def render_media(output_id: int, **_: object) -> dict:
    db: Session = SessionLocal()
    try:
        status = handlers.run_render_media(db, get_backends(), output_id)
        return {"ok": True, "output_id": output_id, "status": status}
    finally:
        db.close()


@celery_app.task(name="media.complete_rendered_video", bind=True, max_retries=COMPLETE_MAX_RETRIES)
def complete_rendered_video(
    self,
    asset_url: str | None = None,
    provider_id: str | None = None,
    followup_id: str | None = None,
    duration: float | None = None,
) -> dict:
    db: Session = SessionLocal()
    try:
        status = handlers.run_complete_rendered_video(
            db, asset_url=asset_url, provider_id=provider_id, followup_id=followup_id, duration=duration
        )
    finally:
        db.close()

    if status is None:
        if self.request.retries >= COMPLETE_MAX_RETRIES:
            logger.warning(
                "complete_rendered_video: no output for provider_id=%s followup_id=%s, giving up",
                provider_id, followup_id,
            )
            return {"ok": False, "provider_id": provider_id, "followup_id": followup_id}
        raise self.retry(countdown=COMPLETE_RETRY_DELAY_SEC * (self.request.retries + 1))

    return {"ok": True, "provider_id": provider_id, "followup_id": followup_id, "status": status}


@celery_app.task(name="sweeps.fail_stuck_outputs")
def fail_stuck_outputs() -> dict:
    db: Session = SessionLocal()
    try:
        failed = sweeps.fail_stuck_outputs(db, settings.stuck_output_minutes)
        return {"ok": True, "failed": failed}
    finally:
        db.close()


@celery_app.task(name="sweeps.redispatch_pending_outputs")
def redispatch_pending_outputs() -> dict:
    db: Session = SessionLocal()
    try:
        sent = sweeps.redispatch_pending_outputs(db, CeleryJobQueue(), settings.pending_redispatch_minutes)
        return {"ok": True, "redispatched": sent}
    finally:
        db.close()
