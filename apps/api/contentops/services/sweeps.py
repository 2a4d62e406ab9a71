"""Periodic reconciliation run from Celery beat."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from contentops.core.errors import InvalidStateError
from contentops.models.enums import OutputKind, OutputStatus, first_stage_job
from contentops.models.output import Output
from contentops.services import aggregation, lifecycle
from contentops.services.job_queue import JobQueue, output_job_payload
from contentops.services.outputs import get_payload

logger = logging.getLogger(__name__)


def _as_aware(dt: datetime | None) -> datetime | None:
    # sqlite returns naive datetimes
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def timeout_message(output: Output, minutes: int) -> str:
    stage = (get_payload(output).get("progress") or {}).get("stage")
    if output.followup_id or stage == "caption_editing":
        return f"Caption editing timed out after {minutes} minutes"
    if output.provider_id:
        if output.kind in (OutputKind.VIDEO.value, OutputKind.STANDALONE_VIDEO.value):
            return f"Avatar video rendering timed out after {minutes} minutes"
        return f"Media rendering timed out after {minutes} minutes"
    if stage == "script":
        return f"Script generation timed out after {minutes} minutes"
    return f"{output.kind.replace('_', ' ').capitalize()} generation timed out after {minutes} minutes"


def fail_stuck_outputs(db: Session, older_than_minutes: int, now: datetime | None = None) -> list[int]:
    """Fail outputs that have sat in PROCESSING too long. Returns failed output ids."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=older_than_minutes)

    rows = (
        db.query(Output)
        .filter(Output.status == OutputStatus.PROCESSING.value)
        .order_by(Output.id.asc())
        .all()
    )
    stuck = [o for o in rows if o.updated_at is not None and _as_aware(o.updated_at) < cutoff]

    failed: list[int] = []
    submissions: set[int] = set()
    for output in stuck:
        try:
            lifecycle.transition(
                db, output, OutputStatus.FAILED, error=timeout_message(output, older_than_minutes)
            )
        except InvalidStateError:
            # finished between the query and the update
            continue
        except Exception:
            db.rollback()
            logger.exception("Failed to time out output %s", output.id)
            continue
        failed.append(output.id)
        if output.submission_id is not None:
            submissions.add(output.submission_id)

    for submission_id in sorted(submissions):
        try:
            aggregation.recompute(db, submission_id)
        except Exception:
            db.rollback()
            logger.exception("Failed to recompute submission %s after timeout sweep", submission_id)

    if failed:
        logger.warning("Timed out %s stuck output(s): %s", len(failed), failed)
    return failed


def redispatch_pending_outputs(
    db: Session, queue: JobQueue, older_than_minutes: int, now: datetime | None = None
) -> list[int]:
    """Re-enqueue first-stage jobs for outputs whose job never started."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=older_than_minutes)

    rows = (
        db.query(Output)
        .filter(Output.status == OutputStatus.PENDING.value)
        .order_by(Output.id.asc())
        .all()
    )

    sent: list[int] = []
    for output in rows:
        if output.created_at is None or _as_aware(output.created_at) >= cutoff:
            continue
        try:
            queue.enqueue(first_stage_job(OutputKind(output.kind)), output_job_payload(output))
        except Exception:
            logger.exception("Redispatch failed for output %s", output.id)
            continue
        sent.append(output.id)

    if sent:
        logger.info("Redispatched %s pending output(s): %s", len(sent), sent)
    return sent
