from __future__ import annotations

import logging
from typing import Callable, Iterable

from sqlalchemy import update
from sqlalchemy.orm import Session

from contentops.models.enums import OutputStatus, SubmissionStatus
from contentops.models.output import Output
from contentops.models.submission import Submission

logger = logging.getLogger(__name__)


def aggregate_status(statuses: Iterable[OutputStatus | str]) -> SubmissionStatus:
    """
    Submission status as a pure function of its outputs' statuses.

    Outstanding work is checked before any terminal state, so a submission is
    never reported done or failed while an output is still being produced.
    """
    s = [OutputStatus(x) for x in statuses]

    if all(x == OutputStatus.COMPLETED for x in s):
        return SubmissionStatus.COMPLETED

    if any(x in (OutputStatus.PROCESSING, OutputStatus.PENDING) for x in s):
        return SubmissionStatus.PROCESSING

    if any(x == OutputStatus.FAILED for x in s):
        if any(x in (OutputStatus.COMPLETED, OutputStatus.SCRIPT_READY) for x in s):
            return SubmissionStatus.PARTIAL_COMPLETE
        return SubmissionStatus.FAILED

    # only COMPLETED / SCRIPT_READY left: fast outputs done, slow ones awaiting review
    return SubmissionStatus.PARTIAL_COMPLETE


def recompute(
    db: Session,
    submission_id: int | None,
    on_completed: Callable[[Session, int], None] | None = None,
) -> SubmissionStatus | None:
    """
    Re-derive and persist a submission's status. Runs `on_completed` (tag
    inheritance by default) only when the status moves to COMPLETED.
    """
    if submission_id is None:
        return None

    submission = db.query(Submission).filter(Submission.id == submission_id).first()
    if not submission:
        logger.warning("recompute: submission %s not found", submission_id)
        return None

    statuses = [
        row.status
        for row in db.query(Output.status).filter(Output.submission_id == submission_id).all()
    ]
    new_status = aggregate_status(statuses)
    previous = submission.status

    # guarded on the stored status so only one concurrent caller sees the change
    res = db.execute(
        update(Submission)
        .where(Submission.id == submission_id, Submission.status != new_status.value)
        .values(status=new_status.value)
        .execution_options(synchronize_session=False)
    )
    changed = res.rowcount == 1
    db.commit()
    if previous != new_status.value or changed:
        db.refresh(submission)
    if changed:
        logger.info("Submission %s status %s -> %s", submission_id, previous, new_status.value)

    if changed and new_status == SubmissionStatus.COMPLETED:
        if on_completed is None:
            from contentops.services.tag_inheritance import on_submission_completed

            on_completed = on_submission_completed
        on_completed(db, submission_id)

    return new_status
