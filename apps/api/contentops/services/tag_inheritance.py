"""
Tag inheritance between same-article submissions of different languages.

English is canonical. When the English submission completes it pushes its
manually applied tags to every already-completed sibling; when another
language completes it pulls from a completed English sibling if one exists.
The push path also covers the case where a sibling finished first.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from contentops.models.enums import CANONICAL_LANGUAGE, OutputStatus, SubmissionStatus
from contentops.models.output import Output
from contentops.models.submission import Submission
from contentops.models.tag import OutputTag

logger = logging.getLogger(__name__)


def inherit_tags(db: Session, source_submission_id: int, target_submission_id: int) -> int:
    """
    Copy the source outputs' own tags onto the target's outputs of the same kind.
    Returns the number of tag links created. Safe to run repeatedly.
    """
    source_outputs = db.query(Output).filter(Output.submission_id == source_submission_id).all()
    target_by_kind = {
        o.kind: o
        for o in db.query(Output).filter(Output.submission_id == target_submission_id).all()
    }

    created = 0
    for src in source_outputs:
        target = target_by_kind.get(src.kind)
        if target is None:
            continue
        if target.status != OutputStatus.COMPLETED.value:
            logger.info("Skipping tag inheritance to output %s (status=%s)", target.id, target.status)
            continue

        source_tag_ids = [
            row.tag_id
            for row in db.query(OutputTag.tag_id)
            .filter(OutputTag.output_id == src.id, OutputTag.is_inherited.is_(False))
            .all()
        ]
        if not source_tag_ids:
            continue

        existing = {
            row.tag_id
            for row in db.query(OutputTag.tag_id).filter(OutputTag.output_id == target.id).all()
        }
        for tag_id in source_tag_ids:
            if tag_id in existing:
                continue
            db.add(
                OutputTag(
                    output_id=target.id,
                    tag_id=tag_id,
                    is_inherited=True,
                    source_output_id=src.id,
                )
            )
            existing.add(tag_id)
            created += 1

    db.commit()
    logger.info(
        "Inherited %s tag(s) from submission %s to submission %s",
        created,
        source_submission_id,
        target_submission_id,
    )
    return created


def on_submission_completed(db: Session, submission_id: int) -> None:
    """Never raises: a tagging problem must not undo a completed submission."""
    try:
        submission = db.query(Submission).filter(Submission.id == submission_id).first()
        if not submission:
            return

        siblings = (
            db.query(Submission)
            .filter(Submission.article_id == submission.article_id, Submission.id != submission.id)
            .order_by(Submission.id.asc())
            .all()
        )

        if submission.language == CANONICAL_LANGUAGE.value:
            targets = [
                s
                for s in siblings
                if s.language != CANONICAL_LANGUAGE.value and s.status == SubmissionStatus.COMPLETED.value
            ]
            for target in targets:
                inherit_tags(db, submission.id, target.id)
            return

        source = next(
            (
                s
                for s in siblings
                if s.language == CANONICAL_LANGUAGE.value and s.status == SubmissionStatus.COMPLETED.value
            ),
            None,
        )
        if source is None:
            logger.info(
                "No completed %s submission for article %s yet; submission %s will receive tags when it completes",
                CANONICAL_LANGUAGE.value,
                submission.article_id,
                submission.id,
            )
            return
        inherit_tags(db, source.id, submission.id)
    except Exception:
        db.rollback()
        logger.exception("Tag inheritance failed for submission %s", submission_id)
