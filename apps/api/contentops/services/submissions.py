"""
Submission orchestration: fan-out of per-language, per-kind outputs and the
human-driven steps after the script review gate.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.orm import Session

from contentops.core.errors import EnqueueFailedError, InvalidStateError, NotFoundError, ValidationFailedError
from contentops.models.enums import (
    SCRIPT_FIRST_KINDS,
    TERMINAL_OUTPUT_STATUSES,
    JobKind,
    Language,
    OutputKind,
    OutputStatus,
    SubmissionStatus,
    first_stage_job,
)
from contentops.models.article import Article
from contentops.models.output import Output
from contentops.models.submission import Submission
from contentops.services import aggregation, lifecycle
from contentops.services.articles import get_article_or_404
from contentops.services.customization import resolve_customization
from contentops.services.job_queue import JobQueue, output_job_payload
from contentops.services.outputs import (
    create_output,
    dump_json,
    get_customization,
    list_submission_outputs,
    output_to_dict,
    update_output,
)

logger = logging.getLogger(__name__)

# submission flag -> output kind, in creation order
FLAG_KINDS: list[tuple[str, OutputKind]] = [
    ("generate_audio", OutputKind.AUDIO),
    ("generate_podcast", OutputKind.PODCAST),
    ("generate_video", OutputKind.VIDEO),
    ("generate_quiz", OutputKind.QUIZ),
    ("generate_interactive_podcast", OutputKind.INTERACTIVE_PODCAST),
]


def _normalize_languages(languages: Iterable[str] | None) -> list[Language]:
    if not languages:
        return [Language.ENGLISH]
    out: list[Language] = []
    for raw in languages:
        try:
            lang = Language(str(raw).upper())
        except ValueError:
            raise ValidationFailedError(f"Unsupported language: {raw}")
        if lang not in out:
            out.append(lang)
    return out


def _enqueue_batch(queue: JobQueue, jobs: list[tuple[JobKind, dict[str, Any]]]) -> None:
    """
    Enqueue every job even if some fail. Outputs whose job never reached the
    queue stay PENDING and are picked up by the pending-dispatch sweep.
    """
    first_err: Exception | None = None
    for kind, payload in jobs:
        try:
            queue.enqueue(kind, payload)
        except Exception as e:
            logger.exception("Enqueue failed kind=%s output_id=%s", kind.value, payload.get("output_id"))
            if first_err is None:
                first_err = e
    if first_err is not None:
        raise EnqueueFailedError(f"Failed to enqueue generation jobs: {first_err}") from first_err


def create_submission(
    db: Session,
    queue: JobQueue,
    *,
    article_id: int,
    organization_id: str,
    languages: Iterable[str] | None = None,
    flags: dict[str, bool] | None = None,
) -> list[Submission]:
    get_article_or_404(db, article_id, organization_id)
    langs = _normalize_languages(languages)
    flags = flags or {}
    unknown = set(flags) - {f for f, _ in FLAG_KINDS}
    if unknown:
        raise ValidationFailedError(f"Unknown generation flags: {sorted(unknown)}")

    submissions: list[Submission] = []
    jobs: list[tuple[JobKind, dict[str, Any]]] = []

    for lang in langs:
        enabled = {f: bool(flags.get(f, True)) for f, _ in FLAG_KINDS}
        sub = Submission(
            article_id=article_id,
            language=lang.value,
            status=SubmissionStatus.PENDING.value,
            **enabled,
        )
        db.add(sub)
        db.flush()

        for flag, kind in FLAG_KINDS:
            if not enabled[flag]:
                continue
            output = create_output(db, submission_id=sub.id, organization_id=organization_id, kind=kind)
            payload = output_job_payload(output)
            payload["article_id"] = article_id
            payload["language"] = lang.value
            jobs.append((first_stage_job(kind), payload))

        submissions.append(sub)

    # rows must be visible to workers before any job can run
    db.commit()

    for sub in submissions:
        # zero enabled kinds aggregates to COMPLETED right away
        if not any(p["submission_id"] == sub.id for _, p in jobs):
            aggregation.recompute(db, sub.id)
            continue
        sub.status = SubmissionStatus.PROCESSING.value
    db.commit()

    logger.info(
        "Created %s submission(s) for article_id=%s languages=%s jobs=%s",
        len(submissions), article_id, [l.value for l in langs], len(jobs),
    )

    _enqueue_batch(queue, jobs)

    for sub in submissions:
        db.refresh(sub)
    return submissions


def advance_script_ready(
    db: Session,
    output_id: int,
    *,
    title: str | None,
    script: str,
    payload: dict[str, Any] | None = None,
) -> Output:
    output = lifecycle.get_output_or_404(db, output_id)
    if OutputKind(output.kind) not in SCRIPT_FIRST_KINDS:
        raise InvalidStateError(f"Output kind {output.kind} has no script review stage")
    fields: dict[str, Any] = {"script": script, "error": None}
    if title:
        fields["title"] = title
    if payload is not None:
        fields["payload_json"] = dump_json(payload)
    output = lifecycle.transition(db, output, OutputStatus.SCRIPT_READY, **fields)
    aggregation.recompute(db, output.submission_id)
    return output


def update_script(
    db: Session,
    output_id: int,
    organization_id: str,
    *,
    title: str | None = None,
    script: str | None = None,
    payload: dict[str, Any] | None = None,
) -> Output:
    """Human edit of a script under review. Never changes status."""
    output = lifecycle.get_output_or_404(db, output_id, organization_id)
    if output.status != OutputStatus.SCRIPT_READY.value:
        raise InvalidStateError(f"Script can only be edited in SCRIPT_READY (status={output.status})")
    fields: dict[str, Any] = {}
    if title is not None:
        fields["title"] = title
    if script is not None:
        fields["script"] = script
    if payload is not None:
        fields["payload_json"] = dump_json(payload)
    if not fields:
        return output
    return update_output(db, output, **fields)


def trigger_media_generation(
    db: Session,
    queue: JobQueue,
    output_id: int,
    organization_id: str,
    customization: dict[str, Any] | None = None,
) -> Output:
    output = lifecycle.get_output_or_404(db, output_id, organization_id)
    lifecycle.ensure_allowed(output, OutputStatus.PROCESSING)
    if output.status != OutputStatus.SCRIPT_READY.value:
        raise InvalidStateError(f"Media can only be generated from SCRIPT_READY (status={output.status})")
    if not output.script:
        raise InvalidStateError(f"Output {output.id} has no script")

    resolved = resolve_customization(db, output.kind, organization_id, customization)

    output = lifecycle.transition(
        db,
        output,
        OutputStatus.PROCESSING,
        customization_json=dump_json(resolved),
        error=None,
    )
    aggregation.recompute(db, output.submission_id)

    _enqueue_batch(queue, [(JobKind.RENDER_MEDIA, output_job_payload(output))])
    logger.info("Triggered media generation output_id=%s kind=%s", output.id, output.kind)
    return output


def regenerate_media(
    db: Session,
    queue: JobQueue,
    output_id: int,
    organization_id: str,
    customization: dict[str, Any] | None = None,
) -> Output:
    output = lifecycle.get_output_or_404(db, output_id, organization_id)
    if OutputStatus(output.status) not in TERMINAL_OUTPUT_STATUSES:
        raise InvalidStateError(f"Only COMPLETED or FAILED outputs can be regenerated (status={output.status})")

    kind = OutputKind(output.kind)
    if customization is not None:
        resolved = resolve_customization(db, kind, organization_id, customization)
    else:
        resolved = get_customization(output)

    if kind in SCRIPT_FIRST_KINDS and not output.script:
        job = JobKind.GENERATE_SCRIPT
    elif kind in (OutputKind.AUDIO, OutputKind.QUIZ):
        job = JobKind.GENERATE_OUTPUT
    else:
        job = JobKind.RENDER_MEDIA

    output = lifecycle.transition(
        db,
        output,
        OutputStatus.PROCESSING,
        customization_json=dump_json(resolved),
        error=None,
        provider_id=None,
        followup_id=None,
        is_approved=False,
        approved_at=None,
    )
    aggregation.recompute(db, output.submission_id)

    _enqueue_batch(queue, [(job, output_job_payload(output))])
    logger.info("Regenerating output_id=%s kind=%s job=%s", output.id, output.kind, job.value)
    return output


def create_standalone_video(
    db: Session,
    queue: JobQueue,
    *,
    organization_id: str,
    title: str,
    script: str,
    customization: dict[str, Any] | None,
) -> Output:
    if not script or not script.strip():
        raise ValidationFailedError("script is required")
    resolved = resolve_customization(db, OutputKind.STANDALONE_VIDEO, organization_id, customization)
    output = create_output(
        db,
        submission_id=None,
        organization_id=organization_id,
        kind=OutputKind.STANDALONE_VIDEO,
        status=OutputStatus.PROCESSING,
        title=title,
        script=script,
        customization_json=dump_json(resolved),
    )
    db.commit()
    db.refresh(output)

    _enqueue_batch(queue, [(JobKind.RENDER_MEDIA, output_job_payload(output))])
    return output


def get_submission(db: Session, submission_id: int, organization_id: str) -> Submission:
    sub = (
        db.query(Submission)
        .join(Article, Article.id == Submission.article_id)
        .filter(Submission.id == submission_id, Article.organization_id == organization_id)
        .first()
    )
    if not sub:
        raise NotFoundError(f"Submission not found: {submission_id}")
    return sub


def list_submissions(
    db: Session,
    organization_id: str,
    *,
    article_id: int | None = None,
    status: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[int, list[Submission], dict[str, int]]:
    """Returns (total, page, counts) where counts summarise the whole filtered set."""

    query = (
        db.query(Submission)
        .join(Article, Article.id == Submission.article_id)
        .filter(Article.organization_id == organization_id)
    )
    if article_id is not None:
        query = query.filter(Submission.article_id == article_id)
    if status:
        query = query.filter(Submission.status == status)

    all_statuses = [s for (s,) in query.with_entities(Submission.status).all()]
    counts = {
        "completed": sum(1 for s in all_statuses if s == SubmissionStatus.COMPLETED.value),
        "processing": sum(
            1 for s in all_statuses
            if s in (SubmissionStatus.PROCESSING.value, SubmissionStatus.PARTIAL_COMPLETE.value)
        ),
        "failed": sum(1 for s in all_statuses if s == SubmissionStatus.FAILED.value),
    }

    rows = query.order_by(Submission.created_at.desc(), Submission.id.desc()).offset(offset).limit(limit).all()
    return len(all_statuses), rows, counts


def submission_to_dict(db: Session, sub: Submission, with_outputs: bool = True) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": sub.id,
        "article_id": sub.article_id,
        "language": sub.language,
        "status": sub.status,
        "created_at": sub.created_at.isoformat() if sub.created_at else None,
        "updated_at": sub.updated_at.isoformat() if sub.updated_at else None,
    }
    for flag, _ in FLAG_KINDS:
        d[flag] = getattr(sub, flag)
    if with_outputs:
        d["outputs"] = [output_to_dict(o) for o in list_submission_outputs(db, sub.id)]
    return d
