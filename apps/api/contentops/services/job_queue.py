from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

from contentops.models.enums import JobKind

logger = logging.getLogger(__name__)


class JobQueue(Protocol):
    """At-least-once work dispatch. No ordering between distinct jobs."""

    def enqueue(self, kind: JobKind, payload: Dict[str, Any]) -> str:
        ...


def _task_for(kind: JobKind):
    # imported lazily: worker tasks import the services that import this module
    from contentops.worker import tasks as worker_tasks

    job_kind_to_task = {
        JobKind.GENERATE_OUTPUT: worker_tasks.generate_output,
        JobKind.GENERATE_SCRIPT: worker_tasks.generate_script,
        JobKind.RENDER_MEDIA: worker_tasks.render_media,
        JobKind.COMPLETE_RENDERED_VIDEO: worker_tasks.complete_rendered_video,
    }
    task = job_kind_to_task.get(JobKind(kind))
    if not task:
        raise ValueError(f"Unknown job kind: {kind}")
    return task


class CeleryJobQueue:
    """
    Dispatch using task objects (.apply_async) so ENV=test eager mode works.
    Returns the celery task id.
    """

    def enqueue(self, kind: JobKind, payload: Dict[str, Any]) -> str:
        task = _task_for(kind)
        async_result = task.apply_async(kwargs=payload or {})
        logger.info("Enqueued job kind=%s task_id=%s payload=%s", JobKind(kind).value, async_result.id, payload)
        return async_result.id


def output_job_payload(output) -> dict[str, Any]:
    """Payload shared by every per-output job."""
    article_id = None
    language = None
    if output.submission is not None:
        article_id = output.submission.article_id
        language = output.submission.language
    return {
        "output_id": output.id,
        "submission_id": output.submission_id,
        "article_id": article_id,
        "language": language,
        "organization_id": output.organization_id,
    }
