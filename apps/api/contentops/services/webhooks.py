"""
Reconcile asynchronous completion callbacks from rendering providers with
output records.

Avatar video render finished -> hand the raw video to the caption editor
(output stays PROCESSING, followup_id set) -> caption editor finished ->
`complete_rendered_video` job writes the final asset and completes the output.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from contentops.core.errors import BadRequestError, ConfigurationError, InvalidStateError, UnauthorizedError
from contentops.models.enums import AVATAR_VIDEO_KINDS, JobKind, OutputStatus
from contentops.models.output import Output
from contentops.services import aggregation, lifecycle
from contentops.services.job_queue import JobQueue
from contentops.services.outputs import (
    find_by_followup_id,
    find_by_provider_id,
    get_customization,
    merge_payload,
    update_output,
)

logger = logging.getLogger(__name__)

AVATAR_SUCCESS = "avatar_video.success"
AVATAR_FAIL = "avatar_video.fail"


def verify_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> None:
    """HMAC-SHA256 hex digest of the raw request body, compared in constant time."""
    if not secret:
        raise ConfigurationError("Webhook secret is not configured")
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    if not signature or not hmac.compare_digest(expected, signature.strip()):
        raise UnauthorizedError("Invalid webhook signature")


def fail_output(db: Session, output: Output, error: str) -> bool:
    """PROCESSING -> FAILED, then recompute. False if the output already moved on."""
    try:
        lifecycle.transition(db, output, OutputStatus.FAILED, error=error)
    except InvalidStateError as e:
        logger.info("Not failing output_id=%s: %s", output.id, e)
        return False
    aggregation.recompute(db, output.submission_id)
    return True


def _bumpers(customization: Dict[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for position in ("start", "end"):
        url = customization.get(f"{position}_bumper_url")
        if url:
            out.append({"position": position, "url": url, "duration": customization.get(f"{position}_bumper_duration")})
    return out


class AvatarVideoWebhookReconciler:
    def __init__(self, db: Session, queue: JobQueue, caption_editor, settings) -> None:
        self.db = db
        self.queue = queue
        self.caption_editor = caption_editor
        self.settings = settings

    def handle(self, event_type: Optional[str], event_data: Dict[str, Any]) -> None:
        if event_type == AVATAR_SUCCESS:
            self._on_success(event_data)
        elif event_type == AVATAR_FAIL:
            self._on_fail(event_data)
        else:
            logger.info("Ignoring avatar video event type=%s", event_type)

    def _enqueue_completion(self, video_id: str, url: Optional[str], duration: Any) -> None:
        self.queue.enqueue(
            JobKind.COMPLETE_RENDERED_VIDEO,
            {"provider_id": video_id, "asset_url": url, "duration": duration},
        )

    def _on_success(self, data: Dict[str, Any]) -> None:
        video_id = data.get("video_id") or data.get("id")
        url = data.get("url")
        duration = data.get("duration")
        if not video_id:
            logger.warning("Avatar video success event without video_id: %s", data)
            return

        try:
            output = find_by_provider_id(self.db, str(video_id), kinds=AVATAR_VIDEO_KINDS)
            if output is None:
                logger.info("No PROCESSING output for video_id=%s, enqueueing completion", video_id)
                self._enqueue_completion(str(video_id), url, duration)
                return

            if output.followup_id:
                # redelivered event; captions are already underway
                logger.info("Output %s already sent for caption editing (%s)", output.id, output.followup_id)
                return

            if not url:
                raise ValueError("success event has no video url")

            customization = get_customization(output)
            language = output.submission.language if output.submission is not None else "ENGLISH"
            project_id = self.caption_editor.upload_for_editing(
                video_url=url,
                webhook_url=f"{self.settings.public_base_url.rstrip('/')}/webhooks/caption-editor",
                title=output.title or f"Output {output.id}",
                language=language,
                theme_id=customization.get("caption_template_id") or self.settings.caption_editor_default_theme_id,
                magic_zooms=bool(customization.get("enable_magic_zooms", True)),
                magic_brolls=bool(customization.get("enable_magic_brolls", True)),
                magic_brolls_percentage=int(customization.get("magic_brolls_percentage", 40)),
                music_url=customization.get("background_music_url"),
                music_volume=customization.get("background_music_volume"),
                bumpers=_bumpers(customization),
            )
            update_output(self.db, output, followup_id=project_id)
            merge_payload(
                self.db,
                output,
                {"raw_video_url": url, "raw_duration": duration, "progress": {"stage": "caption_editing"}},
            )
            logger.info("Output %s sent for caption editing project_id=%s", output.id, project_id)
        except Exception:
            logger.exception("Caption hand-off failed for video_id=%s, falling back to direct completion", video_id)
            self.db.rollback()
            # a failure here propagates to the caller
            self._enqueue_completion(str(video_id), url, duration)

    def _on_fail(self, data: Dict[str, Any]) -> None:
        video_id = data.get("video_id") or data.get("id")
        msg = data.get("msg") or data.get("error") or "Avatar video rendering failed"
        output = find_by_provider_id(self.db, str(video_id), kinds=AVATAR_VIDEO_KINDS) if video_id else None
        if output is None:
            logger.warning("Avatar video failure for unknown video_id=%s: %s", video_id, msg)
            return
        fail_output(self.db, output, str(msg))


class CaptionEditorWebhookReconciler:
    def __init__(self, db: Session, queue: JobQueue) -> None:
        self.db = db
        self.queue = queue

    def handle(self, payload: Dict[str, Any]) -> None:
        project_id = payload.get("projectId") or payload.get("id")
        if not project_id:
            raise BadRequestError("Missing project id")
        project_id = str(project_id)
        status = str(payload.get("status") or "").lower()

        if status in ("completed", "success"):
            url = payload.get("directUrl") or payload.get("downloadUrl") or payload.get("videoUrl")
            if not url:
                output = find_by_followup_id(self.db, project_id)
                if output is not None:
                    fail_output(self.db, output, "Caption editing completed without a video URL")
                return
            self.queue.enqueue(
                JobKind.COMPLETE_RENDERED_VIDEO,
                {"followup_id": project_id, "asset_url": url, "duration": payload.get("duration")},
            )
        elif status in ("failed", "error"):
            output = find_by_followup_id(self.db, project_id)
            if output is None:
                logger.warning("Caption editor failure for unknown project_id=%s", project_id)
                return
            fail_output(self.db, output, f"Caption editing failed: {payload.get('error') or 'unknown error'}")
        else:
            logger.info("Caption editor project_id=%s status=%s", project_id, status or "-")


def complete_rendered_video(
    db: Session,
    *,
    asset_url: Optional[str],
    provider_id: Optional[str] = None,
    followup_id: Optional[str] = None,
    duration: Any = None,
) -> Optional[Output]:
    """
    Final step of a video render. Returns the completed output, the output
    itself when it is already past PROCESSING, or None when nothing matched
    yet (the caller may retry).
    """
    output: Optional[Output] = None
    if followup_id:
        output = find_by_followup_id(db, followup_id)
    elif provider_id:
        output = find_by_provider_id(db, provider_id, status=None, kinds=AVATAR_VIDEO_KINDS)
    if output is None:
        return None

    if output.status != OutputStatus.PROCESSING.value:
        logger.info("complete_rendered_video: output %s already %s", output.id, output.status)
        return output

    if not asset_url:
        fail_output(db, output, "Rendered video has no asset URL")
        return output

    fields: Dict[str, Any] = {"asset_url": asset_url}
    if duration is not None:
        try:
            fields["duration"] = float(duration)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric duration %r for output %s", duration, output.id)

    try:
        lifecycle.transition(db, output, OutputStatus.COMPLETED, **fields)
    except InvalidStateError as e:
        logger.info("complete_rendered_video lost race on output %s: %s", output.id, e)
        return output
    merge_payload(db, output, {"progress": {"stage": "completed"}})
    aggregation.recompute(db, output.submission_id)
    logger.info("Output %s completed asset_url=%s", output.id, asset_url)
    return output
