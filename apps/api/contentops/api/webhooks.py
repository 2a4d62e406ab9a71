import json
import logging

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from contentops.api.deps import get_caption_editor, get_job_queue, get_settings
from contentops.core.config import Settings
from contentops.core.errors import BadRequestError
from contentops.db.session import get_db
from contentops.services.job_queue import JobQueue
from contentops.services.webhooks import (
    AvatarVideoWebhookReconciler,
    CaptionEditorWebhookReconciler,
    verify_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _parse_body(raw: bytes) -> dict:
    try:
        body = json.loads(raw or b"{}")
    except ValueError:
        raise BadRequestError("Webhook body is not valid JSON")
    if not isinstance(body, dict):
        raise BadRequestError("Webhook body must be a JSON object")
    return body


@router.post("/avatar-video")
async def avatar_video_webhook(
    request: Request,
    signature: str | None = Header(default=None),
    db: Session = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
    caption_editor=Depends(get_caption_editor),
    cfg: Settings = Depends(get_settings),
):
    raw = await request.body()
    verify_signature(raw, signature, cfg.avatar_video_webhook_secret)

    try:
        body = _parse_body(raw)
    except BadRequestError as e:
        # the provider retries non-2xx responses; a malformed event never gets better
        logger.warning("Avatar video webhook ignored: %s", e)
        return {"success": True}
    event_type = body.get("event_type")
    event_data = body.get("event_data")
    if not isinstance(event_data, dict):
        if event_data is not None:
            logger.warning("Avatar video webhook event_data is not an object: %r", event_data)
        event_data = {}
    logger.info("Avatar video webhook event_type=%s video_id=%s", event_type, event_data.get("video_id"))

    AvatarVideoWebhookReconciler(db, queue, caption_editor, cfg).handle(event_type, event_data)
    return {"success": True}


@router.post("/caption-editor")
async def caption_editor_webhook(
    request: Request,
    signature: str | None = Header(default=None),
    db: Session = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
    cfg: Settings = Depends(get_settings),
):
    raw = await request.body()
    if cfg.caption_editor_webhook_secret:
        verify_signature(raw, signature, cfg.caption_editor_webhook_secret)

    body = _parse_body(raw)
    logger.info("Caption editor webhook project=%s status=%s", body.get("projectId") or body.get("id"), body.get("status"))

    CaptionEditorWebhookReconciler(db, queue).handle(body)
    return {"success": True}
