"""
Job bodies, kept free of Celery so they can be exercised directly.

Every handler is safe to run more than once for the same output: a job whose
output has already moved past the stage it handles is a no-op.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from contentops.core.errors import InvalidStateError
from contentops.models.enums import Language, OutputStatus
from contentops.models.output import Output
from contentops.services import aggregation, lifecycle, webhooks
from contentops.services.articles import article_content
from contentops.services.backends.base import ArticleContent, GenerationResult
from contentops.services.backends.media import backend_for
from contentops.services.outputs import dump_json, get_customization, get_payload, merge_payload, update_output
from contentops.services.submissions import advance_script_ready

logger = logging.getLogger(__name__)


def _load(db: Session, output_id: int) -> Optional[Output]:
    output = db.query(Output).filter(Output.id == output_id).first()
    if not output:
        logger.warning("Output %s not found; dropping job", output_id)
    return output


def _start(db: Session, output: Output) -> bool:
    """PENDING -> PROCESSING. True when the job should go ahead."""
    if output.status == OutputStatus.PROCESSING.value:
        return True
    if output.status != OutputStatus.PENDING.value:
        logger.info("Output %s already %s; skipping", output.id, output.status)
        return False
    try:
        lifecycle.transition(db, output, OutputStatus.PROCESSING)
    except InvalidStateError as e:
        logger.info("Output %s picked up elsewhere: %s", output.id, e)
        return False
    aggregation.recompute(db, output.submission_id)
    return True


def _start_script(db: Session, output: Output) -> bool:
    """
    Like _start, but a PROCESSING output only qualifies while it has nothing
    past the script stage: no script, no render and no editing project.
    """
    if output.status == OutputStatus.PROCESSING.value and (
        output.script or output.provider_id or output.followup_id
    ):
        logger.info("generate_script: output %s is past the script stage; skipping", output.id)
        return False
    return _start(db, output)


def _source(output: Output) -> tuple[ArticleContent, str]:
    if output.submission is not None:
        return article_content(output.submission.article), output.submission.language
    # standalone videos carry their own script and title
    language = get_customization(output).get("language") or Language.ENGLISH.value
    return ArticleContent(title=output.title or "", content=output.script or ""), language


def _apply_result(db: Session, output: Output, result: GenerationResult) -> None:
    if result.pending:
        update_output(db, output, provider_id=result.provider_id)
        merge_payload(db, output, {"progress": {"stage": "rendering"}})
        logger.info("Output %s rendering provider_id=%s", output.id, result.provider_id)
        return

    payload = get_payload(output)
    payload.update(result.payload or {})
    payload["progress"] = {"stage": "completed"}
    try:
        lifecycle.transition(
            db,
            output,
            OutputStatus.COMPLETED,
            asset_url=result.asset_url,
            duration=result.duration,
            payload_json=dump_json(payload),
        )
    except InvalidStateError as e:
        logger.info("Output %s result discarded: %s", output.id, e)
        return
    aggregation.recompute(db, output.submission_id)
    logger.info("Output %s completed (%s)", output.id, output.kind)


def run_generate_output(db: Session, backends: Dict[Any, Any], output_id: int) -> Optional[str]:
    """Single-stage kinds (AUDIO, QUIZ)."""
    output = _load(db, output_id)
    if output is None or not _start(db, output):
        return None

    merge_payload(db, output, {"progress": {"stage": "generate"}})
    try:
        article, language = _source(output)
        result = backend_for(backends, output.kind).start_full_generation(
            article, language, output.script, get_customization(output)
        )
    except Exception as e:
        logger.exception("Generation failed for output %s", output.id)
        webhooks.fail_output(db, output, str(e))
        return OutputStatus.FAILED.value

    _apply_result(db, output, result)
    return output.status


def run_generate_script(db: Session, backends: Dict[Any, Any], output_id: int) -> Optional[str]:
    """First stage of script-first kinds: stops at SCRIPT_READY for review."""
    output = _load(db, output_id)
    if output is None or not _start_script(db, output):
        return None

    merge_payload(db, output, {"progress": {"stage": "script"}})
    try:
        article, language = _source(output)
        result = backend_for(backends, output.kind).start_script_generation(article, language)
    except Exception as e:
        logger.exception("Script generation failed for output %s", output.id)
        webhooks.fail_output(db, output, str(e))
        return OutputStatus.FAILED.value

    payload = get_payload(output)
    payload.update(result.payload or {})
    payload["progress"] = {"stage": "script_ready"}
    try:
        output = advance_script_ready(
            db, output.id, title=result.title, script=result.script, payload=payload
        )
    except InvalidStateError as e:
        logger.info("Script for output %s discarded: %s", output.id, e)
        return None
    return output.status


def run_render_media(db: Session, backends: Dict[Any, Any], output_id: int) -> Optional[str]:
    """Second stage, after the script has been reviewed and customized."""
    output = _load(db, output_id)
    if output is None:
        return None
    if output.status != OutputStatus.PROCESSING.value:
        logger.info("render_media: output %s is %s; skipping", output.id, output.status)
        return None
    if output.provider_id:
        logger.info("render_media: output %s already rendering (%s)", output.id, output.provider_id)
        return None

    merge_payload(db, output, {"progress": {"stage": "render"}})
    try:
        article, language = _source(output)
        result = backend_for(backends, output.kind).start_full_generation(
            article, language, output.script, get_customization(output)
        )
    except Exception as e:
        logger.exception("Render failed for output %s", output.id)
        webhooks.fail_output(db, output, str(e))
        return OutputStatus.FAILED.value

    _apply_result(db, output, result)
    return output.status


def run_complete_rendered_video(
    db: Session,
    *,
    asset_url: Optional[str],
    provider_id: Optional[str] = None,
    followup_id: Optional[str] = None,
    duration: Any = None,
) -> Optional[str]:
    output = webhooks.complete_rendered_video(
        db, asset_url=asset_url, provider_id=provider_id, followup_id=followup_id, duration=duration
    )
    return output.status if output is not None else None
