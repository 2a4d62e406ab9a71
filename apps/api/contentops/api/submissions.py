from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from contentops.api.deps import get_job_queue
from contentops.db.session import get_db
from contentops.services import submissions as orchestrator
from contentops.services.job_queue import JobQueue
from contentops.services.lifecycle import get_output_or_404
from contentops.services.outputs import approve_output, output_to_dict, unapprove_output
from contentops.services.tags import attach_tag, detach_tag, list_output_tags, output_tag_to_dict

router = APIRouter(prefix="/orgs/{organization_id}", tags=["submissions"])


class SubmissionCreateRequest(BaseModel):
    article_id: int
    languages: list[str] | None = None
    generate_audio: bool = True
    generate_podcast: bool = True
    generate_video: bool = True
    generate_quiz: bool = True
    generate_interactive_podcast: bool = True


class GenerateMediaRequest(BaseModel):
    customization: dict[str, Any] | None = None


class ScriptUpdateRequest(BaseModel):
    title: str | None = None
    script: str | None = None
    payload: dict[str, Any] | None = None


class StandaloneVideoRequest(BaseModel):
    title: str = Field(min_length=1)
    script: str = Field(min_length=1)
    customization: dict[str, Any]


class TagAttachRequest(BaseModel):
    tag_id: int


@router.post("/submissions")
def create_submission_route(
    organization_id: str,
    req: SubmissionCreateRequest,
    db: Session = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    flags = req.model_dump(exclude={"article_id", "languages"})
    subs = orchestrator.create_submission(
        db,
        queue,
        article_id=req.article_id,
        organization_id=organization_id,
        languages=req.languages,
        flags=flags,
    )
    return {"ok": True, "submissions": [orchestrator.submission_to_dict(db, s) for s in subs]}


@router.get("/submissions")
def list_submissions_route(
    organization_id: str,
    db: Session = Depends(get_db),
    article_id: int | None = Query(default=None),
    status: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
):
    total, rows, counts = orchestrator.list_submissions(
        db, organization_id, article_id=article_id, status=status, limit=limit, offset=offset
    )
    return {
        "ok": True,
        "total": total,
        "limit": limit,
        "offset": offset,
        "counts": counts,
        "submissions": [orchestrator.submission_to_dict(db, s, with_outputs=False) for s in rows],
    }


@router.get("/submissions/{submission_id}")
def get_submission_route(organization_id: str, submission_id: int, db: Session = Depends(get_db)):
    sub = orchestrator.get_submission(db, submission_id, organization_id)
    return {"ok": True, "submission": orchestrator.submission_to_dict(db, sub)}


@router.get("/outputs/{output_id}")
def get_output_route(organization_id: str, output_id: int, db: Session = Depends(get_db)):
    output = get_output_or_404(db, output_id, organization_id)
    return {"ok": True, "output": output_to_dict(output)}


@router.patch("/outputs/{output_id}/script")
def update_script_route(
    organization_id: str,
    output_id: int,
    req: ScriptUpdateRequest,
    db: Session = Depends(get_db),
):
    output = orchestrator.update_script(
        db, output_id, organization_id, title=req.title, script=req.script, payload=req.payload
    )
    return {"ok": True, "output": output_to_dict(output)}


@router.post("/outputs/{output_id}/generate-media")
def generate_media_route(
    organization_id: str,
    output_id: int,
    req: GenerateMediaRequest,
    db: Session = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    output = orchestrator.trigger_media_generation(db, queue, output_id, organization_id, req.customization)
    return {"ok": True, "output": output_to_dict(output)}


@router.post("/outputs/{output_id}/regenerate-media")
def regenerate_media_route(
    organization_id: str,
    output_id: int,
    req: GenerateMediaRequest,
    db: Session = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    output = orchestrator.regenerate_media(db, queue, output_id, organization_id, req.customization)
    return {"ok": True, "output": output_to_dict(output)}


@router.post("/outputs/{output_id}/approve")
def approve_route(organization_id: str, output_id: int, db: Session = Depends(get_db)):
    return {"ok": True, "output": output_to_dict(approve_output(db, output_id, organization_id))}


@router.post("/outputs/{output_id}/unapprove")
def unapprove_route(organization_id: str, output_id: int, db: Session = Depends(get_db)):
    return {"ok": True, "output": output_to_dict(unapprove_output(db, output_id, organization_id))}


@router.get("/outputs/{output_id}/tags")
def list_tags_route(organization_id: str, output_id: int, db: Session = Depends(get_db)):
    output = get_output_or_404(db, output_id, organization_id)
    return {"ok": True, "tags": [output_tag_to_dict(t) for t in list_output_tags(db, output.id)]}


@router.post("/outputs/{output_id}/tags")
def attach_tag_route(
    organization_id: str,
    output_id: int,
    req: TagAttachRequest,
    db: Session = Depends(get_db),
):
    link = attach_tag(db, output_id, req.tag_id, organization_id)
    return {"ok": True, "tag": output_tag_to_dict(link)}


@router.delete("/outputs/{output_id}/tags/{tag_id}")
def detach_tag_route(organization_id: str, output_id: int, tag_id: int, db: Session = Depends(get_db)):
    removed = detach_tag(db, output_id, tag_id, organization_id)
    return {"ok": True, "removed": removed}


@router.post("/standalone-videos")
def create_standalone_video_route(
    organization_id: str,
    req: StandaloneVideoRequest,
    db: Session = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    output = orchestrator.create_standalone_video(
        db,
        queue,
        organization_id=organization_id,
        title=req.title,
        script=req.script,
        customization=req.customization,
    )
    return {"ok": True, "output": output_to_dict(output)}
