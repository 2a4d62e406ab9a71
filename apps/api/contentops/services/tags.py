from __future__ import annotations

from sqlalchemy.orm import Session

from contentops.core.errors import NotFoundError
from contentops.models.tag import OutputTag, Tag
from contentops.services.lifecycle import get_output_or_404


def get_tag_or_404(db: Session, tag_id: int, organization_id: str) -> Tag:
    tag = db.query(Tag).filter(Tag.id == tag_id, Tag.organization_id == organization_id).first()
    if not tag:
        raise NotFoundError(f"Tag not found: {tag_id}")
    return tag


def list_output_tags(db: Session, output_id: int) -> list[OutputTag]:
    return (
        db.query(OutputTag)
        .filter(OutputTag.output_id == output_id)
        .order_by(OutputTag.id.asc())
        .all()
    )


def attach_tag(db: Session, output_id: int, tag_id: int, organization_id: str) -> OutputTag:
    """Manually tag an output. Re-attaching an existing tag returns the existing link."""
    output = get_output_or_404(db, output_id, organization_id)
    get_tag_or_404(db, tag_id, organization_id)

    existing = (
        db.query(OutputTag)
        .filter(OutputTag.output_id == output.id, OutputTag.tag_id == tag_id)
        .first()
    )
    if existing:
        return existing

    link = OutputTag(output_id=output.id, tag_id=tag_id, is_inherited=False, source_output_id=None)
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def detach_tag(db: Session, output_id: int, tag_id: int, organization_id: str) -> int:
    output = get_output_or_404(db, output_id, organization_id)
    n = (
        db.query(OutputTag)
        .filter(OutputTag.output_id == output.id, OutputTag.tag_id == tag_id)
        .delete()
    )
    db.commit()
    return n


def output_tag_to_dict(link: OutputTag) -> dict:
    return {
        "tag_id": link.tag_id,
        "name": link.tag.name if link.tag else None,
        "is_inherited": bool(link.is_inherited),
        "source_output_id": link.source_output_id,
    }
