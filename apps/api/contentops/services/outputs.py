from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import case
from sqlalchemy.orm import Session

from contentops.core.errors import InvalidStateError
from contentops.models.enums import OutputKind, OutputStatus
from contentops.models.output import Output
from contentops.services.lifecycle import get_output_or_404


def _safe_json_loads(s: str | None) -> dict[str, Any]:
    if not s:
        return {}
    try:
        v = json.loads(s)
    except ValueError:
        return {}
    return v if isinstance(v, dict) else {}


def get_payload(output: Output) -> dict[str, Any]:
    return _safe_json_loads(output.payload_json)


def get_customization(output: Output) -> dict[str, Any]:
    return _safe_json_loads(output.customization_json)


def dump_json(d: dict[str, Any] | None) -> str:
    return json.dumps(d or {}, ensure_ascii=False)


def create_output(
    db: Session,
    *,
    submission_id: int | None,
    organization_id: str,
    kind: OutputKind,
    status: OutputStatus = OutputStatus.PENDING,
    **fields: Any,
) -> Output:
    output = Output(
        submission_id=submission_id,
        organization_id=organization_id,
        kind=OutputKind(kind).value,
        status=OutputStatus(status).value,
        **fields,
    )
    db.add(output)
    db.flush()
    return output


def list_submission_outputs(db: Session, submission_id: int) -> list[Output]:
    return (
        db.query(Output)
        .filter(Output.submission_id == submission_id)
        .order_by(Output.id.asc())
        .all()
    )


def update_output(db: Session, output: Output, **fields: Any) -> Output:
    """Write non-status fields. Status changes go through lifecycle.transition."""
    if "status" in fields:
        raise ValueError("use lifecycle.transition to change status")
    for k, v in fields.items():
        setattr(output, k, v)
    db.commit()
    db.refresh(output)
    return output


def merge_payload(db: Session, output: Output, patch: dict[str, Any]) -> Output:
    """
    Merge a patch into payload_json.
    - Keeps existing keys
    - Overwrites keys present in patch
    """
    base = get_payload(output)
    for k, v in (patch or {}).items():
        base[k] = v
    return update_output(db, output, payload_json=dump_json(base))


def find_by_provider_id(
    db: Session,
    provider_id: str,
    *,
    status: OutputStatus | None = OutputStatus.PROCESSING,
    kinds: Iterable[OutputKind] = (),
) -> Output | None:
    """
    Single indexed lookup across all kinds sharing the provider's id namespace.
    `kinds` is a priority order: when more than one row matches, the earliest
    kind in the list wins.
    """
    kinds = [OutputKind(k).value for k in kinds]
    q = db.query(Output).filter(Output.provider_id == provider_id)
    if status is not None:
        q = q.filter(Output.status == OutputStatus(status).value)
    if kinds:
        q = q.filter(Output.kind.in_(kinds))
        priority = case({k: i for i, k in enumerate(kinds)}, value=Output.kind)
        q = q.order_by(priority.asc(), Output.id.asc())
    else:
        q = q.order_by(Output.id.asc())
    return q.first()


def find_by_followup_id(db: Session, followup_id: str) -> Output | None:
    return (
        db.query(Output)
        .filter(Output.followup_id == followup_id)
        .order_by(Output.id.desc())
        .first()
    )


def approve_output(db: Session, output_id: int, organization_id: str) -> Output:
    output = get_output_or_404(db, output_id, organization_id)
    if output.status != OutputStatus.COMPLETED.value:
        raise InvalidStateError(f"Only COMPLETED outputs can be approved (status={output.status})")
    return update_output(db, output, is_approved=True, approved_at=datetime.now(timezone.utc))


def unapprove_output(db: Session, output_id: int, organization_id: str) -> Output:
    output = get_output_or_404(db, output_id, organization_id)
    return update_output(db, output, is_approved=False, approved_at=None)


def output_to_dict(output: Output) -> dict[str, Any]:
    return {
        "id": output.id,
        "submission_id": output.submission_id,
        "organization_id": output.organization_id,
        "kind": output.kind,
        "status": output.status,
        "error": output.error,
        "is_approved": output.is_approved,
        "approved_at": output.approved_at.isoformat() if output.approved_at else None,
        "title": output.title,
        "script": output.script,
        "payload": get_payload(output),
        "customization": get_customization(output),
        "provider_id": output.provider_id,
        "followup_id": output.followup_id,
        "asset_url": output.asset_url,
        "duration": output.duration,
        "created_at": output.created_at.isoformat() if output.created_at else None,
        "updated_at": output.updated_at.isoformat() if output.updated_at else None,
    }
