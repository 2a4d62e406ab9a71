"""
Output lifecycle state machine.

    PENDING -> PROCESSING                 job dispatched
    PROCESSING -> SCRIPT_READY            script-first kinds only
    SCRIPT_READY -> PROCESSING            human trigger after review
    PROCESSING -> COMPLETED | FAILED      render result
    COMPLETED | FAILED -> PROCESSING      explicit regenerate

Every transition is a conditional UPDATE guarded on the expected current
status, so two handlers racing on the same output cannot both win.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from contentops.core.errors import InvalidStateError, NotFoundError
from contentops.models.enums import SCRIPT_FIRST_KINDS, OutputKind, OutputStatus
from contentops.models.output import Output

_EDGES: dict[OutputStatus, frozenset[OutputStatus]] = {
    OutputStatus.PENDING: frozenset({OutputStatus.PROCESSING}),
    OutputStatus.PROCESSING: frozenset({OutputStatus.SCRIPT_READY, OutputStatus.COMPLETED, OutputStatus.FAILED}),
    OutputStatus.SCRIPT_READY: frozenset({OutputStatus.PROCESSING}),
    OutputStatus.COMPLETED: frozenset({OutputStatus.PROCESSING}),
    OutputStatus.FAILED: frozenset({OutputStatus.PROCESSING}),
}


def is_allowed(kind: OutputKind | str, current: OutputStatus | str, target: OutputStatus | str) -> bool:
    kind = OutputKind(kind)
    current = OutputStatus(current)
    target = OutputStatus(target)
    if target not in _EDGES[current]:
        return False
    if target == OutputStatus.SCRIPT_READY and kind not in SCRIPT_FIRST_KINDS:
        return False
    return True


def ensure_allowed(output: Output, target: OutputStatus) -> None:
    if not is_allowed(output.kind, output.status, target):
        raise InvalidStateError(
            f"Output {output.id} ({output.kind}) cannot move from {output.status} to {OutputStatus(target).value}"
        )


def transition(db: Session, output: Output, target: OutputStatus, **fields: Any) -> Output:
    """
    Move `output` to `target`, writing `fields` in the same statement.
    Commits on success; raises InvalidStateError (row untouched) otherwise.
    """
    ensure_allowed(output, target)
    expected = output.status

    values = dict(fields)
    values["status"] = OutputStatus(target).value
    res = db.execute(
        update(Output)
        .where(Output.id == output.id, Output.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.rollback()
        db.refresh(output)
        raise InvalidStateError(
            f"Output {output.id} changed concurrently (expected {expected}, now {output.status})"
        )
    db.commit()
    db.refresh(output)
    return output


def get_output_or_404(db: Session, output_id: int, organization_id: str | None = None) -> Output:
    q = db.query(Output).filter(Output.id == output_id)
    if organization_id is not None:
        q = q.filter(Output.organization_id == organization_id)
    output = q.first()
    if not output:
        raise NotFoundError(f"Output not found: {output_id}")
    return output
