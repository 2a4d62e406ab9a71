import pytest

from contentops.core.errors import InvalidStateError
from contentops.models.enums import SCRIPT_FIRST_KINDS, OutputKind, OutputStatus
from contentops.models.output import Output
from contentops.services.lifecycle import is_allowed, transition
from contentops.services.outputs import create_output

from conftest import ORG

LEGAL = {
    (OutputStatus.PENDING, OutputStatus.PROCESSING),
    (OutputStatus.PROCESSING, OutputStatus.SCRIPT_READY),
    (OutputStatus.SCRIPT_READY, OutputStatus.PROCESSING),
    (OutputStatus.PROCESSING, OutputStatus.COMPLETED),
    (OutputStatus.PROCESSING, OutputStatus.FAILED),
    (OutputStatus.COMPLETED, OutputStatus.PROCESSING),
    (OutputStatus.FAILED, OutputStatus.PROCESSING),
}


def _legal(kind, current, target):
    if (current, target) not in LEGAL:
        return False
    if target == OutputStatus.SCRIPT_READY:
        return kind in SCRIPT_FIRST_KINDS
    return True


def test_is_allowed_matches_edge_table():
    for kind in OutputKind:
        for current in OutputStatus:
            for target in OutputStatus:
                assert is_allowed(kind, current, target) == _legal(kind, current, target), (kind, current, target)


def test_illegal_transitions_raise_and_leave_row_untouched(db):
    for kind in (OutputKind.AUDIO, OutputKind.VIDEO):
        for current in OutputStatus:
            for target in OutputStatus:
                if _legal(kind, current, target):
                    continue
                o = create_output(
                    db, submission_id=None, organization_id=ORG, kind=kind, status=current, error="keep"
                )
                db.commit()
                with pytest.raises(InvalidStateError):
                    transition(db, o, target, error=None)
                db.expire_all()
                row = db.query(Output).filter(Output.id == o.id).one()
                assert row.status == current.value
                assert row.error == "keep"


def test_script_ready_rejected_for_single_stage_kind(db):
    o = create_output(db, submission_id=None, organization_id=ORG, kind=OutputKind.QUIZ, status=OutputStatus.PROCESSING)
    db.commit()
    with pytest.raises(InvalidStateError):
        transition(db, o, OutputStatus.SCRIPT_READY)


def test_lost_race_is_rejected(db):
    o = create_output(db, submission_id=None, organization_id=ORG, kind=OutputKind.VIDEO, status=OutputStatus.PROCESSING)
    db.commit()

    # another handler finishes the output behind our back
    db.query(Output).filter(Output.id == o.id).update({"status": OutputStatus.COMPLETED.value})
    db.commit()
    o.status = OutputStatus.PROCESSING.value  # stale in-memory view

    with pytest.raises(InvalidStateError):
        transition(db, o, OutputStatus.FAILED, error="late failure")

    assert o.status == OutputStatus.COMPLETED.value
    assert o.error is None
