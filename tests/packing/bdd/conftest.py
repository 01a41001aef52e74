"""Shared BDD fixtures and step definitions for the Packing domain."""

import json
from datetime import UTC, datetime

import pytest
from protean.testing import given as given_
from pytest_bdd import given, parsers, then

from packing.checkcount.events import CheckCountCompleted, CheckCountStarted, CheckItemScanned
from packing.checkcount.session import CheckCountSession

# Expected and live quantities of box 5 when the session starts
_SNAPSHOT = {
    "A": {"id": "row-a", "expected_qty": 3, "original_scanned_qty": 3},
    "B": {"id": "row-b", "expected_qty": 1, "original_scanned_qty": 0},
}


def _progress_rows(counted=None):
    counted = counted or {}
    rows = []
    for barcode, row in _SNAPSHOT.items():
        check = counted.get(barcode, 0)
        extra = max(0, check - row["expected_qty"])
        rows.append(
            {
                "id": row["id"],
                "barcode": barcode,
                "product_name": f"Product {barcode}",
                "expected_qty": row["expected_qty"],
                "original_scanned_qty": row["original_scanned_qty"],
                "check_scanned_qty": check,
                "extra_items": extra,
                "has_discrepancy": check != row["original_scanned_qty"] or extra > 0,
            }
        )
    return rows


@pytest.fixture()
def error():
    """Container for a captured engine failure."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def session_id():
    return "chk-001"


@pytest.fixture()
def counted():
    """Units counted so far in the session, per barcode."""
    return {}


# ---------------------------------------------------------------------------
# Event fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def check_count_started(session_id):
    return CheckCountStarted(
        session_id=session_id,
        job_id="job-001",
        box_id="box-005",
        box_number=5,
        user_id="checker",
        progress=json.dumps(_progress_rows()),
        total_items_expected=4,
        started_at=datetime.now(UTC),
    )


def check_item_scanned(session_id, barcode, check_scanned_qty):
    row = _SNAPSHOT[barcode]
    extra = max(0, check_scanned_qty - row["expected_qty"])
    return CheckItemScanned(
        session_id=session_id,
        job_id="job-001",
        box_number=5,
        progress_id=row["id"],
        barcode=barcode,
        product_name=f"Product {barcode}",
        expected_qty=row["expected_qty"],
        original_scanned_qty=row["original_scanned_qty"],
        check_scanned_qty=check_scanned_qty,
        extra_items=extra,
        has_discrepancy=check_scanned_qty != row["original_scanned_qty"] or extra > 0,
        scanned_at=datetime.now(UTC),
    )


# ---------------------------------------------------------------------------
# Given steps: CheckCountSession (event sourcing via protean.testing)
# ---------------------------------------------------------------------------
@given("a check session was started on box 5", target_fixture="session")
def _(check_count_started):
    return given_(CheckCountSession, check_count_started)


@given(parsers.cfparse('the checker already counted "{barcode}" {times:d} times'), target_fixture="session")
def _(session, session_id, counted, barcode, times):
    for _ in range(times):
        counted[barcode] = counted.get(barcode, 0) + 1
        session = session.after(check_item_scanned(session_id, barcode, counted[barcode]))
    return session


@given("the session was completed", target_fixture="session")
def _(session, session_id, counted):
    rows = _progress_rows(counted)
    return session.after(
        CheckCountCompleted(
            session_id=session_id,
            job_id="job-001",
            box_id="box-005",
            box_number=5,
            user_id="checker",
            progress=json.dumps(rows),
            total_items_expected=4,
            total_items_scanned=sum(row["check_scanned_qty"] for row in rows),
            discrepancies_found=sum(1 for row in rows if row["has_discrepancy"]),
            corrections_applied=False,
            completed_at=datetime.now(UTC),
        )
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the action fails with "{kind}"'))
def _(error, kind):
    assert error["exc"] is not None, f"Expected {kind} but nothing was raised"
    assert error["exc"].kind == kind


@then("the action succeeds")
def _(error):
    assert error["exc"] is None, f"Unexpected failure: {error['exc']}"
