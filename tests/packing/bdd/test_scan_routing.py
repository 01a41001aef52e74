"""BDD tests for scan routing, put-aside and recounts through the engine."""

from pytest_bdd import given, parsers, scenarios, then, when

from packing import engine
from packing.errors import PackingError

scenarios("features/scan_routing.feature")


def _rows(text):
    """``"Ada:A:2, Grace:B:1"`` -> import rows."""
    rows = []
    for part in text.split(","):
        customer, barcode, qty = (piece.strip() for piece in part.split(":"))
        rows.append(
            {"barcode": barcode, "product_name": f"Product {barcode}", "quantity": int(qty), "customer_name": customer}
        )
    return rows


def _row(job_id, box_number, barcode):
    return next(r for r in engine.box_requirements(job_id, box_number=box_number) if r.barcode == barcode)


def _scan(job_id, worker, barcode, times, error):
    try:
        for _ in range(times):
            engine.record_scan(job_id, barcode, worker)
    except PackingError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an active job with "{lines}"'), target_fixture="job_id")
def _(lines):
    job_id = engine.import_job("BDD wave", _rows(lines), created_by="supervisor")
    engine.change_job_status(job_id, "activate")
    return job_id


@given("the job is paused")
def _(job_id):
    engine.change_job_status(job_id, "pause")


@given(parsers.cfparse('"{worker}" scans "{barcode}" {times:d} times'))
def _(job_id, error, worker, barcode, times):
    _scan(job_id, worker, barcode, times, error)


@given(parsers.cfparse('"{worker}" put aside one "{barcode}"'), target_fixture="item_id")
def _(job_id, worker, barcode):
    return str(engine.put_aside(job_id, barcode, worker).id)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('"{worker}" scans "{barcode}" {times:d} times'))
def _(job_id, error, worker, barcode, times):
    _scan(job_id, worker, barcode, times, error)


@when(parsers.cfparse('the put-aside item is reallocated to box {box_number:d} with request "{request_id}"'))
def _(item_id, error, box_number, request_id):
    try:
        engine.reallocate(item_id, box_number, performed_by="supervisor", request_id=request_id)
    except PackingError as exc:
        error["exc"] = exc


@when(
    parsers.cfparse('"{checker}" recounts box {box_number:d} finding {count:d} of "{barcode}" and applies corrections')
)
def _(job_id, checker, box_number, count, barcode):
    session = engine.start_check_count(job_id, box_number, checker)
    for _ in range(count):
        engine.record_check_scan(str(session.id), barcode)
    engine.complete_check_count(str(session.id), apply_corrections=True)


@when(parsers.cfparse('"{worker}" undoes {count:d} scan'))
def _(job_id, worker, count):
    engine.undo_scans(job_id, worker, count=count)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('box {box_number:d} holds {count:d} of "{barcode}"'))
def _(job_id, box_number, count, barcode):
    assert _row(job_id, box_number, barcode).scanned_qty == count


@then(parsers.cfparse("box {box_number:d} is not complete"))
def _(job_id, box_number):
    status = next(s for s in engine.list_boxes(job_id) if s.box_number == box_number)
    assert status.is_complete is False


@then("nothing is put aside")
def _(job_id):
    assert engine.list_put_aside(job_id) == []


@then(parsers.cfparse('{count:d} item is put aside as "{reason}"'))
def _(job_id, count, reason):
    items = engine.list_put_aside(job_id)
    assert len(items) == count
    assert {item.reason for item in items} == {reason}
