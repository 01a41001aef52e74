"""Stress scenario: many workers hammering one shared job.

Every user scans into the same job so that requests collide on the same
boxes. Monitor WriteConflict (409) counts and the ledger conservation of the
job afterwards.
"""

from locust import HttpUser, constant_pacing, events, task

from loadtests.data_generators import import_job_data, scan_data

_shared = {"job_id": None, "barcodes": []}


@events.test_start.add_listener
def _reset_shared_job(**_kwargs):
    _shared["job_id"] = None
    _shared["barcodes"] = []


class SharedJobFloodUser(HttpUser):
    """Concurrent scans against a single job."""

    wait_time = constant_pacing(0.05)

    def on_start(self):
        if _shared["job_id"]:
            return
        payload = import_job_data(customers=20, products=6, max_qty=5)
        resp = self.client.post("/jobs", json=payload, name="[STRESS] POST /jobs")
        if resp.status_code != 201:
            return
        job_id = resp.json()["job_id"]
        self.client.put(f"/jobs/{job_id}/activate", name="[STRESS] PUT /jobs/{id}/activate")
        _shared["barcodes"] = sorted({row["barcode"] for row in payload["rows"]})
        _shared["job_id"] = job_id

    @task(10)
    def scan(self):
        if not _shared["job_id"]:
            return
        self.client.post("/scan", json=scan_data(_shared["job_id"], _shared["barcodes"]), name="[STRESS] POST /scan")

    @task(1)
    def ledger(self):
        if not _shared["job_id"]:
            return
        self.client.get(f"/jobs/{_shared['job_id']}/ledger", name="[STRESS] GET /jobs/{id}/ledger")
