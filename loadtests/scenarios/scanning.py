"""Scanning load test scenarios.

A supervisor imports and activates a job, then a pool of workers scans its
barcodes concurrently. Many workers hitting the same barcodes forces the
engine to reroute scans between candidate boxes and to put aside surplus
units, which is exactly the contention the box locks have to survive.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import import_job_data, scan_data, worker_id
from loadtests.helpers.state import JobState


class ScanShiftJourney(SequentialTaskSet):
    """Import -> Activate -> Scan x N -> Undo -> Reallocate -> Progress.

    Models one short packing shift on a fresh job.
    """

    scans_per_shift = 30

    def on_start(self):
        self.state = JobState()

    @task
    def import_job(self):
        payload = import_job_data()
        with self.client.post("/jobs", json=payload, catch_response=True, name="POST /jobs") as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.job_id = body["job_id"]
                self.state.box_count = body["box_count"]
                self.state.barcodes = sorted({row["barcode"] for row in payload["rows"]})
            else:
                resp.failure(f"Import failed: {resp.status_code}")
                self.interrupt()

    @task
    def activate_job(self):
        with self.client.put(
            f"/jobs/{self.state.job_id}/activate",
            json={"changed_by": "loadtest"},
            catch_response=True,
            name="PUT /jobs/{id}/activate",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Activate failed: {resp.status_code}")
                self.interrupt()

    @task
    def scan_items(self):
        for _ in range(self.scans_per_shift):
            with self.client.post(
                "/scan",
                json=scan_data(self.state.job_id, self.state.barcodes),
                catch_response=True,
                name="POST /scan",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Scan failed: {resp.status_code}")
                    continue
                body = resp.json()
                if body["put_aside"]:
                    self.state.put_aside_item_ids.append(body["put_aside_item_id"])
                else:
                    self.state.scans_accepted += 1

    @task
    def undo_last_scan(self):
        self.client.post(
            "/scan/undo",
            json={"job_id": self.state.job_id, "worker_id": worker_id(), "count": 1},
            name="POST /scan/undo",
        )

    @task
    def reallocate_put_aside(self):
        if not self.state.put_aside_item_ids:
            return
        item_id = self.state.put_aside_item_ids.pop()
        with self.client.post(
            f"/put-aside/{item_id}/reallocate",
            json={
                "target_box_number": random.randint(1, self.state.box_count),
                "performed_by": "loadtest",
                "request_id": f"lt-{item_id}",
            },
            catch_response=True,
            name="POST /put-aside/{id}/reallocate",
        ) as resp:
            # Unknown barcodes and full boxes legitimately refuse reallocation
            if resp.status_code in (200, 400, 409, 422):
                resp.success()
            else:
                resp.failure(f"Reallocate failed: {resp.status_code}")

    @task
    def check_progress(self):
        self.client.get(f"/jobs/{self.state.job_id}/progress", name="GET /jobs/{id}/progress")

    @task
    def done(self):
        self.interrupt()


class ScanningUser(HttpUser):
    """One scanning station per user."""

    wait_time = between(0.2, 1.0)
    tasks = [ScanShiftJourney]
