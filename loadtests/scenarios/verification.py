"""CheckCount verification load test scenarios."""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import import_job_data
from loadtests.helpers.state import CheckCountState, JobState


class CheckCountJourney(SequentialTaskSet):
    """Import -> Activate -> Start check -> Count every unit -> Complete with corrections.

    Generates CheckCountStarted, one CheckItemScanned per unit and
    CheckCountCompleted, plus correction ScanRecorded events on the box.
    """

    def on_start(self):
        self.job = JobState()
        self.check = CheckCountState()

    @task
    def import_and_activate(self):
        payload = import_job_data(customers=3)
        resp = self.client.post("/jobs", json=payload, name="POST /jobs")
        if resp.status_code != 201:
            self.interrupt()
            return
        self.job.job_id = resp.json()["job_id"]
        self.client.put(f"/jobs/{self.job.job_id}/activate", name="PUT /jobs/{id}/activate")

        self.check.box_number = 1
        self.check.expected_barcodes = [
            code
            for row in payload["rows"]
            if row["customer_name"] == payload["rows"][0]["customer_name"]
            for code in [row["barcode"]] * row["quantity"]
        ]

    @task
    def start_session(self):
        with self.client.post(
            "/check-sessions",
            json={"job_id": self.job.job_id, "box_number": self.check.box_number, "user_id": "checker-lt"},
            catch_response=True,
            name="POST /check-sessions",
        ) as resp:
            if resp.status_code == 201:
                self.check.session_id = resp.json()["session_id"]
            else:
                resp.failure(f"Start check failed: {resp.status_code}")
                self.interrupt()

    @task
    def count_items(self):
        # Miss the last unit to leave one discrepancy behind
        for code in self.check.expected_barcodes[:-1]:
            self.client.post(
                f"/check-sessions/{self.check.session_id}/scan",
                json={"barcode": code},
                name="POST /check-sessions/{id}/scan",
            )

    @task
    def complete_session(self):
        with self.client.post(
            f"/check-sessions/{self.check.session_id}/complete",
            json={"apply_corrections": True},
            catch_response=True,
            name="POST /check-sessions/{id}/complete",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Complete check failed: {resp.status_code}")

    @task
    def done(self):
        self.interrupt()


class CheckCountUser(HttpUser):
    wait_time = between(1.0, 3.0)
    tasks = [CheckCountJourney]
