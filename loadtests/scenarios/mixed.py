"""Mixed packing floor workload.

Combines scanning shifts with occasional CheckCount verification, which
is the recommended scenario for a load baseline.
"""

from locust import HttpUser, between

from loadtests.scenarios.scanning import ScanShiftJourney
from loadtests.scenarios.verification import CheckCountJourney


class MixedWorkloadUser(HttpUser):
    """Scanning stations (80%) and verification desks (20%)."""

    wait_time = between(0.5, 2.0)
    tasks = {
        ScanShiftJourney: 8,
        CheckCountJourney: 2,
    }
