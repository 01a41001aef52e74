"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the job import validation
(non-empty barcode and customer, non-negative quantity) and match the exact
field names expected by the API's Pydantic request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker()

ALLOCATION_PATTERNS = ["ascending", "descending", "middle_up", "middle_down"]


def unique_job_name() -> str:
    """Generate unique job names like 'LT-wave-a1b2c3d4'."""
    return f"LT-wave-{uuid.uuid4().hex[:8]}"


def barcode() -> str:
    """13-digit EAN-like barcode."""
    return fake.ean13()


def worker_id() -> str:
    return f"worker-{random.randint(1, 40):02d}"


def job_rows(customers: int = 8, products: int = 5, max_qty: int = 3) -> list[dict]:
    """Catalog rows where every customer orders a random subset of the products.

    Several customers share barcodes so concurrent scans contend for the
    same candidate boxes.
    """
    catalog = [(barcode(), fake.catch_phrase()[:60]) for _ in range(products)]
    groups = ["Shelf A", "Shelf B", None]
    rows = []
    for _ in range(customers):
        name = fake.name()[:100]
        group = random.choice(groups)
        for code, product_name in random.sample(catalog, k=random.randint(1, products)):
            rows.append(
                {
                    "barcode": code,
                    "product_name": product_name,
                    "quantity": random.randint(1, max_qty),
                    "customer_name": name,
                    "group": group,
                }
            )
    return rows


def import_job_data(**kwargs) -> dict:
    """ImportJobRequest payload."""
    return {
        "name": unique_job_name(),
        "created_by": "loadtest",
        "rows": job_rows(**kwargs),
    }


def scan_data(job_id: str, codes: list[str]) -> dict:
    """ScanRequest payload. Now and then an unknown barcode is sent."""
    code = barcode() if random.random() < 0.05 else random.choice(codes)
    return {
        "job_id": job_id,
        "barcode": code,
        "worker_id": worker_id(),
        "allocation_pattern": random.choice(ALLOCATION_PATTERNS),
    }
