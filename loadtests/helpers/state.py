"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state. State tracks the ids
returned by creation endpoints so follow-up operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class JobState:
    """Tracks one imported job and the barcodes it still expects."""

    job_id: str | None = None
    box_count: int = 0
    barcodes: list[str] = field(default_factory=list)
    scans_accepted: int = 0
    put_aside_item_ids: list[str] = field(default_factory=list)


@dataclass
class CheckCountState:
    """Tracks a single CheckCount session lifecycle."""

    session_id: str | None = None
    box_number: int | None = None
    expected_barcodes: list[str] = field(default_factory=list)
