"""Change feed port — abstract interface for delivering job updates.

Supervisor screens and scanning stations subscribe per job and receive a
notification for every accepted state change of that job. Adapters decide
the transport (in-process callbacks, websockets, a broker).
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class ChangeNotification:
    job_id: str
    kind: str
    box_number: int | None = None
    payload: dict = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "kind": self.kind,
            "box_number": self.box_number,
            "payload": self.payload,
            "occurred_at": self.occurred_at.isoformat(),
        }


class ChangeFeed(ABC):
    """Abstract interface for change feed adapters."""

    @abstractmethod
    def subscribe(self, job_id: str, callback: Callable[[ChangeNotification], None]) -> Callable[[], None]:
        """Register ``callback`` for every notification of ``job_id``.

        Returns:
            A callable that removes the subscription.
        """
        ...

    @abstractmethod
    def publish(self, notification: ChangeNotification) -> int:
        """Deliver a notification to the job's subscribers.

        Returns:
            The number of subscribers that received it.
        """
        ...

    @abstractmethod
    def subscriber_count(self, job_id: str) -> int:
        """Number of live subscriptions for ``job_id``."""
        ...
