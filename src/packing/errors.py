"""Typed failures raised at the engine boundary.

Every failure carries a ``kind`` (the taxonomy bucket callers switch on) and
the identifiers needed to render a precise message: job, box, barcode,
session or put-aside item. Field-level validation inside aggregates keeps
using ``protean.exceptions.ValidationError``.
"""


class PackingError(Exception):
    """Base class for all engine failures."""

    kind = "Error"
    status_code = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, **self.context}


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------
class NotFound(PackingError):
    kind = "NotFound"
    status_code = 404


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------
class Conflict(PackingError):
    kind = "Conflict"
    status_code = 409


class SessionAlreadyActive(Conflict):
    kind = "SessionAlreadyActive"


class AlreadyReallocated(Conflict):
    kind = "AlreadyReallocated"


class WriteConflict(Conflict):
    """Optimistic write kept losing after the bounded retries."""

    kind = "WriteConflict"


# ---------------------------------------------------------------------------
# InvalidState
# ---------------------------------------------------------------------------
class InvalidState(PackingError):
    kind = "InvalidState"
    status_code = 422


class SessionNotActive(InvalidState):
    kind = "SessionNotActive"


class ScanningPaused(InvalidState):
    kind = "ScanningPaused"


class EmptyBox(InvalidState):
    kind = "EmptyBox"


class RequirementFulfilled(InvalidState):
    """The chosen box no longer needs the barcode (lost a race to another scan)."""

    kind = "RequirementFulfilled"


# ---------------------------------------------------------------------------
# ValidationFailure
# ---------------------------------------------------------------------------
class ValidationFailure(PackingError):
    kind = "ValidationFailure"
    status_code = 400


class NoMatchingRequirement(ValidationFailure):
    kind = "NoMatchingRequirement"


class QuantityExceedsRequirement(ValidationFailure):
    kind = "QuantityExceedsRequirement"
