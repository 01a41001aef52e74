"""Domain events for the Job aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from packing.domain import packing


@packing.event(part_of="Job")
class JobImported:
    """A job and its requirement catalog were imported."""

    __version__ = 1

    job_id = Identifier(required=True)
    name = String(required=True)
    status = String(required=True)
    total_products = Integer(required=True)
    total_customers = Integer(required=True)
    box_count = Integer(required=True)
    total_required = Integer(required=True)
    created_by = String()
    created_at = DateTime(required=True)


@packing.event(part_of="Job")
class JobStatusChanged:
    """A job's lifecycle status or active flag changed."""

    __version__ = 1

    job_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    is_active = Boolean(required=True)
    changed_by = String()
    changed_at = DateTime(required=True)
