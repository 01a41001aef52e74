"""Deterministic choice of the target box among candidate box numbers.

Workers may pass an allocation pattern as an opaque hint so that several
people scanning the same job spread across the box range instead of all
filling box 1 first. Without a hint the lowest box number wins.
"""

from enum import Enum


class AllocationPattern(Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"
    MIDDLE_UP = "middle_up"
    MIDDLE_DOWN = "middle_down"


def choose_box(candidates, preferred_box_number=None, allocation_pattern=None):
    """Pick one box number out of ``candidates``.

    Returns None when there are no candidates. Unknown patterns fall back to
    ascending order.
    """
    ordered = sorted(set(candidates))
    if not ordered:
        return None

    if preferred_box_number is not None and preferred_box_number in ordered:
        return preferred_box_number

    try:
        pattern = AllocationPattern(allocation_pattern) if allocation_pattern else AllocationPattern.ASCENDING
    except ValueError:
        pattern = AllocationPattern.ASCENDING

    if pattern == AllocationPattern.DESCENDING:
        return ordered[-1]
    if pattern == AllocationPattern.MIDDLE_UP:
        return ordered[len(ordered) // 2]
    if pattern == AllocationPattern.MIDDLE_DOWN:
        return ordered[max(0, len(ordered) // 2 - 1)]
    return ordered[0]
