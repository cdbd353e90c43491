"""
Lifecycle status of an event occurrence and the single predicate deciding
whether it occupies time.
"""

from enum import Enum


class LifecycleStatus(Enum):
    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"  # occupies time like CONFIRMED, cannot be rescheduled

    @classmethod
    def parse(cls, value) -> "LifecycleStatus":
        """Accept a LifecycleStatus, its value, or its name in any case."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for status in cls:
                if key in (status.value, status.name.lower()):
                    return status
        raise ValueError(f"Invalid lifecycle status: {value!r}")

    @property
    def is_active(self) -> bool:
        return is_active(self)


def is_active(status: LifecycleStatus, include_tentative: bool = True) -> bool:
    """
    Whether an occurrence with this status counts as occupied time.

    CANCELLED never does; CONFIRMED and BLOCKED always do; TENTATIVE does
    unless include_tentative is False.
    """
    if status is LifecycleStatus.CANCELLED:
        return False
    if status is LifecycleStatus.TENTATIVE:
        return include_tentative
    return True


def can_reschedule(status: LifecycleStatus) -> bool:
    return status is not LifecycleStatus.BLOCKED
