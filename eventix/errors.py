"""
Error types raised by the occurrence engine.
Every error is raised synchronously at construction or query time; nothing is retried.
"""


class EventixError(Exception):
    """Base class for all eventix errors."""


class InvalidRule(EventixError, ValueError):
    """Recurrence rule is malformed (interval < 1, negative count, conflicting bounds)."""


class InvalidWindow(EventixError, ValueError):
    """Query window is inverted or missing where a bounded window is required."""


class UnboundedExpansion(EventixError):
    """Unbounded recurrence rule requested against an unbounded window."""


class UnknownTimezone(EventixError, ValueError):
    """Zone identifier could not be resolved by the timezone service."""

    def __init__(self, zone):
        self.zone = zone
        super().__init__(f"Unknown timezone: {zone!r}")


class InvalidInterval(EventixError, ValueError):
    """Interval with end < start, or a non-positive duration where one is required."""


class InvalidDefinition(EventixError, ValueError):
    """Event definition passed to OccurrenceSet.build cannot be used."""


class InvalidTransition(EventixError):
    """Lifecycle transition not allowed for the event's current status."""


class DateTimeParseError(EventixError, ValueError):
    """Date/time string could not be parsed."""


class CalendarFormatError(EventixError, ValueError):
    """Serialized calendar (JSON) is malformed."""
