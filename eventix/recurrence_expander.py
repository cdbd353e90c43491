"""
Recurrence expansion: RecurrenceRule + anchor interval -> concrete intervals.

Stepping happens in civil time. Step k starts at the anchor's local start
plus k * interval calendar units (relativedelta, computed from the anchor so
month-end clamping never accumulates), and is then resolved to an absolute
instant in the anchor's zone. A 09:00 local meeting stays at 09:00 local
across DST; its absolute distance from the previous step becomes 23h or 25h.

Expansion is bounded only by the caller's window and the rule's Count/Until
bound. Count and Until apply to raw steps: steps rejected by the weekday
filter, exception dates or predicate still count toward Count.
"""

from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from eventix.errors import InvalidInterval, InvalidRule, InvalidWindow, UnboundedExpansion
from eventix.logging_helper import Log
from eventix.recurrence import Frequency, RecurrenceRule
from eventix.time_models import TimeInstant, ZonedInterval
from eventix.timezone_service import localize, to_local

# Civil-time slack when skipping steps that end before the window; covers
# offset changes of up to a full day (e.g. zones that skipped a date).
_SKIP_MARGIN = timedelta(days=2)


class RecurrenceExpansion:
    """
    Lazy, finite, restartable sequence of the intervals a rule produces in a window.

    Each iteration starts a fresh generator; no iteration state is shared
    between passes, so iterating twice yields identical sequences.
    """

    def __init__(self, rule: RecurrenceRule, anchor: ZonedInterval, window: Optional[ZonedInterval]):
        if not isinstance(rule, RecurrenceRule):
            raise InvalidRule(f"Expected a RecurrenceRule, got {type(rule).__name__}")
        if not isinstance(anchor, ZonedInterval):
            raise InvalidInterval(f"Expected a ZonedInterval anchor, got {type(anchor).__name__}")
        if window is not None and not isinstance(window, ZonedInterval):
            raise InvalidWindow(f"Expected a ZonedInterval window, got {type(window).__name__}")
        if window is None and not rule.is_bounded:
            Log.warn("Refusing to expand an unbounded rule without a window")
            Log.kv({"stage": "expand", "result": "failed", "reason": "unbounded"}, level="warn")
            raise UnboundedExpansion(
                "Unbounded recurrence rule requires a bounded window; set count/until or pass a window"
            )

        self.rule = rule
        self.anchor = anchor
        self.window = window
        self.zone = anchor.start.zone
        self._duration = anchor.duration
        self._local_start = anchor.start.local.replace(tzinfo=None)

    def __iter__(self) -> Iterator[ZonedInterval]:
        for _, interval in self.with_ordinals():
            yield interval

    def with_ordinals(self) -> Iterator[Tuple[int, ZonedInterval]]:
        """Yield (raw step index, interval) for every accepted candidate."""
        rule = self.rule
        window = self.window
        k = self._first_step()
        while True:
            if rule.count is not None and k >= rule.count:
                return
            start = self.step_start(k)
            if rule.until is not None and start > rule.until:
                return
            if window is not None and start >= window.end:
                return
            candidate = ZonedInterval(start, start + self._duration)
            if (window is None or candidate.intersects(window)) and rule.accepts(start):
                yield k, candidate
            k += 1

    def step_start(self, k: int) -> TimeInstant:
        """Absolute start of raw step k, resolved from civil time in the anchor's zone."""
        civil = self._local_start + self._step_delta(k * self.rule.interval)
        return TimeInstant(localize(civil, self.zone), self.zone)

    def _step_delta(self, units: int) -> relativedelta:
        frequency = self.rule.frequency
        if frequency is Frequency.DAILY:
            return relativedelta(days=units)
        if frequency is Frequency.WEEKLY:
            return relativedelta(weeks=units)
        if frequency is Frequency.MONTHLY:
            return relativedelta(months=units)
        return relativedelta(years=units)

    def _first_step(self) -> int:
        """
        Index of the first step that can reach the window.

        Every skipped step ends before window.start, so skipping changes
        nothing but the work done; k keeps counting raw steps for Count.
        """
        if self.window is None:
            return 0
        window_local = to_local(self.window.start.utc, self.zone)
        target: datetime = window_local.replace(tzinfo=None) - self._duration - _SKIP_MARGIN
        origin = self._local_start
        if target <= origin:
            return 0
        interval = self.rule.interval
        frequency = self.rule.frequency
        if frequency is Frequency.DAILY:
            units = (target - origin).days
        elif frequency is Frequency.WEEKLY:
            units = (target - origin).days // 7
        elif frequency is Frequency.MONTHLY:
            units = (target.year - origin.year) * 12 + target.month - origin.month - 1
        else:
            units = target.year - origin.year - 1
        return max(0, units // interval)


def expand(
    rule: RecurrenceRule,
    anchor: ZonedInterval,
    window: Optional[ZonedInterval],
) -> RecurrenceExpansion:
    """
    Expand rule anchored at anchor into the intervals intersecting window.

    Args:
        rule: Recurrence pattern
        anchor: First occurrence; its zone drives civil-time stepping and its
            absolute duration is reused for every candidate
        window: Query window, or None for a bounded rule expanded in full

    Returns:
        RecurrenceExpansion, iterable any number of times

    Raises:
        UnboundedExpansion: rule has no Count/Until and window is None
    """
    return RecurrenceExpansion(rule, anchor, window)


def expand_instants(
    rule: RecurrenceRule,
    anchor: ZonedInterval,
    window: Optional[ZonedInterval],
) -> List[TimeInstant]:
    """Start instants of expand(rule, anchor, window), materialized as a list."""
    return [interval.start for interval in expand(rule, anchor, window)]
