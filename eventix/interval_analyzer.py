"""
Gap and overlap analysis over an occurrence set.

Finds free intervals, overlapping occurrence pairs, schedule density,
fixed-length available slots and alternative times near a conflicting
request. Every function filters occurrences through lifecycle.is_active,
clips to the query window and works on half-open [start, end) intervals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from eventix.errors import InvalidInterval, InvalidWindow
from eventix.lifecycle import is_active
from eventix.logging_helper import Log
from eventix.occurrence_set import Occurrence
from eventix.time_models import ZonedInterval

DEFAULT_SUGGESTION_STEP = timedelta(minutes=15)
DEFAULT_BUSY_THRESHOLD = 60.0
DEFAULT_LIGHT_THRESHOLD = 30.0


@dataclass(frozen=True)
class TimeGap:
    """A free interval and the active occurrences on either side of it (None at the window edges)."""
    interval: ZonedInterval
    before: Optional[Occurrence] = None
    after: Optional[Occurrence] = None

    @property
    def duration(self) -> timedelta:
        return self.interval.duration


@dataclass(frozen=True)
class ScheduleDensity:
    """Schedule density metrics for one window."""
    total_duration: timedelta
    busy_duration: timedelta
    free_duration: timedelta
    occupancy_percentage: float
    event_count: int
    gap_count: int
    overlap_count: int

    def is_busy(self, threshold: float = DEFAULT_BUSY_THRESHOLD) -> bool:
        """Occupancy above threshold percent."""
        return self.occupancy_percentage > threshold

    def is_light(self, threshold: float = DEFAULT_LIGHT_THRESHOLD) -> bool:
        """Occupancy below threshold percent."""
        return self.occupancy_percentage < threshold

    def has_conflicts(self) -> bool:
        return self.overlap_count > 0


def _require_window(window) -> ZonedInterval:
    if window is None:
        raise InvalidWindow("Analysis requires a bounded window")
    if not isinstance(window, ZonedInterval):
        raise InvalidWindow(f"Expected a ZonedInterval window, got {type(window).__name__}")
    return window


def _active_clipped(
    occurrences: Iterable[Occurrence],
    window: ZonedInterval,
    include_tentative: bool,
) -> List[Tuple[Occurrence, ZonedInterval]]:
    """Active occurrences with non-empty window intersection, paired with the clipped interval."""
    result = []
    for occurrence in occurrences:
        if not is_active(occurrence.status, include_tentative):
            continue
        clipped = occurrence.interval.clip(window)
        if clipped is not None:
            result.append((occurrence, clipped))
    result.sort(key=lambda pair: pair[0].sort_key())
    return result


def merge_intervals(intervals: Iterable[ZonedInterval]) -> List[ZonedInterval]:
    """
    Union of intervals as a minimal sorted cover.

    Overlapping and adjacent intervals are merged; empty intervals contribute nothing.
    """
    ordered = sorted((i for i in intervals if not i.is_empty), key=lambda i: (i.start, i.end))
    merged: List[ZonedInterval] = []
    for interval in ordered:
        if merged and interval.start <= merged[-1].end:
            if interval.end > merged[-1].end:
                merged[-1] = ZonedInterval(merged[-1].start, interval.end)
        else:
            merged.append(interval)
    return merged


def _busy_cover(occurrences, window, include_tentative) -> List[ZonedInterval]:
    return merge_intervals(clipped for _, clipped in _active_clipped(occurrences, window, include_tentative))


def _complement(cover: List[ZonedInterval], window: ZonedInterval) -> List[ZonedInterval]:
    gaps = []
    cursor = window.start
    for busy in cover:
        if busy.start > cursor:
            gaps.append(ZonedInterval(cursor.in_zone(window.zone), busy.start.in_zone(window.zone)))
        if busy.end > cursor:
            cursor = busy.end
    if window.end > cursor:
        gaps.append(ZonedInterval(cursor.in_zone(window.zone), window.end))
    return gaps


def find_gaps(
    occurrences: Iterable[Occurrence],
    window: ZonedInterval,
    min_gap_duration: timedelta = timedelta(0),
    include_tentative: bool = True,
) -> List[ZonedInterval]:
    """
    Find all free intervals in window of at least min_gap_duration.

    Zero-length gaps are never returned, whatever min_gap_duration is.

    Args:
        occurrences: OccurrenceSet (or any iterable of Occurrence)
        window: Bounded query window
        min_gap_duration: Shortest gap to report
        include_tentative: Whether tentative occurrences occupy time

    Returns:
        Gaps in ascending order, each expressed in the window's zone
    """
    window = _require_window(window)
    cover = _busy_cover(occurrences, window, include_tentative)
    gaps = [
        gap for gap in _complement(cover, window)
        if gap.duration > timedelta(0) and gap.duration >= min_gap_duration
    ]
    Log.kv({
        "stage": "gaps",
        "window": str(window),
        "busy_blocks": len(cover),
        "gaps": len(gaps),
        "min_gap_min": int(min_gap_duration.total_seconds() // 60),
    })
    return gaps


def find_gaps_detailed(
    occurrences: Iterable[Occurrence],
    window: ZonedInterval,
    min_gap_duration: timedelta = timedelta(0),
    include_tentative: bool = True,
) -> List[TimeGap]:
    """
    Same gaps as find_gaps, each with the active occurrence whose clipped
    interval ends where the gap starts and the one that starts where it ends.

    When several occurrences share that boundary, `before` is the last of them
    in occurrence order and `after` the first.
    """
    occurrences = list(occurrences)
    window = _require_window(window)
    ending_at = {}
    starting_at = {}
    for occurrence, clipped in _active_clipped(occurrences, window, include_tentative):
        ending_at[clipped.end] = occurrence
        starting_at.setdefault(clipped.start, occurrence)
    return [
        TimeGap(gap, ending_at.get(gap.start), starting_at.get(gap.end))
        for gap in find_gaps(occurrences, window, min_gap_duration, include_tentative)
    ]


def find_longest_gap(
    occurrences: Iterable[Occurrence],
    window: ZonedInterval,
    include_tentative: bool = True,
) -> Optional[ZonedInterval]:
    """Longest free interval in window (earliest wins a tie), or None if fully covered."""
    gaps = find_gaps(occurrences, window, timedelta(0), include_tentative)
    longest = None
    for gap in gaps:
        if longest is None or gap.duration > longest.duration:
            longest = gap
    return longest


def overlap_interval(first: Occurrence, second: Occurrence) -> Optional[ZonedInterval]:
    """Shared part of two occurrences, or None when they only touch or are apart."""
    return first.interval.intersection(second.interval)


def find_overlaps(
    occurrences: Iterable[Occurrence],
    window: ZonedInterval,
    include_tentative: bool = True,
) -> List[Tuple[Occurrence, Occurrence]]:
    """
    Every unordered pair of distinct active occurrences whose window-clipped
    intervals share a non-zero duration, as (earlier, later) pairs ordered by
    the earlier's start and then the later's start.
    """
    window = _require_window(window)
    active = _active_clipped(occurrences, window, include_tentative)
    result = []
    # active is sorted by start: once a later occurrence starts at or after
    # the current clipped end, no further one can overlap it.
    for i, (first, first_clip) in enumerate(active):
        for second, second_clip in active[i + 1:]:
            if second.interval.start >= first_clip.end:
                break
            if first_clip.overlaps(second_clip):
                result.append((first, second))
    result.sort(key=lambda pair: (pair[0].sort_key(), pair[1].sort_key()))
    Log.kv({"stage": "overlaps", "window": str(window), "pairs": len(result)})
    return result


def calculate_density(
    occurrences: Iterable[Occurrence],
    window: ZonedInterval,
    include_tentative: bool = True,
) -> ScheduleDensity:
    """
    Busy/free split of window. Overlapping occurrences are counted once, so
    busy_duration + free_duration == window.duration always holds.
    """
    window = _require_window(window)
    occurrences = list(occurrences)
    active = _active_clipped(occurrences, window, include_tentative)
    cover = merge_intervals(clipped for _, clipped in active)

    total = window.duration
    busy = sum((interval.duration for interval in cover), timedelta(0))
    free = total - busy
    if total > timedelta(0):
        occupancy = busy / total * 100.0
    else:
        occupancy = 0.0

    density = ScheduleDensity(
        total_duration=total,
        busy_duration=busy,
        free_duration=free,
        occupancy_percentage=occupancy,
        event_count=len(active),
        gap_count=len(find_gaps(occurrences, window, timedelta(0), include_tentative)),
        overlap_count=len(find_overlaps(occurrences, window, include_tentative)),
    )
    Log.kv({
        "stage": "density",
        "window": str(window),
        "busy_min": int(busy.total_seconds() // 60),
        "free_min": int(free.total_seconds() // 60),
        "occupancy": f"{occupancy:.1f}%",
    })
    return density


def find_available_slots(
    occurrences: Iterable[Occurrence],
    window: ZonedInterval,
    required_duration: timedelta,
    include_tentative: bool = True,
) -> List[ZonedInterval]:
    """
    Fixed-length free slots, packed greedily from the start of each gap.

    Gaps shorter than required_duration contribute nothing.
    """
    if required_duration <= timedelta(0):
        raise InvalidInterval(f"Slot duration must be positive, got {required_duration}")
    gaps = find_gaps(occurrences, window, required_duration, include_tentative)
    slots = []
    for gap in gaps:
        start = gap.start
        while start + required_duration <= gap.end:
            slots.append(ZonedInterval(start, start + required_duration))
            start = start + required_duration
    Log.kv({"stage": "slots", "gaps": len(gaps), "slots": len(slots)})
    return slots


def is_slot_available(
    occurrences: Iterable[Occurrence],
    candidate: ZonedInterval,
    include_tentative: bool = True,
) -> bool:
    """True iff no active occurrence shares a non-zero duration with candidate."""
    if not isinstance(candidate, ZonedInterval):
        raise InvalidInterval(f"Expected a ZonedInterval candidate, got {type(candidate).__name__}")
    for occurrence in occurrences:
        if is_active(occurrence.status, include_tentative) and occurrence.interval.overlaps(candidate):
            return False
    return True


def suggest_alternatives(
    occurrences: Iterable[Occurrence],
    desired: ZonedInterval,
    search_radius: timedelta,
    step: Optional[timedelta] = None,
    limit: Optional[int] = None,
    include_tentative: bool = True,
) -> List[ZonedInterval]:
    """
    Free intervals of desired's duration near desired.start.

    Candidates start at desired.start +/- k * step for every k * step within
    search_radius. They are ordered by distance from desired.start, the later
    candidate first on a tie, and only free candidates are returned. desired
    itself comes first when it is free.

    Args:
        occurrences: OccurrenceSet (or any iterable of Occurrence)
        desired: Requested interval
        search_radius: Furthest start offset to consider, in both directions
        step: Candidate spacing (default: DEFAULT_SUGGESTION_STEP)
        limit: Maximum number of suggestions
        include_tentative: Whether tentative occurrences block candidates
    """
    if search_radius < timedelta(0):
        raise InvalidInterval(f"Search radius must not be negative, got {search_radius}")
    if step is None:
        step = DEFAULT_SUGGESTION_STEP
    if step <= timedelta(0):
        raise InvalidInterval(f"Suggestion step must be positive, got {step}")

    occurrences = list(occurrences)
    duration = desired.duration
    suggestions: List[ZonedInterval] = []

    def consider(start):
        candidate = ZonedInterval(start, start + duration)
        if is_slot_available(occurrences, candidate, include_tentative):
            suggestions.append(candidate)

    consider(desired.start)
    offset = step
    while offset <= search_radius and (limit is None or len(suggestions) < limit):
        consider(desired.start + offset)
        consider(desired.start - offset)
        offset += step

    if limit is not None:
        suggestions = suggestions[:limit]
    Log.kv({
        "stage": "suggest",
        "desired": str(desired),
        "radius_min": int(search_radius.total_seconds() // 60),
        "suggestions": len(suggestions),
    })
    return suggestions
