"""
Property-based tests for gap, density, slot and expansion guarantees.
"""

from datetime import date, datetime, timedelta

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from eventix.interval_analyzer import calculate_density, find_available_slots, find_gaps
from eventix.lifecycle import LifecycleStatus
from eventix.occurrence_set import OccurrenceSet, RecurringDefinition, SingleDefinition
from eventix.recurrence import RecurrenceRule
from eventix.recurrence_expander import expand
from eventix.time_models import TimeInstant, ZonedInterval

BASE = TimeInstant.parse("2025-03-10 08:00")
WINDOW = ZonedInterval(BASE, BASE + timedelta(hours=10))

property_settings = settings(max_examples=75, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])

event_strategy = st.tuples(
    st.integers(min_value=-120, max_value=720),
    st.integers(min_value=0, max_value=240),
    st.sampled_from(list(LifecycleStatus)),
)


def make_set(events):
    definitions = [
        SingleDefinition(f"e{i}", ZonedInterval.starting_at(BASE + timedelta(minutes=offset), timedelta(minutes=length)), status)
        for i, (offset, length, status) in enumerate(events)
    ]
    return OccurrenceSet.build(definitions, WINDOW)


@property_settings
@given(st.lists(event_strategy, max_size=12))
def test_gaps_are_sorted_disjoint_and_inside_window(events):
    gaps = find_gaps(make_set(events), WINDOW)
    for gap in gaps:
        assert WINDOW.contains(gap)
        assert gap.duration > timedelta(0)
    for earlier, later in zip(gaps, gaps[1:]):
        assert earlier.end < later.start


@property_settings
@given(st.lists(event_strategy, max_size=12))
def test_gaps_never_overlap_active_occurrences(events):
    occurrences = make_set(events)
    for gap in find_gaps(occurrences, WINDOW):
        assert not any(o.interval.overlaps(gap) for o in occurrences.active())


@property_settings
@given(st.lists(event_strategy, max_size=12))
def test_busy_plus_free_is_window(events):
    density = calculate_density(make_set(events), WINDOW)
    assert density.busy_duration + density.free_duration == WINDOW.duration
    assert 0.0 <= density.occupancy_percentage <= 100.0
    gap_total = sum((g.duration for g in find_gaps(make_set(events), WINDOW)), timedelta(0))
    assert gap_total == density.free_duration


@property_settings
@given(st.lists(event_strategy, max_size=12), st.integers(min_value=1, max_value=180))
def test_min_gap_duration_floor(events, minutes):
    for gap in find_gaps(make_set(events), WINDOW, timedelta(minutes=minutes)):
        assert gap.duration >= timedelta(minutes=minutes)


@property_settings
@given(st.lists(event_strategy, max_size=12), st.integers(min_value=5, max_value=180))
def test_slots_contained_in_gaps(events, minutes):
    occurrences = make_set(events)
    required = timedelta(minutes=minutes)
    gaps = find_gaps(occurrences, WINDOW)
    for slot in find_available_slots(occurrences, WINDOW, required):
        assert slot.duration == required
        assert any(gap.contains(slot) for gap in gaps)


@property_settings
@given(st.lists(event_strategy, max_size=12), st.lists(event_strategy, max_size=6))
def test_cancelled_occurrences_change_nothing(events, extra):
    cancelled = [(offset, length, LifecycleStatus.CANCELLED) for offset, length, _ in extra]
    assert find_gaps(make_set(events), WINDOW) == find_gaps(make_set(events + cancelled), WINDOW)


@property_settings
@given(
    st.dates(min_value=date(2024, 1, 1), max_value=date(2026, 12, 31)),
    st.sampled_from(["America/New_York", "Europe/London", "Australia/Sydney", "Asia/Kolkata"]),
    st.sampled_from([RecurrenceRule.daily(), RecurrenceRule.weekly(), RecurrenceRule.monthly()]),
)
def test_expansion_keeps_wall_clock_and_is_idempotent(day, zone, rule):
    start = TimeInstant.from_local(datetime(day.year, day.month, day.day, 9, 0), zone)
    anchor = ZonedInterval.starting_at(start, timedelta(hours=1))
    expansion = expand(rule.limit(8), anchor, None)
    first = list(expansion)
    assert first == list(expansion)
    assert [(i.start.local.hour, i.start.local.minute) for i in first] == [(9, 0)] * 8
    assert all(i.duration == timedelta(hours=1) for i in first)


@property_settings
@given(st.integers(min_value=0, max_value=400), st.integers(min_value=1, max_value=30))
def test_windowed_expansion_matches_full_expansion(offset_days, length_days):
    anchor = ZonedInterval.from_local("2025-01-01 09:00", "2025-01-01 10:00", "America/New_York")
    rule = RecurrenceRule.daily().every(3).limit(200)
    window = ZonedInterval(
        TimeInstant.parse("2025-01-01 00:00", "America/New_York") + timedelta(days=offset_days),
        TimeInstant.parse("2025-01-01 00:00", "America/New_York") + timedelta(days=offset_days + length_days),
    )
    full = [i for i in expand(rule, anchor, None) if i.intersects(window)]
    assert list(expand(rule, anchor, window)) == full


@property_settings
@given(st.lists(event_strategy, max_size=8))
def test_recurring_definitions_inside_window(events):
    definitions = [
        RecurringDefinition(
            f"r{i}",
            RecurrenceRule.daily(),
            ZonedInterval.starting_at(BASE - timedelta(days=3, minutes=-offset), timedelta(minutes=length)),
            status,
        )
        for i, (offset, length, status) in enumerate(events)
    ]
    for occurrence in OccurrenceSet.build(definitions, WINDOW):
        assert occurrence.interval.intersects(WINDOW)
