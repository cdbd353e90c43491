"""
Tests for TimeInstant, ZonedInterval and the timezone service.
"""

from datetime import datetime, timedelta

import pytest
from dateutil import tz as dateutil_tz

from eventix.errors import DateTimeParseError, InvalidInterval, InvalidWindow, UnknownTimezone
from eventix.time_models import TimeInstant, ZonedInterval
from eventix.timezone_service import (
    UTC,
    describe_offset,
    is_dst,
    localize,
    parse_datetime,
    resolve_zone,
    utc_offset,
    zone_name_of,
)

NY = "America/New_York"


def utc(*args):
    return datetime(*args, tzinfo=UTC)


class TestResolveZone:

    def test_known_zone_resolves(self):
        assert resolve_zone(NY) is not None
        assert resolve_zone("UTC") is UTC

    @pytest.mark.parametrize("zone", ["", "   ", "Mars/Olympus_Mons", "/etc/passwd", ":America/New_York", "../x"])
    def test_unknown_zone_raises(self, zone):
        with pytest.raises(UnknownTimezone):
            resolve_zone(zone)

    def test_unknown_zone_is_value_error(self):
        with pytest.raises(ValueError):
            resolve_zone("Not/AZone")

    def test_zone_name_round_trip(self):
        assert zone_name_of(dateutil_tz.gettz(NY)) == NY
        assert zone_name_of(dateutil_tz.UTC) == "UTC"


class TestLocalize:

    def test_regular_time(self):
        assert localize(datetime(2025, 1, 15, 9, 0), NY) == utc(2025, 1, 15, 14, 0)

    def test_nonexistent_time_moves_forward(self):
        # 02:30 does not exist on 2025-03-09 in New York; it becomes 03:30 EDT
        assert localize(datetime(2025, 3, 9, 2, 30), NY) == utc(2025, 3, 9, 7, 30)

    def test_ambiguous_time_takes_earlier_instant(self):
        # 01:30 happens twice on 2025-11-02; the first one is EDT (UTC-4)
        assert localize(datetime(2025, 11, 2, 1, 30), NY) == utc(2025, 11, 2, 5, 30)

    def test_offset_and_dst(self):
        summer = utc_offset(NY, utc(2025, 7, 1, 12))
        winter = utc_offset(NY, utc(2025, 1, 1, 12))
        assert summer.offset == timedelta(hours=-4) and summer.is_dst
        assert winter.offset == timedelta(hours=-5) and not winter.is_dst
        assert is_dst(NY, utc(2025, 7, 1, 12))

    def test_describe_offset(self):
        assert describe_offset(datetime(2025, 1, 15, 12, tzinfo=dateutil_tz.gettz(NY))) == "EST (UTC-5)"
        assert describe_offset(datetime(2025, 1, 15, 12, tzinfo=dateutil_tz.gettz("Asia/Kolkata"))) == "IST (UTC+5:30)"


class TestParseDatetime:

    @pytest.mark.parametrize("text", ["2025-03-10 09:00:00", "2025-03-10T09:00:00", "2025-03-10 09:00"])
    def test_civil_formats(self, text):
        assert parse_datetime(text, NY) == utc(2025, 3, 10, 13, 0)

    def test_explicit_offset_wins(self):
        assert parse_datetime("2025-03-10T09:00:00+01:00", NY) == utc(2025, 3, 10, 8, 0)

    def test_microseconds_dropped(self):
        assert parse_datetime("2025-03-10 09:00:00.123456", "UTC") == utc(2025, 3, 10, 9, 0)

    @pytest.mark.parametrize("text", ["", "not a date", "2025-13-45"])
    def test_garbage_raises(self, text):
        with pytest.raises(DateTimeParseError):
            parse_datetime(text, "UTC")


class TestTimeInstant:

    def test_requires_aware_datetime(self):
        with pytest.raises(TypeError):
            TimeInstant(datetime(2025, 1, 1))

    def test_unknown_zone_rejected(self):
        with pytest.raises(UnknownTimezone):
            TimeInstant(utc(2025, 1, 1), "Nowhere/Special")

    def test_equality_ignores_zone(self):
        a = TimeInstant.parse("2025-01-01 12:00", "UTC")
        b = TimeInstant.parse("2025-01-01 07:00", NY)
        assert a == b
        assert hash(a) == hash(b)
        assert a.zone != b.zone

    def test_ordering_uses_absolute_time(self):
        # 01:30 EST (second pass) is later than 01:50 EDT (first pass)
        first = TimeInstant(utc(2025, 11, 2, 5, 50), NY)
        second = TimeInstant(utc(2025, 11, 2, 6, 30), NY)
        assert first.local.hour == 1 and second.local.hour == 1
        assert first < second
        assert second - first == timedelta(minutes=40)

    def test_local_view(self):
        instant = TimeInstant.from_local(datetime(2025, 3, 10, 9, 0), NY)
        assert instant.utc == utc(2025, 3, 10, 13, 0)
        assert (instant.local.hour, instant.local.minute) == (9, 0)
        assert instant.weekday == 0
        assert str(instant) == "2025-03-10 09:00:00 America/New_York"

    def test_arithmetic_keeps_zone(self):
        instant = TimeInstant.parse("2025-03-08 09:00", NY)
        later = instant + timedelta(hours=24)
        assert later.zone == NY
        # 24 absolute hours across spring-forward lands at 10:00 local
        assert later.local.hour == 10
        assert later - timedelta(hours=24) == instant

    def test_from_datetime_derives_zone(self):
        value = datetime(2025, 6, 1, 12, tzinfo=dateutil_tz.gettz(NY))
        assert TimeInstant.from_datetime(value).zone == NY


class TestZonedInterval:

    def test_inverted_interval_rejected(self):
        start = TimeInstant.parse("2025-01-01 10:00")
        with pytest.raises(InvalidInterval):
            ZonedInterval(start, start - timedelta(minutes=1))

    def test_inverted_window_rejected(self):
        start = TimeInstant.parse("2025-01-01 10:00")
        with pytest.raises(InvalidWindow):
            ZonedInterval.window(start, start - timedelta(minutes=1))

    def test_empty_interval_is_legal(self):
        start = TimeInstant.parse("2025-01-01 10:00")
        interval = ZonedInterval(start, start)
        assert interval.is_empty
        assert interval.duration == timedelta(0)

    def test_adjacent_intervals_do_not_overlap(self):
        a = ZonedInterval.from_local("2025-01-01 09:00", "2025-01-01 10:00")
        b = ZonedInterval.from_local("2025-01-01 10:00", "2025-01-01 11:00")
        assert not a.overlaps(b)
        assert a.intersection(b) is None

    def test_empty_interval_never_overlaps(self):
        meeting = ZonedInterval.from_local("2025-01-01 09:00", "2025-01-01 10:00")
        marker = ZonedInterval.from_local("2025-01-01 09:30", "2025-01-01 09:30")
        assert not meeting.overlaps(marker)
        assert not marker.overlaps(meeting)
        assert meeting.intersection(marker) is None
        assert marker.intersects(meeting)

    def test_overlap_across_zones(self):
        a = ZonedInterval.from_local("2025-01-01 09:00", "2025-01-01 10:00", NY)
        b = ZonedInterval.from_local("2025-01-01 14:30", "2025-01-01 15:30", "UTC")
        assert a.overlaps(b)
        assert a.intersection(b).duration == timedelta(minutes=30)

    def test_empty_interval_window_membership(self):
        window = ZonedInterval.from_local("2025-01-01 09:00", "2025-01-01 10:00")
        inside = TimeInstant.parse("2025-01-01 09:00")
        at_end = TimeInstant.parse("2025-01-01 10:00")
        assert ZonedInterval(inside, inside).intersects(window)
        assert not ZonedInterval(at_end, at_end).intersects(window)

    def test_duration_across_spring_forward(self):
        day = ZonedInterval.from_local("2025-03-09 00:00", "2025-03-10 00:00", NY)
        assert day.duration == timedelta(hours=23)

    def test_clip(self):
        window = ZonedInterval.from_local("2025-01-01 09:00", "2025-01-01 10:00")
        event = ZonedInterval.from_local("2025-01-01 08:30", "2025-01-01 09:15")
        assert event.clip(window) == ZonedInterval.from_local("2025-01-01 09:00", "2025-01-01 09:15")
        assert window.contains(event.clip(window))
