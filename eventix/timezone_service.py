"""
Timezone service backed by dateutil's tz database.

Resolves zone identifiers, converts civil (wall-clock) datetimes to absolute
UTC instants, reports UTC offsets/DST, and parses date/time strings in a zone.
Unknown zone identifiers raise UnknownTimezone; nothing silently defaults to UTC.
"""

from datetime import datetime, timedelta
from functools import lru_cache
from typing import NamedTuple, Optional, Union

from dateutil import parser as dateutil_parser
from dateutil import tz as dateutil_tz

from eventix.errors import DateTimeParseError, UnknownTimezone

UTC = dateutil_tz.UTC


class ZoneOffset(NamedTuple):
    offset: timedelta
    is_dst: bool


@lru_cache(maxsize=256)
def resolve_zone(zone: str):
    """
    Resolve an IANA zone identifier (e.g. "America/New_York") to a tzinfo.

    Raises:
        UnknownTimezone: if the identifier is empty or not in the tz database
    """
    if not isinstance(zone, str) or not zone.strip():
        raise UnknownTimezone(zone)
    name = zone.strip()
    if name.upper() in ("UTC", "Z", "ETC/UTC"):
        return UTC
    # gettz also accepts file paths, POSIX TZ strings and the local zone's
    # abbreviations; only database names are valid zone identifiers here.
    if name.startswith((":", "/")) or ".." in name:
        raise UnknownTimezone(zone)
    try:
        tzinfo = dateutil_tz.gettz(name)
    except ValueError as err:
        raise UnknownTimezone(zone) from err
    if tzinfo is None or isinstance(tzinfo, (dateutil_tz.tzlocal, dateutil_tz.tzstr)):
        raise UnknownTimezone(zone)
    return tzinfo


def localize(naive: datetime, zone: str) -> datetime:
    """
    Resolve a civil datetime in zone to an absolute instant (returned in UTC).

    Non-existent local times (spring-forward gap) move forward by the gap
    length; ambiguous local times (fall-back) resolve to the earlier instant.
    """
    tzinfo = resolve_zone(zone)
    local = naive.replace(tzinfo=tzinfo, fold=0)
    if not dateutil_tz.datetime_exists(local):
        local = dateutil_tz.resolve_imaginary(local)
    return local.astimezone(UTC)


def to_local(instant: datetime, zone: str) -> datetime:
    """Convert an aware datetime to the civil time of zone."""
    return instant.astimezone(resolve_zone(zone))


def utc_offset(zone: str, instant: datetime) -> ZoneOffset:
    """Return the UTC offset in effect in zone at instant, and whether it is DST."""
    local = to_local(instant, zone)
    dst = local.dst()
    return ZoneOffset(offset=local.utcoffset(), is_dst=bool(dst))


def is_dst(zone: str, instant: datetime) -> bool:
    return utc_offset(zone, instant).is_dst


def zone_name_of(tzinfo) -> Optional[str]:
    """
    Attempt to extract an IANA timezone identifier from a tzinfo object.
    """
    if tzinfo is None:
        return None
    if tzinfo is UTC or isinstance(tzinfo, dateutil_tz.tzutc):
        return "UTC"

    # Common attributes exposed by zoneinfo.ZoneInfo or pytz timezones
    for attr in ("key", "zone"):
        value = getattr(tzinfo, attr, None)
        if isinstance(value, str) and value:
            return value

    # dateutil tzfile keeps the path it was loaded from
    filename = getattr(tzinfo, "_filename", None)
    if isinstance(filename, str) and filename:
        marker = "zoneinfo/"
        if marker in filename:
            return filename.split(marker, 1)[1]
        if "/" in filename and not filename.startswith("/"):
            return filename

    value = tzinfo.tzname(None)
    if isinstance(value, str) and value.upper() == "UTC":
        return "UTC"
    return None


def describe_offset(dt: datetime) -> str:
    """Readable zone display for an aware datetime, e.g. 'EST (UTC-5)' or 'IST (UTC+5:30)'."""
    if dt.tzinfo is None:
        return "None"
    tz_offset = dt.strftime("%z")  # e.g., "-0500"
    tz_name = dt.strftime("%Z")      # e.g., "EST"
    offset_hours = int(tz_offset[1:3])
    offset_mins = int(tz_offset[3:5])
    if offset_mins == 0:
        return f"{tz_name} (UTC{tz_offset[0]}{offset_hours})"
    return f"{tz_name} (UTC{tz_offset[0]}{offset_hours}:{offset_mins:02d})"


def parse_datetime(text: Union[str, datetime], zone: str) -> datetime:
    """
    Parse a date/time string as civil time in zone and return the UTC instant.

    Accepts 'YYYY-MM-DD HH:MM:SS', 'YYYY-MM-DDTHH:MM:SS' and anything else
    dateutil can parse. A string carrying its own offset is taken as an
    absolute instant.

    Raises:
        DateTimeParseError: if the string cannot be parsed
        UnknownTimezone: if zone cannot be resolved
    """
    resolve_zone(zone)
    if isinstance(text, datetime):
        dt = text
    else:
        if not isinstance(text, str) or not text.strip():
            raise DateTimeParseError(f"Could not parse {text!r}: empty date/time")
        try:
            dt = dateutil_parser.parse(text)
        except (ValueError, OverflowError) as err:
            raise DateTimeParseError(
                f"Could not parse '{text}'. Expected format: 'YYYY-MM-DD HH:MM:SS' "
                f"or 'YYYY-MM-DDTHH:MM:SS' ({err})"
            ) from err

    # Strip microseconds to avoid precision issues and cleaner logs
    if dt.microsecond != 0:
        dt = dt.replace(microsecond=0)

    if dt.tzinfo is None:
        return localize(dt, zone)
    return dt.astimezone(UTC)
