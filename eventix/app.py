"""
Command line entry point.
Loads a calendar (JSON, or an .ics import), materializes its occurrences for a window and
reports gaps, overlaps, density and free slots.
"""

import argparse
import sys
from datetime import timedelta
from typing import List, Optional

from eventix.calendar_store import Calendar
from eventix.errors import EventixError
from eventix.ics_generator import export_ics
from eventix.ics_reader import import_ics
from eventix.interval_analyzer import (
    calculate_density,
    find_available_slots,
    find_gaps,
    find_overlaps,
    suggest_alternatives,
)
from eventix.logging_helper import Log
from eventix.settings_manager import (
    get_busy_threshold,
    get_default_timezone,
    get_light_threshold,
    get_log_dir,
    get_log_level,
    get_suggestion_step_minutes,
)
from eventix.time_models import TimeInstant, ZonedInterval


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eventix", description="Analyze a calendar for gaps, overlaps and free slots.")
    parser.add_argument("calendar", help="Calendar JSON file, or an .ics file to import")
    parser.add_argument("--start", required=True, help="Window start, e.g. '2025-03-10 08:00'")
    parser.add_argument("--end", required=True, help="Window end, e.g. '2025-03-10 18:00'")
    parser.add_argument("--zone", help="Zone of the window bounds (default: configured timezone)")
    parser.add_argument("--min-gap", type=int, default=0, metavar="MIN", help="Shortest gap to report, in minutes")
    parser.add_argument("--slot", type=int, metavar="MIN", help="Also list free slots of this many minutes")
    parser.add_argument("--suggest", metavar="TEXT",
                        help="Suggest free times near this start (length: --slot, default 60 minutes)")
    parser.add_argument("--radius", type=int, default=120, metavar="MIN", help="Search radius for --suggest, in minutes")
    parser.add_argument("--exclude-tentative", action="store_true", help="Treat tentative events as free time")
    parser.add_argument("--ics", metavar="OUT", help="Export the calendar as iCalendar to OUT")
    parser.add_argument("--log-level", help="debug, info, warn, error or off (default: configured level)")
    return parser


def run(argv: Optional[List[str]] = None) -> int:
    args = _parser().parse_args(argv)
    Log.configure(level=args.log_level or get_log_level(), log_dir=get_log_dir())

    Log.section("Eventix")
    zone = args.zone or get_default_timezone()
    if args.calendar.lower().endswith(".ics"):
        calendar = import_ics(args.calendar, zone)
    else:
        calendar = Calendar.load(args.calendar)
    window = ZonedInterval.window(TimeInstant.parse(args.start, zone), TimeInstant.parse(args.end, zone))
    include_tentative = not args.exclude_tentative
    Log.info(f"Loaded {calendar!r}; window {window}")

    occurrences = calendar.events_between(window)
    print(f"Occurrences in {window}: {len(occurrences)}")
    for occurrence in occurrences:
        print(f"  {occurrence}")

    gaps = find_gaps(occurrences, window, timedelta(minutes=args.min_gap), include_tentative)
    print(f"Gaps: {len(gaps)}")
    for gap in gaps:
        print(f"  {gap} ({int(gap.duration.total_seconds() // 60)} min)")

    overlaps = find_overlaps(occurrences, window, include_tentative)
    print(f"Overlaps: {len(overlaps)}")
    for first, second in overlaps:
        print(f"  {first} <-> {second}")

    density = calculate_density(occurrences, window, include_tentative)
    if density.is_busy(get_busy_threshold()):
        label = "busy"
    elif density.is_light(get_light_threshold()):
        label = "light"
    else:
        label = "moderate"
    print(
        f"Density: {density.occupancy_percentage:.1f}% occupied ({label}), "
        f"busy {density.busy_duration}, free {density.free_duration}"
    )

    if args.slot:
        slots = find_available_slots(occurrences, window, timedelta(minutes=args.slot), include_tentative)
        print(f"Free {args.slot}-minute slots: {len(slots)}")
        for slot in slots:
            print(f"  {slot}")

    if args.suggest:
        desired_start = TimeInstant.parse(args.suggest, zone)
        desired = ZonedInterval.starting_at(desired_start, timedelta(minutes=args.slot or 60))
        suggestions = suggest_alternatives(
            occurrences,
            desired,
            timedelta(minutes=args.radius),
            step=timedelta(minutes=get_suggestion_step_minutes()),
            include_tentative=include_tentative,
        )
        print(f"Suggestions near {desired_start}: {len(suggestions)}")
        for suggestion in suggestions:
            print(f"  {suggestion}")

    if args.ics:
        path = export_ics(calendar, args.ics)
        print(f"ICS written: {path}")
    return 0


def main():
    """Main entry point for the eventix command."""
    try:
        code = run()
    except EventixError as err:
        Log.error(str(err))
        print(f"eventix: error: {err}", file=sys.stderr)
        code = 2
    except ValueError as err:
        # Log.configure rejects unknown levels
        print(f"eventix: error: {err}", file=sys.stderr)
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
