"""
Command-line entry point.

    python -m activity_tracker replay session.json.gz --mode automatic
    python -m activity_tracker track --mode gps --minutes 30 --store sessions/
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from . import units
from .aggregator import SessionAggregator
from .config import DEFAULT_CONFIG, load_config
from .errors import TrackerError
from .models import Activity, InputMode
from .replay import load_session, replay_session
from .sources import TermuxAccelerometerSource, TermuxLocationSource
from .storage import get_store

logger = logging.getLogger("activity_tracker")

MODES = {mode.name.lower(): mode for mode in InputMode}
ACTIVITIES = {activity.name.lower(): activity for activity in Activity}


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="activity-tracker", description=__doc__,
                                     formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", type=Path, help="JSON file overriding TrackerConfig defaults")
    parser.add_argument("--store", type=Path, help="Directory to save the finished session in")
    parser.add_argument("--imperial", action="store_true", help="Show miles/feet in the summary")

    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Refeed a recorded session file")
    replay.add_argument("session", type=Path, help="Path to a *.json[.gz] session recording")
    replay.add_argument("--mode", choices=sorted(MODES), default="automatic")
    replay.add_argument("--activity", choices=sorted(ACTIVITIES), default="standing",
                        help="Activity for Manual/GPS sessions (initial label for Automatic)")

    track = sub.add_parser("track", help="Track live from Termux sensors")
    track.add_argument("--mode", choices=["gps", "automatic"], default="automatic")
    track.add_argument("--activity", choices=sorted(ACTIVITIES), default="standing")
    track.add_argument("--minutes", type=float, help="Stop after this long (default: until Ctrl+C)")
    track.add_argument("--linear", action="store_true",
                       help="Read LINEAR_ACCELERATION (gravity already removed)")

    return parser.parse_args(argv)


def print_summary(session, system=units.METRIC) -> None:
    print("\n" + "=" * 50)
    print(f"SESSION SUMMARY ({session.mode.name})")
    print("=" * 50)
    print(f"  Activity:  {units.activity_name(session.activity)}")
    print(f"  Duration:  {units.format_duration(session.duration_s)}")
    print(f"  Distance:  {units.format_distance(session.distance_m, system)}")
    print(f"  Avg speed: {units.format_speed(session.avg_speed_mps, system)}")
    print(f"  Avg pace:  {units.format_pace(session.avg_pace_s_per_m, system)}")
    print(f"  Climb:     {units.format_climb(session.climb_m, system)}")
    print(f"  Calories:  {units.format_calories(session.calories_kcal)}")
    print(f"  Route:     {len(session.route)} points")
    if session.id is not None:
        print(f"  Saved as:  #{session.id}")


def run_replay(args, config, store):
    data = load_session(args.session)
    session = replay_session(
        data,
        mode=MODES[args.mode],
        activity_hint=ACTIVITIES[args.activity],
        config=config,
        store=store,
    )
    print(f"✓ Replayed {args.session}")
    return session


def run_track(args, config, store):
    accel_source = None
    if args.mode == "automatic":
        accel_source = TermuxAccelerometerSource(
            sensor="LINEAR_ACCELERATION" if args.linear else "ACCELEROMETER",
            delay_ms=config.accel_sample_delay_ms,
            linear_acceleration=args.linear,
        )
    location_source = TermuxLocationSource(poll_interval=config.location_poll_interval_s)

    last_line = [0.0]

    def show(snapshot):
        now = time.time()
        if now - last_line[0] < 5:
            return
        last_line[0] = now
        print(f"  {units.format_duration(snapshot.duration_s):>10} | "
              f"{units.format_distance(snapshot.distance_m)} | "
              f"{units.format_speed(snapshot.current_speed_mps)} | "
              f"{units.activity_name(snapshot.activity)}")

    tracker = SessionAggregator(
        config=config,
        observer=show,
        location_source=location_source,
        accel_source=accel_source,
        store=store,
    )
    tracker.start(MODES[args.mode], ACTIVITIES[args.activity])
    deadline = time.time() + args.minutes * 60 if args.minutes else None
    print("Tracking... (Ctrl+C to stop)")
    try:
        while deadline is None or time.time() < deadline:
            time.sleep(0.5)
    except KeyboardInterrupt:
        print("\nStopping...")
    return tracker.stop()


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config) if args.config else DEFAULT_CONFIG
        store = get_store("json", directory=args.store) if args.store else None
        if args.command == "replay":
            session = run_replay(args, config, store)
        else:
            session = run_track(args, config, store)
    except (TrackerError, OSError, RuntimeError) as e:
        logger.error(f"Error: {e}")
        return 1

    if session is not None:
        print_summary(session, units.IMPERIAL if args.imperial else units.METRIC)
    return 0


if __name__ == "__main__":
    sys.exit(main())
