"""
Presentation-side unit conversion and formatting.

The pipeline stores SI values only; everything here is for display.
"""

from .models import Activity

METERS_PER_MILE = 1609.344
METERS_PER_KM = 1000.0
FEET_PER_METER = 3.28084

IMPERIAL = "imperial"
METRIC = "metric"


def convert_distance(distance_m, system=METRIC):
    """Meters → kilometers or miles."""
    if system == IMPERIAL:
        return distance_m / METERS_PER_MILE
    return distance_m / METERS_PER_KM


def distance_unit(system=METRIC, short=False):
    if system == IMPERIAL:
        return "mi" if short else "Miles"
    return "km" if short else "Kilometers"


def format_distance(distance_m, system=METRIC):
    return f"{convert_distance(distance_m, system):.2f} {distance_unit(system)}"


def convert_climb(climb_m, system=METRIC):
    """Meters → meters or feet."""
    return climb_m * FEET_PER_METER if system == IMPERIAL else climb_m


def format_climb(climb_m, system=METRIC):
    unit = "feet" if system == IMPERIAL else "meters"
    return f"{convert_climb(climb_m, system):.2f} {unit}"


def format_speed(speed_mps, system=METRIC):
    if system == IMPERIAL:
        return f"{speed_mps * 3600 / METERS_PER_MILE:.2f} mph"
    return f"{speed_mps * 3.6:.2f} km/h"


def format_pace(pace_s_per_m, system=METRIC):
    """Seconds per meter → "m:ss /km" (or /mi). Zero pace reads as "--"."""
    unit_m = METERS_PER_MILE if system == IMPERIAL else METERS_PER_KM
    if pace_s_per_m <= 0:
        return f"-- /{distance_unit(system, short=True)}"
    total = int(round(pace_s_per_m * unit_m))
    return f"{total // 60}:{total % 60:02d} /{distance_unit(system, short=True)}"


def format_duration(duration_s):
    hours = int(duration_s // 3600)
    minutes = int((duration_s % 3600) // 60)
    seconds = int(duration_s % 60)
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_calories(calories_kcal):
    return f"{calories_kcal:.0f}"


def activity_name(activity):
    try:
        return Activity(activity).label
    except ValueError:
        return "Other"
