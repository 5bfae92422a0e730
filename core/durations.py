"""
Derived flight durations: block, flight and taxi times.
"""

from datetime import datetime, timedelta
from typing import Sequence

from models.data_models import DurationSet


def compute_durations(instants: Sequence[datetime]) -> DurationSet:
    """
    Straight subtraction over (out, off, on, in).

    Nothing is clamped: a sequence that was never normalized gives a
    negative interval, and rejecting it is the validator's job.
    """
    if len(instants) != 4:
        raise ValueError(f"Expected 4 instants (OUT, OFF, ON, IN), got {len(instants)}")
    out_time, off_time, on_time, in_time = instants
    return DurationSet(
        block_time=in_time - out_time,
        flight_time=on_time - off_time,
        taxi_out_time=off_time - out_time,
        taxi_in_time=in_time - on_time,
    )


def format_duration(interval: timedelta) -> str:
    """
    Render as "H:MM", truncating to whole minutes.

    6666 s -> "1:51", 59 s -> "0:00", 30 h -> "30:00", -90 s -> "-0:01".
    """
    total_seconds = interval.total_seconds()
    sign = "-" if total_seconds < 0 else ""
    total_minutes = int(abs(total_seconds)) // 60
    if total_minutes == 0:
        sign = ""
    hours, minutes = divmod(total_minutes, 60)
    return f"{sign}{hours}:{minutes:02d}"


def decimal_hours(interval: timedelta) -> float:
    return interval.total_seconds() / 3600
