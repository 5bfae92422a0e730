"""
Flight Time Normalization
=========================

Reconstructs UTC instants for OUT/OFF/ON/IN from date-less clock times.

OUT is anchored to the nominal flight date. Every later event is placed on
the calendar day of the event before it; when that lands earlier than the
previous instant the event is taken to be on the following day. The chain
runs strictly forward (OUT -> OFF -> ON -> IN), so a change to any one time
means re-running the whole sequence.

Known limitation: a gap of more than 24 hours between two consecutive
events cannot be told apart from a shorter one and resolves one day short.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Protocol, Sequence, Tuple, Union

import pytz

from models.data_models import FlightEvent, NormalizationContext, RawClockTime
from core.zulu_time import try_parse_zulu_time

logger = logging.getLogger(__name__)

Instants = Tuple[datetime, datetime, datetime, datetime]


class TimeUpdatable(Protocol):
    """Anything that accepts a picked time for one of the four events"""

    def update_time(self, instant: datetime, event: FlightEvent) -> None:
        ...


def start_of_day(flight_date: Union[date, datetime]) -> datetime:
    """UTC midnight of the given day. Naive datetimes are taken as UTC."""
    if isinstance(flight_date, datetime):
        if flight_date.tzinfo is not None:
            flight_date = flight_date.astimezone(pytz.utc)
        flight_date = flight_date.date()
    return pytz.utc.localize(datetime.combine(flight_date, time(0, 0)))


def combine(day: Union[date, datetime], raw: RawClockTime) -> datetime:
    """Place a clock time on a UTC calendar day"""
    return start_of_day(day) + timedelta(hours=raw.hour, minutes=raw.minute)


def resolve(raw: RawClockTime, context: NormalizationContext) -> datetime:
    """
    Resolve one event against the instant before it.

    At most one rollover is applied per step.
    """
    candidate = combine(context.previous_instant, raw)
    if candidate < context.previous_instant:
        candidate += timedelta(days=1)
    return candidate


def normalize_sequence(flight_date: Union[date, datetime],
                       raw_times: Sequence[RawClockTime]) -> Instants:
    """
    Resolve OUT, OFF, ON, IN clock times into four UTC instants.

    Args:
        flight_date: Nominal flight date (time of day is ignored)
        raw_times: Exactly four clock times in event order

    Returns:
        (out, off, on, in) as aware UTC datetimes
    """
    if len(raw_times) != 4:
        raise ValueError(f"Expected 4 clock times (OUT, OFF, ON, IN), got {len(raw_times)}")

    day = start_of_day(flight_date)
    out_time = combine(day, raw_times[0])

    instants = [out_time]
    for raw in raw_times[1:]:
        context = NormalizationContext(flight_date=day.date(), previous_instant=instants[-1])
        instants.append(resolve(raw, context))

    logger.debug(
        "Normalized %s on %s -> %s",
        " ".join(str(raw) for raw in raw_times),
        day.date().isoformat(),
        ", ".join(instant.isoformat() for instant in instants),
    )
    return tuple(instants)


def normalize_entered_times(flight_date: Union[date, datetime],
                            entered: Sequence[str]) -> Optional[Instants]:
    """Strict-parse four entered strings and normalize them; None if any fails"""
    parsed = [try_parse_zulu_time(text) for text in entered]
    if len(parsed) != 4 or any(raw is None for raw in parsed):
        return None
    return normalize_sequence(flight_date, parsed)
