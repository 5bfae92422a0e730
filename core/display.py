"""
Zulu display strings for flight times.
"""

from datetime import date, datetime
from typing import Dict, Optional

import pytz

from models.data_models import FlightEvent, FlightLeg


def _utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return pytz.utc.localize(instant)
    return instant.astimezone(pytz.utc)


def format_zulu(instant: datetime, reference: Optional[datetime] = None,
                zulu_suffix: str = "z", next_day_suffix: str = " (+1)") -> str:
    """
    "HHmmz" in UTC, with " (+1)" when the instant falls on a later UTC
    calendar day than the reference (normally the flight's OUT time).
    """
    instant_utc = _utc(instant)
    text = instant_utc.strftime("%H%M") + zulu_suffix
    if reference is not None and instant_utc.date() > _utc(reference).date():
        text += next_day_suffix
    return text


def format_leg_times(leg: FlightLeg) -> Dict[FlightEvent, str]:
    """Display strings for all four events of a leg, relative to OUT"""
    return {
        event: format_zulu(leg.instant_for(event), reference=leg.out_time)
        for event in FlightEvent.sequence()
    }


def format_flight_date(flight_date: date) -> str:
    """e.g. "01 Oct 2024" """
    return flight_date.strftime("%d %b %Y")
