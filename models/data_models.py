"""
data_models.py - Core Data Structures
======================================

Data models for flight legs, entered times, derived durations and
logbook statistics.

All instants are timezone-aware UTC datetimes (pytz.utc). A flight's
nominal date is a UTC calendar day with no time-of-day component.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple
from enum import Enum
import uuid

import pytz


# ============================================================================
# ENUMS
# ============================================================================

class FlightEvent(Enum):
    """The four flight-timing events, in sequence order"""
    OUT = "out"    # Off chocks / pushback
    OFF = "off"    # Wheels up
    ON = "on"      # Wheels down
    IN = "in"      # On chocks

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def sequence(cls) -> Tuple['FlightEvent', ...]:
        return (cls.OUT, cls.OFF, cls.ON, cls.IN)


class OperatingCapacity(Enum):
    """Holder's operating capacity as written in the logbook"""
    P1 = "P1"
    P1_US = "P1 U/S"
    P2 = "P2"
    P2X = "P2X"
    PUT = "P U/T"

    @property
    def description(self) -> str:
        return {
            OperatingCapacity.P1: "Pilot in Command",
            OperatingCapacity.P1_US: "Pilot in Command Under Supervision",
            OperatingCapacity.P2: "Co-Pilot",
            OperatingCapacity.P2X: "Co-Pilot with Extended Duties",
            OperatingCapacity.PUT: "Pilot Under Training",
        }[self]

    @classmethod
    def sim_options(cls) -> Tuple['OperatingCapacity', ...]:
        """Capacities a simulator session can be logged in"""
        return (cls.PUT, cls.P1_US)


class CrewPosition(Enum):
    """Seat held on the flight deck"""
    CAPTAIN = "CN"
    FIRST_OFFICER = "FO"
    SECOND_OFFICER = "SO"


# ============================================================================
# TIME STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class RawClockTime:
    """
    Wall-clock time as typed or imported (HHmm).

    Carries no date; it only becomes an instant once anchored by the
    time normalizer.
    """
    hour: int
    minute: int

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour must be 0-23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute must be 0-59, got {self.minute}")

    def __str__(self) -> str:
        return f"{self.hour:02d}{self.minute:02d}"

    @classmethod
    def from_instant(cls, instant: datetime) -> 'RawClockTime':
        """Clock reading of an instant in UTC"""
        utc_instant = instant.astimezone(pytz.utc) if instant.tzinfo else instant
        return cls(hour=utc_instant.hour, minute=utc_instant.minute)


@dataclass(frozen=True)
class NormalizationContext:
    """Anchor used to resolve a RawClockTime into an absolute instant"""
    flight_date: date
    previous_instant: datetime


@dataclass(frozen=True)
class DurationSet:
    """
    Derived intervals of a flight leg.

    Values are signed; an unnormalized or broken sequence shows up as a
    negative interval instead of silently wrapping around midnight.
    """
    block_time: timedelta      # IN - OUT
    flight_time: timedelta     # ON - OFF
    taxi_out_time: timedelta   # OFF - OUT
    taxi_in_time: timedelta    # IN - ON

    @property
    def block_hours(self) -> float:
        return self.block_time.total_seconds() / 3600

    @property
    def flight_hours(self) -> float:
        return self.flight_time.total_seconds() / 3600


# ============================================================================
# REFERENCE DATA
# ============================================================================

@dataclass
class Aircraft:
    """Airframe known to the logbook"""
    registration: str
    type: str


@dataclass
class Airport:
    """Airport with timezone information"""
    icao: str           # e.g. "VHHH"
    iata: str           # e.g. "HKG"
    name: str = ""
    timezone: str = "UTC"   # IANA (e.g., "Asia/Hong_Kong")
    latitude: float = 0.0
    longitude: float = 0.0


# ============================================================================
# FLIGHT LEG
# ============================================================================

@dataclass
class FlightLeg:
    """
    A single logged flight, with its four times resolved to UTC instants.

    Once normalized and validated: out_time <= off_time <= on_time <= in_time.
    """
    flight_number: str
    date: date
    aircraft_registration: str
    aircraft_type: str
    departure_airport: str
    arrival_airport: str
    out_time: datetime
    off_time: datetime
    on_time: datetime
    in_time: datetime
    pilot_in_command: str = ""
    is_self: bool = False
    operating_capacity: OperatingCapacity = OperatingCapacity.P2
    position: CrewPosition = CrewPosition.FIRST_OFFICER
    is_pf: bool = False
    is_ifr: bool = True
    is_vfr: bool = False
    landings: int = 1
    notes: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def instants(self) -> Tuple[datetime, datetime, datetime, datetime]:
        return (self.out_time, self.off_time, self.on_time, self.in_time)

    def instant_for(self, event: FlightEvent) -> datetime:
        return self.instants[FlightEvent.sequence().index(event)]

    @property
    def durations(self) -> DurationSet:
        # Local import keeps models free of a hard dependency cycle on core
        from core.durations import compute_durations
        return compute_durations(self.instants)

    @property
    def block_time(self) -> timedelta:
        return self.durations.block_time

    @property
    def flight_time(self) -> timedelta:
        return self.durations.flight_time

    @property
    def is_cross_country(self) -> bool:
        return self.departure_airport.upper() != self.arrival_airport.upper()


@dataclass
class FlightDraft:
    """
    A flight being entered or edited.

    Holds the four entered time strings exactly as typed. Instants are never
    stored here; they are derived on demand by normalization so the raw and
    normalized views cannot drift apart.
    """
    flight_number: str = ""
    date: date = field(default_factory=lambda: datetime.now(pytz.utc).date())
    aircraft_registration: str = ""
    aircraft_type: str = ""
    departure_airport: str = ""
    arrival_airport: str = ""
    pilot_in_command: str = ""
    is_self: bool = False
    operating_capacity: OperatingCapacity = OperatingCapacity.P2
    position: CrewPosition = CrewPosition.FIRST_OFFICER
    is_pf: bool = False
    is_ifr: bool = True
    is_vfr: bool = False
    landings: int = 1
    notes: str = ""
    entered_times: Dict[FlightEvent, str] = field(default_factory=lambda: {
        event: "" for event in FlightEvent.sequence()
    })

    @classmethod
    def empty(cls, now: Optional[datetime] = None,
              off_offset_minutes: int = 30,
              on_offset_minutes: int = 120,
              in_offset_minutes: int = 150) -> 'FlightDraft':
        """New entry with placeholder times OUT=now, OFF/ON/IN offset from it"""
        from core.display import format_zulu

        now = (now or datetime.now(pytz.utc)).astimezone(pytz.utc)
        instants = (
            now,
            now + timedelta(minutes=off_offset_minutes),
            now + timedelta(minutes=on_offset_minutes),
            now + timedelta(minutes=in_offset_minutes),
        )
        return cls(
            date=now.date(),
            entered_times={
                event: format_zulu(instant, reference=now)
                for event, instant in zip(FlightEvent.sequence(), instants)
            },
        )

    @classmethod
    def from_leg(cls, leg: FlightLeg) -> 'FlightDraft':
        """Seed a draft from a stored leg for editing"""
        from core.display import format_zulu

        # OUT is re-anchored to the draft date, so take it from the OUT instant
        return cls(
            flight_number=leg.flight_number,
            date=leg.out_time.astimezone(pytz.utc).date(),
            aircraft_registration=leg.aircraft_registration,
            aircraft_type=leg.aircraft_type,
            departure_airport=leg.departure_airport,
            arrival_airport=leg.arrival_airport,
            pilot_in_command=leg.pilot_in_command,
            is_self=leg.is_self,
            operating_capacity=leg.operating_capacity,
            position=leg.position,
            is_pf=leg.is_pf,
            is_ifr=leg.is_ifr,
            is_vfr=leg.is_vfr,
            landings=leg.landings,
            notes=leg.notes,
            entered_times={
                event: format_zulu(leg.instant_for(event), reference=leg.out_time)
                for event in FlightEvent.sequence()
            },
        )

    @property
    def raw_times(self) -> Tuple[str, str, str, str]:
        return tuple(self.entered_times.get(event, "") for event in FlightEvent.sequence())

    def set_time(self, event: FlightEvent, text: str) -> None:
        self.entered_times[event] = text

    def update_time(self, instant: datetime, event: FlightEvent) -> None:
        """
        Accept a time picked as an instant (e.g. from a picker wheel).

        Only the clock reading is kept; the event and everything downstream
        is re-derived on the next normalization.
        """
        self.entered_times[event] = str(RawClockTime.from_instant(instant))

    def normalized_instants(self) -> Optional[Tuple[datetime, datetime, datetime, datetime]]:
        from core.time_normalizer import normalize_entered_times
        return normalize_entered_times(self.date, self.raw_times)

    def to_leg(self, leg_id: Optional[str] = None) -> FlightLeg:
        """
        Build the persisted leg.

        Raises ValueError if any entered time does not parse; callers are
        expected to validate first.
        """
        instants = self.normalized_instants()
        if instants is None:
            raise ValueError("Cannot build a flight leg from unparseable times")
        out_time, off_time, on_time, in_time = instants
        leg = FlightLeg(
            flight_number=self.flight_number.strip(),
            date=self.date,
            aircraft_registration=self.aircraft_registration.strip().upper(),
            aircraft_type=self.aircraft_type.strip().upper(),
            departure_airport=self.departure_airport.strip().upper(),
            arrival_airport=self.arrival_airport.strip().upper(),
            out_time=out_time,
            off_time=off_time,
            on_time=on_time,
            in_time=in_time,
            pilot_in_command=self.pilot_in_command.strip(),
            is_self=self.is_self,
            operating_capacity=self.operating_capacity,
            position=self.position,
            is_pf=self.is_pf,
            is_ifr=self.is_ifr,
            is_vfr=self.is_vfr,
            landings=self.landings,
            notes=self.notes,
        )
        if leg_id is not None:
            leg = replace(leg, id=leg_id)
        return leg


# ============================================================================
# SIMULATOR SESSIONS
# ============================================================================

@dataclass
class SimSession:
    """
    A simulator session. Logged by date and hours, not by OUT/OFF/ON/IN.

    registration identifies the simulator device; it is not an airframe.
    """
    date: date = field(default_factory=lambda: datetime.now(pytz.utc).date())
    aircraft_type: str = ""
    registration: str = ""
    pilot_in_command: str = ""
    operating_capacity: OperatingCapacity = OperatingCapacity.PUT
    instrument_hours: float = 0.0
    simulator_hours: float = 0.0
    notes: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def instrument_time(self) -> timedelta:
        return timedelta(hours=self.instrument_hours)

    @property
    def simulator_time(self) -> timedelta:
        return timedelta(hours=self.simulator_hours)

    @property
    def formatted_instrument_time(self) -> str:
        from core.durations import format_duration
        return format_duration(self.instrument_time)

    @property
    def formatted_simulator_time(self) -> str:
        from core.durations import format_duration
        return format_duration(self.simulator_time)

    def cleaned(self) -> 'SimSession':
        """Copy with text fields stripped and codes uppercased, as persisted"""
        return replace(
            self,
            aircraft_type=self.aircraft_type.strip().upper(),
            registration=self.registration.strip().upper(),
            pilot_in_command=self.pilot_in_command.strip(),
        )


# ============================================================================
# STATISTICS
# ============================================================================

@dataclass
class MetricGroup:
    """Aggregated totals for a set of flights"""
    block_hours: float = 0.0
    flights: int = 0
    landings: int = 0
    night_hours: float = 0.0
    pic_hours: float = 0.0
    cross_country_hours: float = 0.0

    def formatted(self) -> Dict[str, str]:
        """Display strings, hours to one decimal"""
        return {
            'block_hours': f"{self.block_hours:.1f}",
            'flights': str(self.flights),
            'landings': str(self.landings),
            'night_hours': f"{self.night_hours:.1f}",
            'pic_hours': f"{self.pic_hours:.1f}",
            'cross_country_hours': f"{self.cross_country_hours:.1f}",
        }


# ============================================================================
# IMPORT RESULTS
# ============================================================================

@dataclass
class ImportRowError:
    """A row that could not be turned into a flight leg"""
    line_number: Optional[int]     # None when rejected after parsing
    line: str
    reason: str


@dataclass
class ImportResult:
    """Outcome of a bulk import; bad rows never abort the batch"""
    flights: List[FlightLeg] = field(default_factory=list)
    errors: List[ImportRowError] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.flights)

    @property
    def failed_count(self) -> int:
        return len(self.errors)
