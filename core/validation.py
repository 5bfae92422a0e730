"""
Flight Validation
=================

Business rules that gate persistence of a flight leg.

Rules are checked in a fixed order and the first one violated is reported:
1. Required text fields (flight number, registration, type, airports)
2. Pilot in command when the pilot is not self
3. Entered time format (strict HHmm)
4. Chronological order OUT <= OFF <= ON <= IN on normalized instants
5. Block time minimum
6. Flight time minimum
7. Non-negative taxi times

Simulator sessions have their own shorter rule set (SimValidator).

The message attached to each rule is shown to the pilot verbatim.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from models.data_models import FlightDraft, FlightLeg, OperatingCapacity, SimSession
from core.parameters import ValidationThresholds
from core.durations import compute_durations
from core.time_normalizer import normalize_entered_times
from core.zulu_time import is_valid_zulu_time


class ValidationError(Enum):
    """First failing rule for a flight, with its user-facing message"""
    MISSING_FLIGHT_NUMBER = "missingFlightNumber"
    MISSING_AIRCRAFT_REGISTRATION = "missingAircraftRegistration"
    MISSING_AIRCRAFT_TYPE = "missingAircraftType"
    MISSING_DEPARTURE_AIRPORT = "missingDepartureAirport"
    MISSING_ARRIVAL_AIRPORT = "missingArrivalAirport"
    MISSING_PILOT_IN_COMMAND = "missingPilotInCommand"
    INVALID_TIME_SEQUENCE = "invalidTimeSequence"
    INVALID_TIME_FORMAT = "invalidTimeFormat"
    INVALID_BLOCK_TIME = "invalidBlockTime"
    INVALID_FLIGHT_TIME = "invalidFlightTime"
    INVALID_TAXI_TIME = "invalidTaxiTime"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    ValidationError.MISSING_FLIGHT_NUMBER: "Flight number is required",
    ValidationError.MISSING_AIRCRAFT_REGISTRATION: "Aircraft registration is required",
    ValidationError.MISSING_AIRCRAFT_TYPE: "Aircraft type is required",
    ValidationError.MISSING_DEPARTURE_AIRPORT: "Departure airport is required",
    ValidationError.MISSING_ARRIVAL_AIRPORT: "Arrival airport is required",
    ValidationError.MISSING_PILOT_IN_COMMAND: "Pilot in Command name is required when not self",
    ValidationError.INVALID_TIME_SEQUENCE: "Times must follow: OUT → OFF → ON → IN",
    ValidationError.INVALID_TIME_FORMAT: "Time must be in HHmm format (e.g., 1230z)",
    ValidationError.INVALID_BLOCK_TIME: "Block time must be at least 1 minute",
    ValidationError.INVALID_FLIGHT_TIME: "Flight time must be at least 1 minute",
    ValidationError.INVALID_TAXI_TIME: "Taxi times cannot be negative",
}


class FlightValidationError(Exception):
    """Raised by callers that refuse to persist an invalid flight"""

    def __init__(self, reason: ValidationError):
        super().__init__(reason.message)
        self.reason = reason


class FlightValidator:
    """Validate flight drafts and legs; pure, no side effects"""

    def __init__(self, thresholds: ValidationThresholds = None):
        self.thresholds = thresholds or ValidationThresholds()

    def validate(self, draft: FlightDraft) -> Optional[ValidationError]:
        """Check a draft with entered time strings. Returns None when valid."""
        error = self._check_fields(draft)
        if error:
            return error

        if not all(is_valid_zulu_time(text) for text in draft.raw_times):
            return ValidationError.INVALID_TIME_FORMAT

        return self.check_times(normalize_entered_times(draft.date, draft.raw_times))

    def validate_leg(self, leg: FlightLeg) -> Optional[ValidationError]:
        """Check a leg that already carries instants (e.g. an imported row)"""
        return self._check_fields(leg) or self.check_times(leg.instants)

    def check_times(self, instants: Sequence[datetime]) -> Optional[ValidationError]:
        out_time, off_time, on_time, in_time = instants
        if not (out_time <= off_time <= on_time <= in_time):
            return ValidationError.INVALID_TIME_SEQUENCE

        durations = compute_durations(instants)
        if durations.block_time.total_seconds() < self.thresholds.min_block_seconds:
            return ValidationError.INVALID_BLOCK_TIME
        if durations.flight_time.total_seconds() < self.thresholds.min_flight_seconds:
            return ValidationError.INVALID_FLIGHT_TIME
        if (durations.taxi_out_time.total_seconds() < self.thresholds.min_taxi_seconds or
                durations.taxi_in_time.total_seconds() < self.thresholds.min_taxi_seconds):
            return ValidationError.INVALID_TAXI_TIME
        return None

    @staticmethod
    def _check_fields(entry) -> Optional[ValidationError]:
        required = (
            (entry.flight_number, ValidationError.MISSING_FLIGHT_NUMBER),
            (entry.aircraft_registration, ValidationError.MISSING_AIRCRAFT_REGISTRATION),
            (entry.aircraft_type, ValidationError.MISSING_AIRCRAFT_TYPE),
            (entry.departure_airport, ValidationError.MISSING_DEPARTURE_AIRPORT),
            (entry.arrival_airport, ValidationError.MISSING_ARRIVAL_AIRPORT),
        )
        for value, error in required:
            if not (value or "").strip():
                return error

        if not entry.is_self and not (entry.pilot_in_command or "").strip():
            return ValidationError.MISSING_PILOT_IN_COMMAND
        return None


# ============================================================================
# SIMULATOR SESSIONS
# ============================================================================

class SimValidationError(Enum):
    """First failing rule for a simulator session"""
    MISSING_AIRCRAFT_TYPE = "missingAircraftType"
    MISSING_REGISTRATION = "missingRegistration"
    MISSING_PILOT_IN_COMMAND = "missingPilotInCommand"
    INVALID_OPERATING_CAPACITY = "invalidOperatingCapacity"
    NEGATIVE_TIME = "negativeTime"

    @property
    def message(self) -> str:
        return _SIM_MESSAGES[self]


_SIM_MESSAGES = {
    SimValidationError.MISSING_AIRCRAFT_TYPE: "Aircraft type is required",
    SimValidationError.MISSING_REGISTRATION: "Registration is required",
    SimValidationError.MISSING_PILOT_IN_COMMAND: "PIC is required",
    SimValidationError.INVALID_OPERATING_CAPACITY: "Simulator sessions are logged as P U/T or P1 U/S",
    SimValidationError.NEGATIVE_TIME: "Instrument and simulator time cannot be negative",
}


class SimSessionRejected(Exception):
    """Raised by callers that refuse to persist an invalid simulator session"""

    def __init__(self, reason: SimValidationError):
        super().__init__(reason.message)
        self.reason = reason


class SimValidator:
    """Required fields first, then capacity, then hours"""

    def validate(self, session: SimSession) -> Optional[SimValidationError]:
        required = (
            (session.aircraft_type, SimValidationError.MISSING_AIRCRAFT_TYPE),
            (session.registration, SimValidationError.MISSING_REGISTRATION),
            (session.pilot_in_command, SimValidationError.MISSING_PILOT_IN_COMMAND),
        )
        for value, error in required:
            if not (value or "").strip():
                return error

        if session.operating_capacity not in OperatingCapacity.sim_options():
            return SimValidationError.INVALID_OPERATING_CAPACITY
        if session.instrument_hours < 0 or session.simulator_hours < 0:
            return SimValidationError.NEGATIVE_TIME
        return None
