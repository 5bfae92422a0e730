"""
Flight Validation Tests
=======================

Rule order (first failure wins), message catalog and duration minimums.

Run: python -m pytest tests/test_validation.py -v
"""

from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest
import pytz

from core.parameters import ValidationThresholds
from core.validation import FlightValidationError, FlightValidator, ValidationError
from models.data_models import FlightDraft, FlightEvent, FlightLeg

UTC = pytz.utc


# ── Helpers ──────────────────────────────────────────────────────────────

def _make_draft(times=("2309", "0024", "0736", "0742"), **overrides):
    draft = FlightDraft(
        flight_number="CX251",
        date=date(2024, 10, 1),
        aircraft_registration="B-KPA",
        aircraft_type="B77W",
        departure_airport="VHHH",
        arrival_airport="EGLL",
        pilot_in_command="J. Smith",
        is_self=False,
    )
    for event, text in zip(FlightEvent.sequence(), times):
        draft.set_time(event, text)
    return replace(draft, **overrides)


def _make_leg(out_time, off_time, on_time, in_time):
    return FlightLeg(
        flight_number="CX251", date=out_time.date(),
        aircraft_registration="B-KPA", aircraft_type="B77W",
        departure_airport="VHHH", arrival_airport="EGLL",
        out_time=out_time, off_time=off_time, on_time=on_time, in_time=in_time,
        pilot_in_command="J. Smith",
    )


@pytest.fixture
def validator():
    return FlightValidator()


# ============================================================================
# REQUIRED FIELDS
# ============================================================================

class TestRequiredFields:

    def test_valid_overnight_flight_passes(self, validator):
        assert validator.validate(_make_draft()) is None

    @pytest.mark.parametrize("field_name, expected", [
        ("flight_number", ValidationError.MISSING_FLIGHT_NUMBER),
        ("aircraft_registration", ValidationError.MISSING_AIRCRAFT_REGISTRATION),
        ("aircraft_type", ValidationError.MISSING_AIRCRAFT_TYPE),
        ("departure_airport", ValidationError.MISSING_DEPARTURE_AIRPORT),
        ("arrival_airport", ValidationError.MISSING_ARRIVAL_AIRPORT),
    ])
    def test_each_required_field(self, validator, field_name, expected):
        assert validator.validate(_make_draft(**{field_name: ""})) is expected

    def test_whitespace_only_counts_as_missing(self, validator):
        assert validator.validate(_make_draft(flight_number="   ")) is ValidationError.MISSING_FLIGHT_NUMBER

    def test_fields_checked_in_order(self, validator):
        draft = _make_draft(aircraft_type="", departure_airport="")
        assert validator.validate(draft) is ValidationError.MISSING_AIRCRAFT_TYPE

    def test_pic_required_only_when_not_self(self, validator):
        assert validator.validate(_make_draft(pilot_in_command="")) is ValidationError.MISSING_PILOT_IN_COMMAND
        assert validator.validate(_make_draft(pilot_in_command="", is_self=True)) is None

    def test_fields_validated_before_times(self, validator):
        draft = _make_draft(times=("1000", "1000", "1000", "1000"), flight_number="")
        assert validator.validate(draft) is ValidationError.MISSING_FLIGHT_NUMBER


# ============================================================================
# TIMES
# ============================================================================

class TestTimeRules:

    @pytest.mark.parametrize("times", [
        ("930", "0945", "1100", "1110"),
        ("0930", "09:45", "1100", "1110"),
        ("0930", "0945", "2460", "1110"),
        ("0930", "0945", "1100", ""),
    ])
    def test_invalid_format(self, validator, times):
        assert validator.validate(_make_draft(times=times)) is ValidationError.INVALID_TIME_FORMAT

    def test_annotated_entries_are_valid_format(self, validator):
        draft = _make_draft(times=("2309z", "0024z (+1)", "0736z (+1)", "0742z (+1)"))
        assert validator.validate(draft) is None

    def test_identical_times_fail_block_minimum(self, validator):
        draft = _make_draft(times=("1000", "1000", "1000", "1000"))
        assert validator.validate(draft) is ValidationError.INVALID_BLOCK_TIME

    def test_zero_flight_time(self, validator):
        draft = _make_draft(times=("1000", "1010", "1010", "1020"))
        assert validator.validate(draft) is ValidationError.INVALID_FLIGHT_TIME

    def test_zero_taxi_times_are_allowed(self, validator):
        draft = _make_draft(times=("1000", "1000", "1100", "1100"))
        assert validator.validate(draft) is None

    def test_out_of_order_instants_on_a_leg(self, validator):
        base = datetime(2024, 10, 1, 10, 0, tzinfo=UTC)
        leg = _make_leg(base, base - timedelta(minutes=5), base + timedelta(hours=1),
                        base + timedelta(hours=1, minutes=10))
        assert validator.validate_leg(leg) is ValidationError.INVALID_TIME_SEQUENCE

    def test_negative_taxi_with_custom_threshold(self):
        strict = FlightValidator(ValidationThresholds(min_taxi_seconds=120))
        draft = _make_draft(times=("1000", "1001", "1100", "1110"))
        assert strict.validate(draft) is ValidationError.INVALID_TAXI_TIME

    def test_accepted_leg_is_monotonic(self, validator):
        draft = _make_draft(times=("2350", "0010", "0520", "0535"))
        assert validator.validate(draft) is None
        out_time, off_time, on_time, in_time = draft.normalized_instants()
        assert out_time <= off_time <= on_time <= in_time


# ============================================================================
# MESSAGES
# ============================================================================

class TestMessages:

    def test_catalog(self):
        assert ValidationError.MISSING_FLIGHT_NUMBER.message == "Flight number is required"
        assert ValidationError.MISSING_PILOT_IN_COMMAND.message == \
            "Pilot in Command name is required when not self"
        assert ValidationError.INVALID_TIME_SEQUENCE.message == "Times must follow: OUT → OFF → ON → IN"
        assert ValidationError.INVALID_TIME_FORMAT.message == "Time must be in HHmm format (e.g., 1230z)"
        assert ValidationError.INVALID_BLOCK_TIME.message == "Block time must be at least 1 minute"
        assert ValidationError.INVALID_FLIGHT_TIME.message == "Flight time must be at least 1 minute"
        assert ValidationError.INVALID_TAXI_TIME.message == "Taxi times cannot be negative"

    def test_every_rule_has_a_message(self):
        for error in ValidationError:
            assert error.message

    def test_exception_wraps_reason(self):
        exc = FlightValidationError(ValidationError.INVALID_BLOCK_TIME)
        assert exc.reason is ValidationError.INVALID_BLOCK_TIME
        assert str(exc) == "Block time must be at least 1 minute"
