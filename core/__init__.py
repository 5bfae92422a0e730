"""
Core Logbook Engine Components
==============================

Main exports for flight time normalization, durations, validation and
statistics.
"""

from core.parameters import (
    RolloverStrategy,
    ValidationThresholds,
    TimeEntryParameters,
    ImportParameters,
    StatisticsParameters,
    LogbookConfig
)

from core.zulu_time import (
    ZuluTimeError,
    InvalidTimeFormat,
    InvalidTimeValue,
    parse_zulu_time,
    try_parse_zulu_time,
    is_valid_zulu_time,
    parse_interactive,
)
from core.time_normalizer import (
    TimeUpdatable,
    start_of_day,
    resolve,
    normalize_sequence,
    normalize_entered_times,
)
from core.durations import compute_durations, format_duration, decimal_hours
from core.display import format_zulu, format_leg_times, format_flight_date
from core.validation import (
    ValidationError,
    FlightValidationError,
    FlightValidator,
    SimValidationError,
    SimSessionRejected,
    SimValidator,
)
from core.statistics import LogbookStatistics
from core.logbook_service import (
    FlightStore,
    InMemoryFlightStore,
    StoreChange,
    LogbookService,
    FlightNotFoundError,
    SimSessionNotFoundError,
    AircraftConflictError,
)

__all__ = [
    # Parameters
    'RolloverStrategy',
    'ValidationThresholds',
    'TimeEntryParameters',
    'ImportParameters',
    'StatisticsParameters',
    'LogbookConfig',
    # Time parsing & normalization
    'ZuluTimeError',
    'InvalidTimeFormat',
    'InvalidTimeValue',
    'parse_zulu_time',
    'try_parse_zulu_time',
    'is_valid_zulu_time',
    'parse_interactive',
    'TimeUpdatable',
    'start_of_day',
    'resolve',
    'normalize_sequence',
    'normalize_entered_times',
    # Durations & display
    'compute_durations',
    'format_duration',
    'decimal_hours',
    'format_zulu',
    'format_leg_times',
    'format_flight_date',
    # Validation
    'ValidationError',
    'FlightValidationError',
    'FlightValidator',
    'SimValidationError',
    'SimSessionRejected',
    'SimValidator',
    # Statistics & service
    'LogbookStatistics',
    'FlightStore',
    'InMemoryFlightStore',
    'StoreChange',
    'LogbookService',
    'FlightNotFoundError',
    'SimSessionNotFoundError',
    'AircraftConflictError',
]
