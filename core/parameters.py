"""
Configuration & Parameters for the Logbook Engine
==================================================

All configuration dataclasses for time entry, validation, import and
statistics:
- ValidationThresholds: Minimum durations gating persistence
- TimeEntryParameters: Zulu display conventions and new-entry placeholders
- ImportParameters: Pasted-logbook tokenization and rollover strategy
- StatisticsParameters: Reporting windows and night definition
- LogbookConfig: Master configuration container
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from models.data_models import CrewPosition, OperatingCapacity


class RolloverStrategy(Enum):
    """How an import source encodes day changes between OUT/OFF/ON/IN"""
    EXPLICIT = "explicit"    # Every time carries its own +1/-1 marker relative to the flight date
    INFERRED = "inferred"    # No markers; roll over when a clock time goes backwards
    AUTO = "auto"            # Marker wins for its own event, inference everywhere else


@dataclass
class ValidationThresholds:
    """Minimum durations a leg must satisfy before it can be saved"""

    min_block_seconds: float = 60.0
    min_flight_seconds: float = 60.0
    min_taxi_seconds: float = 0.0

    def __post_init__(self):
        assert self.min_block_seconds >= 0, "min_block_seconds must be non-negative"
        assert self.min_flight_seconds >= 0, "min_flight_seconds must be non-negative"
        assert self.min_taxi_seconds >= 0, "min_taxi_seconds must be non-negative"


@dataclass
class TimeEntryParameters:
    """Zulu display conventions and placeholder offsets for a new entry"""

    zulu_suffix: str = "z"
    next_day_suffix: str = " (+1)"

    # Placeholder times for an empty entry, relative to OUT = now
    off_offset_minutes: int = 30
    on_offset_minutes: int = 120
    in_offset_minutes: int = 150

    def __post_init__(self):
        assert 0 <= self.off_offset_minutes <= self.on_offset_minutes <= self.in_offset_minutes, \
            "placeholder offsets must be in OUT -> OFF -> ON -> IN order"


@dataclass
class ImportParameters:
    """Pasted logbook (crew system export) parsing"""

    # Rows with fewer whitespace-separated tokens are not flight rows
    min_tokens: int = 12

    # Lines containing any of these are headers or rulers
    header_markers: Tuple[str, ...] = ("Sector", "----", "Report Date", "Log Book record")

    # Autoland column flag, not part of the commander's name
    autoland_marker: str = "N"

    date_formats: Tuple[str, ...] = ("%Y/%m/%d", "%Y-%m-%d", "%d/%m/%Y")

    # Fields the export does not carry
    default_aircraft_type: str = "B77W"
    default_capacity: OperatingCapacity = OperatingCapacity.P2X
    default_position: CrewPosition = CrewPosition.SECOND_OFFICER

    rollover_strategy: RolloverStrategy = RolloverStrategy.AUTO
    convert_iata_to_icao: bool = False

    def __post_init__(self):
        assert self.min_tokens >= 10, "a flight row needs at least date, route, reg and four times"
        assert self.date_formats, "at least one date format is required"


@dataclass
class StatisticsParameters:
    """Reporting windows and the night-flight heuristic"""

    monthly_window_days: int = 30

    # A leg counts as night flying when OFF or ON falls in [night_start, 24) or [0, night_end]
    night_start_hour: int = 18
    night_end_hour: int = 6

    # Timezone the night heuristic is evaluated in
    reference_timezone: str = "UTC"

    def __post_init__(self):
        assert self.monthly_window_days > 0, "monthly_window_days must be positive"
        assert 0 <= self.night_start_hour < 24, "night_start_hour must be 0-23"
        assert 0 <= self.night_end_hour < 24, "night_end_hour must be 0-23"


@dataclass
class LogbookConfig:
    """Master configuration container"""

    validation: ValidationThresholds = field(default_factory=ValidationThresholds)
    time_entry: TimeEntryParameters = field(default_factory=TimeEntryParameters)
    import_params: ImportParameters = field(default_factory=ImportParameters)
    statistics: StatisticsParameters = field(default_factory=StatisticsParameters)

    @classmethod
    def default_config(cls):
        return cls()

    @classmethod
    def cathay_export_config(cls):
        """
        Crew-system logbook export.

        Every time column is marked +1/-1 relative to the sector date and
        airports are printed as IATA codes.
        """
        return cls(
            import_params=ImportParameters(
                rollover_strategy=RolloverStrategy.EXPLICIT,
                convert_iata_to_icao=True,
            )
        )

    @classmethod
    def from_preset(cls, name: str):
        presets = {
            'default': cls.default_config,
            'cathay_export': cls.cathay_export_config,
        }
        if name not in presets:
            raise ValueError(
                f"Unknown config preset '{name}'. Must be one of: {', '.join(sorted(presets))}"
            )
        return presets[name]()
