# logbook_import.py - Pasted logbook / CSV importer

"""
Logbook Import - Turn crew-system logbook exports into flight legs

Supports:
- Pasted whitespace-separated text (crew-system "Log Book record" reports)
- CSV/tabular exports loaded with pandas

Times in exports come in several shapes: "2309", "23:09", "00:24+1",
"0024z (+1)". Some sources mark every day change relative to the sector
date, others print bare clock times and leave the rollover to be inferred.
Both are handled by LogImportTimeExtractor.

A row that cannot be read is recorded as an ImportRowError and the import
carries on with the next row.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from models.data_models import (
    FlightLeg, ImportResult, ImportRowError, NormalizationContext, RawClockTime,
)
from core.parameters import LogbookConfig, RolloverStrategy
from core.time_normalizer import combine, resolve
from core.validation import FlightValidator
from core.zulu_time import clean_zulu_string, try_parse_zulu_time
from parsers.airport_database import AirportDatabase

logger = logging.getLogger(__name__)

_DAY_MARKER = re.compile(r"\s*\(?\s*([+-])1\s*\)?\s*$")
_COLON_TIME = re.compile(r"^(\d{1,2}):(\d{2})$")


# ============================================================================
# TIME EXTRACTION
# ============================================================================

def read_day_marker(raw_token: str) -> Tuple[str, int]:
    """
    Split a trailing "+1"/"-1" (optionally parenthesised) off a time token.

    Returns:
        (token without marker, day adjustment -1/0/+1)
    """
    token = (raw_token or "").strip()
    match = _DAY_MARKER.search(token)
    if not match:
        return token, 0
    adjustment = 1 if match.group(1) == "+" else -1
    return token[:match.start()].strip(), adjustment


def parse_import_clock(token: str) -> Optional[RawClockTime]:
    """Clock time from "HHmm", "HH:mm" or "H:mm", with or without a z suffix"""
    cleaned = clean_zulu_string(token)
    match = _COLON_TIME.match(cleaned)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            return None
        return RawClockTime(hour=hour, minute=minute)
    return try_parse_zulu_time(cleaned)


class LogImportTimeExtractor:
    """
    Resolve imported time tokens into UTC instants.

    With RolloverStrategy.AUTO an explicit marker decides the day of its own
    event only; the events after it are inferred from it as usual.
    """

    def __init__(self, strategy: RolloverStrategy = RolloverStrategy.AUTO):
        self.strategy = strategy

    def extract(self, raw_token: str, day_adjustment: Optional[int],
                flight_date: date) -> Optional[datetime]:
        """
        Instant for one token: flight date + clock + day adjustment.

        Args:
            raw_token: Time token as found in the export
            day_adjustment: -1, 0 or +1; None reads the marker from the token
            flight_date: Sector date printed in the export

        Returns:
            Aware UTC datetime, or None if the token is malformed
        """
        clean, marker = read_day_marker(raw_token)
        if day_adjustment is None:
            day_adjustment = marker
        if day_adjustment not in (-1, 0, 1):
            raise ValueError(f"day_adjustment must be -1, 0 or +1, got {day_adjustment}")

        clock = parse_import_clock(clean)
        if clock is None:
            return None
        return combine(flight_date, clock) + timedelta(days=day_adjustment)

    def extract_sequence(self, tokens: Sequence[str],
                         flight_date: date) -> List[Optional[datetime]]:
        """
        Resolve OUT, OFF, ON, IN tokens in order.

        An event that has to be inferred from an unresolved predecessor is
        left unresolved as well.
        """
        if len(tokens) != 4:
            raise ValueError(f"Expected 4 time tokens (OUT, OFF, ON, IN), got {len(tokens)}")

        instants: List[Optional[datetime]] = []
        for index, token in enumerate(tokens):
            clean, marker = read_day_marker(token)
            clock = parse_import_clock(clean)
            if clock is None:
                instants.append(None)
                continue

            if self.strategy is RolloverStrategy.INFERRED:
                marker = 0
            explicit = (
                index == 0
                or self.strategy is RolloverStrategy.EXPLICIT
                or (self.strategy is RolloverStrategy.AUTO and marker != 0)
            )

            if explicit:
                instants.append(combine(flight_date, clock) + timedelta(days=marker))
            elif instants[-1] is None:
                instants.append(None)
            else:
                context = NormalizationContext(flight_date=flight_date, previous_instant=instants[-1])
                instants.append(resolve(clock, context))
        return instants


# ============================================================================
# COLUMN MAPPING
# ============================================================================

class ColumnType(Enum):
    DATE = "Date"
    FLIGHT_NUMBER = "Flight Number"
    DEPARTURE_AIRPORT = "Departure Airport"
    ARRIVAL_AIRPORT = "Arrival Airport"
    AIRCRAFT_REGISTRATION = "Aircraft Registration"
    OUT_TIME = "Out Time"
    OFF_TIME = "Off Time"
    ON_TIME = "On Time"
    IN_TIME = "In Time"
    PIC = "PIC"
    TAKEOFF = "Takeoff"
    LANDINGS = "Landings"
    AUTOLAND = "Autoland"
    BLOCK_TIME = "Block Time"

    @property
    def is_required(self) -> bool:
        return self not in (ColumnType.TAKEOFF, ColumnType.LANDINGS,
                            ColumnType.AUTOLAND, ColumnType.BLOCK_TIME)

    @property
    def allows_multiple(self) -> bool:
        return self is ColumnType.PIC


TIME_COLUMNS = (ColumnType.OUT_TIME, ColumnType.OFF_TIME, ColumnType.ON_TIME, ColumnType.IN_TIME)


@dataclass
class ImportColumnMapping:
    """
    Which token index holds which field.

    PIC may span several tokens (surname, first name); alternatively
    pic_trailing_from takes every token from that index to the end of the row.
    """
    mappings: Dict[ColumnType, List[int]] = field(default_factory=dict)
    pic_trailing_from: Optional[int] = None

    @classmethod
    def default_mapping(cls) -> 'ImportColumnMapping':
        """Layout of the crew-system Log Book record report"""
        return cls(
            mappings={
                ColumnType.DATE: [0],
                ColumnType.FLIGHT_NUMBER: [1],
                ColumnType.DEPARTURE_AIRPORT: [2],
                ColumnType.ARRIVAL_AIRPORT: [3],
                ColumnType.AIRCRAFT_REGISTRATION: [4],
                ColumnType.BLOCK_TIME: [5],
                ColumnType.OUT_TIME: [6],
                ColumnType.OFF_TIME: [7],
                ColumnType.ON_TIME: [8],
                ColumnType.IN_TIME: [9],
                ColumnType.TAKEOFF: [10],
                ColumnType.LANDINGS: [11],
            },
            pic_trailing_from=12,
        )

    def column_index(self, column: ColumnType) -> Optional[int]:
        indices = self.mappings.get(column)
        return indices[0] if indices else None

    def column_indices(self, column: ColumnType) -> List[int]:
        return list(self.mappings.get(column, []))

    def set_column_index(self, column: ColumnType, index: int) -> None:
        """Map a column; for PIC this toggles the index in or out"""
        if column.allows_multiple:
            current = self.mappings.get(column, [])
            if index in current:
                current = [i for i in current if i != index]
            else:
                current = current + [index]
            self.mappings[column] = current
        else:
            self.mappings[column] = [index]

    def missing_columns(self) -> List[ColumnType]:
        missing = []
        for column in ColumnType:
            if not column.is_required:
                continue
            if column is ColumnType.PIC and self.pic_trailing_from is not None:
                continue
            if not self.mappings.get(column):
                missing.append(column)
        return missing

    def is_valid(self) -> bool:
        return not self.missing_columns()


# ============================================================================
# ROW PARSER
# ============================================================================

class ImportRowRejected(ValueError):
    """A single row could not be imported"""


class LogbookTextParser:
    """
    Parse pasted logbook text or tabular exports into flight legs.

    Each resolved leg goes through FlightValidator.validate_leg; rows that
    fail parsing or validation are reported, not raised.
    """

    def __init__(self, config: LogbookConfig = None,
                 mapping: ImportColumnMapping = None,
                 validator: FlightValidator = None):
        self.config = config or LogbookConfig.default_config()
        self.params = self.config.import_params
        self.mapping = mapping or ImportColumnMapping.default_mapping()
        self.validator = validator or FlightValidator(self.config.validation)
        self.extractor = LogImportTimeExtractor(self.params.rollover_strategy)

        if not self.mapping.is_valid():
            missing = ", ".join(c.value for c in self.mapping.missing_columns())
            raise ValueError(f"Column mapping is missing required columns: {missing}")

    def parse_text(self, text: str) -> ImportResult:
        """Main entry point - parse pasted logbook text"""
        result = ImportResult()

        for line_number, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or any(marker in stripped for marker in self.params.header_markers):
                continue

            tokens = stripped.split()
            if len(tokens) < self.params.min_tokens:
                # Footers and page titles are short; only rows that start with a
                # sector date are worth reporting
                if self._parse_date(tokens[0]) is not None:
                    result.errors.append(ImportRowError(
                        line_number, line,
                        f"Expected at least {self.params.min_tokens} columns, found {len(tokens)}",
                    ))
                continue

            self._collect(result, tokens, line_number, line)

        logger.info("Imported %d flights, %d rows rejected", result.imported_count, result.failed_count)
        return result

    def parse_frame(self, df: pd.DataFrame) -> ImportResult:
        """Parse a tabular export; columns are addressed by position"""
        result = ImportResult()

        for position, row in enumerate(df.itertuples(index=False, name=None), start=1):
            tokens = ["" if pd.isna(value) else str(value).strip() for value in row]
            line = " ".join(t for t in tokens if t)
            if not line:
                continue
            self._collect(result, tokens, position, line)

        logger.info("Imported %d flights, %d rows rejected", result.imported_count, result.failed_count)
        return result

    def parse_csv(self, source, has_header: bool = True) -> ImportResult:
        """Parse a CSV export (path or file-like object)"""
        df = pd.read_csv(source, dtype=str, keep_default_na=False,
                         header=0 if has_header else None)
        return self.parse_frame(df)

    # ------------------------------------------------------------------------

    def _collect(self, result: ImportResult, tokens: List[str], line_number: int, line: str):
        try:
            leg = self._parse_tokens(tokens)
        except ImportRowRejected as e:
            logger.warning("Skipping row %d: %s", line_number, e)
            result.errors.append(ImportRowError(line_number, line, str(e)))
            return

        error = self.validator.validate_leg(leg)
        if error:
            logger.warning("Skipping row %d: %s", line_number, error.message)
            result.errors.append(ImportRowError(line_number, line, error.message))
            return

        result.flights.append(leg)

    def _token(self, tokens: List[str], column: ColumnType) -> str:
        index = self.mapping.column_index(column)
        if index is None or index >= len(tokens):
            return ""
        return tokens[index].strip()

    def _parse_date(self, text: str) -> Optional[date]:
        for fmt in self.params.date_formats:
            try:
                return datetime.strptime(text.strip(), fmt).date()
            except ValueError:
                continue
        return None

    def _airport(self, code: str) -> str:
        code = code.upper()
        if code and self.params.convert_iata_to_icao:
            return AirportDatabase.to_icao(code)
        return code

    def _pilot_in_command(self, tokens: List[str]) -> str:
        if self.mapping.pic_trailing_from is not None:
            parts = tokens[self.mapping.pic_trailing_from:]
        else:
            parts = [tokens[i] for i in self.mapping.column_indices(ColumnType.PIC) if i < len(tokens)]
        return " ".join(p for p in parts if p and p != self.params.autoland_marker)

    def _parse_tokens(self, tokens: List[str]) -> FlightLeg:
        date_text = self._token(tokens, ColumnType.DATE)
        flight_date = self._parse_date(date_text)
        if flight_date is None:
            raise ImportRowRejected(f"Unrecognised date '{date_text}'")

        time_tokens = [self._token(tokens, column) for column in TIME_COLUMNS]
        instants = self.extractor.extract_sequence(time_tokens, flight_date)
        unresolved = [column.value for column, instant in zip(TIME_COLUMNS, instants) if instant is None]
        if unresolved:
            raise ImportRowRejected(f"Unreadable time in: {', '.join(unresolved)}")

        landings = 1
        landings_text = self._token(tokens, ColumnType.LANDINGS)
        if landings_text.isdigit():
            landings = int(landings_text)

        out_time, off_time, on_time, in_time = instants
        # A marked OUT can sit off the sector date; the leg is dated by OUT
        leg = FlightLeg(
            flight_number=self._token(tokens, ColumnType.FLIGHT_NUMBER),
            date=out_time.date(),
            aircraft_registration=self._token(tokens, ColumnType.AIRCRAFT_REGISTRATION).upper(),
            aircraft_type=self.params.default_aircraft_type,
            departure_airport=self._airport(self._token(tokens, ColumnType.DEPARTURE_AIRPORT)),
            arrival_airport=self._airport(self._token(tokens, ColumnType.ARRIVAL_AIRPORT)),
            out_time=out_time,
            off_time=off_time,
            on_time=on_time,
            in_time=in_time,
            pilot_in_command=self._pilot_in_command(tokens),
            is_self=False,
            operating_capacity=self.params.default_capacity,
            position=self.params.default_position,
            is_pf=False,
            is_ifr=True,
            is_vfr=False,
            landings=landings,
        )
        self._check_block_column(tokens, leg)
        return leg

    def _check_block_column(self, tokens: List[str], leg: FlightLeg):
        """Warn when the export's own block time disagrees with OUT/IN"""
        printed = parse_import_clock(self._token(tokens, ColumnType.BLOCK_TIME))
        if printed is None:
            return
        printed_minutes = printed.hour * 60 + printed.minute
        computed_minutes = int(leg.block_time.total_seconds()) // 60
        if printed_minutes != computed_minutes:
            logger.warning(
                "%s %s: printed block %s differs from computed %d min",
                leg.date.isoformat(), leg.flight_number, printed, computed_minutes,
            )
