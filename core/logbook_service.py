"""
Logbook Service
===============

Orchestrates validation, normalization and persistence of flight legs.

The store is passed in explicitly; the service owns no global state, so any
number of services (and tests) can run side by side against their own store.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Union

from models.data_models import (
    Aircraft, FlightDraft, FlightEvent, FlightLeg, ImportResult, ImportRowError, MetricGroup,
    SimSession,
)
from core.display import format_zulu
from core.parameters import LogbookConfig
from core.statistics import LogbookStatistics
from core.validation import (
    FlightValidationError, FlightValidator, SimSessionRejected, SimValidator,
)

logger = logging.getLogger(__name__)


class FlightNotFoundError(KeyError):
    """No flight with the requested id"""


class SimSessionNotFoundError(KeyError):
    """No simulator session with the requested id"""


class AircraftConflictError(ValueError):
    """Registration already on file with a different aircraft type"""


# ============================================================================
# STORE
# ============================================================================

@dataclass(frozen=True)
class StoreChange:
    """Change notification delivered to store subscribers"""
    action: str        # "create", "update" or "delete"
    record: Union[FlightLeg, SimSession]


class FlightStore(Protocol):
    """Persistence collaborator. Receives only normalized, validated legs."""

    def create(self, leg: FlightLeg) -> FlightLeg: ...

    def update(self, leg: FlightLeg) -> FlightLeg: ...

    def delete(self, leg: FlightLeg) -> None: ...

    def get(self, leg_id: str) -> Optional[FlightLeg]: ...

    def query_all(self) -> List[FlightLeg]: ...

    def subscribe(self, callback: Callable[[StoreChange], None]) -> Callable[[], None]: ...

    def get_aircraft(self, registration: str) -> Optional[Aircraft]: ...

    def create_aircraft(self, aircraft: Aircraft) -> Aircraft: ...

    def create_sim(self, session: SimSession) -> SimSession: ...

    def update_sim(self, session: SimSession) -> SimSession: ...

    def delete_sim(self, session: SimSession) -> None: ...

    def get_sim(self, session_id: str) -> Optional[SimSession]: ...

    def query_sims(self) -> List[SimSession]: ...


class InMemoryFlightStore:
    """Thread-safe in-process store (replace with a database in production)"""

    def __init__(self):
        self._lock = threading.Lock()
        self._flights: Dict[str, FlightLeg] = {}
        self._aircraft: Dict[str, Aircraft] = {}
        self._sims: Dict[str, SimSession] = {}
        self._subscribers: List[Callable[[StoreChange], None]] = []

    def create(self, leg: FlightLeg) -> FlightLeg:
        with self._lock:
            if leg.id in self._flights:
                raise ValueError(f"Flight {leg.id} already exists")
            self._flights[leg.id] = leg
        self._notify(StoreChange("create", leg))
        return leg

    def update(self, leg: FlightLeg) -> FlightLeg:
        with self._lock:
            if leg.id not in self._flights:
                raise FlightNotFoundError(leg.id)
            self._flights[leg.id] = leg
        self._notify(StoreChange("update", leg))
        return leg

    def delete(self, leg: FlightLeg) -> None:
        with self._lock:
            if self._flights.pop(leg.id, None) is None:
                raise FlightNotFoundError(leg.id)
        self._notify(StoreChange("delete", leg))

    def get(self, leg_id: str) -> Optional[FlightLeg]:
        with self._lock:
            return self._flights.get(leg_id)

    def query_all(self) -> List[FlightLeg]:
        """All flights, most recent first"""
        with self._lock:
            flights = list(self._flights.values())
        return sorted(flights, key=lambda f: f.out_time, reverse=True)

    def subscribe(self, callback: Callable[[StoreChange], None]) -> Callable[[], None]:
        """Register for change notifications; returns an unsubscribe function"""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        return unsubscribe

    def get_aircraft(self, registration: str) -> Optional[Aircraft]:
        with self._lock:
            return self._aircraft.get(registration.upper())

    def create_aircraft(self, aircraft: Aircraft) -> Aircraft:
        with self._lock:
            self._aircraft[aircraft.registration.upper()] = aircraft
        return aircraft

    def create_sim(self, session: SimSession) -> SimSession:
        with self._lock:
            if session.id in self._sims:
                raise ValueError(f"Sim session {session.id} already exists")
            self._sims[session.id] = session
        self._notify(StoreChange("create", session))
        return session

    def update_sim(self, session: SimSession) -> SimSession:
        with self._lock:
            if session.id not in self._sims:
                raise SimSessionNotFoundError(session.id)
            self._sims[session.id] = session
        self._notify(StoreChange("update", session))
        return session

    def delete_sim(self, session: SimSession) -> None:
        with self._lock:
            if self._sims.pop(session.id, None) is None:
                raise SimSessionNotFoundError(session.id)
        self._notify(StoreChange("delete", session))

    def get_sim(self, session_id: str) -> Optional[SimSession]:
        with self._lock:
            return self._sims.get(session_id)

    def query_sims(self) -> List[SimSession]:
        """All simulator sessions, most recent first"""
        with self._lock:
            sims = list(self._sims.values())
        return sorted(sims, key=lambda s: s.date, reverse=True)

    def _notify(self, change: StoreChange):
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(change)


# ============================================================================
# SERVICE
# ============================================================================

class LogbookService:
    """Validate, normalize and persist flights against an injected store"""

    def __init__(self, store: FlightStore, config: LogbookConfig = None):
        self.store = store
        self.config = config or LogbookConfig.default_config()
        self.validator = FlightValidator(self.config.validation)
        self.sim_validator = SimValidator()
        self.statistics_engine = LogbookStatistics(self.config.statistics)

    def new_draft(self, now: Optional[datetime] = None) -> FlightDraft:
        entry = self.config.time_entry
        return FlightDraft.empty(
            now=now,
            off_offset_minutes=entry.off_offset_minutes,
            on_offset_minutes=entry.on_offset_minutes,
            in_offset_minutes=entry.in_offset_minutes,
        )

    def display_times(self, instants: Sequence[datetime]) -> Dict[FlightEvent, str]:
        """Zulu strings for (out, off, on, in) using the configured suffixes"""
        entry = self.config.time_entry
        return {
            event: format_zulu(instant, reference=instants[0],
                               zulu_suffix=entry.zulu_suffix,
                               next_day_suffix=entry.next_day_suffix)
            for event, instant in zip(FlightEvent.sequence(), instants)
        }

    def resolve_aircraft(self, registration: str, aircraft_type: str) -> Aircraft:
        """
        Existing airframe for the registration, or a newly registered one.

        Raises:
            AircraftConflictError: registration on file with another type
        """
        registration = registration.strip().upper()
        aircraft_type = aircraft_type.strip().upper()
        existing = self.store.get_aircraft(registration)
        if existing is None:
            logger.info("Registering new aircraft %s (%s)", registration, aircraft_type)
            return self.store.create_aircraft(Aircraft(registration=registration, type=aircraft_type))
        if existing.type.upper() != aircraft_type:
            raise AircraftConflictError("Aircraft registration exists with different type")
        return existing

    def _checked_leg(self, draft: FlightDraft, leg_id: Optional[str] = None) -> FlightLeg:
        error = self.validator.validate(draft)
        if error:
            logger.info("Flight %s rejected: %s", draft.flight_number or "<new>", error.message)
            raise FlightValidationError(error)
        self.resolve_aircraft(draft.aircraft_registration, draft.aircraft_type)
        return draft.to_leg(leg_id=leg_id)

    def save_draft(self, draft: FlightDraft) -> FlightLeg:
        """
        Validate and create a new flight.

        Raises:
            FlightValidationError: first failing validation rule
            AircraftConflictError: registration/type mismatch
        """
        leg = self._checked_leg(draft)
        self.store.create(leg)
        logger.info("Saved flight %s %s on %s", leg.id, leg.flight_number, leg.date.isoformat())
        return leg

    def update_from_draft(self, leg_id: str, draft: FlightDraft) -> FlightLeg:
        if self.store.get(leg_id) is None:
            raise FlightNotFoundError(leg_id)
        leg = self._checked_leg(draft, leg_id=leg_id)
        self.store.update(leg)
        logger.info("Updated flight %s", leg_id)
        return leg

    def delete(self, leg_id: str) -> None:
        leg = self.store.get(leg_id)
        if leg is None:
            raise FlightNotFoundError(leg_id)
        self.store.delete(leg)
        logger.info("Deleted flight %s", leg_id)

    def get(self, leg_id: str) -> FlightLeg:
        leg = self.store.get(leg_id)
        if leg is None:
            raise FlightNotFoundError(leg_id)
        return leg

    def flights(self) -> List[FlightLeg]:
        return self.store.query_all()

    def import_text(self, text: str, parser=None) -> ImportResult:
        """
        Parse pasted logbook text and persist every valid row.

        Rows whose aircraft conflicts with one on file are moved to the
        result's errors instead of being saved.
        """
        # Imported here: parsers depend on core, not the other way round
        from parsers.logbook_import import LogbookTextParser

        parser = parser or LogbookTextParser(self.config, validator=self.validator)
        result = parser.parse_text(text)

        saved = []
        for leg in result.flights:
            try:
                self.resolve_aircraft(leg.aircraft_registration, leg.aircraft_type)
            except AircraftConflictError as e:
                result.errors.append(ImportRowError(None, f"{leg.date} {leg.flight_number}", str(e)))
                continue
            saved.append(self.store.create(leg))

        logger.info("Import saved %d flights, %d rows rejected", len(saved), len(result.errors))
        return replace(result, flights=saved)

    # ------------------------------------------------------------------
    # Simulator sessions
    # ------------------------------------------------------------------

    def _checked_sim(self, session: SimSession) -> SimSession:
        error = self.sim_validator.validate(session)
        if error:
            logger.info("Sim session %s rejected: %s", session.id, error.message)
            raise SimSessionRejected(error)
        return session.cleaned()

    def save_sim(self, session: SimSession) -> SimSession:
        """
        Validate and create a simulator session.

        Sim registrations name the device, so they never enter the aircraft
        table and never conflict with an airframe.

        Raises:
            SimSessionRejected: first failing validation rule
        """
        session = self._checked_sim(session)
        self.store.create_sim(session)
        logger.info("Saved sim session %s %s on %s",
                    session.id, session.aircraft_type, session.date.isoformat())
        return session

    def update_sim(self, sim_id: str, session: SimSession) -> SimSession:
        if self.store.get_sim(sim_id) is None:
            raise SimSessionNotFoundError(sim_id)
        session = self._checked_sim(replace(session, id=sim_id))
        self.store.update_sim(session)
        logger.info("Updated sim session %s", sim_id)
        return session

    def delete_sim(self, sim_id: str) -> None:
        session = self.store.get_sim(sim_id)
        if session is None:
            raise SimSessionNotFoundError(sim_id)
        self.store.delete_sim(session)
        logger.info("Deleted sim session %s", sim_id)

    def get_sim(self, sim_id: str) -> SimSession:
        session = self.store.get_sim(sim_id)
        if session is None:
            raise SimSessionNotFoundError(sim_id)
        return session

    def sims(self) -> List[SimSession]:
        return self.store.query_sims()

    def statistics(self, as_of: Optional[Union[date, datetime]] = None) -> Dict[str, MetricGroup]:
        # Sim sessions are not flights and stay out of the totals
        flights = self.store.query_all()
        return {
            'monthly': self.statistics_engine.monthly(flights, as_of=as_of),
            'all_time': self.statistics_engine.all_time(flights),
        }
