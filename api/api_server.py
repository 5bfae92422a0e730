"""
api_server.py - FastAPI Backend for the Flight Logbook
======================================================

RESTful API exposing the logbook time engine to the mobile/web frontend.

Endpoints:
- POST /api/flights - Create a flight from entered OUT/OFF/ON/IN strings
- GET /api/flights - List flights (most recent first)
- GET/PUT/DELETE /api/flights/{id} - Read, edit, remove a flight
- POST /api/flights/validate - Validate an entry without saving it
- POST /api/time/normalize - Resolve four clock times into UTC instants
- POST /api/import - Bulk import pasted logbook text
- POST/GET /api/sims, GET/PUT/DELETE /api/sims/{id} - Simulator sessions
- GET /api/statistics - Monthly and all-time totals (flights only)
- GET /api/airports/{code}, GET /api/airports/search - Airport lookup

Usage:
    uvicorn api.api_server:app --reload --host 0.0.0.0 --port 8000
"""

import logging
import os
from dataclasses import asdict
from datetime import date, datetime
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from core import (
    AircraftConflictError,
    FlightNotFoundError,
    FlightValidationError,
    InMemoryFlightStore,
    LogbookConfig,
    LogbookService,
    compute_durations,
    format_duration,
    format_flight_date,
    normalize_entered_times,
    SimSessionNotFoundError,
    SimSessionRejected,
)
from models.data_models import (
    CrewPosition, FlightDraft, FlightEvent, FlightLeg, MetricGroup, OperatingCapacity, SimSession,
)
from parsers.airport_database import AirportDatabase

logger = logging.getLogger(__name__)

# ============================================================================
# FASTAPI APP INITIALIZATION
# ============================================================================

app = FastAPI(
    title="Flight Logbook API",
    description="Flight time normalization, validation, import and statistics",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_service() -> LogbookService:
    """Service over a fresh in-memory store, configured from the environment"""
    preset = os.environ.get("LOGBOOK_CONFIG_PRESET", "default")
    return LogbookService(InMemoryFlightStore(), LogbookConfig.from_preset(preset))


app.state.service = build_service()


def get_service(request: Request) -> LogbookService:
    return request.app.state.service


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class FlightEntryRequest(BaseModel):
    """A flight as entered: times are HHmm zulu strings, e.g. "2309" or "0024z (+1)" """
    flight_number: str = ""
    flight_date: date
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
    out_time: str = ""
    off_time: str = ""
    on_time: str = ""
    in_time: str = ""


class DurationsResponse(BaseModel):
    block_time: str     # H:MM
    flight_time: str
    taxi_out_time: str
    taxi_in_time: str


class FlightResponse(BaseModel):
    id: str
    flight_number: str
    flight_date: date
    formatted_date: str
    aircraft_registration: str
    aircraft_type: str
    departure_airport: str
    arrival_airport: str
    pilot_in_command: str
    is_self: bool
    operating_capacity: str
    position: str
    is_pf: bool
    is_ifr: bool
    is_vfr: bool
    landings: int
    notes: str
    # UTC ISO format
    out_time: str
    off_time: str
    on_time: str
    in_time: str
    # "HHmmz" with " (+1)" when past the OUT date
    display_times: Dict[str, str]
    durations: DurationsResponse


class ValidationResponse(BaseModel):
    valid: bool
    error: Optional[str] = None
    message: Optional[str] = None
    durations: Optional[DurationsResponse] = None
    display_times: Dict[str, str] = {}


class NormalizeRequest(BaseModel):
    flight_date: date
    out_time: str
    off_time: str
    on_time: str
    in_time: str


class NormalizeResponse(BaseModel):
    instants: Dict[str, str]
    display_times: Dict[str, str]
    durations: DurationsResponse


class ImportRequest(BaseModel):
    text: str


class ImportRowErrorResponse(BaseModel):
    line_number: Optional[int] = None
    line: str
    reason: str


class ImportResponse(BaseModel):
    imported: List[FlightResponse]
    errors: List[ImportRowErrorResponse]


class MetricGroupResponse(BaseModel):
    block_hours: str
    flights: str
    landings: str
    night_hours: str
    pic_hours: str
    cross_country_hours: str


class StatisticsResponse(BaseModel):
    monthly: MetricGroupResponse
    all_time: MetricGroupResponse


class SimSessionRequest(BaseModel):
    """A simulator session; hours are decimal, e.g. 1.5"""
    session_date: date
    aircraft_type: str = ""
    registration: str = ""
    pilot_in_command: str = ""
    operating_capacity: OperatingCapacity = OperatingCapacity.PUT
    instrument_hours: float = 0.0
    simulator_hours: float = 0.0
    notes: str = ""


class SimSessionResponse(BaseModel):
    id: str
    session_date: date
    formatted_date: str
    aircraft_type: str
    registration: str
    pilot_in_command: str
    operating_capacity: str
    instrument_hours: float
    simulator_hours: float
    # H:MM
    instrument_time: str
    simulator_time: str
    notes: str


class AirportResponse(BaseModel):
    icao: str
    iata: str
    name: str = ""
    timezone: str
    latitude: float = 0.0
    longitude: float = 0.0


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _draft_from_request(entry: FlightEntryRequest) -> FlightDraft:
    return FlightDraft(
        flight_number=entry.flight_number,
        date=entry.flight_date,
        aircraft_registration=entry.aircraft_registration,
        aircraft_type=entry.aircraft_type,
        departure_airport=entry.departure_airport,
        arrival_airport=entry.arrival_airport,
        pilot_in_command=entry.pilot_in_command,
        is_self=entry.is_self,
        operating_capacity=entry.operating_capacity,
        position=entry.position,
        is_pf=entry.is_pf,
        is_ifr=entry.is_ifr,
        is_vfr=entry.is_vfr,
        landings=entry.landings,
        notes=entry.notes,
        entered_times={
            FlightEvent.OUT: entry.out_time,
            FlightEvent.OFF: entry.off_time,
            FlightEvent.ON: entry.on_time,
            FlightEvent.IN: entry.in_time,
        },
    )


def _durations_response(instants) -> DurationsResponse:
    durations = compute_durations(instants)
    return DurationsResponse(
        block_time=format_duration(durations.block_time),
        flight_time=format_duration(durations.flight_time),
        taxi_out_time=format_duration(durations.taxi_out_time),
        taxi_in_time=format_duration(durations.taxi_in_time),
    )


def _display_times(instants, service: LogbookService) -> Dict[str, str]:
    return {event.value: text for event, text in service.display_times(instants).items()}


def _flight_response(leg: FlightLeg, service: LogbookService) -> FlightResponse:
    return FlightResponse(
        id=leg.id,
        flight_number=leg.flight_number,
        flight_date=leg.date,
        formatted_date=format_flight_date(leg.date),
        aircraft_registration=leg.aircraft_registration,
        aircraft_type=leg.aircraft_type,
        departure_airport=leg.departure_airport,
        arrival_airport=leg.arrival_airport,
        pilot_in_command=leg.pilot_in_command,
        is_self=leg.is_self,
        operating_capacity=leg.operating_capacity.value,
        position=leg.position.value,
        is_pf=leg.is_pf,
        is_ifr=leg.is_ifr,
        is_vfr=leg.is_vfr,
        landings=leg.landings,
        notes=leg.notes,
        out_time=leg.out_time.isoformat(),
        off_time=leg.off_time.isoformat(),
        on_time=leg.on_time.isoformat(),
        in_time=leg.in_time.isoformat(),
        display_times=_display_times(leg.instants, service),
        durations=_durations_response(leg.instants),
    )


def _sim_from_request(entry: SimSessionRequest) -> SimSession:
    return SimSession(
        date=entry.session_date,
        aircraft_type=entry.aircraft_type,
        registration=entry.registration,
        pilot_in_command=entry.pilot_in_command,
        operating_capacity=entry.operating_capacity,
        instrument_hours=entry.instrument_hours,
        simulator_hours=entry.simulator_hours,
        notes=entry.notes,
    )


def _sim_response(session: SimSession) -> SimSessionResponse:
    return SimSessionResponse(
        id=session.id,
        session_date=session.date,
        formatted_date=format_flight_date(session.date),
        aircraft_type=session.aircraft_type,
        registration=session.registration,
        pilot_in_command=session.pilot_in_command,
        operating_capacity=session.operating_capacity.value,
        instrument_hours=session.instrument_hours,
        simulator_hours=session.simulator_hours,
        instrument_time=session.formatted_instrument_time,
        simulator_time=session.formatted_simulator_time,
        notes=session.notes,
    )


def _sim_rejected(e: SimSessionRejected) -> HTTPException:
    return HTTPException(status_code=422, detail={"error": e.reason.value, "message": str(e)})


def _metric_response(group: MetricGroup) -> MetricGroupResponse:
    return MetricGroupResponse(**group.formatted())


def _rejected(e: FlightValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"error": e.reason.value, "message": str(e)})


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat()
    }


@app.post("/api/flights", response_model=FlightResponse, status_code=201)
async def create_flight(entry: FlightEntryRequest, service: LogbookService = Depends(get_service)):
    """Validate, normalize and save a new flight"""
    try:
        leg = service.save_draft(_draft_from_request(entry))
    except FlightValidationError as e:
        raise _rejected(e)
    except AircraftConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _flight_response(leg, service)


@app.get("/api/flights", response_model=List[FlightResponse])
async def list_flights(service: LogbookService = Depends(get_service)):
    return [_flight_response(leg, service) for leg in service.flights()]


@app.get("/api/flights/{flight_id}", response_model=FlightResponse)
async def get_flight(flight_id: str, service: LogbookService = Depends(get_service)):
    try:
        return _flight_response(service.get(flight_id), service)
    except FlightNotFoundError:
        raise HTTPException(status_code=404, detail="Flight not found")


@app.put("/api/flights/{flight_id}", response_model=FlightResponse)
async def update_flight(flight_id: str, entry: FlightEntryRequest,
                        service: LogbookService = Depends(get_service)):
    """Replace a flight with an edited entry; times are re-normalized from scratch"""
    try:
        leg = service.update_from_draft(flight_id, _draft_from_request(entry))
    except FlightNotFoundError:
        raise HTTPException(status_code=404, detail="Flight not found")
    except FlightValidationError as e:
        raise _rejected(e)
    except AircraftConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _flight_response(leg, service)


@app.delete("/api/flights/{flight_id}", status_code=204)
async def delete_flight(flight_id: str, service: LogbookService = Depends(get_service)):
    try:
        service.delete(flight_id)
    except FlightNotFoundError:
        raise HTTPException(status_code=404, detail="Flight not found")


@app.post("/api/flights/validate", response_model=ValidationResponse)
async def validate_flight(entry: FlightEntryRequest, service: LogbookService = Depends(get_service)):
    """
    Check an entry without saving it.

    Durations and display times are included whenever all four times parse,
    even if another rule fails, so the form can show them alongside the error.
    """
    draft = _draft_from_request(entry)
    error = service.validator.validate(draft)
    instants = draft.normalized_instants()

    response = ValidationResponse(valid=error is None)
    if error:
        response.error = error.value
        response.message = error.message
    if instants is not None:
        response.durations = _durations_response(instants)
        response.display_times = _display_times(instants, service)
    return response


@app.post("/api/time/normalize", response_model=NormalizeResponse)
async def normalize_times(request: NormalizeRequest, service: LogbookService = Depends(get_service)):
    """Resolve four HHmm strings on a flight date into UTC instants"""
    instants = normalize_entered_times(
        request.flight_date,
        (request.out_time, request.off_time, request.on_time, request.in_time),
    )
    if instants is None:
        raise HTTPException(status_code=422, detail="Time must be in HHmm format (e.g., 1230z)")

    return NormalizeResponse(
        instants={event.value: instant.isoformat()
                  for event, instant in zip(FlightEvent.sequence(), instants)},
        display_times=_display_times(instants, service),
        durations=_durations_response(instants),
    )


@app.post("/api/import", response_model=ImportResponse)
async def import_logbook(request: ImportRequest, service: LogbookService = Depends(get_service)):
    """
    Import pasted logbook text.

    Bad rows are returned in `errors`; every good row is saved.
    """
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="No logbook text provided")

    result = service.import_text(request.text)
    return ImportResponse(
        imported=[_flight_response(leg, service) for leg in result.flights],
        errors=[
            ImportRowErrorResponse(line_number=e.line_number, line=e.line, reason=e.reason)
            for e in result.errors
        ],
    )


# ============================================================================
# SIMULATOR SESSION ENDPOINTS
# ============================================================================

@app.post("/api/sims", response_model=SimSessionResponse, status_code=201)
async def create_sim(entry: SimSessionRequest, service: LogbookService = Depends(get_service)):
    try:
        session = service.save_sim(_sim_from_request(entry))
    except SimSessionRejected as e:
        raise _sim_rejected(e)
    return _sim_response(session)


@app.get("/api/sims", response_model=List[SimSessionResponse])
async def list_sims(service: LogbookService = Depends(get_service)):
    return [_sim_response(session) for session in service.sims()]


@app.get("/api/sims/{sim_id}", response_model=SimSessionResponse)
async def get_sim(sim_id: str, service: LogbookService = Depends(get_service)):
    try:
        return _sim_response(service.get_sim(sim_id))
    except SimSessionNotFoundError:
        raise HTTPException(status_code=404, detail="Sim session not found")


@app.put("/api/sims/{sim_id}", response_model=SimSessionResponse)
async def update_sim(sim_id: str, entry: SimSessionRequest,
                     service: LogbookService = Depends(get_service)):
    try:
        session = service.update_sim(sim_id, _sim_from_request(entry))
    except SimSessionNotFoundError:
        raise HTTPException(status_code=404, detail="Sim session not found")
    except SimSessionRejected as e:
        raise _sim_rejected(e)
    return _sim_response(session)


@app.delete("/api/sims/{sim_id}", status_code=204)
async def delete_sim(sim_id: str, service: LogbookService = Depends(get_service)):
    try:
        service.delete_sim(sim_id)
    except SimSessionNotFoundError:
        raise HTTPException(status_code=404, detail="Sim session not found")


@app.get("/api/statistics", response_model=StatisticsResponse)
async def get_statistics(as_of: Optional[date] = None, service: LogbookService = Depends(get_service)):
    """Monthly (rolling window ending at as_of, default today) and all-time totals"""
    stats = service.statistics(as_of=as_of)
    return StatisticsResponse(
        monthly=_metric_response(stats['monthly']),
        all_time=_metric_response(stats['all_time']),
    )


# ============================================================================
# AIRPORT DATABASE ENDPOINTS
# ============================================================================

@app.get("/api/airports/search", response_model=List[AirportResponse])
async def search_airports(q: str = Query(..., min_length=2, max_length=10)):
    """Search airports by ICAO/IATA code prefix, for autocomplete"""
    return [AirportResponse(**asdict(airport)) for airport in AirportDatabase.search(q)]


@app.get("/api/airports/{code}", response_model=AirportResponse)
async def get_airport(code: str):
    """Look up an airport by ICAO or IATA code"""
    airport = AirportDatabase.find(code)
    if airport is None:
        raise HTTPException(status_code=404, detail=f"Airport '{code.upper()}' not found")
    return AirportResponse(**asdict(airport))


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get("PORT", 8000))

    logger.info("Starting Flight Logbook API on http://localhost:%d (docs at /docs)", port)
    uvicorn.run(app, host="0.0.0.0", port=port)
