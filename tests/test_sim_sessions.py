"""
Simulator Session Tests
=======================

Sim session formatting, validation rules, service CRUD and HTTP endpoints.

Run: python -m pytest tests/test_sim_sessions.py -v
"""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from api.api_server import app, get_service
from core.logbook_service import InMemoryFlightStore, LogbookService, SimSessionNotFoundError
from core.validation import SimSessionRejected, SimValidationError, SimValidator
from models.data_models import OperatingCapacity, SimSession


def _make_sim(**overrides):
    fields = dict(
        date=date(2024, 10, 5),
        aircraft_type="b77w",
        registration=" sim-07 ",
        pilot_in_command="  LEE ANNA ",
        operating_capacity=OperatingCapacity.PUT,
        instrument_hours=1.5,
        simulator_hours=4.0,
        notes="LPC",
    )
    fields.update(overrides)
    return SimSession(**fields)


@pytest.fixture
def store():
    return InMemoryFlightStore()


@pytest.fixture
def service(store):
    return LogbookService(store)


# ============================================================================
# MODEL
# ============================================================================

class TestSimSession:

    @pytest.mark.parametrize("hours, text", [
        (1.5, "1:30"),
        (1.7, "1:42"),
        (0.0, "0:00"),
        (12.25, "12:15"),
    ])
    def test_hours_format_as_hours_and_minutes(self, hours, text):
        session = _make_sim(instrument_hours=hours, simulator_hours=hours)
        assert session.formatted_instrument_time == text
        assert session.formatted_simulator_time == text

    def test_time_properties(self):
        session = _make_sim()
        assert session.instrument_time == timedelta(minutes=90)
        assert session.simulator_time == timedelta(hours=4)

    def test_cleaned_normalizes_text_fields(self):
        session = _make_sim().cleaned()
        assert session.aircraft_type == "B77W"
        assert session.registration == "SIM-07"
        assert session.pilot_in_command == "LEE ANNA"
        assert session.notes == "LPC"

    def test_sim_capacities(self):
        assert OperatingCapacity.sim_options() == (OperatingCapacity.PUT, OperatingCapacity.P1_US)


# ============================================================================
# VALIDATION
# ============================================================================

class TestSimValidator:

    def setup_method(self):
        self.validator = SimValidator()

    def test_valid_session(self):
        assert self.validator.validate(_make_sim()) is None

    @pytest.mark.parametrize("field_name, error, message", [
        ("aircraft_type", SimValidationError.MISSING_AIRCRAFT_TYPE, "Aircraft type is required"),
        ("registration", SimValidationError.MISSING_REGISTRATION, "Registration is required"),
        ("pilot_in_command", SimValidationError.MISSING_PILOT_IN_COMMAND, "PIC is required"),
    ])
    def test_required_fields(self, field_name, error, message):
        result = self.validator.validate(_make_sim(**{field_name: "   "}))
        assert result is error
        assert result.message == message

    def test_first_missing_field_wins(self):
        session = _make_sim(aircraft_type="", registration="", pilot_in_command="")
        assert self.validator.validate(session) is SimValidationError.MISSING_AIRCRAFT_TYPE

    def test_line_capacity_rejected(self):
        result = self.validator.validate(_make_sim(operating_capacity=OperatingCapacity.P2))
        assert result is SimValidationError.INVALID_OPERATING_CAPACITY

    def test_p1_us_accepted(self):
        assert self.validator.validate(_make_sim(operating_capacity=OperatingCapacity.P1_US)) is None

    def test_negative_hours_rejected(self):
        result = self.validator.validate(_make_sim(simulator_hours=-0.5))
        assert result is SimValidationError.NEGATIVE_TIME


# ============================================================================
# SERVICE
# ============================================================================

class TestSimService:

    def test_save_persists_cleaned_session(self, service, store):
        session = service.save_sim(_make_sim())
        assert store.get_sim(session.id) is session
        assert session.registration == "SIM-07"

    def test_save_rejected_not_persisted(self, service, store):
        with pytest.raises(SimSessionRejected, match="PIC is required") as exc_info:
            service.save_sim(_make_sim(pilot_in_command=""))
        assert exc_info.value.reason is SimValidationError.MISSING_PILOT_IN_COMMAND
        assert store.query_sims() == []

    def test_sim_registration_not_added_to_aircraft(self, service, store):
        service.save_sim(_make_sim())
        assert store.get_aircraft("SIM-07") is None

    def test_update_keeps_id(self, service):
        saved = service.save_sim(_make_sim())
        updated = service.update_sim(saved.id, _make_sim(simulator_hours=3.5))
        assert updated.id == saved.id
        assert service.get_sim(saved.id).formatted_simulator_time == "3:30"

    def test_update_unknown_id(self, service):
        with pytest.raises(SimSessionNotFoundError):
            service.update_sim("nope", _make_sim())

    def test_delete(self, service, store):
        session = service.save_sim(_make_sim())
        service.delete_sim(session.id)
        assert store.get_sim(session.id) is None
        with pytest.raises(SimSessionNotFoundError):
            service.delete_sim(session.id)

    def test_sims_newest_first(self, service):
        older = service.save_sim(_make_sim(date=date(2024, 3, 1)))
        newer = service.save_sim(_make_sim(date=date(2024, 9, 1)))
        assert [s.id for s in service.sims()] == [newer.id, older.id]

    def test_sims_stay_out_of_statistics(self, service):
        service.save_sim(_make_sim())
        stats = service.statistics(as_of=date(2024, 10, 14))
        assert stats['all_time'].flights == 0
        assert stats['all_time'].block_hours == 0

    def test_subscribers_see_sim_changes(self, service, store):
        seen = []
        store.subscribe(lambda change: seen.append((change.action, change.record.id)))
        session = service.save_sim(_make_sim())
        service.update_sim(session.id, _make_sim())
        service.delete_sim(session.id)
        assert seen == [("create", session.id), ("update", session.id), ("delete", session.id)]


# ============================================================================
# API
# ============================================================================

SIM_ENTRY = {
    "session_date": "2024-10-05",
    "aircraft_type": "B77W",
    "registration": "SIM-07",
    "pilot_in_command": "LEE ANNA",
    "operating_capacity": "P U/T",
    "instrument_hours": 1.5,
    "simulator_hours": 4.0,
}


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSimEndpoints:

    def test_create(self, client):
        response = client.post("/api/sims", json=SIM_ENTRY)
        assert response.status_code == 201
        body = response.json()
        assert body["formatted_date"] == "05 Oct 2024"
        assert body["instrument_time"] == "1:30"
        assert body["simulator_time"] == "4:00"
        assert body["operating_capacity"] == "P U/T"

    def test_create_invalid(self, client, service):
        response = client.post("/api/sims", json={**SIM_ENTRY, "aircraft_type": ""})
        assert response.status_code == 422
        assert response.json()["detail"] == {
            "error": "missingAircraftType", "message": "Aircraft type is required",
        }
        assert service.sims() == []

    def test_get_update_delete(self, client):
        sim_id = client.post("/api/sims", json=SIM_ENTRY).json()["id"]
        assert client.get(f"/api/sims/{sim_id}").json()["registration"] == "SIM-07"

        response = client.put(f"/api/sims/{sim_id}", json={**SIM_ENTRY, "simulator_hours": 1.7})
        assert response.status_code == 200
        assert response.json()["simulator_time"] == "1:42"

        assert client.delete(f"/api/sims/{sim_id}").status_code == 204
        assert client.get(f"/api/sims/{sim_id}").status_code == 404

    def test_list(self, client):
        client.post("/api/sims", json=SIM_ENTRY)
        assert len(client.get("/api/sims").json()) == 1

    def test_unknown_id(self, client):
        assert client.put("/api/sims/nope", json=SIM_ENTRY).status_code == 404
        assert client.delete("/api/sims/nope").status_code == 404
