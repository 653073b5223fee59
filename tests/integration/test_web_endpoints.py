"""HTTP API tests against the scripted portal."""

import pytest
from fastapi.testclient import TestClient

from src import __version__
from web.app import create_app
from tests.fakes import PortalBrowserFactory

pytestmark = pytest.mark.integration

IDENTITY = {"document_number": "11111111-1"}
SEARCH = {"service": "Consultas", "specialty": "Medicina General", "location": "Providencia"}
CONTACT = {"phone": "+56912345678", "email": "paciente@correo.cl"}


@pytest.fixture
def factory():
    return PortalBrowserFactory()


@pytest.fixture
def client(settings, error_capture, factory):
    app = create_app(
        settings, driver_options={"browser_factory": factory, "error_capture": error_capture}
    )
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client):
        """Health reports version, environment and open conversations."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__
        assert data["environment"] == "testing"
        assert data["active_conversations"] == 0

    def test_request_id_is_echoed(self, client):
        """A caller supplied request id comes back on the response."""
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        """Requests without an id get one."""
        assert client.get("/health").headers.get("X-Request-ID")


class TestBookingEndpoints:
    """Test one-shot search and reservation."""

    def test_start(self, client):
        """Start returns the offered options and the context to confirm with."""
        response = client.post("/api/booking/start", json={"identity": IDENTITY, "search": SEARCH})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "opciones_disponibles"
        assert data["opciones"]["horas"] == ["09:15", "10:00", "11:30"]
        assert data["estado"]["especialidad"] == "Medicina General"

    def test_confirm(self, client, factory):
        """Confirm books the slot in a new session."""
        response = client.post(
            "/api/booking/confirm",
            json={
                "identity": IDENTITY,
                "context": SEARCH,
                "date": "Lunes 18 de noviembre",
                "time": "11:30",
                "contact": CONTACT,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["datos"]["hora"] == "11:30"
        assert factory.last.submitted

    def test_invalid_body(self, client):
        """Schema violations are RFC 7807 problems."""
        response = client.post("/api/booking/start", json={"identity": IDENTITY})

        assert response.status_code == 422
        assert response.headers["content-type"].startswith("application/problem+json")
        data = response.json()
        assert data["type"] == "urn:redsaludbot:error:validation"
        assert "search" in data["errors"]

    def test_failures_are_listed(self, client):
        """A failed run is recorded and can be looked up by id."""
        failed = client.post(
            "/api/booking/start",
            json={"identity": IDENTITY, "search": {**SEARCH, "service": "Telemedicina"}},
        ).json()
        assert failed["status"] == "error"
        assert failed["error"]["stage"] == "select_service"

        listing = client.get("/api/booking/errors").json()
        assert listing["count"] == 1
        error_id = listing["errors"][0]["id"]

        detail = client.get(f"/api/booking/errors/{error_id}")
        assert detail.status_code == 200
        assert detail.json()["error_type"] == "ElementNotFoundError"

    def test_unknown_error_id(self, client):
        """Unknown error ids are 404 problems."""
        response = client.get("/api/booking/errors/nope")

        assert response.status_code == 404
        assert response.json()["type"] == "urn:redsaludbot:error:not-found"


class TestChatEndpoints:
    """Test the conversational API."""

    def turn(self, client, **body):
        return client.post("/api/chat/turn", json={"caller_id": "c1", **body})

    def test_greeting(self, client):
        """Small talk gets a greeting without touching the portal."""
        data = self.turn(client, intent="hablar", message="hola").json()

        assert data["handled"] is True
        assert "RedSalud" in data["prompt"]

    @pytest.mark.parametrize("intent", ["borrar", "modificar"])
    def test_unsupported_intents(self, client, factory, intent):
        """Cancelling and rescheduling are reported as not handled."""
        data = self.turn(client, intent=intent).json()

        assert data["handled"] is False
        assert factory.portals == []

    def test_booking_requires_identity(self, client):
        """An agendar turn without identity is rejected."""
        response = self.turn(client, params={"specialty": "Cardiología"})

        assert response.status_code == 422

    def test_unknown_parameter(self, client):
        """Unknown booking parameters are validation problems."""
        response = self.turn(client, identity=IDENTITY, params={"insurance": "Fonasa"})

        assert response.status_code == 422
        assert response.json()["errors"] == {"insurance": "Unknown booking parameter(s): insurance"}

    def test_dialogue_and_reset(self, client):
        """Turns accumulate per caller until the conversation is reset."""
        first = self.turn(
            client, identity=IDENTITY, params={"service": "Consultas", "specialty": "Cardiología"}
        ).json()
        assert first["needs"] == "location"
        assert first["result"] is None
        assert client.get("/health").json()["active_conversations"] == 1

        second = self.turn(client, identity=IDENTITY, params={"location": "Providencia"}).json()
        assert second["needs"] == "date"
        assert second["result"]["status"] == "opciones_disponibles"

        reset = client.delete("/api/chat/c1").json()
        assert reset == {"caller_id": "c1", "reset": True}
        assert client.get("/health").json()["active_conversations"] == 0
