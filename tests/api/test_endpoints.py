"""
API Endpoint Tests

Tests the FastAPI endpoints using TestClient with MockTransport.
"""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

import printer_host.api.dependencies as dependencies
from printer_host.api.app import create_app, status_code_for
from printer_host.core.errors import (
    InvalidArgumentError,
    NotReadyError,
    OutOfBoundsError,
    PrinterError,
    PrinterTimeoutError,
    ProtocolError,
    TransportError,
)


@pytest.fixture
def client():
    """Create test client with fresh app state."""
    dependencies._app_state = None

    app = create_app()
    with TestClient(app) as client:
        yield client

    dependencies._app_state = None


@pytest.fixture
def connected_client(client):
    """Client connected to mock transport."""
    response = client.post("/api/connect", json={"port": "mock"})
    assert response.json()["success"]
    return client


@pytest.fixture
def homed_client(connected_client):
    """Client connected and homed on X and Y."""
    response = connected_client.post("/api/home")
    assert response.json()["success"]
    return connected_client


def mock_transport():
    return dependencies.get_app_state().printer._transport


class TestConnectionEndpoints:
    """Test connection endpoints."""

    def test_get_status_disconnected(self, client):
        """Status shows disconnected initially."""
        response = client.get("/api/status")
        assert response.status_code == 200
        data = response.json()
        assert data["connected"] is False
        assert data["connection"] == "disconnected"

    def test_connect_mock(self, client):
        """Can connect to mock transport."""
        response = client.post("/api/connect", json={"port": "mock"})
        assert response.status_code == 200
        data = response.json()
        assert data["success"]
        assert data["status"]["connection"] == "ready"
        assert data["status"]["mode"] == "relative"

    def test_connect_with_envelope(self, client):
        response = client.post(
            "/api/connect",
            json={"port": "mock", "envelope": {"x": 300, "y": 300, "z": 400}},
        )
        assert response.json()["status"]["envelope"] == {"x": 300, "y": 300, "z": 400}

    def test_connect_missing_port_fails(self, client):
        response = client.post("/api/connect", json={"port": "/dev/does-not-exist-printer-host"})
        assert response.status_code == 503
        assert response.json()["error"] == "TransportError"

    def test_status_after_connect(self, connected_client):
        """Status shows connected after connect."""
        data = connected_client.get("/api/status").json()
        assert data["connected"] is True
        assert data["homed_axes"] == []
        assert data["position"] == {"x": 0, "y": 0, "z": 0}

    def test_disconnect(self, connected_client):
        """Can disconnect."""
        response = connected_client.post("/api/disconnect")
        assert response.json()["success"]

        response = connected_client.get("/api/status")
        assert response.json()["connected"] is False

    def test_history_after_connect(self, connected_client):
        """History holds the init commands."""
        response = connected_client.get("/api/history")
        assert response.status_code == 200
        assert [h["gcode"] for h in response.json()["history"]] == ["G91", "G0 F3600"]

    def test_ports(self, client):
        response = client.get("/api/ports")
        assert response.status_code == 200
        assert isinstance(response.json()["ports"], list)

    def test_health(self):
        from printer_host.main import app

        dependencies._app_state = None
        with TestClient(app) as c:
            data = c.get("/health").json()
        assert data["status"] == "ok"
        assert data["connected"] is False
        dependencies._app_state = None


class TestMovementEndpoints:
    """Test movement endpoints."""

    def test_requires_connection(self, client):
        response = client.post("/api/go", json={"dx": 1})
        assert response.status_code == 400
        assert "Not connected" in response.json()["detail"]

    def test_home(self, connected_client):
        response = connected_client.post("/api/home")
        assert response.status_code == 200
        assert response.json()["homed_axes"] == ["X", "Y"]
        assert mock_transport().sent_commands[-1] == "G28 X Y"

    def test_home_bad_axis(self, connected_client):
        response = connected_client.post("/api/home", json={"axes": ["Q"]})
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidArgumentError"

    def test_go(self, connected_client):
        response = connected_client.post("/api/go", json={"dx": 10, "dy": 5, "wait": False})
        assert response.status_code == 200
        assert response.json()["position"] == {"x": 10, "y": 5, "z": 0}
        assert mock_transport().sent_commands[-1] == "G0 X10 Y5 Z0"

    def test_go_waits_for_motors(self, connected_client):
        response = connected_client.post("/api/go", json={"dz": 0.1})
        assert response.status_code == 200
        assert mock_transport().sent_commands[-1] == "M114"

    def test_go_out_of_bounds(self, homed_client):
        transport = mock_transport()
        transport.clear_history()

        response = homed_client.post("/api/go", json={"dx": 250})

        assert response.status_code == 400
        assert response.json()["error"] == "OutOfBoundsError"
        assert transport.sent_commands == []

    def test_goto_keeps_omitted_axes(self, connected_client):
        connected_client.post("/api/go", json={"dz": 10, "wait": False})

        response = connected_client.post("/api/goto", json={"x": 100, "y": 50, "wait": False})

        assert response.status_code == 200
        assert response.json()["position"] == {"x": 100, "y": 50, "z": 10}
        assert mock_transport().sent_commands[-2:] == ["G90", "G0 X100 Y50 Z10"]

    def test_goto_out_of_bounds(self, connected_client):
        response = connected_client.post("/api/goto", json={"x": -1, "wait": False})
        assert response.status_code == 400

    def test_speed(self, connected_client):
        response = connected_client.post("/api/speed", json={"speed": 20})
        assert response.json()["speed"] == 20
        assert mock_transport().sent_commands[-1] == "G0 F1200"

    def test_speed_rejects_zero(self, connected_client):
        response = connected_client.post("/api/speed", json={"speed": 0})
        assert response.status_code == 400

    def test_mode(self, connected_client):
        response = connected_client.post("/api/mode", json={"mode": "absolute"})
        assert response.json()["mode"] == "absolute"
        assert mock_transport().sent_commands[-1] == "G90"

    def test_mode_invalid(self, connected_client):
        response = connected_client.post("/api/mode", json={"mode": "polar"})
        assert response.status_code == 422

    def test_position(self, connected_client):
        response = connected_client.get("/api/position")
        assert response.status_code == 200
        data = response.json()
        assert data["cached_position"] == {"x": 0, "y": 0, "z": 0}
        assert data["target_position"] == {"x": 0, "y": 0, "z": 0}
        assert data["current_position"] == {"x": 0, "y": 0, "z": 0}

    def test_sync(self, connected_client):
        connected_client.post("/api/gcode", json={"gcode": ["G90", "G0 X12 Y3 Z4"]})

        response = connected_client.post("/api/sync")

        assert response.json()["position"] == {"x": 12, "y": 3, "z": 4}
        assert connected_client.get("/api/status").json()["position"] == {"x": 12, "y": 3, "z": 4}

    def test_gcode_string(self, connected_client):
        response = connected_client.post("/api/gcode", json={"gcode": "G90\nG91"})
        assert response.json()["success"]
        assert mock_transport().sent_commands[-2:] == ["G90", "G91"]


class TestHistoryEndpoint:
    """Test command history."""

    def test_history_records_commands(self, homed_client):
        homed_client.post("/api/go", json={"dx": 1, "wait": False})

        history = homed_client.get("/api/history").json()["history"]

        entry = history[-1]
        assert entry["gcode"] == "G0 X1 Y0 Z0"
        assert entry["acknowledged"] is True
        assert entry["success"] is True
        assert "timestamp" in entry

    def test_history_limit(self, homed_client):
        for _ in range(5):
            homed_client.post("/api/go", json={"dz": 1, "wait": False})

        history = homed_client.get("/api/history?limit=3").json()["history"]
        assert len(history) == 3


class TestConcurrentRequests:
    """Requests that reach the printer run one at a time."""

    @pytest.mark.asyncio
    async def test_overlapping_moves_are_serialized(self):
        dependencies._app_state = None
        app = create_app()
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            await client.post("/api/connect", json={"port": "mock"})
            mock = mock_transport()
            mock.clear_history()

            first, second = await asyncio.gather(
                client.post("/api/go", json={"dx": 1, "wait": False}),
                client.post("/api/go", json={"dx": 2, "wait": False}),
            )

            assert first.status_code == second.status_code == 200
            sent = mock.sent_commands
            assert sent[0] == sent[2] == "G91"
            assert sorted(sent[1::2]) == ["G0 X1 Y0 Z0", "G0 X2 Y0 Z0"]
            history = dependencies.get_app_state().printer.get_command_history(4)
            assert all(entry.acknowledged for entry in history)

            status = (await client.get("/api/status")).json()
            assert status["position"] == {"x": 3, "y": 0, "z": 0}
        dependencies._app_state = None


class TestUnhandledErrors:

    def test_logged_and_reported_as_500(self, capsys):
        app = create_app()

        @app.get("/boom")
        def boom():
            raise RuntimeError("boom")

        with TestClient(app, raise_server_exceptions=False) as c:
            response = c.get("/boom")

        assert response.status_code == 500
        assert response.json()["detail"] == "boom"
        assert "RuntimeError: boom" in capsys.readouterr().err


class TestErrorMapping:

    @pytest.mark.parametrize("exc, code", [
        (OutOfBoundsError("x"), 400),
        (InvalidArgumentError("x"), 400),
        (NotReadyError("x"), 400),
        (ProtocolError("x"), 502),
        (TransportError("x"), 503),
        (PrinterTimeoutError("x"), 504),
        (PrinterError("x"), 500),
    ])
    def test_status_codes(self, exc, code):
        assert status_code_for(exc) == code
