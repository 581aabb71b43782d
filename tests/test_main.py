"""
Service Tests
=============

Tests for the FastAPI endpoints with an in-memory camera.
"""

import time

import pytest
from fastapi.testclient import TestClient

from pose_overlay import main
from pose_overlay.models.orientation import Platform
from pose_overlay.perception.engine import MockPoseEngine
from pose_overlay.session import PoseOverlaySession


@pytest.fixture
def client(monkeypatch, camera_factory, back_camera, front_camera):
    """Client whose session streams from fake cameras."""

    def create_session(config):
        return PoseOverlaySession(
            cameras=[back_camera, front_camera],
            engine=MockPoseEngine(),
            platform=Platform.ANDROID,
            camera_factory=camera_factory,
        )

    monkeypatch.setattr(main, "create_session", create_session)
    with TestClient(main.app) as test_client:
        yield test_client


def poll_overlay(client: TestClient, timeout: float = 2.0):
    deadline = time.monotonic() + timeout
    while True:
        response = client.get("/overlay", params={"width": 400, "height": 800})
        if response.status_code == 200 or time.monotonic() > deadline:
            return response
        time.sleep(0.01)


class TestProbes:
    """Tests for info and probe endpoints."""

    def test_root(self, client):
        """Verify the info endpoint."""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "PoseOverlay"

    def test_health(self, client):
        """Verify the liveness probe."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        """Verify the readiness probe reports the active camera."""
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["camera"] == "back"

    def test_metrics(self, client):
        """Verify metrics include scheduler and normalizer counters."""
        data = client.get("/metrics").json()
        assert data["running"] is True
        assert "scheduler" in data
        assert "normalizer" in data
        assert data["start_error"] is None


class TestOverlay:
    """Tests for overlay output."""

    def test_no_overlay_before_first_frame(self, client):
        """Verify /overlay is unavailable before the first result."""
        assert client.get("/overlay", params={"width": 400, "height": 800}).status_code == 503

    def test_overlay_after_frame(self, client, camera_factory, make_nv21_frame):
        """Verify a captured frame produces overlay commands."""
        camera_factory.last.emit(make_nv21_frame(timestamp=1.0))

        response = poll_overlay(client)

        assert response.status_code == 200
        data = response.json()
        assert data["pose_count"] == 1
        assert data["rotation"] == 90
        assert len(data["commands"]) == 45

    def test_flip_camera(self, client, camera_factory):
        """Verify flipping switches to the next camera."""
        response = client.post("/camera/flip")

        assert response.status_code == 200
        assert response.json()["camera"] == "front"
        assert camera_factory.last.description.name == "front"


class TestStartFailure:
    """Service stays up, but not ready, when the camera cannot open."""

    def test_not_ready(self, monkeypatch, camera_factory, back_camera):
        """Verify the service starts but is not ready when the camera fails."""
        camera_factory.fail_open = True

        def create_session(config):
            return PoseOverlaySession(
                cameras=[back_camera],
                engine=MockPoseEngine(),
                platform=Platform.ANDROID,
                camera_factory=camera_factory,
            )

        monkeypatch.setattr(main, "create_session", create_session)
        with TestClient(main.app) as client:
            assert client.get("/health").status_code == 200

            response = client.get("/ready")
            assert response.status_code == 503
            assert "Cannot open camera" in response.json()["error"]
