"""Pytest configuration and shared fixtures."""

import os
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing settings
os.environ.update({
    "ENVIRONMENT": "development",
    "AUTH_ENABLED": "false",
    "FRAME_DRIVER_ENABLED": "false",  # Tests drive ticks by hand
    "METRICS_ENABLED": "true",
    "DEFAULT_FADE_MS": "500",
})
os.environ.pop("MODEL_PATH", None)
os.environ.pop("API_KEY", None)


def make_descriptor() -> dict[str, Any]:
    """A small CDI3 descriptor covering the common parameter shapes."""
    return {
        "Version": 3,
        "Name": "hiyori",
        "Parameters": [
            {"Id": "ParamAngleX", "Name": "Angle X", "DefaultValue": 0, "MinValue": -30, "MaxValue": 30},
            {"Id": "ParamEyeLOpen", "Name": "Eye L Open", "DefaultValue": 1, "MinValue": 0, "MaxValue": 1},
            {"Id": "ParamMouthOpenY", "Name": "Mouth Open", "DefaultValue": 0, "MinValue": 0, "MaxValue": 1},
            {"Id": "ParamMouthForm", "Name": "Mouth Form", "DefaultValue": 0, "MinValue": -1, "MaxValue": 1},
            {"Id": "ParamCheek", "Name": "Blush", "GroupId": "Face"},
            {"Id": "ParamBodyAngleX", "Name": "Body X", "DefaultValue": 0, "MinValue": -10, "MaxValue": 10},
            {"Id": "ParamBreath", "Name": "Breath", "Category": "Idle"},
        ],
    }


@pytest.fixture
def descriptor() -> dict[str, Any]:
    """Provide a fresh descriptor dict."""
    return make_descriptor()


@pytest.fixture
def catalogue():
    """Provide the catalogue built from the test descriptor."""
    from puppet_expressions.model.descriptor import parse_descriptor
    return parse_descriptor(make_descriptor())


@pytest.fixture
def clock():
    """Provide a hand-driven clock at t=0."""
    from puppet_expressions.animation.clock import ManualClock
    return ManualClock()


@pytest.fixture
def runtime():
    """Provide a headless runtime recording committed values."""
    from puppet_expressions.engine.runtime import RecordingRuntime
    return RecordingRuntime()


@pytest.fixture
def events() -> list:
    """Collects events emitted through the broadcaster fixture."""
    return []


@pytest.fixture
def broadcaster(events):
    """Provide an event broadcaster that records into ``events``."""
    from puppet_expressions.engine.events import EventBroadcaster
    broadcaster = EventBroadcaster()
    broadcaster.subscribe(events.append)
    return broadcaster


@pytest.fixture
def empty_engine(broadcaster, runtime, clock):
    """Provide an engine with no model loaded."""
    from puppet_expressions.engine.engine import ExpressionEngine
    return ExpressionEngine(
        sink=broadcaster,
        runtime=runtime,
        clock=clock,
        default_fade_ms=500,
    )


@pytest.fixture
def engine(empty_engine, catalogue, events):
    """Provide an engine with the test model loaded."""
    empty_engine.load_model(catalogue)
    events.clear()
    return empty_engine


@pytest.fixture
def client(monkeypatch) -> Generator[TestClient, None, None]:
    """Provide FastAPI test client with a fresh engine and parameter stream."""
    from puppet_expressions.api.routes.expressions import reset_engine
    from puppet_expressions.api.websocket import parameters
    from puppet_expressions.config.settings import get_settings
    from puppet_expressions.main import app

    get_settings.cache_clear()
    monkeypatch.setattr(parameters, "_stream", None)
    reset_engine()
    with TestClient(app) as c:
        yield c
    reset_engine()


@pytest.fixture
def loaded_client(client: TestClient) -> TestClient:
    """Provide a test client with the test model loaded."""
    response = client.post("/model", json={"descriptor": make_descriptor()})
    assert response.status_code == 200
    return client
