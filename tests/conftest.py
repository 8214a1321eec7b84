"""
Pytest Configuration and Shared Fixtures

Provides test fixtures, fake WebSocket transports and app clients
for unit and integration tests.
"""

import json
import os
import time
from typing import Callable, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

# Test environment setup
os.environ["RELAY_ENVIRONMENT"] = "test"
os.environ["RELAY_KEEPALIVE_ENABLED"] = "false"
os.environ["TESTING"] = "1"

from app import create_app
from config.settings import get_settings, reload_settings
from core.sessions import SessionStore
from monitoring import get_registry
from ws import ConnectionRegistry, MessageHandler, WebSocketHub


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test component interactions"
    )


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def test_settings():
    """Load test settings."""
    reload_settings()  # Clear cache and reload with test environment
    return get_settings()


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset settings after each test."""
    yield
    reload_settings()


@pytest.fixture(autouse=True)
def reset_metrics():
    """Zero process-wide metrics before each test."""
    get_registry().reset()
    yield


# =============================================================================
# Fake Transport
# =============================================================================

class FakeWebSocket:
    """
    In-memory stand-in for a Starlette WebSocket.

    Records every frame written to it as decoded JSON.
    """

    def __init__(self, fail_sends: bool = False):
        self.application_state = WebSocketState.CONNECTED
        self.client_state = WebSocketState.CONNECTED
        self.fail_sends = fail_sends
        self.sent: List[dict] = []
        self.close_code: Optional[int] = None
        self.close_reason: Optional[str] = None

    async def send_text(self, text: str) -> None:
        if self.fail_sends:
            raise RuntimeError("Connection reset by peer")
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        self.close_code = code
        self.close_reason = reason
        self.application_state = WebSocketState.DISCONNECTED
        self.client_state = WebSocketState.DISCONNECTED

    def disconnect(self) -> None:
        """Simulate the peer going away."""
        self.client_state = WebSocketState.DISCONNECTED

    def frames(self, frame_type: str) -> List[dict]:
        return [f for f in self.sent if f.get("type") == frame_type]


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_ws() -> Callable[..., FakeWebSocket]:
    """Factory for fake WebSocket transports."""
    return FakeWebSocket


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Relay Fixtures
# =============================================================================

@pytest.fixture
def registry() -> ConnectionRegistry:
    """Connection registry with a short send timeout."""
    return ConnectionRegistry(send_timeout=0.5)


@pytest.fixture
def store(registry, clock) -> SessionStore:
    """Session store on a fake clock with the default TTL."""
    return SessionStore(registry, clock=clock)


@pytest.fixture
def handler(store, registry) -> MessageHandler:
    return MessageHandler(store, registry)


@pytest.fixture
def hub(store, registry) -> WebSocketHub:
    return WebSocketHub(store, registry)


# =============================================================================
# FastAPI App Fixtures
# =============================================================================

@pytest.fixture
def app(test_settings):
    """Create FastAPI app for testing."""
    return create_app()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """
    Test client with startup/shutdown events run.

    All WebSocket sessions opened from it share one event loop, so they
    see the same hub and session store.
    """
    with TestClient(app) as test_client:
        yield test_client


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def eventually() -> Callable[..., bool]:
    """Polling helper for state that settles on the server loop."""
    return wait_for
