"""
Fixtures pytest partagées pour les tests Vitals Overlay.

Ce fichier contient:
- Configuration globale des tests
- Faux fournisseurs (Stromno, Dexcom, WebSocket)
- Helpers pour les tests async

UTILISATION:
    Les fixtures sont automatiquement disponibles dans tous les tests.
    Exemple:
        async def test_something(fake_connector, settle):
            ...
            await settle()
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ajouter le répertoire backend au path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from vitals_overlay.domain.entities.reading import Reading


WIDGET_ID = "123e4567-e89b-12d3-a456-426614174000"
WIDGET_URL = f"https://app.stromno.com/widget/view/{WIDGET_ID}"
ENDPOINT = "wss://ramiel.stromno.com/ws/abc"


# =============================================================================
# FAUX WEBSOCKET
# =============================================================================

class FakeSocket:
    """WebSocket simulé: les trames sont poussées dans une file, None ferme la connexion."""

    def __init__(self):
        self.frames: "asyncio.Queue[Optional[str]]" = asyncio.Queue()

    def push(self, frame: Optional[str]) -> None:
        self.frames.put_nowait(frame)

    def close(self) -> None:
        self.frames.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        frame = await self.frames.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


class FakeConnector:
    """
    Connecteur simulé pour HeartRateFeed.

    Attributes:
        calls: URLs demandées, dans l'ordre
        sockets: Sockets ouverts, dans l'ordre
        failures: Nombre de tentatives à refuser avant d'accepter
    """

    def __init__(self, failures: int = 0):
        self.calls: List[str] = []
        self.sockets: List[FakeSocket] = []
        self.failures = failures

    def __call__(self, url: str):
        self.calls.append(url)
        if self.failures > 0:
            self.failures -= 1
            return self._refuse()
        socket = FakeSocket()
        self.sockets.append(socket)
        return self._open(socket)

    @asynccontextmanager
    async def _open(self, socket: FakeSocket):
        yield socket

    @asynccontextmanager
    async def _refuse(self):
        raise OSError("connection refused")
        yield  # pragma: no cover

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settle():
    """Laisse tourner la boucle asyncio quelques itérations."""
    async def _settle(rounds: int = 10) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)
    return _settle


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def mock_stromno_client():
    """Client Stromno qui résout toujours vers ENDPOINT."""
    client = MagicMock()
    client.resolve_endpoint = AsyncMock(return_value=ENDPOINT)
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_dexcom_client():
    """Client Dexcom dont la poignée de main réussit et la lecture renvoie 3 mesures."""
    client = MagicMock()
    client.authenticate = AsyncMock(return_value="account-1")
    client.login = AsyncMock(return_value="session-1")
    client.read_latest = AsyncMock(return_value=[
        dexcom_record(1700000600000, 120, "FortyFiveUp"),
        dexcom_record(1700000000000, 110, "Flat"),
        dexcom_record(1700000300000, 115, "Flat"),
    ])
    client.close = AsyncMock()
    return client


@pytest.fixture
def valid_credentials() -> dict:
    return {"username": "user@example.com", "password": "secret", "region": "us"}


# =============================================================================
# HELPERS
# =============================================================================

def dexcom_record(timestamp_ms: int, value: float, trend: str = "Flat") -> dict:
    """Enregistrement Dexcom Share brut."""
    return {
        "WT": f"Date({timestamp_ms})",
        "ST": f"Date({timestamp_ms})",
        "DT": f"Date({timestamp_ms}+0000)",
        "Value": value,
        "Trend": trend,
    }


def make_reading(value: float, timestamp_ms: int) -> Reading:
    return Reading(
        value=value,
        timestamp=datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc),
    )
