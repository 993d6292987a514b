"""
Tests unitaires pour GlucoseFeed.

Le client Dexcom est remplacé par un mock (fixture mock_dexcom_client).

Ces tests vérifient:
- La poignée de main et la première lecture
- La fusion dédupliquée des lots
- La reprise sur session expirée
- Le polling à intervalle fixe et l'état "reconnecting"
"""

import asyncio

import pytest

from vitals_overlay.domain.entities.reading import ConnectionState, GlucoseTrend
from vitals_overlay.domain.exceptions import (
    AuthenticationError,
    InvalidInputError,
    SessionExpiredError,
    UpstreamError,
)
from vitals_overlay.infrastructure.feeds.glucose_feed import GlucoseFeed

from conftest import dexcom_record


@pytest.fixture
def regions():
    """Régions demandées à la factory de clients."""
    return []


@pytest.fixture
def feed(mock_dexcom_client, regions):
    def factory(region):
        regions.append(region)
        return mock_dexcom_client

    return GlucoseFeed(client_factory=factory, poll_interval=3600, history_size=5)


# =============================================================================
# CONNEXION
# =============================================================================

class TestGlucoseConnect:
    """Tests pour GlucoseFeed.connect."""

    @pytest.mark.asyncio
    async def test_connect_performs_handshake_and_first_read(
        self, feed, mock_dexcom_client, regions, valid_credentials
    ):
        assert await feed.connect(valid_credentials) is True

        mock_dexcom_client.authenticate.assert_awaited_once_with("user@example.com", "secret")
        mock_dexcom_client.login.assert_awaited_once_with("account-1", "secret")
        mock_dexcom_client.read_latest.assert_awaited_once_with("session-1")
        assert regions == ["us"]
        assert feed.state == ConnectionState.CONNECTED
        assert feed.region == "us"

        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_first_batch_is_sorted_and_latest_is_current(self, feed, valid_credentials):
        await feed.connect(valid_credentials)

        assert [r.value for r in feed.history] == [110, 115, 120]
        assert feed.current_value.value == 120
        assert feed.current_value.trend == GlucoseTrend.RISING
        assert feed.current_value.vendor_trend == "FortyFiveUp"

        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_invalid_credentials_rejected_before_network(self, feed, regions):
        with pytest.raises(InvalidInputError):
            await feed.connect({"username": "", "password": "secret"})

        assert regions == []
        assert feed.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, feed, mock_dexcom_client, valid_credentials):
        mock_dexcom_client.authenticate.side_effect = AuthenticationError("dexcom", "AccountPasswordInvalid")

        with pytest.raises(AuthenticationError):
            await feed.connect(valid_credentials)

        assert feed.state == ConnectionState.DISCONNECTED
        assert feed.region is None
        mock_dexcom_client.close.assert_awaited()

    @pytest.mark.asyncio
    async def test_first_read_failure_fails_connect(self, feed, mock_dexcom_client, valid_credentials):
        mock_dexcom_client.read_latest.side_effect = UpstreamError("dexcom", "not a list")

        with pytest.raises(UpstreamError):
            await feed.connect(valid_credentials)

        assert feed.state == ConnectionState.DISCONNECTED
        assert feed.current_value is None

    @pytest.mark.asyncio
    async def test_empty_first_batch_still_connects(self, feed, mock_dexcom_client, valid_credentials):
        mock_dexcom_client.read_latest.return_value = []

        await feed.connect(valid_credentials)

        assert feed.is_connected
        assert feed.current_value is None

        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_connect_replaces_previous_session(self, feed, mock_dexcom_client, valid_credentials):
        await feed.connect(valid_credentials)
        await feed.connect({**valid_credentials, "region": "ous"})

        assert feed.region == "ous"
        assert mock_dexcom_client.authenticate.await_count == 2
        assert [r.value for r in feed.history] == [110, 115, 120]

        await feed.disconnect()


# =============================================================================
# LECTURES
# =============================================================================

class TestGlucosePolling:
    """Tests pour le polling Dexcom."""

    @pytest.mark.asyncio
    async def test_overlapping_batches_are_deduplicated(self, feed, mock_dexcom_client, valid_credentials):
        await feed.connect(valid_credentials)
        mock_dexcom_client.read_latest.return_value = [
            dexcom_record(1700000900000, 125, "SingleUp"),
            dexcom_record(1700000600000, 120, "FortyFiveUp"),
        ]

        latest = await feed.poll_now()

        assert latest.value == 125
        assert [r.value for r in feed.history] == [110, 115, 120, 125]
        # La session existante est réutilisée
        assert mock_dexcom_client.authenticate.await_count == 1

        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_latest_reading_broadcast_on_every_poll(self, feed, valid_credentials):
        received = []
        feed.subscribe("viewer-1", received.append)
        await feed.connect(valid_credentials)

        await feed.poll_now()

        assert [r.value for r in received] == [120, 120]

        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_invalid_records_are_skipped(self, feed, mock_dexcom_client, valid_credentials):
        await feed.connect(valid_credentials)
        mock_dexcom_client.read_latest.return_value = [
            {"Value": "high"},
            dexcom_record(1700000900000, 125),
        ]

        await feed.poll_now()

        assert feed.current_value.value == 125
        assert len(feed.history) == 4

        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_session_expired_triggers_single_rehandshake(
        self, feed, mock_dexcom_client, valid_credentials
    ):
        await feed.connect(valid_credentials)
        mock_dexcom_client.login.return_value = "session-2"
        mock_dexcom_client.read_latest.side_effect = [
            SessionExpiredError("dexcom"),
            [dexcom_record(1700000900000, 125)],
        ]

        latest = await feed.poll_now()

        assert latest.value == 125
        assert mock_dexcom_client.authenticate.await_count == 2
        mock_dexcom_client.read_latest.assert_awaited_with("session-2")
        assert feed.is_connected

        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_failed_reread_after_rehandshake_propagates(
        self, feed, mock_dexcom_client, valid_credentials
    ):
        await feed.connect(valid_credentials)
        mock_dexcom_client.read_latest.side_effect = SessionExpiredError("dexcom")

        with pytest.raises(SessionExpiredError):
            await feed.poll_now()

        assert mock_dexcom_client.read_latest.await_count == 3

        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_poll_loop_runs_at_fixed_interval(self, mock_dexcom_client, valid_credentials):
        feed = GlucoseFeed(client_factory=lambda region: mock_dexcom_client, poll_interval=0.01)

        await feed.connect(valid_credentials)
        await asyncio.sleep(0.1)

        assert mock_dexcom_client.read_latest.await_count >= 3

        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_poll_failure_sets_reconnecting_then_recovers(self, mock_dexcom_client, valid_credentials):
        feed = GlucoseFeed(client_factory=lambda region: mock_dexcom_client, poll_interval=0.02)
        await feed.connect(valid_credentials)

        mock_dexcom_client.read_latest.side_effect = UpstreamError("dexcom", "HTTP 503")
        await asyncio.sleep(0.05)

        assert feed.state == ConnectionState.RECONNECTING
        # Les valeurs restent disponibles
        assert feed.current_value.value == 120

        mock_dexcom_client.read_latest.side_effect = None
        await asyncio.sleep(0.05)

        assert feed.state == ConnectionState.CONNECTED

        await feed.disconnect()


# =============================================================================
# DÉCONNEXION
# =============================================================================

class TestGlucoseDisconnect:
    """Tests pour GlucoseFeed.disconnect."""

    @pytest.mark.asyncio
    async def test_disconnect_clears_everything(self, feed, mock_dexcom_client, valid_credentials):
        await feed.connect(valid_credentials)

        await feed.disconnect()

        assert feed.state == ConnectionState.DISCONNECTED
        assert feed.current_value is None
        assert feed.history == []
        assert feed.region is None
        mock_dexcom_client.close.assert_awaited()

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, feed, mock_dexcom_client, valid_credentials):
        # Sans connect() préalable
        await feed.disconnect()
        await feed.disconnect()
        assert feed.state == ConnectionState.DISCONNECTED
        mock_dexcom_client.close.assert_not_awaited()

        await feed.connect(valid_credentials)
        await feed.disconnect()
        await feed.disconnect()

        assert feed.state == ConnectionState.DISCONNECTED
        assert feed.history == []
        mock_dexcom_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_poll_after_disconnect_does_nothing(self, feed, mock_dexcom_client, valid_credentials):
        await feed.connect(valid_credentials)
        await feed.disconnect()

        assert await feed.poll_now() is None
        assert mock_dexcom_client.read_latest.await_count == 1

    @pytest.mark.asyncio
    async def test_disconnect_during_handshake_wins(self, feed, mock_dexcom_client, valid_credentials):
        release = asyncio.Event()

        async def slow_authenticate(username, password):
            await release.wait()
            return "account-1"

        mock_dexcom_client.authenticate.side_effect = slow_authenticate

        connect_task = asyncio.create_task(feed.connect(valid_credentials))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await feed.disconnect()
        release.set()
        assert await connect_task is False

        assert feed.state == ConnectionState.DISCONNECTED
        assert feed.current_value is None
