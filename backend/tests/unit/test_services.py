"""
Tests unitaires pour les services applicatifs.

Ces tests vérifient:
- FeedConnectionService: sauvegarde après connexion réussie uniquement
- auto_connect: reconnexion des flux sauvegardés, échecs isolés
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from vitals_overlay.application.services.auto_connect import auto_connect
from vitals_overlay.application.services.feed_connection_service import FeedConnectionService
from vitals_overlay.domain.entities.reading import ConnectionState
from vitals_overlay.domain.exceptions import (
    AuthenticationError,
    ConnectionSupersededError,
    InvalidInputError,
    UpstreamError,
)
from vitals_overlay.infrastructure.feeds.glucose_feed import GlucoseFeed
from vitals_overlay.infrastructure.database.repositories.settings_repository import StoredSettings

from conftest import WIDGET_URL


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def mock_heart_rate_feed():
    feed = MagicMock()
    feed.connect = AsyncMock(return_value=True)
    feed.disconnect = AsyncMock()
    feed.close = AsyncMock()
    return feed


@pytest.fixture
def mock_glucose_feed():
    feed = MagicMock()
    feed.connect = AsyncMock(return_value=True)
    feed.disconnect = AsyncMock()
    feed.close = AsyncMock()
    return feed


@pytest.fixture
def mock_repository():
    repository = MagicMock()
    repository.save = AsyncMock()
    repository.load = AsyncMock(return_value=StoredSettings())
    return repository


@pytest.fixture
def service(mock_heart_rate_feed, mock_glucose_feed, mock_repository):
    return FeedConnectionService(mock_heart_rate_feed, mock_glucose_feed, mock_repository)


# =============================================================================
# FEED CONNECTION SERVICE
# =============================================================================

class TestFeedConnectionService:
    """Tests pour FeedConnectionService."""

    @pytest.mark.asyncio
    async def test_heart_rate_saved_after_connect(self, service, mock_heart_rate_feed, mock_repository):
        await service.connect_heart_rate(f"  {WIDGET_URL} ")

        mock_heart_rate_feed.connect.assert_awaited_once()
        mock_repository.save.assert_awaited_once_with(widget_url=WIDGET_URL)

    @pytest.mark.asyncio
    async def test_heart_rate_not_saved_on_failure(self, service, mock_heart_rate_feed, mock_repository):
        mock_heart_rate_feed.connect.side_effect = UpstreamError("stromno", "Widget not found")

        with pytest.raises(UpstreamError):
            await service.connect_heart_rate(WIDGET_URL)

        mock_repository.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_glucose_saved_after_connect(self, service, mock_glucose_feed, mock_repository):
        await service.connect_glucose({"username": "user", "password": "secret", "region": "OUS"})

        mock_glucose_feed.connect.assert_awaited_once()
        mock_repository.save.assert_awaited_once_with(
            dexcom_username="user",
            dexcom_password="secret",
            dexcom_region="ous",
        )

    @pytest.mark.asyncio
    async def test_glucose_invalid_credentials_never_reach_feed(self, service, mock_glucose_feed):
        with pytest.raises(InvalidInputError):
            await service.connect_glucose({"username": "user", "password": ""})

        mock_glucose_feed.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_superseded_heart_rate_connect_is_not_saved(
        self, service, mock_heart_rate_feed, mock_repository
    ):
        mock_heart_rate_feed.connect.return_value = False

        with pytest.raises(ConnectionSupersededError):
            await service.connect_heart_rate(WIDGET_URL)

        mock_repository.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_glucose_connect_overridden_by_disconnect_is_not_saved(
        self, mock_heart_rate_feed, mock_repository, mock_dexcom_client
    ):
        """
        Given: Une authentification Dexcom en cours
        When: Un disconnect() arrive avant la fin de la poignée de main
        Then: Le connect échoue en CONNECT_SUPERSEDED et rien n'est sauvegardé
        """
        release = asyncio.Event()

        async def slow_authenticate(username, password):
            await release.wait()
            return "account-1"

        mock_dexcom_client.authenticate.side_effect = slow_authenticate
        glucose_feed = GlucoseFeed(client_factory=lambda region: mock_dexcom_client, poll_interval=3600)
        service = FeedConnectionService(mock_heart_rate_feed, glucose_feed, mock_repository)

        connect_task = asyncio.create_task(
            service.connect_glucose({"username": "user", "password": "secret", "region": "us"})
        )
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await service.disconnect_glucose()
        release.set()

        with pytest.raises(ConnectionSupersededError) as exc_info:
            await connect_task

        assert exc_info.value.code == "CONNECT_SUPERSEDED"
        assert glucose_feed.state == ConnectionState.DISCONNECTED
        mock_repository.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_repository(self, mock_heart_rate_feed, mock_glucose_feed):
        service = FeedConnectionService(mock_heart_rate_feed, mock_glucose_feed)

        await service.connect_heart_rate(WIDGET_URL)

        mock_heart_rate_feed.connect.assert_awaited_once_with(WIDGET_URL)

    @pytest.mark.asyncio
    async def test_shutdown_closes_both_feeds(self, service, mock_heart_rate_feed, mock_glucose_feed):
        await service.shutdown()

        mock_heart_rate_feed.close.assert_awaited_once()
        mock_glucose_feed.close.assert_awaited_once()


# =============================================================================
# AUTO CONNECT
# =============================================================================

class TestAutoConnect:
    """Tests pour auto_connect."""

    @pytest.mark.asyncio
    async def test_nothing_saved(self, mock_repository, mock_heart_rate_feed, mock_glucose_feed):
        result = await auto_connect(mock_repository, mock_heart_rate_feed, mock_glucose_feed)

        assert result == {"heart_rate": False, "glucose": False}
        mock_heart_rate_feed.connect.assert_not_awaited()
        mock_glucose_feed.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reconnects_saved_feeds(self, mock_repository, mock_heart_rate_feed, mock_glucose_feed):
        mock_repository.load.return_value = StoredSettings(
            widget_url=WIDGET_URL,
            dexcom_username="user",
            dexcom_password="secret",
            dexcom_region="us",
        )

        result = await auto_connect(mock_repository, mock_heart_rate_feed, mock_glucose_feed)

        assert result == {"heart_rate": True, "glucose": True}
        mock_heart_rate_feed.connect.assert_awaited_once_with(WIDGET_URL)
        mock_glucose_feed.connect.assert_awaited_once_with(
            {"username": "user", "password": "secret", "region": "us"}
        )

    @pytest.mark.asyncio
    async def test_incomplete_credentials_are_skipped(
        self, mock_repository, mock_heart_rate_feed, mock_glucose_feed
    ):
        mock_repository.load.return_value = StoredSettings(dexcom_username="user", dexcom_region="us")

        result = await auto_connect(mock_repository, mock_heart_rate_feed, mock_glucose_feed)

        assert result["glucose"] is False
        mock_glucose_feed.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_the_other(
        self, mock_repository, mock_heart_rate_feed, mock_glucose_feed
    ):
        mock_repository.load.return_value = StoredSettings(
            widget_url=WIDGET_URL,
            dexcom_username="user",
            dexcom_password="secret",
            dexcom_region="us",
        )
        mock_heart_rate_feed.connect.side_effect = UpstreamError("stromno", "Widget not found")
        mock_glucose_feed.connect.side_effect = None

        result = await auto_connect(mock_repository, mock_heart_rate_feed, mock_glucose_feed)

        assert result == {"heart_rate": False, "glucose": True}

    @pytest.mark.asyncio
    async def test_auth_failure_is_logged_not_raised(
        self, mock_repository, mock_heart_rate_feed, mock_glucose_feed
    ):
        mock_repository.load.return_value = StoredSettings(
            dexcom_username="user",
            dexcom_password="wrong",
            dexcom_region="us",
        )
        mock_glucose_feed.connect.side_effect = AuthenticationError("dexcom")

        result = await auto_connect(mock_repository, mock_heart_rate_feed, mock_glucose_feed)

        assert result["glucose"] is False

    @pytest.mark.asyncio
    async def test_superseded_reconnect_is_not_reported_as_connected(
        self, mock_repository, mock_heart_rate_feed, mock_glucose_feed
    ):
        mock_repository.load.return_value = StoredSettings(widget_url=WIDGET_URL)
        mock_heart_rate_feed.connect.return_value = False

        result = await auto_connect(mock_repository, mock_heart_rate_feed, mock_glucose_feed)

        assert result["heart_rate"] is False

    @pytest.mark.asyncio
    async def test_unreadable_store(self, mock_repository, mock_heart_rate_feed, mock_glucose_feed):
        mock_repository.load.side_effect = RuntimeError("database is locked")

        result = await auto_connect(mock_repository, mock_heart_rate_feed, mock_glucose_feed)

        assert result == {"heart_rate": False, "glucose": False}
