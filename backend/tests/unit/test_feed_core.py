"""
Tests unitaires pour les briques communes des flux.

Ces tests vérifient:
- L'historique borné (FIFO, fusion dédupliquée)
- Le registre d'abonnés (diffusion, désabonnement, échecs isolés)
- La tâche de fond annulable
"""

import asyncio

import pytest

from vitals_overlay.infrastructure.feeds.history import ReadingHistory
from vitals_overlay.infrastructure.feeds.subscribers import SubscriberRegistry
from vitals_overlay.infrastructure.feeds.task_handle import TaskHandle

from conftest import make_reading


# =============================================================================
# HISTORIQUE
# =============================================================================

class TestReadingHistory:
    """Tests pour ReadingHistory."""

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            ReadingHistory(0)

    def test_append_evicts_oldest(self):
        history = ReadingHistory(3)
        for i in range(5):
            history.append(make_reading(60 + i, 1000 * i))

        values = [r.value for r in history.snapshot()]
        assert values == [62, 63, 64]
        assert history.latest.value == 64

    def test_append_out_of_order_keeps_chronological_order(self):
        history = ReadingHistory(3)
        history.append(make_reading(60, 2000))
        history.append(make_reading(61, 1000))
        history.append(make_reading(62, 3000))
        history.append(make_reading(63, 1500))

        assert [r.value for r in history.snapshot()] == [63, 60, 62]
        assert history.latest.value == 62

    def test_snapshot_is_a_copy(self):
        history = ReadingHistory(3)
        history.append(make_reading(70, 1000))

        snapshot = history.snapshot()
        snapshot.clear()

        assert len(history) == 1

    def test_merge_sorts_and_dedupes(self):
        history = ReadingHistory(10)
        history.append(make_reading(110, 2000))

        added = history.merge([
            make_reading(130, 4000),
            make_reading(100, 1000),
            make_reading(999, 2000),  # déjà présent
            make_reading(120, 3000),
        ])

        assert added == 3
        assert [r.value for r in history.snapshot()] == [100, 110, 120, 130]

    def test_merge_duplicate_inside_batch(self):
        history = ReadingHistory(10)

        added = history.merge([make_reading(100, 1000), make_reading(101, 1000)])

        assert added == 1
        assert len(history) == 1

    def test_merge_same_batch_twice_is_idempotent(self):
        history = ReadingHistory(10)
        batch = [make_reading(120, 3000), make_reading(110, 1000)]

        history.merge(batch)
        added = history.merge(batch)

        assert added == 0
        assert [r.value for r in history.snapshot()] == [110, 120]

    def test_merge_respects_capacity(self):
        history = ReadingHistory(2)

        history.merge([make_reading(v, v * 1000) for v in range(1, 6)])

        assert [r.value for r in history.snapshot()] == [4, 5]

    def test_clear(self):
        history = ReadingHistory(2)
        history.append(make_reading(1, 1))
        history.clear()

        assert len(history) == 0
        assert history.latest is None


# =============================================================================
# ABONNÉS
# =============================================================================

class TestSubscriberRegistry:
    """Tests pour SubscriberRegistry."""

    def test_broadcast_reaches_every_subscriber(self):
        registry = SubscriberRegistry("test")
        received_a, received_b = [], []
        registry.add("a", received_a.append)
        registry.add("b", received_b.append)

        delivered = registry.broadcast(make_reading(72, 1000))

        assert delivered == 2
        assert [r.value for r in received_a] == [72]
        assert [r.value for r in received_b] == [72]

    def test_unsubscribe_is_idempotent(self):
        registry = SubscriberRegistry("test")
        unsubscribe = registry.add("a", lambda r: None)

        unsubscribe()
        unsubscribe()

        assert registry.count == 0

    def test_stale_unsubscribe_keeps_newer_registration(self):
        registry = SubscriberRegistry("test")
        received = []
        old_unsubscribe = registry.add("a", lambda r: None)
        registry.add("a", received.append)

        old_unsubscribe()
        registry.broadcast(make_reading(80, 1000))

        assert "a" in registry
        assert len(received) == 1

    def test_failing_subscriber_does_not_block_others(self):
        registry = SubscriberRegistry("test")
        received = []

        def broken(reading):
            raise RuntimeError("viewer gone")

        registry.add("broken", broken)
        registry.add("ok", received.append)

        delivered = registry.broadcast(make_reading(90, 1000))

        assert delivered == 1
        assert len(received) == 1
        # L'abonné en échec reste enregistré
        assert "broken" in registry

    def test_unsubscribe_during_broadcast(self):
        registry = SubscriberRegistry("test")
        received = []
        unsubscribe_b = None

        def first(reading):
            unsubscribe_b()

        registry.add("a", first)
        unsubscribe_b = registry.add("b", received.append)

        registry.broadcast(make_reading(70, 1000))

        assert registry.count == 1
        assert "b" not in registry

    def test_deliver_to_unknown_subscriber(self):
        registry = SubscriberRegistry("test")
        assert registry.deliver_to("nobody", make_reading(70, 1000)) is False


# =============================================================================
# TÂCHE DE FOND
# =============================================================================

class TestTaskHandle:
    """Tests pour TaskHandle."""

    @pytest.mark.asyncio
    async def test_start_replaces_previous_task(self):
        handle = TaskHandle("test")
        first = handle.start(asyncio.sleep(10))
        second = handle.start(asyncio.sleep(10))

        await asyncio.sleep(0)

        assert first.cancelled()
        assert not second.done()
        assert handle.active

        await handle.stop()
        assert second.cancelled()

    @pytest.mark.asyncio
    async def test_stop_without_task(self):
        handle = TaskHandle("test")
        await handle.stop()
        assert not handle.active

    @pytest.mark.asyncio
    async def test_stop_from_inside_task(self):
        handle = TaskHandle("test")

        async def self_stopping():
            await handle.stop()
            await asyncio.sleep(10)

        task = handle.start(self_stopping())
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not handle.active
