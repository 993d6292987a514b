"""
Module des flux en direct.

Ce module fournit:
- LiveFeed: Interface commune (état, historique, abonnés)
- HeartRateFeed: Fréquence cardiaque via WebSocket Stromno
- GlucoseFeed: Glycémie via polling Dexcom Share
- SubscriberRegistry: Diffusion aux spectateurs
- ReadingHistory: Historique borné FIFO

UTILISATION:
    from vitals_overlay.infrastructure.feeds import HeartRateFeed, GlucoseFeed

    heart_rate = HeartRateFeed()
    await heart_rate.connect(widget_url)
"""

from vitals_overlay.infrastructure.feeds.base import LiveFeed
from vitals_overlay.infrastructure.feeds.glucose_feed import GlucoseFeed
from vitals_overlay.infrastructure.feeds.heart_rate_feed import HeartRateFeed
from vitals_overlay.infrastructure.feeds.history import ReadingHistory
from vitals_overlay.infrastructure.feeds.subscribers import SubscriberRegistry
from vitals_overlay.infrastructure.feeds.task_handle import TaskHandle

__all__ = [
    "LiveFeed",
    "HeartRateFeed",
    "GlucoseFeed",
    "ReadingHistory",
    "SubscriberRegistry",
    "TaskHandle",
]
