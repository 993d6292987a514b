"""
Canal Server-Sent Events par spectateur.

PROTOCOLE (une ligne "data: <json>" par événement):
    {"type": "init", "isConnected": true, "current": {...}, "history": [...]}
    {"type": "heartrate", "value": 72, "timestamp": 1700000000000}
    {"type": "glucose", "value": 112, "timestamp": ..., "trend": "stable", "vendorTrend": "Flat"}
    {"type": "status", "isConnected": true, "current": {...}}

Le flux livre dans une asyncio.Queue bornée via put_nowait: un spectateur
lent ne bloque jamais le producteur (file pleine = livraison en échec, journalisée).
"""

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator, Dict, Optional

from starlette.requests import Request

from vitals_overlay.config.constants import VIEWER_QUEUE_SIZE
from vitals_overlay.domain.entities.reading import Reading
from vitals_overlay.infrastructure.feeds.base import LiveFeed

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(data: Dict[str, Any]) -> str:
    """Sérialise un événement SSE."""
    return f"data: {json.dumps(data)}\n\n"


async def feed_event_stream(
    request: Request,
    feed: LiveFeed,
    event_type: str,
    status_interval: float,
    viewer_id: Optional[str] = None,
    queue_size: int = VIEWER_QUEUE_SIZE,
) -> AsyncIterator[str]:
    """
    Génère les événements SSE d'un spectateur.

    Args:
        request: Requête HTTP (détection de déconnexion)
        feed: Flux à suivre
        event_type: Type des événements de mesure ("heartrate", "glucose")
        status_interval: Délai sans mesure avant un événement "status" (secondes)
        viewer_id: Identifiant du spectateur (généré si absent)
        queue_size: Nombre maximum de mesures en attente
    """
    viewer_id = viewer_id or str(uuid.uuid4())
    queue: "asyncio.Queue[Reading]" = asyncio.Queue(maxsize=queue_size)

    yield format_event({"type": "init", **feed.snapshot()})

    unsubscribe = feed.subscribe(viewer_id, queue.put_nowait)
    logger.info(f"[SSE] Viewer {viewer_id} attached to {feed.name}")

    try:
        while True:
            if await request.is_disconnected():
                break

            try:
                reading = await asyncio.wait_for(queue.get(), timeout=status_interval)
            except asyncio.TimeoutError:
                status = feed.status()
                yield format_event({
                    "type": "status",
                    "isConnected": status["isConnected"],
                    "current": status["current"],
                })
                continue

            yield format_event({"type": event_type, **reading.to_dict()})
    finally:
        unsubscribe()
        logger.info(f"[SSE] Viewer {viewer_id} detached from {feed.name}")
