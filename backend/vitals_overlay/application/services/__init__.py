"""
Services applicatifs.

- FeedConnectionService: connexion/déconnexion des flux et sauvegarde des paramètres
- auto_connect: reconnexion des flux sauvegardés au démarrage
"""

from vitals_overlay.application.services.auto_connect import auto_connect
from vitals_overlay.application.services.feed_connection_service import FeedConnectionService

__all__ = [
    "auto_connect",
    "FeedConnectionService",
]
