"""
Extraction de l'identifiant de widget Stromno.

Une URL de widget contient un segment de chemin au format UUID canonique,
ex: https://app.stromno.com/widget/view/123e4567-e89b-12d3-a456-426614174000

UTILISATION:
    from vitals_overlay.domain.value_objects.widget_url import parse_widget_url

    parse_widget_url("https://x.example/widget/view/123e4567-...")  # "123e4567-..."
    parse_widget_url("not a url")                                   # None
"""

from typing import Optional
from urllib.parse import urlsplit

from vitals_overlay.config.constants import WIDGET_ID_PATTERN


def parse_widget_url(url: str) -> Optional[str]:
    """
    Extrait le premier segment UUID du chemin d'une URL absolue.

    Args:
        url: URL du widget saisie par l'utilisateur

    Returns:
        L'identifiant du widget tel qu'il apparaît dans l'URL, ou None
    """
    if not isinstance(url, str):
        return None

    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None

    if not parts.scheme or not parts.netloc:
        return None

    for segment in parts.path.split("/"):
        if WIDGET_ID_PATTERN.match(segment):
            return segment

    return None
