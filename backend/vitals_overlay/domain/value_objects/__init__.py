"""Value objects du domaine (paramètres de connexion validés)."""

from vitals_overlay.domain.value_objects.widget_url import parse_widget_url
from vitals_overlay.domain.value_objects.credentials import DexcomCredentials

__all__ = [
    "parse_widget_url",
    "DexcomCredentials",
]
