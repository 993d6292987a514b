"""
Clients des fournisseurs de données biométriques.

- StromnoClient: résolution des widgets de fréquence cardiaque
- DexcomClient: authentification et lecture Dexcom Share
"""

from vitals_overlay.infrastructure.providers.stromno_client import (
    StromnoClient,
    parse_heart_rate_message,
)
from vitals_overlay.infrastructure.providers.dexcom_client import (
    DexcomClient,
    parse_dexcom_timestamp,
    parse_glucose_records,
)

__all__ = [
    "StromnoClient",
    "parse_heart_rate_message",
    "DexcomClient",
    "parse_dexcom_timestamp",
    "parse_glucose_records",
]
