"""
Construction des métadonnées Stripe du PaymentIntent (snapshot du calcul serveur).
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

# Limites Stripe sur les métadonnées
MAX_KEYS = 50
MAX_KEY_LENGTH = 40
MAX_VALUE_LENGTH = 500

# module helldivers_backend.payments.metadata
def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)

def clamp_metadata(metadata: Dict[str, Any]) -> Dict[str, str]:
    """
    Applique les limites Stripe:
    - valeurs converties en str, tronquées à 500 caractères
    - clés tronquées à 40 caractères
    - au plus 50 clés (les premières insérées sont conservées)
    """
    out: Dict[str, str] = {}
    for key, value in (metadata or {}).items():
        if len(out) >= MAX_KEYS:
            logger.warning("payments.metadata too many keys, dropped from key=%s", key)
            break
        out[str(key)[:MAX_KEY_LENGTH]] = _as_str(value)[:MAX_VALUE_LENGTH]
    return out

def build_metadata(
    client_metadata: Optional[Dict[str, Any]],
    breakdown: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """
    Fusionne les métadonnées client et le snapshot serveur.
    - Le snapshot (montants à 2 décimales + calculatedAt ISO UTC) est prioritaire sur les clés client.
    - Le snapshot est placé en tête pour survivre à la limite de 50 clés.
    """
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    snapshot: Dict[str, Any] = {
        "servicesTotal": f"{breakdown['servicesTotal']:.2f}",
        "customOrderTotal": f"{breakdown['customOrderTotal']:.2f}",
        "subtotal": f"{breakdown['subtotal']:.2f}",
        "referralCode": breakdown.get("referralCode") or "",
        "referralDiscount": f"{breakdown['referralDiscount']:.2f}",
        "creditsUsed": f"{breakdown['creditsUsed']:.2f}",
        "tax": f"{breakdown['tax']:.2f}",
        "finalAmount": f"{breakdown['finalAmount']:.2f}",
        "calculatedAt": stamp,
    }
    merged: Dict[str, Any] = dict(snapshot)
    for key, value in (client_metadata or {}).items():
        if key not in snapshot:
            merged[key] = value
    return clamp_metadata(merged)
