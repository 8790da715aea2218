"""
Diagnostic Supabase orienté paiement.
Vérifie que les lectures faites par le calcul du prix (catalogue actif, mêmes colonnes que
catalog.repository) et les tables d'écriture des commandes (clés d'idempotence) répondent.
"""
from typing import Any, Callable, Dict
from urllib.parse import urlparse
import logging

import helldivers_backend.config as config
import helldivers_backend.infra.supabase_client as supabase_client
from helldivers_backend.catalog import repository as catalog_repository

logger = logging.getLogger(__name__)

# table -> (colonnes lues, filtre appliqué par le calcul du prix)
PRICING_QUERIES: Dict[str, Any] = {
    "services": (catalog_repository.SERVICE_COLUMNS, lambda q: q.eq("active", True)),
    "bundles": (catalog_repository.BUNDLE_COLUMNS, lambda q: q.eq("active", True)),
    "products": (
        catalog_repository.PRODUCT_COLUMNS,
        lambda q: q.eq("status", "active").in_("visibility", catalog_repository.PUBLIC_VISIBILITIES),
    ),
}

# table -> colonne d'idempotence consultée avant chaque insertion
ORDER_KEYS = {
    "orders": "transaction_id",
    "custom_orders": "payment_intent_id",
}


def _sample(client, table: str, columns: str, narrow: Callable = lambda q: q) -> Dict[str, Any]:
    try:
        res = narrow(client.table(table).select(columns)).limit(1).execute()
    except Exception as e:
        logger.warning("health.supabase %s unreachable: %s", table, e)
        return {"ok": False, "error": str(e)}
    return {"ok": True, "sampled": len(res.data or [])}


def health_supabase_info() -> Dict[str, Any]:
    """
    pricing_ready: les trois tables du catalogue sont lisibles (un catalogue vide reste "prêt",
    chaque article sera alors refusé comme inconnu).
    orders_ready: orders et custom_orders sont lisibles par leur clé d'idempotence.
    """
    info: Dict[str, Any] = {
        "supabase_host": urlparse(config.SUPABASE_URL).hostname if config.SUPABASE_URL else None,
        "pricing": {},
        "orders": {},
        "pricing_ready": False,
        "orders_ready": False,
        "error": None,
    }
    try:
        client = supabase_client.get_service_supabase()
    except Exception as e:
        info["error"] = str(e)
        return info

    for table, (columns, narrow) in PRICING_QUERIES.items():
        info["pricing"][table] = _sample(client, table, columns, narrow)
    for table, key in ORDER_KEYS.items():
        info["orders"][table] = _sample(client, table, key)

    info["pricing_ready"] = all(t["ok"] for t in info["pricing"].values())
    info["orders_ready"] = all(t["ok"] for t in info["orders"].values())
    return info
