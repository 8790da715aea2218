"""
Accès aux données pour la feature 'orders' (tables orders, custom_orders) via le client service-role.
Les erreurs Supabase (postgrest APIError) sont propagées: le service décide (doublon 23505, compensation).
"""
from typing import Any, Dict, Optional
import logging

import helldivers_backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
CUSTOM_ORDERS_TABLE = "custom_orders"

# module helldivers_backend.orders.repository
def _first(res) -> Optional[Dict[str, Any]]:
    rows = res.data or []
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None

def find_order_by_transaction(transaction_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table(ORDERS_TABLE)
        .select("id")
        .eq("transaction_id", transaction_id)
        .limit(1)
        .execute()
    )
    return _first(res)

def find_custom_order_by_payment_intent(payment_intent_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table(CUSTOM_ORDERS_TABLE)
        .select("id")
        .eq("payment_intent_id", payment_intent_id)
        .limit(1)
        .execute()
    )
    return _first(res)

def insert_order(row: Dict[str, Any]) -> Dict[str, Any]:
    """Insère une ligne 'orders' et retourne la ligne créée (au minimum {id})."""
    res = supabase_client.get_service_supabase().table(ORDERS_TABLE).insert(row).execute()
    created = _first(res)
    if not created:
        raise RuntimeError("orders insert returned no row")
    return created

def insert_custom_order(row: Dict[str, Any]) -> Dict[str, Any]:
    """Insère une ligne 'custom_orders' et retourne la ligne créée (au minimum {id})."""
    res = supabase_client.get_service_supabase().table(CUSTOM_ORDERS_TABLE).insert(row).execute()
    created = _first(res)
    if not created:
        raise RuntimeError("custom_orders insert returned no row")
    return created

def delete_order(order_id: Any) -> None:
    supabase_client.get_service_supabase().table(ORDERS_TABLE).delete().eq("id", order_id).execute()
    logger.info("orders.repository.delete_order id=%s", order_id)
