"""
Accès aux données pour les codes promo: appel RPC validate_referral_code.
"""
from typing import Any, Dict, Optional
import logging

import helldivers_backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module helldivers_backend.discounts.repository
def rpc_validate_referral_code(code: str, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Appelle la procédure validate_referral_code côté Supabase.
    - Retourne le dict renvoyé par la procédure (ou None si vide).
    - Les erreurs (réseau, APIError postgrest) sont propagées à l'appelant.
    """
    res = (
        supabase_client.get_service_supabase()
        .rpc("validate_referral_code", {"code": code, "user_id": user_id})
        .execute()
    )
    data = res.data
    # Selon la signature SQL, la procédure renvoie un objet ou une liste d'une ligne
    if isinstance(data, list):
        return data[0] if data else None
    return data or None
