import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from helldivers_backend.utils.rate_limit import client_ip, optional_rate_limit
from helldivers_backend.utils.security import require_configuration
from helldivers_backend.orders import service as orders_service
from helldivers_backend.orders.models import VerifyPaymentRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["Orders API"])

# module helldivers_backend.orders.views
@router.post(
    "/verify-and-create",
    dependencies=[Depends(require_configuration), Depends(optional_rate_limit(times=20, seconds=60))],
)
def verify_and_create(req: VerifyPaymentRequest, request: Request) -> Dict[str, Any]:
    """
    Vérifie un PaymentIntent réussi et crée les commandes correspondantes.
    - Entrée JSON: { "paymentIntentId": "...", "orderData": {...} }
    - Rejoué avec le même paymentIntentId: {"success": true, "duplicate": true, ...}, aucune nouvelle ligne
    - ipAddress absent: adresse de l'appelant (X-Forwarded-For puis socket)
    """
    return orders_service.verify_and_create_orders(req, client_ip=client_ip(request))
