import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from helldivers_backend.utils.rate_limit import optional_rate_limit
from helldivers_backend.utils.security import require_configuration
from helldivers_backend.payments import service as payments_service
from helldivers_backend.payments.models import CreatePaymentIntentRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/stripe", tags=["Payments API"])

# module helldivers_backend.payments.views
@router.post(
    "/create-payment-intent",
    dependencies=[Depends(require_configuration), Depends(optional_rate_limit(times=10, seconds=60))],
)
def create_payment_intent(req: CreatePaymentIntentRequest) -> Dict[str, Any]:
    """
    Crée un PaymentIntent Stripe pour le panier.
    - Entrée JSON: { "services": [ {"id", "quantity"} ], "customOrderData"?, "referralCode"?, "creditsUsed"?, "currency"?, "metadata"? }
    - Sécurité: configuration vérifiée + rate limit (10 req / 60s)
    - Le montant est recalculé côté serveur (payments.quote); les prix client sont ignorés.
    - Erreurs métier (CheckoutError) converties en {error, details, ...} par le handler global.
    """
    logger.info(
        "payments.create_intent services=%s custom_items=%s code=%s",
        len(req.services), len(req.custom_items), bool((req.referralCode or "").strip()),
    )
    return payments_service.create_payment_intent_for_cart(req)
