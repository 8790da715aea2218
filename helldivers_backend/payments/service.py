"""
Cas d'usage 'payments': création d'un PaymentIntent pour un panier.
Orchestre le calcul partagé (quote), les métadonnées et le client Stripe.
"""
from typing import Any, Dict, List
import logging

import stripe

import helldivers_backend.config as config
from helldivers_backend.errors import CorruptedCartError
from . import metadata as payments_metadata
from . import quote as payments_quote
from . import stripe_client
from .models import CreatePaymentIntentRequest

logger = logging.getLogger(__name__)


def find_custom_order_ids(service_ids: List[str]) -> List[str]:
    """Ids réservés aux commandes personnalisées ('custom-order-*') glissés dans les services."""
    return [sid for sid in service_ids if sid.startswith(config.CUSTOM_ORDER_ID_PREFIX)]


def create_payment_intent_for_cart(req: CreatePaymentIntentRequest) -> Dict[str, Any]:
    """
    Crée un PaymentIntent pour le montant recalculé côté serveur.
    1) Rejette un panier contenant des ids 'custom-order-*' parmi les services (CorruptedCartError)
    2) Calcule le montant via quote.price_order (même fonction que la vérification)
    3) Crée le PaymentIntent avec le snapshot du calcul dans les métadonnées
    Retour: {clientSecret, paymentIntentId, amount (dollars, 2 décimales), currency, supportedPaymentMethods, breakdown}
    """
    stripe_client.require_stripe()

    corrupted = find_custom_order_ids([item.id for item in req.services])
    if corrupted:
        logger.warning("payments.create_intent corrupted cart ids=%s", corrupted)
        raise CorruptedCartError(corrupted)

    quote = payments_quote.price_order(
        items=req.services,
        custom_items=req.custom_items,
        code=req.referralCode,
        requested_credits=req.creditsUsed,
        user_id=req.metadata.get("userId"),
    )
    breakdown = quote.breakdown()
    metadata = payments_metadata.build_metadata(req.metadata, breakdown)

    try:
        intent = stripe_client.create_payment_intent(
            amount=quote.amount_minor_units,
            currency=req.currency,
            metadata=metadata,
            receipt_email=req.metadata.get("userEmail"),
            customer_name=req.metadata.get("userName"),
        )
    except stripe.StripeError as e:
        logger.exception("payments.create_intent stripe error amount=%s", quote.amount_minor_units)
        raise stripe_client.translate_stripe_error(e)

    logger.info(
        "payments.create_intent id=%s amount=%s currency=%s",
        intent.get("id"), intent.get("amount"), intent.get("currency"),
    )
    return {
        "clientSecret": intent.get("client_secret"),
        "paymentIntentId": intent.get("id"),
        "amount": breakdown["finalAmount"],
        "currency": intent.get("currency"),
        "supportedPaymentMethods": intent.get("payment_method_types") or [],
        "breakdown": breakdown,
    }
