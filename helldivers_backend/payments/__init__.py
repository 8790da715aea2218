"""
Module 'payments' (feature-first): point d'entrée public.
Réunit le calcul partagé du montant, les métadonnées Stripe, le client Stripe et le cas d'usage PaymentIntent.
"""

from .quote import OrderQuote, compute_totals, price_order
from .metadata import build_metadata, clamp_metadata
from .stripe_client import require_stripe, create_payment_intent, retrieve_payment_intent, translate_stripe_error
from .models import CreatePaymentIntentRequest, CustomOrderData
from .service import create_payment_intent_for_cart

__all__ = [
    # quote
    "OrderQuote",
    "compute_totals",
    "price_order",
    # metadata
    "build_metadata",
    "clamp_metadata",
    # stripe
    "require_stripe",
    "create_payment_intent",
    "retrieve_payment_intent",
    "translate_stripe_error",
    # models
    "CreatePaymentIntentRequest",
    "CustomOrderData",
    # services
    "create_payment_intent_for_cart",
]
