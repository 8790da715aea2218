"""
Adaptateur Stripe: centralise les appels et la configuration Stripe (PaymentIntent).
"""
from typing import Any, Dict, Optional
import logging

import stripe

import helldivers_backend.config as config
from helldivers_backend.errors import ConfigurationError, PaymentProviderError

logger = logging.getLogger(__name__)

# module helldivers_backend.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key / api_version depuis la configuration.
    - Sans STRIPE_SECRET_KEY: ConfigurationError (500) avant toute logique métier.
    """
    if not config.STRIPE_SECRET_KEY:
        logger.error("Missing STRIPE_SECRET_KEY environment variable")
        raise ConfigurationError("Payment processing not configured")
    stripe.api_key = config.STRIPE_SECRET_KEY
    stripe.api_version = config.STRIPE_API_VERSION
    return stripe

def _intent_to_dict(intent: Any) -> Dict[str, Any]:
    # Lecture par attribut: compatible StripeObject et doubles de test
    return {
        "id": getattr(intent, "id", None),
        "client_secret": getattr(intent, "client_secret", None),
        "status": getattr(intent, "status", None),
        "amount": getattr(intent, "amount", None),
        "amount_received": getattr(intent, "amount_received", None),
        "currency": getattr(intent, "currency", None),
        "payment_method_types": list(getattr(intent, "payment_method_types", None) or []),
    }

def create_payment_intent(
    *,
    amount: int,
    currency: str,
    metadata: Dict[str, str],
    receipt_email: Optional[str] = None,
    customer_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent Stripe pour un montant en centimes déjà calculé côté serveur.
    - automatic_payment_methods: cartes, wallets et moyens à redirection.
    - shipping: adresse fictive (service numérique), requise par certains moyens de paiement.
    Retour: dict {id, client_secret, status, amount, currency, payment_method_types, ...}
    """
    require_stripe()
    params: Dict[str, Any] = {
        "amount": amount,
        "currency": currency.lower(),
        "automatic_payment_methods": {"enabled": True, "allow_redirects": "always"},
        "metadata": metadata,
        "setup_future_usage": "off_session",
        "shipping": {
            "name": customer_name or "Customer",
            "address": {
                "line1": "Digital Service",
                "city": "Online",
                "state": "Digital",
                "postal_code": "00000",
                "country": "US",
            },
        },
    }
    if receipt_email:
        params["receipt_email"] = receipt_email
    intent = stripe.PaymentIntent.create(**params)
    return _intent_to_dict(intent)

def retrieve_payment_intent(payment_intent_id: str) -> Dict[str, Any]:
    """
    Récupère un PaymentIntent par son identifiant.
    Les erreurs Stripe sont propagées; l'appelant décide du code HTTP.
    """
    require_stripe()
    intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    return _intent_to_dict(intent)

def translate_stripe_error(e: Exception) -> PaymentProviderError:
    """
    Traduit une erreur du SDK Stripe en réponse HTTP:
    - RateLimitError: 429
    - InvalidRequestError: 400 (paramètre fautif en détail)
    - AuthenticationError: 401
    - APIConnectionError: 502
    - APIError et autres StripeError: 500
    """
    if isinstance(e, stripe.RateLimitError):
        return PaymentProviderError(429, "Too many requests. Please wait a moment and try again.")
    if isinstance(e, stripe.InvalidRequestError):
        param = getattr(e, "param", None)
        return PaymentProviderError(
            400,
            getattr(e, "user_message", None) or str(e) or "Invalid request parameters",
            f"Invalid parameter: {param}" if param else None,
        )
    if isinstance(e, stripe.AuthenticationError):
        return PaymentProviderError(401, "Authentication failed. Please contact support.")
    if isinstance(e, stripe.APIConnectionError):
        return PaymentProviderError(502, "Connection to payment processor failed. Please try again.")
    return PaymentProviderError(500, "Payment processor error. Please try again or contact support.")
