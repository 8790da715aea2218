"""
Erreurs métier du parcours de paiement.
Chaque erreur porte son code HTTP et le corps JSON stable {error, details, ...extra}
renvoyé au client par le handler enregistré dans app_setup.exceptions.
"""
from typing import Any, Dict, List, Optional


class CheckoutError(Exception):
    status_code = 400
    error = "Request failed"

    def __init__(self, details: Optional[str] = None, *, error: Optional[str] = None, **extra: Any):
        self.details = details
        if error:
            self.error = error
        self.extra = extra
        super().__init__(details or self.error)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error, "details": self.details}
        payload.update(self.extra)
        return payload


class ConfigurationError(CheckoutError):
    status_code = 500
    error = "Server configuration error"


class CorruptedCartError(CheckoutError):
    """Des identifiants 'custom-order-*' sont mélangés aux services réguliers."""
    error = "Invalid cart configuration"

    def __init__(self, invalid_ids: List[str]):
        super().__init__(
            "Custom orders should not be processed as regular services. Please clear your cart and try again.",
            action="clear_cart",
            invalidServices=list(invalid_ids),
        )
        self.invalid_ids = list(invalid_ids)


class InvalidItemsError(CheckoutError):
    error = "Invalid items in cart"

    def __init__(self, missing_ids: List[str], available: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            "Some items in your cart are no longer available. Please remove them and add current items.",
            invalidServices=list(missing_ids),
            availableServices=list(available or []),
            action="clear_cart",
        )
        self.missing_ids = list(missing_ids)


class PromoValidationError(CheckoutError):
    error = "Invalid promo code"

    def __init__(self, details: str = "Could not validate the provided promo code"):
        super().__init__(details)


class InvalidPromoError(CheckoutError):
    error = "Invalid promo code"

    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or "The promo code is not valid or has expired")
        self.reason = reason


class OrderTotalTooLowError(CheckoutError):
    error = "Order total too low"

    def __init__(self, minimum: float):
        super().__init__(f"Minimum payment amount is ${minimum:.2f}")
        self.minimum = minimum


class PaymentNotFoundError(CheckoutError):
    error = "Invalid payment"

    def __init__(self):
        super().__init__("Payment verification failed")


class PaymentNotSucceededError(CheckoutError):
    error = "Payment not completed"

    def __init__(self, status: str):
        super().__init__(f"Payment status: {status}")
        self.status = status


class PaymentAmountMismatchError(CheckoutError):
    error = "Payment amount mismatch"

    def __init__(self, paid: float, expected: float):
        super().__init__("Payment amount does not match order total")
        self.paid = paid
        self.expected = expected


class PaymentProviderError(CheckoutError):
    """Erreur Stripe traduite en réponse HTTP (voir payments.stripe_client.translate_stripe_error)."""
    status_code = 500
    error = "Payment processor error. Please try again or contact support."

    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        super().__init__(details, error=error)
        self.status_code = status_code


class DatabaseError(CheckoutError):
    status_code = 500
    error = "Database error"
