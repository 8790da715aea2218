"""
Module 'orders': vérification du paiement et création idempotente des commandes.
"""
from .models import OrderData, OrderedService, VerifyPaymentRequest
from .service import verify_and_create_orders

__all__ = [
    "OrderData",
    "OrderedService",
    "VerifyPaymentRequest",
    "verify_and_create_orders",
]
