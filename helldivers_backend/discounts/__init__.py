"""
Module 'discounts': validation serveur des codes promo / parrainage et calcul de la remise.
"""
from .service import validate_code, discount_amount, resolve_discount

__all__ = ["validate_code", "discount_amount", "resolve_discount"]
