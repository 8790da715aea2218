"""
Cas d'usage 'discounts': valide un code côté serveur et calcule la remise.
Le montant de la remise est toujours recalculé ici, jamais repris du client.
"""
from typing import Optional
import logging

from pydantic import ValidationError

import helldivers_backend.config as config
from helldivers_backend.errors import InvalidPromoError, PromoValidationError
from . import repository
from .models import DiscountValidation

logger = logging.getLogger(__name__)

PROMO = "promo"
PERCENTAGE = "percentage"


def validate_code(code: Optional[str], user_id: Optional[str] = None) -> Optional[DiscountValidation]:
    """
    Valide le code via la procédure stockée.
    - Code absent ou blanc: None, aucun appel externe.
    - Erreur de transport / RPC / réponse illisible: PromoValidationError.
    - Code refusé (valid=false ou réponse vide): InvalidPromoError avec la raison de la procédure.
    """
    cleaned = (code or "").strip()
    if not cleaned:
        return None

    try:
        raw = repository.rpc_validate_referral_code(cleaned, user_id or None)
        validation = DiscountValidation(**raw) if raw else None
    except (ValidationError, TypeError):
        logger.exception("discounts.validate_code unreadable result code=%s", cleaned)
        raise PromoValidationError()
    except Exception:
        logger.exception("discounts.validate_code rpc failed code=%s", cleaned)
        raise PromoValidationError()

    if validation is None or not validation.valid:
        reason = validation.error if validation else None
        logger.info("discounts.validate_code rejected code=%s reason=%s", cleaned, reason)
        raise InvalidPromoError(reason)
    return validation


def discount_amount(validation: Optional[DiscountValidation], subtotal: float) -> float:
    """
    Remise serveur:
    - promo en pourcentage: subtotal * value / 100
    - promo fixe: min(value, subtotal), jamais de total négatif
    - parrainage: subtotal * REFERRAL_DISCOUNT_RATE (15%)
    """
    if validation is None:
        return 0.0
    if validation.type == PROMO:
        value = validation.discount_value or 0.0
        if validation.discount_type == PERCENTAGE:
            return subtotal * (value / 100)
        return min(value, subtotal)
    return subtotal * config.REFERRAL_DISCOUNT_RATE


def resolve_discount(code: Optional[str], subtotal: float, user_id: Optional[str] = None) -> float:
    return discount_amount(validate_code(code, user_id), subtotal)
