# module helldivers_backend.discounts.models
from typing import Optional
from pydantic import BaseModel


class DiscountValidation(BaseModel):
    """Résultat de la procédure stockée validate_referral_code(code, user_id)."""
    valid: bool = False
    type: Optional[str] = None  # "promo" | "referral"
    discount_type: Optional[str] = None
    discount_value: Optional[float] = None
    error: Optional[str] = None
