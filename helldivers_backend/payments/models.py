from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from helldivers_backend.catalog.models import CustomOrderItem, LineItem
import helldivers_backend.config as config

# module helldivers_backend.payments.models

class CustomOrderData(BaseModel):
    items: List[CustomOrderItem] = []
    special_instructions: Optional[str] = None
    customer_discord: Optional[str] = None

class CreatePaymentIntentRequest(BaseModel):
    """Corps de POST /api/stripe/create-payment-intent (les prix client sont ignorés)."""
    services: List[LineItem] = []
    customOrderData: Optional[CustomOrderData] = None
    referralCode: Optional[str] = None
    # Accepté pour compatibilité avec le front, jamais lu: la remise est recalculée
    referralDiscount: Optional[float] = None
    creditsUsed: float = Field(default=0.0, ge=0)
    currency: str = Field(default=config.DEFAULT_CURRENCY, min_length=3, max_length=3)
    # Métadonnées Stripe: valeurs chaînes uniquement (un objet ou un nombre est refusé en 400)
    metadata: Dict[str, str] = {}

    @property
    def custom_items(self) -> List[CustomOrderItem]:
        return list(self.customOrderData.items) if self.customOrderData else []
