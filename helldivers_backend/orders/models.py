from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from helldivers_backend.catalog.models import LineItem
from helldivers_backend.payments.models import CustomOrderData
from helldivers_backend.utils.validators import validate_discord_tag

# module helldivers_backend.orders.models

class OrderedService(LineItem):
    """Ligne du panier telle qu'affichée au client; name/price sont conservés pour l'audit, jamais pour le calcul."""
    name: Optional[str] = None
    price: Optional[float] = None

class OrderData(BaseModel):
    userId: Optional[str] = None
    customerEmail: EmailStr
    customerName: str = Field(min_length=1)
    customerDiscord: str
    orderNotes: Optional[str] = None
    services: List[OrderedService] = []
    notes: Optional[str] = None
    referralCode: Optional[str] = None
    # Ignoré: la remise est recalculée côté serveur
    referralDiscount: Optional[float] = None
    referralCreditsUsed: float = Field(default=0.0, ge=0)
    ipAddress: Optional[str] = None
    customOrderData: Optional[CustomOrderData] = None

    @field_validator("customerName")
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Customer name is required")
        return v

    @field_validator("customerDiscord")
    def discord_format(cls, v: str) -> str:
        return validate_discord_tag(v)

    @property
    def custom_items(self):
        return list(self.customOrderData.items) if self.customOrderData else []

class VerifyPaymentRequest(BaseModel):
    """Corps de POST /api/orders/verify-and-create."""
    paymentIntentId: str = Field(min_length=1)
    orderData: OrderData
