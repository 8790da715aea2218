# module helldivers_backend.catalog.models
"""
Types du catalogue.
- LineItem / CustomOrderItem: lignes envoyées par le client (seule la quantité est de confiance).
- ServiceRecord / BundleRecord / ProductRecord: une variante par table Supabase, discriminée par 'kind'.
"""
from typing import Annotated, Any, Optional, Union, Literal
from pydantic import BaseModel, Field, PositiveFloat, PositiveInt, field_validator


class LineItem(BaseModel):
    id: str
    quantity: PositiveInt


class CustomOrderItem(BaseModel):
    category: str
    item_name: str
    quantity: PositiveInt
    price_per_unit: PositiveFloat
    total_price: PositiveFloat
    description: Optional[str] = None


class _Record(BaseModel):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> str:
        # Supabase renvoie des UUID (str) ou des bigint selon la table
        return str(v)


class ServiceRecord(_Record):
    kind: Literal["service"] = "service"
    title: Optional[str] = None
    price: float
    active: bool = True


class BundleRecord(_Record):
    kind: Literal["bundle"] = "bundle"
    name: Optional[str] = None
    discounted_price: float
    active: bool = True


class ProductRecord(_Record):
    kind: Literal["product"] = "product"
    name: Optional[str] = None
    product_type: Optional[str] = None
    base_price: float
    sale_price: Optional[float] = None
    price_per_unit: Optional[float] = None
    status: Optional[str] = None
    visibility: Optional[str] = None


CatalogRecord = Annotated[Union[ProductRecord, ServiceRecord, BundleRecord], Field(discriminator="kind")]


class PricedLine(BaseModel):
    """Ligne valorisée avec le prix serveur (snapshot écrit dans orders.items)."""
    id: str
    name: Optional[str] = None
    kind: str
    unit_price: float
    quantity: int

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity
