"""
Calcul du montant d'une commande, partagé par la création du PaymentIntent et la vérification du paiement.
Les deux chemins appellent price_order() avec les mêmes arguments: toute règle de prix vit ici et nulle part ailleurs.
"""
from typing import Any, Dict, List, Optional, Sequence
import logging

from pydantic import BaseModel

import helldivers_backend.config as config
from helldivers_backend.catalog import pricing
from helldivers_backend.catalog import repository as catalog_repository
from helldivers_backend.catalog.models import CustomOrderItem, LineItem, PricedLine
from helldivers_backend.discounts import service as discounts_service
from helldivers_backend.errors import OrderTotalTooLowError

logger = logging.getLogger(__name__)


class OrderQuote(BaseModel):
    lines: List[PricedLine] = []
    services_total: float
    custom_order_total: float
    subtotal: float
    discount: float
    tax: float
    credits_used: float
    final_amount: float
    code: Optional[str] = None

    @property
    def amount_minor_units(self) -> int:
        return int(round(self.final_amount * 100))

    def breakdown(self) -> Dict[str, Any]:
        """Montants arrondis à 2 décimales, renvoyés au client et copiés dans les métadonnées Stripe."""
        return {
            "servicesTotal": round(self.services_total, 2),
            "customOrderTotal": round(self.custom_order_total, 2),
            "subtotal": round(self.subtotal, 2),
            "referralCode": self.code,
            "referralDiscount": round(self.discount, 2),
            "tax": round(self.tax, 2),
            "creditsUsed": round(self.credits_used, 2),
            "finalAmount": round(self.final_amount, 2),
        }


def compute_totals(
    *,
    services_total: float,
    custom_order_total: float,
    discount: float,
    requested_credits: float = 0.0,
    code: Optional[str] = None,
    lines: Optional[Sequence[PricedLine]] = None,
) -> OrderQuote:
    """
    Applique taxe, crédits et minimum Stripe.
    - taxable = subtotal - discount; tax = max(0, taxable * TAX_RATE)
    - total avant crédits < STRIPE_MINIMUM_CHARGE: OrderTotalTooLowError
    - crédits plafonnés au total taxé; le montant final ne descend jamais sous le minimum Stripe
    """
    subtotal = services_total + custom_order_total
    taxable = subtotal - discount
    tax = max(0.0, taxable * config.TAX_RATE)
    gross = taxable + tax
    if gross < config.STRIPE_MINIMUM_CHARGE:
        raise OrderTotalTooLowError(config.STRIPE_MINIMUM_CHARGE)

    credits_used = min(max(0.0, requested_credits or 0.0), gross)
    final_amount = max(config.STRIPE_MINIMUM_CHARGE, gross - credits_used)
    return OrderQuote(
        lines=list(lines or []),
        services_total=services_total,
        custom_order_total=custom_order_total,
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        credits_used=credits_used,
        final_amount=final_amount,
        code=(code or "").strip() or None,
    )


def price_order(
    *,
    items: Sequence[LineItem],
    custom_items: Optional[Sequence[CustomOrderItem]] = None,
    code: Optional[str] = None,
    requested_credits: float = 0.0,
    user_id: Optional[str] = None,
) -> OrderQuote:
    """
    Recalcule le montant à partir des prix Supabase:
      1) catalogue (services/bundles/products) -> lignes valorisées
      2) sous-total = lignes + total des commandes personnalisées
      3) remise validée par la procédure stockée
      4) taxe, crédits, minimum Stripe (compute_totals)
    """
    catalog = catalog_repository.fetch_catalog([item.id for item in items]) if items else {}
    lines = pricing.price_lines(items, catalog)
    services_total, custom_total = pricing.resolve_subtotal(lines, custom_items)
    discount = discounts_service.resolve_discount(code, services_total + custom_total, user_id)

    quote = compute_totals(
        services_total=services_total,
        custom_order_total=custom_total,
        discount=discount,
        requested_credits=requested_credits,
        code=code,
        lines=lines,
    )
    logger.info(
        "payments.quote services_total=%.2f custom_total=%.2f discount=%.2f tax=%.2f credits=%.2f final=%.2f",
        quote.services_total, quote.custom_order_total, quote.discount, quote.tax, quote.credits_used, quote.final_amount,
    )
    return quote
