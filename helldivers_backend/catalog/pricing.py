"""
Résolution des prix (pure: pas de Stripe, pas de DB).
Les prix viennent exclusivement des enregistrements du catalogue; un prix envoyé par le client n'est jamais lu.
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from helldivers_backend.errors import InvalidItemsError
from .models import BundleRecord, CatalogRecord, CustomOrderItem, LineItem, PricedLine, ProductRecord, ServiceRecord

# module helldivers_backend.catalog.pricing
CUSTOM_ITEM_PRODUCT_TYPE = "custom_item"


def index_catalog(
    services: Iterable[ServiceRecord],
    bundles: Iterable[BundleRecord],
    products: Iterable[ProductRecord],
) -> Dict[str, CatalogRecord]:
    """
    Construit {id: enregistrement} avec la priorité Product > Service > Bundle.
    Les variantes de plus faible priorité sont indexées d'abord puis écrasées.
    """
    catalog: Dict[str, CatalogRecord] = {}
    for record in bundles:
        catalog[record.id] = record
    for record in services:
        catalog[record.id] = record
    for record in products:
        catalog[record.id] = record
    return catalog


def unit_price(record: CatalogRecord, quantity: int) -> float:
    """
    Prix unitaire d'une ligne selon la variante:
    - product 'custom_item': base_price + price_per_unit * quantity
    - product (autre): sale_price si renseigné, sinon base_price
    - service: price
    - bundle: discounted_price
    """
    if record.kind == "product":
        if record.product_type == CUSTOM_ITEM_PRODUCT_TYPE:
            return record.base_price + (record.price_per_unit or 0) * quantity
        return record.sale_price or record.base_price
    if record.kind == "service":
        return record.price
    if record.kind == "bundle":
        return record.discounted_price
    raise ValueError(f"Unknown catalog kind: {record.kind}")


def describe(record: CatalogRecord) -> Dict[str, Any]:
    """Résumé {id, title, price, type} renvoyé au client pour réconcilier un panier périmé."""
    if record.kind == "product":
        title = record.name
    elif record.kind == "service":
        title = record.title
    else:
        title = record.name
    return {"id": record.id, "title": title, "price": unit_price(record, 1), "type": record.kind}


def find_missing(items: Sequence[LineItem], catalog: Dict[str, CatalogRecord]) -> List[str]:
    """Ids demandés absents du catalogue (ordre de la requête, sans doublons)."""
    missing: List[str] = []
    for item in items:
        if item.id not in catalog and item.id not in missing:
            missing.append(item.id)
    return missing


def custom_order_total(custom_items: Optional[Sequence[CustomOrderItem]]) -> float:
    # total_price est calculé par le staff en amont et pris tel quel
    return sum((item.total_price for item in custom_items or []), 0.0)


def price_lines(items: Sequence[LineItem], catalog: Dict[str, CatalogRecord]) -> List[PricedLine]:
    """
    Valorise chaque ligne demandée avec le prix du catalogue.
    - Lève InvalidItemsError listant tous les ids introuvables (inactifs ou supprimés).
    - Chaque ligne est valorisée séparément (le prix 'custom_item' dépend de la quantité de la ligne).
    """
    missing = find_missing(items, catalog)
    if missing:
        raise InvalidItemsError(missing, available=[describe(r) for r in catalog.values()])

    lines: List[PricedLine] = []
    for item in items:
        record = catalog[item.id]
        lines.append(PricedLine(
            id=item.id,
            name=describe(record)["title"],
            kind=record.kind,
            unit_price=unit_price(record, item.quantity),
            quantity=item.quantity,
        ))
    return lines


def resolve_subtotal(
    lines: Sequence[PricedLine],
    custom_items: Optional[Sequence[CustomOrderItem]] = None,
) -> Tuple[float, float]:
    """Calcule (services_total, custom_order_total) à partir des lignes valorisées."""
    services_total = sum((line.line_total for line in lines), 0.0)
    return services_total, custom_order_total(custom_items)
