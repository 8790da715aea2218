"""
Module 'catalog': résolution des prix à partir des tables Supabase (services, bundles, products).
"""
from .models import LineItem, CustomOrderItem, PricedLine, ServiceRecord, BundleRecord, ProductRecord, CatalogRecord
from .pricing import index_catalog, unit_price, price_lines, resolve_subtotal, custom_order_total
from .repository import fetch_catalog

__all__ = [
    "LineItem",
    "CustomOrderItem",
    "PricedLine",
    "ServiceRecord",
    "BundleRecord",
    "ProductRecord",
    "CatalogRecord",
    "index_catalog",
    "unit_price",
    "price_lines",
    "resolve_subtotal",
    "custom_order_total",
    "fetch_catalog",
]
