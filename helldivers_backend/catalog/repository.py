"""
Accès aux données pour le catalogue (tables services, bundles, products).
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Sequence
import logging

import helldivers_backend.infra.supabase_client as supabase_client
from helldivers_backend.errors import DatabaseError
from .models import BundleRecord, CatalogRecord, ProductRecord, ServiceRecord
from .pricing import index_catalog

logger = logging.getLogger(__name__)

SERVICE_COLUMNS = "id, title, price, active"
BUNDLE_COLUMNS = "id, name, discounted_price, active"
PRODUCT_COLUMNS = "id, name, product_type, base_price, sale_price, price_per_unit, status, visibility"
PUBLIC_VISIBILITIES = ["public"]

# module helldivers_backend.catalog.repository
def fetch_services(ids: Sequence[str]) -> List[ServiceRecord]:
    res = (
        supabase_client.get_service_supabase()
        .table("services")
        .select(SERVICE_COLUMNS)
        .in_("id", list(ids))
        .eq("active", True)
        .execute()
    )
    return [ServiceRecord(**row) for row in res.data or []]

def fetch_bundles(ids: Sequence[str]) -> List[BundleRecord]:
    res = (
        supabase_client.get_service_supabase()
        .table("bundles")
        .select(BUNDLE_COLUMNS)
        .in_("id", list(ids))
        .eq("active", True)
        .execute()
    )
    return [BundleRecord(**row) for row in res.data or []]

def fetch_products(ids: Sequence[str]) -> List[ProductRecord]:
    res = (
        supabase_client.get_service_supabase()
        .table("products")
        .select(PRODUCT_COLUMNS)
        .in_("id", list(ids))
        .eq("status", "active")
        .in_("visibility", PUBLIC_VISIBILITIES)
        .execute()
    )
    return [ProductRecord(**row) for row in res.data or []]

def fetch_catalog(ids: Sequence[str]) -> Dict[str, CatalogRecord]:
    """
    Interroge les trois tables en parallèle et retourne {id: enregistrement}.
    - Seuls les enregistrements actifs / publics sont retournés.
    - Une erreur Supabase sur une table lève DatabaseError (500) et le détail est loggé.
    """
    unique_ids = list(dict.fromkeys(str(i) for i in ids))
    if not unique_ids:
        return {}

    fetchers = {
        "service": fetch_services,
        "bundle": fetch_bundles,
        "product": fetch_products,
    }
    results = {}
    with ThreadPoolExecutor(max_workers=len(fetchers)) as pool:
        futures = {kind: pool.submit(fn, unique_ids) for kind, fn in fetchers.items()}
        for kind, future in futures.items():
            try:
                results[kind] = future.result()
            except Exception as e:
                logger.exception("catalog.repository.fetch_catalog failed kind=%s ids=%s", kind, unique_ids)
                raise DatabaseError(
                    f"Database error occurred while validating {kind}s",
                    error=f"Failed to fetch {kind} pricing",
                    code=getattr(e, "code", None) or "DATABASE_ERROR",
                ) from e

    logger.info(
        "catalog.fetch requested=%s services=%s bundles=%s products=%s",
        len(unique_ids), len(results["service"]), len(results["bundle"]), len(results["product"]),
    )
    return index_catalog(results["service"], results["bundle"], results["product"])
