"""
Cas d'usage 'orders': vérifie un paiement Stripe réussi puis crée les commandes, une seule fois.
Le montant attendu est recalculé par payments.quote.price_order, la fonction utilisée à la création du PaymentIntent.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import stripe
from postgrest.exceptions import APIError

import helldivers_backend.config as config
from helldivers_backend.errors import (
    DatabaseError,
    PaymentAmountMismatchError,
    PaymentNotFoundError,
    PaymentNotSucceededError,
)
from helldivers_backend.payments import quote as payments_quote
from helldivers_backend.payments import stripe_client
from helldivers_backend.payments.quote import OrderQuote
from . import repository
from .models import OrderData, VerifyPaymentRequest

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _is_unique_violation(e: Exception) -> bool:
    return isinstance(e, APIError) and str(getattr(e, "code", "") or "") == UNIQUE_VIOLATION


def _money(value: float) -> float:
    return round(value, 2)


def build_notes(order: OrderData) -> str:
    notes = order.orderNotes or order.notes
    base = f"Discord: {order.customerDiscord}"
    return f"{base} | Notes: {notes}" if notes else base


def split_totals(paid: float, custom_total: float, has_services: bool) -> Dict[str, float]:
    """
    Répartit le montant encaissé entre les deux lignes.
    - services seuls: orders.total_amount = montant encaissé
    - services + commande personnalisée: orders = encaissé - total personnalisé (plancher 0)
    - custom_orders.total_amount = somme des total_price
    """
    if not has_services:
        return {"order": 0.0, "custom_order": _money(custom_total)}
    if custom_total > 0:
        return {"order": _money(max(0.0, paid - custom_total)), "custom_order": _money(custom_total)}
    return {"order": _money(paid), "custom_order": 0.0}


def build_order_row(
    order: OrderData,
    quote: OrderQuote,
    *,
    transaction_id: str,
    total_amount: float,
    ip_address: Optional[str],
    timestamp: str,
) -> Dict[str, Any]:
    # Snapshot des lignes avec le prix serveur (jamais le prix client)
    items: List[Dict[str, Any]] = [
        {
            "service_id": line.id,
            "service_name": line.name or next((s.name for s in order.services if s.id == line.id), None),
            "price": _money(line.unit_price),
            "quantity": line.quantity,
        }
        for line in quote.lines
    ]
    return {
        "user_id": order.userId or None,
        "customer_email": order.customerEmail,
        "customer_name": order.customerName,
        "items": items,
        "status": "pending",
        "payment_status": "paid",
        "total_amount": total_amount,
        "notes": build_notes(order),
        "transaction_id": transaction_id,
        "referral_code": quote.code,
        "referral_discount": _money(quote.discount) if quote.discount > 0 else None,
        "referral_credits_used": _money(quote.credits_used),
        "ip_address": ip_address,
        "created_at": timestamp,
        "updated_at": timestamp,
    }


def build_custom_order_row(
    order: OrderData,
    quote: OrderQuote,
    *,
    payment_intent_id: str,
    total_amount: float,
    timestamp: str,
) -> Dict[str, Any]:
    custom = order.customOrderData
    return {
        "customer_email": order.customerEmail,
        "customer_name": order.customerName,
        "customer_discord": order.customerDiscord,
        "items": [item.model_dump() for item in order.custom_items],
        "special_instructions": order.orderNotes or (custom.special_instructions if custom else None) or order.notes or None,
        "status": "pending",
        "total_amount": total_amount,
        "currency": "USD",
        "payment_intent_id": payment_intent_id,
        "referral_code": quote.code,
        "referral_discount": _money(quote.discount) if quote.discount > 0 else None,
        "referral_credits_used": _money(quote.credits_used),
        "user_id": order.userId or None,
        "created_at": timestamp,
        "updated_at": timestamp,
    }


def find_existing(payment_intent_id: str) -> Dict[str, Any]:
    """Commandes déjà créées pour ce paiement ({} si aucune)."""
    try:
        order = repository.find_order_by_transaction(payment_intent_id)
        custom = repository.find_custom_order_by_payment_intent(payment_intent_id)
    except Exception as e:
        logger.exception("orders.find_existing failed payment_intent_id=%s", payment_intent_id)
        raise DatabaseError("Failed to check existing orders") from e
    found: Dict[str, Any] = {}
    if order:
        found["orderId"] = order.get("id")
    if custom:
        found["customOrderId"] = custom.get("id")
    return found


def _duplicate_response(existing: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "message": "Order already exists", "duplicate": True, **existing}


def verify_payment(payment_intent_id: str) -> Dict[str, Any]:
    """
    Récupère le PaymentIntent et exige status == 'succeeded'.
    - Erreur Stripe à la récupération: PaymentNotFoundError (400)
    - Autre statut: PaymentNotSucceededError (400)
    """
    stripe_client.require_stripe()
    try:
        intent = stripe_client.retrieve_payment_intent(payment_intent_id)
    except stripe.StripeError:
        logger.exception("orders.verify_payment retrieve failed payment_intent_id=%s", payment_intent_id)
        raise PaymentNotFoundError()
    status = intent.get("status")
    if status != "succeeded":
        logger.warning("orders.verify_payment not succeeded payment_intent_id=%s status=%s", payment_intent_id, status)
        raise PaymentNotSucceededError(str(status))
    return intent


def check_amount(payment_intent_id: str, paid: float, quote: OrderQuote) -> None:
    if abs(paid - quote.final_amount) > config.AMOUNT_TOLERANCE:
        logger.error(
            "orders.amount_mismatch payment_intent_id=%s paid=%.2f expected=%.2f services_total=%.2f "
            "custom_total=%.2f subtotal=%.2f discount=%.2f tax=%.2f credits=%.2f",
            payment_intent_id, paid, quote.final_amount, quote.services_total, quote.custom_order_total,
            quote.subtotal, quote.discount, quote.tax, quote.credits_used,
        )
        raise PaymentAmountMismatchError(paid, quote.final_amount)


def materialize(
    order: OrderData,
    quote: OrderQuote,
    *,
    payment_intent_id: str,
    paid: float,
    ip_address: Optional[str],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Crée la ligne 'orders' (services) puis la ligne 'custom_orders' (commande personnalisée).
    - 23505 sur un insert: une finalisation concurrente a gagné, on relit et on répond duplicate.
    - Échec de custom_orders après orders: suppression de la ligne orders puis DatabaseError.
    """
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    has_services = bool(quote.lines)
    has_custom = bool(order.custom_items)
    totals = split_totals(paid, quote.custom_order_total, has_services)
    results: Dict[str, Any] = {}

    if has_services:
        row = build_order_row(
            order, quote,
            transaction_id=payment_intent_id,
            total_amount=totals["order"],
            ip_address=ip_address,
            timestamp=timestamp,
        )
        try:
            created = repository.insert_order(row)
        except Exception as e:
            if _is_unique_violation(e):
                logger.info("orders.materialize concurrent insert won payment_intent_id=%s", payment_intent_id)
                return _duplicate_response(find_existing(payment_intent_id))
            logger.exception("orders.materialize insert_order failed payment_intent_id=%s", payment_intent_id)
            raise DatabaseError("Failed to create order") from e
        results["orderId"] = created.get("id")

    if has_custom:
        row = build_custom_order_row(
            order, quote,
            payment_intent_id=payment_intent_id,
            total_amount=totals["custom_order"],
            timestamp=timestamp,
        )
        try:
            created = repository.insert_custom_order(row)
        except Exception as e:
            if not results and _is_unique_violation(e):
                logger.info("orders.materialize concurrent custom insert won payment_intent_id=%s", payment_intent_id)
                return _duplicate_response(find_existing(payment_intent_id))
            logger.exception("orders.materialize insert_custom_order failed payment_intent_id=%s", payment_intent_id)
            _compensate(results.get("orderId"), payment_intent_id)
            raise DatabaseError("Failed to create custom order") from e
        results["customOrderId"] = created.get("id")

    return results


def _compensate(order_id: Any, payment_intent_id: str) -> None:
    if order_id is None:
        return
    try:
        repository.delete_order(order_id)
        logger.warning("orders.compensate deleted order_id=%s payment_intent_id=%s", order_id, payment_intent_id)
    except Exception:
        logger.critical(
            "orders.compensate failed, orphan order_id=%s payment_intent_id=%s", order_id, payment_intent_id,
            exc_info=True,
        )


def verify_and_create_orders(req: VerifyPaymentRequest, client_ip: Optional[str] = None) -> Dict[str, Any]:
    """
    Vérifie le paiement puis crée les commandes.
      1) PaymentIntent récupéré et 'succeeded'
      2) montant attendu recalculé (quote.price_order, mêmes règles que la création)
      3) |encaissé - attendu| <= AMOUNT_TOLERANCE sinon PaymentAmountMismatchError
      4) idempotence: commande existante pour ce paiement -> duplicate
      5) création des lignes orders / custom_orders
    """
    payment_intent_id = req.paymentIntentId
    order = req.orderData

    intent = verify_payment(payment_intent_id)
    quote = payments_quote.price_order(
        items=order.services,
        custom_items=order.custom_items,
        code=order.referralCode,
        requested_credits=order.referralCreditsUsed,
        user_id=order.userId,
    )

    received = intent.get("amount_received")
    if received is None:
        received = intent.get("amount") or 0
    paid = received / 100
    check_amount(payment_intent_id, paid, quote)

    existing = find_existing(payment_intent_id)
    if existing:
        logger.info("orders.verify duplicate payment_intent_id=%s existing=%s", payment_intent_id, existing)
        return _duplicate_response(existing)

    results = materialize(
        order, quote,
        payment_intent_id=payment_intent_id,
        paid=paid,
        ip_address=order.ipAddress or client_ip,
    )
    if results.get("duplicate"):
        return results
    logger.info("orders.verify created payment_intent_id=%s results=%s", payment_intent_id, results)
    return {"success": True, "message": "Order created successfully", **results}
