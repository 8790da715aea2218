import pytest
import stripe

from helldivers_backend.errors import CorruptedCartError, OrderTotalTooLowError, PaymentProviderError
from helldivers_backend.payments.models import CreatePaymentIntentRequest
from helldivers_backend.payments.service import create_payment_intent_for_cart


def _request(**overrides):
    body = {"services": [{"id": "svc-45", "quantity": 1}]}
    body.update(overrides)
    return CreatePaymentIntentRequest(**body)


def test_creates_intent_for_server_amount(fake_stripe):
    # Un prix client de 1.00 est ignoré
    req = _request(services=[{"id": "svc-45", "quantity": 1, "price": 1.0}], metadata={"userEmail": "d@example.com"})
    result = create_payment_intent_for_cart(req)
    assert result["amount"] == 48.6
    assert fake_stripe.created[0]["amount"] == 4860
    assert result["paymentIntentId"] == "pi_test_1"
    assert result["clientSecret"] == "pi_test_1_secret_abc"
    assert result["supportedPaymentMethods"] == ["card", "link"]
    assert result["breakdown"]["finalAmount"] == 48.6
    params = fake_stripe.created[0]
    assert params["metadata"]["finalAmount"] == "48.60"
    assert params["receipt_email"] == "d@example.com"


def test_client_discount_is_ignored(fake_stripe):
    result = create_payment_intent_for_cart(_request(referralDiscount=40.0))
    assert result["breakdown"]["referralDiscount"] == 0.0
    assert result["amount"] == 48.6


def test_corrupted_cart_is_rejected_before_any_call(fake_stripe, fake_supabase):
    req = _request(services=[{"id": "svc-45", "quantity": 1}, {"id": "custom-order-123", "quantity": 1}])
    with pytest.raises(CorruptedCartError) as exc:
        create_payment_intent_for_cart(req)
    assert exc.value.to_payload()["invalidServices"] == ["custom-order-123"]
    assert exc.value.to_payload()["action"] == "clear_cart"
    assert fake_stripe.created == []
    assert fake_supabase.calls == []


def test_too_low_total_creates_no_intent(fake_stripe):
    with pytest.raises(OrderTotalTooLowError):
        create_payment_intent_for_cart(_request(services=[{"id": "svc-cheap", "quantity": 1}]))
    assert fake_stripe.created == []


def test_stripe_error_is_translated(fake_stripe):
    fake_stripe.create_error = stripe.RateLimitError("too many")
    with pytest.raises(PaymentProviderError) as exc:
        create_payment_intent_for_cart(_request())
    assert exc.value.status_code == 429


def test_currency_is_lowercased(fake_stripe):
    result = create_payment_intent_for_cart(_request(currency="USD"))
    assert result["currency"] == "usd"
