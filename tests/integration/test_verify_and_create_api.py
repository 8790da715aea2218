URL = "/api/orders/verify-and-create"


def _body(intent_id="pi_ok", **order):
    data = {
        "userId": "user-1",
        "customerEmail": "diver@example.com",
        "customerName": "Diver",
        "customerDiscord": "super.earth",
        "services": [{"id": "svc-45", "name": "Level boost", "price": 1.0, "quantity": 1}],
    }
    data.update(order)
    return {"paymentIntentId": intent_id, "orderData": data}


def test_full_checkout_flow(client, fake_stripe, fake_supabase):
    # 1) création du PaymentIntent
    created = client.post("/api/stripe/create-payment-intent", json={"services": [{"id": "svc-45", "quantity": 1}]})
    assert created.status_code == 200
    intent_id = created.json()["paymentIntentId"]

    # 2) le client confirme le paiement côté Stripe
    fake_stripe.add_succeeded(intent_id, round(created.json()["amount"] * 100))

    # 3) vérification + création de la commande
    res = client.post(URL, json=_body(intent_id))
    assert res.status_code == 200
    data = res.json()
    assert data["success"] is True
    assert data["message"] == "Order created successfully"
    assert data["orderId"] == fake_supabase.tables["orders"][0]["id"]

    # 4) rejeu: aucune nouvelle ligne
    again = client.post(URL, json=_body(intent_id))
    assert again.status_code == 200
    assert again.json()["duplicate"] is True
    assert len(fake_supabase.tables["orders"]) == 1


def test_amount_mismatch(client, fake_stripe, fake_supabase):
    fake_stripe.add_succeeded("pi_ok", 4855)
    res = client.post(URL, json=_body())
    assert res.status_code == 400
    assert res.json()["error"] == "Payment amount mismatch"
    assert fake_supabase.tables["orders"] == []


def test_payment_not_completed(client, fake_stripe):
    fake_stripe.add_succeeded("pi_ok", 4860)
    fake_stripe.intents["pi_ok"].status = "requires_payment_method"
    res = client.post(URL, json=_body())
    assert res.status_code == 400
    assert res.json() == {"error": "Payment not completed", "details": "Payment status: requires_payment_method"}


def test_unknown_payment_intent(client):
    res = client.post(URL, json=_body("pi_nope"))
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid payment"


def test_ip_address_from_forwarded_header(client, fake_stripe, fake_supabase):
    fake_stripe.add_succeeded("pi_ok", 4860)
    res = client.post(URL, json=_body(), headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.2"})
    assert res.status_code == 200
    assert fake_supabase.tables["orders"][0]["ip_address"] == "203.0.113.9"


def test_explicit_ip_address_wins(client, fake_stripe, fake_supabase):
    fake_stripe.add_succeeded("pi_ok", 4860)
    client.post(URL, json=_body(ipAddress="198.51.100.7"), headers={"X-Forwarded-For": "203.0.113.9"})
    assert fake_supabase.tables["orders"][0]["ip_address"] == "198.51.100.7"


def test_invalid_discord_is_400(client, fake_stripe):
    res = client.post(URL, json=_body(customerDiscord="a"))
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid request data"
    assert "orderData.customerDiscord" in res.json()["details"]


def test_unexpected_error_is_500_json(app, fake_stripe, monkeypatch):
    from fastapi.testclient import TestClient
    from helldivers_backend.orders import service as orders_service

    def boom(*args, **kwargs):
        raise KeyError("unexpected")

    monkeypatch.setattr(orders_service, "verify_and_create_orders", boom)
    with TestClient(app, raise_server_exceptions=False) as c:
        res = c.post(URL, json=_body())
    assert res.status_code == 500
    assert res.json()["error"] == "Internal server error"
