from jose import jwt

CHECKOUT = {
    "amount": 100,
    "currency": "USD",
    "plan": "premium",
    "vin": "1HGCM82633A004352",
    "orderId": "ORDER-100",
    "customer": {"email": "a@b.com", "firstName": "A", "lastName": "B"},
}


def create_intent(client, **overrides):
    payload = dict(CHECKOUT, **overrides)
    response = client.post("/api/create-payment-intent", json=payload)
    assert response.status_code == 200
    return response.json()


def test_health(client):
    response = client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["simulation"] is True
    assert body["backend"] == "simulation"


def test_create_payment_intent_simulated(client, ledger):
    body = create_intent(client)

    assert body["status"] == "requires_payment_method"
    assert body["simulated"] is True
    assert body["amount"] == 100
    assert body["currency"] == "USD"
    assert body["order_id"] == "ORDER-100"
    assert body["client_secret"].startswith(body["id"])
    assert body["plan_metadata"] == {"plan": "premium", "vin": "1HGCM82633A004352", "order_id": "ORDER-100"}
    assert ledger.get_intent(body["id"]) is not None


def test_create_payment_intent_missing_amount(client, ledger):
    response = client.post("/api/create-payment-intent", json={"customer": {"email": "a@b.com"}})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert ledger.list_intents() == []


def test_create_payment_intent_missing_email(client, ledger):
    response = client.post("/api/create-payment-intent", json={"amount": 50, "customer": {}})

    assert response.status_code == 400
    assert ledger.list_intents() == []


def test_malformed_body_is_400(client):
    response = client.post("/api/create-payment-intent", json={"amount": "lots", "customer": "x"})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_create_hpp_session_simulated(client, ledger):
    response = client.post(
        "/api/create-hpp-session",
        json=dict(CHECKOUT, return_url="https://shop.example/thanks"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["simulated"] is True
    assert body["redirect_url"].startswith("https://shop.example/thanks?payment_intent_id=")
    assert "intent_id" not in body
    assert ledger.get_intent(body["intentId"]).redirect_url == body["redirect_url"]


def test_full_checkout_flow(client, ledger, card_payload):
    intent = create_intent(client, orderId="ORDER-FLOW")
    before = len(ledger.list_payments())

    response = client.post(
        "/api/confirm-payment",
        json={"paymentIntentId": intent["id"], "paymentMethod": card_payload},
    )

    assert response.status_code == 200
    payment = response.json()
    assert payment["status"] == "succeeded"
    assert payment["card_last4"] == "4242"
    assert payment["amount"] == 100
    assert payment["currency"] == "USD"
    assert "4242424242424242" not in response.text
    assert len(ledger.list_payments()) == before + 1
    assert ledger.get_intent(intent["id"]).status == "succeeded"

    by_id = client.get(f"/api/payment/{payment['id']}")
    assert by_id.status_code == 200
    assert by_id.json()["payment_intent_id"] == intent["id"]

    by_order = client.get("/api/payment/order/ORDER-FLOW")
    assert by_order.status_code == 200
    assert by_order.json()["id"] == payment["id"]


def test_confirm_unknown_intent(client, ledger, card_payload):
    response = client.post(
        "/api/confirm-payment",
        json={"paymentIntentId": "pi_missing", "paymentMethod": card_payload},
    )

    assert response.status_code == 404
    assert ledger.list_payments() == []


def test_confirm_missing_payment_method(client):
    intent = create_intent(client)

    response = client.post("/api/confirm-payment", json={"paymentIntentId": intent["id"]})

    assert response.status_code == 400


def test_confirm_invalid_card(client, ledger, card_payload):
    intent = create_intent(client)
    card_payload["card"]["cvc"] = "12"

    response = client.post(
        "/api/confirm-payment",
        json={"paymentIntentId": intent["id"], "paymentMethod": card_payload},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_cvv"
    assert ledger.list_payments() == []


def test_confirm_expired_card(client, card_payload):
    intent = create_intent(client)
    card_payload["card"]["exp_year"] = 2001

    response = client.post(
        "/api/confirm-payment",
        json={"paymentIntentId": intent["id"], "paymentMethod": card_payload},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "card_expired"


def test_lookups_not_found(client):
    assert client.get("/api/payment/pay_missing").status_code == 404
    assert client.get("/api/payment/order/NOPE").status_code == 404
    assert client.get("/api/payment-intent/pi_missing").status_code == 404


def test_lists(client, card_payload):
    first = create_intent(client, orderId="ORDER-1")
    create_intent(client, orderId="ORDER-2")
    client.post(
        "/api/confirm-payment",
        json={"paymentIntentId": first["id"], "paymentMethod": card_payload},
    )

    intents = client.get("/api/payment-intents").json()
    payments = client.get("/api/payments").json()

    assert intents["total"] == 2
    assert [i["order_id"] for i in intents["items"]] == ["ORDER-1", "ORDER-2"]
    assert payments["total"] == 1
    assert payments["items"][0]["payment_intent_id"] == first["id"]


def test_lists_require_token_when_secret_configured(client, settings):
    settings.api_jwt_secret = "s3cret"

    assert client.get("/api/payments").status_code == 401
    assert client.get(
        "/api/payment-intents", headers={"Authorization": "Bearer nonsense"}
    ).status_code == 401

    token = jwt.encode({"sub": "ops"}, "s3cret", algorithm="HS256")
    response = client.get("/api/payments", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json() == {"total": 0, "items": []}


def test_checkout_stays_open_when_secret_configured(client, settings):
    settings.api_jwt_secret = "s3cret"

    create_intent(client)
