import json

import pytest
from fastapi.testclient import TestClient

from server import NO_KEY_MESSAGE, create_app
from src.agents.admin_agent import NO_KEY_PREFIX
from tests.fakes import FakeCompletionBackend, ScriptedChatBackend, completion, connection_error


@pytest.fixture
def make_client(database):
    def make(backend=None):
        return TestClient(create_app(backend=backend, seed=True))

    return make


def _product_id(db, name):
    return next(p["id"] for p in db.list_products() if p["name"] == name)


# -----------------------------
# Customer chat
# -----------------------------
def test_chat_requires_session_id(make_client):
    with make_client(FakeCompletionBackend("hola")) as client:
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hola"}]})
    assert response.status_code == 400


def test_chat_without_backend_reports_missing_key(make_client):
    with make_client(None) as client:
        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "hola"}], "sessionId": "web-1"},
        )
    assert response.status_code == 500
    assert response.json() == {"error": NO_KEY_MESSAGE}


def test_chat_returns_resolved_cart_actions(make_client, database):
    backend = FakeCompletionBackend("[ADD_TO_CART:coca:1:::][ADD_TO_CART:papas:2:::]\n¡Listo! 🛒")
    with make_client(backend) as client:
        response = client.post(
            "/api/chat",
            json={
                "messages": [{"role": "user", "content": "una coca y dos papas"}],
                "sessionId": "web-1",
            },
        )

    body = response.json()
    assert response.status_code == 200
    assert body["message"] == "¡Listo! 🛒"
    assert body["confirmOrder"] is False
    assert body["sessionId"] == "web-1"
    assert [(a["product"]["name"], a["quantity"]) for a in body["cartActions"]] == [
        ("Coca-Cola 500ml", 1),
        ("Papas Fritas", 2),
    ]
    assert [m["role"] for m in database.get_chat_history("web-1")] == ["user", "assistant"]


def test_chat_provider_error_serves_fallback_menu(make_client):
    with make_client(FakeCompletionBackend(connection_error())) as client:
        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "hola"}], "sessionId": "web-2"},
        )

    body = response.json()
    assert response.status_code == 200
    assert body["fallback"] is True
    assert body["cartActions"] == []
    assert "¿Qué te provoca hoy?" in body["message"]


def test_chat_timeout_serves_fallback_menu(make_client, monkeypatch):
    monkeypatch.setattr("src.agents.ordering_agent.AGENT_TURN_TIMEOUT_SECONDS", 0.05)
    with make_client(FakeCompletionBackend("[ADD_TO_CART:Agua:1:::] tarde", delay=1.0)) as client:
        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "un agua"}], "sessionId": "web-3"},
        )

    body = response.json()
    assert response.status_code == 200
    assert body["fallback"] is True
    assert body["cartActions"] == []
    assert "Combo SmartBurger" in body["message"]


# -----------------------------
# Admin
# -----------------------------
def test_admin_chat_rejects_empty_message(make_client):
    with make_client(None) as client:
        assert client.post("/api/admin/chat", json={"message": "   "}).status_code == 400


def test_admin_chat_basic_mode(make_client):
    with make_client(None) as client:
        body = client.post("/api/admin/chat", json={"message": "¿cómo va el stock?"}).json()
    assert body["mock"] is True
    assert body["actions"] == []
    assert body["message"].startswith(NO_KEY_PREFIX)


def test_admin_alerts(make_client, database):
    with make_client(None) as client:
        assert client.get("/api/admin/alerts").json() == {"hasAlerts": False}

        bacon = next(i for i in database.list_ingredients() if i["name"] == "Bacon")
        database.update_ingredient(bacon["id"], stock_quantity=0)
        body = client.get("/api/admin/alerts").json()

    assert body["hasAlerts"] is True
    assert body["critical"]["ingAgotados"] == 1


def test_admin_usage_starts_empty(make_client):
    with make_client(None) as client:
        assert client.get("/api/admin/usage").json() == {"models": {}, "total_tokens": 0, "total_calls": 0}


# -----------------------------
# Orders
# -----------------------------
def test_create_order_applies_promotion(make_client, database):
    with make_client(None) as client:
        response = client.post(
            "/api/orders",
            json={
                "customer": {"name": "Ana", "email": "ana@example.com"},
                "items": [{"product_id": _product_id(database, "Combo Deluxe"), "quantity": 2}],
            },
        )

    body = response.json()
    assert body["success"] is True
    order = body["order"]
    assert order["order_number"].startswith("ORD-")
    assert order["total_amount"] == 25.98
    assert order["discount_amount"] == 2.6
    assert order["final_amount"] == 23.38
    assert order["appliedPromotion"]["name"] == "Bienvenida SmartBurger"


def test_create_order_without_items(make_client):
    with make_client(None) as client:
        response = client.post("/api/orders", json={"customer": {"name": "Ana"}, "items": []})
    assert response.status_code == 400
    assert response.json()["detail"] == "El pedido no tiene productos"


# -----------------------------
# Preferences and products
# -----------------------------
def test_preferences_round_trip(make_client):
    with make_client(None) as client:
        assert client.get("/api/preferences").status_code == 400
        assert client.get("/api/preferences", params={"userEmail": "ana@example.com"}).json()["likes"] == []

        saved = client.post(
            "/api/preferences",
            json={"userEmail": "ana@example.com", "likes": [{"item": "Bacon", "confidence": "high"}]},
        )
        assert saved.json()["success"] is True

        body = client.get("/api/preferences", params={"userEmail": "ANA@example.com"}).json()

    assert [like["item_name"] for like in body["likes"]] == ["Bacon"]
    assert body["profile"]["explicit_likes"] == ["Bacon"]


def test_product_search(make_client, database):
    with make_client(None) as client:
        assert client.get("/api/products/search").status_code == 400
        names = [p["name"] for p in client.get("/api/products/search", params={"q": "Combo"}).json()["products"]]
        assert names == ["Combo Deluxe", "Combo SmartBurger"]

        product_id = _product_id(database, "Agua")
        assert client.post("/api/products/search", json={"productId": product_id}).json()["product"]["name"] == "Agua"
        assert client.post("/api/products/search", json={"productId": 99999}).status_code == 404


def _cart_line(db, name, quantity=1):
    product = next(p for p in db.list_products() if p["name"] == name)
    return {"product": product, "quantity": quantity}


def test_recommendations_upsell_a_lone_burger(make_client, database):
    with make_client(None) as client:
        body = client.post(
            "/api/recommendations",
            json={"context": {"currentCart": [_cart_line(database, "SmartBurger Clásica")]}},
        ).json()

    assert body["success"] is True
    upsells = [r for r in body["recommendations"] if r["type"] == "upsell"]
    assert [r["reason"] for r in upsells] == ["Complementa tu hamburguesa", "Agrega una bebida"]
    assert [p["name"] for p in upsells[0]["products"]] == ["Aros de Cebolla", "Papas Fritas"]
    assert all(r["type"] != "threshold" for r in body["recommendations"])


def test_recommendations_nudge_towards_the_promotion_minimum(make_client, database):
    with make_client(None) as client:
        body = client.post(
            "/api/recommendations",
            json={"context": {"currentCart": [_cart_line(database, "Combo Deluxe")]}},
        ).json()

    (nudge,) = [r for r in body["recommendations"] if r["type"] == "threshold"]
    assert nudge["message"] == "💡 ¡Agrega $2.01 más y obtén 10% de descuento (Bienvenida SmartBurger)!"


def test_recommendations_for_an_empty_body(make_client):
    with make_client(None) as client:
        body = client.post("/api/recommendations", json={}).json()
    assert body["success"] is True
    assert body["recommendations"]
    assert {r["type"] for r in body["recommendations"]} <= {"popular", "promotion"}


def test_admin_analyze_without_backend_uses_the_data(make_client):
    with make_client(None) as client:
        body = client.post("/api/admin/analyze").json()

    assert body["success"] is True
    assert body["mock"] is True
    assert body["insights"]["summary"].startswith("Sin ventas registradas esta semana.")
    assert body["insights"]["stockAlerts"] == ["Todo el inventario está en niveles normales."]
    assert body["metrics"]["today"]["total"] == 0
    assert body["timestamp"]


def test_admin_analyze_with_model_insights(make_client):
    insights = {
        "summary": "Semana tranquila.",
        "topProducts": [],
        "stockAlerts": [],
        "peakHours": "Sin pedidos hoy.",
        "promotionEffectiveness": "Bienvenida sin usos.",
        "recommendations": ["Activar un combo de tarde."],
        "urgentAlerts": [],
    }
    backend = ScriptedChatBackend([completion(json.dumps(insights))])
    with make_client(backend) as client:
        body = client.post("/api/admin/analyze").json()

    assert body["mock"] is False
    assert body["insights"] == insights
