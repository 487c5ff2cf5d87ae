"""Integration tests for the Marketplace API via TestClient."""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from marketplace.api import (
    admin_router,
    install_error_handlers,
    order_router,
    product_router,
    restaurant_router,
    subscription_router,
)
from marketplace.order.order import Order
from protean import current_domain

OWNER = {"X-Actor-Id": "owner-001", "X-Actor-Role": "RESTAURANT_OWNER"}
ADMIN = {"X-Actor-Id": "admin-001", "X-Actor-Role": "ADMIN"}
CUSTOMER = {"X-Actor-Id": "cust-001", "X-Actor-Role": "CUSTOMER"}


@pytest.fixture()
def client(marketplace_bed):
    from marketplace.domain import marketplace

    app = FastAPI()

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        with marketplace.domain_context():
            return await call_next(request)

    for router in (restaurant_router, subscription_router, product_router, order_router, admin_router):
        app.include_router(router)
    install_error_handlers(app)
    return TestClient(app)


def _headers(actor, key=None, **extra):
    headers = dict(actor)
    if key:
        headers["Idempotency-Key"] = key
    headers.update(extra)
    return headers


@pytest.fixture()
def open_restaurant(client):
    """An ACTIVE restaurant with one product. Returns (restaurant_id, product_id)."""
    response = client.post(
        "/restaurants",
        json={"name": "Chez Amina", "address": "12 Marina Road", "phone": "+2348000000000"},
        headers=_headers(OWNER, "reg-1"),
    )
    assert response.status_code == 201
    restaurant_id = response.json()["restaurant_id"]

    response = client.post(
        "/subscriptions",
        json={"restaurant_id": restaurant_id, "monthly_amount": 25000.0, "payment_method": "bank_transfer"},
        headers=_headers(OWNER, "sub-1"),
    )
    assert response.status_code == 201
    subscription_id = response.json()["subscription_id"]

    response = client.post(f"/subscriptions/{subscription_id}/validate-payment", headers=_headers(ADMIN, "pay-1"))
    assert response.status_code == 200

    response = client.post(
        f"/restaurants/{restaurant_id}/products",
        json={"name": "Jollof Rice", "price": 2500.0, "quantity": 10},
        headers=_headers(OWNER, "prod-1"),
    )
    assert response.status_code == 201
    return restaurant_id, response.json()["product_id"]


class TestIdempotentReplay:
    def test_create_order_twice_is_byte_identical(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant
        payload = {"restaurant_id": restaurant_id, "items": [{"product_id": product_id, "quantity": 2}]}

        first = client.post("/orders", json=payload, headers=_headers(CUSTOMER, "order-key-1"))
        second = client.post("/orders", json=payload, headers=_headers(CUSTOMER, "order-key-1"))

        assert first.status_code == 201
        assert second.status_code == first.status_code
        assert second.content == first.content
        assert len(current_domain.repository_for(Order).find_by_customer("cust-001")) == 1

    def test_new_key_creates_new_order(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant
        payload = {"restaurant_id": restaurant_id, "items": [{"product_id": product_id, "quantity": 1}]}

        first = client.post("/orders", json=payload, headers=_headers(CUSTOMER, "order-key-1"))
        second = client.post("/orders", json=payload, headers=_headers(CUSTOMER, "order-key-2"))

        assert first.json()["order_id"] != second.json()["order_id"]

    def test_failed_request_is_not_cached(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant
        client.post(f"/products/{product_id}/deactivate", headers=_headers(OWNER, "deact-1"))
        payload = {"restaurant_id": restaurant_id, "items": [{"product_id": product_id, "quantity": 1}]}

        failed = client.post("/orders", json=payload, headers=_headers(CUSTOMER, "order-key-9"))
        assert failed.status_code == 422

        client.post(f"/products/{product_id}/activate", headers=_headers(OWNER, "act-1"))
        retried = client.post("/orders", json=payload, headers=_headers(CUSTOMER, "order-key-9"))
        assert retried.status_code == 201

    def test_missing_idempotency_key_is_rejected(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant
        payload = {"restaurant_id": restaurant_id, "items": [{"product_id": product_id, "quantity": 1}]}
        response = client.post("/orders", json=payload, headers=_headers(CUSTOMER))
        assert response.status_code == 422


class TestOrderRoutes:
    def _place(self, client, restaurant_id, product_id, key="order-key-1"):
        response = client.post(
            "/orders",
            json={"restaurant_id": restaurant_id, "items": [{"product_id": product_id, "quantity": 1}]},
            headers=_headers(CUSTOMER, key),
        )
        return response.json()["order_id"]

    def test_accept_then_read(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant
        order_id = self._place(client, restaurant_id, product_id)

        response = client.post(f"/orders/{order_id}/accept", headers=_headers(OWNER, "accept-1"))
        assert response.status_code == 200

        detail = client.get(f"/orders/{order_id}", headers=_headers(CUSTOMER)).json()
        assert detail["status"] == "ACCEPTED"
        assert detail["valid_next_states"] == ["CONFIRMED", "CANCELLED", "REPORTED"]
        assert detail["total_amount"] == 2500.0

    def test_invalid_transition_is_409(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant
        order_id = self._place(client, restaurant_id, product_id)

        response = client.post(f"/orders/{order_id}/confirm", headers=_headers(OWNER, "confirm-1"))

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "InvalidTransition"
        assert body["current_status"] == "PENDING"
        assert body["valid_next_states"] == ["ACCEPTED", "REJECTED", "CANCELLED"]

    def test_reject_without_reason_is_422(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant
        order_id = self._place(client, restaurant_id, product_id)

        response = client.post(f"/orders/{order_id}/reject", json={"reason": " "}, headers=_headers(OWNER, "rej-1"))
        assert response.status_code == 422
        assert response.json()["error"] == "MissingReason"

    def test_stranger_is_403(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant
        order_id = self._place(client, restaurant_id, product_id)

        response = client.post(
            f"/orders/{order_id}/accept",
            headers=_headers({"X-Actor-Id": "owner-999", "X-Actor-Role": "RESTAURANT_OWNER"}, "accept-x"),
        )
        assert response.status_code == 403

    def test_unknown_order_is_404(self, client, open_restaurant):
        response = client.get("/orders/no-such-order", headers=_headers(CUSTOMER))
        assert response.status_code == 404


class TestBrowsingAndAdmin:
    def test_public_listing(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant

        listing = client.get("/restaurants").json()
        assert [r["id"] for r in listing] == [restaurant_id]
        assert listing[0]["visibility"] == 100

        products = client.get(f"/restaurants/{restaurant_id}/products").json()
        assert [p["id"] for p in products] == [product_id]

    def test_admin_sweep_endpoint(self, client, open_restaurant):
        response = client.post(
            "/admin/subscriptions/expire",
            headers=_headers(ADMIN, "sweep-1", **{"X-Correlation-Id": "corr-admin-sweep"}),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["correlation_id"] == "corr-admin-sweep"
        assert body["trigger"] == "ADMIN"
        assert body["processed_count"] == 0

    def test_sweep_requires_admin(self, client, open_restaurant):
        response = client.post("/admin/subscriptions/expire", headers=_headers(OWNER, "sweep-2"))
        assert response.status_code == 403

    def test_duplicate_subscription_is_409(self, client, open_restaurant):
        restaurant_id, _ = open_restaurant
        response = client.post(
            "/subscriptions",
            json={"restaurant_id": restaurant_id, "monthly_amount": 25000.0},
            headers=_headers(OWNER, "sub-2"),
        )
        assert response.status_code == 409


class TestProfileAndDashboardRoutes:
    def test_owner_dashboard_is_not_taken_for_a_restaurant_id(self, client, open_restaurant):
        restaurant_id, _ = open_restaurant

        response = client.get("/restaurants/mine", headers=_headers(OWNER))

        assert response.status_code == 200
        body = response.json()
        assert [r["id"] for r in body] == [restaurant_id]
        assert body[0]["subscription_status"] == "ACTIVE"
        assert body[0]["days_remaining"] >= 28

    def test_patch_restaurant_profile(self, client, open_restaurant):
        restaurant_id, _ = open_restaurant

        response = client.patch(
            f"/restaurants/{restaurant_id}",
            json={"description": "Open late on Fridays"},
            headers=_headers(OWNER, "patch-rest-1"),
        )

        assert response.status_code == 200
        assert client.get(f"/restaurants/{restaurant_id}").json()["description"] == "Open late on Fridays"

    def test_patch_product_and_list_featured(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant

        response = client.patch(f"/products/{product_id}", json={"price": 2800.0}, headers=_headers(OWNER, "patch-1"))
        assert response.status_code == 200
        response = client.post(f"/products/{product_id}/feature", json={}, headers=_headers(OWNER, "feature-1"))
        assert response.status_code == 200

        featured = client.get(f"/restaurants/{restaurant_id}/products/featured").json()
        assert [(p["id"], p["price"]) for p in featured] == [(product_id, 2800.0)]

    def test_pending_orders_route(self, client, open_restaurant):
        restaurant_id, product_id = open_restaurant
        client.post(
            "/orders",
            json={"restaurant_id": restaurant_id, "items": [{"product_id": product_id, "quantity": 1}]},
            headers=_headers(CUSTOMER, "order-pending-1"),
        )

        pending = client.get(f"/restaurants/{restaurant_id}/orders/pending", headers=_headers(OWNER)).json()
        active = client.get(f"/restaurants/{restaurant_id}/orders/active", headers=_headers(OWNER)).json()
        filtered = client.get(
            f"/restaurants/{restaurant_id}/orders", params={"status": "DELIVERED"}, headers=_headers(OWNER)
        ).json()

        assert [o["status"] for o in pending] == ["PENDING"]
        assert active == []
        assert filtered == []

    def test_admin_audit_log_route(self, client, open_restaurant):
        restaurant_id, _ = open_restaurant

        response = client.get(
            "/admin/audit-logs",
            params={"entity_type": "Restaurant", "entity_id": restaurant_id},
            headers=_headers(ADMIN),
        )

        assert response.status_code == 200
        assert [r["action"] for r in response.json()] == ["RESTAURANT_CREATED", "RESTAURANT_ACTIVATED"]

        response = client.get(
            "/admin/audit-logs",
            params={"entity_type": "Restaurant", "entity_id": restaurant_id},
            headers=_headers(OWNER),
        )
        assert response.status_code == 403
