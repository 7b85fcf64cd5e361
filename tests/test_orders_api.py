"""Integration tests for the /orders endpoints via TestClient."""

import pytest

from grocery.models import Order
from tests.conftest import auth_headers, order_payload


def _place(client, user, catalog, **kwargs):
    resp = client.post("/orders", json=order_payload(catalog, **kwargs), headers=auth_headers(user))
    assert resp.status_code == 200, resp.text
    return resp.json()["orderId"]


class TestCreateOrder:
    def test_example_scenario(self, client, catalog, customer):
        resp = client.post("/orders", json=order_payload(catalog), headers=auth_headers(customer))

        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == "2.50"

        detail = client.get(f"/orders/{body['orderId']}", headers=auth_headers(customer)).json()
        assert detail["subtotal"] == "1.50"
        assert detail["deliveryFee"] == "1.00"
        assert detail["status"] == "pending"
        assert detail["paymentMethod"] == "COD"
        assert len(detail["statusHistory"]) == 1

    def test_client_prices_are_ignored(self, client, catalog, customer):
        items = [
            {
                "productId": catalog["tomatoes"].id,
                "unit": "kg",
                "qty": 2,
                "price": "0.01",
                "lineTotal": "0.02",
                "nameAr": "fake",
            }
        ]
        body = {
            "items": items,
            "address": {"zoneId": catalog["downtown"].id, "street": "S", "building": "B"},
            "total": "0.01",
            "deliveryFee": "0",
        }

        resp = client.post("/orders", json=body, headers=auth_headers(customer))

        assert resp.status_code == 200
        assert resp.json()["total"] == "2.50"
        detail = client.get(f"/orders/{resp.json()['orderId']}", headers=auth_headers(customer)).json()
        assert detail["items"][0]["price"] == "0.75"
        assert detail["items"][0]["lineTotal"] == "1.50"
        assert detail["items"][0]["nameAr"] == "بندورة"

    def test_requires_login(self, client, catalog):
        resp = client.post("/orders", json=order_payload(catalog))
        assert resp.status_code == 401
        assert "error" in resp.json()

    def test_garbage_token(self, client, catalog):
        resp = client.post("/orders", json=order_payload(catalog), headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_cookie_session(self, client, catalog, customer):
        login = client.post("/auth/login", json={"username": "alice", "password": "secret123"})
        assert login.status_code == 200

        resp = client.post("/orders", json=order_payload(catalog))
        assert resp.status_code == 200

    def test_empty_cart_is_400(self, client, db, catalog, customer):
        resp = client.post("/orders", json=order_payload(catalog, items=[]), headers=auth_headers(customer))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Cart is empty"}
        assert db.query(Order).count() == 0

    def test_missing_address_is_400(self, client, db, catalog, customer):
        body = {"items": [{"productId": catalog["tomatoes"].id, "unit": "kg", "qty": 1}]}
        resp = client.post("/orders", json=body, headers=auth_headers(customer))
        assert resp.status_code == 400
        assert db.query(Order).count() == 0

    def test_missing_zone_is_400(self, client, db, catalog, customer):
        resp = client.post("/orders", json=order_payload(catalog, zoneId=None), headers=auth_headers(customer))
        assert resp.status_code == 400
        assert db.query(Order).count() == 0

    def test_inactive_product_is_400(self, client, db, catalog, customer):
        items = [{"productId": catalog["retired"].id, "unit": "kg", "qty": 1}]
        resp = client.post("/orders", json=order_payload(catalog, items=items), headers=auth_headers(customer))
        assert resp.status_code == 400
        assert db.query(Order).count() == 0

    def test_unsupported_unit_is_400(self, client, db, catalog, customer):
        items = [{"productId": catalog["bananas"].id, "unit": "piece", "qty": 1}]
        resp = client.post("/orders", json=order_payload(catalog, items=items), headers=auth_headers(customer))
        assert resp.status_code == 400
        assert db.query(Order).count() == 0

    def test_zero_quantity_is_400(self, client, db, catalog, customer):
        items = [{"productId": catalog["tomatoes"].id, "unit": "kg", "qty": 0}]
        resp = client.post("/orders", json=order_payload(catalog, items=items), headers=auth_headers(customer))
        assert resp.status_code == 400
        assert db.query(Order).count() == 0

    def test_malformed_body_is_400(self, client, catalog, customer):
        resp = client.post("/orders", json={"items": "lots"}, headers=auth_headers(customer))
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_notification_failure_does_not_fail_order(self, client, db, catalog, customer, monkeypatch):
        from grocery import emailer
        from grocery.config import settings

        def explode(*args, **kwargs):
            raise ConnectionRefusedError("smtp down")

        monkeypatch.setattr(settings, "cashier_emails", ["cashier@shop.example"])
        monkeypatch.setattr(emailer, "send_order_email", explode)

        resp = client.post("/orders", json=order_payload(catalog), headers=auth_headers(customer))

        assert resp.status_code == 200
        assert db.query(Order).count() == 1

    def test_message_build_failure_does_not_fail_order(self, client, db, catalog, customer, monkeypatch):
        from grocery import emailer
        from grocery.config import settings

        def broken(order, customer):
            raise AttributeError("display_name")

        monkeypatch.setattr(settings, "cashier_emails", ["cashier@shop.example"])
        monkeypatch.setattr(emailer, "build_order_email", broken)

        resp = client.post("/orders", json=order_payload(catalog), headers=auth_headers(customer))

        assert resp.status_code == 200
        assert db.query(Order).count() == 1

    @pytest.mark.parametrize("qty", ["sNaN", "NaN", "Infinity"])
    def test_non_finite_quantity_is_400(self, client, catalog, customer, qty):
        items = [{"productId": catalog["tomatoes"].id, "unit": "kg", "qty": qty}]
        resp = client.post("/orders", json=order_payload(catalog, items=items), headers=auth_headers(customer))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid quantity"}

    def test_notification_is_sent_with_order_summary(self, client, catalog, customer, monkeypatch):
        from grocery import emailer
        from grocery.config import settings

        sent = []
        monkeypatch.setattr(settings, "cashier_emails", ["cashier@shop.example"])
        monkeypatch.setattr(emailer, "send_order_email", lambda to, subject, body: sent.append((to, subject, body)))

        order_id = _place(client, customer, catalog)

        assert len(sent) == 1
        to, subject, body = sent[0]
        assert to == ["cashier@shop.example"]
        assert f"#{order_id}" in subject
        assert "2.50" in subject
        assert "Tomatoes" in body
        assert "Rainbow St" in body


class TestReadOrders:
    def test_list_is_own_orders_newest_first(self, client, catalog, customer, other_customer):
        first = _place(client, customer, catalog)
        second = _place(client, customer, catalog)
        _place(client, other_customer, catalog)

        resp = client.get("/orders", headers=auth_headers(customer))

        assert resp.status_code == 200
        ids = [o["id"] for o in resp.json()]
        assert ids == [second, first]
        assert all(o["items"] and o["statusHistory"] for o in resp.json())

    def test_owner_reads_own_order(self, client, catalog, customer):
        order_id = _place(client, customer, catalog)
        resp = client.get(f"/orders/{order_id}", headers=auth_headers(customer))
        assert resp.status_code == 200
        body = resp.json()
        assert body["customer"]["name"] == "Alice"
        assert body["address"]["street"] == "Rainbow St"
        assert body["address"]["details"] == "3rd floor"

    def test_other_customer_gets_403(self, client, catalog, customer, other_customer):
        order_id = _place(client, customer, catalog)
        resp = client.get(f"/orders/{order_id}", headers=auth_headers(other_customer))
        assert resp.status_code == 403

    def test_staff_can_read_any_order(self, client, catalog, customer, cashier, admin):
        order_id = _place(client, customer, catalog)
        assert client.get(f"/orders/{order_id}", headers=auth_headers(cashier)).status_code == 200
        assert client.get(f"/orders/{order_id}", headers=auth_headers(admin)).status_code == 200

    def test_unknown_order_is_404(self, client, catalog, customer):
        assert client.get("/orders/999", headers=auth_headers(customer)).status_code == 404


class TestUpdateStatus:
    def test_cashier_accepts(self, client, catalog, customer, cashier):
        order_id = _place(client, customer, catalog)

        resp = client.patch(f"/orders/{order_id}", json={"status": "accepted"}, headers=auth_headers(cashier))

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "accepted"
        assert body["acceptedBy"] == cashier.id
        assert body["acceptedAt"] is not None
        assert body["rejectionReason"] is None
        assert [h["status"] for h in body["statusHistory"]] == ["pending", "accepted"]

    def test_admin_rejects_with_reason(self, client, catalog, customer, admin):
        order_id = _place(client, customer, catalog)

        resp = client.patch(
            f"/orders/{order_id}",
            json={"status": "rejected", "rejectionReason": "out of stock"},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "rejected"
        assert body["rejectedBy"] == admin.id
        assert body["rejectionReason"] == "out of stock"

        # customer sees the outcome
        mine = client.get(f"/orders/{order_id}", headers=auth_headers(customer)).json()
        assert mine["status"] == "rejected"
        assert mine["statusHistory"][-1]["status"] == "rejected"

    def test_customer_cannot_transition(self, client, catalog, customer):
        order_id = _place(client, customer, catalog)
        resp = client.patch(f"/orders/{order_id}", json={"status": "accepted"}, headers=auth_headers(customer))
        assert resp.status_code == 403

    def test_anonymous_cannot_transition(self, client, catalog, customer):
        order_id = _place(client, customer, catalog)
        resp = client.patch(f"/orders/{order_id}", json={"status": "accepted"})
        assert resp.status_code == 401

    def test_invalid_status_is_400(self, client, catalog, customer, cashier):
        order_id = _place(client, customer, catalog)
        resp = client.patch(f"/orders/{order_id}", json={"status": "teleported"}, headers=auth_headers(cashier))
        assert resp.status_code == 400

    def test_skipping_ahead_is_400(self, client, catalog, customer, cashier):
        order_id = _place(client, customer, catalog)
        resp = client.patch(f"/orders/{order_id}", json={"status": "delivered"}, headers=auth_headers(cashier))
        assert resp.status_code == 400

    def test_unknown_order_is_404(self, client, catalog, cashier):
        resp = client.patch("/orders/999", json={"status": "accepted"}, headers=auth_headers(cashier))
        assert resp.status_code == 404

    def test_full_walk_to_delivered(self, client, catalog, customer, cashier):
        order_id = _place(client, customer, catalog)
        for status in ["accepted", "preparing", "out_for_delivery", "delivered"]:
            resp = client.patch(f"/orders/{order_id}", json={"status": status}, headers=auth_headers(cashier))
            assert resp.status_code == 200, resp.text

        body = resp.json()
        assert body["status"] == "delivered"
        assert len(body["statusHistory"]) == 5
        assert body["total"] == "2.50"
