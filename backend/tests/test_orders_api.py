"""
Order API tests.

Verifies:
- Status codes for create / update / delete (201, 400, 403, 404, 409, 204)
- Customers only see and change their own orders
- Completing an order over HTTP records its cash flow
"""

import pytest

from shopledger.extensions import db
from shopledger.models import CashFlowTransaction, Order, Product
from shopledger.services import inventory_service
from shopledger.services.inventory_service import StockLine


def _stock(product_id: int) -> int:
    db.session.expire_all()
    return db.session.get(Product, product_id).stock_quantity


def _order_body(product, quantity=1, **extra):
    body = {
        "products": [{"product_id": product.id, "quantity": quantity}],
        "payment_method": "credit_card",
        "total_price": 49.5,
    }
    body.update(extra)
    return body


class TestCreateOrder:

    def test_customer_creates_order(self, client, customer_headers, customer, make_product):
        product = make_product(stock=5)

        resp = client.post("/api/orders", json=_order_body(product, 2), headers=customer_headers)

        assert resp.status_code == 201
        order = resp.json["order"]
        assert order["status"] == "processing"
        assert order["user"]["username"] == customer.username
        assert order["products"][0]["product"]["id"] == product.id
        assert order["products"][0]["quantity"] == 2
        assert order["order_date"].endswith("Z")
        assert _stock(product.id) == 3

    def test_requires_auth(self, client, make_product):
        resp = client.post("/api/orders", json=_order_body(make_product()))
        assert resp.status_code == 401

    def test_admin_cannot_place_orders(self, client, admin_headers, make_product):
        resp = client.post("/api/orders", json=_order_body(make_product()), headers=admin_headers)
        assert resp.status_code == 403

    def test_missing_fields(self, client, customer_headers):
        resp = client.post("/api/orders", json={"payment_method": "cash"}, headers=customer_headers)
        assert resp.status_code == 400
        assert "error" in resp.json

    def test_insufficient_stock(self, client, customer_headers, make_product):
        product = make_product(stock=1)

        resp = client.post("/api/orders", json=_order_body(product, 3), headers=customer_headers)

        assert resp.status_code == 400
        assert resp.json["details"] == {"product_id": product.id, "available": 1, "requested": 3}
        assert db.session.query(Order).count() == 0

    def test_unknown_product(self, client, customer_headers, make_product):
        product = make_product()
        body = _order_body(product)
        body["products"][0]["product_id"] = product.id + 1000

        resp = client.post("/api/orders", json=body, headers=customer_headers)

        assert resp.status_code == 400

    def test_concurrent_stock_change_is_409(self, client, customer_headers, make_product, monkeypatch):
        first = make_product(stock=5)
        second = make_product(stock=1)
        monkeypatch.setattr(inventory_service, "check_availability", lambda lines: [])

        resp = client.post("/api/orders", json={
            "products": [
                {"product_id": first.id, "quantity": 1},
                {"product_id": second.id, "quantity": 2},
            ],
            "payment_method": "cash",
            "total_price": 30,
        }, headers=customer_headers)

        assert resp.status_code == 409
        assert _stock(first.id) == 5
        assert db.session.query(Order).count() == 0

    def test_two_orders_race_for_last_unit(self, client, customer_headers, other_customer_headers, make_product, monkeypatch):
        product = make_product(stock=1)
        # Both orders pass the pre-check while one unit is still on hand
        stale_check = inventory_service.check_availability([StockLine(product.id, 1)])

        winner = client.post("/api/orders", json=_order_body(product), headers=customer_headers)
        monkeypatch.setattr(inventory_service, "check_availability", lambda lines: stale_check)
        loser = client.post("/api/orders", json=_order_body(product), headers=other_customer_headers)

        assert winner.status_code == 201
        assert loser.status_code == 409
        assert loser.json["details"] == {"product_id": product.id, "requested": 1}
        assert _stock(product.id) == 0
        assert db.session.query(Order).count() == 1


class TestListOrders:

    def test_scoping(self, client, customer_headers, admin_headers, customer, other_customer, make_product, make_order):
        product = make_product()
        mine = make_order(customer, product)
        make_order(other_customer, product)

        own = client.get("/api/orders", headers=customer_headers)
        everything = client.get("/api/orders", headers=admin_headers)

        assert [o["id"] for o in own.json["orders"]] == [mine.id]
        assert len(everything.json["orders"]) == 2

    def test_by_user_id(self, client, admin_headers, customer, make_product, make_order):
        make_order(customer, make_product())

        resp = client.get(f"/api/orders/user/{customer.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert len(resp.json["orders"]) == 1

    def test_by_username_query(self, client, admin_headers, customer, make_product, make_order):
        make_order(customer, make_product())

        resp = client.get("/api/orders/user?username=alice", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["orders"][0]["user_id"] == customer.id

    def test_lookup_requires_id_or_username(self, client, admin_headers):
        resp = client.get("/api/orders/user", headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_user(self, client, admin_headers):
        resp = client.get("/api/orders/user/999999", headers=admin_headers)
        assert resp.status_code == 404

    def test_customer_cannot_list_other_users_orders(self, client, customer_headers, other_customer):
        resp = client.get(f"/api/orders/user/{other_customer.id}", headers=customer_headers)
        assert resp.status_code == 403

    def test_get_single_order(self, client, customer_headers, customer, make_product, make_order):
        order = make_order(customer, make_product())

        resp = client.get(f"/api/orders/order/{order.id}", headers=customer_headers)

        assert resp.status_code == 200
        assert resp.json["order"]["id"] == order.id

    def test_foreign_order_is_hidden(self, client, customer_headers, other_customer, make_product, make_order):
        order = make_order(other_customer, make_product())
        resp = client.get(f"/api/orders/order/{order.id}", headers=customer_headers)
        assert resp.status_code == 404


class TestUpdateStatus:

    def test_customer_updates_own_order(self, client, customer_headers, customer, make_product, make_order):
        order = make_order(customer, make_product())

        resp = client.put(f"/api/orders/{order.id}", json={"status": "shipped"}, headers=customer_headers)

        assert resp.status_code == 200
        assert resp.json["order"]["status"] == "shipped"

    def test_customer_cannot_update_foreign_order(self, client, customer_headers, other_customer, make_product, make_order):
        order = make_order(other_customer, make_product())
        resp = client.put(f"/api/orders/{order.id}", json={"status": "shipped"}, headers=customer_headers)
        assert resp.status_code == 404

    def test_invalid_status(self, client, admin_headers, customer, make_product, make_order):
        order = make_order(customer, make_product())
        resp = client.put(f"/api/orders/{order.id}", json={"status": "teleported"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_missing_order(self, client, admin_headers):
        resp = client.put("/api/orders/999999", json={"status": "shipped"}, headers=admin_headers)
        assert resp.status_code == 404

    def test_completion_records_cash_flow(self, client, admin_headers, customer, make_product, make_order):
        order = make_order(customer, make_product(), total_price=80.0)

        resp = client.put(f"/api/orders/{order.id}", json={"status": "completed"}, headers=admin_headers)

        assert resp.status_code == 200
        amounts = sorted(
            tx.amount for tx in db.session.query(CashFlowTransaction).filter_by(order_id=order.id)
        )
        assert amounts == pytest.approx([10.0, 32.0, 80.0])


class TestDeleteOrder:

    def test_customer_deletes_own_order(self, client, customer_headers, customer, make_product, make_order):
        order = make_order(customer, make_product())

        resp = client.delete(f"/api/orders/{order.id}", headers=customer_headers)

        assert resp.status_code == 204
        assert db.session.query(Order).count() == 0

    def test_customer_cannot_delete_foreign_order(self, client, customer_headers, other_customer, make_product, make_order):
        order = make_order(other_customer, make_product())
        resp = client.delete(f"/api/orders/{order.id}", headers=customer_headers)
        assert resp.status_code == 404
        assert db.session.query(Order).count() == 1

    def test_admin_uses_admin_route(self, client, admin_headers, customer, make_product, make_order):
        order = make_order(customer, make_product())

        assert client.delete(f"/api/orders/{order.id}", headers=admin_headers).status_code == 403
        assert client.delete(f"/api/orders/admin/{order.id}", headers=admin_headers).status_code == 204
        assert client.delete(f"/api/orders/admin/{order.id}", headers=admin_headers).status_code == 404

    def test_customer_cannot_use_admin_route(self, client, customer_headers, customer, make_product, make_order):
        order = make_order(customer, make_product())
        resp = client.delete(f"/api/orders/admin/{order.id}", headers=customer_headers)
        assert resp.status_code == 403
