"""
Catalog tests: products, categories and restock over HTTP.
"""

import pytest


@pytest.fixture
def product_body(category):
    return {
        "name_en": "Green tea",
        "name_vi": "Trà xanh",
        "description_en": "Loose leaf",
        "category_id": category.id,
        "price": 12.5,
        "stock_quantity": 20,
    }


class TestProducts:

    def test_admin_creates_product(self, client, admin_headers, product_body):
        resp = client.post("/api/products", json=product_body, headers=admin_headers)

        assert resp.status_code == 201
        assert resp.json["name"] == {"en": "Green tea", "vi": "Trà xanh"}
        assert resp.json["stock_quantity"] == 20

    @pytest.mark.parametrize(
        "change",
        [
            {"price": -1},
            {"price": "free"},
            {"stock_quantity": -3},
            {"stock_quantity": 1.5},
            {"name_en": None},
            {"sku": "X-1"},
        ],
    )
    def test_create_validation(self, client, admin_headers, product_body, change):
        product_body.update(change)
        resp = client.post("/api/products", json=product_body, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_category(self, client, admin_headers, product_body):
        product_body["category_id"] = 999999
        assert client.post("/api/products", json=product_body, headers=admin_headers).status_code == 400

    def test_update_price_not_stock(self, client, admin_headers, make_product):
        product = make_product(stock=4, price=10.0)

        ok = client.put(f"/api/products/{product.id}", json={"price": 11.0}, headers=admin_headers)
        blocked = client.put(f"/api/products/{product.id}", json={"stock_quantity": 99}, headers=admin_headers)

        assert ok.status_code == 200
        assert ok.json["price"] == 11.0
        assert blocked.status_code == 400

    def test_list_and_paginate(self, client, customer_headers, make_product):
        for i in range(3):
            make_product(name=f"Item {i}")

        everything = client.get("/api/products", headers=customer_headers)
        paged = client.get("/api/products?page=2&per_page=2", headers=customer_headers)

        assert everything.json["count"] == 3
        assert paged.json["count"] == 1
        assert paged.json["pagination"]["total_pages"] == 2

    def test_get_missing(self, client, customer_headers, db_session):
        assert client.get("/api/products/999999", headers=customer_headers).status_code == 404


class TestRestock:

    def test_restock(self, client, admin_headers, make_product):
        product = make_product(stock=0)

        resp = client.post(f"/api/products/{product.id}/restock", json={"quantity": 7}, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["stock_quantity"] == 7

    def test_restock_missing_product(self, client, admin_headers):
        resp = client.post("/api/products/999999/restock", json={"quantity": 1}, headers=admin_headers)
        assert resp.status_code == 404

    def test_restock_bad_quantity(self, client, admin_headers, make_product):
        product = make_product()
        resp = client.post(f"/api/products/{product.id}/restock", json={"quantity": 0}, headers=admin_headers)
        assert resp.status_code == 400


class TestCategories:

    def test_create_and_list(self, client, admin_headers, customer_headers):
        created = client.post("/api/products/categories", json={"name": "Tea"}, headers=admin_headers)
        duplicate = client.post("/api/products/categories", json={"name": "Tea"}, headers=admin_headers)
        listed = client.get("/api/products/categories", headers=customer_headers)

        assert created.status_code == 201
        assert duplicate.status_code == 409
        assert [c["name"] for c in listed.json["categories"]] == ["Tea"]
