from bson.objectid import ObjectId

from database import create_document


def order_body(product_id, quantity=2):
    return {
        "items": [
            {
                "product": {"_id": str(product_id), "name": "Smartwatch", "price": 69.99},
                "quantity": quantity,
            }
        ]
    }


def insert_order(db, customer_id, product_id):
    order_id = create_document(
        db,
        "order",
        {
            "customerId": customer_id,
            "items": [{"product": {"id": str(product_id), "name": "Smartwatch", "price": 69.99}, "quantity": 1}],
        },
    )
    return ObjectId(order_id)


class TestCreateOrder:
    def test_customer_places_order(self, client, db, customer, customer_headers, product):
        response = client.post("/api/orders", json=order_body(product), headers=customer_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["customerId"] == str(customer)
        assert data["items"][0]["quantity"] == 2
        assert data["items"][0]["product"]["id"] == str(product)
        assert data["items"][0]["product"]["name"] == "Smartwatch"

        stored = db["order"].find_one({"_id": ObjectId(data["id"])})
        assert stored["customerId"] == customer

    def test_product_id_key_accepted(self, client, customer_headers, product):
        body = {"items": [{"product": {"id": str(product), "name": "Smartwatch", "price": 69.99}, "quantity": 1}]}
        response = client.post("/api/orders", json=body, headers=customer_headers)
        assert response.status_code == 201

    def test_admin_cannot_order(self, client, admin_headers, product):
        response = client.post("/api/orders", json=order_body(product), headers=admin_headers)
        assert response.status_code == 403

    def test_requires_authentication(self, client, customer, product):
        response = client.post("/api/orders", json=order_body(product))
        assert response.status_code == 401

    def test_empty_items(self, client, customer_headers):
        response = client.post("/api/orders", json={"items": []}, headers=customer_headers)
        assert response.status_code == 400

    def test_missing_items(self, client, customer_headers):
        response = client.post("/api/orders", json={}, headers=customer_headers)
        assert response.status_code == 400

    def test_zero_quantity(self, client, customer_headers, product):
        response = client.post("/api/orders", json=order_body(product, quantity=0), headers=customer_headers)
        assert response.status_code == 400

    def test_product_without_price(self, client, customer_headers, product):
        body = {"items": [{"product": {"_id": str(product), "name": "Smartwatch"}, "quantity": 1}]}
        response = client.post("/api/orders", json=body, headers=customer_headers)
        assert response.status_code == 400


class TestListOrders:
    def test_customer_sees_only_own_orders(self, client, db, customer, other_customer, customer_headers, product):
        own = insert_order(db, customer, product)
        insert_order(db, other_customer, product)

        response = client.get("/api/orders", headers=customer_headers)
        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [str(own)]

    def test_admin_sees_all_orders(self, client, db, admin_headers, customer, other_customer, product):
        insert_order(db, customer, product)
        insert_order(db, other_customer, product)

        response = client.get("/api/orders", headers=admin_headers)
        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_requires_authentication(self, client, customer):
        response = client.get("/api/orders")
        assert response.status_code == 401


class TestViewOrder:
    def test_customer_views_own_order(self, client, db, customer, customer_headers, product):
        order_id = insert_order(db, customer, product)
        response = client.get(f"/api/orders/{order_id}", headers=customer_headers)
        assert response.status_code == 200
        assert response.json()["customerId"] == str(customer)

    def test_customer_cannot_see_other_order(self, client, db, other_customer, customer_headers, product):
        order_id = insert_order(db, other_customer, product)
        response = client.get(f"/api/orders/{order_id}", headers=customer_headers)
        assert response.status_code == 404

    def test_admin_views_any_order(self, client, db, admin_headers, customer, product):
        order_id = insert_order(db, customer, product)
        response = client.get(f"/api/orders/{order_id}", headers=admin_headers)
        assert response.status_code == 200

    def test_unknown_order(self, client, customer_headers):
        response = client.get(f"/api/orders/{ObjectId()}", headers=customer_headers)
        assert response.status_code == 404

    def test_orders_by_id_is_read_only(self, client, db, admin_headers, customer, product):
        order_id = insert_order(db, customer, product)
        response = client.delete(f"/api/orders/{order_id}", headers=admin_headers)
        assert response.status_code == 405


class TestCreateOrderValidation:
    def test_infinite_snapshot_price(self, client, db, customer_headers, product):
        response = client.post(
            "/api/orders",
            content='{"items": [{"product": {"id": "%s", "name": "Smartwatch", "price": Infinity}, "quantity": 1}]}'
            % product,
            headers={**customer_headers, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert db["order"].count_documents({}) == 0

    def test_requires_json_content_type(self, client, db, customer_headers, product):
        response = client.post(
            "/api/orders",
            content="items=1",
            headers={**customer_headers, "Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 415
        assert db["order"].count_documents({}) == 0
