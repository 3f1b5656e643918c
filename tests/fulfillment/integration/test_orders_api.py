"""Integration tests for order stage/administrative transitions and the order board."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from fulfillment.api.errors import register_error_handlers
from fulfillment.api.routes import order_router, shipment_router
from fulfillment.order.lifecycle import OrderStatus
from fulfillment.order.order import Order
from protean import current_domain


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(shipment_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def seller_headers(auth_header):
    return auth_header(subject="seller-user-001", email="clinic@smile.ph")


@pytest.fixture()
def admin_headers(auth_header):
    return auth_header(subject="admin-001", role="admin")


@pytest.fixture()
def order_id(make_order, save_order, seed_seller):
    seed_seller()
    return save_order(make_order())


class TestStageTransitions:
    def test_to_ship(self, client, seller_headers, order_id):
        response = client.put(f"/orders/{order_id}/to-ship", headers=seller_headers)
        assert response.status_code == 200
        assert response.json() == {"status": "to_ship"}

    def test_to_ship_with_note(self, client, seller_headers, order_id):
        client.put(f"/orders/{order_id}/to-ship", json={"note": "Packed by Ana"}, headers=seller_headers)
        order = current_domain.repository_for(Order).get(order_id)
        assert order.history()[-1].note == "Packed by Ana"

    def test_walk_to_hand_over(self, client, seller_headers, order_id):
        for step in ("to-ship", "arrangement", "back-to-pack", "arrangement", "hand-over"):
            assert client.put(f"/orders/{order_id}/{step}", headers=seller_headers).status_code == 200
        assert current_domain.repository_for(Order).get(order_id).fulfillment_stage == "to_hand_over"

    def test_illegal_transition(self, client, seller_headers, order_id):
        response = client.put(f"/orders/{order_id}/hand-over", headers=seller_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Cannot move to hand over from confirmed"}

    def test_buyer_is_forbidden(self, client, auth_header, order_id):
        response = client.put(f"/orders/{order_id}/to-ship", headers=auth_header(subject="buyer-001"))
        assert response.status_code == 403

    def test_unknown_order_for_admin(self, client, admin_headers):
        response = client.put("/orders/ghost-order/to-ship", headers=admin_headers)
        assert response.status_code == 404


class TestAdministrativeTransitions:
    def test_cancel(self, client, admin_headers, order_id):
        response = client.put(f"/orders/{order_id}/cancel", json={"note": "Duplicate order"}, headers=admin_headers)
        assert response.json() == {"status": "cancelled"}

    def test_delivered_after_shipment(self, client, auth_header, admin_headers, order_id):
        client.post("/shipments", json={"orderId": order_id}, headers=auth_header())
        response = client.put(f"/orders/{order_id}/delivered", headers=admin_headers)
        assert response.json() == {"status": "delivered"}

    def test_failed_delivery(self, client, admin_headers, make_order, save_order):
        order_id = save_order(make_order(status=OrderStatus.SHIPPING))
        response = client.put(f"/orders/{order_id}/failed-delivery", headers=admin_headers)
        assert response.json() == {"status": "failed_delivery"}

    def test_return_refund(self, client, seller_headers, make_order, save_order, seed_seller):
        seed_seller()
        order_id = save_order(make_order(status=OrderStatus.SHIPPING))
        response = client.put(f"/orders/{order_id}/return-refund", headers=seller_headers)
        assert response.json() == {"status": "return_refund"}

    def test_terminal_order(self, client, admin_headers, make_order, save_order):
        order_id = save_order(make_order(status=OrderStatus.DELIVERED))
        assert client.put(f"/orders/{order_id}/cancel", headers=admin_headers).status_code == 400


class TestOrderBoard:
    def test_admin_only(self, client, seller_headers):
        assert client.get("/orders/board", headers=seller_headers).status_code == 403

    def test_lists_every_order(self, client, admin_headers, make_order, save_order):
        save_order(make_order())
        save_order(make_order(status=OrderStatus.SHIPPING))
        data = client.get("/orders/board", headers=admin_headers).json()
        assert data["total"] == 2

    def test_filter_by_tab_and_stage(self, client, admin_headers, seller_headers, order_id, make_order, save_order):
        save_order(make_order())
        client.put(f"/orders/{order_id}/to-ship", headers=seller_headers)
        client.put(f"/orders/{order_id}/arrangement", headers=seller_headers)

        to_ship = client.get("/orders/board", params={"tab": "to-ship"}, headers=admin_headers).json()
        assert [entry["orderId"] for entry in to_ship["entries"]] == [order_id]
        assert to_ship["entries"][0]["toShipTab"] == "to-arrangement"

        packing = client.get(
            "/orders/board", params={"tab": "to-ship", "stage": "to-pack"}, headers=admin_headers
        ).json()
        assert packing["total"] == 0
