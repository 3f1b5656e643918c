"""Application tests for DomainOrderRepository — current store, legacy fallback, conditional writes."""

import json
from datetime import UTC, datetime

import pytest
from fulfillment.errors import DuplicateRequestError, OrderNotFoundError
from fulfillment.order.order import CarrierShipmentRecord, Order
from fulfillment.order.repository import DomainOrderRepository
from protean import current_domain
from structlog.testing import capture_logs


def _record(tracking_id):
    return CarrierShipmentRecord(
        tracking_id=tracking_id,
        shipping_reference_no=f"DPAL-{tracking_id}",
        total_shipping_amount=150.0,
        requested_at=datetime.now(UTC),
        response=json.dumps({"Success": True}),
    )


_LEGACY_DOC = {
    "userId": "buyer-001",
    "sellerIds": ["seller-001"],
    "status": "paid",
    "items": [{"productId": "prod-1", "productName": "Prophy Paste", "quantity": 1, "price": 300}],
    "shippingInfo": {"fullName": "Juan Luna", "addressLine1": "5 Mabini St", "city": "Pasig"},
}


class TestFind:
    def test_current_store(self, make_order, save_order):
        order_id = save_order(make_order())
        found = DomainOrderRepository().find(order_id)
        assert str(found.id) == order_id

    def test_missing_everywhere(self):
        assert DomainOrderRepository().find("nope") is None

    def test_get_raises_not_found(self):
        with pytest.raises(OrderNotFoundError) as exc:
            DomainOrderRepository().get("nope")
        assert exc.value.order_id == "nope"

    @pytest.mark.parametrize("collection", ["Order", "orders"])
    def test_legacy_collections(self, seed_legacy_order, collection):
        seed_legacy_order("LEG-100", _LEGACY_DOC, collection=collection)
        order = DomainOrderRepository().find("LEG-100")
        assert order.status == "confirmed"
        assert order.items[0].product_name == "Prophy Paste"

    def test_primary_collection_wins(self, seed_legacy_order):
        seed_legacy_order("LEG-101", {**_LEGACY_DOC, "status": "cancelled"}, collection="orders")
        seed_legacy_order("LEG-101", _LEGACY_DOC, collection="Order")
        assert DomainOrderRepository().find("LEG-101").status == "confirmed"

    def test_current_store_beats_legacy(self, make_order, save_order, seed_legacy_order):
        order_id = save_order(make_order(order_id="ORD-BOTH"))
        seed_legacy_order(order_id, {**_LEGACY_DOC, "status": "cancelled"})
        assert DomainOrderRepository().find(order_id).status == "confirmed"


class TestSave:
    def test_legacy_order_is_migrated_on_first_write(self, seed_legacy_order):
        seed_legacy_order("LEG-200", _LEGACY_DOC)
        orders = DomainOrderRepository()
        order = orders.find("LEG-200")
        order.move_to_ship()

        with capture_logs() as logs:
            orders.save(order)

        assert any(entry["event"] == "legacy_order_migrated" for entry in logs)
        stored = current_domain.repository_for(Order).get("LEG-200")
        assert stored.status == "to_ship"

    def test_new_order_is_not_reported_as_migration(self, make_order):
        with capture_logs() as logs:
            DomainOrderRepository().save(make_order())
        assert not any(entry["event"] == "legacy_order_migrated" for entry in logs)


class TestSaveShipment:
    def test_writes_when_no_tracking_stored(self, make_order, save_order):
        order_id = save_order(make_order())
        orders = DomainOrderRepository()
        order = orders.get(order_id)
        order.ship_with_carrier(_record("JRS-1"))
        orders.save_shipment(order)
        assert orders.get(order_id).tracking_id == "JRS-1"

    def test_rejects_when_another_tracking_was_stored(self, make_order, save_order):
        order_id = save_order(make_order())
        orders = DomainOrderRepository()

        first = orders.get(order_id)
        second = orders.get(order_id)
        first.ship_with_carrier(_record("JRS-FIRST"))
        orders.save_shipment(first)

        second.ship_with_carrier(_record("JRS-SECOND"))
        with pytest.raises(DuplicateRequestError) as exc:
            orders.save_shipment(second)
        assert exc.value.existing_tracking_id == "JRS-FIRST"
        assert orders.get(order_id).tracking_id == "JRS-FIRST"
