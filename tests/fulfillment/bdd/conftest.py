"""Shared BDD fixtures and step definitions for order fulfillment."""

import pytest
from fulfillment.order.events import (
    FulfillmentStageChanged,
    OrderCancelled,
    OrderMovedToShip,
    OrderRegistered,
    OrderShipped,
)
from fulfillment.order.lifecycle import FulfillmentStage, OrderStatus
from fulfillment.order.order import Order
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

_ORDER_EVENT_CLASSES = {
    "OrderRegistered": OrderRegistered,
    "OrderMovedToShip": OrderMovedToShip,
    "FulfillmentStageChanged": FulfillmentStageChanged,
    "OrderShipped": OrderShipped,
    "OrderCancelled": OrderCancelled,
}

_DEFAULT_ITEMS = [
    {"product_id": "prod-comp", "product_name": "Composite Resin Kit", "quantity": 1, "unit_price": 1850.0},
    {"product_id": "prod-bib", "product_name": "Patient Bibs", "quantity": 5, "unit_price": 60.0},
]


def _new_order(status=OrderStatus.CONFIRMED, stage=None):
    return Order.create(
        owner_id="buyer-bdd",
        seller_ids=["seller-bdd"],
        items_data=_DEFAULT_ITEMS,
        shipping_info={
            "full_name": "Emilio Aguinaldo",
            "address_line1": "7 Kawit Blvd, Brgy. Binakayan",
            "city": "Kawit",
            "province": "Cavite",
            "country": "Philippines",
        },
        status=status,
        fulfillment_stage=stage,
    )


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a confirmed order", target_fixture="order")
def confirmed_order():
    order = _new_order()
    order._events.clear()
    return order


@given(parsers.cfparse('an order in the "{stage}" stage'), target_fixture="order")
def order_in_stage(stage):
    order = _new_order(status=OrderStatus.TO_SHIP, stage=FulfillmentStage(stage))
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the fulfillment stage is "{stage}"'))
def fulfillment_stage_is(order, stage):
    assert order.fulfillment_stage == stage


@then("the order has no fulfillment stage")
def order_has_no_stage(order):
    assert order.fulfillment_stage is None


@then("the order action fails with a validation error")
def order_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"
