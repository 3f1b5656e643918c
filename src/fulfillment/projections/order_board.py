"""Order board — seller dashboard listing, one row per order.

Rows are keyed by order id and carry the lifecycle tab and to-ship sub-tab
computed from ``fulfillment.order.lifecycle``. Orders migrated from legacy
documents have no registration event, so every handler upserts.
"""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.order.events import (
    FulfillmentStageChanged,
    OrderCancelled,
    OrderDelivered,
    OrderDeliveryFailed,
    OrderMovedToShip,
    OrderRegistered,
    OrderShipped,
    ReturnRefundOpened,
)
from fulfillment.order.lifecycle import (
    FulfillmentStage,
    OrderStatus,
    lifecycle_tab,
    to_ship_tab,
)
from fulfillment.order.order import Order


@fulfillment.projection
class OrderBoardEntry:
    order_id = Identifier(identifier=True, required=True)
    status = String(required=True, max_length=50)
    fulfillment_stage = String(max_length=50)
    lifecycle_tab = String(required=True, max_length=50)
    to_ship_tab = String(max_length=50)
    tracking_id = String(max_length=255)
    updated_at = DateTime()


def _upsert(order_id, status: OrderStatus, stage: FulfillmentStage | None, updated_at, tracking_id=None):
    repo = current_domain.repository_for(OrderBoardEntry)
    try:
        entry = repo.get(order_id)
    except ObjectNotFoundError:
        entry = OrderBoardEntry(order_id=order_id, status=status.value, lifecycle_tab=lifecycle_tab(status).value)

    sub_tab = to_ship_tab(status, stage)
    entry.status = status.value
    entry.fulfillment_stage = stage.value if stage else None
    entry.lifecycle_tab = lifecycle_tab(status).value
    entry.to_ship_tab = sub_tab.value if sub_tab else None
    entry.updated_at = updated_at
    if tracking_id:
        entry.tracking_id = tracking_id
    repo.add(entry)


@fulfillment.projector(projector_for=OrderBoardEntry, aggregates=[Order])
class OrderBoardProjector:
    @on(OrderRegistered)
    def on_order_registered(self, event):
        status = OrderStatus(event.status)
        stage = FulfillmentStage(event.fulfillment_stage) if event.fulfillment_stage else None
        _upsert(event.order_id, status, stage, event.registered_at)

    @on(OrderMovedToShip)
    def on_order_moved_to_ship(self, event):
        _upsert(event.order_id, OrderStatus.TO_SHIP, FulfillmentStage(event.fulfillment_stage), event.moved_at)

    @on(FulfillmentStageChanged)
    def on_fulfillment_stage_changed(self, event):
        _upsert(event.order_id, OrderStatus.TO_SHIP, FulfillmentStage(event.to_stage), event.changed_at)

    @on(OrderShipped)
    def on_order_shipped(self, event):
        _upsert(event.order_id, OrderStatus.SHIPPING, None, event.shipped_at, tracking_id=event.tracking_id)

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        _upsert(event.order_id, OrderStatus.DELIVERED, None, event.delivered_at)

    @on(OrderDeliveryFailed)
    def on_order_delivery_failed(self, event):
        _upsert(event.order_id, OrderStatus.FAILED_DELIVERY, None, event.failed_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        _upsert(event.order_id, OrderStatus.CANCELLED, None, event.cancelled_at)

    @on(ReturnRefundOpened)
    def on_return_refund_opened(self, event):
        _upsert(event.order_id, OrderStatus.RETURN_REFUND, None, event.opened_at)
