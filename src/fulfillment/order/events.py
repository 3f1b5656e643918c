"""Order fulfillment domain events — immutable facts about order state changes.

All events are past tense, versioned, and carry enough data for the order
board projector to maintain its view without reloading the aggregate.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Order")
class OrderRegistered:
    """Checkout handed a new order over to fulfillment."""

    __version__ = 1

    order_id = Identifier(required=True)
    status = String(required=True)
    fulfillment_stage = String()
    registered_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderMovedToShip:
    """A confirmed order entered the to-ship queue at the packing stage."""

    __version__ = 1

    order_id = Identifier(required=True)
    fulfillment_stage = String(required=True)
    moved_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class FulfillmentStageChanged:
    """An order moved between packing, arrangement and hand-over."""

    __version__ = 1

    order_id = Identifier(required=True)
    from_stage = String(required=True)
    to_stage = String(required=True)
    changed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderShipped:
    """Hand-over was confirmed after the carrier accepted the shipment."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_id = String()
    shipping_reference_no = String(required=True)
    total_shipping_amount = Float()
    shipped_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderDelivered:
    """The carrier confirmed delivery to the buyer."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderDeliveryFailed:
    """Delivery was marked as failed by an administrator."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    note = Text()
    failed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before completion."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    note = Text()
    cancelled_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class ReturnRefundOpened:
    """A return or refund case was opened for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    note = Text()
    opened_at = DateTime(required=True)
