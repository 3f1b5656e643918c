"""Administrative order commands — delivery outcome, cancellation, returns.

Each one is legal from any non-terminal status. The return-refund workflow
itself lives elsewhere; only its entry state is recorded here.
"""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String, Text

from fulfillment.domain import fulfillment
from fulfillment.order.order import Order
from fulfillment.order.staging import load_for_fulfiller

logger = structlog.get_logger(__name__)


@fulfillment.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_email = String(max_length=255)
    actor_is_admin = Boolean(default=False)
    note = Text()


@fulfillment.command(part_of="Order")
class MarkFailedDelivery:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_email = String(max_length=255)
    actor_is_admin = Boolean(default=False)
    note = Text()


@fulfillment.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_email = String(max_length=255)
    actor_is_admin = Boolean(default=False)
    note = Text()


@fulfillment.command(part_of="Order")
class OpenReturnRefund:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_email = String(max_length=255)
    actor_is_admin = Boolean(default=False)
    note = Text()


@fulfillment.command_handler(part_of=Order)
class AdministrationHandler:
    @handle(MarkDelivered)
    def mark_delivered(self, command):
        orders, order = load_for_fulfiller(command)
        order.mark_delivered(note=command.note)
        orders.save(order)
        logger.info("order_delivered", order_id=str(order.id), actor_id=str(command.actor_id))
        return order.status

    @handle(MarkFailedDelivery)
    def mark_failed_delivery(self, command):
        orders, order = load_for_fulfiller(command)
        order.mark_failed_delivery(note=command.note)
        orders.save(order)
        logger.warning("order_delivery_failed", order_id=str(order.id), actor_id=str(command.actor_id))
        return order.status

    @handle(CancelOrder)
    def cancel_order(self, command):
        orders, order = load_for_fulfiller(command)
        order.cancel(note=command.note)
        orders.save(order)
        logger.info("order_cancelled", order_id=str(order.id), actor_id=str(command.actor_id))
        return order.status

    @handle(OpenReturnRefund)
    def open_return_refund(self, command):
        orders, order = load_for_fulfiller(command)
        order.open_return_refund(note=command.note)
        orders.save(order)
        logger.info("return_refund_opened", order_id=str(order.id), actor_id=str(command.actor_id))
        return order.status
