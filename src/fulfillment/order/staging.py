"""To-ship stage commands — packing, arrangement and hand-over.

Sellers and administrators move an order through the to-ship stages. The
final step out of ``to_hand_over`` (``confirm_handover``) is only reachable
through the shipment orchestrator because it needs a carrier tracking id.
"""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String, Text

from fulfillment.access.context import AuthContext
from fulfillment.access.policy import load_authorized_order
from fulfillment.domain import fulfillment
from fulfillment.order.order import Order
from fulfillment.order.repository import DomainOrderRepository
from fulfillment.profiles.directory import DomainProfileDirectory

logger = structlog.get_logger(__name__)


@fulfillment.command(part_of="Order")
class MoveToShip:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_email = String(max_length=255)
    actor_is_admin = Boolean(default=False)
    note = Text()


@fulfillment.command(part_of="Order")
class MoveToArrangement:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_email = String(max_length=255)
    actor_is_admin = Boolean(default=False)


@fulfillment.command(part_of="Order")
class MoveBackToPack:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_email = String(max_length=255)
    actor_is_admin = Boolean(default=False)


@fulfillment.command(part_of="Order")
class MoveToHandOver:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_email = String(max_length=255)
    actor_is_admin = Boolean(default=False)


def load_for_fulfiller(command) -> tuple[DomainOrderRepository, Order]:
    """Load the command's order after checking the actor may drive it."""
    caller = AuthContext.for_actor(command.actor_id, command.actor_email, command.actor_is_admin)
    orders = DomainOrderRepository()
    order, _ = load_authorized_order(
        caller,
        str(command.order_id),
        orders,
        DomainProfileDirectory(),
        fulfillers_only=True,
    )
    return orders, order


@fulfillment.command_handler(part_of=Order)
class StagingHandler:
    @handle(MoveToShip)
    def move_to_ship(self, command):
        orders, order = load_for_fulfiller(command)
        order.move_to_ship(note=command.note)
        orders.save(order)
        logger.info("order_moved_to_ship", order_id=str(order.id), actor_id=str(command.actor_id))
        return order.status

    @handle(MoveToArrangement)
    def move_to_arrangement(self, command):
        orders, order = load_for_fulfiller(command)
        order.move_to_arrangement()
        orders.save(order)
        logger.info("order_stage_changed", order_id=str(order.id), stage=order.fulfillment_stage)
        return order.status

    @handle(MoveBackToPack)
    def move_back_to_pack(self, command):
        orders, order = load_for_fulfiller(command)
        order.move_back_to_pack()
        orders.save(order)
        logger.info("order_stage_changed", order_id=str(order.id), stage=order.fulfillment_stage)
        return order.status

    @handle(MoveToHandOver)
    def move_to_hand_over(self, command):
        orders, order = load_for_fulfiller(command)
        order.move_to_hand_over()
        orders.save(order)
        logger.info("order_stage_changed", order_id=str(order.id), stage=order.fulfillment_stage)
        return order.status
