"""Who may act on an order.

One rule gates shipment creation, tracking queries and stage transitions:
the caller owns the order, is an administrator, or is related to one of the
order's sellers (by user id or by email). Stage and administrative
transitions are narrower and exclude the buyer.
"""

import structlog

from fulfillment.access.context import AuthContext
from fulfillment.errors import AuthorizationError, OrderNotFoundError
from fulfillment.order.order import Order
from fulfillment.order.repository import OrderRepository
from fulfillment.profiles.directory import ProfileDirectory, SellerProfile

logger = structlog.get_logger(__name__)


def is_order_seller(caller: AuthContext, sellers: list[SellerProfile]) -> bool:
    for seller in sellers:
        if seller.owner_user_id and str(seller.owner_user_id) == caller.subject_id:
            return True
        if caller.email and seller.email and seller.email.lower() == caller.email.lower():
            return True
    return False


def can_act_on_order(caller: AuthContext, order: Order, sellers: list[SellerProfile]) -> bool:
    if order.owner_id and str(order.owner_id) == caller.subject_id:
        return True
    if caller.is_admin:
        return True
    return is_order_seller(caller, sellers)


def can_fulfill_order(caller: AuthContext, sellers: list[SellerProfile]) -> bool:
    """Stage and administrative transitions: admins and the order's sellers."""
    return caller.is_admin or is_order_seller(caller, sellers)


def load_authorized_order(
    caller: AuthContext,
    order_id: str,
    orders: OrderRepository,
    profiles: ProfileDirectory,
    fulfillers_only: bool = False,
) -> tuple[Order, list[SellerProfile]]:
    """Load an order the caller may act on, with its seller profiles.

    A missing order is reported as ``OrderNotFoundError`` to administrators
    only; everyone else gets ``AuthorizationError`` so that order ids cannot
    be probed.
    """
    order = orders.find(order_id)
    if order is None:
        if caller.is_admin:
            raise OrderNotFoundError(order_id)
        logger.info("order_access_denied", order_id=order_id, subject_id=caller.subject_id, reason="missing")
        raise AuthorizationError(f"Not authorized to act on order {order_id}")

    sellers = profiles.find_sellers(order.seller_id_list)
    allowed = can_fulfill_order(caller, sellers) if fulfillers_only else can_act_on_order(caller, order, sellers)
    if not allowed:
        logger.info("order_access_denied", order_id=order_id, subject_id=caller.subject_id)
        raise AuthorizationError(f"Not authorized to act on order {order_id}")
    return order, sellers
