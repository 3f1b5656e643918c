"""Order fulfillment state machine — the single definition of statuses,
fulfillment stages, and the transitions between them.

The aggregate, the order board projection and the HTTP layer all read from
this module; nothing else compares status strings.

State Machine:
    CONFIRMED → TO_SHIP(TO_PACK) → TO_SHIP(TO_ARRANGEMENT) → TO_SHIP(TO_HAND_OVER) → SHIPPING → DELIVERED
    TO_SHIP(TO_ARRANGEMENT) → TO_SHIP(TO_PACK)
    {UNPAID, CONFIRMED, TO_SHIP, SHIPPING} → {FAILED_DELIVERY, CANCELLED, RETURN_REFUND}
"""

from dataclasses import dataclass
from enum import Enum

from fulfillment.errors import InvalidStateError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    UNPAID = "unpaid"
    CONFIRMED = "confirmed"
    TO_SHIP = "to_ship"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    FAILED_DELIVERY = "failed_delivery"
    CANCELLED = "cancelled"
    RETURN_REFUND = "return_refund"


class FulfillmentStage(Enum):
    TO_PACK = "to_pack"
    TO_ARRANGEMENT = "to_arrangement"
    TO_HAND_OVER = "to_hand_over"


class OrderAction(Enum):
    MOVE_TO_SHIP = "move_to_ship"
    MOVE_TO_ARRANGEMENT = "move_to_arrangement"
    MOVE_BACK_TO_PACK = "move_back_to_pack"
    MOVE_TO_HAND_OVER = "move_to_hand_over"
    CONFIRM_HANDOVER = "confirm_handover"
    MARK_DELIVERED = "mark_delivered"
    MARK_FAILED_DELIVERY = "mark_failed_delivery"
    CANCEL = "cancel"
    OPEN_RETURN_REFUND = "open_return_refund"


TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.FAILED_DELIVERY,
        OrderStatus.CANCELLED,
        OrderStatus.RETURN_REFUND,
    }
)

NON_TERMINAL_STATUSES = frozenset(set(OrderStatus) - TERMINAL_STATUSES)

# Statuses from which a carrier shipment may be requested. Orders that have
# not reached TO_HAND_OVER are walked forward through the legal stage
# transitions before hand-over is confirmed.
SHIPMENT_ELIGIBLE_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.TO_SHIP})


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Transition:
    from_statuses: frozenset
    from_stage: FulfillmentStage | None
    to_status: OrderStatus
    to_stage: FulfillmentStage | None = None

    def allows(self, status: OrderStatus, stage: FulfillmentStage | None) -> bool:
        if status not in self.from_statuses:
            return False
        return self.from_stage is None or stage == self.from_stage


_TRANSITIONS = {
    OrderAction.MOVE_TO_SHIP: Transition(
        frozenset({OrderStatus.CONFIRMED}), None, OrderStatus.TO_SHIP, FulfillmentStage.TO_PACK
    ),
    OrderAction.MOVE_TO_ARRANGEMENT: Transition(
        frozenset({OrderStatus.TO_SHIP}),
        FulfillmentStage.TO_PACK,
        OrderStatus.TO_SHIP,
        FulfillmentStage.TO_ARRANGEMENT,
    ),
    OrderAction.MOVE_BACK_TO_PACK: Transition(
        frozenset({OrderStatus.TO_SHIP}),
        FulfillmentStage.TO_ARRANGEMENT,
        OrderStatus.TO_SHIP,
        FulfillmentStage.TO_PACK,
    ),
    OrderAction.MOVE_TO_HAND_OVER: Transition(
        frozenset({OrderStatus.TO_SHIP}),
        FulfillmentStage.TO_ARRANGEMENT,
        OrderStatus.TO_SHIP,
        FulfillmentStage.TO_HAND_OVER,
    ),
    OrderAction.CONFIRM_HANDOVER: Transition(
        frozenset({OrderStatus.TO_SHIP}), FulfillmentStage.TO_HAND_OVER, OrderStatus.SHIPPING
    ),
    OrderAction.MARK_DELIVERED: Transition(frozenset({OrderStatus.SHIPPING}), None, OrderStatus.DELIVERED),
    OrderAction.MARK_FAILED_DELIVERY: Transition(NON_TERMINAL_STATUSES, None, OrderStatus.FAILED_DELIVERY),
    OrderAction.CANCEL: Transition(NON_TERMINAL_STATUSES, None, OrderStatus.CANCELLED),
    OrderAction.OPEN_RETURN_REFUND: Transition(NON_TERMINAL_STATUSES, None, OrderStatus.RETURN_REFUND),
}


def next_state(
    action: OrderAction,
    status: OrderStatus,
    stage: FulfillmentStage | None,
) -> tuple[OrderStatus, FulfillmentStage | None]:
    """Return the ``(status, stage)`` pair reached by applying ``action``.

    Raises ``InvalidStateError`` when the action is not legal from the given
    state. A stage is only ever returned alongside ``TO_SHIP``.
    """
    rule = _TRANSITIONS[action]
    if not rule.allows(status, stage):
        current = status.value if stage is None else f"{status.value}({stage.value})"
        raise InvalidStateError(f"Cannot {action.value.replace('_', ' ')} from {current}")

    to_stage = rule.to_stage if rule.to_status == OrderStatus.TO_SHIP else None
    return rule.to_status, to_stage


def allowed_actions(status: OrderStatus, stage: FulfillmentStage | None) -> list[OrderAction]:
    """Actions that are legal from the given state, in table order."""
    return [action for action, rule in _TRANSITIONS.items() if rule.allows(status, stage)]


# ---------------------------------------------------------------------------
# Seller dashboard tabs
# ---------------------------------------------------------------------------
class LifecycleTab(Enum):
    UNPAID = "unpaid"
    CONFIRMED = "confirmed"
    TO_SHIP = "to-ship"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    FAILED_DELIVERY = "failed-delivery"
    CANCELLATION = "cancellation"
    RETURN_REFUND = "return-refund"


class ToShipTab(Enum):
    TO_PACK = "to-pack"
    TO_ARRANGEMENT = "to-arrangement"
    TO_HAND_OVER = "to-hand-over"


_STATUS_TABS = {
    OrderStatus.UNPAID: LifecycleTab.UNPAID,
    OrderStatus.CONFIRMED: LifecycleTab.CONFIRMED,
    OrderStatus.TO_SHIP: LifecycleTab.TO_SHIP,
    OrderStatus.SHIPPING: LifecycleTab.SHIPPING,
    OrderStatus.DELIVERED: LifecycleTab.DELIVERED,
    OrderStatus.FAILED_DELIVERY: LifecycleTab.FAILED_DELIVERY,
    OrderStatus.CANCELLED: LifecycleTab.CANCELLATION,
    OrderStatus.RETURN_REFUND: LifecycleTab.RETURN_REFUND,
}

_STAGE_TABS = {
    FulfillmentStage.TO_PACK: ToShipTab.TO_PACK,
    FulfillmentStage.TO_ARRANGEMENT: ToShipTab.TO_ARRANGEMENT,
    FulfillmentStage.TO_HAND_OVER: ToShipTab.TO_HAND_OVER,
}


def lifecycle_tab(status: OrderStatus) -> LifecycleTab:
    return _STATUS_TABS[status]


def to_ship_tab(status: OrderStatus, stage: FulfillmentStage | None) -> ToShipTab | None:
    if status != OrderStatus.TO_SHIP or stage is None:
        return None
    return _STAGE_TABS[stage]


# ---------------------------------------------------------------------------
# Legacy status names
# ---------------------------------------------------------------------------
# Status strings found in documents written before the state machine was
# centralised. Keys are lower-cased.
LEGACY_STATUS_ALIASES = {
    "pending": OrderStatus.UNPAID,
    "paid": OrderStatus.CONFIRMED,
    "processing": OrderStatus.CONFIRMED,
    "ready_to_ship": OrderStatus.TO_SHIP,
    "to-ship": OrderStatus.TO_SHIP,
    "packed": OrderStatus.TO_SHIP,
    "shipped": OrderStatus.SHIPPING,
    "in_transit": OrderStatus.SHIPPING,
    "in-transit": OrderStatus.SHIPPING,
    "dispatched": OrderStatus.SHIPPING,
    "out_for_delivery": OrderStatus.SHIPPING,
    "out-for-delivery": OrderStatus.SHIPPING,
    "completed": OrderStatus.DELIVERED,
    "success": OrderStatus.DELIVERED,
    "succeeded": OrderStatus.DELIVERED,
    "failed-delivery": OrderStatus.FAILED_DELIVERY,
    "delivery_failed": OrderStatus.FAILED_DELIVERY,
    "canceled": OrderStatus.CANCELLED,
    "return_requested": OrderStatus.RETURN_REFUND,
    "return_approved": OrderStatus.RETURN_REFUND,
    "return_rejected": OrderStatus.RETURN_REFUND,
    "returned": OrderStatus.RETURN_REFUND,
    "refunded": OrderStatus.RETURN_REFUND,
}

# Payment states, consulted only when neither the order nor its shipping
# block carries a readable status.
LEGACY_PAYMENT_STATUS_ALIASES = {
    "paid": OrderStatus.CONFIRMED,
    "success": OrderStatus.CONFIRMED,
    "succeeded": OrderStatus.CONFIRMED,
    "pending": OrderStatus.UNPAID,
    "unpaid": OrderStatus.UNPAID,
    "failed": OrderStatus.CANCELLED,
    "payment_failed": OrderStatus.CANCELLED,
    "refused": OrderStatus.CANCELLED,
}

LEGACY_STAGE_ALIASES = {
    "to-pack": FulfillmentStage.TO_PACK,
    "to-arrangement": FulfillmentStage.TO_ARRANGEMENT,
    "to-hand-over": FulfillmentStage.TO_HAND_OVER,
}


def normalize_status(raw: str | None) -> OrderStatus:
    """Map a stored status string (current or legacy) onto ``OrderStatus``.

    A missing status is treated as ``CONFIRMED``: documents without one were
    written by checkout after payment confirmation.
    """
    if not raw:
        return OrderStatus.CONFIRMED
    value = raw.strip().lower()
    try:
        return OrderStatus(value)
    except ValueError:
        pass
    if value in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[value]
    raise InvalidStateError(f"Unknown order status: {raw}")


def normalize_stage(raw: str | None, status: OrderStatus) -> FulfillmentStage | None:
    """Map a stored stage string onto ``FulfillmentStage``.

    Stages outside ``TO_SHIP`` are dropped. A ``TO_SHIP`` order without a
    readable stage starts at ``TO_PACK``.
    """
    if status != OrderStatus.TO_SHIP:
        return None
    if not raw:
        return FulfillmentStage.TO_PACK
    value = raw.strip().lower()
    try:
        return FulfillmentStage(value)
    except ValueError:
        return LEGACY_STAGE_ALIASES.get(value, FulfillmentStage.TO_PACK)
