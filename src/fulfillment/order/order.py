"""Order aggregate (CQRS) — the fulfillment view of a marketplace order.

Checkout creates the order upstream; this aggregate only moves it through the
fulfillment lifecycle defined in ``fulfillment.order.lifecycle`` and records
the carrier shipment once the carrier has accepted it.

Invariants:
    - At most one carrier tracking id per order, for the order's lifetime.
    - ``fulfillment_stage`` is set only while ``status`` is ``to_ship``.
    - ``status_history`` is append-only.
"""

import json
from datetime import UTC, datetime

from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from fulfillment.domain import fulfillment
from fulfillment.errors import DuplicateRequestError, InvalidStateError
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
    SHIPMENT_ELIGIBLE_STATUSES,
    FulfillmentStage,
    OrderAction,
    OrderStatus,
    next_state,
)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@fulfillment.value_object(part_of="Order")
class ParcelDimensions:
    """Physical size (cm) and weight (kg) of one unit of a line item."""

    length = Float()
    width = Float()
    height = Float()
    weight = Float()


@fulfillment.value_object(part_of="Order")
class ShippingInfo:
    """Buyer-supplied delivery details captured at checkout."""

    full_name = String(max_length=255)
    email = String(max_length=255)
    address_line1 = String(max_length=500)
    city = String(max_length=100)
    province = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=100)
    phone = String(max_length=50)
    notes = Text()


@fulfillment.value_object(part_of="Order")
class CarrierShipmentRecord:
    """The carrier's answer to a successful shipment creation.

    The raw carrier response is kept verbatim for audit and tracking replay.
    """

    tracking_id = String(max_length=255)
    shipping_reference_no = String(required=True, max_length=255)
    total_shipping_amount = Float()
    requested_at = DateTime()
    pickup_schedule = String(max_length=100)
    response = Text()

    @property
    def response_payload(self):
        return json.loads(self.response) if self.response else None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@fulfillment.entity(part_of="Order")
class OrderItem:
    """A purchased line item."""

    product_id = String(max_length=255)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(default=0.0)
    declared_value = Float()
    dimensions = ValueObject(ParcelDimensions)


@fulfillment.entity(part_of="Order")
class StatusHistoryEntry:
    """One appended status change; never edited after it is written."""

    status = String(required=True, max_length=50)
    note = Text()
    recorded_at = DateTime(required=True)
    sequence = Integer(required=True, min_value=1)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@fulfillment.aggregate
class Order:
    owner_id = Identifier()  # buyer; absent on some legacy documents
    seller_ids = Text(default="[]")  # JSON list of seller ids
    status = String(
        choices=OrderStatus,
        default=OrderStatus.CONFIRMED.value,
    )
    fulfillment_stage = String(choices=FulfillmentStage)
    items = HasMany(OrderItem)
    shipping_info = ValueObject(ShippingInfo)
    carrier_shipment = ValueObject(CarrierShipmentRecord)
    payment_method = String(max_length=50)
    total = Float(default=0.0)
    status_history = HasMany(StatusHistoryEntry)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        owner_id: str,
        seller_ids: list[str],
        items_data: list[dict],
        shipping_info: dict | None = None,
        payment_method: str | None = None,
        total: float = 0.0,
        status: OrderStatus = OrderStatus.CONFIRMED,
        fulfillment_stage: FulfillmentStage | None = None,
        order_id: str | None = None,
    ):
        """Build an order as checkout hands it over to fulfillment."""
        now = datetime.now(UTC)
        if status != OrderStatus.TO_SHIP:
            fulfillment_stage = None
        elif fulfillment_stage is None:
            fulfillment_stage = FulfillmentStage.TO_PACK
        attrs = {}
        if order_id:
            attrs["id"] = order_id
        order = cls(
            owner_id=owner_id,
            seller_ids=json.dumps(list(seller_ids)),
            status=status.value,
            fulfillment_stage=fulfillment_stage.value if fulfillment_stage else None,
            shipping_info=ShippingInfo(**shipping_info) if shipping_info else None,
            payment_method=payment_method,
            total=total,
            created_at=now,
            updated_at=now,
            **attrs,
        )
        for item_data in items_data:
            data = dict(item_data)
            dimensions = data.pop("dimensions", None)
            if dimensions:
                data["dimensions"] = ParcelDimensions(**dimensions)
            order.add_items(OrderItem(**data))

        order.raise_(
            OrderRegistered(
                order_id=str(order.id),
                status=order.status,
                fulfillment_stage=order.fulfillment_stage,
                registered_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def current_stage(self) -> FulfillmentStage | None:
        return FulfillmentStage(self.fulfillment_stage) if self.fulfillment_stage else None

    @property
    def seller_id_list(self) -> list[str]:
        return json.loads(self.seller_ids) if self.seller_ids else []

    @property
    def tracking_id(self) -> str | None:
        return self.carrier_shipment.tracking_id if self.carrier_shipment else None

    def history(self) -> list[StatusHistoryEntry]:
        """Status history in the order it was appended."""
        return sorted(self.status_history or [], key=lambda entry: entry.sequence)

    # -------------------------------------------------------------------
    # Transition helper
    # -------------------------------------------------------------------
    def _apply(self, action: OrderAction, note: str | None = None) -> tuple[OrderStatus, FulfillmentStage | None]:
        previous_status = self.current_status
        previous_stage = self.current_stage
        status, stage = next_state(action, previous_status, previous_stage)

        now = datetime.now(UTC)
        self.status = status.value
        self.fulfillment_stage = stage.value if stage else None
        self.updated_at = now
        if status != previous_status:
            self._append_history(status, note, now)
        return previous_status, previous_stage

    def _append_history(self, status: OrderStatus, note: str | None, recorded_at: datetime) -> None:
        self.add_status_history(
            StatusHistoryEntry(
                status=status.value,
                note=note or "",
                recorded_at=recorded_at,
                sequence=max((entry.sequence for entry in self.status_history or []), default=0) + 1,
            )
        )

    def _raise_stage_changed(self, from_stage: FulfillmentStage | None) -> None:
        self.raise_(
            FulfillmentStageChanged(
                order_id=str(self.id),
                from_stage=from_stage.value if from_stage else "",
                to_stage=self.fulfillment_stage,
                changed_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # To-ship stages
    # -------------------------------------------------------------------
    def move_to_ship(self, note: str | None = None) -> None:
        """Accept a confirmed order into the to-ship queue at the packing stage."""
        self._apply(OrderAction.MOVE_TO_SHIP, note or "Order moved to packing")
        self.raise_(
            OrderMovedToShip(
                order_id=str(self.id),
                fulfillment_stage=self.fulfillment_stage,
                moved_at=self.updated_at,
            )
        )

    def move_to_arrangement(self) -> None:
        _, from_stage = self._apply(OrderAction.MOVE_TO_ARRANGEMENT)
        self._raise_stage_changed(from_stage)

    def move_back_to_pack(self) -> None:
        _, from_stage = self._apply(OrderAction.MOVE_BACK_TO_PACK)
        self._raise_stage_changed(from_stage)

    def move_to_hand_over(self) -> None:
        _, from_stage = self._apply(OrderAction.MOVE_TO_HAND_OVER)
        self._raise_stage_changed(from_stage)

    # -------------------------------------------------------------------
    # Carrier shipment
    # -------------------------------------------------------------------
    def ensure_shipment_allowed(self) -> None:
        """Reject a shipment request before any carrier call is made."""
        if self.tracking_id:
            raise DuplicateRequestError(str(self.id), self.tracking_id)
        if self.current_status not in SHIPMENT_ELIGIBLE_STATUSES:
            raise InvalidStateError(f"Cannot create shipping for order with status: {self.status}")

    def record_carrier_shipment(self, record: CarrierShipmentRecord) -> None:
        if self.tracking_id:
            raise DuplicateRequestError(str(self.id), self.tracking_id)
        self.carrier_shipment = record
        self.updated_at = datetime.now(UTC)

    def confirm_handover(self, note: str | None = None) -> None:
        """Hand the parcel to the carrier. Requires a carrier shipment with a tracking id."""
        if not self.carrier_shipment or not self.carrier_shipment.tracking_id:
            raise InvalidStateError("Hand-over requires a carrier tracking id")
        self._apply(OrderAction.CONFIRM_HANDOVER, note)
        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                tracking_id=self.carrier_shipment.tracking_id,
                shipping_reference_no=self.carrier_shipment.shipping_reference_no,
                total_shipping_amount=self.carrier_shipment.total_shipping_amount,
                shipped_at=self.updated_at,
            )
        )

    def ship_with_carrier(self, record: CarrierShipmentRecord) -> None:
        """Record an accepted carrier shipment and confirm hand-over.

        Orders still before hand-over are walked through each remaining
        stage transition so the recorded path stays legal.
        """
        self.ensure_shipment_allowed()
        if not record.tracking_id:
            raise InvalidStateError("Hand-over requires a carrier tracking id")
        if self.current_status == OrderStatus.CONFIRMED:
            self.move_to_ship()
        if self.current_stage == FulfillmentStage.TO_PACK:
            self.move_to_arrangement()
        if self.current_stage == FulfillmentStage.TO_ARRANGEMENT:
            self.move_to_hand_over()

        self.record_carrier_shipment(record)
        self.confirm_handover(
            note=(
                f"Order shipped via JRS Express. Reference: {record.shipping_reference_no}, "
                f"Tracking: {record.tracking_id}"
            )
        )

    # -------------------------------------------------------------------
    # Delivery outcome and administrative actions
    # -------------------------------------------------------------------
    def mark_delivered(self, note: str | None = None) -> None:
        self._apply(OrderAction.MARK_DELIVERED, note or "Delivery confirmed by carrier")
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=self.updated_at))

    def mark_failed_delivery(self, note: str | None = None) -> None:
        previous_status, _ = self._apply(OrderAction.MARK_FAILED_DELIVERY, note)
        self.raise_(
            OrderDeliveryFailed(
                order_id=str(self.id),
                previous_status=previous_status.value,
                note=note or "",
                failed_at=self.updated_at,
            )
        )

    def cancel(self, note: str | None = None) -> None:
        previous_status, _ = self._apply(OrderAction.CANCEL, note)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=previous_status.value,
                note=note or "",
                cancelled_at=self.updated_at,
            )
        )

    def open_return_refund(self, note: str | None = None) -> None:
        previous_status, _ = self._apply(OrderAction.OPEN_RETURN_REFUND, note)
        self.raise_(
            ReturnRefundOpened(
                order_id=str(self.id),
                previous_status=previous_status.value,
                note=note or "",
                opened_at=self.updated_at,
            )
        )
