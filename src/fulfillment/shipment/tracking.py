"""Tracking queries — read back the carrier shipment recorded on an order."""

from dataclasses import dataclass
from datetime import datetime

from fulfillment.access.context import AuthContext
from fulfillment.access.policy import load_authorized_order
from fulfillment.errors import DirectLookupNotSupported, TrackingNotFoundError
from fulfillment.order.repository import OrderRepository
from fulfillment.profiles.directory import ProfileDirectory


@dataclass(frozen=True)
class TrackingView:
    order_id: str
    tracking_id: str | None
    shipping_reference_no: str
    total_shipping_amount: float | None
    requested_at: datetime | None
    pickup_schedule: str | None
    carrier_response: dict | None


class TrackingQueryService:
    def __init__(self, orders: OrderRepository, profiles: ProfileDirectory) -> None:
        self.orders = orders
        self.profiles = profiles

    def get_tracking(self, caller: AuthContext, order_id: str) -> TrackingView:
        order, _ = load_authorized_order(caller, order_id, self.orders, self.profiles)
        record = order.carrier_shipment
        if record is None:
            raise TrackingNotFoundError(order_id)
        return TrackingView(
            order_id=order_id,
            tracking_id=record.tracking_id,
            shipping_reference_no=record.shipping_reference_no,
            total_shipping_amount=record.total_shipping_amount,
            requested_at=record.requested_at,
            pickup_schedule=record.pickup_schedule,
            carrier_response=record.response_payload,
        )

    def lookup(
        self,
        caller: AuthContext,
        order_id: str | None = None,
        tracking_id: str | None = None,
        shipping_reference_no: str | None = None,
    ) -> TrackingView:
        """Tracking by order id. Carrier-side lookups are not available."""
        if order_id:
            return self.get_tracking(caller, order_id)
        raise DirectLookupNotSupported(
            "Direct tracking not implemented. Use orderId to get tracking information from order data"
        )
