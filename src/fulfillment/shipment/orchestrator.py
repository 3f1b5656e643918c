"""Shipment orchestrator — creates the carrier shipment for an order.

Resolution order for one attempt:

    load order → authorize → reject duplicates → check status
    → resolve profiles → build request → call carrier → record → persist

Everything before the carrier call can reject the request without side
effects. After the carrier has accepted the shipment the attempt is reported
as successful even if the order could not be written back.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from fulfillment.access.context import AuthContext
from fulfillment.access.policy import load_authorized_order
from fulfillment.carrier.port import CarrierPort
from fulfillment.errors import CarrierError, DuplicateRequestError
from fulfillment.order.order import CarrierShipmentRecord
from fulfillment.order.repository import OrderRepository
from fulfillment.profiles.directory import ProfileDirectory
from fulfillment.shipment.builder import ShipmentOverrides, ShipmentRequestBuilder

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ShipmentResult:
    tracking_id: str | None
    shipping_reference_no: str
    total_shipping_amount: float | None
    carrier_response: dict
    persisted: bool = True


class ShipmentOrchestrator:
    def __init__(
        self,
        orders: OrderRepository,
        profiles: ProfileDirectory,
        carrier: CarrierPort,
        builder: ShipmentRequestBuilder | None = None,
    ) -> None:
        self.orders = orders
        self.profiles = profiles
        self.carrier = carrier
        self.builder = builder or ShipmentRequestBuilder()

    def create_shipment(
        self,
        caller: AuthContext,
        order_id: str,
        overrides: ShipmentOverrides | None = None,
    ) -> ShipmentResult:
        order, sellers = load_authorized_order(caller, order_id, self.orders, self.profiles)
        order.ensure_shipment_allowed()

        buyer = self._buyer_profile(order.owner_id)
        seller = sellers[0] if sellers else None

        request = self.builder.build(order, overrides=overrides, buyer=buyer, seller=seller)
        reference_no = request.shipping_reference_no
        logger.info(
            "carrier_shipment_requested",
            order_id=order_id,
            shipping_reference_no=reference_no,
            recipient=f"{request.recipient.first_name} {request.recipient.last_name}",
            shipper=f"{request.shipper.first_name} {request.shipper.last_name}",
        )

        try:
            result = self.carrier.create_shipment(request)
        except CarrierError as exc:
            logger.error(
                "carrier_shipment_failed",
                order_id=order_id,
                shipping_reference_no=reference_no,
                error_type=type(exc).__name__,
                error=exc.message,
            )
            raise

        persisted = self._record(order, request, result)

        logger.info(
            "carrier_shipment_created",
            order_id=order_id,
            shipping_reference_no=reference_no,
            tracking_id=result.tracking_id,
            total_shipping_amount=result.total_shipping_amount,
            persisted=persisted,
        )
        return ShipmentResult(
            tracking_id=result.tracking_id,
            shipping_reference_no=reference_no,
            total_shipping_amount=result.total_shipping_amount,
            carrier_response=result.response,
            persisted=persisted,
        )

    def _buyer_profile(self, user_id):
        try:
            return self.profiles.find_buyer(str(user_id) if user_id else None)
        except Exception as exc:
            logger.warning("buyer_profile_unavailable", user_id=user_id, error=str(exc))
            return None

    def _record(self, order, request, result) -> bool:
        # The carrier already holds the shipment; from here on every failure
        # is logged for manual reconciliation and not reported to the caller.
        reference_no = request.shipping_reference_no
        try:
            record = CarrierShipmentRecord(
                tracking_id=result.tracking_id,
                shipping_reference_no=reference_no,
                total_shipping_amount=result.total_shipping_amount,
                requested_at=datetime.now(UTC),
                pickup_schedule=request.requested_pickup_schedule,
                response=json.dumps(result.response),
            )
            if result.tracking_id:
                order.ship_with_carrier(record)
            else:
                # Hand-over needs a tracking id; the order stays eligible.
                logger.warning(
                    "carrier_shipment_without_tracking_id",
                    order_id=str(order.id),
                    shipping_reference_no=reference_no,
                )
                order.record_carrier_shipment(record)
        except Exception as exc:
            logger.error(
                "carrier_shipment_not_recorded",
                order_id=str(order.id),
                shipping_reference_no=reference_no,
                tracking_id=result.tracking_id,
                error=str(exc),
                exc_info=True,
            )
            return False
        return self._persist(order, reference_no)

    def _persist(self, order, reference_no: str) -> bool:
        try:
            self.orders.save_shipment(order)
        except DuplicateRequestError as exc:
            logger.error(
                "carrier_shipment_conflict",
                order_id=str(order.id),
                shipping_reference_no=reference_no,
                tracking_id=order.tracking_id,
                existing_tracking_id=exc.existing_tracking_id,
            )
            return False
        except Exception as exc:
            logger.error(
                "carrier_shipment_not_persisted",
                order_id=str(order.id),
                shipping_reference_no=reference_no,
                tracking_id=order.tracking_id,
                error=str(exc),
                exc_info=True,
            )
            return False
        return True
