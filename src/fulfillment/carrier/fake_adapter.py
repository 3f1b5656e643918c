"""Fake carrier adapter — deterministic carrier for testing and development.

Generates mock tracking ids and shipping amounts in the same response shape
as JRS Express. Configurable success/failure behavior for integration testing.
"""

from uuid import uuid4

from fulfillment.carrier.port import CarrierPort, CarrierResult
from fulfillment.errors import CarrierBusinessError, CarrierTransportError


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_mode = "business"
        self.failure_reason = "Carrier unavailable"
        self.tracking_id = None
        self.total_shipping_amount = 150.0
        self.requests = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Carrier unavailable",
        failure_mode: str = "business",
        tracking_id: str | None = None,
        total_shipping_amount: float = 150.0,
    ):
        """Configure the fake carrier behavior for testing.

        ``failure_mode`` is ``"business"`` (carrier refused) or
        ``"transport"`` (carrier unreachable). A fixed ``tracking_id`` is
        returned on success when given.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.failure_mode = failure_mode
        self.tracking_id = tracking_id
        self.total_shipping_amount = total_shipping_amount

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def create_shipment(self, request) -> CarrierResult:
        self.requests.append(request)
        reference_no = request.shipping_reference_no

        if not self.should_succeed:
            if self.failure_mode == "transport":
                raise CarrierTransportError(self.failure_reason, shipping_reference_no=reference_no)
            body = {"Success": False, "Message": self.failure_reason}
            raise CarrierBusinessError(self.failure_reason, response_body=body, shipping_reference_no=reference_no)

        tracking_id = self.tracking_id or f"FAKE-{uuid4().hex[:12].upper()}"
        response = {
            "Success": True,
            "ShippingRequestEntityDto": {
                "TrackingId": tracking_id,
                "TotalShippingAmount": self.total_shipping_amount,
                "ShippingReferenceNo": reference_no,
            },
        }
        return CarrierResult(
            tracking_id=tracking_id,
            total_shipping_amount=self.total_shipping_amount,
            response=response,
        )
