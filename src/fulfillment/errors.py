"""Typed errors raised by the fulfillment core.

Callers branch on the error class, never on message text. Validation-style
errors extend Protean's ``ValidationError`` so they flow through the same
handlers as aggregate field validation.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class AuthenticationError(Exception):
    """The bearer credential is missing, malformed or failed verification."""


class AuthorizationError(Exception):
    """The caller has no owner, seller or admin relation to the order."""


class OrderNotFoundError(ObjectNotFoundError):
    """The order is absent from every known order store."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__({"_entity": f"Order {order_id} not found"})


class TrackingNotFoundError(ObjectNotFoundError):
    """The order exists but no carrier shipment has been recorded for it."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__({"_entity": f"Carrier tracking information not found for order {order_id}"})


class DuplicateRequestError(Exception):
    """A carrier shipment already exists for the order."""

    def __init__(self, order_id: str, existing_tracking_id: str):
        self.order_id = order_id
        self.existing_tracking_id = existing_tracking_id
        super().__init__(f"Order {order_id} has already been shipped with tracking ID: {existing_tracking_id}")


class InvalidStateError(ValidationError):
    """The order's status or fulfillment stage does not allow the action."""

    def __init__(self, message: str):
        self.message = message
        super().__init__({"status": [message]})


class ShipmentValidationError(ValidationError):
    """A carrier request field could not be resolved or is out of range."""


class CarrierError(Exception):
    """Base for carrier call failures.

    Carries the raw response body (when one was received) and the shipping
    reference number generated for the attempt, so the caller can reconcile
    with the carrier manually.
    """

    def __init__(self, message: str, response_body=None, shipping_reference_no: str | None = None):
        self.message = message
        self.response_body = response_body
        self.shipping_reference_no = shipping_reference_no
        super().__init__(message)


class CarrierTransportError(CarrierError):
    """Network failure, timeout, or an unreadable non-2xx carrier response."""


class CarrierBusinessError(CarrierError):
    """The carrier answered but refused to create the shipment."""


class PersistenceError(Exception):
    """Writing the order back to its store failed."""


class DirectLookupNotSupported(Exception):
    """Tracking lookups by tracking id or reference number are not available."""
