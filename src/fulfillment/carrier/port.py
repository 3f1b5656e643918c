"""Carrier port — abstract interface for parcel carrier integrations.

All carrier adapters implement this interface. The orchestrator programs
against the port; adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class CarrierResult:
    """A shipment the carrier accepted."""

    tracking_id: str | None
    total_shipping_amount: float | None
    response: dict = field(default_factory=dict)


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def create_shipment(self, request) -> CarrierResult:
        """Submit a ``ShipmentRequest`` to the carrier. Called at most once per attempt.

        Raises:
            CarrierTransportError: the carrier could not be reached or answered
                with an unreadable error.
            CarrierBusinessError: the carrier answered and refused the request.
        """
        ...
