"""Carrier adapter factory — pluggable parcel carrier integration.

Provides get_carrier() / set_carrier() to swap implementations:
- FakeCarrier for development and testing
- JRSCarrier for JRS Express
"""

import os

from fulfillment.carrier.port import CarrierPort

_carrier_instance: CarrierPort | None = None


def get_carrier() -> CarrierPort:
    """Return the configured carrier adapter (singleton).

    Uses FakeCarrier by default. In production, configure via
    CARRIER_ADAPTER environment variable (``fake`` or ``jrs``).
    """
    global _carrier_instance
    if _carrier_instance is None:
        adapter = os.environ.get("CARRIER_ADAPTER", "fake")
        if adapter == "fake":
            from fulfillment.carrier.fake_adapter import FakeCarrier

            _carrier_instance = FakeCarrier()
        elif adapter == "jrs":
            from fulfillment.carrier.jrs_adapter import JRSCarrier

            _carrier_instance = JRSCarrier.from_env()
        else:
            raise ValueError(f"Unknown carrier adapter: {adapter}")
    return _carrier_instance


def set_carrier(carrier: CarrierPort) -> None:
    """Override the active carrier adapter (useful for tests)."""
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier() -> None:
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None
