"""Fulfillment bounded context — Order Fulfillment and Carrier Handoff.

Drives a marketplace order from seller confirmation through packing,
arrangement and hand-over to the parcel carrier. Uses CQRS because the
carrier owns tracking state once a shipment has been created.
"""

from protean.domain import Domain

fulfillment = Domain(name="fulfillment")
