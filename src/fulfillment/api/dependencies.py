"""FastAPI dependencies — the HTTP composition root for fulfillment services.

Routes receive the verified caller and fully wired services from here;
nothing below the API layer reaches for module-level singletons.
"""

from fastapi import Header

from fulfillment.access.context import AuthContext, get_auth_resolver
from fulfillment.carrier import get_carrier
from fulfillment.order.repository import DomainOrderRepository
from fulfillment.profiles.directory import DomainProfileDirectory
from fulfillment.shipment.builder import ShipmentRequestBuilder
from fulfillment.shipment.orchestrator import ShipmentOrchestrator
from fulfillment.shipment.tracking import TrackingQueryService

_builder: ShipmentRequestBuilder | None = None


def get_builder() -> ShipmentRequestBuilder:
    global _builder
    if _builder is None:
        _builder = ShipmentRequestBuilder()
    return _builder


def reset_builder() -> None:
    global _builder
    _builder = None


def get_caller(authorization: str | None = Header(default=None)) -> AuthContext:
    return get_auth_resolver().resolve(authorization)


def get_orchestrator() -> ShipmentOrchestrator:
    return ShipmentOrchestrator(
        orders=DomainOrderRepository(),
        profiles=DomainProfileDirectory(),
        carrier=get_carrier(),
        builder=get_builder(),
    )


def get_tracking_service() -> TrackingQueryService:
    return TrackingQueryService(orders=DomainOrderRepository(), profiles=DomainProfileDirectory())
