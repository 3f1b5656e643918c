"""FastAPI routes for the Fulfillment domain."""

from fastapi import APIRouter, Depends, Query
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from fulfillment.access.context import AuthContext
from fulfillment.api.dependencies import get_caller, get_orchestrator, get_tracking_service
from fulfillment.api.schemas import (
    CreateShipmentRequest,
    CreateShipmentResponse,
    OrderBoardEntryResponse,
    OrderBoardResponse,
    StatusResponse,
    TrackingRequest,
    TrackingResponse,
    TransitionRequest,
)
from fulfillment.errors import AuthorizationError
from fulfillment.order.administration import CancelOrder, MarkDelivered, MarkFailedDelivery, OpenReturnRefund
from fulfillment.order.staging import MoveBackToPack, MoveToArrangement, MoveToHandOver, MoveToShip
from fulfillment.projections.order_board import OrderBoardEntry
from fulfillment.shipment.orchestrator import ShipmentOrchestrator
from fulfillment.shipment.tracking import TrackingQueryService, TrackingView


def _actor(caller: AuthContext) -> dict:
    return {
        "actor_id": caller.subject_id,
        "actor_email": caller.email,
        "actor_is_admin": caller.is_admin,
    }


# ---------------------------------------------------------------------------
# Shipment Router
# ---------------------------------------------------------------------------
shipment_router = APIRouter(prefix="/shipments", tags=["shipments"])


# The carrier call blocks, so this runs in FastAPI's threadpool.
@shipment_router.post("", response_model=CreateShipmentResponse)
def create_shipment(
    body: CreateShipmentRequest,
    caller: AuthContext = Depends(get_caller),
    orchestrator: ShipmentOrchestrator = Depends(get_orchestrator),
) -> CreateShipmentResponse:
    """Create the carrier shipment for an order and hand it over."""
    result = orchestrator.create_shipment(caller, body.order_id, body.to_overrides())
    return CreateShipmentResponse(
        shipping_reference_no=result.shipping_reference_no,
        tracking_id=result.tracking_id,
        total_shipping_amount=result.total_shipping_amount,
        carrier_response=result.carrier_response,
    )


# ---------------------------------------------------------------------------
# Tracking Router
# ---------------------------------------------------------------------------
tracking_router = APIRouter(prefix="/tracking", tags=["tracking"])


def _tracking_response(view: TrackingView) -> TrackingResponse:
    return TrackingResponse(
        order_id=view.order_id,
        tracking_id=view.tracking_id,
        shipping_reference_no=view.shipping_reference_no,
        total_shipping_amount=view.total_shipping_amount,
        requested_at=view.requested_at.isoformat() if view.requested_at else None,
        pickup_schedule=view.pickup_schedule,
        carrier_response=view.carrier_response,
    )


def _lookup(service: TrackingQueryService, caller: AuthContext, query: TrackingRequest) -> TrackingResponse:
    if not (query.order_id or query.tracking_id or query.shipping_reference_no):
        raise ValidationError({"orderId": ["Missing orderId, trackingId, or shippingReferenceNo"]})
    view = service.lookup(
        caller,
        order_id=query.order_id,
        tracking_id=query.tracking_id,
        shipping_reference_no=query.shipping_reference_no,
    )
    return _tracking_response(view)


@tracking_router.get("", response_model=TrackingResponse)
def get_tracking(
    order_id: str | None = Query(default=None, alias="orderId"),
    tracking_id: str | None = Query(default=None, alias="trackingId"),
    shipping_reference_no: str | None = Query(default=None, alias="shippingReferenceNo"),
    caller: AuthContext = Depends(get_caller),
    service: TrackingQueryService = Depends(get_tracking_service),
) -> TrackingResponse:
    """Read the recorded carrier shipment for an order."""
    query = TrackingRequest(
        order_id=order_id,
        tracking_id=tracking_id,
        shipping_reference_no=shipping_reference_no,
    )
    return _lookup(service, caller, query)


@tracking_router.post("", response_model=TrackingResponse)
def post_tracking(
    body: TrackingRequest | None = None,
    caller: AuthContext = Depends(get_caller),
    service: TrackingQueryService = Depends(get_tracking_service),
) -> TrackingResponse:
    """Same as GET, with the lookup keys in the body."""
    return _lookup(service, caller, body or TrackingRequest())


# ---------------------------------------------------------------------------
# Order Router: stage and administrative transitions
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.put("/{order_id}/to-ship", response_model=StatusResponse)
async def move_to_ship(
    order_id: str,
    body: TransitionRequest | None = None,
    caller: AuthContext = Depends(get_caller),
) -> StatusResponse:
    """Accept a confirmed order into the to-ship queue."""
    status = current_domain.process(
        MoveToShip(order_id=order_id, note=body.note if body else None, **_actor(caller)),
        asynchronous=False,
    )
    return StatusResponse(status=status)


@order_router.put("/{order_id}/arrangement", response_model=StatusResponse)
async def move_to_arrangement(order_id: str, caller: AuthContext = Depends(get_caller)) -> StatusResponse:
    """Packing is done; arrange the pickup."""
    status = current_domain.process(MoveToArrangement(order_id=order_id, **_actor(caller)), asynchronous=False)
    return StatusResponse(status=status)


@order_router.put("/{order_id}/back-to-pack", response_model=StatusResponse)
async def move_back_to_pack(order_id: str, caller: AuthContext = Depends(get_caller)) -> StatusResponse:
    """Return an order from arrangement to packing."""
    status = current_domain.process(MoveBackToPack(order_id=order_id, **_actor(caller)), asynchronous=False)
    return StatusResponse(status=status)


@order_router.put("/{order_id}/hand-over", response_model=StatusResponse)
async def move_to_hand_over(order_id: str, caller: AuthContext = Depends(get_caller)) -> StatusResponse:
    """Pickup is arranged; the parcel waits for the carrier."""
    status = current_domain.process(MoveToHandOver(order_id=order_id, **_actor(caller)), asynchronous=False)
    return StatusResponse(status=status)


@order_router.put("/{order_id}/delivered", response_model=StatusResponse)
async def mark_delivered(
    order_id: str,
    body: TransitionRequest | None = None,
    caller: AuthContext = Depends(get_caller),
) -> StatusResponse:
    status = current_domain.process(
        MarkDelivered(order_id=order_id, note=body.note if body else None, **_actor(caller)),
        asynchronous=False,
    )
    return StatusResponse(status=status)


@order_router.put("/{order_id}/failed-delivery", response_model=StatusResponse)
async def mark_failed_delivery(
    order_id: str,
    body: TransitionRequest | None = None,
    caller: AuthContext = Depends(get_caller),
) -> StatusResponse:
    status = current_domain.process(
        MarkFailedDelivery(order_id=order_id, note=body.note if body else None, **_actor(caller)),
        asynchronous=False,
    )
    return StatusResponse(status=status)


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(
    order_id: str,
    body: TransitionRequest | None = None,
    caller: AuthContext = Depends(get_caller),
) -> StatusResponse:
    status = current_domain.process(
        CancelOrder(order_id=order_id, note=body.note if body else None, **_actor(caller)),
        asynchronous=False,
    )
    return StatusResponse(status=status)


@order_router.put("/{order_id}/return-refund", response_model=StatusResponse)
async def open_return_refund(
    order_id: str,
    body: TransitionRequest | None = None,
    caller: AuthContext = Depends(get_caller),
) -> StatusResponse:
    status = current_domain.process(
        OpenReturnRefund(order_id=order_id, note=body.note if body else None, **_actor(caller)),
        asynchronous=False,
    )
    return StatusResponse(status=status)


@order_router.get("/board", response_model=OrderBoardResponse)
async def order_board(
    tab: str | None = Query(default=None),
    stage: str | None = Query(default=None),
    caller: AuthContext = Depends(get_caller),
) -> OrderBoardResponse:
    """List orders by lifecycle tab and to-ship sub-tab. Administrators only."""
    if not caller.is_admin:
        raise AuthorizationError("The order board is restricted to administrators")

    criteria = {}
    if tab:
        criteria["lifecycle_tab"] = tab
    if stage:
        criteria["to_ship_tab"] = stage
    query = current_domain.repository_for(OrderBoardEntry)._dao.query
    results = query.filter(**criteria).all() if criteria else query.all()

    entries = [
        OrderBoardEntryResponse(
            order_id=str(entry.order_id),
            status=entry.status,
            fulfillment_stage=entry.fulfillment_stage,
            lifecycle_tab=entry.lifecycle_tab,
            to_ship_tab=entry.to_ship_tab,
            tracking_id=entry.tracking_id,
            updated_at=entry.updated_at.isoformat() if entry.updated_at else None,
        )
        for entry in results.items
    ]
    return OrderBoardResponse(entries=entries, total=len(entries))
