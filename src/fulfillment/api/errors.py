"""HTTP mapping for fulfillment errors.

Every typed error maps to one status code. Anything unrecognised is a 500
whose body carries no internal detail; the exception itself is logged.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError
from protean.integrations.fastapi import register_exception_handlers

from fulfillment.errors import (
    AuthenticationError,
    AuthorizationError,
    CarrierError,
    DirectLookupNotSupported,
    DuplicateRequestError,
    InvalidStateError,
    OrderNotFoundError,
    ShipmentValidationError,
    TrackingNotFoundError,
)

logger = structlog.get_logger(__name__)


async def _authentication_error(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": str(exc)}, headers={"WWW-Authenticate": "Bearer"})


async def _authorization_error(request: Request, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": "Not authorized to access this order"})


async def _order_not_found(request: Request, exc: OrderNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Order not found", "orderId": exc.order_id})


async def _tracking_not_found(request: Request, exc: TrackingNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": "JRS tracking information not found for this order", "orderId": exc.order_id},
    )


async def _duplicate_request(request: Request, exc: DuplicateRequestError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "error": "Order already has JRS shipping",
            "message": str(exc),
            "existingTrackingId": exc.existing_tracking_id,
        },
    )


async def _invalid_state(request: Request, exc: InvalidStateError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.message})


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": exc.messages})


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [{"field": ".".join(str(p) for p in err["loc"][1:]), "message": err["msg"]} for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


async def _carrier_error(request: Request, exc: CarrierError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "JRS API request failed",
            "message": exc.message,
            "details": exc.response_body,
            "shippingReferenceNo": exc.shipping_reference_no,
        },
    )


async def _direct_lookup(request: Request, exc: DirectLookupNotSupported) -> JSONResponse:
    return JSONResponse(
        status_code=501,
        content={
            "error": "Direct tracking not implemented",
            "message": "Use orderId to get tracking information from order data",
        },
    )


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=request.url.path, error_type=type(exc).__name__, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's handlers, then the fulfillment-specific ones on top."""
    register_exception_handlers(app)
    app.add_exception_handler(AuthenticationError, _authentication_error)
    app.add_exception_handler(AuthorizationError, _authorization_error)
    app.add_exception_handler(OrderNotFoundError, _order_not_found)
    app.add_exception_handler(TrackingNotFoundError, _tracking_not_found)
    app.add_exception_handler(DuplicateRequestError, _duplicate_request)
    app.add_exception_handler(InvalidStateError, _invalid_state)
    app.add_exception_handler(ShipmentValidationError, _validation_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(CarrierError, _carrier_error)
    app.add_exception_handler(DirectLookupNotSupported, _direct_lookup)
    app.add_exception_handler(Exception, _unhandled)
