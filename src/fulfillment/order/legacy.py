"""Legacy order documents — orders written by the previous storefront.

The old store kept orders as camelCase JSON documents in two collections
(``Order`` and ``orders``) with loosely named statuses. They are held here
verbatim and translated into the ``Order`` aggregate on read. The order
repository migrates a legacy order into the current store on its first write.
"""

import json
from datetime import datetime

import structlog
from protean.fields import Identifier, String, Text

from fulfillment.domain import fulfillment
from fulfillment.errors import InvalidStateError
from fulfillment.order.lifecycle import (
    LEGACY_PAYMENT_STATUS_ALIASES,
    OrderStatus,
    normalize_stage,
    normalize_status,
)
from fulfillment.order.order import (
    CarrierShipmentRecord,
    Order,
    OrderItem,
    ParcelDimensions,
    ShippingInfo,
    StatusHistoryEntry,
)

logger = structlog.get_logger(__name__)

# Lookup order matters: the primary collection wins when both hold the id.
LEGACY_COLLECTIONS = ("Order", "orders")


@fulfillment.projection
class LegacyOrderRecord:
    record_key = Identifier(identifier=True, required=True)  # "<collection>/<order id>"
    order_id = Identifier(required=True)
    collection = String(required=True, max_length=50)
    document = Text(required=True)  # camelCase JSON document


def legacy_record_key(collection: str, order_id: str) -> str:
    return f"{collection}/{order_id}"


def _parse_datetime(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _float_or_none(value):
    try:
        return float(value) if value is not None and value != "" else None
    except (TypeError, ValueError):
        return None


def _seller_ids(doc: dict) -> list[str]:
    seller_ids = doc.get("sellerIds")
    if isinstance(seller_ids, list):
        return [str(s) for s in seller_ids if s]
    if doc.get("sellerId"):
        return [str(doc["sellerId"])]
    return []


def _item_from_document(item: dict) -> OrderItem:
    dims = item.get("dimensions") or {}
    dimensions = None
    if dims:
        dimensions = ParcelDimensions(
            length=_float_or_none(dims.get("length")),
            width=_float_or_none(dims.get("width")),
            height=_float_or_none(dims.get("height")),
            weight=_float_or_none(dims.get("weight")),
        )
    quantity = item.get("quantity") or 1
    return OrderItem(
        product_id=item.get("productId"),
        product_name=item.get("productName") or item.get("name"),
        quantity=max(int(quantity), 1),
        unit_price=_float_or_none(item.get("price")) or 0.0,
        declared_value=_float_or_none(item.get("declaredValue")),
        dimensions=dimensions,
    )


def _shipping_info_from_document(info: dict) -> ShippingInfo | None:
    if not info:
        return None
    return ShippingInfo(
        full_name=info.get("fullName"),
        email=info.get("email"),
        address_line1=info.get("addressLine1"),
        city=info.get("city"),
        province=info.get("province") or info.get("state"),
        postal_code=info.get("postalCode"),
        country=info.get("country"),
        phone=info.get("phoneNumber") or info.get("phone"),
        notes=info.get("notes"),
    )


def _carrier_record_from_document(info: dict) -> CarrierShipmentRecord | None:
    jrs = (info or {}).get("jrs")
    if not jrs or not jrs.get("shippingReferenceNo"):
        return None
    response = jrs.get("response")
    return CarrierShipmentRecord(
        tracking_id=jrs.get("trackingId"),
        shipping_reference_no=jrs["shippingReferenceNo"],
        total_shipping_amount=_float_or_none(jrs.get("totalShippingAmount")),
        requested_at=_parse_datetime(jrs.get("requestedAt")),
        pickup_schedule=jrs.get("pickupSchedule"),
        response=json.dumps(response) if response is not None else None,
    )


def _document_status(order_id: str, doc: dict) -> OrderStatus:
    """Top-level status first, then the shipping block, then the payment state."""
    raw = doc.get("status")
    try:
        return normalize_status(raw)
    except InvalidStateError:
        pass

    shipping_status = (doc.get("shippingInfo") or {}).get("status")
    if shipping_status:
        try:
            status = normalize_status(shipping_status)
        except InvalidStateError:
            status = None
        if status is not None:
            logger.warning("legacy_status_unreadable", order_id=order_id, status=raw, resolved_from="shippingInfo")
            return status

    payment_status = str((doc.get("paymentInfo") or {}).get("status") or "").strip().lower()
    if payment_status in LEGACY_PAYMENT_STATUS_ALIASES:
        logger.warning("legacy_status_unreadable", order_id=order_id, status=raw, resolved_from="paymentInfo")
        return LEGACY_PAYMENT_STATUS_ALIASES[payment_status]

    raise InvalidStateError(f"Unknown order status: {raw}")


def order_from_document(order_id: str, doc: dict) -> Order:
    """Translate a legacy document into an ``Order`` aggregate."""
    status = _document_status(order_id, doc)
    stage = normalize_stage(doc.get("fulfillmentStage"), status)
    payment_info = doc.get("paymentInfo") or {}
    summary = doc.get("summary") or {}
    shipping_info = doc.get("shippingInfo") or {}

    order = Order(
        id=order_id,
        owner_id=doc.get("userId") or None,
        seller_ids=json.dumps(_seller_ids(doc)),
        status=status.value,
        fulfillment_stage=stage.value if stage else None,
        shipping_info=_shipping_info_from_document(shipping_info),
        carrier_shipment=_carrier_record_from_document(shipping_info),
        payment_method=payment_info.get("method") or doc.get("paymentMethod"),
        total=_float_or_none(summary.get("total")) or _float_or_none(doc.get("total")) or 0.0,
        created_at=_parse_datetime(doc.get("createdAt")),
        updated_at=_parse_datetime(doc.get("updatedAt")),
    )
    for item in doc.get("items") or []:
        order.add_items(_item_from_document(item))
    for sequence, entry in enumerate(doc.get("statusHistory") or [], start=1):
        recorded_at = _parse_datetime(entry.get("timestamp")) or order.updated_at or order.created_at
        if not recorded_at:
            continue
        order.add_status_history(
            StatusHistoryEntry(
                status=str(entry.get("status") or status.value),
                note=entry.get("note") or "",
                recorded_at=recorded_at,
                sequence=sequence,
            )
        )
    return order
