"""Shipment request builder — turns an order into a carrier shipping request.

Every party field is resolved with the same precedence:

    caller override → profile (buyer / seller) → order → default

A default of ``None`` makes the field required; an unresolved required field
is a ``ShipmentValidationError``. Nothing here touches the network.
"""

import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, fields
from datetime import UTC, datetime, timedelta

from fulfillment.errors import ShipmentValidationError
from fulfillment.order.order import Order
from fulfillment.profiles.directory import BuyerProfile, SellerProfile
from fulfillment.shipment.address import parse_address

MAX_DESCRIPTION_LENGTH = 100
MAX_PICKUP_SCHEDULE_LENGTH = 100


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PartyOverrides:
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    middle_name: str | None = None
    country: str | None = None
    province: str | None = None
    municipality: str | None = None
    district: str | None = None
    address_line1: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class PartyDefaults:
    email: str | None
    first_name: str | None
    last_name: str | None
    middle_name: str | None = ""
    country: str | None = "Philippines"
    province: str | None = "Metro Manila"
    municipality: str | None = "N/A"
    district: str | None = "N/A"
    address_line1: str | None = "N/A"
    phone: str | None = "+639123456789"


@dataclass(frozen=True)
class Party:
    email: str
    first_name: str
    last_name: str
    middle_name: str
    country: str
    province: str
    municipality: str
    district: str
    address_line1: str
    phone: str

    def to_payload(self, prefix: str) -> dict:
        return {
            f"{prefix}Email": self.email,
            f"{prefix}FirstName": self.first_name,
            f"{prefix}LastName": self.last_name,
            f"{prefix}MiddleName": self.middle_name,
            f"{prefix}Country": self.country,
            f"{prefix}Province": self.province,
            f"{prefix}Municipality": self.municipality,
            f"{prefix}District": self.district,
            f"{prefix}AddressLine1": self.address_line1,
            f"{prefix}Phone": self.phone,
        }


RECIPIENT_DEFAULTS = PartyDefaults(
    email="customer@dentpal.ph",
    first_name="Customer",
    last_name="N/A",
)

SHIPPER_DEFAULTS = PartyDefaults(
    email="support@dentpal.ph",
    first_name="DentPal",
    last_name="Support",
    municipality="Quezon City",
    district="Barangay Kamuning",
    address_line1="123 DentPal Street",
)


# ---------------------------------------------------------------------------
# Parcels
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ShipmentItem:
    """One parcel line as the carrier sees it (cm, kg, PHP)."""

    length: float
    width: float
    height: float
    weight: float
    declared_value: float

    def to_payload(self) -> dict:
        return {
            "length": self.length,
            "width": self.width,
            "height": self.height,
            "weight": self.weight,
            "declaredValue": self.declared_value,
        }


@dataclass(frozen=True)
class ShipmentDefaults:
    recipient: PartyDefaults = RECIPIENT_DEFAULTS
    shipper: PartyDefaults = SHIPPER_DEFAULTS
    created_by_user_email: str | None = "admin@dentpal.ph"
    product_name: str = "Dental Supply"
    length: float = 20.0
    width: float = 15.0
    height: float = 10.0
    weight: float = 0.5
    declared_value: float = 100.0
    pickup_delay: timedelta = timedelta(hours=24)


@dataclass(frozen=True)
class ShipmentOverrides:
    """Caller-supplied values that take precedence over everything stored."""

    recipient: PartyOverrides | None = None
    shipper: PartyOverrides | None = None
    shipment_items: list[ShipmentItem] | None = None
    shipment_description: str | None = None
    remarks: str | None = None
    special_instruction: str | None = None
    cod_amount_to_collect: float | None = None
    requested_pickup_schedule: str | None = None
    created_by_user_email: str | None = None


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ShipmentRequest:
    shipping_reference_no: str
    created_by_user_email: str
    recipient: Party
    shipper: Party
    shipment_items: tuple[ShipmentItem, ...]
    requested_pickup_schedule: str
    shipment_description: str
    remarks: str
    special_instruction: str
    cod_amount_to_collect: float
    express: bool = True
    insurance: bool = True
    valuation: bool = True
    request_type: str = "shipfromecom"

    def to_payload(self) -> dict:
        """The JSON body posted to the carrier."""
        request = {
            "express": self.express,
            "insurance": self.insurance,
            "valuation": self.valuation,
            "createdByUserEmail": self.created_by_user_email,
            "shipmentItems": [item.to_payload() for item in self.shipment_items],
            **self.recipient.to_payload("recipient"),
            **self.shipper.to_payload("shipper"),
            "requestedPickupSchedule": self.requested_pickup_schedule,
            "shipmentDescription": self.shipment_description,
            "remarks": self.remarks,
            "specialInstruction": self.special_instruction,
            "codAmountToCollect": self.cod_amount_to_collect,
            "shippingReferenceNo": self.shipping_reference_no,
        }
        return {"requestType": self.request_type, "apiShippingRequest": request}


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _split_name(full_name: str | None) -> tuple[str | None, str | None]:
    parts = (full_name or "").split()
    if not parts:
        return None, None
    return parts[0], " ".join(parts[1:]) or None


class ShipmentRequestBuilder:
    """Builds ``ShipmentRequest`` objects. Never performs I/O."""

    def __init__(
        self,
        defaults: ShipmentDefaults | None = None,
        reference_prefix: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.defaults = defaults or ShipmentDefaults()
        self.reference_prefix = reference_prefix or os.environ.get("SHIPMENT_REFERENCE_PREFIX", "DPAL")
        self.clock = clock or (lambda: datetime.now(UTC))
        self._last_stamp = 0
        self._lock = threading.Lock()

    # -------------------------------------------------------------------
    # Reference numbers
    # -------------------------------------------------------------------
    def new_reference_no(self, order_id: str) -> str:
        """``<prefix>-<order id>-<nanosecond stamp>``, strictly increasing per builder."""
        with self._lock:
            stamp = max(time.time_ns(), self._last_stamp + 1)
            self._last_stamp = stamp
        return f"{self.reference_prefix}-{order_id}-{stamp}"

    # -------------------------------------------------------------------
    # Build
    # -------------------------------------------------------------------
    def build(
        self,
        order: Order,
        overrides: ShipmentOverrides | None = None,
        buyer: BuyerProfile | None = None,
        seller: SellerProfile | None = None,
        shipping_reference_no: str | None = None,
    ) -> ShipmentRequest:
        overrides = overrides or ShipmentOverrides()
        errors: dict[str, list[str]] = {}

        recipient = self._recipient(order, overrides.recipient or PartyOverrides(), buyer, errors)
        shipper = self._shipper(overrides.shipper or PartyOverrides(), seller, errors)
        items = self._items(order, overrides.shipment_items, errors)
        cod_amount = self._cod_amount(order, overrides.cod_amount_to_collect, errors)
        pickup_schedule = self._pickup_schedule(overrides.requested_pickup_schedule, errors)
        created_by = self._resolve(
            "createdByUserEmail",
            [overrides.created_by_user_email, seller.email if seller else None],
            self.defaults.created_by_user_email,
            errors,
        )

        if errors:
            raise ShipmentValidationError(errors)

        notes = order.shipping_info.notes if order.shipping_info else None
        return ShipmentRequest(
            shipping_reference_no=shipping_reference_no or self.new_reference_no(str(order.id)),
            created_by_user_email=created_by,
            recipient=recipient,
            shipper=shipper,
            shipment_items=tuple(items),
            requested_pickup_schedule=pickup_schedule,
            shipment_description=overrides.shipment_description or self._description(order),
            remarks=overrides.remarks or notes or "",
            special_instruction=overrides.special_instruction or "",
            cod_amount_to_collect=cod_amount,
        )

    # -------------------------------------------------------------------
    # Field resolution
    # -------------------------------------------------------------------
    @staticmethod
    def _resolve(name: str, candidates: list, default, errors: dict):
        for candidate in candidates:
            if _present(candidate):
                return candidate.strip() if isinstance(candidate, str) else candidate
        if default is None:
            errors.setdefault(name, []).append(f"{name} is required")
        return default

    def _party(self, prefix: str, candidates: dict, defaults: PartyDefaults, errors: dict) -> Party:
        values = {}
        for f in fields(Party):
            values[f.name] = self._resolve(
                f"{prefix}.{f.name}",
                candidates.get(f.name, []),
                getattr(defaults, f.name),
                errors,
            )
        return Party(**values)

    def _recipient(
        self,
        order: Order,
        override: PartyOverrides,
        buyer: BuyerProfile | None,
        errors: dict,
    ) -> Party:
        info = order.shipping_info
        first_name, last_name = _split_name(info.full_name if info else None)
        parsed = parse_address(info.address_line1 if info else None)
        candidates = {
            "email": [override.email, buyer.email if buyer else None, info.email if info else None],
            "first_name": [override.first_name, buyer.first_name if buyer else None, first_name],
            "last_name": [override.last_name, buyer.last_name if buyer else None, last_name],
            "middle_name": [override.middle_name, buyer.middle_name if buyer else None],
            "country": [override.country, info.country if info else None],
            "province": [override.province, info.province if info else None],
            "municipality": [override.municipality, info.city if info else None],
            "district": [override.district, parsed.district if parsed.district_found else None],
            "address_line1": [override.address_line1, parsed.address_line1],
            "phone": [override.phone, buyer.contact_number if buyer else None, info.phone if info else None],
        }
        return self._party("recipient", candidates, self.defaults.recipient, errors)

    def _shipper(self, override: PartyOverrides, seller: SellerProfile | None, errors: dict) -> Party:
        first_name, last_name = _split_name(seller.name if seller else None)
        candidates = {
            "email": [override.email, seller.email if seller else None],
            "first_name": [override.first_name, first_name, seller.store_name if seller else None],
            "last_name": [override.last_name, last_name],
            "middle_name": [override.middle_name],
            "country": [override.country],
            "province": [override.province, seller.province if seller else None],
            "municipality": [override.municipality, seller.city if seller else None],
            "district": [override.district, seller.address_line2 if seller else None],
            "address_line1": [override.address_line1, seller.address_line1 if seller else None],
            "phone": [override.phone, seller.phone if seller else None],
        }
        return self._party("shipper", candidates, self.defaults.shipper, errors)

    # -------------------------------------------------------------------
    # Items, description, COD
    # -------------------------------------------------------------------
    def _items(self, order: Order, explicit: list[ShipmentItem] | None, errors: dict) -> list[ShipmentItem]:
        if explicit is not None:
            items = list(explicit)
        else:
            items = [self._item_for(line) for line in order.items or []]

        if not items:
            errors.setdefault("shipmentItems", []).append("At least one shipment item is required")
        for index, item in enumerate(items):
            for name in ("length", "width", "height", "weight"):
                value = getattr(item, name)
                if value is None or value <= 0:
                    errors.setdefault("shipmentItems", []).append(f"Item {index + 1}: {name} must be positive")
            if item.declared_value is None or item.declared_value < 0:
                errors.setdefault("shipmentItems", []).append(f"Item {index + 1}: declaredValue must not be negative")
        return items

    def _item_for(self, line) -> ShipmentItem:
        dims = line.dimensions
        d = self.defaults

        def dim(name: str, default: float) -> float:
            value = getattr(dims, name) if dims else None
            return default if value is None else value

        quantity = line.quantity or 1
        unit_value = line.declared_value or line.unit_price or d.declared_value
        return ShipmentItem(
            length=dim("length", d.length),
            width=dim("width", d.width),
            height=dim("height", d.height),
            weight=dim("weight", d.weight) * quantity,
            declared_value=unit_value * quantity,
        )

    def _description(self, order: Order) -> str:
        names = [line.product_name or self.defaults.product_name for line in order.items or []]
        return ", ".join(names)[:MAX_DESCRIPTION_LENGTH]

    @staticmethod
    def _cod_amount(order: Order, override: float | None, errors: dict) -> float:
        if override is not None:
            if override < 0:
                errors.setdefault("codAmountToCollect", []).append("codAmountToCollect must not be negative")
            return float(override)
        if (order.payment_method or "").lower() == "cod":
            return float(order.total or 0.0)
        return 0.0

    def _pickup_schedule(self, override: str | None, errors: dict) -> str:
        # Stored on the order after the carrier accepts, so the limit is
        # enforced before the carrier is called.
        if _present(override):
            schedule = override.strip()
            if len(schedule) > MAX_PICKUP_SCHEDULE_LENGTH:
                errors.setdefault("requestedPickupSchedule", []).append(
                    f"requestedPickupSchedule must be at most {MAX_PICKUP_SCHEDULE_LENGTH} characters"
                )
            return schedule
        return (self.clock() + self.defaults.pickup_delay).isoformat()
