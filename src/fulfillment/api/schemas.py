"""Pydantic API schemas for the Fulfillment domain.

These are the external API contracts, separate from domain commands.
Field names travel as camelCase on the wire; the API layer translates
between these schemas and the shipment overrides / domain commands.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from fulfillment.shipment.builder import PartyOverrides, ShipmentItem, ShipmentOverrides


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class PartyInfo(CamelModel):
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

    def to_overrides(self) -> PartyOverrides:
        return PartyOverrides(**self.model_dump())


class ShipmentItemSchema(CamelModel):
    length: float
    width: float
    height: float
    weight: float
    declared_value: float

    def to_item(self) -> ShipmentItem:
        return ShipmentItem(**self.model_dump())


class CreateShipmentRequest(CamelModel):
    order_id: str
    recipient_info: PartyInfo | None = None
    shipper_info: PartyInfo | None = None
    shipment_items: list[ShipmentItemSchema] | None = None
    shipment_description: str | None = None
    remarks: str | None = None
    special_instruction: str | None = None
    cod_amount_to_collect: float | None = None
    requested_pickup_schedule: str | None = None
    created_by_user_email: str | None = None

    def to_overrides(self) -> ShipmentOverrides:
        return ShipmentOverrides(
            recipient=self.recipient_info.to_overrides() if self.recipient_info else None,
            shipper=self.shipper_info.to_overrides() if self.shipper_info else None,
            shipment_items=[item.to_item() for item in self.shipment_items] if self.shipment_items is not None else None,
            shipment_description=self.shipment_description,
            remarks=self.remarks,
            special_instruction=self.special_instruction,
            cod_amount_to_collect=self.cod_amount_to_collect,
            requested_pickup_schedule=self.requested_pickup_schedule,
            created_by_user_email=self.created_by_user_email,
        )


class TrackingRequest(CamelModel):
    order_id: str | None = None
    tracking_id: str | None = None
    shipping_reference_no: str | None = None


class TransitionRequest(CamelModel):
    note: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class CreateShipmentResponse(CamelModel):
    success: bool = True
    shipping_reference_no: str
    tracking_id: str | None = None
    total_shipping_amount: float | None = None
    carrier_response: dict[str, Any] | None = None


class TrackingResponse(CamelModel):
    success: bool = True
    order_id: str
    tracking_id: str | None = None
    shipping_reference_no: str
    total_shipping_amount: float | None = None
    requested_at: str | None = None
    pickup_schedule: str | None = None
    carrier_response: dict[str, Any] | None = None


class StatusResponse(BaseModel):
    status: str


class OrderBoardEntryResponse(CamelModel):
    order_id: str
    status: str
    fulfillment_stage: str | None = None
    lifecycle_tab: str
    to_ship_tab: str | None = None
    tracking_id: str | None = None
    updated_at: str | None = None


class OrderBoardResponse(CamelModel):
    entries: list[OrderBoardEntryResponse]
    total: int
