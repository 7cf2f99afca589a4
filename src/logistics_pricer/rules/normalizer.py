# src/logistics_pricer/rules/normalizer.py
"""
Request normalisation: every pricing payload becomes one canonical Shipment.

Two request shapes are accepted and resolved once, at ingestion:
  - StructuredPricingRequest: nested origin/destination/cargo/transport/options.
  - LegacyPricingRequest: flat {origin, destination, weight, volume, transportType}.
    Legacy callers never send a classification code or value, so the cargo is
    marked UNCLASSIFIED_CODE and its value is estimated at weight x 10.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import ShipmentValidationError

UNCLASSIFIED_CODE = "9999.99.99"
LEGACY_VALUE_PER_KG = Decimal("10")
LEGACY_DESCRIPTION = "General cargo"

# Upper bounds keep every amount well inside Decimal's 28-digit context
MAX_WEIGHT_KG = Decimal("1000000000")
MAX_VOLUME_M3 = Decimal("1000000000")
MAX_DIMENSION_M = Decimal("100000")
MAX_DECLARED_VALUE = Decimal("1000000000000")

TRANSPORT_MODES = ("road", "air", "sea", "rail", "multimodal")
URGENCY_LEVELS = ("standard", "express", "urgent")

TransportMode = Literal["road", "air", "sea", "rail", "multimodal"]
Urgency = Literal["standard", "express", "urgent"]


# ---------- Canonical shipment ----------

@dataclass(frozen=True)
class Location:
    country: str
    city: str


@dataclass(frozen=True)
class Dimensions:
    length: Decimal
    width: Decimal
    height: Decimal


@dataclass(frozen=True)
class Cargo:
    weight: Decimal           # kg
    volume: Decimal           # m³
    dimensions: Dimensions
    classification_code: str
    declared_value: Decimal   # USD
    quantity: int = 1
    description: str = LEGACY_DESCRIPTION


@dataclass(frozen=True)
class TransportSpec:
    mode: str
    urgency: str = "standard"
    special_requirements: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ShipmentOptions:
    insurance: bool = False
    customs_clearance: bool = False
    door_to_door: bool = False
    temperature_controlled: bool = False


@dataclass(frozen=True)
class Shipment:
    """Canonical shipment record; validated on construction, immutable afterwards."""
    origin: Location
    destination: Location
    cargo: Cargo
    transport: TransportSpec
    options: ShipmentOptions = field(default_factory=ShipmentOptions)

    def __post_init__(self) -> None:
        errors: List[Dict[str, Any]] = []

        def _err(loc: str, msg: str) -> None:
            errors.append({"loc": loc, "msg": msg})

        if not (self.origin.country or "").strip():
            _err("origin.country", "origin country is required")
        if not (self.destination.country or "").strip():
            _err("destination.country", "destination country is required")
        if self.cargo.weight <= 0:
            _err("cargo.weight", "weight must be greater than 0")
        elif self.cargo.weight > MAX_WEIGHT_KG:
            _err("cargo.weight", f"weight must not exceed {MAX_WEIGHT_KG}")
        if self.cargo.volume <= 0:
            _err("cargo.volume", "volume must be greater than 0")
        elif self.cargo.volume > MAX_VOLUME_M3:
            _err("cargo.volume", f"volume must not exceed {MAX_VOLUME_M3}")
        if self.cargo.declared_value < 0:
            _err("cargo.declared_value", "declared value must not be negative")
        elif self.cargo.declared_value > MAX_DECLARED_VALUE:
            _err("cargo.declared_value", f"declared value must not exceed {MAX_DECLARED_VALUE}")
        if self.cargo.quantity < 1:
            _err("cargo.quantity", "quantity must be at least 1")
        if self.transport.mode not in TRANSPORT_MODES:
            _err("transport.mode", f"transport mode must be one of {', '.join(TRANSPORT_MODES)}")
        if self.transport.urgency not in URGENCY_LEVELS:
            _err("transport.urgency", f"urgency must be one of {', '.join(URGENCY_LEVELS)}")

        if errors:
            raise ShipmentValidationError("invalid shipment", errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": {"country": self.origin.country, "city": self.origin.city},
            "destination": {"country": self.destination.country, "city": self.destination.city},
            "cargo": {
                "weight": str(self.cargo.weight),
                "volume": str(self.cargo.volume),
                "dimensions": {
                    "length": str(self.cargo.dimensions.length),
                    "width": str(self.cargo.dimensions.width),
                    "height": str(self.cargo.dimensions.height),
                },
                "classification_code": self.cargo.classification_code,
                "declared_value": str(self.cargo.declared_value),
                "quantity": self.cargo.quantity,
                "description": self.cargo.description,
            },
            "transport": {
                "mode": self.transport.mode,
                "urgency": self.transport.urgency,
                "special_requirements": list(self.transport.special_requirements),
            },
            "options": {
                "insurance": self.options.insurance,
                "customs_clearance": self.options.customs_clearance,
                "door_to_door": self.options.door_to_door,
                "temperature_controlled": self.options.temperature_controlled,
            },
        }


def _place(country: str, city: Optional[str]) -> Location:
    code = (country or "").strip().upper()
    return Location(country=code, city=(city or country or "").strip())


# ---------- Request variants ----------

class PlaceIn(BaseModel):
    country: str = Field(..., min_length=1, examples=["CN"])
    city: Optional[str] = Field(None, examples=["Shenzhen"])


class DimensionsIn(BaseModel):
    length: Decimal = Field(..., gt=0, le=MAX_DIMENSION_M)
    width: Decimal = Field(..., gt=0, le=MAX_DIMENSION_M)
    height: Decimal = Field(..., gt=0, le=MAX_DIMENSION_M)


class CargoIn(BaseModel):
    weight: Decimal = Field(..., gt=0, le=MAX_WEIGHT_KG, examples=[100])
    volume: Decimal = Field(..., gt=0, le=MAX_VOLUME_M3, examples=[0.5])
    dimensions: Optional[DimensionsIn] = None
    classification_code: str = Field(
        UNCLASSIFIED_CODE,
        min_length=1,
        validation_alias=AliasChoices("classification_code", "classificationCode", "hsCode", "hs_code"),
    )
    declared_value: Decimal = Field(
        ...,
        ge=0,
        le=MAX_DECLARED_VALUE,
        validation_alias=AliasChoices("declared_value", "declaredValue", "value"),
    )
    quantity: int = Field(1, ge=1)
    description: str = Field(
        LEGACY_DESCRIPTION,
        validation_alias=AliasChoices("description", "productDescription", "product_description"),
    )


class TransportIn(BaseModel):
    mode: TransportMode = Field(..., validation_alias=AliasChoices("mode", "type", "transport_type", "transportType"))
    urgency: Urgency = "standard"
    special_requirements: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("special_requirements", "specialRequirements"),
    )


class OptionsIn(BaseModel):
    insurance: bool = False
    customs_clearance: bool = Field(False, validation_alias=AliasChoices("customs_clearance", "customsClearance"))
    door_to_door: bool = Field(False, validation_alias=AliasChoices("door_to_door", "doorToDoor"))
    temperature_controlled: bool = Field(
        False, validation_alias=AliasChoices("temperature_controlled", "temperatureControlled")
    )


class StructuredPricingRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["structured"] = "structured"
    origin: PlaceIn
    destination: PlaceIn
    cargo: CargoIn
    transport: TransportIn
    options: OptionsIn = Field(default_factory=OptionsIn)

    def to_shipment(self) -> Shipment:
        cargo = self.cargo
        dims = cargo.dimensions
        dimensions = (
            Dimensions(length=dims.length, width=dims.width, height=dims.height)
            if dims
            else Dimensions(length=Decimal("1"), width=Decimal("1"), height=cargo.volume)
        )
        return Shipment(
            origin=_place(self.origin.country, self.origin.city),
            destination=_place(self.destination.country, self.destination.city),
            cargo=Cargo(
                weight=cargo.weight,
                volume=cargo.volume,
                dimensions=dimensions,
                classification_code=cargo.classification_code.strip(),
                declared_value=cargo.declared_value,
                quantity=cargo.quantity,
                description=cargo.description,
            ),
            transport=TransportSpec(
                mode=self.transport.mode,
                urgency=self.transport.urgency,
                special_requirements=tuple(self.transport.special_requirements),
            ),
            options=ShipmentOptions(
                insurance=self.options.insurance,
                customs_clearance=self.options.customs_clearance,
                door_to_door=self.options.door_to_door,
                temperature_controlled=self.options.temperature_controlled,
            ),
        )


class LegacyPricingRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["legacy"] = "legacy"
    origin: str = Field(..., min_length=1, examples=["CN"])
    destination: str = Field(..., min_length=1, examples=["US"])
    weight: Decimal = Field(..., gt=0, le=MAX_WEIGHT_KG)
    volume: Decimal = Field(..., gt=0, le=MAX_VOLUME_M3)
    transport_type: TransportMode = Field(
        ..., validation_alias=AliasChoices("transportType", "transport_type")
    )

    def to_shipment(self) -> Shipment:
        return Shipment(
            origin=_place(self.origin, self.origin),
            destination=_place(self.destination, self.destination),
            cargo=Cargo(
                weight=self.weight,
                volume=self.volume,
                dimensions=Dimensions(length=Decimal("1"), width=Decimal("1"), height=self.volume),
                classification_code=UNCLASSIFIED_CODE,
                declared_value=self.weight * LEGACY_VALUE_PER_KG,
                quantity=1,
                description=LEGACY_DESCRIPTION,
            ),
            transport=TransportSpec(mode=self.transport_type, urgency="standard"),
            options=ShipmentOptions(),
        )


PricingPayload = Union[StructuredPricingRequest, LegacyPricingRequest]


def _is_structured(payload: Mapping[str, Any]) -> bool:
    return all(payload.get(key) is not None for key in ("cargo", "origin", "destination"))


def parse_pricing_payload(payload: Any) -> PricingPayload:
    """Resolve a raw request body into one of the two request variants."""
    if isinstance(payload, (StructuredPricingRequest, LegacyPricingRequest)):
        return payload
    if not isinstance(payload, Mapping):
        raise ShipmentValidationError(
            "pricing request must be an object",
            [{"loc": "body", "msg": "expected a JSON object"}],
        )

    model = StructuredPricingRequest if _is_structured(payload) else LegacyPricingRequest
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise ShipmentValidationError(
            f"invalid {model.model_fields['kind'].default} pricing request",
            exc.errors(include_url=False, include_context=False),
        ) from exc


def normalize_shipment(payload: Any) -> Shipment:
    """Map any accepted request shape onto the canonical Shipment."""
    if isinstance(payload, Shipment):
        return payload
    return parse_pricing_payload(payload).to_shipment()
