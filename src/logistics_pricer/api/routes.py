# src/logistics_pricer/api/routes.py
"""
Pricing, tariff and shipping endpoints.

Notes:
- /pricing/calculate accepts both the flat legacy body and the structured body;
  the shape is resolved once by the normaliser.
- A missing tariff rate is a zero-duty result, a missing route is a 404.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.orm import Session

from ..db import SessionLocal
from ..models import ShippingRoute, TariffRate
from ..persistence import SqlPersistenceSink
from ..repository import RateRepository
from ..rules.compliance import check_restrictions, required_documents
from ..rules.errors import RouteNotFound, ShipmentValidationError
from ..rules.normalizer import MAX_DECLARED_VALUE
from ..rules.pricing_engine import PricingEngine
from ..rules.rate_resolver import RateResolver
from ..settings import settings

logger = logging.getLogger("logistics-pricer-api")

router = APIRouter(prefix="/api/v1", tags=["Pricing API"])

TransportType = Literal["road", "air", "sea", "rail", "multimodal"]

# ============ Pydantic Models ============

class DutyCalculationIn(BaseModel):
    origin_country: str = Field(
        ..., min_length=1, examples=["CN"],
        validation_alias=AliasChoices("origin_country", "originCountry"),
    )
    destination_country: Optional[str] = Field(
        None, examples=["US"],
        validation_alias=AliasChoices("destination_country", "destinationCountry"),
    )
    classification_code: str = Field(
        ..., min_length=1, examples=["8517.13.00"],
        validation_alias=AliasChoices("classification_code", "classificationCode", "hsCode"),
    )
    declared_value: Decimal = Field(
        ..., ge=0, le=MAX_DECLARED_VALUE, examples=[1000],
        validation_alias=AliasChoices("declared_value", "declaredValue", "productValue"),
    )
    as_of: Optional[date] = Field(None, validation_alias=AliasChoices("as_of", "asOf"))


class TransitCalculationIn(BaseModel):
    origin: str = Field(..., min_length=1, examples=["CN"])
    destination: str = Field(..., min_length=1, examples=["US"])
    transport_type: TransportType = Field(
        ..., validation_alias=AliasChoices("transport_type", "transportType", "mode")
    )
    urgency: Literal["standard", "express", "urgent"] = "standard"


class TariffUpdateIn(BaseModel):
    origin_country: str = Field(
        ..., min_length=1, examples=["CN"],
        validation_alias=AliasChoices("origin_country", "originCountry"),
    )
    classification_code: str = Field(
        ..., min_length=1, examples=["8517.13.00"],
        validation_alias=AliasChoices("classification_code", "classificationCode", "hsCode"),
    )
    base_rate: Decimal = Field(
        ..., ge=0, le=100, examples=[25],
        validation_alias=AliasChoices("base_rate", "baseRate"),
    )
    special_rate: Optional[Decimal] = Field(
        None, ge=0, le=100,
        validation_alias=AliasChoices("special_rate", "specialRate"),
    )
    effective_date: Optional[date] = Field(
        None, validation_alias=AliasChoices("effective_date", "effectiveDate")
    )
    expiry_date: Optional[date] = Field(
        None, validation_alias=AliasChoices("expiry_date", "expiryDate")
    )
    source: Literal["WTO", "CUSTOMS_API", "MANUAL", "TRADE_AGREEMENT"] = "MANUAL"
    notes: Optional[str] = None


class RouteValidationIn(BaseModel):
    origin_country: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("origin_country", "originCountry")
    )
    destination_country: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("destination_country", "destinationCountry")
    )
    transport_type: TransportType = Field(
        ..., validation_alias=AliasChoices("transport_type", "transportType", "mode")
    )


# ============ Database Dependency ============

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ============ Helpers ============

def _build_engine(db: Session) -> PricingEngine:
    return PricingEngine(
        RateRepository(db),
        SqlPersistenceSink(db),
        validity_days=settings.quote_validity_days,
    )


def _rate_out(row: TariffRate) -> Dict[str, Any]:
    return {
        "id": row.id,
        "origin_country": row.origin_country,
        "classification_code": row.classification_code,
        "base_rate": str(row.base_rate),
        "special_rate": str(row.special_rate) if row.special_rate is not None else None,
        "effective_date": row.effective_date.isoformat(),
        "expiry_date": row.expiry_date.isoformat() if row.expiry_date else None,
        "is_active": row.is_active,
        "source": row.source,
        "notes": row.notes,
    }


def _route_out(route: ShippingRoute) -> Dict[str, Any]:
    return {
        "route_id": route.route_id,
        "origin_country": route.origin_country,
        "destination_country": route.destination_country,
        "transport_mode": route.transport_mode,
        "base_transit_time": route.base_transit_time,
        "customs_delay": route.customs_delay,
        "port_congestion": route.port_congestion,
        "total_transit_time": route.total_transit_time,
        "restrictions": list(route.restrictions or []),
    }


def _validation_failed(exc: ShipmentValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": str(exc), "errors": jsonable_encoder(exc.errors)},
    )


# ============ Pricing ============

@router.post("/pricing/calculate")
def calculate_price(
    payload: Dict[str, Any] = Body(..., description="Legacy flat or structured pricing request"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    engine = _build_engine(db)
    try:
        quote = engine.quote(payload)
    except ShipmentValidationError as exc:
        raise _validation_failed(exc)
    except Exception:
        logger.exception("Price calculation failed")
        raise HTTPException(status_code=500, detail="price calculation failed")

    result = quote.result
    return {
        "success": True,
        "price": str(result.total_cost),
        "breakdown": result.breakdown.to_dict(),
        "details": {"request_id": quote.request_id, **result.to_dict()},
    }


# ============ Tariffs ============

@router.post("/tariffs/calculate-duties")
def calculate_duties(body: DutyCalculationIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    duty = _build_engine(db).resolve_rate_and_duty(
        body.origin_country, body.classification_code, body.declared_value, body.as_of
    )

    calculation_id = None
    try:
        calculation_id = SqlPersistenceSink(db).save_duty_audit(
            request_id=None,
            origin_country=body.origin_country.strip().upper(),
            destination_country=(body.destination_country or "").strip().upper() or None,
            classification_code=body.classification_code.strip(),
            declared_value=body.declared_value,
            duty=duty,
        )
    except Exception:
        logger.exception("Duty audit write failed for %s/%s", body.origin_country, body.classification_code)
    return {"success": True, "data": {**duty.to_dict(), "calculation_id": calculation_id}}


@router.get("/tariffs/rates")
def get_applicable_rate(
    origin_country: str = Query(..., alias="originCountry", min_length=1),
    classification_code: str = Query(..., alias="hsCode", min_length=1),
    as_of: Optional[date] = Query(None, alias="asOf"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    rate = RateResolver(RateRepository(db)).resolve(origin_country, classification_code, as_of)
    if rate is None:
        raise HTTPException(
            status_code=404,
            detail=f"No applicable tariff rate for {origin_country.upper()}/{classification_code}",
        )
    return {
        "success": True,
        "data": {
            "tariff_id": rate.tariff_id,
            "origin_country": rate.origin_country,
            "classification_code": rate.classification_code,
            "base_rate": str(rate.base_rate),
            "special_rate": str(rate.special_rate) if rate.special_rate is not None else None,
            "effective_date": rate.effective_date.isoformat(),
            "expiry_date": rate.expiry_date.isoformat() if rate.expiry_date else None,
            "source": rate.source,
            "notes": rate.notes,
        },
    }


@router.get("/tariffs/history")
def get_tariff_history(
    origin_country: Optional[str] = Query(None, alias="originCountry"),
    classification_code: Optional[str] = Query(None, alias="hsCode"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    rows = RateRepository(db).rate_history(origin_country, classification_code, limit)
    return {"success": True, "data": [_rate_out(r) for r in rows], "count": len(rows)}


@router.post("/tariffs/update", status_code=201)
def update_tariff_rate(body: TariffUpdateIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    try:
        row = RateRepository(db).supersede_rate(
            body.origin_country,
            body.classification_code,
            body.base_rate,
            special_rate=body.special_rate,
            effective_date=body.effective_date,
            expiry_date=body.expiry_date,
            source=body.source,
            notes=body.notes,
        )
    except Exception:
        logger.exception("Tariff update failed for %s/%s", body.origin_country, body.classification_code)
        raise HTTPException(status_code=500, detail="tariff update failed")
    return {"success": True, "data": _rate_out(row), "message": "Tariff rate updated successfully"}


# ============ Shipping ============

@router.get("/shipping/routes")
def list_shipping_routes(
    origin_country: Optional[str] = Query(None, alias="originCountry"),
    destination_country: Optional[str] = Query(None, alias="destinationCountry"),
    transport_type: Optional[TransportType] = Query(None, alias="transportType"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    routes = RateRepository(db).list_routes(origin_country, destination_country, transport_type)
    return {"success": True, "data": [_route_out(r) for r in routes], "count": len(routes)}


@router.get("/shipping/documents")
def get_required_documents(
    origin_country: str = Query(..., alias="originCountry", min_length=1),
    destination_country: str = Query(..., alias="destinationCountry", min_length=1),
    transport_type: Optional[TransportType] = Query(None, alias="transportType"),
    value: Optional[Decimal] = Query(None, ge=0, le=MAX_DECLARED_VALUE),
) -> Dict[str, Any]:
    documents = required_documents(origin_country, destination_country, transport_type, value)
    return {"success": True, "data": [d.to_dict() for d in documents], "count": len(documents)}


@router.get("/shipping/restrictions")
def get_shipping_restrictions(
    origin_country: str = Query(..., alias="originCountry", min_length=1),
    destination_country: str = Query(..., alias="destinationCountry", min_length=1),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    route_restrictions = RateRepository(db).lane_restrictions(origin_country, destination_country)
    check = check_restrictions(origin_country, destination_country, route_restrictions)
    return {"success": True, "data": check.to_dict()}


@router.post("/shipping/calculate-transit")
def calculate_transit(body: TransitCalculationIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    engine = _build_engine(db)
    try:
        estimate = engine.estimate_transit_time(
            body.origin, body.destination, body.transport_type, body.urgency
        )
    except RouteNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {"success": True, "data": estimate.to_dict()}


@router.post("/shipping/validate-route")
def validate_route(body: RouteValidationIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    check = RateRepository(db).validate_route(
        body.origin_country, body.destination_country, body.transport_type
    )
    if not check.valid:
        return {
            "success": True,
            "data": {
                "valid": False,
                "reason": "Route not available",
                "alternatives": [_route_out(r) for r in check.alternatives],
            },
        }

    return {
        "success": True,
        "data": {
            "valid": True,
            "route": _route_out(check.route),
            "restrictions": check.restrictions,
            "has_restrictions": bool(check.restrictions),
            "estimated_transit_time": check.route.total_transit_time,
        },
    }
