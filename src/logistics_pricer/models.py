from __future__ import annotations
from typing import Any, Optional
import datetime
from decimal import Decimal

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import JSON, String, Boolean, Numeric, Date, DateTime, Integer, Text, func

class Base(DeclarativeBase):
    pass


class TariffRate(Base):
    """Time-windowed duty rate for an (origin country, classification code) pair.

    Rows are never updated in place for a new rate: supersession deactivates
    the previous active row and inserts a new one.
    """

    __tablename__ = "tariff_rates"

    id: Mapped[int] = mapped_column(primary_key=True)
    origin_country: Mapped[str] = mapped_column(String(3), index=True)
    classification_code: Mapped[str] = mapped_column(String(16), index=True)
    base_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4))          # percentage, 0..100
    special_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(7, 4))  # anti-dumping etc.
    effective_date: Mapped[datetime.date] = mapped_column(Date)
    expiry_date: Mapped[Optional[datetime.date]] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    source: Mapped[str] = mapped_column(String(24), default="MANUAL")  # WTO/CUSTOMS_API/MANUAL/TRADE_AGREEMENT
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ShippingRoute(Base):
    __tablename__ = "shipping_routes"

    id: Mapped[int] = mapped_column(primary_key=True)
    route_id: Mapped[str] = mapped_column(String(64), unique=True)
    origin_country: Mapped[str] = mapped_column(String(3), index=True)
    destination_country: Mapped[str] = mapped_column(String(3), index=True)
    transport_mode: Mapped[str] = mapped_column(String(16))  # road/air/sea/rail/multimodal
    base_transit_time: Mapped[int] = mapped_column(Integer)
    customs_delay: Mapped[int] = mapped_column(Integer, default=0)
    port_congestion: Mapped[int] = mapped_column(Integer, default=0)
    restrictions: Mapped[list[str]] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    effective_date: Mapped[datetime.date] = mapped_column(Date)
    expiry_date: Mapped[Optional[datetime.date]] = mapped_column(Date)
    source: Mapped[str] = mapped_column(String(64), default="MANUAL")
    notes: Mapped[Optional[str]] = mapped_column(Text)

    @property
    def total_transit_time(self) -> int:
        return (self.base_transit_time or 0) + (self.customs_delay or 0) + (self.port_congestion or 0)


class PricingRequest(Base):
    """Audit copy of a canonical shipment as it entered the engine."""

    __tablename__ = "pricing_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    origin_country: Mapped[str] = mapped_column(String(64))
    destination_country: Mapped[str] = mapped_column(String(64))
    transport_mode: Mapped[str] = mapped_column(String(16))
    classification_code: Mapped[str] = mapped_column(String(16))
    shipment: Mapped[dict[str, Any]] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(String(16), default="pending")  # pending/calculated/expired/cancelled
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class PricingResponse(Base):
    __tablename__ = "pricing_responses"

    id: Mapped[int] = mapped_column(primary_key=True)
    request_id: Mapped[Optional[int]] = mapped_column(Integer, index=True)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    valid_from: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True))
    valid_to: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True))
    payload: Mapped[dict[str, Any]] = mapped_column(JSON)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class DutyCalculation(Base):
    __tablename__ = "duty_calculations"

    id: Mapped[int] = mapped_column(primary_key=True)
    request_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    origin_country: Mapped[str] = mapped_column(String(64))
    destination_country: Mapped[Optional[str]] = mapped_column(String(64))
    classification_code: Mapped[str] = mapped_column(String(16))
    declared_value: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    base_duty: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    special_duty: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    total_duty: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    applied_rates: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    calculated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
