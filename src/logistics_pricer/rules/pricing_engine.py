# src/logistics_pricer/rules/pricing_engine.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from .duty import DutyBreakdown, calculate_duty
from .errors import ComputationInvariantViolation, RouteNotFound
from .fee_schedule import (
    DEFAULT_TRANSIT_DAYS,
    QUOTE_VALIDITY_DAYS,
    TRANSIT_CONFIDENCE,
    AdditionalCosts,
    calculate_additional_costs,
    money,
)
from .normalizer import Shipment, normalize_shipment
from .rate_resolver import RateResolver
from .transit import TransitEstimate, TransitEstimator
from .transport import compute_transport_cost

logger = logging.getLogger(__name__)


# -------------------------------
# Result data models
# -------------------------------

@dataclass(frozen=True)
class CostBreakdown:
    transport: Decimal
    duties: Decimal
    fees: Decimal        # customs clearance + documentation only
    insurance: Decimal
    total: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            "transport": str(self.transport),
            "duties": str(self.duties),
            "fees": str(self.fees),
            "insurance": str(self.insurance),
            "total": str(self.total),
        }


@dataclass(frozen=True)
class TransitTime:
    estimated: int
    confidence: Decimal
    factors: List[str] = field(default_factory=list)

    @classmethod
    def from_estimate(cls, estimate: TransitEstimate) -> "TransitTime":
        return cls(estimated=estimate.total_time, confidence=estimate.confidence, factors=list(estimate.factors))


@dataclass(frozen=True)
class Validity:
    valid_from: datetime
    valid_to: datetime


@dataclass(frozen=True)
class PricingResult:
    base_transport_cost: Decimal
    duties_and_tariffs: DutyBreakdown
    additional_costs: AdditionalCosts
    total_cost: Decimal
    breakdown: CostBreakdown
    transit_time: TransitTime
    validity: Validity
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_transport_cost": str(self.base_transport_cost),
            "duties_and_tariffs": self.duties_and_tariffs.to_dict(),
            "additional_costs": self.additional_costs.to_dict(),
            "total_cost": str(self.total_cost),
            "breakdown": self.breakdown.to_dict(),
            "transit_time": {
                "estimated": self.transit_time.estimated,
                "confidence": str(self.transit_time.confidence),
                "factors": list(self.transit_time.factors),
            },
            "validity": {
                "from": self.validity.valid_from.isoformat(),
                "to": self.validity.valid_to.isoformat(),
            },
            "notes": list(self.notes),
        }


@dataclass(frozen=True)
class Quote:
    request_id: Optional[int]
    shipment: Shipment
    result: PricingResult


# -------------------------------
# Aggregation
# -------------------------------

def aggregate_costs(
    base_transport_cost: Decimal,
    duties: DutyBreakdown,
    additional: AdditionalCosts,
    transit_time: TransitTime,
    *,
    now: datetime,
    validity_days: int = QUOTE_VALIDITY_DAYS,
    notes: Optional[List[str]] = None,
) -> PricingResult:
    """Sum every component into the total and stamp the validity window."""
    total = money(base_transport_cost + duties.total_duty + additional.total)
    breakdown = CostBreakdown(
        transport=money(base_transport_cost),
        duties=money(duties.total_duty),
        fees=additional.fees,
        insurance=money(additional.insurance),
        total=total,
    )

    # Re-add the published lines; handling and storage are not in the breakdown
    published = (
        breakdown.transport,
        breakdown.duties,
        breakdown.fees,
        breakdown.insurance,
        money(additional.handling),
        money(additional.storage),
    )
    expected = money(sum(published, Decimal("0")))
    if total != expected or breakdown.total != total:
        raise ComputationInvariantViolation(
            f"total {total} disagrees with published lines {expected} (breakdown {breakdown.total})"
        )

    return PricingResult(
        base_transport_cost=money(base_transport_cost),
        duties_and_tariffs=duties,
        additional_costs=additional,
        total_cost=total,
        breakdown=breakdown,
        transit_time=transit_time,
        validity=Validity(valid_from=now, valid_to=now + timedelta(days=validity_days)),
        notes=list(notes or []),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -------------------------------
# Engine
# -------------------------------

class PricingEngine:
    """
    Quote orchestration over a rate repository and an optional persistence sink:
      - quote(payload) -> Quote: normalise, price, estimate transit, persist audits.
      - compute_transport_cost / resolve_rate_and_duty / estimate_transit_time:
        the individual calculations, usable on their own.
    Sink writes never fail a quote; errors are logged and the quote continues.
    """

    def __init__(
        self,
        repository: Any,
        sink: Any = None,
        *,
        validity_days: int = QUOTE_VALIDITY_DAYS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.sink = sink
        self.validity_days = validity_days
        self.clock = clock
        self.resolver = RateResolver(repository)
        self.transit = TransitEstimator(repository)

    # ------------- Pure operations -------------

    @staticmethod
    def compute_transport_cost(weight, volume, mode: str, urgency: str = "standard") -> Decimal:
        return compute_transport_cost(weight, volume, mode, urgency)

    def resolve_rate_and_duty(
        self,
        origin_country: str,
        classification_code: str,
        declared_value: Decimal | int | float | str,
        as_of: Optional[date] = None,
    ) -> DutyBreakdown:
        rate = self.resolver.resolve(origin_country, classification_code, as_of)
        return calculate_duty(rate, declared_value)

    def estimate_transit_time(
        self,
        origin_country: str,
        destination_country: str,
        mode: str,
        urgency: str = "standard",
        as_of: Optional[date] = None,
    ) -> TransitEstimate:
        return self.transit.estimate(origin_country, destination_country, mode, urgency, as_of)

    # ------------- Full quote -------------

    def _persist(self, label: str, fn_name: str, *args, **kwargs) -> Any:
        if self.sink is None:
            return None
        try:
            return getattr(self.sink, fn_name)(*args, **kwargs)
        except Exception:
            logger.exception("Persisting %s failed; quote continues without it", label)
            return None

    def _transit_for(self, shipment: Shipment, as_of: Optional[date], notes: List[str]) -> TransitTime:
        try:
            estimate = self.estimate_transit_time(
                shipment.origin.country,
                shipment.destination.country,
                shipment.transport.mode,
                shipment.transport.urgency,
                as_of,
            )
        except RouteNotFound as exc:
            logger.debug("%s; using default transit time", exc)
            notes.append("No shipping route on file; default transit time applied")
            return TransitTime(
                estimated=DEFAULT_TRANSIT_DAYS,
                confidence=TRANSIT_CONFIDENCE,
                factors=["Standard transit time"],
            )
        return TransitTime.from_estimate(estimate)

    def quote(self, payload: Any, as_of: Optional[date] = None) -> Quote:
        shipment = normalize_shipment(payload)
        request_id = self._persist("shipment", "save_shipment", shipment)

        cargo = shipment.cargo
        transport_cost = self.compute_transport_cost(
            cargo.weight, cargo.volume, shipment.transport.mode, shipment.transport.urgency
        )
        duties = self.resolve_rate_and_duty(
            shipment.origin.country, cargo.classification_code, cargo.declared_value, as_of
        )
        additional = calculate_additional_costs(
            shipment.transport.mode, cargo.declared_value, shipment.options
        )

        notes: List[str] = []
        if duties.is_duty_free:
            notes.append(f"No tariff rate on file for {shipment.origin.country}/{cargo.classification_code}; duties set to zero")
        transit_time = self._transit_for(shipment, as_of, notes)
        notes.append("Price calculated successfully")

        result = aggregate_costs(
            transport_cost,
            duties,
            additional,
            transit_time,
            now=self.clock(),
            validity_days=self.validity_days,
            notes=notes,
        )

        self._persist("pricing result", "save_pricing_result", request_id, result)
        self._persist(
            "duty audit",
            "save_duty_audit",
            request_id=str(request_id) if request_id is not None else None,
            origin_country=shipment.origin.country,
            destination_country=shipment.destination.country,
            classification_code=cargo.classification_code,
            declared_value=cargo.declared_value,
            duty=duties,
        )
        if request_id is not None:
            self._persist("request status", "mark_calculated", request_id)

        logger.info(
            "Quote request=%s %s->%s %s/%s total=%s",
            request_id,
            shipment.origin.country,
            shipment.destination.country,
            shipment.transport.mode,
            shipment.transport.urgency,
            result.total_cost,
        )
        return Quote(request_id=request_id, shipment=shipment, result=result)
