from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Protocol

from .errors import RouteNotFound
from .fee_schedule import TRANSIT_CONFIDENCE

logger = logging.getLogger(__name__)


class RouteSource(Protocol):
    def find_route(
        self,
        origin_country: str,
        destination_country: str,
        transport_mode: str,
        as_of: Optional[date] = None,
    ) -> Optional[Any]:
        ...


URGENCY_TIME_MULTIPLIERS: Dict[str, Decimal] = {
    "standard": Decimal("1.0"),
    "express": Decimal("0.7"),
    "urgent": Decimal("0.5"),
}


@dataclass(frozen=True)
class TransitEstimate:
    base_time: int
    customs_time: int
    congestion_time: int
    total_time: int
    confidence: Decimal
    factors: List[str] = field(default_factory=list)
    route_id: Optional[str] = None
    restrictions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_time": self.base_time,
            "customs_time": self.customs_time,
            "congestion_time": self.congestion_time,
            "total_time": self.total_time,
            "confidence": str(self.confidence),
            "factors": list(self.factors),
            "route_id": self.route_id,
            "restrictions": list(self.restrictions),
        }


def _round_days(days: Decimal) -> int:
    return int(days.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def transit_from_route(route: Any, urgency: str = "standard") -> TransitEstimate:
    """Apply the urgency multiplier to a route's summed day counts."""
    level = (urgency or "standard").strip().lower()
    multiplier = URGENCY_TIME_MULTIPLIERS.get(level, Decimal("1.0"))

    base = int(route.base_transit_time or 0)
    customs = int(route.customs_delay or 0)
    congestion = int(route.port_congestion or 0)

    # Round after the multiplier, never before
    total = _round_days(Decimal(base + customs + congestion) * multiplier)

    factors = [
        f"Base transit time: {base} days",
        f"Customs processing: {customs} days",
        f"Port congestion: {congestion} days",
    ]
    if level in URGENCY_TIME_MULTIPLIERS and level != "standard":
        factors.append(f"{level} service applied")

    return TransitEstimate(
        base_time=base,
        customs_time=customs,
        congestion_time=congestion,
        total_time=total,
        confidence=TRANSIT_CONFIDENCE,
        factors=factors,
        route_id=getattr(route, "route_id", None),
        restrictions=list(getattr(route, "restrictions", None) or []),
    )


class TransitEstimator:
    def __init__(self, repository: RouteSource):
        self.repository = repository

    def estimate(
        self,
        origin_country: str,
        destination_country: str,
        transport_mode: str,
        urgency: str = "standard",
        as_of: Optional[date] = None,
    ) -> TransitEstimate:
        origin = (origin_country or "").strip().upper()
        destination = (destination_country or "").strip().upper()
        mode = (transport_mode or "").strip().lower()

        route = self.repository.find_route(origin, destination, mode, as_of)
        if route is None:
            raise RouteNotFound(origin, destination, mode)
        return transit_from_route(route, urgency)
