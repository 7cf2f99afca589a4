"""Duty calculation on a declared value.

Each figure is rounded half-up to cents on its own. The total is rounded
from the *unrounded* base + special amounts, so it can differ by a cent from
the sum of the two rounded parts; that is the intended policy.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .fee_schedule import money
from .rate_resolver import ResolvedRate

DEFAULT_BASE_DESCRIPTION = "Standard tariff rate"
SPECIAL_DESCRIPTION = "Special tariff rate"

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class AppliedRate:
    tariff_id: str
    rate: Decimal
    type: str  # "base" | "special"
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tariff_id": self.tariff_id,
            "rate": str(self.rate),
            "type": self.type,
            "description": self.description,
        }


@dataclass(frozen=True)
class DutyBreakdown:
    base_duty: Decimal = Decimal("0.00")
    special_duty: Decimal = Decimal("0.00")
    total_duty: Decimal = Decimal("0.00")
    applied_rates: List[AppliedRate] = field(default_factory=list)

    @property
    def is_duty_free(self) -> bool:
        return not self.applied_rates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_duty": str(self.base_duty),
            "special_tariffs": str(self.special_duty),
            "total_duties": str(self.total_duty),
            "applied_rates": [r.to_dict() for r in self.applied_rates],
        }


def calculate_duty(rate: Optional[ResolvedRate], declared_value: Decimal | int | float | str) -> DutyBreakdown:
    if rate is None:
        return DutyBreakdown()

    value = Decimal(str(declared_value))
    raw_base = value * rate.base_rate / _HUNDRED
    raw_special = value * rate.special_rate / _HUNDRED if rate.special_rate else Decimal("0")

    applied = [
        AppliedRate(
            tariff_id=rate.tariff_id,
            rate=rate.base_rate,
            type="base",
            description=rate.notes or DEFAULT_BASE_DESCRIPTION,
        )
    ]
    if rate.special_rate:
        applied.append(
            AppliedRate(
                tariff_id=rate.tariff_id,
                rate=rate.special_rate,
                type="special",
                description=SPECIAL_DESCRIPTION,
            )
        )

    return DutyBreakdown(
        base_duty=money(raw_base),
        special_duty=money(raw_special),
        total_duty=money(raw_base + raw_special),
        applied_rates=applied,
    )
