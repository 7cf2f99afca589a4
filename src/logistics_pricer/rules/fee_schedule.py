"""Ancillary fee schedule.

Flat and value-based fees charged on top of transport and duties:

  - customs clearance: flat 150 when the shipper asks for it,
  - documentation: flat 50 on every quote,
  - cargo insurance: 2% of declared value when requested,
  - handling: 200 for sea, 100 for air, 50 for everything else,
  - storage: always 0 for now.

``STORAGE_FEE`` and ``TRANSIT_CONFIDENCE`` are placeholders kept as named
constants until volume/time based storage and data-driven transit
confidence exist.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

CUSTOMS_CLEARANCE_FEE: Decimal = Decimal("150")
DOCUMENTATION_FEE: Decimal = Decimal("50")
INSURANCE_RATE: Decimal = Decimal("0.02")
HANDLING_FEES: Dict[str, Decimal] = {
    "sea": Decimal("200"),
    "air": Decimal("100"),
}
DEFAULT_HANDLING_FEE: Decimal = Decimal("50")
STORAGE_FEE: Decimal = Decimal("0")

QUOTE_VALIDITY_DAYS: int = 30
TRANSIT_CONFIDENCE: Decimal = Decimal("0.8")
DEFAULT_TRANSIT_DAYS: int = 7


def money(value: Decimal | int | float | str) -> Decimal:
    """Quantize a numeric value to the nearest cent using standard half-up rounding."""

    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class AdditionalCosts:
    customs_clearance: Decimal
    documentation: Decimal
    insurance: Decimal
    handling: Decimal
    storage: Decimal

    @property
    def total(self) -> Decimal:
        return (
            self.customs_clearance
            + self.documentation
            + self.insurance
            + self.handling
            + self.storage
        )

    @property
    def fees(self) -> Decimal:
        # Only clearance and documentation count as "fees" in the summary breakdown
        return money(self.customs_clearance + self.documentation)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "customs_clearance": str(money(self.customs_clearance)),
            "documentation": str(money(self.documentation)),
            "insurance": str(money(self.insurance)),
            "handling": str(money(self.handling)),
            "storage": str(money(self.storage)),
        }


def calculate_additional_costs(
    transport_mode: str,
    declared_value: Decimal | int | float,
    options: Any = None,
) -> AdditionalCosts:
    """Compute the ancillary fees for a shipment.

    ``options`` is anything exposing boolean ``insurance`` and
    ``customs_clearance`` attributes; ``None`` means no extra services.
    """

    wants_clearance = bool(getattr(options, "customs_clearance", False))
    wants_insurance = bool(getattr(options, "insurance", False))

    value = Decimal(str(declared_value))
    mode = (transport_mode or "").strip().lower()

    return AdditionalCosts(
        customs_clearance=money(CUSTOMS_CLEARANCE_FEE if wants_clearance else 0),
        documentation=money(DOCUMENTATION_FEE),
        insurance=money(value * INSURANCE_RATE) if wants_insurance else money(0),
        handling=money(HANDLING_FEES.get(mode, DEFAULT_HANDLING_FEE)),
        storage=money(STORAGE_FEE),
    )
