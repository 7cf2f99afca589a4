"""Base transport cost from weight, volume, transport mode and urgency."""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Tuple


def _money(val: Decimal | float | int | str) -> Decimal:
    if not isinstance(val, Decimal):
        val = Decimal(str(val))
    return val.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class TransportCostEngine:
    """
    Linear per-mode cost model.

    cost = (BASE_CHARGE + weight_coeff * weight + volume_coeff * volume) * urgency
    Modes without their own coefficients (rail, multimodal, unknown) use
    DEFAULT_COEFFICIENTS.
    """

    BASE_CHARGE = Decimal("50")

    # (per kg, per m³)
    MODE_COEFFICIENTS: Dict[str, Tuple[Decimal, Decimal]] = {
        "road": (Decimal("0.5"), Decimal("0.2")),
        "air": (Decimal("1.2"), Decimal("0.5")),
        "sea": (Decimal("0.3"), Decimal("0.1")),
    }
    DEFAULT_COEFFICIENTS: Tuple[Decimal, Decimal] = (Decimal("0.7"), Decimal("0.3"))

    URGENCY_MULTIPLIERS: Dict[str, Decimal] = {
        "standard": Decimal("1.0"),
        "express": Decimal("1.5"),
        "urgent": Decimal("2.0"),
    }

    @classmethod
    def coefficients(cls, mode: str) -> Tuple[Decimal, Decimal]:
        return cls.MODE_COEFFICIENTS.get((mode or "").strip().lower(), cls.DEFAULT_COEFFICIENTS)

    @classmethod
    def urgency_multiplier(cls, urgency: str | None) -> Decimal:
        return cls.URGENCY_MULTIPLIERS.get((urgency or "standard").strip().lower(), Decimal("1.0"))

    @classmethod
    def calculate(
        cls,
        weight: Decimal | float | int,
        volume: Decimal | float | int,
        mode: str,
        urgency: str | None = "standard",
    ) -> Decimal:
        weight_coeff, volume_coeff = cls.coefficients(mode)
        base = (
            cls.BASE_CHARGE
            + weight_coeff * Decimal(str(weight))
            + volume_coeff * Decimal(str(volume))
        )
        return _money(base * cls.urgency_multiplier(urgency))


def compute_transport_cost(
    weight: Decimal | float | int,
    volume: Decimal | float | int,
    mode: str,
    urgency: str | None = "standard",
) -> Decimal:
    return TransportCostEngine.calculate(weight, volume, mode, urgency)
