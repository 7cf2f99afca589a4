from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional, Protocol

logger = logging.getLogger(__name__)


class TariffRateSource(Protocol):
    def find_applicable_rates(
        self, origin_country: str, classification_code: str, as_of: date
    ) -> List[Any]:
        ...


@dataclass(frozen=True)
class ResolvedRate:
    """Detached snapshot of the tariff row that applies at a given date."""
    tariff_id: str
    origin_country: str
    classification_code: str
    base_rate: Decimal
    special_rate: Optional[Decimal]
    effective_date: date
    expiry_date: Optional[date] = None
    source: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "ResolvedRate":
        special = getattr(row, "special_rate", None)
        return cls(
            tariff_id=str(row.id),
            origin_country=row.origin_country,
            classification_code=row.classification_code,
            base_rate=Decimal(str(row.base_rate)),
            special_rate=Decimal(str(special)) if special is not None else None,
            effective_date=row.effective_date,
            expiry_date=getattr(row, "expiry_date", None),
            source=getattr(row, "source", None),
            notes=getattr(row, "notes", None),
        )


class RateResolver:
    """Select the single applicable tariff rate for (origin, code, date)."""

    def __init__(self, repository: TariffRateSource):
        self.repository = repository

    def resolve(
        self,
        origin_country: str,
        classification_code: str,
        as_of: Optional[date] = None,
    ) -> Optional[ResolvedRate]:
        origin = (origin_country or "").strip().upper()
        code = (classification_code or "").strip()
        on = as_of or date.today()

        candidates = self.repository.find_applicable_rates(origin, code, on)
        if not candidates:
            logger.debug("No applicable tariff rate for %s/%s on %s", origin, code, on)
            return None

        # Repository orders by effective_date desc, id desc; re-sort anyway so a
        # source that ignores ordering still yields the latest effective row.
        chosen = sorted(
            candidates,
            key=lambda r: (r.effective_date, int(getattr(r, "id", 0) or 0)),
            reverse=True,
        )[0]
        logger.debug(
            "Resolved tariff %s for %s/%s on %s (effective %s, %d candidate(s))",
            chosen.id, origin, code, on, chosen.effective_date, len(candidates),
        )
        return ResolvedRate.from_row(chosen)
