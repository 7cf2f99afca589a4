# src/logistics_pricer/persistence.py
"""SQLAlchemy persistence sink for pricing audit records."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from .models import DutyCalculation, PricingRequest, PricingResponse

if TYPE_CHECKING:  # pragma: no cover
    from .rules.duty import DutyBreakdown
    from .rules.normalizer import Shipment
    from .rules.pricing_engine import PricingResult

logger = logging.getLogger(__name__)


class SqlPersistenceSink:
    """Store-and-forget writer for requests, responses and duty audits."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def save_shipment(self, shipment: "Shipment") -> int:
        row = PricingRequest(
            origin_country=shipment.origin.country,
            destination_country=shipment.destination.country,
            transport_mode=shipment.transport.mode,
            classification_code=shipment.cargo.classification_code,
            shipment=shipment.to_dict(),
            status="pending",
        )
        self.db.add(row)
        self._commit()
        return row.id

    def save_pricing_result(self, request_id: Optional[int], result: "PricingResult") -> int:
        row = PricingResponse(
            request_id=request_id,
            total_cost=result.total_cost,
            valid_from=result.validity.valid_from,
            valid_to=result.validity.valid_to,
            payload=result.to_dict(),
        )
        self.db.add(row)
        self._commit()
        return row.id

    def save_duty_audit(
        self,
        *,
        request_id: Optional[str],
        origin_country: str,
        destination_country: Optional[str],
        classification_code: str,
        declared_value: Decimal,
        duty: "DutyBreakdown",
    ) -> int:
        row = DutyCalculation(
            request_id=request_id,
            origin_country=origin_country,
            destination_country=destination_country,
            classification_code=classification_code,
            declared_value=declared_value,
            base_duty=duty.base_duty,
            special_duty=duty.special_duty,
            total_duty=duty.total_duty,
            applied_rates=[r.to_dict() for r in duty.applied_rates],
        )
        self.db.add(row)
        self._commit()
        return row.id

    def mark_calculated(self, request_id: int) -> None:
        self.db.execute(
            update(PricingRequest)
            .where(PricingRequest.id == request_id)
            .values(status="calculated")
        )
        self._commit()
