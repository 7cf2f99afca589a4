# src/logistics_pricer/repository.py
"""SQLAlchemy-backed rate repository: tariff rates and shipping routes."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from .models import ShippingRoute, TariffRate

logger = logging.getLogger(__name__)


def _norm_country(code: str) -> str:
    return (code or "").strip().upper()


@dataclass
class RouteValidation:
    valid: bool
    route: Optional[ShippingRoute] = None
    alternatives: List[ShippingRoute] = field(default_factory=list)

    @property
    def restrictions(self) -> List[str]:
        return list(self.route.restrictions or []) if self.route is not None else []


class RateRepository:
    """Lookups over tariff_rates / shipping_routes for one DB session."""

    def __init__(self, db: Session):
        self.db = db

    # ------------- Tariff rates -------------

    def find_applicable_rates(
        self, origin_country: str, classification_code: str, as_of: date
    ) -> List[TariffRate]:
        """
        Active rows for the key whose window contains ``as_of``:
        effective_date <= as_of and (no expiry or expiry_date > as_of).
        Newest effective date first; same-date rows newest insert first.
        """
        return list(
            self.db.execute(
                select(TariffRate)
                .where(
                    TariffRate.origin_country == _norm_country(origin_country),
                    TariffRate.classification_code == (classification_code or "").strip(),
                    TariffRate.is_active.is_(True),
                    TariffRate.effective_date <= as_of,
                    or_(
                        TariffRate.expiry_date.is_(None),
                        TariffRate.expiry_date > as_of,
                    ),
                )
                .order_by(TariffRate.effective_date.desc(), TariffRate.id.desc())
            )
            .scalars()
            .all()
        )

    def supersede_rate(
        self,
        origin_country: str,
        classification_code: str,
        base_rate: Decimal,
        *,
        special_rate: Optional[Decimal] = None,
        effective_date: Optional[date] = None,
        expiry_date: Optional[date] = None,
        source: str = "MANUAL",
        notes: Optional[str] = None,
    ) -> TariffRate:
        """
        Replace the rate for a key in one transaction:
          - prior active rows still open on the new effective date get
            ``expiry_date`` = new effective date, so lookups before that date
            keep resolving to them;
          - when the new rate is already in force (effective today or
            earlier) the prior active rows are also deactivated.
        Readers never see the key without an applicable row.
        """
        origin = _norm_country(origin_country)
        code = (classification_code or "").strip()
        starts = effective_date or date.today()
        same_key = (
            TariffRate.origin_country == origin,
            TariffRate.classification_code == code,
            TariffRate.is_active.is_(True),
        )

        closed = self.db.execute(
            update(TariffRate)
            .where(
                *same_key,
                TariffRate.effective_date < starts,
                or_(TariffRate.expiry_date.is_(None), TariffRate.expiry_date > starts),
            )
            .values(expiry_date=starts)
            .execution_options(synchronize_session="fetch")
        ).rowcount

        deactivated = 0
        if starts <= date.today():
            deactivated = self.db.execute(
                update(TariffRate)
                .where(*same_key)
                .values(is_active=False)
                .execution_options(synchronize_session="fetch")
            ).rowcount

        row = TariffRate(
            origin_country=origin,
            classification_code=code,
            base_rate=base_rate,
            special_rate=special_rate,
            effective_date=starts,
            expiry_date=expiry_date,
            is_active=True,
            source=source,
            notes=notes,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)

        logger.info(
            "Superseded tariff rate %s/%s from %s: %s prior row(s) closed, %s deactivated, new id=%s",
            origin, code, starts, closed, deactivated, row.id,
        )
        return row

    def rate_history(
        self,
        origin_country: Optional[str] = None,
        classification_code: Optional[str] = None,
        limit: int = 50,
    ) -> List[TariffRate]:
        stmt = select(TariffRate).where(TariffRate.is_active.is_(True))
        if origin_country:
            stmt = stmt.where(TariffRate.origin_country == _norm_country(origin_country))
        if classification_code:
            stmt = stmt.where(TariffRate.classification_code == classification_code.strip())
        stmt = stmt.order_by(TariffRate.effective_date.desc(), TariffRate.id.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    # ------------- Shipping routes -------------

    def _active_routes(self, on: date):
        return select(ShippingRoute).where(
            ShippingRoute.is_active.is_(True),
            ShippingRoute.effective_date <= on,
            or_(
                ShippingRoute.expiry_date.is_(None),
                ShippingRoute.expiry_date > on,
            ),
        )

    def find_route(
        self,
        origin_country: str,
        destination_country: str,
        transport_mode: str,
        as_of: Optional[date] = None,
    ) -> Optional[ShippingRoute]:
        on = as_of or date.today()
        return (
            self.db.execute(
                self._active_routes(on)
                .where(
                    ShippingRoute.origin_country == _norm_country(origin_country),
                    ShippingRoute.destination_country == _norm_country(destination_country),
                    ShippingRoute.transport_mode == (transport_mode or "").strip().lower(),
                )
                .order_by(ShippingRoute.effective_date.desc(), ShippingRoute.id.desc())
            )
            .scalars()
            .first()
        )

    def list_routes(
        self,
        origin_country: Optional[str] = None,
        destination_country: Optional[str] = None,
        transport_mode: Optional[str] = None,
        as_of: Optional[date] = None,
    ) -> List[ShippingRoute]:
        stmt = self._active_routes(as_of or date.today())
        if origin_country:
            stmt = stmt.where(ShippingRoute.origin_country == _norm_country(origin_country))
        if destination_country:
            stmt = stmt.where(ShippingRoute.destination_country == _norm_country(destination_country))
        if transport_mode:
            stmt = stmt.where(ShippingRoute.transport_mode == transport_mode.strip().lower())
        stmt = stmt.order_by(ShippingRoute.route_id)
        return list(self.db.execute(stmt).scalars().all())

    def lane_restrictions(
        self,
        origin_country: str,
        destination_country: str,
        as_of: Optional[date] = None,
    ) -> List[str]:
        """Restrictions of every active route on the lane, first occurrence kept."""
        seen: List[str] = []
        for route in self.list_routes(origin_country, destination_country, as_of=as_of):
            for restriction in route.restrictions or []:
                if restriction not in seen:
                    seen.append(restriction)
        return seen

    def validate_route(
        self,
        origin_country: str,
        destination_country: str,
        transport_mode: str,
        as_of: Optional[date] = None,
    ) -> RouteValidation:
        """Is the lane served in this mode? If not, which other modes serve it?"""
        route = self.find_route(origin_country, destination_country, transport_mode, as_of)
        if route is not None:
            return RouteValidation(valid=True, route=route)
        return RouteValidation(
            valid=False,
            alternatives=self.list_routes(origin_country, destination_country, as_of=as_of),
        )
