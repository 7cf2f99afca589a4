from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from logistics_pricer.repository import RateRepository
from logistics_pricer.rules.duty import DutyBreakdown
from logistics_pricer.rules.errors import ComputationInvariantViolation, ShipmentValidationError
from logistics_pricer.rules.fee_schedule import AdditionalCosts, calculate_additional_costs
from logistics_pricer.rules.pricing_engine import PricingEngine, TransitTime, aggregate_costs

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

LEGACY_AIR = {"origin": "CN", "destination": "US", "weight": 100, "volume": 0.5, "transportType": "air"}


def _empty_repo() -> MagicMock:
    repo = MagicMock()
    repo.find_applicable_rates.return_value = []
    repo.find_route.return_value = None
    return repo


@pytest.mark.parametrize(
    "mode, options, expected_total",
    [
        ("sea", None, Decimal("250.00")),
        ("air", None, Decimal("150.00")),
        ("rail", None, Decimal("100.00")),
        ("sea", SimpleNamespace(insurance=True, customs_clearance=True), Decimal("420.00")),
    ],
)
def test_additional_costs(mode: str, options, expected_total: Decimal) -> None:
    costs = calculate_additional_costs(mode, Decimal("1000"), options)

    assert costs.documentation == Decimal("50.00")
    assert costs.storage == Decimal("0.00")
    assert costs.total == expected_total


def test_breakdown_fees_cover_only_clearance_and_documentation() -> None:
    additional = calculate_additional_costs("sea", 1000, SimpleNamespace(insurance=True, customs_clearance=True))
    result = aggregate_costs(
        Decimal("80.05"),
        DutyBreakdown(total_duty=Decimal("250.00")),
        additional,
        TransitTime(estimated=26, confidence=Decimal("0.8")),
        now=NOW,
    )

    assert result.breakdown.fees == Decimal("200.00")
    assert result.breakdown.insurance == Decimal("20.00")
    # handling is in the total but not in any breakdown line
    assert result.total_cost == Decimal("750.05")
    assert result.breakdown.total == result.total_cost


def test_validity_window_defaults_to_thirty_days() -> None:
    result = aggregate_costs(
        Decimal("10"),
        DutyBreakdown(),
        calculate_additional_costs("road", 0),
        TransitTime(estimated=7, confidence=Decimal("0.8")),
        now=NOW,
    )
    assert result.validity.valid_from == NOW
    assert result.validity.valid_to - result.validity.valid_from == timedelta(days=30)


def test_inconsistent_components_are_rejected() -> None:
    class SkewedCosts(AdditionalCosts):
        @property
        def total(self) -> Decimal:
            return Decimal("999.00")

    skewed = SkewedCosts(
        customs_clearance=Decimal("0.00"),
        documentation=Decimal("50.00"),
        insurance=Decimal("0.00"),
        handling=Decimal("50.00"),
        storage=Decimal("0.00"),
    )
    with pytest.raises(ComputationInvariantViolation):
        aggregate_costs(
            Decimal("10"),
            DutyBreakdown(),
            skewed,
            TransitTime(estimated=7, confidence=Decimal("0.8")),
            now=NOW,
        )


def test_fee_grouping_mistake_is_caught() -> None:
    class ClearanceOnlyFees(AdditionalCosts):
        @property
        def fees(self) -> Decimal:
            return self.customs_clearance  # documentation dropped from the breakdown

    costs = ClearanceOnlyFees(
        customs_clearance=Decimal("150.00"),
        documentation=Decimal("50.00"),
        insurance=Decimal("0.00"),
        handling=Decimal("50.00"),
        storage=Decimal("0.00"),
    )
    with pytest.raises(ComputationInvariantViolation):
        aggregate_costs(
            Decimal("10"),
            DutyBreakdown(),
            costs,
            TransitTime(estimated=7, confidence=Decimal("0.8")),
            now=NOW,
        )


def test_quote_without_rate_or_route_uses_defaults() -> None:
    engine = PricingEngine(_empty_repo(), clock=lambda: NOW)

    quote = engine.quote(LEGACY_AIR)
    result = quote.result

    assert quote.request_id is None
    assert result.base_transport_cost == Decimal("170.25")
    assert result.duties_and_tariffs.total_duty == Decimal("0.00")
    assert result.total_cost == Decimal("320.25")
    assert result.transit_time.estimated == 7
    assert result.transit_time.factors == ["Standard transit time"]
    assert result.notes[-1] == "Price calculated successfully"
    assert any("duties set to zero" in n for n in result.notes)


def test_sink_failures_do_not_fail_the_quote() -> None:
    sink = MagicMock()
    sink.save_shipment.side_effect = RuntimeError("db down")
    sink.save_pricing_result.side_effect = RuntimeError("db down")
    sink.save_duty_audit.side_effect = RuntimeError("db down")

    quote = PricingEngine(_empty_repo(), sink, clock=lambda: NOW).quote(LEGACY_AIR)

    assert quote.request_id is None
    assert quote.result.total_cost == Decimal("320.25")
    sink.save_pricing_result.assert_called_once()
    sink.mark_calculated.assert_not_called()


def test_sink_receives_request_id() -> None:
    sink = MagicMock()
    sink.save_shipment.return_value = 11

    quote = PricingEngine(_empty_repo(), sink, clock=lambda: NOW).quote(LEGACY_AIR)

    assert quote.request_id == 11
    sink.save_pricing_result.assert_called_once_with(11, quote.result)
    assert sink.save_duty_audit.call_args.kwargs["request_id"] == "11"
    sink.mark_calculated.assert_called_once_with(11)


def test_invalid_payload_raises_before_persisting() -> None:
    sink = MagicMock()
    with pytest.raises(ShipmentValidationError):
        PricingEngine(_empty_repo(), sink).quote({"origin": "CN"})
    sink.save_shipment.assert_not_called()


def test_structured_quote_against_seeded_rates(seeded_session) -> None:
    engine = PricingEngine(RateRepository(seeded_session), clock=lambda: NOW)
    payload = {
        "origin": {"country": "CN", "city": "Shenzhen"},
        "destination": {"country": "US", "city": "Los Angeles"},
        "cargo": {"weight": 100, "volume": 0.5, "hsCode": "8517.13.00", "value": 1000},
        "transport": {"mode": "sea", "urgency": "standard"},
        "options": {"customsClearance": True, "insurance": True},
    }

    result = engine.quote(payload, as_of=date(2024, 6, 1)).result

    # transport 80.05 + duty 250 + clearance 150 + docs 50 + insurance 20 + handling 200
    assert result.duties_and_tariffs.total_duty == Decimal("250.00")
    assert result.total_cost == Decimal("750.05")
    assert result.transit_time.estimated == 26
    assert result.notes == ["Price calculated successfully"]
