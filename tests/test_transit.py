from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from logistics_pricer.repository import RateRepository
from logistics_pricer.rules.errors import RouteNotFound
from logistics_pricer.rules.transit import TransitEstimator, transit_from_route

ROUTE = SimpleNamespace(
    route_id="route-1",
    base_transit_time=21,
    customs_delay=3,
    port_congestion=2,
    restrictions=["Container inspection required"],
)


def test_standard_transit_sums_route_components() -> None:
    estimate = transit_from_route(ROUTE)

    assert estimate.total_time == 26
    assert estimate.confidence == Decimal("0.8")
    assert estimate.factors == [
        "Base transit time: 21 days",
        "Customs processing: 3 days",
        "Port congestion: 2 days",
    ]
    assert estimate.route_id == "route-1"


@pytest.mark.parametrize(
    "urgency, expected",
    [
        ("express", 18),  # 26 * 0.7 = 18.2
        ("urgent", 13),
    ],
)
def test_urgency_shortens_transit_after_summing(urgency: str, expected: int) -> None:
    estimate = transit_from_route(ROUTE, urgency)

    assert estimate.total_time == expected
    assert len(estimate.factors) == 4
    assert estimate.factors[-1] == f"{urgency} service applied"


def test_half_day_rounds_up() -> None:
    route = SimpleNamespace(base_transit_time=3, customs_delay=0, port_congestion=0)
    assert transit_from_route(route, "urgent").total_time == 2  # 1.5 -> 2


def test_missing_route_raises() -> None:
    repo = MagicMock()
    repo.find_route.return_value = None

    with pytest.raises(RouteNotFound) as excinfo:
        TransitEstimator(repo).estimate("br", "us", "SEA")

    assert excinfo.value.origin_country == "BR"
    assert excinfo.value.transport_mode == "sea"
    repo.find_route.assert_called_once_with("BR", "US", "sea", None)


def test_seeded_route_lookup(seeded_session) -> None:
    estimate = TransitEstimator(RateRepository(seeded_session)).estimate(
        "CN", "EU", "sea", "express", as_of=date(2024, 1, 1)
    )
    assert estimate.total_time == 22  # 31 * 0.7 = 21.7
    assert estimate.route_id == "route-2"


def test_unknown_urgency_falls_back_without_service_factor() -> None:
    estimate = transit_from_route(ROUTE, "overnight")

    assert estimate.total_time == 26
    assert len(estimate.factors) == 3
    assert not any("service applied" in f for f in estimate.factors)
