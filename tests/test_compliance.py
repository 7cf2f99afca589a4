from datetime import date
from decimal import Decimal

import pytest

from logistics_pricer.repository import RateRepository
from logistics_pricer.rules.compliance import check_restrictions, required_documents


def _by_type(docs):
    return {d.type: d for d in docs}


def test_cn_us_sea_high_value_documents() -> None:
    docs = required_documents("cn", "us", "SEA", Decimal("3000"))

    assert [d.type for d in docs] == [
        "Commercial Invoice",
        "Packing List",
        "Bill of Lading",
        "Certificate of Origin",
        "Phytosanitary Certificate",
        "Insurance Certificate",
    ]
    found = _by_type(docs)
    assert found["Bill of Lading"].description == "Required for maritime shipments"
    assert found["Certificate of Origin"].required is True
    assert found["Certificate of Origin"].priority == "high"
    assert found["Certificate of Origin"].description == "Required for shipments over $2,500"
    assert found["Phytosanitary Certificate"].priority == "medium"
    assert found["Insurance Certificate"].priority == "low"


def test_unlisted_lane_gets_default_documents_plus_mode() -> None:
    docs = required_documents("BR", "US", "air", 100)

    assert [d.type for d in docs] == ["Commercial Invoice", "Packing List", "Air Waybill"]
    assert all(d.required for d in docs)


@pytest.mark.parametrize("value", [None, 2500, "2500.9"])
def test_certificate_of_origin_stays_conditional_at_threshold(value) -> None:
    found = _by_type(required_documents("CN", "EU", declared_value=value))

    assert found["Certificate of Origin"].required is False
    assert found["Certificate of Origin"].priority == "medium"


def test_road_adds_no_transport_document() -> None:
    docs = required_documents("BR", "AR", "road")
    assert [d.type for d in docs] == ["Commercial Invoice", "Packing List"]


def test_restrictions_merge_lane_and_route_lists() -> None:
    check = check_restrictions("CN", "US", ["Container inspection required", "Fumigation required"])

    assert check.restrictions == [
        "Section 301 tariffs may apply",
        "Container inspection required",
        "Phytosanitary certificate for wooden packaging",
        "Fumigation required",
    ]
    assert check.count == 4
    assert check.severity == "medium"


def test_unrestricted_lane_is_low_severity() -> None:
    check = check_restrictions("BR", "US")
    assert check.to_dict() == {"restrictions": [], "count": 0, "severity": "low"}


def test_lane_restrictions_collects_every_route(seeded_session) -> None:
    restrictions = RateRepository(seeded_session).lane_restrictions("cn", "us", as_of=date(2024, 1, 1))

    assert restrictions == [
        "Container inspection required",
        "Phytosanitary certificate for wooden packaging",
        "Dangerous goods declaration if applicable",
    ]
