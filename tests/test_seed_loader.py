import json
from decimal import Decimal

import pytest

from logistics_pricer.rules.seed_loader import MissingSeedField, load_seed_registry


def test_default_registry_loads() -> None:
    registry = load_seed_registry()

    assert len(registry["tariff_rates"]) == 6
    assert len(registry["shipping_routes"]) == 3
    vn = next(r for r in registry["tariff_rates"] if r["origin_country"] == "VN")
    assert vn["special_rate"] == Decimal("4.5")
    assert all(r["is_active"] for r in registry["tariff_rates"])


def test_missing_rate_field_is_reported(tmp_path) -> None:
    path = tmp_path / "seed.json"
    path.write_text(
        json.dumps(
            {
                "tariff_rates": [{"origin_country": "CN", "classification_code": "1", "effective_date": "2020-01-01", "source": "WTO"}],
                "shipping_routes": [],
            }
        )
    )

    with pytest.raises(MissingSeedField) as excinfo:
        load_seed_registry(registry_path=path)
    assert excinfo.value.field_path == "tariff_rates[0].base_rate"


def test_out_of_range_rate_is_rejected(tmp_path) -> None:
    path = tmp_path / "seed.json"
    path.write_text(
        json.dumps(
            {
                "tariff_rates": [
                    {"origin_country": "CN", "classification_code": "1", "base_rate": 140,
                     "effective_date": "2020-01-01", "source": "WTO"}
                ],
                "shipping_routes": [],
            }
        )
    )

    with pytest.raises(ValueError):
        load_seed_registry(registry_path=path)
