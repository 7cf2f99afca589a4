"""Seed registry loader for sample tariff rates and shipping routes."""
from __future__ import annotations

import json
import os
from datetime import date, datetime
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping

__all__ = [
    "MissingSeedField",
    "load_seed_registry",
]


class MissingSeedField(KeyError):
    """Raised when an expected field is missing from the seed registry."""

    def __init__(self, field_path: str):
        super().__init__(field_path)
        self.field_path = field_path

    def __str__(self) -> str:  # pragma: no cover - inherited KeyError repr is noisy
        return f"missing required seed field: {self.field_path}"


_DEFAULT_REGISTRY_PATH = Path(__file__).with_name("seed_data.json")

_REQUIRED_SECTIONS = {"tariff_rates", "shipping_routes"}
_REQUIRED_RATE_KEYS = {"origin_country", "classification_code", "base_rate", "effective_date", "source"}
_REQUIRED_ROUTE_KEYS = {
    "route_id",
    "origin_country",
    "destination_country",
    "transport_mode",
    "base_transit_time",
    "customs_delay",
    "port_congestion",
    "effective_date",
}
_RATE_SOURCES = {"WTO", "CUSTOMS_API", "MANUAL", "TRADE_AGREEMENT"}
_TRANSPORT_MODES = {"road", "air", "sea", "rail", "multimodal"}


def _resolve_registry_path(path: str | os.PathLike[str] | None) -> Path:
    if path is not None:
        return Path(path)
    override = os.getenv("SEED_DATA_PATH")
    if override:
        return Path(override)
    return _DEFAULT_REGISTRY_PATH


@lru_cache(maxsize=None)
def _load_registry(path_str: str) -> Dict[str, Any]:
    path = Path(path_str)
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, Mapping):
        raise ValueError("seed registry must be a mapping of section name to rows")
    return dict(data)


def _to_decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def _to_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value), "%Y-%m-%d").date()


def _optional_date(value: Any) -> date | None:
    return _to_date(value) if value else None


def _normalise_rate(index: int, record: Mapping[str, Any]) -> Dict[str, Any]:
    for key in _REQUIRED_RATE_KEYS:
        if key not in record:
            raise MissingSeedField(f"tariff_rates[{index}].{key}")

    base_rate = _to_decimal(record["base_rate"])
    special_rate = _to_decimal(record["special_rate"]) if record.get("special_rate") is not None else None
    for label, value in (("base_rate", base_rate), ("special_rate", special_rate)):
        if value is not None and not Decimal("0") <= value <= Decimal("100"):
            raise ValueError(f"tariff_rates[{index}].{label} must be within 0..100, got {value}")

    source = str(record["source"]).upper()
    if source not in _RATE_SOURCES:
        raise ValueError(f"tariff_rates[{index}].source {source!r} is not a known source")

    return {
        "origin_country": str(record["origin_country"]).strip().upper(),
        "classification_code": str(record["classification_code"]).strip(),
        "base_rate": base_rate,
        "special_rate": special_rate,
        "effective_date": _to_date(record["effective_date"]),
        "expiry_date": _optional_date(record.get("expiry_date")),
        "is_active": bool(record.get("is_active", True)),
        "source": source,
        "notes": record.get("notes"),
    }


def _normalise_route(index: int, record: Mapping[str, Any]) -> Dict[str, Any]:
    for key in _REQUIRED_ROUTE_KEYS:
        if key not in record:
            raise MissingSeedField(f"shipping_routes[{index}].{key}")

    mode = str(record["transport_mode"]).lower()
    if mode not in _TRANSPORT_MODES:
        raise ValueError(f"shipping_routes[{index}].transport_mode {mode!r} is not supported")

    days = {k: int(record[k]) for k in ("base_transit_time", "customs_delay", "port_congestion")}
    for label, value in days.items():
        if value < 0:
            raise ValueError(f"shipping_routes[{index}].{label} must be >= 0, got {value}")

    return {
        "route_id": str(record["route_id"]),
        "origin_country": str(record["origin_country"]).strip().upper(),
        "destination_country": str(record["destination_country"]).strip().upper(),
        "transport_mode": mode,
        **days,
        "restrictions": [str(r) for r in record.get("restrictions", [])],
        "is_active": bool(record.get("is_active", True)),
        "effective_date": _to_date(record["effective_date"]),
        "expiry_date": _optional_date(record.get("expiry_date")),
        "source": str(record.get("source", "MANUAL")),
        "notes": record.get("notes"),
    }


def load_seed_registry(
    *,
    registry_path: str | os.PathLike[str] | None = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """Return validated seed rows keyed by section, ready for ORM construction."""

    path = _resolve_registry_path(registry_path)
    registry = _load_registry(str(path))

    for section in _REQUIRED_SECTIONS:
        if section not in registry:
            raise MissingSeedField(section)
        if not isinstance(registry[section], list):
            raise ValueError(f"seed section {section} must be a list")

    return {
        "tariff_rates": [_normalise_rate(i, r) for i, r in enumerate(registry["tariff_rates"])],
        "shipping_routes": [_normalise_route(i, r) for i, r in enumerate(registry["shipping_routes"])],
    }
