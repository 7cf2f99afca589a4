"""Lane compliance lookups: customs documents and shipping restrictions.

Per-lane tables keyed "ORIGIN-DESTINATION":

  - documents are tiered required / conditional / optional; lanes with no
    entry need only a commercial invoice and a packing list,
  - sea adds a Bill of Lading, air adds an Air Waybill,
  - a declared value over 2,500 (whole units) makes the Certificate of
    Origin mandatory,
  - restrictions merge the lane list with the restrictions of its routes.

A document listed twice is kept once, at its strictest tier.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

CERTIFICATE_OF_ORIGIN_THRESHOLD = 2500

LANE_DOCUMENTS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "CN-US": {
        "required": ("Commercial Invoice", "Packing List", "Bill of Lading"),
        "conditional": ("Certificate of Origin", "Phytosanitary Certificate"),
        "optional": ("Insurance Certificate",),
    },
    "CN-EU": {
        "required": ("Commercial Invoice", "Packing List", "Bill of Lading"),
        "conditional": ("Certificate of Origin", "CE Declaration"),
        "optional": ("Insurance Certificate", "REACH Declaration"),
    },
}
DEFAULT_DOCUMENTS: Dict[str, Tuple[str, ...]] = {
    "required": ("Commercial Invoice", "Packing List"),
    "conditional": (),
    "optional": (),
}

MODE_DOCUMENTS: Dict[str, Tuple[str, str]] = {
    "sea": ("Bill of Lading", "Required for maritime shipments"),
    "air": ("Air Waybill", "Required for air freight shipments"),
}

LANE_RESTRICTIONS: Dict[str, Tuple[str, ...]] = {
    "CN-US": (
        "Section 301 tariffs may apply",
        "Container inspection required",
        "Phytosanitary certificate for wooden packaging",
    ),
    "CN-EU": (
        "CE marking required for certain products",
        "REACH compliance required",
        "RoHS compliance for electronics",
    ),
}

# (tier, required, priority, description template)
_TIERS = (
    ("required", True, "high", "{doc} is mandatory for this shipment"),
    ("conditional", False, "medium", "{doc} may be required depending on product type"),
    ("optional", False, "low", "{doc} is optional but recommended"),
)


def lane_key(origin_country: str, destination_country: str) -> str:
    return f"{(origin_country or '').strip().upper()}-{(destination_country or '').strip().upper()}"


@dataclass(frozen=True)
class RequiredDocument:
    type: str
    required: bool
    priority: str  # high | medium | low
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "required": self.required,
            "priority": self.priority,
            "description": self.description,
        }


def required_documents(
    origin_country: str,
    destination_country: str,
    transport_mode: Optional[str] = None,
    declared_value: Decimal | int | float | str | None = None,
) -> List[RequiredDocument]:
    tiers = LANE_DOCUMENTS.get(lane_key(origin_country, destination_country), DEFAULT_DOCUMENTS)

    docs: Dict[str, RequiredDocument] = {}
    for tier, required, priority, template in _TIERS:
        for name in tiers[tier]:
            docs.setdefault(name, RequiredDocument(name, required, priority, template.format(doc=name)))

    def _require(name: str, description: str) -> None:
        # Replacing the value keeps the document's original position
        docs[name] = RequiredDocument(name, True, "high", description)

    mode_doc = MODE_DOCUMENTS.get((transport_mode or "").strip().lower())
    if mode_doc:
        _require(*mode_doc)

    if declared_value is not None and int(Decimal(str(declared_value))) > CERTIFICATE_OF_ORIGIN_THRESHOLD:
        _require("Certificate of Origin", f"Required for shipments over ${CERTIFICATE_OF_ORIGIN_THRESHOLD:,}")

    return list(docs.values())


@dataclass(frozen=True)
class RestrictionCheck:
    restrictions: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.restrictions)

    @property
    def severity(self) -> str:
        return "medium" if self.restrictions else "low"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "restrictions": list(self.restrictions),
            "count": self.count,
            "severity": self.severity,
        }


def check_restrictions(
    origin_country: str,
    destination_country: str,
    route_restrictions: Iterable[str] = (),
) -> RestrictionCheck:
    lane = LANE_RESTRICTIONS.get(lane_key(origin_country, destination_country), ())
    merged = list(dict.fromkeys([*lane, *route_restrictions]))
    return RestrictionCheck(restrictions=merged)
