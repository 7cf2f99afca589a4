"""Error types raised by the pricing rules."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

__all__ = [
    "ShipmentValidationError",
    "RouteNotFound",
    "ComputationInvariantViolation",
]


class ShipmentValidationError(ValueError):
    """A shipment is missing required fields or violates a field constraint."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors: List[Dict[str, Any]] = list(errors or [])


class RouteNotFound(LookupError):
    """No active shipping route exists for an origin/destination/mode triple."""

    def __init__(self, origin_country: str, destination_country: str, transport_mode: str):
        super().__init__(origin_country, destination_country, transport_mode)
        self.origin_country = origin_country
        self.destination_country = destination_country
        self.transport_mode = transport_mode

    def __str__(self) -> str:
        return (
            f"no route found for {self.origin_country}->{self.destination_country} "
            f"via {self.transport_mode}"
        )


class ComputationInvariantViolation(AssertionError):
    """Aggregated figures disagree with their components."""
