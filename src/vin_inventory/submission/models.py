"""
Inventory Wire Models
=====================

Request and response payloads of the inventory update endpoint:

    POST phone_update_inventory.php
    {"vin": "<string>", "coordinates": "<lat>, <lon>"}
    -> {"status": "<string>", "message": "<string>"}
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping

import numpy as np

SUCCESS_STATUS = "success"


def format_degrees(value: float) -> str:
    """
    Render a decimal degree value independent of the process locale.

    Uses the shortest representation that round-trips, always with '.'
    as decimal separator and never in exponent notation.

    Examples:
        >>> format_degrees(37.422)
        '37.422'
        >>> format_degrees(1e-07)
        '0.0000001'
    """
    return np.format_float_positional(float(value), unique=True, trim='0')


@dataclass(frozen=True)
class Coordinate:
    """A location fix in signed decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self):
        latitude = float(self.latitude)
        longitude = float(self.longitude)
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            raise ValueError(f"Coordinate must be finite, got ({latitude}, {longitude})")
        if not -90.0 <= latitude <= 90.0:
            raise ValueError(f"Latitude out of range [-90, 90]: {latitude}")
        if not -180.0 <= longitude <= 180.0:
            raise ValueError(f"Longitude out of range [-180, 180]: {longitude}")
        object.__setattr__(self, 'latitude', latitude)
        object.__setattr__(self, 'longitude', longitude)

    def render(self) -> str:
        """Wire form: '<lat>, <lon>'."""
        return f"{format_degrees(self.latitude)}, {format_degrees(self.longitude)}"

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class InventoryUpdateRequest:
    """Outbound payload, created fresh for every submission."""
    vin: str
    coordinates: str

    @classmethod
    def create(cls, vin: str, coordinate: Coordinate) -> 'InventoryUpdateRequest':
        return cls(vin=vin, coordinates=coordinate.render())

    def to_dict(self) -> Dict[str, str]:
        return {"vin": self.vin, "coordinates": self.coordinates}

    def to_json(self) -> str:
        """Compact JSON body."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


@dataclass(frozen=True)
class InventoryUpdateResponse:
    """Parsed response body. Any status other than 'success' is a failure."""
    status: str
    message: str = ""

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS_STATUS

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'InventoryUpdateResponse':
        status = data.get("status")
        message = data.get("message")
        return cls(
            status="" if status is None else str(status),
            message="" if message is None else str(message),
        )
