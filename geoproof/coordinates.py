"""
Fixed-point coordinate codec.

Latitude/longitude travel as signed micro-degree integers
(40.7128° -> 40712800); radius travels as whole meters.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Final, Union

from geoproof import COORDINATE_SCALE, MAX_RADIUS, MIN_RADIUS
from geoproof.errors import RadiusOutOfRange

MAX_LATITUDE: Final[int] = 90 * COORDINATE_SCALE
MAX_LONGITUDE: Final[int] = 180 * COORDINATE_SCALE

Degrees = Union[str, int, float, Decimal]


def validate_radius(radius_meters: int) -> None:
    """
    Enforce the geofence radius bounds.

    Raises:
        RadiusOutOfRange: If radius is outside [MIN_RADIUS, MAX_RADIUS]
    """
    if not (MIN_RADIUS <= radius_meters <= MAX_RADIUS):
        raise RadiusOutOfRange(
            f"radius {radius_meters}m outside [{MIN_RADIUS}, {MAX_RADIUS}]"
        )


def validate_position(latitude: int, longitude: int) -> None:
    """Reject micro-degree values beyond ±90° latitude / ±180° longitude."""
    if not (-MAX_LATITUDE <= latitude <= MAX_LATITUDE):
        raise ValueError(f"latitude out of range: {latitude}")
    if not (-MAX_LONGITUDE <= longitude <= MAX_LONGITUDE):
        raise ValueError(f"longitude out of range: {longitude}")


def to_micro_degrees(value: Degrees) -> int:
    """
    Convert decimal degrees to micro-degree integer.

    Floats go through ``str()`` first so 40.7128 encodes as 40712800,
    not 40712799. Half-even rounding below 1e-6.
    """
    try:
        d = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"not a decimal degree value: {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"not a finite degree value: {value!r}")
    return int((d * COORDINATE_SCALE).quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


def from_micro_degrees(value: int) -> Decimal:
    """Convert micro-degree integer back to exact decimal degrees."""
    return Decimal(value) / COORDINATE_SCALE
