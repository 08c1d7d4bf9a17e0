"""
Deterministic geofence decision in integer-only arithmetic.

All angles are fixed-point radians at ``FixedPointConstants.scale``
(1e18 by default). No floats are involved anywhere, so a given input
yields the same distance on every interpreter and platform, which lets a
third party re-run a presence decision during an audit.

Distances are truncated to whole meters; a candidate whose truncated
distance equals the radius is inside the fence.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import isqrt
from typing import Final, Optional, Protocol

from geoproof import COORDINATE_SCALE
from geoproof.models import GeoCoordinate, Position


@dataclass(frozen=True)
class FixedPointConstants:
    """Named constants for the fixed-point trigonometry."""

    scale: int = 10**18
    pi: int = 3_141_592_653_589_793_238  # floor(pi * 1e18)
    earth_radius_m: int = 6_371_000
    coordinate_scale: int = COORDINATE_SCALE


DEFAULT_CONSTANTS: Final[FixedPointConstants] = FixedPointConstants()


def _div(a: int, b: int) -> int:
    """Integer division truncating toward zero (keeps sin/asin odd)."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


class FixedPointMath:
    """Trigonometry over fixed-point integers."""

    def __init__(self, constants: FixedPointConstants = DEFAULT_CONSTANTS):
        self.k = constants
        self.half_pi = constants.pi // 2
        self.two_pi = constants.pi * 2

    def mul(self, a: int, b: int) -> int:
        return _div(a * b, self.k.scale)

    def radians(self, micro_degrees: int) -> int:
        return _div(micro_degrees * self.k.pi, 180 * self.k.coordinate_scale)

    def wrap(self, x: int) -> int:
        """Reduce an angle to [-pi, pi)."""
        return (x + self.k.pi) % self.two_pi - self.k.pi

    def sin(self, x: int) -> int:
        x = self.wrap(x)
        # sin(pi - x) == sin(x): fold into [-pi/2, pi/2] for fast convergence
        if x > self.half_pi:
            x = self.k.pi - x
        elif x < -self.half_pi:
            x = -self.k.pi - x

        x2 = self.mul(x, x)
        term = x
        total = x
        n = 1
        while term != 0:
            term = -_div(self.mul(term, x2), (2 * n) * (2 * n + 1))
            total += term
            n += 1
        return total

    def cos(self, x: int) -> int:
        return self.sin(x + self.half_pi)

    def sqrt(self, x: int) -> int:
        if x < 0:
            raise ValueError("sqrt of negative fixed-point value")
        return isqrt(x * self.k.scale)

    def asin(self, y: int) -> int:
        """asin for y in [0, 1] (fixed-point)."""
        s = self.k.scale
        if y < 0 or y > s:
            raise ValueError("asin argument outside [0, 1]")
        # Above 1/sqrt(2) the series crawls; use asin(y) = pi/2 - asin(sqrt(1 - y^2))
        if 2 * y * y > s * s:
            return self.half_pi - self.asin(isqrt(s * s - y * y))

        y2 = self.mul(y, y)
        term = y
        total = y
        n = 0
        while term != 0:
            term = (self.mul(term, y2) * (2 * n + 1) ** 2) // ((2 * n + 2) * (2 * n + 3))
            total += term
            n += 1
        return total


class DistanceStrategy(Protocol):
    """Great-circle distance between two micro-degree points, whole meters."""

    def distance_meters(self, lat1: int, lon1: int, lat2: int, lon2: int) -> int:
        ...


class HaversineStrategy:
    """
    a = sin²(Δlat/2) + cos(lat1)·cos(lat2)·sin²(Δlon/2)
    c = 2·asin(√a)
    d = R·c
    """

    def __init__(self, constants: FixedPointConstants = DEFAULT_CONSTANTS):
        self.constants = constants
        self.fp = FixedPointMath(constants)

    def distance_meters(self, lat1: int, lon1: int, lat2: int, lon2: int) -> int:
        fp = self.fp
        s = self.constants.scale

        phi1 = fp.radians(lat1)
        phi2 = fp.radians(lat2)
        dphi = fp.radians(lat2 - lat1)
        dlmb = fp.radians(lon2 - lon1)

        sin_dphi = fp.sin(_div(dphi, 2))
        sin_dlmb = fp.sin(_div(dlmb, 2))

        a = fp.mul(sin_dphi, sin_dphi) + fp.mul(
            fp.mul(fp.cos(phi1), fp.cos(phi2)), fp.mul(sin_dlmb, sin_dlmb)
        )
        a = min(max(a, 0), s)

        c = 2 * fp.asin(fp.sqrt(a))
        return self.constants.earth_radius_m * c // s


class EquirectangularStrategy:
    """
    Flat-earth approximation, accurate for fences of a few kilometers:
    x = Δlon·cos(mean lat), y = Δlat, d = R·√(x² + y²)
    """

    def __init__(self, constants: FixedPointConstants = DEFAULT_CONSTANTS):
        self.constants = constants
        self.fp = FixedPointMath(constants)

    def distance_meters(self, lat1: int, lon1: int, lat2: int, lon2: int) -> int:
        fp = self.fp
        mean_phi = fp.radians(_div(lat1 + lat2, 2))
        x = fp.mul(fp.wrap(fp.radians(lon2 - lon1)), fp.cos(mean_phi))
        y = fp.radians(lat2 - lat1)
        c = isqrt(x * x + y * y)
        return self.constants.earth_radius_m * c // self.constants.scale


class ProximityEngine:
    """
    Geofence membership test: inside iff distance <= radius.

    The registry never recomputes this; callers run ``within_fence``
    before recording a proof.
    """

    def __init__(self, strategy: Optional[DistanceStrategy] = None):
        self.strategy: DistanceStrategy = strategy or HaversineStrategy()

    def distance_meters(self, a: Position, b: Position) -> int:
        return self.strategy.distance_meters(
            a.latitude, a.longitude, b.latitude, b.longitude
        )

    def within_fence(self, center: GeoCoordinate, candidate: Position) -> bool:
        return self.distance_meters(center, candidate) <= center.radius_meters
