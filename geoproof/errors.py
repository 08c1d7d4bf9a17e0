"""
Error taxonomy for the geo-binding core.

Every core operation either succeeds or raises exactly one of these.
The façade decides whether to expose ``code`` or mask it.
"""

from __future__ import annotations


class GeoProofError(Exception):
    """Base class for terminal request failures."""

    code = "GEO_PROOF_ERROR"


class RadiusOutOfRange(GeoProofError):
    """Raised when a geofence radius falls outside [MIN_RADIUS, MAX_RADIUS]."""

    code = "RADIUS_OUT_OF_RANGE"


class Expired(GeoProofError):
    """Raised when a signed claim is presented after its deadline."""

    code = "EXPIRED"


class InvalidSignature(GeoProofError):
    """Raised when a claim signature does not recover to the trusted oracle."""

    code = "INVALID_SIGNATURE"


class AlreadyBound(GeoProofError):
    code = "ALREADY_BOUND"


class NotFound(GeoProofError):
    code = "NOT_FOUND"


class Unauthorized(GeoProofError):
    code = "UNAUTHORIZED"
