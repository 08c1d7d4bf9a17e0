"""
GeoProof - location-bound asset minting and presence proofs.

Typed-data schema: GeoMint v1 (see geoproof_eth.typed_data)
Coordinates: micro-degree integers, radius in whole meters.
"""

__version__ = "0.1.0"
__schema__ = "geoproof/v1"

# Geofence radius bounds (meters, inclusive)
MIN_RADIUS = 10
MAX_RADIUS = 10_000

# Fixed-point scale of latitude/longitude integers
COORDINATE_SCALE = 1_000_000
