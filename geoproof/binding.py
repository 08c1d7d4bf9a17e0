"""
Per-asset geo-claim and latest location proof.

Lifecycle:
    bind (on create) -> record_proof* (latest wins) -> erase (on destroy)
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from geoproof.errors import AlreadyBound, NotFound
from geoproof.models import GeoCoordinate, LocationProof

logger = logging.getLogger(__name__)


class GeoBindingRegistry:
    """
    Storage only. Proximity is decided by the caller before
    ``record_proof``; this class never recomputes it.

    Args:
        exists: Narrow hook answering "does this asset exist?"
    """

    def __init__(self, exists: Callable[[int], bool]):
        self._exists = exists
        self._claims: Dict[int, GeoCoordinate] = {}
        self._proofs: Dict[int, LocationProof] = {}

    def is_bound(self, asset_id: int) -> bool:
        return asset_id in self._claims

    def bind(self, asset_id: int, coordinate: GeoCoordinate) -> None:
        if asset_id in self._claims:
            raise AlreadyBound(f"asset {asset_id} already has a geo-claim")
        self._claims[asset_id] = coordinate

    def record_proof(self, asset_id: int, witness_hash: str, timestamp: int) -> LocationProof:
        if not self._exists(asset_id):
            raise NotFound(f"asset {asset_id} does not exist")
        proof = LocationProof(witness_hash=witness_hash, timestamp=timestamp)
        self._proofs[asset_id] = proof
        return proof

    def get_claim(self, asset_id: int) -> GeoCoordinate:
        if not self._exists(asset_id) or asset_id not in self._claims:
            raise NotFound(f"no geo-claim for asset {asset_id}")
        return self._claims[asset_id]

    def get_proof(self, asset_id: int) -> Optional[LocationProof]:
        """Latest proof, or None if the asset exists but was never verified."""
        if not self._exists(asset_id):
            raise NotFound(f"asset {asset_id} does not exist")
        return self._proofs.get(asset_id)

    def erase(self, asset_id: int) -> None:
        claim = self._claims.pop(asset_id, None)
        self._proofs.pop(asset_id, None)
        if claim is not None:
            logger.debug(f"Erased geo-binding for asset {asset_id}")
