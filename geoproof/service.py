"""
Geo-mint service: the single serialized entry point.

Every mutating operation (mint, verify_location, oracle changes, asset
destruction) runs under one lock and either completes fully or raises
one GeoProofError with all state left as before.

Flow:
    mint:            deadline/radius/nonce/signature -> create asset -> bind -> consume nonce
    verify_location: claim lookup -> geofence decision -> record proof
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from eth_utils import to_checksum_address

from geoproof.audit import AuditTrail
from geoproof.binding import GeoBindingRegistry
from geoproof.errors import AlreadyBound, GeoProofError
from geoproof.models import (
    AssetErased,
    GeoCoordinate,
    GeoMinted,
    LocationProof,
    LocationVerified,
    MintClaim,
    OracleRequirementChanged,
    OracleUpdated,
    Position,
    PresenceResult,
    normalize_hex32,
)
from geoproof.oracle import OracleAuthority
from geoproof.proximity import ProximityEngine
from geoproof.verifier import SignedClaimVerifier
from geoproof_eth.metrics import Metrics
from geoproof_eth.settings import Settings
from geoproof_eth.signer import SignatureInput
from geoproof_eth.typed_data import TypedDataDomain
from registry.access import AccessControl
from registry.assets import AssetRegistry

logger = logging.getLogger(__name__)


def mask_address(address: str) -> str:
    """0x1234...abcd form for logs and API responses."""
    if len(address) < 42:
        return address
    return f"{address[:6]}...{address[38:]}"


class GeoMintService:
    """
    Composes verifier, proximity engine and binding registry with the
    external asset registry and access control.

    Usage:
        service = GeoMintService.from_settings(Settings.load())
        asset_id = service.mint(recipient, uri, coordinate, signature, deadline)
        result = service.verify_location(asset_id, candidate, witness_hash)
    """

    def __init__(
        self,
        *,
        verifier: SignedClaimVerifier,
        assets: AssetRegistry,
        access: AccessControl,
        engine: Optional[ProximityEngine] = None,
        audit: Optional[AuditTrail] = None,
        metrics: Optional[Metrics] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.verifier = verifier
        self.assets = assets
        self.access = access
        self.engine = engine if engine is not None else ProximityEngine()
        self.audit = audit if audit is not None else AuditTrail()
        self.metrics = metrics if metrics is not None else Metrics()
        self.clock = clock or verifier.clock
        self.binding = GeoBindingRegistry(exists=assets.asset_exists)
        self._lock = threading.RLock()

        assets.on_destroy(self._on_asset_destroyed)

    @staticmethod
    def from_settings(
        settings: Settings, *, clock: Optional[Callable[[], int]] = None
    ) -> GeoMintService:
        domain = TypedDataDomain(
            chain_id=settings.CHAIN_ID,
            verifying_contract=settings.REGISTRY_ADDRESS,
            name=settings.DOMAIN_NAME,
            version=settings.DOMAIN_VERSION,
        )
        oracle = OracleAuthority(
            trusted_signer=settings.ORACLE_ADDRESS or None,
            required=settings.ORACLE_REQUIRED,
        )
        verifier = SignedClaimVerifier(
            domain, oracle, clock=clock or (lambda: int(time.time()))
        )
        return GeoMintService(
            verifier=verifier,
            assets=AssetRegistry(),
            access=AccessControl(settings.ADMIN_ADDRESSES),
            audit=AuditTrail(settings.AUDIT_LOG_PATH or None),
        )

    @property
    def oracle(self) -> OracleAuthority:
        return self.verifier.oracle

    @property
    def domain_separator(self) -> bytes:
        return self.verifier.domain_separator

    def nonce_of(self, identity: str) -> int:
        return self.verifier.nonce_of(identity)

    # --- Mint ---

    def mint(
        self,
        recipient: str,
        metadata_ref: str,
        coordinate: GeoCoordinate,
        signature: SignatureInput,
        deadline: int,
    ) -> int:
        """
        Create an asset bound to an oracle-attested coordinate.

        The signed claim must name the recipient as minter, the next
        sequential asset id and the recipient's current nonce.

        Returns:
            The new asset id

        Raises:
            Expired, RadiusOutOfRange, InvalidSignature, AlreadyBound
        """
        recipient = to_checksum_address(recipient)
        with self._lock, self.metrics.timed("mint_ms"):
            claim = MintClaim(
                minter=recipient,
                asset_id=self.assets.next_asset_id(),
                coordinate=coordinate,
                nonce=self.verifier.nonce_of(recipient),
                deadline=deadline,
            )
            try:
                self.verifier.check(claim, signature)
                if self.binding.is_bound(claim.asset_id):
                    raise AlreadyBound(f"asset {claim.asset_id} already has a geo-claim")
            except GeoProofError as e:
                self.metrics.inc("mint_rejected_total", code=e.code)
                logger.warning(f"Mint rejected for {mask_address(recipient)}: {e.code}")
                raise

            asset_id = self.assets.create_asset(recipient, metadata_ref)
            self.binding.bind(asset_id, coordinate)
            self.verifier.consume(claim)

            self.metrics.inc("mints_total")
            self.audit.append(
                GeoMinted(asset_id=asset_id, minter=recipient, coordinate=coordinate)
            )
            logger.info(f"Minted asset {asset_id} to {mask_address(recipient)}")
            return asset_id

    # --- Presence ---

    def verify_location(
        self, asset_id: int, candidate: Position, witness_hash: str
    ) -> PresenceResult:
        """
        Record a location proof if ``candidate`` lies inside the asset's fence.

        A candidate outside the fence is not an error: the result carries
        ``verified=False`` and any earlier proof stays as it was.

        Raises:
            NotFound: If the asset does not exist
            ValueError: If witness_hash is not 32-byte hex
        """
        witness_hash = normalize_hex32(witness_hash)
        with self._lock:
            center = self.binding.get_claim(asset_id)
            distance = self.engine.distance_meters(center, candidate)

            if distance > center.radius_meters:
                self.metrics.inc("presence_rejected_total")
                logger.warning(
                    f"Presence rejected for asset {asset_id}: "
                    f"{distance}m > {center.radius_meters}m"
                )
                return PresenceResult(
                    verified=False, reason="OUTSIDE_GEOFENCE", distance_meters=distance
                )

            proof = self.binding.record_proof(asset_id, witness_hash, self.clock())
            self.metrics.inc("presence_verified_total")
            self.audit.append(LocationVerified(asset_id=asset_id, witness_hash=witness_hash))
            logger.info(f"Presence verified for asset {asset_id} ({distance}m)")
            return PresenceResult(
                verified=True, reason="OK", distance_meters=distance, proof=proof
            )

    # --- Reads ---

    def get_claim(self, asset_id: int) -> GeoCoordinate:
        with self._lock:
            return self.binding.get_claim(asset_id)

    def get_proof(self, asset_id: int) -> Optional[LocationProof]:
        with self._lock:
            return self.binding.get_proof(asset_id)

    # --- Oracle administration ---

    def set_oracle(self, caller: str, signer: str) -> str:
        with self._lock:
            self.access.require_administrator(caller)
            new_signer = self.oracle.set_signer(signer)
            self.metrics.inc("oracle_updates_total")
            self.audit.append(OracleUpdated(signer=new_signer))
            return new_signer

    def set_oracle_required(self, caller: str, required: bool) -> None:
        with self._lock:
            self.access.require_administrator(caller)
            self.oracle.set_required(required)
            self.audit.append(OracleRequirementChanged(required=bool(required)))

    # --- Destruction ---

    def destroy(self, asset_id: int) -> None:
        """Destroy through the asset registry; the hook erases the binding."""
        with self._lock:
            self.assets.destroy_asset(asset_id)

    def _on_asset_destroyed(self, asset_id: int) -> None:
        with self._lock:
            self.binding.erase(asset_id)
            self.audit.append(AssetErased(asset_id=asset_id))
