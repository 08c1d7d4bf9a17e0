"""
End-to-end behavior of GeoMintService.

Covers the mint -> verify-location lifecycle, all-or-nothing failures,
oracle administration and destruction.
"""

from __future__ import annotations

import pytest

from geoproof.audit import AuditTrail
from geoproof.errors import Expired, InvalidSignature, NotFound, RadiusOutOfRange, Unauthorized
from geoproof.models import Position
from geoproof.service import GeoMintService, mask_address
from geoproof_eth.metrics import Metrics
from geoproof_eth.settings import Settings
from geoproof_eth.signer import oracle_address
from registry.access import AccessControl
from registry.assets import AssetRegistry

from conftest import (
    ADMIN,
    CHAIN_ID,
    MINTER,
    NOW,
    ORACLE_KEY,
    OTHER_KEY,
    REGISTRY,
    WITNESS_A,
    WITNESS_B,
)

FAR = Position(latitude=40712800 + 44966, longitude=-74006000)  # ~5 km north


def _mint(service, sign, coordinate, asset_id=0, nonce=0, deadline=NOW + 3600):
    return service.mint(
        MINTER, "ipfs://geo", coordinate, sign(asset_id, coordinate, nonce=nonce, deadline=deadline), deadline
    )


def _assert_untouched(service):
    assert service.assets.total_supply() == 0
    assert service.assets.next_asset_id() == 0
    assert service.nonce_of(MINTER) == 0
    assert len(service.audit) == 0


class TestMint:
    def test_mint_binds_claim(self, service, sign, nyc):
        asset_id = _mint(service, sign, nyc)

        assert asset_id == 0
        assert service.get_claim(0) == nyc
        assert service.assets.owner_of(0) == MINTER
        assert service.assets.token_uri(0) == "ipfs://geo"
        assert service.nonce_of(MINTER) == 1
        assert service.get_proof(0) is None

        minted = service.audit.events("GeoMinted")
        assert minted[0]["asset_id"] == 0
        assert minted[0]["minter"] == MINTER
        assert service.metrics.counters["mints_total"] == 1

    def test_sequential_mints(self, service, sign, nyc):
        assert _mint(service, sign, nyc) == 0
        assert _mint(service, sign, nyc, asset_id=1, nonce=1) == 1
        assert service.nonce_of(MINTER) == 2

    def test_replayed_signature_rejected(self, service, sign, nyc):
        sig = sign(0, nyc)
        service.mint(MINTER, "ipfs://geo", nyc, sig, NOW + 3600)
        with pytest.raises(InvalidSignature):
            service.mint(MINTER, "ipfs://geo", nyc, sig, NOW + 3600)
        assert service.assets.total_supply() == 1
        assert service.nonce_of(MINTER) == 1

    @pytest.mark.parametrize("radius", [5, 10_001])
    def test_radius_out_of_range_creates_nothing(self, service, sign, nyc, radius):
        c = nyc.model_copy(update={"radius_meters": radius})
        with pytest.raises(RadiusOutOfRange):
            _mint(service, sign, c)
        _assert_untouched(service)
        assert service.metrics.counters["mint_rejected_total{code=RADIUS_OUT_OF_RANGE}"] == 1

    def test_expired_creates_nothing(self, service, sign, nyc):
        with pytest.raises(Expired):
            _mint(service, sign, nyc, deadline=NOW - 1)
        _assert_untouched(service)

    def test_signature_for_other_asset_id_rejected(self, service, sign, nyc):
        """The signature binds to the next sequential id, not just the location."""
        with pytest.raises(InvalidSignature):
            _mint(service, sign, nyc, asset_id=1)
        _assert_untouched(service)

    def test_signature_for_other_recipient_rejected(self, service, sign, nyc):
        other = "0x" + "77" * 20
        with pytest.raises(InvalidSignature):
            service.mint(other, "ipfs://geo", nyc, sign(0, nyc), NOW + 3600)
        assert service.assets.total_supply() == 0

    def test_invalid_recipient_is_value_error(self, service, sign, nyc):
        with pytest.raises(ValueError):
            service.mint("not-an-address", "ipfs://geo", nyc, sign(0, nyc), NOW + 3600)


class TestVerifyLocation:
    def test_center_verifies_and_stores_proof(self, service, sign, nyc, clock):
        _mint(service, sign, nyc)
        clock.now = NOW + 60

        res = service.verify_location(0, nyc.center(), WITNESS_A)

        assert res.verified
        assert res.reason == "OK"
        assert res.distance_meters == 0
        proof = service.get_proof(0)
        assert proof.witness_hash == WITNESS_A
        assert proof.timestamp == NOW + 60
        assert service.audit.events("LocationVerified")[0]["witness_hash"] == WITNESS_A

    def test_far_candidate_fails_and_keeps_prior_proof(self, service, sign, nyc):
        _mint(service, sign, nyc)
        service.verify_location(0, nyc.center(), WITNESS_A)

        res = service.verify_location(0, FAR, WITNESS_B)

        assert not res.verified
        assert res.reason == "OUTSIDE_GEOFENCE"
        assert res.proof is None
        assert abs(res.distance_meters - 5000) <= 2
        assert service.get_proof(0).witness_hash == WITNESS_A
        assert len(service.audit.events("LocationVerified")) == 1

    def test_far_candidate_on_fresh_asset_stores_nothing(self, service, sign, nyc):
        _mint(service, sign, nyc)
        assert not service.verify_location(0, FAR, WITNESS_A).verified
        assert service.get_proof(0) is None

    def test_latest_proof_wins(self, service, sign, nyc, clock):
        _mint(service, sign, nyc)
        service.verify_location(0, nyc.center(), WITNESS_A)
        clock.now += 10
        near = Position(latitude=nyc.latitude + 500, longitude=nyc.longitude)
        service.verify_location(0, near, WITNESS_B)

        proof = service.get_proof(0)
        assert proof.witness_hash == WITNESS_B
        assert proof.timestamp == NOW + 10

    def test_witness_hash_normalized(self, service, sign, nyc):
        _mint(service, sign, nyc)
        service.verify_location(0, nyc.center(), WITNESS_A.upper().replace("0X", "0x"))
        assert service.get_proof(0).witness_hash == WITNESS_A

    def test_unknown_asset(self, service, nyc):
        with pytest.raises(NotFound):
            service.verify_location(3, nyc.center(), WITNESS_A)


class TestOracleAdministration:
    def test_non_admin_cannot_change_oracle(self, service):
        with pytest.raises(Unauthorized):
            service.set_oracle(MINTER, oracle_address(OTHER_KEY))
        with pytest.raises(Unauthorized):
            service.set_oracle_required(MINTER, False)
        assert service.oracle.trusted_signer == oracle_address(ORACLE_KEY)

    def test_disabled_oracle_accepts_garbage_signature(self, service, nyc):
        service.set_oracle_required(ADMIN, False)
        assert service.mint(MINTER, "ipfs://geo", nyc, b"\x00" * 65, NOW + 3600) == 0
        assert service.audit.events("OracleRequirementChanged")[0]["required"] is False

    def test_rotating_oracle_reenables_enforcement(self, service, sign, nyc):
        service.set_oracle_required(ADMIN, False)
        service.set_oracle(ADMIN, oracle_address(OTHER_KEY))

        assert service.oracle.required
        with pytest.raises(InvalidSignature):
            _mint(service, sign, nyc)
        assert service.mint(
            MINTER, "ipfs://geo", nyc, sign(0, nyc, key=OTHER_KEY), NOW + 3600
        ) == 0
        assert service.audit.events("OracleUpdated")[0]["signer"] == oracle_address(OTHER_KEY)


class TestDestroy:
    def test_destroy_erases_claim_and_proof(self, service, sign, nyc):
        _mint(service, sign, nyc)
        service.verify_location(0, nyc.center(), WITNESS_A)

        service.destroy(0)

        with pytest.raises(NotFound):
            service.get_claim(0)
        with pytest.raises(NotFound):
            service.get_proof(0)
        assert service.audit.events("AssetErased")[0]["asset_id"] == 0
        assert service.audit.verify()

    def test_registry_destroy_hook_erases_binding(self, service, sign, nyc):
        _mint(service, sign, nyc)
        service.assets.destroy_asset(0)
        assert not service.binding.is_bound(0)


def test_from_settings_end_to_end(sign, nyc):
    settings = Settings(
        CHAIN_ID=CHAIN_ID,
        REGISTRY_ADDRESS=REGISTRY,
        ORACLE_ADDRESS=oracle_address(ORACLE_KEY),
        ADMIN_ADDRESSES=(ADMIN,),
    )
    service = GeoMintService.from_settings(settings, clock=lambda: NOW)
    assert service.mint(MINTER, "ipfs://geo", nyc, sign(0, nyc), NOW + 3600) == 0
    assert service.verify_location(0, nyc.center(), WITNESS_A).verified


def test_from_settings_without_oracle_fails_closed(sign, nyc):
    service = GeoMintService.from_settings(
        Settings(CHAIN_ID=CHAIN_ID, REGISTRY_ADDRESS=REGISTRY), clock=lambda: NOW
    )
    with pytest.raises(InvalidSignature):
        service.mint(MINTER, "ipfs://geo", nyc, sign(0, nyc), NOW + 3600)


def test_mask_address():
    assert mask_address(MINTER) == f"{MINTER[:6]}...{MINTER[38:]}"
    assert mask_address("short") == "short"


def test_from_settings_writes_audit_log(tmp_path, sign, nyc):
    path = tmp_path / "audit.jsonl"
    service = GeoMintService.from_settings(
        Settings(
            CHAIN_ID=CHAIN_ID,
            REGISTRY_ADDRESS=REGISTRY,
            ORACLE_ADDRESS=oracle_address(ORACLE_KEY),
            AUDIT_LOG_PATH=str(path),
        ),
        clock=lambda: NOW,
    )
    service.mint(MINTER, "ipfs://geo", nyc, sign(0, nyc), NOW + 3600)

    assert service.audit.path == str(path)
    assert path.exists()
    reloaded = AuditTrail(str(path))
    assert len(reloaded) == 1
    assert reloaded.tip_hash() == service.audit.tip_hash()
    assert reloaded.events("GeoMinted")[0]["asset_id"] == 0


def test_empty_collaborators_are_kept(verifier):
    trail, metrics = AuditTrail(), Metrics()
    service = GeoMintService(
        verifier=verifier,
        assets=AssetRegistry(),
        access=AccessControl([ADMIN]),
        audit=trail,
        metrics=metrics,
    )
    assert service.audit is trail
    assert service.metrics is metrics


def test_deadline_beyond_uint256_is_value_error(service, nyc):
    with pytest.raises(ValueError):
        service.mint(MINTER, "ipfs://geo", nyc, b"\x00" * 65, 2**256)
    _assert_untouched(service)
