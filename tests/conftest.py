"""
Shared fixtures: a deterministic oracle key, a fake clock and a fully
wired GeoMintService.
"""

from __future__ import annotations

import pytest
from eth_account import Account

from geoproof.models import GeoCoordinate, MintClaim
from geoproof.oracle import OracleAuthority
from geoproof.service import GeoMintService
from geoproof.verifier import SignedClaimVerifier
from geoproof_eth.signer import oracle_address, sign_claim
from geoproof_eth.typed_data import TypedDataDomain
from registry.access import AccessControl
from registry.assets import AssetRegistry

CHAIN_ID = 1328
REGISTRY = "0xeb6De02783be7c72d8c01a29e9e9E49B1326281F"

ORACLE_KEY = "0x" + "4c" * 32
OTHER_KEY = "0x" + "5d" * 32
MINTER = Account.from_key("0x" + "22" * 32).address
ADMIN = Account.from_key("0x" + "33" * 32).address

NOW = 1_700_000_000
WITNESS_A = "0x" + "ab" * 32
WITNESS_B = "0x" + "cd" * 32


class FakeClock:
    """Settable unix-seconds clock."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def domain():
    return TypedDataDomain(chain_id=CHAIN_ID, verifying_contract=REGISTRY)


@pytest.fixture
def nyc():
    """Center used throughout: lower Manhattan, 100 m fence."""
    return GeoCoordinate(latitude=40712800, longitude=-74006000, radius_meters=100)


@pytest.fixture
def sign(domain):
    """sign(asset_id, coordinate, nonce=0, deadline=NOW+3600, minter=MINTER, key=ORACLE_KEY)"""

    def _sign(asset_id, coordinate, nonce=0, deadline=NOW + 3600, minter=MINTER, key=ORACLE_KEY):
        claim = MintClaim(
            minter=minter,
            asset_id=asset_id,
            coordinate=coordinate,
            nonce=nonce,
            deadline=deadline,
        )
        return sign_claim(claim, key, domain)

    return _sign


@pytest.fixture
def verifier(domain, clock):
    oracle = OracleAuthority(trusted_signer=oracle_address(ORACLE_KEY))
    return SignedClaimVerifier(domain, oracle, clock=clock)


@pytest.fixture
def service(verifier):
    return GeoMintService(
        verifier=verifier,
        assets=AssetRegistry(),
        access=AccessControl([ADMIN]),
    )
