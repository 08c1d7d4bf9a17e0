"""
Canonical EIP-712 encoding of GeoMint claims.

Domain-separated, version-locked digest format:
    digest = Keccak256(0x19 || 0x01 || domainSeparator || structHash)
    structHash = Keccak256(abi.encode(GEOMINT_TYPEHASH, minter, assetId,
                                      latitude, longitude, radius, nonce, deadline))

Changing the field order or the type string invalidates every signature
issued so far. Bump the domain version instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Final

from eth_abi import encode as abi_encode
from eth_account.messages import SignableMessage
from eth_utils import keccak, to_checksum_address

from geoproof.models import MintClaim


DOMAIN_TYPE: Final[str] = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
GEOMINT_TYPE: Final[str] = (
    "GeoMint(address minter,uint256 assetId,int256 latitude,int256 longitude,"
    "uint256 radius,uint256 nonce,uint256 deadline)"
)

DOMAIN_TYPEHASH: Final[bytes] = keccak(text=DOMAIN_TYPE)
GEOMINT_TYPEHASH: Final[bytes] = keccak(text=GEOMINT_TYPE)

DEFAULT_DOMAIN_NAME: Final[str] = "GeoProofNFT"
DEFAULT_DOMAIN_VERSION: Final[str] = "1"


@dataclass(frozen=True)
class TypedDataDomain:
    """
    Binds signatures to one registry instance on one chain.

    The separator is computed once at construction and never changes.
    """

    chain_id: int
    verifying_contract: str
    name: str = DEFAULT_DOMAIN_NAME
    version: str = DEFAULT_DOMAIN_VERSION
    separator: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.chain_id <= 0:
            raise ValueError("chain_id must be positive")
        object.__setattr__(
            self, "verifying_contract", to_checksum_address(self.verifying_contract)
        )
        object.__setattr__(self, "separator", compute_domain_separator(
            name=self.name,
            version=self.version,
            chain_id=self.chain_id,
            verifying_contract=self.verifying_contract,
        ))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


def compute_domain_separator(
    *, name: str, version: str, chain_id: int, verifying_contract: str
) -> bytes:
    """Compute the 32-byte EIP-712 domain separator."""
    return keccak(
        abi_encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                DOMAIN_TYPEHASH,
                keccak(text=name),
                keccak(text=version),
                chain_id,
                to_checksum_address(verifying_contract),
            ],
        )
    )


def struct_hash(claim: MintClaim) -> bytes:
    """
    Hash a claim under GEOMINT_TYPE.

    Note:
        Field order is part of the wire format: typeTag, minter, assetId,
        latitude, longitude, radius, nonce, deadline.
    """
    c = claim.coordinate
    return keccak(
        abi_encode(
            ["bytes32", "address", "uint256", "int256", "int256",
             "uint256", "uint256", "uint256"],
            [
                GEOMINT_TYPEHASH,
                to_checksum_address(claim.minter),
                claim.asset_id,
                c.latitude,
                c.longitude,
                c.radius_meters,
                claim.nonce,
                claim.deadline,
            ],
        )
    )


def signable(domain: TypedDataDomain, claim: MintClaim) -> SignableMessage:
    """EIP-191 version 0x01 envelope, as produced by encode_typed_data."""
    return SignableMessage(
        version=b"\x01", header=domain.separator, body=struct_hash(claim)
    )


def claim_digest(domain: TypedDataDomain, claim: MintClaim) -> bytes:
    """The 32-byte digest that the oracle actually signs."""
    return keccak(b"\x19\x01" + domain.separator + struct_hash(claim))


def typed_data_message(domain: TypedDataDomain, claim: MintClaim) -> Dict[str, Any]:
    """
    Full ``eth_signTypedData_v4`` payload for wallets and external signers.
    """
    c = claim.coordinate
    return {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "GeoMint": [
                {"name": "minter", "type": "address"},
                {"name": "assetId", "type": "uint256"},
                {"name": "latitude", "type": "int256"},
                {"name": "longitude", "type": "int256"},
                {"name": "radius", "type": "uint256"},
                {"name": "nonce", "type": "uint256"},
                {"name": "deadline", "type": "uint256"},
            ],
        },
        "primaryType": "GeoMint",
        "domain": domain.as_dict(),
        "message": {
            "minter": to_checksum_address(claim.minter),
            "assetId": claim.asset_id,
            "latitude": c.latitude,
            "longitude": c.longitude,
            "radius": c.radius_meters,
            "nonce": claim.nonce,
            "deadline": claim.deadline,
        },
    }


def to_hex32(b: bytes) -> str:
    """Convert 32-byte value to 0x-prefixed hex string."""
    if len(b) != 32:
        raise ValueError("expected 32-byte value")
    return "0x" + b.hex()
