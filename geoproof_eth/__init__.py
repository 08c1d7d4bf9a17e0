"""
GeoProof Ethereum layer - typed-data encoding, oracle signing, settings.
Registry reads over JSON-RPC live in geoproof_eth.chain.

Digests are EIP-712 compatible so the same claims verify on-chain.
"""

from geoproof_eth.metrics import Metrics
from geoproof_eth.settings import Settings
from geoproof_eth.signer import oracle_address, recover_signer, sign_claim
from geoproof_eth.typed_data import (
    TypedDataDomain,
    claim_digest,
    compute_domain_separator,
    struct_hash,
    to_hex32,
)

__all__ = [
    "Metrics",
    "Settings",
    "TypedDataDomain",
    "claim_digest",
    "compute_domain_separator",
    "oracle_address",
    "recover_signer",
    "sign_claim",
    "struct_hash",
    "to_hex32",
]
