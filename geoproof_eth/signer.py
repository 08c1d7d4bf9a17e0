"""
Oracle-side claim signing and signer recovery (secp256k1, EIP-712).
"""

from __future__ import annotations

from typing import Sequence, Union

from eth_account import Account
from hexbytes import HexBytes

from geoproof.models import MintClaim
from geoproof_eth.typed_data import TypedDataDomain, signable

SignatureInput = Union[bytes, str, Sequence[int]]


def oracle_address(private_key: str) -> str:
    """Checksummed address controlled by a private key."""
    return Account.from_key(private_key).address


def sign_claim(claim: MintClaim, private_key: str, domain: TypedDataDomain) -> bytes:
    """
    Sign a claim as the oracle.

    Returns:
        65-byte r || s || v signature
    """
    signed = Account.sign_message(signable(domain, claim), private_key=private_key)
    return bytes(signed.signature)


def to_signature_bytes(signature: SignatureInput) -> bytes:
    """
    Normalize a signature given as raw bytes, hex, or a (v, r, s) triple.

    Raises:
        ValueError: If the input cannot be a 65-byte signature
    """
    if isinstance(signature, (bytes, bytearray)):
        raw = bytes(signature)
    elif isinstance(signature, str):
        raw = bytes(HexBytes(signature))
    else:
        v, r, s = signature
        raw = int(r).to_bytes(32, "big") + int(s).to_bytes(32, "big") + bytes([int(v)])
    if len(raw) != 65:
        raise ValueError("signature must be 65 bytes")
    return raw


def recover_signer(claim: MintClaim, signature: SignatureInput, domain: TypedDataDomain) -> str:
    """Recover the checksummed address that signed ``claim``."""
    return Account.recover_message(
        signable(domain, claim), signature=to_signature_bytes(signature)
    )
