"""
Signed geo-claim verification with replay and expiry protection.

Check order (cheapest first):
1. Deadline
2. Radius bounds
3. Nonce matches the claimant's current counter
4. Oracle signature (skipped when the oracle is not required)
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

from eth_utils import to_checksum_address

from geoproof.coordinates import validate_radius
from geoproof.errors import Expired, InvalidSignature
from geoproof.models import MintClaim
from geoproof.oracle import OracleAuthority
from geoproof_eth.signer import SignatureInput, recover_signer
from geoproof_eth.typed_data import TypedDataDomain, claim_digest

logger = logging.getLogger(__name__)


class NonceBook:
    """Per-identity monotonically increasing counters, starting at 0."""

    def __init__(self) -> None:
        self._counters: Dict[str, int] = {}

    def current(self, identity: str) -> int:
        return self._counters.get(to_checksum_address(identity), 0)

    def consume(self, identity: str, nonce: int) -> int:
        """
        Advance the counter past ``nonce``.

        Raises:
            InvalidSignature: If ``nonce`` is not the current counter
        """
        key = to_checksum_address(identity)
        current = self._counters.get(key, 0)
        if nonce != current:
            raise InvalidSignature(f"nonce {nonce} already used or out of order")
        self._counters[key] = current + 1
        return current + 1


class SignedClaimVerifier:
    """
    Verifies oracle-signed mint claims against one typed-data domain.

    Args:
        domain: EIP-712 domain (separator derived once)
        oracle: Trusted signer and enforcement flag
        nonces: Replay-protection counters
        clock: Unix-seconds source (injectable for tests)
    """

    def __init__(
        self,
        domain: TypedDataDomain,
        oracle: OracleAuthority,
        nonces: Optional[NonceBook] = None,
        clock: Callable[[], int] = lambda: int(time.time()),
    ):
        self.domain = domain
        self.oracle = oracle
        self.nonces = nonces or NonceBook()
        self.clock = clock

    @property
    def domain_separator(self) -> bytes:
        return self.domain.separator

    def nonce_of(self, identity: str) -> int:
        return self.nonces.current(identity)

    def check(self, claim: MintClaim, signature: SignatureInput) -> None:
        """
        Validate a claim without consuming its nonce.

        Raises:
            Expired: If the deadline has passed
            RadiusOutOfRange: If the claimed radius is out of bounds
            InvalidSignature: If the nonce is stale or the signer is not the oracle
        """
        now = self.clock()
        if now > claim.deadline:
            raise Expired(f"claim deadline {claim.deadline} passed (now={now})")

        validate_radius(claim.coordinate.radius_meters)

        if claim.nonce != self.nonces.current(claim.minter):
            raise InvalidSignature(
                f"nonce {claim.nonce} does not match current counter"
            )

        if not self.oracle.required:
            return

        if self.oracle.trusted_signer is None:
            raise InvalidSignature("no trusted oracle signer configured")

        try:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Claim digest: 0x%s", claim_digest(self.domain, claim).hex())
            recovered = recover_signer(claim, signature, self.domain)
        except Exception as e:
            raise InvalidSignature(f"unrecoverable signature: {e}") from e

        if not self.oracle.is_trusted(recovered):
            raise InvalidSignature("signature not issued by trusted oracle")

    def consume(self, claim: MintClaim) -> int:
        """Mark the claim's nonce as used; returns the new counter."""
        return self.nonces.consume(claim.minter, claim.nonce)

    def verify(self, claim: MintClaim, signature: SignatureInput) -> None:
        """Check and consume in one step. State is untouched on failure."""
        self.check(claim, signature)
        self.consume(claim)
