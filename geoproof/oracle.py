from __future__ import annotations

import logging
from typing import Optional

from eth_utils import to_checksum_address

logger = logging.getLogger(__name__)


class OracleAuthority:
    """
    Trusted oracle identity plus the enforcement switch.

    Administrator gating is the caller's job (see registry.access).

    With ``required`` off, claim signatures are not checked at all: any
    well-formed signature, garbage included, is accepted. Nonce and
    deadline checks still apply. Treat it as an operational
    escape hatch, never as a steady state.
    """

    def __init__(self, trusted_signer: Optional[str] = None, required: bool = True):
        self.trusted_signer: Optional[str] = (
            to_checksum_address(trusted_signer) if trusted_signer else None
        )
        self.required = required

    def set_signer(self, identity: str) -> str:
        # Rotating the oracle always re-enables enforcement
        self.trusted_signer = to_checksum_address(identity)
        self.required = True
        logger.info(f"Oracle signer set: {self.trusted_signer}")
        return self.trusted_signer

    def set_required(self, required: bool) -> None:
        self.required = bool(required)
        if not self.required:
            logger.warning("Oracle signature enforcement DISABLED")
        else:
            logger.info("Oracle signature enforcement enabled")

    def is_trusted(self, identity: str) -> bool:
        return self.trusted_signer is not None and (
            to_checksum_address(identity) == self.trusted_signer
        )
