"""
Read-only client for a deployed GeoProof registry.

Fail-closed checks before the service trusts a deployment:
- Bytecode hash matches the expected codehash
- On-chain DOMAIN_SEPARATOR matches the locally derived one

Reads only what the off-chain service mirrors (nonces, geo-claims).
Writing transactions is left to the wallet that holds the minting key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from web3 import Web3
from web3.contract import Contract

from geoproof.models import GeoCoordinate
from geoproof_eth.metrics import Metrics
from geoproof_eth.typed_data import TypedDataDomain, to_hex32

logger = logging.getLogger(__name__)


# Minimal ABI (read only what we use)
REGISTRY_ABI = [
    {
        "type": "function",
        "name": "DOMAIN_SEPARATOR",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
    {
        "type": "function",
        "name": "nonces",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "getGeoData",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [
            {"name": "latitude", "type": "int256"},
            {"name": "longitude", "type": "int256"},
            {"name": "radius", "type": "uint256"},
        ],
    },
    {
        "type": "function",
        "name": "totalSupply",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


def codehash(w3: Web3, address: str) -> str:
    """0x-prefixed keccak256 of the code deployed at ``address``."""
    code = w3.eth.get_code(Web3.to_checksum_address(address))
    return "0x" + bytes(Web3.keccak(bytes(code))).hex()


@dataclass
class ChainClient:
    """
    Registry reads over JSON-RPC.

    Usage:
        client = ChainClient.from_url(settings.RPC_URL, settings.REGISTRY_ADDRESS)
        client.verify_deployment(domain, settings.REGISTRY_CODEHASH)
    """

    w3: Web3
    registry: Contract
    metrics: Metrics

    @staticmethod
    def from_url(
        rpc_url: str, registry_address: str, *, metrics: Optional[Metrics] = None
    ) -> ChainClient:
        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": 8}))
        registry = w3.eth.contract(
            address=Web3.to_checksum_address(registry_address), abi=REGISTRY_ABI
        )
        return ChainClient(w3=w3, registry=registry, metrics=metrics or Metrics())

    def ping(self) -> bool:
        """
        Check RPC health by fetching the current block number.

        Returns:
            True if RPC reachable, False otherwise
        """
        try:
            with self.metrics.timed("rpc_latency_ms"):
                _ = self.w3.eth.block_number
            return True
        except Exception as e:
            self.metrics.inc("rpc_errors_total")
            logger.warning(f"RPC unreachable: {type(e).__name__}")
            return False

    def verify_codehash(self, expected: str) -> None:
        """
        Raises:
            RuntimeError: If deployed bytecode hash doesn't match ``expected``
        """
        got = codehash(self.w3, self.registry.address).lower()
        if got != expected.lower():
            raise RuntimeError(
                f"BYTECODE_MISMATCH {self.registry.address} "
                f"expected={expected.lower()} got={got}"
            )

    def verify_domain(self, domain: TypedDataDomain) -> None:
        """
        Raises:
            RuntimeError: If the deployment signs under a different domain
        """
        onchain = bytes(self.registry.functions.DOMAIN_SEPARATOR().call())
        if onchain != domain.separator:
            raise RuntimeError(
                f"DOMAIN_MISMATCH {self.registry.address} "
                f"expected={to_hex32(domain.separator)} got=0x{onchain.hex()}"
            )

    def verify_deployment(self, domain: TypedDataDomain, expected_codehash: str = "") -> None:
        """Bytecode lock (when a codehash is configured) and domain check."""
        if expected_codehash:
            self.verify_codehash(expected_codehash)
        self.verify_domain(domain)
        logger.info(f"Registry {self.registry.address} verified on chain {domain.chain_id}")

    def nonce_of(self, address: str) -> int:
        try:
            return int(
                self.registry.functions.nonces(Web3.to_checksum_address(address)).call()
            )
        except Exception:
            self.metrics.inc("registry_read_errors_total")
            raise

    def geo_claim(self, asset_id: int) -> GeoCoordinate:
        try:
            lat, lon, radius = self.registry.functions.getGeoData(asset_id).call()
        except Exception:
            self.metrics.inc("registry_read_errors_total")
            raise
        return GeoCoordinate(latitude=lat, longitude=lon, radius_meters=radius)

    def total_supply(self) -> int:
        return int(self.registry.functions.totalSupply().call())
