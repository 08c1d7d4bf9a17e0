"""
Service configuration with fail-closed defaults.

Environment variables control behavior:
- CHAIN_ID / REGISTRY_ADDRESS: EIP-712 domain binding (required)
- ORACLE_ADDRESS: trusted claim signer (default: unset, every mint rejected)
- ORACLE_REQUIRED: enforce oracle signatures (default: true)
- EXPOSE_ERROR_DETAILS: include error text in API responses (default: false)
- RPC_URL / REGISTRY_CODEHASH: deployment checks (default: Sei testnet, no bytecode lock)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Tuple

from geoproof_eth.typed_data import DEFAULT_DOMAIN_NAME, DEFAULT_DOMAIN_VERSION

DEFAULT_ART_URL = "https://ipfs.io/ipfs/QmQ6pkp4xcdbdabp5XCeJYuQBV5cnQnTf7CVpf34rpHUDN"
DEFAULT_RPC_URL = "https://evm-rpc-testnet.sei-apis.com"


def _req(name: str) -> str:
    """Get required environment variable or raise."""
    v = os.getenv(name)
    if not v:
        raise RuntimeError(f"Missing required env var: {name}")
    return v


def _opt(name: str, default: str) -> str:
    """Get optional environment variable with default."""
    return os.getenv(name, default)


def _opt_bool(name: str, default: bool) -> bool:
    """Parse boolean environment variable."""
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _opt_list(name: str) -> Tuple[str, ...]:
    """Parse comma-separated environment variable."""
    v = os.getenv(name, "")
    return tuple(p.strip() for p in v.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    """Configuration for the geo-mint service."""

    CHAIN_ID: int
    REGISTRY_ADDRESS: str

    DOMAIN_NAME: str = DEFAULT_DOMAIN_NAME
    DOMAIN_VERSION: str = DEFAULT_DOMAIN_VERSION

    # Oracle (fail closed: required with no signer rejects every mint)
    ORACLE_ADDRESS: str = ""
    ORACLE_REQUIRED: bool = True

    ADMIN_ADDRESSES: Tuple[str, ...] = ()

    AUDIT_LOG_PATH: str = ""

    # Chain reads (cli chain-check)
    RPC_URL: str = DEFAULT_RPC_URL
    REGISTRY_CODEHASH: str = ""

    # Metadata catalog for nft_type shortcuts
    ART_IPFS_URL: str = DEFAULT_ART_URL
    CITY_IPFS_URL: str = ""

    EXPOSE_ERROR_DETAILS: bool = False
    LOG_LEVEL: str = "INFO"

    @staticmethod
    def load() -> Settings:
        """Load settings from environment variables."""
        chain_id = _req("CHAIN_ID")
        try:
            chain_id_int = int(chain_id, 0)
        except ValueError as e:
            raise RuntimeError(f"CHAIN_ID is not an integer: {chain_id!r}") from e
        return Settings(
            CHAIN_ID=chain_id_int,
            REGISTRY_ADDRESS=_req("REGISTRY_ADDRESS"),
            DOMAIN_NAME=_opt("DOMAIN_NAME", DEFAULT_DOMAIN_NAME),
            DOMAIN_VERSION=_opt("DOMAIN_VERSION", DEFAULT_DOMAIN_VERSION),
            ORACLE_ADDRESS=_opt("ORACLE_ADDRESS", ""),
            ORACLE_REQUIRED=_opt_bool("ORACLE_REQUIRED", True),
            ADMIN_ADDRESSES=_opt_list("ADMIN_ADDRESSES"),
            AUDIT_LOG_PATH=_opt("AUDIT_LOG_PATH", ""),
            RPC_URL=_opt("RPC_URL", DEFAULT_RPC_URL),
            REGISTRY_CODEHASH=_opt("REGISTRY_CODEHASH", ""),
            ART_IPFS_URL=_opt("ART_IPFS_URL", "") or DEFAULT_ART_URL,
            CITY_IPFS_URL=_opt("CITY_IPFS_URL", ""),
            EXPOSE_ERROR_DETAILS=_opt_bool("EXPOSE_ERROR_DETAILS", False),
            LOG_LEVEL=_opt("LOG_LEVEL", "INFO"),
        )

    def metadata_catalog(self) -> Dict[str, str]:
        """nft_type -> metadata URI; unconfigured types are left out."""
        catalog = {
            "art": self.ART_IPFS_URL,
            "cityilluminati": self.CITY_IPFS_URL,
        }
        return {k: v for k, v in catalog.items() if v}
