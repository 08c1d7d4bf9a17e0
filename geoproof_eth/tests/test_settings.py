"""
Test environment-driven configuration.
"""

from __future__ import annotations

import pytest

from geoproof_eth.settings import DEFAULT_ART_URL, Settings

ENV_KEYS = [
    "CHAIN_ID", "REGISTRY_ADDRESS", "DOMAIN_NAME", "DOMAIN_VERSION", "ORACLE_ADDRESS",
    "ORACLE_REQUIRED", "ADMIN_ADDRESSES", "AUDIT_LOG_PATH", "ART_IPFS_URL",
    "CITY_IPFS_URL", "EXPOSE_ERROR_DETAILS", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for k in ENV_KEYS:
        monkeypatch.delenv(k, raising=False)
    return monkeypatch


def test_missing_required_env_raises(clean_env):
    with pytest.raises(RuntimeError, match="CHAIN_ID"):
        Settings.load()
    clean_env.setenv("CHAIN_ID", "1328")
    with pytest.raises(RuntimeError, match="REGISTRY_ADDRESS"):
        Settings.load()


def test_non_integer_chain_id(clean_env):
    clean_env.setenv("CHAIN_ID", "sei")
    clean_env.setenv("REGISTRY_ADDRESS", "0x" + "cc" * 20)
    with pytest.raises(RuntimeError, match="not an integer"):
        Settings.load()


def test_defaults_fail_closed(clean_env):
    clean_env.setenv("CHAIN_ID", "0x530")
    clean_env.setenv("REGISTRY_ADDRESS", "0x" + "cc" * 20)
    s = Settings.load()

    assert s.CHAIN_ID == 1328
    assert s.ORACLE_ADDRESS == ""
    assert s.ORACLE_REQUIRED is True
    assert s.EXPOSE_ERROR_DETAILS is False
    assert s.ADMIN_ADDRESSES == ()
    assert s.metadata_catalog() == {"art": DEFAULT_ART_URL}


def test_overrides(clean_env):
    clean_env.setenv("CHAIN_ID", "1")
    clean_env.setenv("REGISTRY_ADDRESS", "0x" + "cc" * 20)
    clean_env.setenv("ORACLE_REQUIRED", "off")
    clean_env.setenv("EXPOSE_ERROR_DETAILS", "YES")
    clean_env.setenv("ADMIN_ADDRESSES", " 0xaa , 0xbb,, ")
    clean_env.setenv("CITY_IPFS_URL", "ipfs://city")
    s = Settings.load()

    assert s.ORACLE_REQUIRED is False
    assert s.EXPOSE_ERROR_DETAILS is True
    assert s.ADMIN_ADDRESSES == ("0xaa", "0xbb")
    assert s.metadata_catalog()["cityilluminati"] == "ipfs://city"
