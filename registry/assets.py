"""
Asset registry composed from explicit capabilities.

    AssetRegistry
      ├── Ownership      (owner_of, transfer)
      ├── Enumeration    (total_supply, token_by_index, tokens_of_owner)
      └── MetadataStore  (token_uri)

Lifecycle hooks (on_create / on_destroy) are the only surface the
geo-binding core depends on.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List

from eth_utils import to_checksum_address

from geoproof.errors import NotFound, Unauthorized

logger = logging.getLogger(__name__)

AssetHook = Callable[[int], None]


class Ownership:
    def __init__(self) -> None:
        self._owners: Dict[int, str] = {}

    def owner_of(self, asset_id: int) -> str:
        if asset_id not in self._owners:
            raise NotFound(f"asset {asset_id} does not exist")
        return self._owners[asset_id]

    def assign(self, asset_id: int, owner: str) -> None:
        self._owners[asset_id] = to_checksum_address(owner)

    def release(self, asset_id: int) -> str:
        return self._owners.pop(asset_id)

    def exists(self, asset_id: int) -> bool:
        return asset_id in self._owners


class Enumeration:
    def __init__(self) -> None:
        self._all: List[int] = []

    def add(self, asset_id: int) -> None:
        self._all.append(asset_id)

    def remove(self, asset_id: int) -> None:
        self._all.remove(asset_id)

    def all(self) -> List[int]:
        return list(self._all)

    def total_supply(self) -> int:
        return len(self._all)

    def token_by_index(self, index: int) -> int:
        if not (0 <= index < len(self._all)):
            raise NotFound(f"index {index} out of bounds")
        return self._all[index]


class MetadataStore:
    def __init__(self) -> None:
        self._uris: Dict[int, str] = {}

    def set_uri(self, asset_id: int, uri: str) -> None:
        self._uris[asset_id] = uri

    def token_uri(self, asset_id: int) -> str:
        if asset_id not in self._uris:
            raise NotFound(f"no metadata for asset {asset_id}")
        return self._uris[asset_id]

    def clear(self, asset_id: int) -> None:
        self._uris.pop(asset_id, None)


class AssetRegistry:
    """Sequential asset ids starting at 0; ids are never reused."""

    def __init__(self) -> None:
        self.ownership = Ownership()
        self.enumeration = Enumeration()
        self.metadata = MetadataStore()
        self._next_id = 0
        self._on_create: List[AssetHook] = []
        self._on_destroy: List[AssetHook] = []

    def on_create(self, hook: AssetHook) -> None:
        self._on_create.append(hook)

    def on_destroy(self, hook: AssetHook) -> None:
        self._on_destroy.append(hook)

    def next_asset_id(self) -> int:
        return self._next_id

    def asset_exists(self, asset_id: int) -> bool:
        return self.ownership.exists(asset_id)

    def create_asset(self, owner: str, metadata_ref: str) -> int:
        owner = to_checksum_address(owner)
        asset_id = self._next_id
        self.ownership.assign(asset_id, owner)
        self.enumeration.add(asset_id)
        self.metadata.set_uri(asset_id, metadata_ref)
        self._next_id += 1
        for hook in self._on_create:
            hook(asset_id)
        return asset_id

    def destroy_asset(self, asset_id: int) -> None:
        if not self.asset_exists(asset_id):
            raise NotFound(f"asset {asset_id} does not exist")
        for hook in self._on_destroy:
            hook(asset_id)
        self.ownership.release(asset_id)
        self.enumeration.remove(asset_id)
        self.metadata.clear(asset_id)
        logger.info(f"Destroyed asset {asset_id}")

    def transfer(self, caller: str, asset_id: int, to: str) -> None:
        if self.owner_of(asset_id) != to_checksum_address(caller):
            raise Unauthorized("only the owner can transfer")
        self.ownership.assign(asset_id, to)

    # Capability pass-throughs
    def owner_of(self, asset_id: int) -> str:
        return self.ownership.owner_of(asset_id)

    def token_uri(self, asset_id: int) -> str:
        return self.metadata.token_uri(asset_id)

    def total_supply(self) -> int:
        return self.enumeration.total_supply()

    def token_by_index(self, index: int) -> int:
        return self.enumeration.token_by_index(index)

    def tokens_of_owner(self, owner: str) -> List[int]:
        owner = to_checksum_address(owner)
        return [
            a for a in self.enumeration.all() if self.ownership.owner_of(a) == owner
        ]
