from __future__ import annotations

import logging
from typing import Iterable, Set

from eth_utils import to_checksum_address

from geoproof.errors import Unauthorized

logger = logging.getLogger(__name__)


class AccessControl:
    """Administrator role check for oracle management."""

    def __init__(self, administrators: Iterable[str] = ()):
        self._admins: Set[str] = {to_checksum_address(a) for a in administrators}

    def is_administrator(self, caller: str) -> bool:
        try:
            return to_checksum_address(caller) in self._admins
        except ValueError:
            return False

    def require_administrator(self, caller: str) -> None:
        """
        Raises:
            Unauthorized: If caller lacks the administrator role
        """
        if not self.is_administrator(caller):
            logger.warning("Rejected administrator call")
            raise Unauthorized("caller is not an administrator")

    def grant(self, caller: str, account: str) -> None:
        self.require_administrator(caller)
        self._admins.add(to_checksum_address(account))

    def revoke(self, caller: str, account: str) -> None:
        self.require_administrator(caller)
        self._admins.discard(to_checksum_address(account))
