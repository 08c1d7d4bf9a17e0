from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from eth_utils import keccak
from pydantic import BaseModel

logger = logging.getLogger(__name__)


def canonical(obj: Any) -> bytes:
    """Canonical JSON serialization for deterministic hashing."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")


def h_record(header: dict) -> str:
    """Domain-separated hash of a record header (prev + event)."""
    return "0x" + keccak(b"GEOPROOF_AUDIT\x00" + canonical(header)).hex()


GENESIS = h_record({"genesis": True})


class AuditTrail:
    """
    Append-only, hash-chained event log for external audit.

    Record schema:
      {
        "prev_hash": "0x...",
        "event": {...},
        "record_hash": "0x..."
      }

    Kept in memory; mirrored to JSONL when ``path`` is given. Events are
    observability only and never drive control flow.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._records: List[Dict[str, Any]] = []
        if path:
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            if os.path.exists(path):
                self._records = self._read_records()

    def _read_records(self) -> List[Dict[str, Any]]:
        records = []
        with open(self.path, "rb") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                records.append(json.loads(line))
        return records

    def tip_hash(self) -> str:
        return self._records[-1]["record_hash"] if self._records else GENESIS

    def append(self, event: BaseModel) -> Dict[str, Any]:
        header = {
            "prev_hash": self.tip_hash(),
            "event": event.model_dump(mode="json", by_alias=True),
        }
        record = {**header, "record_hash": h_record(header)}
        if self.path:
            with open(self.path, "ab") as f:
                f.write(canonical(record) + b"\n")
        self._records.append(record)
        logger.info(f"Audit {header['event']['kind']}: {record['record_hash'][:18]}...")
        return record

    def verify(self) -> bool:
        prev = GENESIS
        for r in self._records:
            header = {"prev_hash": prev, "event": r["event"]}
            if r["prev_hash"] != prev:
                return False
            if r["record_hash"] != h_record(header):
                return False
            prev = r["record_hash"]
        return True

    def events(self, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        out = [r["event"] for r in self._records]
        if kind:
            out = [e for e in out if e.get("kind") == kind]
        return out

    def __len__(self) -> int:
        return len(self._records)
