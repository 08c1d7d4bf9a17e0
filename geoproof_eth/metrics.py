"""
Non-behavioral service metrics.

Privacy boundary:
- No addresses, coordinates or witness hashes
- Counts and latencies only; labels carry error codes, never identities
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator


def _key(name: str, labels: Dict[str, str]) -> str:
    if not labels:
        return name
    inner = ",".join(f"{k}={labels[k]}" for k in sorted(labels))
    return f"{name}{{{inner}}}"


@dataclass
class Metrics:
    """
    Operation counters and latency gauges for the mint service.

    Counter keys follow the ``name{label=value}`` convention so a
    snapshot can be scraped without further parsing.
    """

    counters: Dict[str, int] = field(default_factory=dict)
    gauges: Dict[str, float] = field(default_factory=dict)

    def inc(self, name: str, by: int = 1, **labels: str) -> None:
        k = _key(name, labels)
        self.counters[k] = self.counters.get(k, 0) + by

    def observe(self, name: str, value: float) -> None:
        self.gauges[name] = float(value)

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        """Record wall time of the block in milliseconds, even on error."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.observe(name, (time.perf_counter() - t0) * 1000.0)

    def snapshot(self) -> dict:
        return {
            "counters": dict(self.counters),
            "gauges": dict(self.gauges),
        }
