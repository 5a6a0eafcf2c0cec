"""
Timing Utilities.

``timeit`` measures a ``with`` block using perf_counter(). The result is
available after the block exits, including when the block raised, so
failure paths can log how long they took.

Example:
    with timeit("engine") as t:
        result = await engine.synthesize(request)
    info(log, "speech_done", seconds=round(t.seconds, 3))
"""
from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, Optional


@dataclass
class Timing:
    """A finished measurement."""
    name: str
    seconds: float
    meta: Optional[Dict[str, Any]] = None


class timeit:
    """Context manager timing a code block."""

    def __init__(self, name: str, meta: Optional[Dict[str, Any]] = None):
        self.name = name
        self.meta = meta
        self._t0: float | None = None
        self.timing: Timing | None = None

    def __enter__(self) -> "timeit":
        self._t0 = perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        assert self._t0 is not None
        self.timing = Timing(name=self.name, seconds=perf_counter() - self._t0, meta=self.meta)

    @property
    def seconds(self) -> float:
        """Elapsed seconds; live while inside the block, -1.0 before entry."""
        if self.timing is not None:
            return self.timing.seconds
        if self._t0 is None:
            return -1.0
        return perf_counter() - self._t0
