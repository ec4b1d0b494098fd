"""Collect independently arriving claim and reference collections."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Sequence

from .enrichment import REQUIRED_REFERENCES

LOGGER = logging.getLogger(__name__)

CLAIMS = "claims"
COLLECTIONS = (CLAIMS, *REQUIRED_REFERENCES)


class ReferenceLoader:
    """Holds the latest delivery of each collection for one view generation.

    Fetches are started by the surrounding application and delivered through
    :meth:`receive` with the generation token returned by :meth:`begin`. After
    :meth:`cancel` or :meth:`reset`, deliveries tagged with an older generation
    are dropped instead of applied.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._collections: Dict[str, List[Mapping[str, Any]]] = {}

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def begin(self) -> int:
        """Return the token fetches for the current generation should carry."""

        return self.generation

    def receive(self, name: str, records: Sequence[Mapping[str, Any]] | None, generation: int | None = None) -> bool:
        """Store ``records`` for ``name``; return False when the delivery is stale.

        ``None`` records count as an empty collection once delivered, so a
        failed fetch does not block readiness forever.
        """

        if name not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {name}")
        with self._lock:
            if generation is not None and generation != self._generation:
                LOGGER.debug(
                    "Dropping stale %s delivery (generation %s, current %s)", name, generation, self._generation
                )
                return False
            self._collections[name] = list(records or ())
        return True

    def cancel(self) -> int:
        """Invalidate in-flight fetches while keeping what already arrived."""

        with self._lock:
            self._generation += 1
            return self._generation

    def reset(self) -> int:
        """Invalidate in-flight fetches and forget every delivered collection."""

        with self._lock:
            self._generation += 1
            self._collections.clear()
            return self._generation

    def get(self, name: str) -> List[Mapping[str, Any]] | None:
        with self._lock:
            return self._collections.get(name)

    @property
    def missing(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(name for name in COLLECTIONS if name not in self._collections)

    @property
    def is_ready(self) -> bool:
        return not self.missing

    def snapshot(self) -> Dict[str, List[Mapping[str, Any]] | None]:
        """Current collections keyed by name; ``None`` marks one not yet received."""

        with self._lock:
            return {name: self._collections.get(name) for name in COLLECTIONS}


__all__ = ["CLAIMS", "COLLECTIONS", "ReferenceLoader"]
