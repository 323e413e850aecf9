"""
Design (session.py)
- Purpose: Encapsulate all mutable per-session state (registry, latency observations, block
           statuses) behind a tiny API and a lock, instead of module-level dicts.
- Inputs: Registry, Observation maps from the prober, statuses from the reconciler.
- Outputs: Snapshots (copies) and the ranked view.
- Side effects: ping_all() and refresh_statuses() call out to the prober / kernel.
- Thread-safety: All mutating methods take the internal lock; snapshot returns copies.
"""

import threading
from typing import Callable, Dict, Iterable, List, Tuple

from .models import BlockStatus, Location, Observation
from .ranking import RankedRow, rank
from .reconciler import Reconciler
from .registry import Registry


class Session:
    """
    Design (Session)
    - State:
        _registry: current Registry (replaced wholesale on refresh)
        _observations: {code -> Observation}
        _statuses: {code -> BlockStatus}
        _lock: threading.Lock protecting all three
    """

    def __init__(self, registry: Registry | None = None) -> None:
        self._lock = threading.Lock()
        self._registry = registry if registry is not None else Registry()
        self._observations: Dict[str, Observation] = {}
        self._statuses: Dict[str, BlockStatus] = {}

    @property
    def registry(self) -> Registry:
        with self._lock:
            return self._registry

    def replace_registry(self, registry: Registry) -> None:
        """
        Purpose: Install the result of a discovery refresh.
        Side effects: Clears observations and statuses; they belonged to the old locations.
        """
        with self._lock:
            self._registry = registry
            self._observations.clear()
            self._statuses.clear()

    # -------- observations --------

    def set_observations(self, observations: Dict[str, Observation]) -> None:
        with self._lock:
            for code, obs in observations.items():
                if code in self._registry:
                    self._observations[code] = obs

    def ping_all(self, probe_all: Callable[[Registry], Dict[str, Observation]]) -> Dict[str, Observation]:
        results = probe_all(self.registry)
        self.set_observations(results)
        return results

    # -------- statuses --------

    def set_status(self, code: str, status: BlockStatus) -> BlockStatus | None:
        """Returns the previous status (None if never evaluated)."""
        with self._lock:
            prev = self._statuses.get(code)
            self._statuses[code] = status
            return prev

    def refresh_statuses(
        self, reconciler: Reconciler, codes: Iterable[str] | None = None
    ) -> Dict[str, Tuple[BlockStatus | None, BlockStatus]]:
        """
        Purpose: Re-query the kernel for each location's status.
        Outputs: {code -> (previous, current)} for statuses that changed.
        """
        registry = self.registry
        targets: List[Location] = [
            loc for loc in (registry.get(c) for c in (codes if codes is not None else registry.codes()))
            if loc is not None
        ]
        changed: Dict[str, Tuple[BlockStatus | None, BlockStatus]] = {}
        for loc in targets:
            status = reconciler.location_status(loc)
            prev = self.set_status(loc.code, status)
            if prev != status:
                changed[loc.code] = (prev, status)
        return changed

    # -------- view --------

    def snapshot(self) -> Tuple[Registry, Dict[str, Observation], Dict[str, BlockStatus]]:
        with self._lock:
            return self._registry, dict(self._observations), dict(self._statuses)

    def view(self) -> List[RankedRow]:
        registry, observations, statuses = self.snapshot()
        return rank(registry.locations(), observations, statuses)

    def lookup_by_rank(self, n: int) -> Location | None:
        registry, observations, statuses = self.snapshot()
        return registry.lookup_by_rank(n, observations, statuses)
