"""
Design (registry.py)
- Purpose: Hold the relay locations of one discovery refresh, keyed by POP code.
- Inputs: Parsed feed {code -> {"name": str, "addresses": [str, ...]}}.
- Outputs: Registry (ordered, immutable after build).
- Side effects: build() logs addresses it drops.
- Thread-safety: Immutable after build; safe to read from worker threads.
"""

import logging
from typing import Dict, Iterator, List, Mapping

from .models import BlockStatus, Location, Observation
from .ranking import rank
from .validator import is_sensitive, is_well_formed

log = logging.getLogger(__name__)


class Registry:
    """
    Design (Registry)
    - State:
        _locations: {code -> Location} in feed order
    - A refresh builds a new Registry; there is no incremental merge.
    """

    def __init__(self, locations: List[Location] | None = None) -> None:
        self._locations: Dict[str, Location] = {}
        for loc in locations or []:
            self._locations[loc.code] = loc

    @classmethod
    def build(cls, feed: Mapping[str, Mapping]) -> "Registry":
        """
        Purpose: Filter every location's addresses through the validator and drop empty locations.
        Inputs: feed mapping of code -> {"name", "addresses"}.
        Outputs: Registry
        Side effects: Sensitive addresses are reported at ERROR, malformed at WARNING;
                      neither aborts the build.
        """
        locations: List[Location] = []
        for code, entry in feed.items():
            entry = entry if isinstance(entry, Mapping) else {}
            name = entry.get("name") or ""
            kept: List[str] = []
            for addr in entry.get("addresses") or []:
                if not is_well_formed(addr):
                    log.warning("Skipping malformed IP %r for %s", addr, code)
                    continue
                if is_sensitive(addr):
                    log.error("Skipping private/localhost IP: %s (%s)", addr, code)
                    continue
                if addr not in kept:
                    kept.append(addr)
            if kept:
                locations.append(Location(code=str(code), name=str(name), addresses=tuple(kept)))
            else:
                log.debug("Dropping %s: no usable addresses", code)
        log.info("Found %d relay locations", len(locations))
        return cls(locations)

    def get(self, code: str) -> Location | None:
        return self._locations.get(code)

    def codes(self) -> List[str]:
        return list(self._locations)

    def locations(self) -> List[Location]:
        return list(self._locations.values())

    def lookup_by_rank(
        self,
        n: int,
        observations: Mapping[str, Observation],
        statuses: Mapping[str, BlockStatus] | None = None,
    ) -> Location | None:
        """
        Purpose: Map a 1-based table row back to its Location.
        Inputs: n and the observations the table was ranked with.
        Outputs: Location, or None when n is outside 1..len(self).
        """
        rows = rank(self.locations(), observations, statuses)
        if 1 <= n <= len(rows):
            return rows[n - 1].location
        return None

    def __len__(self) -> int:
        return len(self._locations)

    def __iter__(self) -> Iterator[Location]:
        return iter(self.locations())

    def __contains__(self, code: object) -> bool:
        return code in self._locations
