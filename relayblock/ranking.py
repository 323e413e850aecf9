"""
Design (ranking.py)
- Purpose: Build the ordered view (lowest latency first) shown to the operator.
- Inputs: Iterable of Location (a Registry), observations {code -> Observation},
          statuses {code -> BlockStatus}.
- Outputs: list[RankedRow]; the same ordering backs Registry.lookup_by_rank.
- Side effects: None.
- Thread-safety: Pure; callers pass snapshots.
"""

from typing import Iterable, List, Mapping, NamedTuple

from .models import BlockStatus, Location, Observation


class RankedRow(NamedTuple):
    position: int            # 1-based, as shown in the table
    location: Location
    observation: Observation
    status: BlockStatus


def rank(
    locations: Iterable[Location],
    observations: Mapping[str, Observation],
    statuses: Mapping[str, BlockStatus] | None = None,
) -> List[RankedRow]:
    statuses = statuses or {}
    entries = [
        (loc, observations.get(loc.code) or Observation.no_data(), statuses.get(loc.code, BlockStatus.UNKNOWN))
        for loc in locations
    ]
    # list.sort is stable: ties keep registry order
    entries.sort(key=lambda e: e[1].sort_key())
    return [RankedRow(i, loc, obs, st) for i, (loc, obs, st) in enumerate(entries, start=1)]
