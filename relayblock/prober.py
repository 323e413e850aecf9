"""
Latency prober.

Design:
- probe(): ping the first address of one location and reduce it to a single Observation.
- probe_all(): one worker thread per location, all in flight at once (no cap; location
  counts are bounded by the feed), and wait for every one before returning.
- A worker that raises degrades its location to TIMEOUT; the batch never aborts.
- Never touches the Registry; callers decide where the results go.
"""

import logging
import math
import re
import subprocess
from concurrent.futures import ThreadPoolExecutor
from typing import Dict

from .config import PING_COUNT, PING_DEADLINE_SEC, PING_TIMEOUT_SEC
from .models import Location, Observation
from .registry import Registry

log = logging.getLogger(__name__)

# "rtt min/avg/max/mdev = 9.871/10.402/10.933/0.531 ms" (iputils) or "round-trip min/avg/max = ..." (busybox)
_AVG_RE = re.compile(r"avg[^=]*=\s*[\d.]+/([\d.]+)")


def parse_avg_ms(output: str) -> int | None:
    m = _AVG_RE.search(output)
    if not m:
        return None
    return int(math.floor(float(m.group(1)) + 0.5))


def probe(location: Location) -> Observation:
    """
    Purpose: Ping location.first_address PING_COUNT times and report the rounded average.
    Outputs: Observation (ms / TIMEOUT / NO_DATA).
    Side Effects: Spawns a 'ping' subprocess.
    Thread-safety: Safe; no shared state.
    """
    ip = location.first_address
    if ip is None:
        return Observation.no_data()
    try:
        result = subprocess.run(
            ["ping", "-c", str(PING_COUNT), "-W", str(PING_TIMEOUT_SEC), ip],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=PING_DEADLINE_SEC,
        )
    except subprocess.TimeoutExpired:
        log.debug("ping %s (%s) exceeded %ss", ip, location.code, PING_DEADLINE_SEC)
        return Observation.timeout()
    except OSError as exc:
        log.warning("ping %s failed to start: %s", ip, exc)
        return Observation.timeout()

    avg = parse_avg_ms(result.stdout)
    if avg is None:
        return Observation.timeout()
    return Observation.of(avg)


def probe_all(registry: Registry) -> Dict[str, Observation]:
    locations = registry.locations()
    if not locations:
        return {}
    log.info("Starting %d ping tests concurrently...", len(locations))
    with ThreadPoolExecutor(max_workers=len(locations)) as executor:
        futures = {loc.code: executor.submit(probe, loc) for loc in locations}
        results: Dict[str, Observation] = {}
        for code, fut in futures.items():
            try:
                results[code] = fut.result()
            except Exception:
                log.exception("Ping worker for %s crashed", code)
                results[code] = Observation.timeout()
    log.info("Ping test completed")
    return results
