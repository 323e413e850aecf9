"""
Design (routes.py)
- Purpose: Small capability interface over the kernel black-hole route primitive, so the
           reconciler can run against the real routing table or an in-memory fake.
- Inputs: Address strings (already validated by the caller).
- Outputs: Booleans (exit code zero = success).
- Side effects: IpRouteTable spawns 'ip route' subprocesses and mutates the routing table.
- Thread-safety: Stateless; the kernel serializes its own table.
"""

import logging
import subprocess
from typing import List, Protocol

log = logging.getLogger(__name__)


class RouteTable(Protocol):
    def query(self, addr: str) -> bool | None:
        """True if a black-hole route for addr exists right now, False if not, None if the query failed."""
        ...

    def add(self, addr: str) -> bool:
        ...

    def remove(self, addr: str) -> bool:
        ...


class IpRouteTable:
    """iproute2 backend: `ip route show|add blackhole|del blackhole <addr>`."""

    def __init__(self, ip_cmd: str = "ip") -> None:
        self.ip_cmd = ip_cmd

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self.ip_cmd, "route", *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )

    def query(self, addr: str) -> bool | None:
        try:
            result = self._run(["show", addr])
        except OSError as exc:
            log.warning("ip route show %s failed: %s", addr, exc)
            return None
        if result.returncode != 0:
            log.debug("ip route show %s exited %d: %s", addr, result.returncode, result.stderr.strip())
            return None
        return "blackhole" in result.stdout

    def add(self, addr: str) -> bool:
        return self._mutate("add", addr)

    def remove(self, addr: str) -> bool:
        return self._mutate("del", addr)

    def _mutate(self, verb: str, addr: str) -> bool:
        try:
            result = self._run([verb, "blackhole", addr])
        except OSError as exc:
            log.error("ip route %s blackhole %s failed: %s", verb, addr, exc)
            return False
        if result.returncode != 0:
            log.warning("ip route %s blackhole %s exited %d: %s", verb, addr, result.returncode, result.stderr.strip())
            return False
        return True
