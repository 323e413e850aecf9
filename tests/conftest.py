from __future__ import annotations

import threading

import pytest

from relayblock.ledger import BlockLedger
from relayblock.models import Location
from relayblock.reconciler import Reconciler


class FakeRouteTable:
    """In-memory stand-in for the kernel blackhole table."""

    def __init__(self) -> None:
        self.blackholed: set[str] = set()
        self.fail_add: set[str] = set()
        self.fail_remove: set[str] = set()
        self.fail_query: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def _record(self, op: str, addr: str) -> None:
        with self._lock:
            self.calls.append((op, addr))

    def query(self, addr: str) -> bool | None:
        self._record("query", addr)
        if addr in self.fail_query:
            return None
        return addr in self.blackholed

    def add(self, addr: str) -> bool:
        self._record("add", addr)
        if addr in self.fail_add:
            return False
        with self._lock:
            self.blackholed.add(addr)
        return True

    def remove(self, addr: str) -> bool:
        self._record("remove", addr)
        if addr in self.fail_remove or addr not in self.blackholed:
            return False
        with self._lock:
            self.blackholed.discard(addr)
        return True

    def mutations(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] != "query"]


@pytest.fixture
def routes() -> FakeRouteTable:
    return FakeRouteTable()


@pytest.fixture
def ledger(tmp_path) -> BlockLedger:
    return BlockLedger(tmp_path / "state")


@pytest.fixture
def reconciler(routes, ledger) -> Reconciler:
    return Reconciler(routes, ledger)


@pytest.fixture
def sample_feed() -> dict:
    return {
        "fra": {"name": "Frankfurt (Germany)", "addresses": ["155.133.226.70", "155.133.226.71"]},
        "sto": {"name": "Stockholm (Sweden)", "addresses": ["146.66.156.10"]},
        "lan": {"name": "Local only", "addresses": ["192.168.1.1", "10.0.0.1"]},
        "bad": {"name": "Broken", "addresses": ["999.1.1.1", "a.b.c.d"]},
        "iad": {"name": "Sterling (Virginia)", "addresses": ["162.254.192.70"]},
    }


def seed_ledger(ledger: BlockLedger, *addrs: str) -> None:
    """Write a ledger file by hand, the way an earlier session would have left it."""
    ledger.state_dir.mkdir(parents=True, exist_ok=True)
    ledger.path.write_text("".join(f"{a}\n" for a in addrs))


def make_location(code: str, *addresses: str, name: str = "") -> Location:
    return Location(code=code, name=name or code.upper(), addresses=tuple(addresses))
