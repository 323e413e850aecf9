"""
Design (reconciler.py)
- Purpose: Keep kernel black-hole routes and the BlockLedger consistent with each other.
- Inputs: A RouteTable (kernel or fake) and a BlockLedger.
- Outputs: Per-address result enums, per-location counts/status, unblock-all report.
- Side effects: Mutates the routing table through RouteTable; writes the ledger.
- Rules:
    * kernel state is queried every time, never cached
    * the ledger changes only after the kernel change it records succeeded
    * addresses of one location are processed in order, one at a time
    * unblock_all fans out kernel removals, then rewrites the ledger exactly once
- Thread-safety: Ledger serializes its own writes; route mutations within a location are sequential.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple

from .ledger import BlockLedger, LedgerError
from .models import BlockResult, BlockStatus, Location, UnblockResult
from .routes import RouteTable
from .validator import check_blockable, is_well_formed

log = logging.getLogger(__name__)


@dataclass
class UnblockAllReport:
    results: Dict[str, UnblockResult] = field(default_factory=dict)
    remaining: List[str] = field(default_factory=list)   # ledger after the rewrite

    @property
    def unblocked(self) -> int:
        return sum(1 for r in self.results.values() if r is UnblockResult.UNBLOCKED_NOW)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results.values() if r in (UnblockResult.FAILED, UnblockResult.SKIPPED))


class Reconciler:
    def __init__(self, routes: RouteTable, ledger: BlockLedger) -> None:
        self.routes = routes
        self.ledger = ledger

    # -------- single address --------

    def _query(self, addr: str) -> bool | None:
        """Kernel route state for addr: True/False, or None when the query itself failed."""
        try:
            state = self.routes.query(addr)
        except Exception:
            log.exception("Route query for %s raised", addr)
            return None
        return None if state is None else bool(state)

    def is_blocked(self, addr: str) -> bool:
        # Fail-open: a query that cannot run reports "not blocked"
        return self._query(addr) is True

    def block(self, addr: str) -> BlockResult:
        """
        Purpose: Install a black-hole route for addr and record it.
        Outputs: BlockResult
        Side effects: Route add + ledger add on success. If the ledger write fails the route
                      is taken back out so the two never disagree about ownership.
        """
        if not check_blockable(addr, log):
            return BlockResult.REFUSED if is_well_formed(addr) else BlockResult.SKIPPED

        if self.is_blocked(addr):
            log.info("  %s - Already blocked", addr)
            return BlockResult.ALREADY_BLOCKED

        if not self._route_call(self.routes.add, addr):
            log.warning("  %s - Failed to block", addr)
            return BlockResult.FAILED

        try:
            self.ledger.add(addr)
        except LedgerError as exc:
            log.error("Failed to update state file: %s", exc)
            if not self._route_call(self.routes.remove, addr):
                log.error("  %s - blocked but not recorded; remove it with 'ip route del blackhole %s'", addr, addr)
            return BlockResult.FAILED

        log.info("  %s - Blocked (blackhole route)", addr)
        return BlockResult.BLOCKED_NOW

    def unblock(self, addr: str) -> UnblockResult:
        if not is_well_formed(addr):
            log.warning("Invalid IP format: %r - skipping", addr)
            return UnblockResult.SKIPPED

        result = self._unblock_route(addr)
        if result is UnblockResult.FAILED:
            log.warning("  %s - Failed to unblock", addr)
            return result

        # Route is confirmed gone (removed now, or the query positively showed none)
        try:
            self.ledger.remove(addr)
        except LedgerError as exc:
            log.error("Failed to update state file: %s", exc)

        if result is UnblockResult.UNBLOCKED_NOW:
            log.info("  %s - Unblocked", addr)
        else:
            log.info("  %s - Not blocked", addr)
        return result

    def _unblock_route(self, addr: str) -> UnblockResult:
        """Kernel side of unblock only; no ledger access. A failed query is FAILED, never NOT_BLOCKED."""
        state = self._query(addr)
        if state is None:
            log.warning("  %s - Cannot read route state", addr)
            return UnblockResult.FAILED
        if not state:
            return UnblockResult.NOT_BLOCKED
        if self._route_call(self.routes.remove, addr):
            return UnblockResult.UNBLOCKED_NOW
        return UnblockResult.FAILED

    def _route_call(self, fn: Callable[[str], bool], addr: str) -> bool:
        try:
            return bool(fn(addr))
        except Exception:
            log.exception("Route mutation for %s raised", addr)
            return False

    # -------- locations --------

    def location_status(self, location: Location) -> BlockStatus:
        if not location.addresses:
            return BlockStatus.UNKNOWN
        for addr in location.addresses:
            if not self.is_blocked(addr):
                return BlockStatus.UNBLOCKED
        return BlockStatus.BLOCKED

    def block_location(self, location: Location) -> int:
        """
        Purpose: Block every address of a location, in address order.
        Outputs: Number of addresses blocked by this call.
        """
        if not location.addresses:
            return 0
        log.info("Blocking location: %s (%s)", location.name, location.code)
        blocked = 0
        for addr in location.addresses:
            if self.block(addr) is BlockResult.BLOCKED_NOW:
                blocked += 1
        log.info("Blocked %d new IPs for %s", blocked, location.code)
        return blocked

    def unblock_location(self, location: Location) -> int:
        if not location.addresses:
            return 0
        log.info("Unblocking location: %s (%s)", location.name, location.code)
        unblocked = 0
        for addr in location.addresses:
            if self.unblock(addr) is UnblockResult.UNBLOCKED_NOW:
                unblocked += 1
        log.info("Unblocked %d IPs for %s", unblocked, location.code)
        return unblocked

    # -------- ledger-wide --------

    def unblock_all(self) -> UnblockAllReport:
        """
        Purpose: Remove every route the ledger holds, concurrently.
        Outputs: UnblockAllReport; report.remaining is the ledger afterwards, i.e. exactly the
                 addresses that failed to unblock or were malformed.
        Side effects: One ledger rewrite, after every worker has finished.
        """
        addrs = self.ledger.load()
        report = UnblockAllReport()
        if not addrs:
            log.info("No blocked routes found")
            return report

        log.info("Unblocking %d ledger address(es)...", len(addrs))
        with ThreadPoolExecutor(max_workers=len(addrs)) as executor:
            futures = {a: executor.submit(self._unblock_one, a) for a in addrs}
            for addr, fut in futures.items():
                try:
                    report.results[addr] = fut.result()
                except Exception:
                    log.exception("Unblock worker for %s crashed", addr)
                    report.results[addr] = UnblockResult.FAILED

        resolved = [
            a for a, r in report.results.items()
            if r in (UnblockResult.UNBLOCKED_NOW, UnblockResult.NOT_BLOCKED)
        ]
        report.remaining = self.ledger.discard_many(resolved)
        log.info("Unblocked %d, %d still blocked", report.unblocked, len(report.remaining))
        return report

    def _unblock_one(self, addr: str) -> UnblockResult:
        if not is_well_formed(addr):
            log.warning("Invalid IP format in ledger: %r - keeping", addr)
            return UnblockResult.SKIPPED
        result = self._unblock_route(addr)
        if result is UnblockResult.FAILED:
            log.warning("  %s - Failed to unblock", addr)
        return result

    def ledger_report(self) -> List[Tuple[str, bool]]:
        """Each ledger entry with whether its black-hole route is still present."""
        return [(addr, is_well_formed(addr) and self.is_blocked(addr)) for addr in self.ledger.load()]
