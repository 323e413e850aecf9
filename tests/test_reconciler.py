from __future__ import annotations

import logging
import threading

import pytest
from conftest import make_location, seed_ledger

from relayblock.ledger import LedgerError
from relayblock.models import BlockResult, BlockStatus, Location, UnblockResult


def test_block_then_unblock_round_trip(reconciler, routes, ledger) -> None:
    addr = "155.133.226.70"

    assert reconciler.block(addr) is BlockResult.BLOCKED_NOW
    assert reconciler.is_blocked(addr)
    assert ledger.load() == [addr]

    assert reconciler.unblock(addr) is UnblockResult.UNBLOCKED_NOW
    assert not reconciler.is_blocked(addr)
    assert ledger.load() == []


def test_block_twice_is_idempotent(reconciler, routes, ledger) -> None:
    assert reconciler.block("146.66.156.10") is BlockResult.BLOCKED_NOW
    assert reconciler.block("146.66.156.10") is BlockResult.ALREADY_BLOCKED

    assert ledger.load() == ["146.66.156.10"]
    assert routes.mutations() == [("add", "146.66.156.10")]


@pytest.mark.parametrize("addr", ["127.0.0.1", "10.0.0.1", "172.20.5.5", "192.168.1.1", "169.254.1.1"])
def test_sensitive_addresses_never_reach_kernel_or_ledger(reconciler, routes, ledger, caplog, addr) -> None:
    caplog.set_level(logging.DEBUG)

    assert reconciler.block(addr) is BlockResult.REFUSED

    assert routes.calls == []
    assert ledger.load() == []
    assert any(r.levelno == logging.ERROR and addr in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize("addr", ["999.1.1.1", "1.2.3", "a.b.c.d", "012.0.0.1", "010.1.1.1"])
def test_malformed_addresses_are_skipped(reconciler, routes, ledger, addr) -> None:
    assert reconciler.block(addr) is BlockResult.SKIPPED
    assert reconciler.unblock(addr) is UnblockResult.SKIPPED
    assert routes.calls == []
    assert not ledger.path.exists()


def test_failed_block_leaves_ledger_untouched(reconciler, routes, ledger) -> None:
    routes.fail_add.add("8.8.8.8")

    assert reconciler.block("8.8.8.8") is BlockResult.FAILED
    assert ledger.load() == []


def test_ledger_failure_rolls_back_route(reconciler, routes, ledger, monkeypatch) -> None:
    def _fail(addr):
        raise LedgerError("disk full")

    monkeypatch.setattr(ledger, "add", _fail)

    assert reconciler.block("8.8.8.8") is BlockResult.FAILED
    assert "8.8.8.8" not in routes.blackholed


def test_unblock_not_blocked_reconciles_stale_ledger_entry(reconciler, routes, ledger) -> None:
    ledger.add("8.8.8.8")  # route vanished behind our back (reboot, manual ip route del)

    assert reconciler.unblock("8.8.8.8") is UnblockResult.NOT_BLOCKED
    assert ledger.load() == []
    assert routes.mutations() == []


def test_failed_unblock_keeps_ledger_entry(reconciler, routes, ledger) -> None:
    reconciler.block("8.8.8.8")
    routes.fail_remove.add("8.8.8.8")

    assert reconciler.unblock("8.8.8.8") is UnblockResult.FAILED
    assert ledger.load() == ["8.8.8.8"]


def test_unblock_with_failed_query_keeps_route_and_ledger(reconciler, routes, ledger) -> None:
    reconciler.block("8.8.8.8")
    routes.fail_query.add("8.8.8.8")

    assert reconciler.unblock("8.8.8.8") is UnblockResult.FAILED
    assert ledger.load() == ["8.8.8.8"]
    assert "8.8.8.8" in routes.blackholed
    assert ("remove", "8.8.8.8") not in routes.calls


def test_unblock_all_with_failed_query_keeps_ledger_entry(reconciler, routes, ledger) -> None:
    for addr in ("8.8.8.8", "9.9.9.9"):
        reconciler.block(addr)
    routes.fail_query.add("9.9.9.9")

    report = reconciler.unblock_all()

    assert report.results == {"8.8.8.8": UnblockResult.UNBLOCKED_NOW, "9.9.9.9": UnblockResult.FAILED}
    assert ledger.load() == ["9.9.9.9"]
    assert routes.blackholed == {"9.9.9.9"}


def test_failed_query_reads_as_not_blocked(reconciler, routes) -> None:
    reconciler.block("8.8.8.8")
    routes.fail_query.add("8.8.8.8")

    assert reconciler.is_blocked("8.8.8.8") is False


def test_query_exception_is_not_blocked(reconciler, routes, monkeypatch) -> None:
    def _boom(addr):
        raise RuntimeError("netlink gone")

    monkeypatch.setattr(routes, "query", _boom)

    assert reconciler.is_blocked("8.8.8.8") is False


def test_block_location_is_sequential_and_counts(reconciler, routes) -> None:
    loc = make_location("fra", "155.133.226.70", "155.133.226.71", "155.133.226.72")
    routes.blackholed.add("155.133.226.71")

    assert reconciler.block_location(loc) == 2
    assert routes.mutations() == [("add", "155.133.226.70"), ("add", "155.133.226.72")]
    assert reconciler.location_status(loc) is BlockStatus.BLOCKED


def test_partial_block_reports_unblocked_status(reconciler, routes) -> None:
    loc = make_location("fra", "155.133.226.70", "155.133.226.71")
    routes.fail_add.add("155.133.226.71")

    assert reconciler.block_location(loc) == 1
    assert reconciler.location_status(loc) is BlockStatus.UNBLOCKED


def test_unblock_location(reconciler, routes, ledger) -> None:
    loc = make_location("sto", "146.66.156.10", "146.66.156.11")
    reconciler.block_location(loc)

    assert reconciler.unblock_location(loc) == 2
    assert reconciler.location_status(loc) is BlockStatus.UNBLOCKED
    assert ledger.load() == []


def test_location_without_addresses_is_unknown(reconciler) -> None:
    empty = Location("none", "", ())

    assert reconciler.location_status(empty) is BlockStatus.UNKNOWN
    assert reconciler.block_location(empty) == 0


def test_unblock_all_keeps_only_failures(reconciler, routes, ledger) -> None:
    a, b, c = "155.133.226.70", "146.66.156.10", "162.254.192.70"
    for addr in (a, b, c):
        reconciler.block(addr)
    routes.fail_remove.add(b)

    report = reconciler.unblock_all()

    assert ledger.load() == [b]
    assert report.remaining == [b]
    assert report.results == {a: UnblockResult.UNBLOCKED_NOW, b: UnblockResult.FAILED, c: UnblockResult.UNBLOCKED_NOW}
    assert report.unblocked == 2
    assert report.failed == 1
    assert routes.blackholed == {b}


def test_unblock_all_keeps_malformed_and_drops_missing_routes(reconciler, routes, ledger) -> None:
    seed_ledger(ledger, "8.8.8.8", "not-an-ip", "9.9.9.9")
    routes.blackholed.add("9.9.9.9")

    report = reconciler.unblock_all()

    assert report.results["8.8.8.8"] is UnblockResult.NOT_BLOCKED
    assert report.results["not-an-ip"] is UnblockResult.SKIPPED
    assert ledger.load() == ["not-an-ip"]


def test_unblock_all_runs_concurrently_and_rewrites_once(reconciler, routes, ledger, monkeypatch) -> None:
    addrs = ["203.0.113.1", "203.0.113.2", "203.0.113.3"]
    seed_ledger(ledger, *addrs)
    routes.blackholed.update(addrs)
    barrier = threading.Barrier(len(addrs), timeout=5)
    original_remove = routes.remove

    def _remove(addr):
        barrier.wait()
        return original_remove(addr)

    monkeypatch.setattr(routes, "remove", _remove)
    writes = []
    original_discard = ledger.discard_many
    monkeypatch.setattr(ledger, "discard_many", lambda resolved: writes.append(set(resolved)) or original_discard(resolved))
    monkeypatch.setattr(ledger, "remove", lambda addr: pytest.fail("per-address ledger write during unblock_all"))

    report = reconciler.unblock_all()

    assert writes == [set(addrs)]
    assert report.remaining == []


def test_unblock_all_empty_ledger(reconciler, ledger) -> None:
    report = reconciler.unblock_all()

    assert report.results == {}
    assert not ledger.path.exists()


def test_ledger_report_shows_live_state(reconciler, routes, ledger) -> None:
    reconciler.block("8.8.8.8")
    ledger.add("9.9.9.9")

    assert reconciler.ledger_report() == [("8.8.8.8", True), ("9.9.9.9", False)]
