"""
Design (menu.py)
- Purpose: Terminal menu over the session: table of locations, block/unblock by row number,
           ledger view, unblock-all, refresh.
- Inputs: Session, Reconciler, Notifier, a registry loader for refreshes.
- Outputs: None (prints to the terminal).
- Side effects: Everything the reconciler and prober do; reads stdin.
- Thread-safety: Runs on the main thread only; fan-out happens inside prober/reconciler.
"""

import logging
from typing import Callable, Dict, List, Tuple

from .config import (
    BLUE, CYAN, GREEN, LATENCY_FAIR_MS, LATENCY_GOOD_MS, NAME_MAX_WIDTH, NC, RED, YELLOW,
)
from .feed import FeedError
from .ledger import LedgerError
from .models import BlockStatus, Observation, ObservationKind
from .notify import Notifier
from .prober import probe_all
from .reconciler import Reconciler
from .registry import Registry
from .session import Session

log = logging.getLogger(__name__)

MENU_ITEMS = [
    ("1", "Ping all locations"),
    ("2", "Block selection"),
    ("3", "Unblock selection"),
    ("4", "Show blocked routes"),
    ("5", "Unblock all locations"),
    ("6", "Refresh data and re-ping"),
    ("0", "Exit"),
]


def parse_selection(text: str) -> Tuple[List[int], List[str]]:
    """
    Purpose: Split "1, 3,x" into row numbers and the entries that were not numbers.
    Outputs: ([1, 3], ["x"]); empty pieces are ignored.
    """
    indices: List[int] = []
    invalid: List[str] = []
    for piece in text.split(","):
        piece = piece.strip()
        if not piece:
            continue
        try:
            indices.append(int(piece))
        except ValueError:
            invalid.append(piece)
    return indices, invalid


def truncate(name: str, width: int = NAME_MAX_WIDTH) -> str:
    return name if len(name) <= width else name[: width - 3] + "..."


def ping_colour(obs: Observation) -> str:
    if obs.kind is ObservationKind.TIMEOUT:
        return RED
    if obs.kind is ObservationKind.MS:
        if obs.latency_ms < LATENCY_GOOD_MS:
            return GREEN
        if obs.latency_ms < LATENCY_FAIR_MS:
            return YELLOW
        return RED
    return NC


class Menu:
    """
    Design (Menu)
    - Public methods:
        run(): main loop until "0" or end of input
        render_table(): current ranked view as printable lines
    - Row numbers typed by the operator are resolved with Session.lookup_by_rank, the same
      ordering render_table() printed.
    """

    def __init__(
        self,
        session: Session,
        reconciler: Reconciler,
        load_registry: Callable[[], Registry],
        notifier: Notifier | None = None,
        probe: Callable[[Registry], Dict[str, Observation]] = probe_all,
        input_fn: Callable[[str], str] = input,
        out: Callable[[str], None] = print,
    ) -> None:
        self.session = session
        self.reconciler = reconciler
        self.load_registry = load_registry
        self.notifier = notifier or Notifier(enabled=False)
        self.probe = probe
        self.input_fn = input_fn
        self.out = out

    # ---------- rendering ----------

    def render_table(self) -> List[str]:
        lines = [
            f"{CYAN}╔════════════════════════════════════════════════════════════════════════╗{NC}",
            f"{CYAN}║                       Relay Locations Status                           ║{NC}",
            f"{CYAN}╠════╬══════════╬══════════════════════════════╬═══════════╬═════════════╣{NC}",
            f"{CYAN}║ #  ║   Code   ║          Location            ║   Ping    ║   Status    ║{NC}",
            f"{CYAN}╠════╬══════════╬══════════════════════════════╬═══════════╬═════════════╣{NC}",
        ]
        bar = f"{CYAN}║{NC}"
        for row in self.session.view():
            status_colour = RED if row.status is BlockStatus.BLOCKED else GREEN
            lines.append(
                f"{bar} {row.position:>2} {bar} {row.location.code:<8} {bar} "
                f"{truncate(row.location.name):<{NAME_MAX_WIDTH}} {bar} "
                f"{ping_colour(row.observation)}{str(row.observation):<9}{NC} {bar} "
                f"{status_colour}{row.status.value:<11}{NC} {bar}"
            )
        lines.append(f"{CYAN}╚════╩══════════╩══════════════════════════════╩═══════════╩═════════════╝{NC}")
        return lines

    def show_table(self) -> None:
        self.out("")
        for line in self.render_table():
            self.out(line)
        self.out("")

    # ---------- actions ----------

    def ping_all(self) -> None:
        self.session.ping_all(self.probe)
        self._refresh_statuses()

    def apply_selection(self, text: str, block: bool) -> None:
        indices, invalid = parse_selection(text)
        for piece in invalid:
            log.error("Invalid input: %s", piece)
        for n in indices:
            location = self.session.lookup_by_rank(n)
            if location is None:
                log.error("Invalid index: %d", n)
                continue
            if block:
                self.reconciler.block_location(location)
            else:
                self.reconciler.unblock_location(location)
            self._refresh_statuses([location.code])

    def selection_loop(self, block: bool) -> None:
        verb = "BLOCK" if block else "UNBLOCK"
        while True:
            self.show_table()
            self.out(f"{YELLOW}Enter location numbers to {verb} (comma-separated, e.g., 1,3,5){NC}")
            self.out(f"{YELLOW}Or press Enter to return to main menu{NC}")
            selection = self.input_fn("> ").strip()
            if not selection:
                return
            self.apply_selection(selection, block)
            self.input_fn("Press Enter to continue...")

    def show_ledger(self) -> None:
        report = self.reconciler.ledger_report()
        if not report:
            self.out("No blocked routes found")
            return
        self.out(f"Found {len(report)} blocked route(s):\n")
        for addr, present in report:
            label = f"{RED}BLOCKED{NC}" if present else f"{YELLOW}MISSING{NC}"
            self.out(f"  {addr} - {label}")

    def unblock_all(self) -> None:
        report = self.reconciler.unblock_all()
        self._refresh_statuses()
        if report.failed:
            log.warning("%d address(es) could not be unblocked: %s", report.failed, ", ".join(report.remaining))
        else:
            log.info("All locations unblocked")
        self.notifier.send("Relay Unblock All", f"Unblocked {report.unblocked}, {len(report.remaining)} still blocked")

    def refresh_data(self) -> None:
        self.session.replace_registry(self.load_registry())
        self.ping_all()

    def _refresh_statuses(self, codes: List[str] | None = None) -> None:
        changed = self.session.refresh_statuses(self.reconciler, codes)
        registry = self.session.registry
        for code, (prev, status) in changed.items():
            location = registry.get(code)
            if prev is not None and location is not None:
                self.notifier.status_changed(code, location.name, status)

    # ---------- main loop ----------

    def run(self) -> None:
        actions: Dict[str, Callable[[], None]] = {
            "1": self.ping_all,
            "2": lambda: self.selection_loop(block=True),
            "3": lambda: self.selection_loop(block=False),
            "4": self._show_ledger_and_wait,
            "5": self._unblock_all_and_wait,
            "6": self.refresh_data,
        }
        try:
            while True:
                self.show_table()
                self.out(f"{BLUE}═══════════════ Main Menu ═══════════════{NC}")
                for key, label in MENU_ITEMS:
                    self.out(f"{key}. {label}")
                self.out("")
                choice = self.input_fn("Select option [0-6]: ").strip()
                if choice == "0":
                    log.info("Goodbye!")
                    return
                action = actions.get(choice)
                if action is None:
                    log.error("Invalid option")
                    continue
                try:
                    action()
                except (FeedError, LedgerError) as exc:
                    log.error("%s", exc)
        except EOFError:
            self.out("")

    def _show_ledger_and_wait(self) -> None:
        self.show_ledger()
        self.input_fn("Press Enter to continue...")

    def _unblock_all_and_wait(self) -> None:
        self.unblock_all()
        self.input_fn("Press Enter to continue...")
