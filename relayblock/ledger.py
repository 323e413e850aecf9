"""
Design (ledger.py)
- Purpose: Durable record of every address this tool black-holed; survives restarts and is
           the list unblock-all works from.
- Format: One address per line, newline-terminated, no duplicates, insertion ordered.
- Inputs: State directory (config.STATE_DIR unless overridden).
- Side effects: Reads/writes <state_dir>/blocked_ips.txt (0600) and a sibling lock file.
- Thread-safety: Every mutation is load -> modify -> atomic replace, under an in-process
                 lock plus an exclusive flock so two sessions cannot lose each other's updates.
"""

import fcntl
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List

from .config import LEDGER_FILE_MODE, LEDGER_FILENAME, LOCK_FILENAME, STATE_DIR, STATE_DIR_MODE

log = logging.getLogger(__name__)


class LedgerError(Exception):
    """Ledger file could not be read or written."""


class BlockLedger:
    def __init__(self, state_dir: str | Path = STATE_DIR) -> None:
        self.state_dir = Path(state_dir)
        self.path = self.state_dir / LEDGER_FILENAME
        self.lock_path = self.state_dir / LOCK_FILENAME
        self._lock = threading.Lock()

    # -------- reading --------

    def load(self) -> List[str]:
        """
        Purpose: Read the ledger.
        Outputs: Addresses in file order, blanks and duplicates dropped. Missing file -> [].
        Raises: LedgerError if the file exists but cannot be read.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise LedgerError(f"Cannot read {self.path}: {exc}") from exc
        addrs: List[str] = []
        for line in text.splitlines():
            line = line.strip()
            if line and line not in addrs:
                addrs.append(line)
        return addrs

    # -------- mutation --------

    def add(self, addr: str) -> bool:
        """Append addr if absent. Returns True when the file changed."""
        with self._locked():
            addrs = self.load()
            if addr in addrs:
                return False
            addrs.append(addr)
            self._write(addrs)
            return True

    def remove(self, addr: str) -> bool:
        """Drop addr if present. Returns True when the file changed."""
        with self._locked():
            addrs = self.load()
            if addr not in addrs:
                return False
            self._write([a for a in addrs if a != addr])
            return True

    def discard_many(self, resolved: Iterable[str]) -> List[str]:
        """
        Purpose: Single rewrite dropping every address in `resolved`.
        Outputs: The ledger contents after the rewrite.
        Note: Entries added by another session since our snapshot are kept.
        """
        resolved = set(resolved)
        with self._locked():
            remaining = [a for a in self.load() if a not in resolved]
            self._write(remaining)
            return remaining

    # -------- internals --------

    def _ensure_dir(self) -> None:
        try:
            self.state_dir.mkdir(mode=STATE_DIR_MODE, parents=True, exist_ok=True)
        except OSError as exc:
            raise LedgerError(f"Cannot create {self.state_dir}: {exc}") from exc

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            self._ensure_dir()
            try:
                fd = os.open(self.lock_path, os.O_CREAT | os.O_RDWR, LEDGER_FILE_MODE)
            except OSError as exc:
                raise LedgerError(f"Cannot open lock file {self.lock_path}: {exc}") from exc
            try:
                fcntl.flock(fd, fcntl.LOCK_EX)
                yield
            finally:
                fcntl.flock(fd, fcntl.LOCK_UN)
                os.close(fd)

    def _write(self, addrs: List[str]) -> None:
        data = "".join(f"{a}\n" for a in addrs)
        try:
            fd, tmp = tempfile.mkstemp(dir=self.state_dir, prefix=".blocked_ips.", suffix=".tmp")
        except OSError as exc:
            raise LedgerError(f"Cannot write {self.path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                os.fchmod(f.fileno(), LEDGER_FILE_MODE)
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as exc:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise LedgerError(f"Cannot write {self.path}: {exc}") from exc
        log.debug("Ledger now holds %d address(es)", len(addrs))
