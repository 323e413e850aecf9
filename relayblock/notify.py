"""
Design (notify.py)
- Purpose: Optional desktop notifications when a location's block status changes.
- Inputs: Location code/name and its new status.
- Side effects: plyer notification popup (when enabled).
- Thread-safety: Safe; plyer call is fire-and-forget.
"""

import logging

from plyer import notification

from .models import BlockStatus

log = logging.getLogger(__name__)


class Notifier:
    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled

    def send(self, title: str, message: str) -> None:
        if not self.enabled:
            return
        try:
            notification.notify(title=title, message=message, timeout=5)
        except Exception as exc:
            # no notification backend (headless box, missing dbus) is normal here
            log.debug("Notification failed: %s", exc)

    def status_changed(self, code: str, name: str, status: BlockStatus) -> None:
        self.send("Relay Status Change", f"{name or code} ({code}) is now: {status.value}")
