import argparse
import logging
import os
import shutil
import sys
from functools import partial
from typing import List

from relayblock.config import FEED_TIMEOUT_SEC, FEED_URL, REQUIRED_TOOLS, STATE_DIR
from relayblock.feed import FeedError, load_registry
from relayblock.ledger import BlockLedger
from relayblock.logger import setup_logger
from relayblock.menu import Menu
from relayblock.notify import Notifier
from relayblock.reconciler import Reconciler
from relayblock.routes import IpRouteTable
from relayblock.session import Session


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Block relay locations with kernel blackhole routes (run as root)")
    p.add_argument("--feed-url", default=FEED_URL, help="Relay discovery JSON endpoint")
    p.add_argument("--state-dir", default=STATE_DIR, help="Directory holding the blocked-address ledger")
    p.add_argument("--log-file", default=None, help="Also write log lines to this file")
    p.add_argument("--notify", action="store_true", help="Desktop notification when a location's status changes")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def missing_tools() -> List[str]:
    return [tool for tool in REQUIRED_TOOLS if shutil.which(tool) is None]


def check_environment(logger: logging.Logger) -> bool:
    missing = missing_tools()
    if missing:
        logger.error("Missing dependencies: %s", ", ".join(missing))
        logger.error("Install iproute2 and iputils-ping (Debian/Ubuntu) or iproute and iputils (RHEL)")
        return False
    if os.geteuid() != 0:
        logger.error("Please run as root or with sudo")
        return False
    return True


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    logger = setup_logger(log_file=args.log_file, level=logging.DEBUG if args.verbose else logging.INFO)

    if not check_environment(logger):
        return 1

    loader = partial(load_registry, args.feed_url, FEED_TIMEOUT_SEC)
    try:
        session = Session(loader())
    except FeedError as exc:
        logger.error("%s", exc)
        return 1

    reconciler = Reconciler(IpRouteTable(), BlockLedger(args.state_dir))
    menu = Menu(session, reconciler, loader, notifier=Notifier(enabled=args.notify))

    # Initial ping and status check
    menu.ping_all()
    menu.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
