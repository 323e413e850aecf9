"""
Design (validator.py)
- Purpose: Decide whether a candidate address may be handed to the kernel route table.
- Inputs: Address strings (anything, really; non-strings are rejected).
- Outputs: Booleans.
- Side effects: check_blockable() logs the reason for a rejection.
- Thread-safety: Stateless; safe to call from any thread.
"""

import ipaddress
import logging
import re

# no leading zeros: iproute2 and ping read "012" as octal
_OCTET = r"(?:25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9]?[0-9])"
_IPV4_RE = re.compile(rf"(?:{_OCTET}\.){{3}}{_OCTET}")

SENSITIVE_NETWORKS = (
    ipaddress.IPv4Network("127.0.0.0/8"),      # loopback
    ipaddress.IPv4Network("10.0.0.0/8"),       # RFC1918
    ipaddress.IPv4Network("172.16.0.0/12"),    # RFC1918
    ipaddress.IPv4Network("192.168.0.0/16"),   # RFC1918
    ipaddress.IPv4Network("169.254.0.0/16"),   # link-local
)

log = logging.getLogger(__name__)


def is_well_formed(addr) -> bool:
    """
    Purpose: Strict IPv4 dotted-quad check (four octets 0-255, nothing around them).
    Outputs: True only for a str matching the whole pattern.
    """
    if not isinstance(addr, str):
        return False
    return _IPV4_RE.fullmatch(addr) is not None


def is_sensitive(addr) -> bool:
    """
    Purpose: True for loopback, RFC1918 private and link-local addresses.
    Outputs: False for malformed input (malformed is a separate verdict).
    """
    if not is_well_formed(addr):
        return False
    ip = ipaddress.IPv4Address(addr)
    return any(ip in net for net in SENSITIVE_NETWORKS)


def check_blockable(addr, logger: logging.Logger | None = None) -> bool:
    """
    Purpose: The consumer contract before any block: both predicates must pass.
    Side effects: Malformed -> WARNING (data quality); sensitive -> ERROR (safety refusal).
    """
    logger = logger or log
    if not is_well_formed(addr):
        logger.warning("Invalid IP format: %r - skipping", addr)
        return False
    if is_sensitive(addr):
        logger.error("Refusing to block private/localhost IP: %s", addr)
        return False
    return True
