"""
Design (feed.py)
- Purpose: Fetch the relay discovery document and reduce it to {code -> {"name", "addresses"}}.
- Inputs: Feed URL (config.FEED_URL by default).
- Outputs: Parsed mapping, or a built Registry via load_registry().
- Side effects: One HTTP GET per fetch.
- Thread-safety: Stateless.
"""

import logging
from typing import Any, Dict, List

import requests

from .config import FEED_TIMEOUT_SEC, FEED_URL
from .registry import Registry

log = logging.getLogger(__name__)


class FeedError(Exception):
    """Discovery feed unreachable or unusable."""


def fetch_feed(url: str = FEED_URL, timeout: float = FEED_TIMEOUT_SEC) -> Dict[str, Any]:
    log.info("Fetching relay information from %s", url)
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
    except ValueError as exc:
        # requests' JSONDecodeError is also a RequestException; catch it here first
        raise FeedError(f"Relay data is not valid JSON: {exc}") from exc
    except requests.RequestException as exc:
        raise FeedError(f"Failed to fetch relay data: {exc}") from exc
    if not isinstance(data, dict):
        raise FeedError("Relay data root is not an object")
    return data


def parse_feed(document: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Purpose: Pull each POP's description and relay ipv4 fields out of the raw document.
    Outputs: {code: {"name": str, "addresses": [str, ...]}}; bad records give an empty address list.
    Raises: FeedError when there is no "pops" object at all.
    """
    pops = document.get("pops") if isinstance(document, dict) else None
    if not isinstance(pops, dict):
        raise FeedError("No relay locations found")

    parsed: Dict[str, Dict[str, Any]] = {}
    for code, pop in pops.items():
        if not isinstance(pop, dict):
            parsed[code] = {"name": "", "addresses": []}
            continue
        desc = pop.get("desc")
        addresses: List[str] = []
        relays = pop.get("relays")
        if isinstance(relays, list):
            for relay in relays:
                if isinstance(relay, dict) and isinstance(relay.get("ipv4"), str):
                    addresses.append(relay["ipv4"])
        parsed[code] = {"name": desc if isinstance(desc, str) else "", "addresses": addresses}
    return parsed


def load_registry(url: str = FEED_URL, timeout: float = FEED_TIMEOUT_SEC) -> Registry:
    return Registry.build(parse_feed(fetch_feed(url, timeout)))
