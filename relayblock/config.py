"""
Design (config.py)
- Purpose: Centralize constants and configuration.
- Inputs: None.
- Outputs: Constants (URLs, paths, ping bounds, display thresholds, colours).
- Side effects: None.
- Thread-safety: N/A (read-only constants).
"""

# Discovery feed (relay locations keyed by POP code)
FEED_URL = "https://api.steampowered.com/ISteamApps/GetSDRConfig/v1?appid=730"
FEED_TIMEOUT_SEC = 15

# Persistence: ledger of addresses this tool black-holed (path resolved in ledger module)
STATE_DIR = "/var/lib/relay-blocker"
LEDGER_FILENAME = "blocked_ips.txt"
LOCK_FILENAME = "ledger.lock"
STATE_DIR_MODE = 0o700
LEDGER_FILE_MODE = 0o600

## Ping behavior
PING_COUNT = 2            # echo requests per location
PING_TIMEOUT_SEC = 1      # per-echo wait (ping -W)
PING_DEADLINE_SEC = PING_COUNT * PING_TIMEOUT_SEC + 3   # hard cap on the whole ping process

# Tools that must be on PATH before the session starts
REQUIRED_TOOLS = ("ip", "ping")

# Table rendering
LATENCY_GOOD_MS = 50
LATENCY_FAIR_MS = 100
NAME_MAX_WIDTH = 28

RED = "\x1b[0;31m"
GREEN = "\x1b[0;32m"
YELLOW = "\x1b[1;33m"
BLUE = "\x1b[0;34m"
CYAN = "\x1b[0;36m"
NC = "\x1b[0m"

# Logging
LOGGER_NAME = "relayblock"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
