"""Configuration for the smart plug controller.

Protocol constants and defaults. Site-specific values (plug address, timeouts,
Flask secret) live in .env, not here:

    PLUG_HOST=192.168.2.102
    PLUG_PORT=9999
    PLUG_TIMEOUT=5
"""

# ---------------------------------------------------------------------------
# Local protocol (HS100 family)
# ---------------------------------------------------------------------------
DEFAULT_PORT = 9999
XOR_KEY = 171                # initial autokey value (0xAB)
HEADER_SIZE = 4              # zero prefix on send, stripped unchecked on receive
RECV_BUFFER_SIZE = 2048      # single bounded reply read; longer replies are truncated

# ---------------------------------------------------------------------------
# Web API
# ---------------------------------------------------------------------------
WEB_HOST = "0.0.0.0"
WEB_PORT = 5000

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
