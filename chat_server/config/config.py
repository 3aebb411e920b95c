"""Server configuration for linechat.

Loads environment variables for the chat listener, per-session limits and
the read-only status endpoint.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Chat listener configuration
SERVER_HOST = os.environ.get("SERVER_HOST", "0.0.0.0")
SERVER_PORT = int(os.environ.get("SERVER_PORT", 4000))
LISTEN_BACKLOG = int(os.environ.get("LISTEN_BACKLOG", 50))
ACCEPT_RETRY_DELAY = float(os.environ.get("ACCEPT_RETRY_DELAY", 0.5))

# Per-session limits
MAX_LINE_LENGTH = int(os.environ.get("MAX_LINE_LENGTH", 4096))  # bytes
MAX_USERNAME_LENGTH = int(os.environ.get("MAX_USERNAME_LENGTH", 32))
SEND_TIMEOUT = float(os.environ.get("SEND_TIMEOUT", 5))  # seconds a full outbound queue may block a sender
OUTBOUND_QUEUE_SIZE = int(os.environ.get("OUTBOUND_QUEUE_SIZE", 256))  # lines

# TCP keepalive settings used to reclaim half-open peers; 0 disables
KEEPALIVE_IDLE = int(os.environ.get("KEEPALIVE_IDLE", 60))
KEEPALIVE_INTERVAL = int(os.environ.get("KEEPALIVE_INTERVAL", 10))
KEEPALIVE_COUNT = int(os.environ.get("KEEPALIVE_COUNT", 5))

# Read-only user listing over HTTP
STATUS_ENABLED = os.environ.get("STATUS_ENABLED", "true").lower() == "true"
STATUS_HOST = os.environ.get("STATUS_HOST", "0.0.0.0")
STATUS_PORT = int(os.environ.get("STATUS_PORT", 4001))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
