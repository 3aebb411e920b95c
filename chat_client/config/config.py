"""Client configuration for linechat.

Loads environment variables for the server address and connection limits.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Server connection configuration with environment variable overrides
HOST = os.environ.get("HOST", "127.0.0.1")
SERVER_PORT = int(os.environ.get("SERVER_PORT", "4000"))
CONNECT_TIMEOUT = float(os.environ.get("CONNECT_TIMEOUT", "5"))

# Longest line accepted from the server, in bytes
MAX_LINE_LENGTH = int(os.environ.get("MAX_LINE_LENGTH", "65536"))

# How long to wait for the receiver thread after closing the socket
RECEIVER_JOIN_TIMEOUT = float(os.environ.get("RECEIVER_JOIN_TIMEOUT", "2"))

COLOR_OUTPUT = os.environ.get("COLOR_OUTPUT", "true").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING").upper()
