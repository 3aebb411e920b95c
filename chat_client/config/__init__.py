from . import constants
from .config import (
    COLOR_OUTPUT,
    CONNECT_TIMEOUT,
    HOST,
    LOG_LEVEL,
    MAX_LINE_LENGTH,
    RECEIVER_JOIN_TIMEOUT,
    SERVER_PORT,
)

__all__ = [
    "constants",
    "COLOR_OUTPUT",
    "CONNECT_TIMEOUT",
    "HOST",
    "LOG_LEVEL",
    "MAX_LINE_LENGTH",
    "RECEIVER_JOIN_TIMEOUT",
    "SERVER_PORT",
]
