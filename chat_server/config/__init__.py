from .config import (
    ACCEPT_RETRY_DELAY,
    KEEPALIVE_COUNT,
    KEEPALIVE_IDLE,
    KEEPALIVE_INTERVAL,
    LISTEN_BACKLOG,
    LOG_LEVEL,
    MAX_LINE_LENGTH,
    MAX_USERNAME_LENGTH,
    OUTBOUND_QUEUE_SIZE,
    SEND_TIMEOUT,
    SERVER_HOST,
    SERVER_PORT,
    STATUS_ENABLED,
    STATUS_HOST,
    STATUS_PORT,
)

__all__ = [
    "ACCEPT_RETRY_DELAY",
    "KEEPALIVE_COUNT",
    "KEEPALIVE_IDLE",
    "KEEPALIVE_INTERVAL",
    "LISTEN_BACKLOG",
    "LOG_LEVEL",
    "MAX_LINE_LENGTH",
    "MAX_USERNAME_LENGTH",
    "OUTBOUND_QUEUE_SIZE",
    "SEND_TIMEOUT",
    "SERVER_HOST",
    "SERVER_PORT",
    "STATUS_ENABLED",
    "STATUS_HOST",
    "STATUS_PORT",
]
