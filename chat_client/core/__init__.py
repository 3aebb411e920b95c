from .client import ChatClient
from .console import Console
from .protocol import (
    ConnectionLost,
    is_quit,
    login_line,
    read_lines,
    valid_username,
)

__all__ = [
    "ChatClient",
    "Console",
    "ConnectionLost",
    "is_quit",
    "login_line",
    "read_lines",
    "valid_username",
]
