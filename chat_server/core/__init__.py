from .broadcast import BroadcastRouter
from .handler import ConnectionHandler, SessionState
from .protocol import (
    LineReader,
    LineTooLongError,
    MessageKind,
    OutboundMessage,
    ProtocolError,
    ReadError,
)
from .session import AuthResult, Session, SessionRegistry

__all__ = [
    "AuthResult",
    "BroadcastRouter",
    "ConnectionHandler",
    "LineReader",
    "LineTooLongError",
    "MessageKind",
    "OutboundMessage",
    "ProtocolError",
    "ReadError",
    "Session",
    "SessionRegistry",
    "SessionState",
]
