"""Server-side wire protocol utilities for linechat.

Handles line framing of incoming socket data, parsing of the LOGIN
handshake, and formatting of outbound chat and system lines.
"""

import re
from dataclasses import dataclass
from enum import Enum

from chat_server.config import MAX_LINE_LENGTH

ENCODING = "utf-8"
LINE_TERMINATOR = b"\n"
RECV_CHUNK_SIZE = 1024

LOGIN_COMMAND = "LOGIN"
QUIT_COMMAND = "/quit"
SYSTEM_SENDER = "SERVER"

_LOGIN_RE = re.compile(rf"^{LOGIN_COMMAND}\s+(\S+)\s*$")


class ProtocolError(Exception):
    """Base class for framing and handshake violations."""


class LineTooLongError(ProtocolError):
    """A peer sent more than the allowed number of bytes without a newline."""

    def __init__(self, limit):
        super().__init__(f"line exceeds {limit} bytes")
        self.limit = limit


class ReadError(ProtocolError):
    """The underlying socket reported a transport error while reading."""


class LineReader:
    """Split a socket byte stream into text lines.

    Partial reads are buffered until a newline arrives. The terminator and
    an optional trailing carriage return are stripped. The pending buffer is
    bounded by ``max_line_length`` so a peer that never sends a newline
    cannot grow it without limit.

    Args:
        sock: Connected socket to read from
        max_line_length: Largest accepted line, in bytes, excluding the newline
        chunk_size: Number of bytes requested per ``recv`` call
    """

    def __init__(self, sock, max_line_length=MAX_LINE_LENGTH, chunk_size=RECV_CHUNK_SIZE):
        self.sock = sock
        self.max_line_length = max_line_length
        self.chunk_size = chunk_size
        self._buffer = b""
        self._eof = False

    def read_line(self):
        """Return the next line, or None once the peer has closed the stream.

        Raises:
            LineTooLongError: If a line grows past ``max_line_length``
            ReadError: If the socket raises an ``OSError`` (reset, timeout, ...)
        """
        while True:
            index = self._buffer.find(LINE_TERMINATOR)
            if index != -1:
                raw = self._buffer[:index]
                self._buffer = self._buffer[index + 1:]
                if raw.endswith(b"\r"):
                    raw = raw[:-1]
                if len(raw) > self.max_line_length:
                    raise LineTooLongError(self.max_line_length)
                return decode_line(raw)

            # One extra byte for the carriage return of a CRLF terminator
            if len(self._buffer) > self.max_line_length + 1:
                raise LineTooLongError(self.max_line_length)

            if self._eof:
                if self._buffer:
                    raw, self._buffer = self._buffer, b""
                    if len(raw.rstrip(b"\r")) > self.max_line_length:
                        raise LineTooLongError(self.max_line_length)
                    return decode_line(raw)
                return None

            try:
                data = self.sock.recv(self.chunk_size)
            except OSError as exc:
                raise ReadError(str(exc) or exc.__class__.__name__) from exc

            if not data:
                self._eof = True
                continue
            self._buffer += data

    def __iter__(self):
        while True:
            line = self.read_line()
            if line is None:
                return
            yield line


def decode_line(raw):
    """Decode one raw line, dropping a trailing carriage return."""
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return raw.decode(ENCODING, errors="replace")


def parse_login(line, max_username_length):
    """Extract the username from a ``LOGIN <username>`` line.

    Args:
        line: Decoded line received from the client
        max_username_length: Longest username accepted

    Returns:
        The username, or None if the line is not a well-formed LOGIN
    """
    match = _LOGIN_RE.match(line)
    if not match:
        return None
    username = match.group(1)
    if len(username) > max_username_length or username == SYSTEM_SENDER:
        return None
    return username


def is_login_attempt(line):
    """True if the line has the exact ``LOGIN <username>`` shape.

    Chat text that merely begins with the word LOGIN is not a command.
    """
    return bool(_LOGIN_RE.match(line))


def is_quit(line):
    return line.strip() == QUIT_COMMAND


class MessageKind(Enum):
    CHAT = "chat"
    JOIN = "join"
    LEAVE = "leave"
    SYSTEM = "system"


@dataclass(frozen=True)
class OutboundMessage:
    """One line headed for other clients, formatted only when sent."""

    sender: str
    text: str
    kind: MessageKind = MessageKind.CHAT

    @classmethod
    def chat(cls, sender, text):
        return cls(sender, text, MessageKind.CHAT)

    @classmethod
    def join(cls, username):
        return cls(username, f"{username} has joined the chat", MessageKind.JOIN)

    @classmethod
    def leave(cls, username):
        return cls(username, f"{username} has left the chat", MessageKind.LEAVE)

    @classmethod
    def system(cls, text):
        return cls(SYSTEM_SENDER, text, MessageKind.SYSTEM)

    def to_line(self):
        if self.kind is MessageKind.CHAT:
            return f"{self.sender}: {self.text}"
        return f"{SYSTEM_SENDER}: {self.text}"

    def encode(self):
        return (self.to_line() + "\n").encode(ENCODING)
