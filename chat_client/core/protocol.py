"""Client-side wire protocol utilities for linechat.

Provides line framing for data read from the server and helpers to build
the lines the client sends.
"""

from chat_client.config import MAX_LINE_LENGTH

ENCODING = "utf-8"
RECV_CHUNK_SIZE = 1024

LOGIN_COMMAND = "LOGIN"
QUIT_COMMAND = "/quit"
SYSTEM_PREFIX = "SERVER: "


class ConnectionLost(Exception):
    """Reading from the server failed with a transport error."""


def read_lines(sock, max_line_length=MAX_LINE_LENGTH):
    """Yield decoded lines from the server until it closes the stream.

    Args:
        sock: Connected socket
        max_line_length: Largest line accepted from the server, in bytes

    Raises:
        ConnectionLost: On a socket error or an oversized server line
    """
    buffer = b""
    while True:
        try:
            data = sock.recv(RECV_CHUNK_SIZE)
        except OSError as exc:
            raise ConnectionLost(str(exc) or exc.__class__.__name__) from exc
        if not data:
            if buffer:
                yield _decode(buffer)
            return
        buffer += data

        # Process complete lines (delimited by newline)
        while b"\n" in buffer:
            line, buffer = buffer.split(b"\n", 1)
            yield _decode(line)

        if len(buffer) > max_line_length:
            raise ConnectionLost(f"server line exceeds {max_line_length} bytes")


def _decode(raw):
    return raw.rstrip(b"\r").decode(ENCODING, errors="replace")


def valid_username(username):
    """A username is one non-empty token without whitespace."""
    return bool(username) and not any(ch.isspace() for ch in username)


def login_line(username):
    return f"{LOGIN_COMMAND} {username}"


def is_quit(line):
    return line.strip() == QUIT_COMMAND


def encode_line(line):
    return (line + "\n").encode(ENCODING)
