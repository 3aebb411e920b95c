import socket
import threading
import time

import pytest

from chat_server.core import SessionRegistry
from chat_server.server import ChatServer

TEST_MAX_LINE_LENGTH = 256


def wait_for(predicate, timeout=5.0, interval=0.02):
    """Poll ``predicate`` until it is truthy or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


class LineClient:
    """Minimal raw protocol client used to drive the server in tests."""

    def __init__(self, address, timeout=5.0):
        self.sock = socket.create_connection(address, timeout=timeout)
        self.buffer = b""

    def send(self, line):
        self.sock.sendall((line + "\n").encode("utf-8"))

    def send_raw(self, data):
        self.sock.sendall(data)

    def recv_line(self):
        """Next line from the server, or None at end-of-stream."""
        while b"\n" not in self.buffer:
            data = self.sock.recv(1024)
            if not data:
                return None
            self.buffer += data
        line, self.buffer = self.buffer.split(b"\n", 1)
        return line.decode("utf-8")

    def recv_chat_lines(self, count):
        """Collect ``count`` lines, skipping SERVER notices."""
        lines = []
        while len(lines) < count:
            line = self.recv_line()
            assert line is not None, "server closed the connection early"
            if not line.startswith("SERVER: "):
                lines.append(line)
        return lines

    def login(self, username):
        self.send(f"LOGIN {username}")
        return self.recv_line()

    def is_closed(self):
        """Drain until the server closes the connection."""
        try:
            while True:
                data = self.sock.recv(1024)
                if not data:
                    return True
        except ConnectionResetError:
            return True
        except socket.timeout:
            return False

    def close(self):
        try:
            self.sock.close()
        except OSError:
            pass


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def chat_server():
    server = ChatServer(
        host="127.0.0.1",
        port=0,
        max_line_length=TEST_MAX_LINE_LENGTH,
        accept_retry_delay=0,
    )
    server.bind()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    thread.join(timeout=2)


@pytest.fixture
def connect(chat_server):
    clients = []

    def _connect():
        client = LineClient(chat_server.address)
        clients.append(client)
        return client

    yield _connect
    for client in clients:
        client.close()


@pytest.fixture
def logged_in(connect):
    """Log in users one after another, draining the join notices."""

    def _logged_in(*names):
        clients = []
        for name in names:
            client = connect()
            assert client.login(name) == f"SERVER: Welcome, {name}!"
            for earlier in clients:
                assert earlier.recv_line() == f"SERVER: {name} has joined the chat"
            clients.append(client)
        return clients

    return _logged_in
