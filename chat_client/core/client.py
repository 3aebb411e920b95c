"""Dual-loop chat client for linechat.

The receiver runs on a background thread and only ever reads from the
socket. The sender runs on the calling thread, only ever writes, and owns
the shutdown: it closes the socket and then waits for the receiver to see
end-of-stream before returning.
"""

import logging
import socket
import threading

from chat_client.config import (
    CONNECT_TIMEOUT,
    HOST,
    MAX_LINE_LENGTH,
    RECEIVER_JOIN_TIMEOUT,
    SERVER_PORT,
)
from chat_client.core.console import Console
from chat_client.core.protocol import (
    QUIT_COMMAND,
    ConnectionLost,
    encode_line,
    is_quit,
    login_line,
    read_lines,
)

logger = logging.getLogger(__name__)


class ChatClient:
    """One connection to the chat server.

    Args:
        host: Server host
        port: Server chat port
        console: Console used for all output
        input_func: Callable returning the next operator line
        connect_timeout: Seconds allowed for the TCP connect
        join_timeout: Seconds to wait for the receiver after closing
    """

    def __init__(
        self,
        host=HOST,
        port=SERVER_PORT,
        console=None,
        input_func=input,
        connect_timeout=CONNECT_TIMEOUT,
        join_timeout=RECEIVER_JOIN_TIMEOUT,
        max_line_length=MAX_LINE_LENGTH,
    ):
        self.host = host
        self.port = port
        self.console = console if console is not None else Console()
        self.input_func = input_func
        self.connect_timeout = connect_timeout
        self.join_timeout = join_timeout
        self.max_line_length = max_line_length
        self.sock = None
        self.receiver = None
        self._quitting = threading.Event()
        self._lost = threading.Event()

    @property
    def connected(self):
        return self.sock is not None and not self._lost.is_set()

    def connect(self):
        """Open the TCP connection.

        Raises:
            OSError: If the server cannot be reached
        """
        self.sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
        self.sock.settimeout(None)
        logger.info("Connected to %s:%s", self.host, self.port)

    def login(self, username):
        self.send_line(login_line(username))

    def send_line(self, line):
        self.sock.sendall(encode_line(line))

    def start_receiver(self):
        self.receiver = threading.Thread(target=self.receive_loop, name="receiver", daemon=True)
        self.receiver.start()

    def receive_loop(self):
        """Render server lines until end-of-stream or a read error."""
        try:
            for line in read_lines(self.sock, self.max_line_length):
                self.console.show(line)
        except ConnectionLost as exc:
            if not self._quitting.is_set():
                logger.info("Receive failed: %s", exc)
                self.console.alert(f"Connection error: {exc}")

        if not self._quitting.is_set():
            self._lost.set()
            self.console.alert("Disconnected from server. Press Enter to exit.")

    def send_loop(self):
        """Forward operator lines to the server.

        Returns:
            0 after a clean /quit, 1 if the connection was lost
        """
        while True:
            self.console.prompt()
            try:
                line = self.input_func()
            except (EOFError, KeyboardInterrupt):
                line = QUIT_COMMAND

            if self._lost.is_set():
                return 1

            if is_quit(line):
                self.quit()
                return 0

            if not line.strip():
                continue

            try:
                self.send_line(line)
            except OSError as exc:
                self._lost.set()
                self.console.alert(f"Send failed, disconnected from server: {exc}")
                return 1

    def quit(self):
        """Tell the server we are leaving; failure here is not fatal."""
        self._quitting.set()
        try:
            self.send_line(QUIT_COMMAND)
        except OSError as exc:
            logger.debug("Could not send %s: %s", QUIT_COMMAND, exc)
        self.console.notice("Disconnecting...")

    def close(self):
        """Close the socket and wait for the receiver to finish."""
        if self.sock is None:
            return
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        if self.receiver is not None:
            self.receiver.join(self.join_timeout)
            if self.receiver.is_alive():
                logger.warning("Receiver thread did not stop within %ss", self.join_timeout)
        self.sock.close()
        self.sock = None

    def run(self, username):
        """Log in, then run the receiver and sender until the session ends.

        Returns:
            Process exit status
        """
        if self.sock is None:
            self.connect()
        try:
            self.login(username)
            self.start_receiver()
            return self.send_loop()
        except OSError as exc:
            self.console.alert(f"Disconnected from server: {exc}")
            return 1
        finally:
            self.close()
