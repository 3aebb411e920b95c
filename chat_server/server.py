"""linechat - multi-user TCP chat server.

Accepts connections on the chat port, gives every connection its own
handler thread and fans chat lines out to all other logged-in users.
"""

import errno
import logging
import socket
import sys
import threading
import time

from chat_server.config import (
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
from chat_server.core import BroadcastRouter, ConnectionHandler, SessionRegistry
from chat_server.status import StatusServer

logger = logging.getLogger(__name__)

# accept() failures that leave the listening socket usable
TRANSIENT_ACCEPT_ERRORS = {
    errno.EMFILE,
    errno.ENFILE,
    errno.ENOBUFS,
    errno.ENOMEM,
    errno.ECONNABORTED,
    errno.EINTR,
    errno.EAGAIN,
    errno.EPROTO,
    errno.EPERM,
}


class ChatServer:
    """Accept loop for the chat port.

    Args:
        host: Interface to bind
        port: TCP port to listen on (0 picks a free port)
        registry: SessionRegistry to use; a new one is created if omitted
        max_line_length: Largest accepted line in bytes
        max_username_length: Longest accepted username
        send_timeout: Seconds a full outbound queue may block a sender
        outbound_queue_size: Lines queued per session before it counts as stuck
        keepalive_idle: Idle seconds before TCP keepalive starts, 0 to disable
        keepalive_interval: Seconds between keepalive packets
        keepalive_count: Unanswered keepalives before the peer is dropped
    """

    def __init__(
        self,
        host=SERVER_HOST,
        port=SERVER_PORT,
        registry=None,
        max_line_length=MAX_LINE_LENGTH,
        max_username_length=MAX_USERNAME_LENGTH,
        backlog=LISTEN_BACKLOG,
        accept_retry_delay=ACCEPT_RETRY_DELAY,
        send_timeout=SEND_TIMEOUT,
        outbound_queue_size=OUTBOUND_QUEUE_SIZE,
        keepalive_idle=KEEPALIVE_IDLE,
        keepalive_interval=KEEPALIVE_INTERVAL,
        keepalive_count=KEEPALIVE_COUNT,
    ):
        self.host = host
        self.port = port
        if registry is None:
            registry = SessionRegistry(queue_size=outbound_queue_size, send_timeout=send_timeout)
        self.registry = registry
        self.router = BroadcastRouter(self.registry)
        self.keepalive_idle = keepalive_idle
        self.keepalive_interval = keepalive_interval
        self.keepalive_count = keepalive_count
        self.max_line_length = max_line_length
        self.max_username_length = max_username_length
        self.backlog = backlog
        self.accept_retry_delay = accept_retry_delay
        self.server_socket = None
        self._stopping = threading.Event()

    @property
    def address(self):
        """(host, port) actually bound, once ``bind`` has run."""
        if self.server_socket is None:
            return None
        return self.server_socket.getsockname()[:2]

    def bind(self):
        """Create the listening socket.

        Raises:
            OSError: If the address cannot be bound
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
            sock.listen(self.backlog)
        except OSError:
            sock.close()
            raise
        self.server_socket = sock
        logger.info("[*] Server listening on %s:%s", *self.address)
        return self.address

    def serve_forever(self):
        """Accept connections until ``shutdown`` is called.

        Raises:
            OSError: If the listening socket itself fails
        """
        if self.server_socket is None:
            self.bind()

        while not self._stopping.is_set():
            try:
                client_socket, address = self.server_socket.accept()
            except OSError as exc:
                if self._stopping.is_set():
                    break
                if exc.errno in TRANSIENT_ACCEPT_ERRORS:
                    logger.warning("accept() failed, retrying: %s", exc)
                    time.sleep(self.accept_retry_delay)
                    continue
                raise

            self.start_session(client_socket, address)

    def start_session(self, client_socket, address):
        """Register a new connection and start its handler thread.

        Returns:
            The new session id, or None if no handler thread could be started
            (the connection is closed and the accept loop carries on)
        """
        self.enable_keepalive(client_socket)
        session_id = self.registry.register(client_socket, address)
        handler = ConnectionHandler(
            self.registry,
            self.router,
            session_id,
            max_line_length=self.max_line_length,
            max_username_length=self.max_username_length,
        )
        logger.debug("New connection from %s (session %s)", address, session_id)
        thread = threading.Thread(
            target=handler.run,
            name=f"session-{session_id}",
            daemon=True,
        )
        try:
            thread.start()
        except RuntimeError as exc:
            logger.warning("Could not start handler for %s, closing it: %s", address, exc)
            self.registry.remove(session_id)
            client_socket.close()
            return None
        return session_id

    def enable_keepalive(self, client_socket):
        """Turn on TCP keepalive so silent but dead peers are eventually dropped.

        Reads never time out; an idle but connected client stays online.
        """
        if not self.keepalive_idle:
            return
        try:
            client_socket.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            # Tuning options are platform specific
            if hasattr(socket, "TCP_KEEPIDLE"):
                client_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, self.keepalive_idle)
            if hasattr(socket, "TCP_KEEPINTVL"):
                client_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, self.keepalive_interval)
            if hasattr(socket, "TCP_KEEPCNT"):
                client_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPCNT, self.keepalive_count)
        except OSError as exc:
            logger.debug("Could not set keepalive on %s: %s", client_socket, exc)

    def shutdown(self):
        """Stop accepting and disconnect every live session."""
        self._stopping.set()
        if self.server_socket is not None:
            # shutdown() wakes a thread blocked in accept()
            try:
                self.server_socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self.server_socket.close()
        for session in self.registry.sessions():
            session.mark_failed()


def main():
    """Run the chat server (and the status endpoint) until interrupted."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] (%(threadName)s) %(message)s",
        datefmt="%H:%M:%S",
    )

    server = ChatServer()
    try:
        server.bind()
    except OSError as exc:
        logger.error("Could not bind %s:%s: %s", SERVER_HOST, SERVER_PORT, exc)
        return 1

    status = None
    if STATUS_ENABLED:
        status = StatusServer(server.registry, STATUS_HOST, STATUS_PORT)
        try:
            status.start()
        except OSError as exc:
            logger.warning("Status endpoint disabled, could not bind %s:%s: %s",
                           STATUS_HOST, STATUS_PORT, exc)
            status = None

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    except OSError as exc:
        logger.error("Listening socket failed: %s", exc)
        return 1
    finally:
        server.shutdown()
        if status is not None:
            status.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
