"""Session state and the shared session registry for linechat.

The registry is the single source of truth for who is online. One instance
is created by the server and handed to every connection handler, the
broadcast router and the status endpoint. All access goes through one lock
that is never held while sending to a peer.

Each session owns a bounded outbound queue drained by its own writer
thread, so a peer that stops reading only ever stalls its own writer.
"""

import itertools
import logging
import queue
import socket
import threading
from enum import Enum

from chat_server.config import OUTBOUND_QUEUE_SIZE, SEND_TIMEOUT

logger = logging.getLogger(__name__)

_CLOSE = object()


class AuthResult(Enum):
    SUCCESS = "success"
    DUPLICATE = "duplicate"
    ALREADY_AUTHENTICATED = "already_authenticated"
    UNKNOWN = "unknown"


class Session:
    """Server-side record of one connected, possibly authenticated client.

    Only the owning handler changes ``username``/``authenticated`` (through
    the registry). Sends from any thread are queued with ``send``; the
    session's writer thread is the only code that writes to the socket.

    Args:
        session_id: Id assigned by the registry
        sock: Connected client socket
        address: Peer address, for logging
        queue_size: Lines that may wait for the writer
        send_timeout: Seconds ``send`` may block on a full queue
    """

    def __init__(self, session_id, sock, address, queue_size=OUTBOUND_QUEUE_SIZE,
                 send_timeout=SEND_TIMEOUT):
        self.session_id = session_id
        self.sock = sock
        self.address = address
        self.username = None
        self.authenticated = False
        self.failed = False
        self.send_timeout = send_timeout
        self.outbound = queue.Queue(maxsize=queue_size)
        self._writer = None
        self._writer_lock = threading.Lock()

    def __repr__(self):
        return f"<Session {self.session_id} {self.username or '-'} {self.address}>"

    def send(self, message):
        """Queue an OutboundMessage for delivery to this client.

        Blocks for at most ``send_timeout`` when the queue is full. A client
        that falls that far behind is marked failed.

        Returns:
            True if the message was queued
        """
        if self.failed or not self._ensure_writer():
            return False
        try:
            self.outbound.put(message.encode(), timeout=self.send_timeout)
        except queue.Full:
            logger.info("Outbound queue full for %s, dropping it", self)
            self.mark_failed()
            return False
        return True

    def _ensure_writer(self):
        with self._writer_lock:
            if self._writer is not None:
                return True
            writer = threading.Thread(
                target=self._write_loop, name=f"writer-{self.session_id}", daemon=True)
            try:
                writer.start()
            except RuntimeError as exc:
                logger.warning("Could not start writer for %s: %s", self, exc)
                self.mark_failed()
                return False
            self._writer = writer
        return True

    def _write_loop(self):
        while True:
            data = self.outbound.get()
            if data is _CLOSE:
                return
            try:
                self.sock.sendall(data)
            except OSError as exc:
                logger.debug("Send to %s failed: %s", self, exc)
                self.mark_failed()
                return

    def mark_failed(self):
        """Flag a failed delivery and wake the owning handler.

        Shutting the socket down makes the handler's blocked read return, so
        teardown (and the leave notice) happens in exactly one place. It also
        unblocks a writer stuck in ``sendall``.
        """
        self.failed = True
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def close(self):
        """Flush queued lines, stop the writer and release the socket."""
        writer = self._writer
        if writer is not None:
            try:
                if self.failed:
                    self.outbound.put_nowait(_CLOSE)
                else:
                    self.outbound.put(_CLOSE, timeout=self.send_timeout)
            except queue.Full:
                self.mark_failed()
            writer.join(self.send_timeout)
            if writer.is_alive():
                self.mark_failed()
                writer.join(self.send_timeout)
        try:
            self.sock.close()
        except OSError:
            pass


class SessionRegistry:
    """Thread-safe mapping from session id to Session.

    Args:
        queue_size: Outbound queue length for new sessions
        send_timeout: Seconds a full outbound queue may block a sender
    """

    def __init__(self, queue_size=OUTBOUND_QUEUE_SIZE, send_timeout=SEND_TIMEOUT):
        self.queue_size = queue_size
        self.send_timeout = send_timeout
        self._lock = threading.Lock()
        self._sessions = {}
        self._ids = itertools.count(1)

    def register(self, sock, address):
        """Create an unauthenticated session and return its id."""
        with self._lock:
            session_id = next(self._ids)
            self._sessions[session_id] = Session(
                session_id, sock, address, self.queue_size, self.send_timeout)
        return session_id

    def get(self, session_id):
        with self._lock:
            return self._sessions.get(session_id)

    def authenticate(self, session_id, username):
        """Bind a username to a session if no live session holds it.

        Args:
            session_id: Id returned by ``register``
            username: Username claimed by the client

        Returns:
            AuthResult describing the outcome; on anything but SUCCESS the
            session is left exactly as it was
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return AuthResult.UNKNOWN
            if session.authenticated:
                return AuthResult.ALREADY_AUTHENTICATED
            for other in self._sessions.values():
                if other.authenticated and other.username == username:
                    return AuthResult.DUPLICATE
            session.username = username
            session.authenticated = True
            # Re-insert so iteration order follows login order
            del self._sessions[session_id]
            self._sessions[session_id] = session
        return AuthResult.SUCCESS

    def remove(self, session_id):
        """Remove a session and return it, or None if already removed."""
        with self._lock:
            return self._sessions.pop(session_id, None)

    def recipients(self, exclude_id=None):
        """Copy of authenticated, healthy sessions other than ``exclude_id``."""
        with self._lock:
            return [
                session
                for session_id, session in self._sessions.items()
                if session.authenticated and not session.failed and session_id != exclude_id
            ]

    def snapshot(self):
        """Usernames of authenticated sessions, in login order."""
        with self._lock:
            return [session.username for session in self._sessions.values() if session.authenticated]

    def sessions(self):
        with self._lock:
            return list(self._sessions.values())

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id):
        with self._lock:
            return session_id in self._sessions
