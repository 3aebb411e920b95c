"""Per-connection handler for linechat.

Each accepted connection gets one handler running on its own thread. The
handler owns the session's socket for reading, drives the LOGIN handshake
and hands chat lines to the broadcast router until the session closes.
"""

import logging
from enum import Enum

from chat_server.config import MAX_LINE_LENGTH, MAX_USERNAME_LENGTH
from chat_server.core.protocol import (
    LineReader,
    LineTooLongError,
    OutboundMessage,
    ReadError,
    is_login_attempt,
    is_quit,
    parse_login,
)
from chat_server.core.session import AuthResult

logger = logging.getLogger(__name__)

LOGIN_PROMPT = "Please log in first with LOGIN <username>"


class SessionState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    ACTIVE = "active"
    CLOSING = "closing"


class ConnectionHandler:
    """Drive one session from accept to teardown.

    Args:
        registry: Shared SessionRegistry the session was registered in
        router: BroadcastRouter used for chat lines and join/leave notices
        session_id: Id returned by ``registry.register``
        max_line_length: Largest accepted line in bytes
        max_username_length: Longest accepted username
    """

    def __init__(
        self,
        registry,
        router,
        session_id,
        max_line_length=MAX_LINE_LENGTH,
        max_username_length=MAX_USERNAME_LENGTH,
    ):
        self.registry = registry
        self.router = router
        self.session_id = session_id
        self.session = registry.get(session_id)
        self.max_username_length = max_username_length
        self.reader = LineReader(self.session.sock, max_line_length)
        self.state = SessionState.UNAUTHENTICATED

    def run(self):
        """Read lines until quit, end-of-stream or error, then tear down."""
        try:
            while self.state is not SessionState.CLOSING:
                try:
                    line = self.reader.read_line()
                except LineTooLongError as exc:
                    logger.warning("Oversized line from %s: %s", self.describe(), exc)
                    self.reply("Line too long, disconnecting")
                    break
                except ReadError as exc:
                    if not self.session.failed:
                        logger.info("Read error from %s: %s", self.describe(), exc)
                    break

                if line is None:
                    break
                self.handle_line(line)
        finally:
            self.close()

    def handle_line(self, line):
        if self.state is SessionState.UNAUTHENTICATED:
            self._handle_login(line)
        elif self.state is SessionState.ACTIVE:
            self._handle_chat(line)

    def _handle_login(self, line):
        if is_quit(line):
            self.state = SessionState.CLOSING
            return

        username = parse_login(line, self.max_username_length)
        if username is None:
            self.reply(LOGIN_PROMPT)
            return

        result = self.registry.authenticate(self.session_id, username)
        if result is AuthResult.SUCCESS:
            self.state = SessionState.ACTIVE
            logger.info("[+] %s joined from %s", username, self.session.address)
            self.reply(f"Welcome, {username}!")
            self.router.broadcast(self.session_id, OutboundMessage.join(username))
        elif result is AuthResult.DUPLICATE:
            logger.info("Rejected duplicate username %s from %s", username, self.session.address)
            self.reply(f"Username {username} is already taken")
            self.state = SessionState.CLOSING
        else:
            self.state = SessionState.CLOSING

    def _handle_chat(self, line):
        if is_quit(line):
            self.state = SessionState.CLOSING
            return
        if is_login_attempt(line):
            self.reply(f"Already logged in as {self.session.username}")
            return
        if not line.strip():
            return
        self.router.broadcast(self.session_id, OutboundMessage.chat(self.session.username, line))

    def reply(self, text):
        """Queue a system notice for this session only."""
        if not self.session.send(OutboundMessage.system(text)):
            logger.debug("Could not reply to %s", self.describe())

    def close(self):
        """Remove the session, announce the departure once and release the socket."""
        self.state = SessionState.CLOSING
        removed = self.registry.remove(self.session_id)
        if removed is not None and removed.authenticated:
            logger.info("[-] %s disconnected", removed.username)
            self.router.broadcast(self.session_id, OutboundMessage.leave(removed.username))
        else:
            logger.debug("Connection from %s closed before login", self.session.address)
        self.session.close()

    def describe(self):
        return self.session.username or str(self.session.address)
