"""Terminal rendering for the linechat client.

Both client threads print: the receiver shows incoming lines and the sender
shows its prompt. Every write goes through one lock so a message and the
prompt that follows it are never interleaved with the other thread's output.
"""

import sys
import threading

from chat_client.config import COLOR_OUTPUT
from chat_client.config.constants import (
    ALERT_COLOR,
    NOTICE_COLOR,
    PEER_COLOR,
    PROMPT_COLOR,
    RESET,
    SYSTEM_COLOR,
)
from chat_client.core.protocol import SYSTEM_PREFIX

PROMPT = "> "


class Console:
    """Locked output surface shared by the receiver and sender threads.

    Args:
        stream: File-like object to write to, stdout by default
        color: Emit ANSI colors from the theme
    """

    def __init__(self, stream=None, color=COLOR_OUTPUT):
        self.stream = stream if stream is not None else sys.stdout
        self.color = color
        self._lock = threading.Lock()

    def _paint(self, color, text):
        if not self.color:
            return text
        return f"{color}{text}{RESET}"

    def format_line(self, line):
        """Render a server line as a system notice or a peer message."""
        if line.startswith(SYSTEM_PREFIX):
            return self._paint(SYSTEM_COLOR, line)
        sender, sep, text = line.partition(": ")
        if sep and sender and " " not in sender:
            return f"{self._paint(PEER_COLOR, sender)}: {text}"
        return line

    def show(self, line):
        """Print one line received from the server and restore the prompt."""
        self._write(self.format_line(line), prompt=True)

    def notice(self, text):
        self._write(self._paint(NOTICE_COLOR, text), prompt=False)

    def alert(self, text):
        self._write(self._paint(ALERT_COLOR, text), prompt=False)

    def prompt(self):
        with self._lock:
            self.stream.write(self._paint(PROMPT_COLOR, PROMPT))
            self.stream.flush()

    def _write(self, text, prompt):
        with self._lock:
            self.stream.write(f"\r{text}\n")
            if prompt:
                self.stream.write(self._paint(PROMPT_COLOR, PROMPT))
            self.stream.flush()
