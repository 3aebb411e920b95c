"""Client entry point for linechat.

Connects to the configured server, asks for a username and hands the
terminal over to the chat loops.
"""

import logging
import sys

from colorama import just_fix_windows_console

from chat_client.config import HOST, LOG_LEVEL, SERVER_PORT
from chat_client.core import ChatClient, Console, valid_username


def prompt_username(console, input_func=input):
    """Ask until the operator enters a single word."""
    while True:
        username = input_func("Username: ").strip()
        if valid_username(username):
            return username
        console.alert("Username must be one word with no spaces.")


def main():
    """Run the interactive client.

    Returns:
        0 after /quit, 1 if the server could not be reached or was lost
    """
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] (%(threadName)s) %(message)s",
        datefmt="%H:%M:%S",
    )
    just_fix_windows_console()

    console = Console()
    client = ChatClient(HOST, SERVER_PORT, console=console)
    try:
        client.connect()
    except OSError as exc:
        console.alert(f"Failed to connect to {HOST}:{SERVER_PORT}: {exc}")
        return 1
    console.notice(f"Connected to {HOST}:{SERVER_PORT}. Type /quit to leave.")

    try:
        username = prompt_username(console)
    except (EOFError, KeyboardInterrupt):
        client.close()
        return 0

    return client.run(username)


if __name__ == "__main__":
    sys.exit(main())
