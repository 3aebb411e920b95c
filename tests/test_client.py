import io
import queue
import socket
import threading

import pytest

from chat_client.config.constants import PEER_COLOR, RESET, SYSTEM_COLOR
from chat_client.core import ChatClient, Console, ConnectionLost, read_lines, valid_username
from chat_client.core.protocol import login_line
from chat_client.main import prompt_username
from tests.conftest import wait_for


class ScriptedInput:
    """Operator stand-in: lines are fed from the test through a queue."""

    def __init__(self):
        self.lines = queue.Queue()

    def type(self, line):
        self.lines.put(line)

    def close(self):
        self.lines.put(EOFError)

    def __call__(self):
        line = self.lines.get(timeout=10)
        if line is EOFError:
            raise EOFError
        return line


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def run_client(chat_server, output):
    """Start a ChatClient for ``username`` on a thread; returns (client, input, result)."""
    started = []

    def _run(username):
        keyboard = ScriptedInput()
        client = ChatClient(
            *chat_server.address,
            console=Console(stream=output, color=False),
            input_func=keyboard,
            join_timeout=5,
        )
        client.connect()
        result = {}
        thread = threading.Thread(target=lambda: result.update(status=client.run(username)), daemon=True)
        thread.start()
        started.append((thread, keyboard))
        return client, keyboard, result, thread

    yield _run
    for thread, keyboard in started:
        if thread.is_alive():
            keyboard.close()
            thread.join(timeout=5)


def test_end_to_end_quit_exits_zero(run_client, connect, output):
    client, keyboard, result, thread = run_client("alice")
    assert wait_for(lambda: "SERVER: Welcome, alice!" in output.getvalue())

    bob = connect()
    assert bob.login("bob") == "SERVER: Welcome, bob!"
    assert wait_for(lambda: "SERVER: bob has joined the chat" in output.getvalue())

    bob.send("hello")
    assert wait_for(lambda: "bob: hello" in output.getvalue())

    keyboard.type("hi bob")
    assert bob.recv_line() == "alice: hi bob"

    keyboard.type("/quit")
    thread.join(timeout=5)
    assert result["status"] == 0
    assert bob.recv_line() == "SERVER: alice has left the chat"
    assert not client.receiver.is_alive()
    assert client.sock is None
    assert "Disconnected from server" not in output.getvalue()


def test_blank_input_is_not_sent(run_client, connect, output):
    _, keyboard, result, thread = run_client("alice")
    bob = connect()
    assert bob.login("bob") == "SERVER: Welcome, bob!"
    assert wait_for(lambda: "bob has joined" in output.getvalue())

    keyboard.type("")
    keyboard.type("   ")
    keyboard.type("visible")
    assert bob.recv_line() == "alice: visible"

    keyboard.type("/quit")
    thread.join(timeout=5)
    assert result["status"] == 0


def test_end_of_input_quits_cleanly(run_client, connect, output):
    _, keyboard, result, thread = run_client("alice")
    assert wait_for(lambda: "Welcome, alice" in output.getvalue())
    bob = connect()
    assert bob.login("bob") == "SERVER: Welcome, bob!"

    keyboard.close()
    thread.join(timeout=5)

    assert result["status"] == 0
    assert bob.recv_line() == "SERVER: alice has left the chat"


def test_server_drop_is_reported(chat_server, run_client, output):
    client, keyboard, result, thread = run_client("alice")
    assert wait_for(lambda: "Welcome, alice" in output.getvalue())

    chat_server.shutdown()

    assert wait_for(lambda: "Disconnected from server" in output.getvalue())
    assert not client.connected
    keyboard.type("anyone?")
    thread.join(timeout=5)
    assert result["status"] == 1


def test_duplicate_login_shows_rejection(run_client, connect, output):
    alice = connect()
    assert alice.login("alice") == "SERVER: Welcome, alice!"

    _, keyboard, result, thread = run_client("alice")

    assert wait_for(lambda: "SERVER: Username alice is already taken" in output.getvalue())
    assert wait_for(lambda: "Disconnected from server" in output.getvalue())
    keyboard.type("")
    thread.join(timeout=5)
    assert result["status"] == 1


def test_quit_tolerates_send_failure(output):
    class DeadSocket:
        def sendall(self, _data):
            raise BrokenPipeError("broken pipe")

    client = ChatClient(console=Console(stream=output, color=False))
    client.sock = DeadSocket()

    client.quit()

    assert "Disconnecting..." in output.getvalue()


def test_read_lines_handles_partial_reads():
    a, b = socket.socketpair()
    try:
        a.sendall(b"SERVER: hel")
        a.sendall(b"lo\r\nbob: hi\nlast")
        a.shutdown(socket.SHUT_WR)
        assert list(read_lines(b)) == ["SERVER: hello", "bob: hi", "last"]
    finally:
        a.close()
        b.close()


def test_read_lines_rejects_oversized_server_line():
    a, b = socket.socketpair()
    try:
        a.sendall(b"x" * 64)
        with pytest.raises(ConnectionLost):
            list(read_lines(b, max_line_length=16))
    finally:
        a.close()
        b.close()


def test_console_categorizes_lines(output):
    console = Console(stream=output, color=True)

    assert console.format_line("SERVER: bob has joined the chat") == (
        f"{SYSTEM_COLOR}SERVER: bob has joined the chat{RESET}")
    assert console.format_line("bob: hello: there") == f"{PEER_COLOR}bob{RESET}: hello: there"
    assert console.format_line("no separator") == "no separator"


def test_console_reprints_prompt_after_message(output):
    console = Console(stream=output, color=False)

    console.show("bob: hi")
    console.notice("Connected")

    assert output.getvalue() == "\rbob: hi\n> \rConnected\n"


@pytest.mark.parametrize(
    "username, ok",
    [("alice", True), ("", False), ("two words", False), ("tab\tname", False), (" pad", False)],
)
def test_valid_username(username, ok):
    assert valid_username(username) is ok


def test_login_line():
    assert login_line("alice") == "LOGIN alice"


def test_prompt_username_reprompts(output):
    answers = iter(["", "two words", "  carol  "])
    console = Console(stream=output, color=False)

    assert prompt_username(console, lambda _prompt: next(answers)) == "carol"
    assert output.getvalue().count("Username must be one word") == 2
