import pytest
import requests

from chat_server.status import StatusServer
from tests.conftest import wait_for


@pytest.fixture
def status(registry):
    server = StatusServer(registry, "127.0.0.1", 0)
    server.start()
    yield server
    server.stop()


def url(status, path):
    host, port = status.address
    return f"http://{host}:{port}{path}"


def test_users_lists_logged_in_sessions(registry, status):
    alice = registry.register(None, None)
    registry.register(None, None)
    bob = registry.register(None, None)
    registry.authenticate(alice, "alice")
    registry.authenticate(bob, "bob")

    response = requests.get(url(status, "/users"), timeout=5)

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "application/json"
    assert response.json() == {"users": ["alice", "bob"], "count": 2}
    assert len(registry) == 3


def test_root_reports_online_count(registry, status):
    registry.authenticate(registry.register(None, None), "carol")

    response = requests.get(url(status, "/"), timeout=5)

    assert response.json() == {"status": "ok", "online": 1}


def test_unknown_path_is_404(status):
    response = requests.get(url(status, "/admin"), timeout=5)
    assert response.status_code == 404


def test_listing_tracks_live_chat_server(chat_server, logged_in):
    status = StatusServer(chat_server.registry, "127.0.0.1", 0)
    status.start()
    try:
        alice, bob = logged_in("alice", "bob")
        assert requests.get(url(status, "/users"), timeout=5).json()["users"] == ["alice", "bob"]

        bob.send("/quit")
        assert alice.recv_line() == "SERVER: bob has left the chat"
        assert wait_for(
            lambda: requests.get(url(status, "/users"), timeout=5).json()["users"] == ["alice"])
    finally:
        status.stop()
