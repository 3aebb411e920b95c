"""Read-only HTTP view of who is online.

Serves ``GET /users`` with a JSON snapshot of the session registry. The
endpoint only ever calls ``SessionRegistry.snapshot()``.
"""

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

logger = logging.getLogger(__name__)


def make_handler(registry):
    """Build a request handler class bound to ``registry``."""

    class StatusHandler(BaseHTTPRequestHandler):
        def log_message(self, fmt, *args):
            logger.debug("status %s - %s", self.address_string(), fmt % args)

        def do_GET(self):
            path = self.path.split("?", 1)[0].rstrip("/") or "/"
            if path == "/users":
                users = registry.snapshot()
                self._send_json({"users": users, "count": len(users)})
            elif path == "/":
                self._send_json({"status": "ok", "online": len(registry.snapshot())})
            else:
                self._send_json({"error": "not found"}, status=404)

        def _send_json(self, payload, status=200):
            body = json.dumps(payload).encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.send_header("Cache-Control", "no-store")
            self.end_headers()
            self.wfile.write(body)

    return StatusHandler


class StatusServer:
    """Background HTTP server exposing the online user list.

    Args:
        registry: SessionRegistry to read from
        host: Interface to bind
        port: TCP port (0 picks a free port)
    """

    def __init__(self, registry, host, port):
        self.registry = registry
        self.host = host
        self.port = port
        self._httpd = None
        self._thread = None

    @property
    def address(self):
        if self._httpd is None:
            return None
        return self._httpd.server_address[:2]

    def start(self):
        """Bind and serve on a daemon thread.

        Raises:
            OSError: If the address cannot be bound
        """
        self._httpd = ThreadingHTTPServer((self.host, self.port), make_handler(self.registry))
        self._httpd.daemon_threads = True
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="status-http", daemon=True)
        self._thread.start()
        logger.info("[*] Status endpoint on http://%s:%s/users", *self.address)
        return self.address

    def stop(self):
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        self._httpd = None
