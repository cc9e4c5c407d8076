"""
HTTP surface: /metrics for Prometheus, /health for liveness probes.

/health reports the exporter's own state, not Ollama's; upstream health
is the ollama_up gauge.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Tuple
from urllib.parse import urlsplit

from ollama_exporter.lifecycle import ShutdownSignal
from ollama_exporter.metrics import MetricRegistry

log = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ExporterHandler(BaseHTTPRequestHandler):
    server: "ExporterHTTPServer"

    def do_GET(self):
        self._send(*self._route())

    def do_HEAD(self):
        status, body, content_type = self._route()
        self._send(status, body, content_type, include_body=False)

    def _route(self) -> Tuple[int, bytes, Optional[str]]:
        path = urlsplit(self.path).path

        if path == "/metrics":
            body = self.server.registry.serialize().encode("utf-8")
            return 200, body, self.server.registry.content_type
        if path == "/health":
            health = {
                "status": "shutting_down" if self.server.shutdown_signal.is_set() else "healthy",
                "timestamp": _utc_now_iso(),
                "ollama_host": self.server.ollama_host,
            }
            return 200, json.dumps(health).encode("utf-8"), "application/json"
        return 404, b"", None

    def _send(self, status: int, body: bytes, content_type: Optional[str] = None,
              include_body: bool = True):
        self.send_response(status)
        if content_type:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body and include_body:
            self.wfile.write(body)

    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


class ExporterHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(
        self,
        address: tuple,
        registry: MetricRegistry,
        shutdown_signal: ShutdownSignal,
        ollama_host: str,
    ):
        self.registry = registry
        self.shutdown_signal = shutdown_signal
        self.ollama_host = ollama_host
        super().__init__(address, ExporterHandler)

    @property
    def port(self) -> int:
        return self.server_address[1]


def start_http_server(
    port: int,
    registry: MetricRegistry,
    shutdown_signal: ShutdownSignal,
    ollama_host: str,
    host: str = "",
) -> ExporterHTTPServer:
    """Bind and serve on a background thread. Raises OSError if the port is taken."""
    server = ExporterHTTPServer((host, port), registry, shutdown_signal, ollama_host)
    thread = threading.Thread(target=server.serve_forever, name="http-server", daemon=True)
    thread.start()
    log.info("HTTP server started on port %d", server.port)
    return server


def stop_http_server(server: ExporterHTTPServer) -> None:
    server.shutdown()
    server.server_close()
    log.info("HTTP server stopped")
