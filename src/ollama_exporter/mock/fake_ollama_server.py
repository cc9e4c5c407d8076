"""
Fake Ollama API server for running the exporter without Ollama.

    python -m ollama_exporter.mock.fake_ollama_server
    ollama-exporter --ollama-host 127.0.0.1:11500

Serves /api/version, /api/tags and /api/ps from a mutable FakeOllamaState,
so tests can add and remove models between scrapes.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Set


def sample_model(
    name: str,
    size: int,
    family: str = "llama",
    modified_at: str = "2024-01-15T10:30:00.123456789-08:00",
    parameter_size: str = "7B",
    quantization_level: str = "Q4_0",
) -> Dict:
    """Build one /api/tags entry in the shape Ollama returns."""
    return {
        "name": name,
        "model": name,
        "size": size,
        "modified_at": modified_at,
        "details": {
            "parent_model": "",
            "format": "gguf",
            "family": family,
            "parameter_size": parameter_size,
            "quantization_level": quantization_level,
        },
    }


@dataclass
class FakeOllamaState:
    version: str = "0.1.15"
    models: List[Dict] = field(default_factory=lambda: [
        sample_model("llama2:7b", 3826793677),
        sample_model("mistral:latest", 4109865159, family="mistral"),
    ])
    running: List[Dict] = field(default_factory=lambda: [
        {"name": "llama2:7b", "size_vram": 4096000000},
    ])
    # Endpoints ("version", "tags", "ps") that should answer 500
    failing: Set[str] = field(default_factory=set)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def payload(self, endpoint: str):
        with self.lock:
            if endpoint == "version":
                return {"version": self.version}
            if endpoint == "tags":
                return {"models": list(self.models)}
            if endpoint == "ps":
                return {"models": list(self.running)}
        return None


class _OllamaHandler(BaseHTTPRequestHandler):
    server: "FakeOllamaServer"

    def do_GET(self):
        endpoint = self.path.rsplit("/", 1)[-1] if self.path.startswith("/api/") else ""
        state = self.server.state

        if endpoint in state.failing:
            self._reply(500, {"error": "simulated failure"})
            return

        payload = state.payload(endpoint)
        if payload is None:
            self._reply(404, {"error": "not found"})
        else:
            self._reply(200, payload)

    def _reply(self, status: int, payload: Dict):
        body = json.dumps(payload).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


class FakeOllamaServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple, state: FakeOllamaState):
        self.state = state
        super().__init__(address, _OllamaHandler)

    @property
    def host(self) -> str:
        """host:port, in the form the exporter's --ollama-host expects."""
        host, port = self.server_address[:2]
        return f"{host}:{port}"


def start_fake_server(state: FakeOllamaState, host: str = "127.0.0.1", port: int = 0) -> FakeOllamaServer:
    server = FakeOllamaServer((host, port), state)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


def run_fake_server(host: str = "127.0.0.1", port: int = 11500):
    server = FakeOllamaServer((host, port), FakeOllamaState())
    print(f"Fake Ollama API running at http://{server.host}/api")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_server()
