"""Runtime configuration, as resolved from CLI flags and environment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
UPSTREAM_CALLS_PER_CYCLE = 3


@dataclass(frozen=True)
class ExporterConfig:
    port: int = 8000
    interval: int = 30            # seconds between scrapes
    ollama_host: str = "localhost:11434"
    api_timeout: int = 30         # seconds per upstream request
    log_level: str = "INFO"
    validate_config: bool = False

    @property
    def max_cycle_seconds(self) -> int:
        """Upper bound on one scrape cycle: version, tags and ps in sequence."""
        return UPSTREAM_CALLS_PER_CYCLE * self.api_timeout

    def describe(self) -> List[str]:
        """Startup banner lines."""
        return [
            f"Metrics server: http://localhost:{self.port}/metrics",
            f"Health check: http://localhost:{self.port}/health",
            f"Ollama API: {self.ollama_host}",
            f"Scrape interval: {self.interval}s",
            f"API timeout: {self.api_timeout}s",
        ]
