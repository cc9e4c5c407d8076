"""
Upstream API interface.

The scrape engine only talks to this interface, so it can be driven by
the real HTTP client, the fake server, or a stub in tests. Calls never
raise: every way a request can go wrong comes back as an ApiFailure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Union

from ollama_exporter.records import ModelRecord, RunningModelRecord, VersionInfo


@dataclass(frozen=True)
class ApiFailure:
    """A failed upstream call. Callers only care that it failed; the
    fields are there for logging."""

    endpoint: str
    kind: str  # "transport", "timeout", "status", "parse"
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.endpoint}: {self.kind} ({self.detail})"


class OllamaAPI(ABC):
    """Interface for all Ollama API sources."""

    @abstractmethod
    def fetch_version(self) -> Union[VersionInfo, ApiFailure]:
        ...

    @abstractmethod
    def fetch_inventory(self) -> Union[List[ModelRecord], ApiFailure]:
        """Installed models (/api/tags)."""
        ...

    @abstractmethod
    def fetch_running(self) -> Union[List[RunningModelRecord], ApiFailure]:
        """Models currently loaded in memory (/api/ps)."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self) -> None:
        pass
