"""
HTTP client for a live Ollama server. Issues the three read-only
requests the exporter needs and maps the JSON into records.

Transport errors, timeouts, non-2xx responses and malformed bodies all
come back as ApiFailure; the details go to the log.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, TypeVar, Union

import httpx

from ollama_exporter.collector.base import ApiFailure, OllamaAPI
from ollama_exporter.records import ModelRecord, RunningModelRecord, VersionInfo

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HOST = "localhost:11434"
DEFAULT_TIMEOUT_SECONDS = 30


class OllamaClient(OllamaAPI):

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        self._host = host
        self._base_url = f"http://{host}/api"
        self._timeout = timeout_seconds
        self._client = client or httpx.Client(timeout=self._timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    def fetch_version(self) -> Union[VersionInfo, ApiFailure]:
        return self._request("version", VersionInfo.from_api)

    def fetch_inventory(self) -> Union[List[ModelRecord], ApiFailure]:
        return self._request("tags", lambda body: _model_list(body, ModelRecord.from_api))

    def fetch_running(self) -> Union[List[RunningModelRecord], ApiFailure]:
        return self._request("ps", lambda body: _model_list(body, RunningModelRecord.from_api))

    def _request(self, endpoint: str, parse: Callable[[Any], T]) -> Union[T, ApiFailure]:
        url = f"{self._base_url}/{endpoint}"
        try:
            response = self._client.get(
                url,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            return self._fail(endpoint, "timeout", f"no response within {self._timeout}s: {exc}")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return self._fail(endpoint, "transport", str(exc) or type(exc).__name__)

        if not response.is_success:
            return self._fail(endpoint, "status", f"{response.status_code} {response.reason_phrase}")

        try:
            return parse(response.json())
        except (ValueError, TypeError, AttributeError) as exc:
            return self._fail(endpoint, "parse", str(exc))

    def _fail(self, endpoint: str, kind: str, detail: str) -> ApiFailure:
        failure = ApiFailure(endpoint=endpoint, kind=kind, detail=detail)
        log.error("API request failed for %s", failure)
        return failure

    def name(self) -> str:
        return f"Ollama ({self._host})"

    def close(self):
        self._client.close()


def _model_list(body: Any, make: Callable[[dict], T]) -> List[T]:
    # {"models": null} and a missing key both mean "none"
    models = body.get("models") or []
    if not isinstance(models, list):
        raise TypeError(f"expected a list of models, got {type(models).__name__}")
    return [make(raw) for raw in models]
