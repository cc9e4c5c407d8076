"""
Scrape engine: one pass over the Ollama API per cycle.

Probes /api/version, then reconciles the installed inventory and the set
of running models against what the previous cycle saw, so models that go
away don't leave stale labeled series behind.

Inventory removal is a diff (only names that vanished are dropped).
Running models are cleared and rebuilt every time. The lists are small,
so the extra churn doesn't matter.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Set

from ollama_exporter import metrics as m
from ollama_exporter.collector.base import ApiFailure, OllamaAPI
from ollama_exporter.metrics import MetricRegistry
from ollama_exporter.records import ModelRecord, RunningModelRecord

log = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


class ScrapeEngine:

    def __init__(self, client: OllamaAPI, registry: MetricRegistry):
        self._client = client
        self._registry = registry
        self._last_models: Dict[str, ModelRecord] = {}
        self._last_running: Set[str] = set()

    @property
    def known_models(self) -> Dict[str, ModelRecord]:
        return dict(self._last_models)

    @property
    def running_models(self) -> Set[str]:
        return set(self._last_running)

    def check_health(self) -> bool:
        """Probe /api/version. Records the reported version on success."""
        result = self._client.fetch_version()
        if isinstance(result, ApiFailure):
            return False
        self._registry.set_gauge(m.VERSION_INFO, (result.version,), 1)
        return True

    def update_model_metrics(self) -> bool:
        with self._registry.time(m.SCRAPE_DURATION, ("list_models",)):
            result = self._client.fetch_inventory()

        if isinstance(result, ApiFailure):
            return False

        try:
            self._apply_inventory(result)
        except Exception:
            log.exception("Error processing models")
            return False
        return True

    def _apply_inventory(self, models: List[ModelRecord]) -> None:
        current = {model.name: model for model in models}
        reg = self._registry
        applied: Dict[str, ModelRecord] = {}

        try:
            with reg.batch():
                for name, old in self._last_models.items():
                    new = current.get(name)
                    if new is None:
                        reg.remove_series(m.MODEL_SIZE_BYTES, (name,))
                        reg.remove_series(m.MODEL_MODIFIED_TIMESTAMP, (name,))
                        reg.remove_series(m.MODEL_INFO, old.info_labels())
                    elif new.info_labels() != old.info_labels():
                        # Same model, different details: the old info series is stale
                        reg.remove_series(m.MODEL_INFO, old.info_labels())

                reg.set_gauge(m.MODELS_TOTAL, (), len(models))

                for model in models:
                    applied[model.name] = model
                    reg.set_gauge(m.MODEL_INFO, model.info_labels(), 1)
                    reg.set_gauge(m.MODEL_SIZE_BYTES, (model.name,), model.size_bytes)

                    ts = model.modified_timestamp()
                    if ts is None:
                        if model.modified_at:
                            log.debug("Could not parse timestamp %r for %s", model.modified_at, model.name)
                        reg.remove_series(m.MODEL_MODIFIED_TIMESTAMP, (model.name,))
                        continue
                    reg.set_gauge(m.MODEL_MODIFIED_TIMESTAMP, (model.name,), ts)
        finally:
            # A rebuild that stops partway still has to remember every model it
            # wrote, or the next cycle can't remove those series.
            kept = {name: old for name, old in self._last_models.items() if name in current}
            kept.update(applied)
            self._last_models = kept

    def update_running_metrics(self) -> bool:
        with self._registry.time(m.SCRAPE_DURATION, ("list_running",)):
            result = self._client.fetch_running()

        if isinstance(result, ApiFailure):
            return False

        try:
            self._apply_running(result)
        except Exception:
            log.exception("Error processing running models")
            return False
        return True

    def _apply_running(self, models: List[RunningModelRecord]) -> None:
        reg = self._registry

        with reg.batch():
            for name in self._last_running:
                reg.remove_series(m.RUNNING_MODELS, (name,))
                reg.remove_series(m.MODEL_MEMORY_BYTES, (name,))

            # Filled in as series are written, so a partial rebuild is still tracked
            current: Set[str] = set()
            self._last_running = current

            for model in models:
                current.add(model.name)
                reg.set_gauge(m.RUNNING_MODELS, (model.name,), 1)
                if model.vram_bytes > 0:
                    reg.set_gauge(m.MODEL_MEMORY_BYTES, (model.name,), model.vram_bytes)

    def run_cycle(self) -> bool:
        """Run one full scrape cycle. Never raises; returns True on success."""
        success = True
        up = None

        try:
            up = self.check_health()
            self._registry.set_gauge(m.UP, (), 1 if up else 0)

            if not up:
                success = False
                log.warning("Ollama API is not responding")
            else:
                if not self.update_model_metrics():
                    success = False
                if not self.update_running_metrics():
                    success = False

            if success:
                self._registry.set_gauge(m.LAST_SCRAPE_TIMESTAMP, (), time.time())
                log.info(
                    "Updated metrics: %d total models, %d running",
                    len(self._last_models), len(self._last_running),
                )
            elif up:
                log.warning("Scrape cycle completed with errors")
        except Exception:
            log.exception("Error in metrics update")
            success = False
            if up is None:
                # check_health itself raised; don't keep reporting the last cycle's up=1
                self._registry.set_gauge(m.UP, (), 0)

        status = STATUS_SUCCESS if success else STATUS_ERROR
        self._registry.increment_counter(m.SCRAPES_TOTAL, (status,))
        return success
