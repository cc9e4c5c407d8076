"""
Metric definitions for the exporter.

Everything lives on a private CollectorRegistry owned by a MetricRegistry
instance, which is handed to the scrape engine and the HTTP server. Tests
build a fresh one each time instead of sharing prometheus_client's
global REGISTRY.

The scheduler thread writes while HTTP request threads read, so every
operation runs under one re-entrant lock. batch() holds it across a
group of writes so a reader never sees a half-rebuilt set of series.
"""

from __future__ import annotations

import platform
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Sequence, Tuple

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from ollama_exporter import __version__

# Exporter metrics
BUILD_INFO = "ollama_exporter_build_info"
SCRAPE_DURATION = "ollama_exporter_scrape_duration_seconds"
SCRAPES_TOTAL = "ollama_exporter_scrapes_total"
LAST_SCRAPE_TIMESTAMP = "ollama_exporter_last_scrape_timestamp_seconds"

# Ollama server metrics
UP = "ollama_up"
VERSION_INFO = "ollama_version_info"

# Model inventory metrics
MODELS_TOTAL = "ollama_models_total"
MODEL_INFO = "ollama_model_info"
MODEL_SIZE_BYTES = "ollama_model_size_bytes"
MODEL_MODIFIED_TIMESTAMP = "ollama_model_modified_timestamp_seconds"

# Running model metrics
RUNNING_MODELS = "ollama_running_models"
MODEL_MEMORY_BYTES = "ollama_model_memory_bytes"

MODEL_INFO_LABELS = (
    "model_name",
    "family",
    "format",
    "parameter_size",
    "quantization_level",
    "parent_model",
)

LabelValues = Sequence[str]


class MetricRegistry:

    def __init__(self, ollama_host: str, version: str = __version__):
        self._registry = CollectorRegistry(auto_describe=True)
        self._lock = threading.RLock()

        self._gauges: Dict[str, Gauge] = {}
        self._counters: Dict[str, Counter] = {}
        self._histograms: Dict[str, Histogram] = {}

        self._gauge(BUILD_INFO, "Ollama exporter build information",
                    ["version", "ollama_host", "python_version"])
        self._gauge(UP, "Whether the Ollama server is responding")
        self._gauge(VERSION_INFO, "Ollama version information", ["version"])

        self._gauge(MODELS_TOTAL, "Total number of models available")
        self._gauge(MODEL_INFO, "Model information", list(MODEL_INFO_LABELS))
        self._gauge(MODEL_SIZE_BYTES, "Model size in bytes", ["model_name"])
        self._gauge(MODEL_MODIFIED_TIMESTAMP, "Model last modified timestamp", ["model_name"])

        self._gauge(RUNNING_MODELS, "Currently loaded models", ["model_name"])
        self._gauge(MODEL_MEMORY_BYTES, "Memory used by running model", ["model_name"])

        self._histograms[SCRAPE_DURATION] = Histogram(
            SCRAPE_DURATION, "Time spent scraping Ollama", ["operation"],
            registry=self._registry,
        )
        self._counters[SCRAPES_TOTAL] = Counter(
            SCRAPES_TOTAL, "Total number of scrapes", ["status"],
            registry=self._registry,
        )
        self._gauge(LAST_SCRAPE_TIMESTAMP, "Last successful scrape timestamp")

        self.set_gauge(BUILD_INFO, (version, ollama_host, platform.python_version()), 1)

    def _gauge(self, name: str, documentation: str, labelnames: Sequence[str] = ()):
        self._gauges[name] = Gauge(name, documentation, list(labelnames), registry=self._registry)

    @staticmethod
    def _child(metric, label_values: LabelValues):
        if label_values:
            return metric.labels(*label_values)
        return metric

    # -- writes --

    def set_gauge(self, name: str, label_values: LabelValues, value: float) -> None:
        with self._lock:
            self._child(self._gauges[name], label_values).set(value)

    def remove_series(self, name: str, label_values: LabelValues) -> bool:
        """Drop one labeled series so it disappears from the exposition.

        Returns False if that series was never set (or already removed).
        """
        with self._lock:
            try:
                self._gauges[name].remove(*label_values)
            except KeyError:
                if name not in self._gauges:
                    raise
                return False
            return True

    def increment_counter(self, name: str, label_values: LabelValues, amount: float = 1) -> None:
        with self._lock:
            self._child(self._counters[name], label_values).inc(amount)

    def observe_duration(self, name: str, label_values: LabelValues, seconds: float) -> None:
        with self._lock:
            self._child(self._histograms[name], label_values).observe(seconds)

    @contextmanager
    def time(self, name: str, label_values: LabelValues) -> Iterator[None]:
        """Observe the wall time of the with-block on histogram `name`."""
        if name not in self._histograms:
            raise KeyError(name)
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe_duration(name, label_values, time.perf_counter() - start)

    @contextmanager
    def batch(self) -> Iterator["MetricRegistry"]:
        with self._lock:
            yield self

    # -- reads --

    def get_value(self, sample_name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Current value of one sample, or None if the series is absent."""
        with self._lock:
            return self._registry.get_sample_value(sample_name, labels or {})

    def iter_samples(self) -> Iterator[Tuple[str, Dict[str, str], float]]:
        with self._lock:
            families = list(self._registry.collect())
        for family in families:
            for sample in family.samples:
                yield sample.name, dict(sample.labels), sample.value

    def serialize(self) -> str:
        with self._lock:
            return generate_latest(self._registry).decode("utf-8")

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST
