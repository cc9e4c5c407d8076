"""Tests for the metric registry and its exposition output."""

import pytest

from ollama_exporter import metrics as m
from ollama_exporter.metrics import MetricRegistry


def _registry() -> MetricRegistry:
    return MetricRegistry(ollama_host="localhost:11434", version="1.0.0")


def test_build_info_set_at_construction():
    reg = _registry()
    text = reg.serialize()
    assert 'ollama_exporter_build_info{' in text
    assert 'ollama_host="localhost:11434"' in text
    assert 'version="1.0.0"' in text


def test_set_and_read_gauge():
    reg = _registry()
    reg.set_gauge(m.MODEL_SIZE_BYTES, ("llama2:7b",), 3826793677)
    assert reg.get_value(m.MODEL_SIZE_BYTES, {"model_name": "llama2:7b"}) == 3826793677


def test_removed_series_is_absent_not_zero():
    reg = _registry()
    reg.set_gauge(m.RUNNING_MODELS, ("a",), 1)
    reg.set_gauge(m.RUNNING_MODELS, ("b",), 1)

    assert reg.remove_series(m.RUNNING_MODELS, ("a",)) is True

    assert reg.get_value(m.RUNNING_MODELS, {"model_name": "a"}) is None
    assert reg.get_value(m.RUNNING_MODELS, {"model_name": "b"}) == 1
    text = reg.serialize()
    assert 'ollama_running_models{model_name="a"}' not in text
    assert 'ollama_running_models{model_name="b"} 1.0' in text


def test_remove_missing_series_returns_false():
    reg = _registry()
    assert reg.remove_series(m.MODEL_MEMORY_BYTES, ("never-set",)) is False


def test_unknown_metric_name_raises():
    reg = _registry()
    with pytest.raises(KeyError):
        reg.set_gauge("ollama_nonexistent", (), 1)
    with pytest.raises(KeyError):
        reg.remove_series("ollama_nonexistent", ("x",))
    with pytest.raises(KeyError):
        reg.increment_counter(m.UP, ())


def test_counter_increments_per_status():
    reg = _registry()
    reg.increment_counter(m.SCRAPES_TOTAL, ("success",))
    reg.increment_counter(m.SCRAPES_TOTAL, ("success",))
    reg.increment_counter(m.SCRAPES_TOTAL, ("error",))
    assert reg.get_value(m.SCRAPES_TOTAL, {"status": "success"}) == 2
    assert reg.get_value(m.SCRAPES_TOTAL, {"status": "error"}) == 1


def test_timer_observes_histogram():
    reg = _registry()
    with reg.time(m.SCRAPE_DURATION, ("list_models",)):
        pass
    observed = reg.get_value(m.SCRAPE_DURATION + "_count", {"operation": "list_models"})
    assert observed == 1


def test_help_and_type_emitted_once_per_family():
    reg = _registry()
    for name in ("a", "b", "c"):
        reg.set_gauge(m.MODEL_SIZE_BYTES, (name,), 1)
    text = reg.serialize()
    assert text.count("# HELP ollama_model_size_bytes ") == 1
    assert text.count("# TYPE ollama_model_size_bytes gauge") == 1
    assert "# TYPE ollama_exporter_scrapes_total counter" in text
    assert "# TYPE ollama_exporter_scrape_duration_seconds histogram" in text


def test_registries_are_isolated():
    first = _registry()
    second = _registry()
    first.set_gauge(m.UP, (), 1)
    assert second.get_value(m.UP) == 0


def test_iter_samples_includes_labels():
    reg = _registry()
    reg.set_gauge(m.RUNNING_MODELS, ("phi",), 1)
    samples = [(name, labels, value) for name, labels, value in reg.iter_samples()
               if name == m.RUNNING_MODELS]
    assert samples == [(m.RUNNING_MODELS, {"model_name": "phi"}, 1.0)]


def test_content_type_is_prometheus_text():
    assert _registry().content_type.startswith("text/plain")
