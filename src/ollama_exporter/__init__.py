"""Prometheus exporter for Ollama servers."""

__version__ = "1.0.0"
