"""
Ollama exporter entry point.

Usage:
    ollama-exporter                              Run the exporter on :8000
    ollama-exporter --ollama-host gpu-box:11434  Point at a remote Ollama
    ollama-exporter --validate-config            Probe Ollama once and exit
    ollama-exporter snapshot                     One scrape, printed as a table

Every option can also come from the environment (PORT, INTERVAL,
OLLAMA_HOST, API_TIMEOUT, LOG_LEVEL); flags win.
"""

from __future__ import annotations

import logging
import signal

import click

from ollama_exporter import __version__
from ollama_exporter.collector.ollama_client import OllamaClient
from ollama_exporter.config import LOG_LEVELS, ExporterConfig
from ollama_exporter.engine.scheduler import Scheduler
from ollama_exporter.engine.scrape import ScrapeEngine
from ollama_exporter.exposition.server import start_http_server, stop_http_server
from ollama_exporter.lifecycle import ShutdownSignal
from ollama_exporter.metrics import SCRAPE_DURATION, MetricRegistry


log = logging.getLogger("ollama_exporter")


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="ollama-exporter")
@click.option("-p", "--port", envvar="PORT", default=8000, show_default=True,
              type=click.IntRange(1, 65535), help="Port to serve metrics on")
@click.option("-i", "--interval", envvar="INTERVAL", default=30, show_default=True,
              type=click.IntRange(min=1), help="Scrape interval in seconds")
@click.option("--ollama-host", envvar="OLLAMA_HOST", default="localhost:11434", show_default=True,
              help="Ollama server host:port")
@click.option("-t", "--api-timeout", envvar="API_TIMEOUT", default=30, show_default=True,
              type=click.IntRange(min=1), help="Timeout for Ollama API calls in seconds")
@click.option("-l", "--log-level", envvar="LOG_LEVEL", default="INFO", show_default=True,
              type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Log level")
@click.option("--validate-config", is_flag=True, default=False,
              help="Check the Ollama connection and exit")
@click.pass_context
def cli(ctx, port: int, interval: int, ollama_host: str, api_timeout: int,
        log_level: str, validate_config: bool):
    """Prometheus exporter for Ollama metrics."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    config = ExporterConfig(
        port=port,
        interval=interval,
        ollama_host=ollama_host,
        api_timeout=api_timeout,
        log_level=log_level.upper(),
        validate_config=validate_config,
    )
    ctx.obj = config

    if ctx.invoked_subcommand is not None:
        return

    if config.validate_config:
        raise SystemExit(validate(config))

    raise SystemExit(run_exporter(config))


def validate(config: ExporterConfig) -> int:
    """Single health probe. Returns the process exit code."""
    from rich.console import Console

    console = Console(stderr=True)
    log.info("Validating configuration...")

    client = OllamaClient(host=config.ollama_host, timeout_seconds=config.api_timeout)
    try:
        engine = ScrapeEngine(client, MetricRegistry(ollama_host=config.ollama_host))
        healthy = engine.check_health()
    finally:
        client.close()

    if not healthy:
        console.print(f"[red]Cannot connect to Ollama API at {config.ollama_host}[/red]")
        return 1

    console.print(f"[green]Ollama API connection successful ({config.ollama_host})[/green]")
    console.print("[green]Configuration valid[/green]")
    return 0


def run_exporter(config: ExporterConfig) -> int:
    log.info("Starting Ollama Prometheus Exporter v%s", __version__)
    for line in config.describe():
        log.info(line)

    shutdown = ShutdownSignal()
    registry = MetricRegistry(ollama_host=config.ollama_host)
    client = OllamaClient(host=config.ollama_host, timeout_seconds=config.api_timeout)
    shutdown.on_shutdown(client.close)

    try:
        server = start_http_server(config.port, registry, shutdown, config.ollama_host)
    except OSError as exc:
        log.error("Fatal error: cannot serve on port %d: %s", config.port, exc)
        shutdown.run_callbacks()
        return 1
    shutdown.on_shutdown(lambda: stop_http_server(server))

    def _on_signal(signum, frame):
        shutdown.trigger(f"requested by {signal.Signals(signum).name}")

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    engine = ScrapeEngine(client, registry)
    scheduler = Scheduler(engine.run_cycle, config.interval, shutdown)
    scheduler.start()
    log.info("Exporter started successfully. Press Ctrl+C to exit.")

    # Short waits keep the main thread responsive to signals
    while not shutdown.wait(1.0):
        pass

    log.info("Shutting down exporter")
    # Let an in-flight cycle finish before the client is closed under it
    scheduler.join(timeout=config.max_cycle_seconds)
    shutdown.run_callbacks()
    return 0


def _format_value(value: float) -> str:
    # Byte sizes and timestamps read badly in exponent form
    if value.is_integer():
        return f"{value:.0f}"
    return f"{value:.6g}"


@cli.command()
@click.pass_obj
def snapshot(config: ExporterConfig):
    """Run a single scrape cycle and print the resulting series."""
    from rich.console import Console
    from rich.table import Table
    from rich.markup import escape

    registry = MetricRegistry(ollama_host=config.ollama_host)
    client = OllamaClient(host=config.ollama_host, timeout_seconds=config.api_timeout)
    try:
        ok = ScrapeEngine(client, registry).run_cycle()
    finally:
        client.close()

    console = Console()
    table = Table(show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Labels")
    table.add_column("Value", justify="right")

    for name, labels, value in registry.iter_samples():
        if name.startswith(SCRAPE_DURATION) or name.endswith("_created"):
            continue
        label_text = ", ".join(f"{k}={v}" for k, v in sorted(labels.items()))
        table.add_row(name, f"[dim]{escape(label_text)}[/dim]", _format_value(value))

    console.print(table)
    if not ok:
        console.print(f"[red]Scrape failed against {config.ollama_host}; see log for details.[/red]")
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
