"""
awx-exporter entry point.

Usage:
    awx-exporter                        Serve /metrics and /health, scrape on a timer
    awx-exporter --port 9100 --interval 1m
    awx-exporter check                  One scrape, print a summary, exit

Connection settings come from the environment (AWX_HOST, AWX_USER,
AWX_PASSWORD, ...), see awx_exporter.config.
"""

from __future__ import annotations

import logging
import os
import signal
import threading
from typing import Dict, Optional

import click

from awx_exporter import __version__
from awx_exporter.collector.client import AWXClient
from awx_exporter.config import ExporterConfig, load_config
from awx_exporter.errors import ConfigError, ExporterError
from awx_exporter.registry import MetricRegistry
from awx_exporter.scheduler import ScrapeScheduler
from awx_exporter.scrape import Scraper, default_collectors
from awx_exporter.server import make_server
from awx_exporter.transform import HOST_STATUS

log = logging.getLogger("awx_exporter")

# How long shutdown waits for an in-flight scrape before giving up on it
SHUTDOWN_GRACE_SECONDS = 30.0

EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2


def _load(port: Optional[int], interval: Optional[str]) -> ExporterConfig:
    environ: Dict[str, str] = dict(os.environ)
    if port is not None:
        environ["PORT"] = str(port)
    if interval is not None:
        environ["SCRAPE_INTERVAL"] = interval
    try:
        return load_config(environ)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(EXIT_CONFIG_ERROR)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="awx-exporter")
@click.option("--port", type=int, default=None, help="Listen port (overrides PORT)")
@click.option("--interval", default=None,
              help="Scrape interval, e.g. 5m or 30s; a bare number is minutes (overrides SCRAPE_INTERVAL)")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx, port: Optional[int], interval: Optional[str], verbose: bool):
    """AWX exporter - AWX / Ansible Tower inventory as Prometheus metrics."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    # Request-level chatter from httpx is only useful when debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["port"] = port
    ctx.obj["interval"] = interval

    if ctx.invoked_subcommand is None:
        serve(_load(port, interval))


def serve(config: ExporterConfig):
    """Run the scrape loop and HTTP server until SIGINT/SIGTERM."""
    log.info(
        "Starting AWX exporter - Host: %s, Port: %d, Interval: %.0fs",
        config.base_url, config.port, config.scrape_interval,
    )

    registry = MetricRegistry()
    client = AWXClient(config)
    scraper = Scraper(client, registry, default_collectors(config), max_pages=config.max_pages)
    scheduler = ScrapeScheduler(scraper, registry, config.scrape_interval)

    try:
        server = make_server(registry, port=config.port)
    except OSError as e:
        log.error("Could not bind :%d: %s", config.port, e)
        client.close()
        raise SystemExit(EXIT_RUNTIME_ERROR)

    shutdown = threading.Event()

    def _on_signal(signum, frame):
        log.info("Received %s, shutting down...", signal.Signals(signum).name)
        shutdown.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    server_thread = threading.Thread(target=server.serve_forever, name="http", daemon=True)
    server_thread.start()
    scheduler.start()
    log.info("Server started on :%d", config.port)

    try:
        shutdown.wait()
    finally:
        if scheduler.stop(timeout=SHUTDOWN_GRACE_SECONDS):
            client.close()
        else:
            log.warning("Scrape still running after %.0fs, abandoning it", SHUTDOWN_GRACE_SECONDS)
        server.shutdown()
        server.server_close()
        log.info("Shutdown complete")


@cli.command()
@click.pass_context
def check(ctx):
    """Run a single scrape and print what would be exported."""
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    config = _load(ctx.obj["port"], ctx.obj["interval"])
    registry = MetricRegistry()
    console = Console()

    with AWXClient(config) as client:
        scraper = Scraper(client, registry, default_collectors(config), max_pages=config.max_pages)
        try:
            result = scraper.scrape()
        except ExporterError as e:
            console.print(f"\n[bold red]Scrape of {config.base_url} failed:[/bold red] {escape(str(e))}\n")
            raise SystemExit(EXIT_RUNTIME_ERROR)

    console.print(f"\n[bold]{config.base_url}[/bold]: {result.pages} pages")
    for source, count in result.entities.items():
        console.print(f"  {source}: {count}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Metric family")
    table.add_column("Series", justify="right")
    snapshot = registry.snapshot()
    for family, series in snapshot.items():
        count = str(len(series))
        table.add_row(f"[cyan]{family}[/cyan]", count if series else f"[dim]{count}[/dim]")
    console.print(table)

    # status labels are (id, name, metric, group)
    failing_hosts = sorted({
        labels[1] for labels, value in snapshot[HOST_STATUS].items()
        if labels[2] == "active_failures" and value == 1.0
    })
    if failing_hosts:
        console.print(f"\n[yellow]{len(failing_hosts)} hosts with active failures[/yellow]")
        for name in failing_hosts[:20]:
            console.print(f"  [dim]{name}[/dim]")
    else:
        console.print("\n[bold green]No hosts with active failures.[/bold green]")
    console.print()


if __name__ == "__main__":
    cli()
