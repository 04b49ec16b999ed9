"""Command line entry points."""

import json
import time

import click

from hostpulse.builder import SnapshotBuilder
from hostpulse.logging_setup import LogLevelType, setup_logger
from hostpulse.sampler import Sampler

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.group()
@click.option(
    "-l",
    "--log-level",
    "log_level",
    type=click.Choice(LOG_LEVELS),
    default="INFO",
    help="Set the logging level. Defaults to INFO.",
)
def cli(log_level: LogLevelType) -> None:
    """hostpulse: live host metrics over HTTP, SSE and the terminal."""
    setup_logger(log_level)


@cli.command()
@click.option(
    "-p",
    "--port",
    "port",
    type=int,
    default=3000,
    envvar="PORT",
    show_default=True,
    help="Port to listen on. Also read from the PORT environment variable.",
)
@click.option("-h", "--host", "host", default="0.0.0.0", show_default=True, help="Address to bind.")
@click.option(
    "--disk-path",
    "disk_path",
    default="/",
    show_default=True,
    help="Mount point whose usage is reported.",
)
def serve(port: int, host: str, disk_path: str) -> None:
    """Serve the dashboard, /api/metrics and the /stream SSE endpoint."""
    from hostpulse.server import serve as run_server

    run_server(host, port, disk_path=disk_path)


@cli.command()
@click.option(
    "-i",
    "--interval",
    "interval",
    type=float,
    default=2.0,
    show_default=True,
    help="Seconds between refreshes.",
)
def top(interval: float) -> None:
    """Show the live terminal dashboard."""
    from hostpulse.app import HostPulseApp

    HostPulseApp(poll_rate=interval).run()


@cli.command()
@click.option(
    "-w",
    "--wait",
    "wait",
    type=float,
    default=1.0,
    show_default=True,
    help="Seconds to sample CPU counters over before printing.",
)
def snapshot(wait: float) -> None:
    """Print one snapshot as JSON."""
    builder = SnapshotBuilder(Sampler())
    time.sleep(max(0.0, wait))
    click.echo(json.dumps(builder.build().to_dict(), indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
