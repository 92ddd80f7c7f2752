"""CLI entry point for the pping tool."""

import dataclasses
import logging
import queue
import signal
import sys

import click

from pping.config import (
    FORMATS,
    ConfigError,
    PingConfig,
    load_config,
    parse_duration,
    split_destinations,
    validate_config,
)
from pping.dispatcher import Dispatcher
from pping.dns import get_valid_destinations
from pping.profiles import ProbeProfile, detect_profile, get_profile, registered_profiles
from pping.scheduler import Scheduler
from pping.sinks import Sink, get_sink, registered_sinks
from pping.sinks.console import ConsoleSink

logger = logging.getLogger(__name__)


class DurationType(click.ParamType):
    """Click parameter accepting ``60``, ``60s``, ``1m30s`` or ``500ms``."""

    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, float):
            return value
        try:
            return parse_duration(value)
        except ConfigError as exc:
            self.fail(str(exc), param, ctx)


@click.command()
@click.option(
    "--destination",
    "-d",
    "destinations",
    multiple=True,
    help="Comma-separated destinations to ping (repeatable).",
)
@click.option("--pingcount", "ping_count", type=int, default=None, help="Number of pings per cycle. [default: 5]")
@click.option(
    "--interval",
    type=DurationType(),
    default=None,
    help="Wait between rounds of pings, e.g. 60s or 1m. [default: 60s]",
)
@click.option("--oneshot", is_flag=True, default=False, help="Execute just one ping round per destination. Do not loop.")
@click.option("--origin", default=None, help="Override hostname as origin with this value.")
@click.option("--ipv6", is_flag=True, default=False, help="Also ping via IPv6 and gather statistics.")
@click.option(
    "--sink",
    type=click.Choice(registered_sinks(), case_sensitive=False),
    default=None,
    help="Where to send results. [default: console]",
)
@click.option("--metrics-port", type=int, default=None, help="Port to listen on for Prometheus scrapes. [default: 9110]")
@click.option("--carbon-host", default=None, help="Hostname of the Carbon receiver.")
@click.option("--carbon-port", type=int, default=None, help="Port of the Carbon receiver. [default: 2003]")
@click.option("--carbon-noop", is_flag=True, default=False, help="Log Carbon metrics instead of sending them.")
@click.option(
    "--influxdb-url",
    default=None,
    help=(
        "Base URL of the InfluxDB HTTP API. Points are tagged with origin, "
        "destination and address_family."
    ),
)
@click.option("--influxdb-database", default=None, help="InfluxDB database to write to.")
@click.option(
    "--profile",
    type=click.Choice(["auto", *registered_profiles()], case_sensitive=False),
    default=None,
    help="Ping output profile. [default: auto]",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(FORMATS, case_sensitive=False),
    default=None,
    help="Console sink output format. [default: table]",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(exists=False),
    help="Path to YAML config file (default: ~/.pping/config.yaml).",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log commands, raw output and every result.")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Only log warnings and errors.")
def main(
    destinations: tuple[str, ...],
    config_path: str | None,
    verbose: bool,
    quiet: bool,
    **overrides: object,
) -> None:
    """Ping multiple destinations in parallel and export the statistics."""
    _configure_logging(verbose, quiet)

    try:
        cfg = load_config(config_path)
        cfg = _apply_overrides(cfg, destinations, overrides)
        validate_config(cfg)
    except (ConfigError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    logger.debug("Config loaded: %s", cfg)

    try:
        profile = _select_profile(cfg)
        sink = get_sink(cfg.sink, cfg)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    valid = get_valid_destinations(cfg.destinations)
    if not valid:
        click.echo("Error: none of the configured destinations resolve", err=True)
        sys.exit(1)

    try:
        sink.start()
    except OSError as exc:
        click.echo(f"Error: could not start {cfg.sink} sink: {exc}", err=True)
        sys.exit(1)

    _run(cfg, profile, sink, valid)


def _run(
    cfg: PingConfig,
    profile: ProbeProfile,
    sink: Sink,
    destinations: list[str],
) -> None:
    """Wire scheduler, queue and dispatcher together and run to completion.

    Pipeline: probe tasks → bounded queue → dispatcher → sink.  One-shot
    runs return once every task has finished and the queue is drained;
    continuous runs return after SIGINT or SIGTERM.
    """
    results: queue.Queue = queue.Queue(maxsize=cfg.queue_size)
    dispatcher = Dispatcher(results, sink, fallback=ConsoleSink(fmt=cfg.output_format))
    scheduler = Scheduler(destinations, cfg, profile, results)

    if not cfg.oneshot:
        signal.signal(signal.SIGTERM, lambda _signum, _frame: scheduler.stop())

    dispatcher.start()
    scheduler.start()
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        scheduler.stop()
        scheduler.wait()
    finally:
        dispatcher.stop()
        # May differ from ``sink`` after a fallback to the console.
        dispatcher.sink.close()

    logger.info(
        "Finished: %d result(s) sent, %d failed", dispatcher.dispatched, dispatcher.failed
    )


def _apply_overrides(
    cfg: PingConfig,
    destinations: tuple[str, ...],
    overrides: dict[str, object],
) -> PingConfig:
    """Return *cfg* with every option given on the command line applied.

    Options left at ``None`` (or flags left off) keep the config file's
    value.
    """
    changes = {
        key: value
        for key, value in overrides.items()
        if value is not None and value is not False
    }
    if destinations:
        changes["destinations"] = split_destinations(list(destinations))
    for key in ("sink", "profile", "output_format"):
        if key in changes:
            changes[key] = str(changes[key]).lower()
    return dataclasses.replace(cfg, **changes)


def _select_profile(cfg: PingConfig) -> ProbeProfile:
    if cfg.profile == "auto":
        return detect_profile()
    return get_profile(cfg.profile)


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s: %(message)s",
    )
