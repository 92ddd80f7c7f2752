"""Sink registry and abstract Sink base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pping.config import ConfigError

if TYPE_CHECKING:
    from pping.config import PingConfig
    from pping.models import ProbeResult


class SinkError(Exception):
    """Raised by a sink when a result could not be delivered."""


class SinkConfigError(SinkError):
    """Raised by a sink that finds its configuration unusable mid-run."""


class Sink(ABC):
    """Abstract base class for all metrics sinks.

    A sink is owned by the dispatcher thread: ``start``, ``send`` and
    ``close`` are only ever called from there (``start``/``close`` also from
    the main thread before and after dispatching), so implementations need
    no locking.
    """

    name: str = ""

    @classmethod
    @abstractmethod
    def from_config(cls, config: PingConfig) -> Sink:
        """Build the sink from application configuration.

        Raises:
            ConfigError: If required connection parameters are missing.
        """

    @abstractmethod
    def send(self, result: ProbeResult) -> None:
        """Deliver one probe result.

        Raises:
            SinkError: If the backend could not be reached or refused the
                data.
        """

    def start(self) -> None:
        """Acquire resources (listeners, connections) before dispatching."""

    def close(self) -> None:
        """Release resources; called once after the last ``send``."""


def _build_registry() -> dict[str, type[Sink]]:
    """Build the sink-name → Sink-class mapping.

    Imports are deferred to avoid circular imports and to keep the
    registry definition in one place.
    """
    from pping.sinks.carbon import CarbonSink
    from pping.sinks.console import ConsoleSink
    from pping.sinks.influxdb import InfluxDBSink
    from pping.sinks.prometheus import PrometheusSink

    return {
        "carbon": CarbonSink,
        "console": ConsoleSink,
        "influxdb": InfluxDBSink,
        "prometheus": PrometheusSink,
    }


def get_sink(name: str, config: PingConfig) -> Sink:
    """Look up and build the sink called *name*.

    Args:
        name: Sink name (e.g. ``"prometheus"``, ``"carbon"``).
        config: Application configuration holding connection parameters.

    Returns:
        A configured, not yet started ``Sink``.

    Raises:
        ConfigError: If *name* is not in the registry or the sink's
            connection parameters are incomplete.
    """
    registry = _build_registry()
    sink_cls = registry.get(name)
    if sink_cls is None:
        known = ", ".join(sorted(registry))
        raise ConfigError(f"Unknown sink {name!r}. Known sinks: {known}")
    return sink_cls.from_config(config)


def registered_sinks() -> list[str]:
    """Return a sorted list of all registered sink names."""
    return sorted(_build_registry())
