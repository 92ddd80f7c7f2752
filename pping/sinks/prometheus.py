"""Prometheus sink: labelled gauges served on a pull endpoint."""

import logging

from prometheus_client import CollectorRegistry, Gauge, start_http_server

from pping.config import PingConfig
from pping.models import ProbeResult
from pping.sinks import Sink

logger = logging.getLogger(__name__)

LABELS = ("address_family", "destination", "hostname")

# (metric name, help text, ProbeStats attribute)
_GAUGES = (
    ("ping_rtt_min_ms", "Ping rtt minimum in ms.", "min"),
    ("ping_rtt_avg_ms", "Ping rtt average in ms.", "avg"),
    ("ping_rtt_max_ms", "Ping rtt maximum in ms.", "max"),
    ("ping_rtt_mdev_ms", "Ping rtt standard deviation in ms.", "mdev"),
    ("ping_loss_pct", "Ping loss in percent.", "loss"),
)


class PrometheusSink(Sink):
    """Expose the latest result per destination as Prometheus gauges.

    Each sink owns a private ``CollectorRegistry`` so several instances
    (e.g. in tests) never collide on metric names.

    Args:
        port: TCP port for the ``/metrics`` endpoint.
        addr: Address to bind (default: all interfaces).
        registry: Registry to create the gauges in.
    """

    name = "prometheus"

    def __init__(
        self,
        port: int = 9110,
        addr: str = "0.0.0.0",
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.port = port
        self.addr = addr
        self.registry = registry or CollectorRegistry()
        self._gauges = [
            (
                Gauge(metric, help_text, LABELS, registry=self.registry),
                attr,
            )
            for metric, help_text, attr in _GAUGES
        ]
        self._server = None

    @classmethod
    def from_config(cls, config: PingConfig) -> "PrometheusSink":
        return cls(port=config.metrics_port)

    def start(self) -> None:
        """Start serving ``/metrics`` on a background thread."""
        self._server, _thread = start_http_server(
            self.port, addr=self.addr, registry=self.registry
        )
        logger.info("Serving Prometheus metrics on %s:%d", self.addr, self.port)

    def send(self, result: ProbeResult) -> None:
        labels = {
            "address_family": result.address_family,
            "destination": result.destination,
            "hostname": result.hostname,
        }
        for gauge, attr in self._gauges:
            gauge.labels(**labels).set(getattr(result.stats, attr))

    def close(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
