"""Carbon sink: Graphite plaintext protocol over TCP."""

import logging
import socket

from pping.config import ConfigError, PingConfig
from pping.models import ProbeResult
from pping.sinks import Sink, SinkError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


def metric_prefix(result: ProbeResult) -> str:
    """Return ``ping.<origin>.<destination>`` with dots in the destination
    replaced by underscores so it stays a single path component."""
    return f"ping.{result.origin}.{result.destination.replace('.', '_')}"


def format_lines(result: ProbeResult) -> list[str]:
    """Render *result* as Carbon plaintext lines, one per statistic.

    Each line is ``<path> <value> <timestamp>\\n``.
    """
    prefix = metric_prefix(result)
    return [
        f"{prefix}.{stat} {value} {result.timestamp}\n"
        for stat, value in result.stats.as_dict().items()
    ]


class CarbonSink(Sink):
    """Push results to a Carbon line receiver.

    The TCP connection is opened lazily and kept for later sends; after a
    socket error it is dropped and reopened on the next ``send``.

    Args:
        host: Carbon receiver host.
        port: Carbon plaintext port (usually 2003).
        noop: Log the lines instead of sending them.
        timeout: Connect / send timeout in seconds.
    """

    name = "carbon"

    def __init__(
        self,
        host: str | None,
        port: int = 2003,
        noop: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.host = host
        self.port = port
        self.noop = noop
        self.timeout = timeout
        self._sock: socket.socket | None = None

    @classmethod
    def from_config(cls, config: PingConfig) -> "CarbonSink":
        if not config.carbon_noop and not config.carbon_host:
            raise ConfigError("The carbon sink requires carbon_host (or carbon_noop)")
        return cls(
            host=config.carbon_host,
            port=config.carbon_port,
            noop=config.carbon_noop,
        )

    def send(self, result: ProbeResult) -> None:
        lines = format_lines(result)
        if self.noop:
            for line in lines:
                logger.info("Carbon (noop): %s", line.rstrip())
            return

        payload = "".join(lines).encode("utf-8")
        try:
            sock = self._connect()
            sock.sendall(payload)
        except OSError as exc:
            self._disconnect()
            raise SinkError(
                f"Sending to carbon at {self.host}:{self.port} failed: {exc}"
            ) from exc
        logger.debug("Sent %d line(s) to carbon for %s", len(lines), result.destination)

    def close(self) -> None:
        self._disconnect()

    def _connect(self) -> socket.socket:
        if self._sock is None:
            logger.debug("Connecting to carbon at %s:%d", self.host, self.port)
            self._sock = socket.create_connection(
                (self.host, self.port), timeout=self.timeout
            )
        return self._sock

    def _disconnect(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as exc:
                logger.debug("Error closing carbon socket: %s", exc)
            self._sock = None
