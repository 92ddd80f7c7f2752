"""InfluxDB sink: line protocol over the HTTP ``/write`` API."""

import logging

import requests

from pping.config import ConfigError, PingConfig
from pping.models import ProbeResult
from pping.sinks import Sink, SinkConfigError, SinkError

logger = logging.getLogger(__name__)

MEASUREMENT = "ping"
DEFAULT_TIMEOUT = 10.0


def _escape_tag(value: str) -> str:
    """Escape commas, equals signs and spaces in a tag key or value."""
    for char in ("\\", ",", "=", " "):
        value = value.replace(char, "\\" + char)
    return value


def format_point(result: ProbeResult) -> str:
    """Render *result* as one line-protocol point with second precision.

    Tags are ``origin``, ``destination`` and ``address_family``; the last
    keeps IPv4 and IPv6 series of a destination apart.

    Example output::

        ping,origin=host1,destination=example.com,address_family=ipv4 loss=0.0,min=10.0,avg=12.5,max=15.0,mdev=1.2 1700000000
    """
    tags = ",".join(
        f"{key}={_escape_tag(value)}"
        for key, value in (
            ("origin", result.origin),
            ("destination", result.destination),
            ("address_family", result.address_family),
        )
    )
    fields = ",".join(
        f"{name}={float(value)!r}" for name, value in result.stats.as_dict().items()
    )
    return f"{MEASUREMENT},{tags} {fields} {result.timestamp}"


class InfluxDBSink(Sink):
    """Write one point per result to an InfluxDB 1.x compatible endpoint.

    Args:
        url: Base URL of the InfluxDB HTTP API (e.g. ``http://influx:8086``).
        database: Target database.
        username: Optional user for basic auth.
        password: Optional password for basic auth.
        timeout: Request timeout in seconds.
        session: ``requests.Session`` to use (default: a new one).
    """

    name = "influxdb"

    def __init__(
        self,
        url: str,
        database: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.write_url = url.rstrip("/") + "/write"
        self.database = database
        self.timeout = timeout
        self.session = session or requests.Session()
        if username:
            self.session.auth = (username, password or "")

    @classmethod
    def from_config(cls, config: PingConfig) -> "InfluxDBSink":
        missing = [
            key
            for key in ("influxdb_url", "influxdb_database")
            if not getattr(config, key)
        ]
        if missing:
            raise ConfigError(f"The influxdb sink requires {', '.join(missing)}")
        return cls(
            url=config.influxdb_url,  # type: ignore[arg-type]
            database=config.influxdb_database,  # type: ignore[arg-type]
            username=config.influxdb_username,
            password=config.influxdb_password,
        )

    def send(self, result: ProbeResult) -> None:
        point = format_point(result)
        try:
            resp = self.session.post(
                self.write_url,
                params={"db": self.database, "precision": "s"},
                data=point.encode("utf-8"),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise SinkError(f"Writing to InfluxDB at {self.write_url} failed: {exc}") from exc

        if resp.status_code in (401, 403):
            raise SinkConfigError(
                f"InfluxDB rejected credentials ({resp.status_code}): {resp.text.strip()}"
            )
        if resp.status_code >= 300:
            raise SinkError(
                f"InfluxDB write returned {resp.status_code}: {resp.text.strip()}"
            )
        logger.debug("Wrote point for %s to InfluxDB", result.destination)

    def close(self) -> None:
        self.session.close()
