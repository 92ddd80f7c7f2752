"""YAML configuration file loading and validation."""

import logging
import math
import re
import threading
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".pping"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"

FORMATS = ("table", "json")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True)
class PingConfig:
    """Top-level configuration for the pping tool.

    Built once at startup (from the YAML file, then command-line
    overrides) and passed unchanged to every component.

    Attributes:
        destinations: Hostnames or addresses to probe.
        ping_count: Number of echo requests per probe cycle (``-c<N>``).
        interval: Seconds to wait between cycles in continuous mode.
        oneshot: Run a single cycle per destination, then exit.
        ipv6: Also probe every destination over IPv6 each cycle.
        origin: Override for the observing host's name in metrics.
        sink: Name of the metrics sink (see ``pping.sinks``).
        profile: Name of the ping profile, or ``"auto"`` to detect it.
        metrics_port: Port for the Prometheus ``/metrics`` endpoint.
        carbon_host: Host of the Carbon plaintext receiver.
        carbon_port: Port of the Carbon plaintext receiver.
        carbon_noop: Log Carbon lines instead of sending them.
        influxdb_url: Base URL of the InfluxDB HTTP API.
        influxdb_database: InfluxDB database to write points to.
        influxdb_username: Optional InfluxDB user.
        influxdb_password: Optional InfluxDB password.
        queue_size: Results that may wait for the dispatcher before
            probe threads block.
        output_format: ``"table"`` or ``"json"`` for the console sink.
    """

    destinations: tuple[str, ...] = ()
    ping_count: int = 5
    interval: float = 60.0
    oneshot: bool = False
    ipv6: bool = False
    origin: str | None = None
    sink: str = "console"
    profile: str = "auto"
    metrics_port: int = 9110
    carbon_host: str | None = None
    carbon_port: int = 2003
    carbon_noop: bool = False
    influxdb_url: str | None = None
    influxdb_database: str | None = None
    influxdb_username: str | None = None
    influxdb_password: str | None = None
    queue_size: int = 64
    output_format: str = "table"


class ConfigError(Exception):
    """Raised when configuration is malformed, incomplete or inconsistent."""


_FIELD_NAMES = frozenset(f.name for f in fields(PingConfig))


def load_config(path: Path | str | None = None) -> PingConfig:
    """Load configuration from a YAML file.

    Args:
        path: Explicit path to a YAML config file.  If ``None``, the
            default location (``~/.pping/config.yaml``) is tried.  If the
            default file doesn't exist, a ``PingConfig`` with all defaults
            is returned silently.

    Returns:
        A populated ``PingConfig`` instance.

    Raises:
        FileNotFoundError: If an explicit *path* was given but doesn't exist.
        ConfigError: If the file contains invalid YAML, has an unexpected
            top-level structure, or holds values of the wrong shape.
    """
    resolved = _resolve_path(path)

    if resolved is None:
        logger.debug("No config file found; using defaults")
        return PingConfig()

    logger.debug("Loading config from %s", resolved)
    text = resolved.read_text(encoding="utf-8")

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {resolved}: {exc}") from exc

    if raw is None:
        # Empty file: all defaults.
        return PingConfig()

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Expected a YAML mapping at the top level in {resolved}, "
            f"got {type(raw).__name__}"
        )

    return build_config(raw, source=str(resolved))


def build_config(raw: dict, source: str = "<overrides>") -> PingConfig:
    """Map a raw dict to a ``PingConfig``, ignoring unknown keys.

    Values are normalised: ``destinations`` may be a list or a
    comma-separated string and ``interval`` may be a number of seconds or a
    duration string such as ``"1m30s"``.
    """
    kwargs: dict[str, object] = {
        key: value for key, value in raw.items() if key in _FIELD_NAMES
    }

    unknown = set(raw) - _FIELD_NAMES
    if unknown:
        logger.warning(
            "Ignoring unknown config keys in %s: %s",
            source,
            ", ".join(sorted(unknown)),
        )

    if "destinations" in kwargs:
        kwargs["destinations"] = split_destinations(kwargs["destinations"])
    if "interval" in kwargs:
        kwargs["interval"] = parse_duration(kwargs["interval"])
    for int_field in ("ping_count", "metrics_port", "carbon_port", "queue_size"):
        if int_field in kwargs:
            kwargs[int_field] = _as_int(int_field, kwargs[int_field])
    for bool_field in ("oneshot", "ipv6", "carbon_noop"):
        if bool_field in kwargs:
            kwargs[bool_field] = _as_bool(bool_field, kwargs[bool_field])

    return PingConfig(**kwargs)


def split_destinations(value: object) -> tuple[str, ...]:
    """Normalise destinations into a tuple of non-empty, stripped names.

    Accepts a comma-separated string, or a list whose items may themselves
    be comma-separated strings.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        raise ConfigError(
            f"destinations must be a list or a string, got {type(value).__name__}"
        )

    out: list[str] = []
    for item in items:
        out.extend(part.strip() for part in item.split(",") if part.strip())
    return tuple(out)


def parse_duration(value: object) -> float:
    """Convert *value* into seconds.

    Numbers (and numeric strings) are taken as seconds.  Strings may also
    combine ``h``, ``m``, ``s`` and ``ms`` units, e.g. ``"1m30s"`` or
    ``"500ms"``.

    Raises:
        ConfigError: If *value* is not a valid, non-negative duration.
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        seconds = _parse_duration_string(value.strip())
    else:
        raise ConfigError(f"Invalid duration: {value!r}")

    if not math.isfinite(seconds):
        raise ConfigError(f"Invalid duration: {value!r}")
    if seconds < 0:
        raise ConfigError(f"Duration must not be negative: {value!r}")
    return seconds


def validate_config(config: PingConfig) -> None:
    """Check that *config* is complete enough to start probing.

    Sink connection parameters are checked by the sink itself when it is
    built (see ``pping.sinks.get_sink``).

    Raises:
        ConfigError: Describing the first problem found.
    """
    from pping.profiles import registered_profiles
    from pping.sinks import registered_sinks

    if not config.destinations:
        raise ConfigError("No destinations configured")
    if config.ping_count < 1:
        raise ConfigError(f"ping_count must be at least 1, got {config.ping_count}")
    if config.interval < 0:
        raise ConfigError(f"interval must not be negative, got {config.interval}")
    if config.interval > threading.TIMEOUT_MAX:
        raise ConfigError(
            f"interval must be at most {threading.TIMEOUT_MAX:g} seconds, "
            f"got {config.interval:g}"
        )
    for port_field in ("metrics_port", "carbon_port"):
        port = getattr(config, port_field)
        if not 0 < port <= 65535:
            raise ConfigError(f"{port_field} must be between 1 and 65535, got {port}")
    if config.queue_size < 1:
        raise ConfigError(f"queue_size must be at least 1, got {config.queue_size}")
    if config.output_format not in FORMATS:
        raise ConfigError(
            f"Unknown output format {config.output_format!r}. "
            f"Known formats: {', '.join(FORMATS)}"
        )

    sinks = registered_sinks()
    if config.sink not in sinks:
        raise ConfigError(
            f"Unknown sink {config.sink!r}. Known sinks: {', '.join(sinks)}"
        )

    profiles = ["auto", *registered_profiles()]
    if config.profile not in profiles:
        raise ConfigError(
            f"Unknown profile {config.profile!r}. "
            f"Known profiles: {', '.join(profiles)}"
        )


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _resolve_path(path: Path | str | None) -> Path | None:
    """Return a concrete ``Path`` to read, or ``None`` if nothing to read.

    Raises:
        FileNotFoundError: If the caller supplied an explicit path that
            doesn't exist on disk.
    """
    if path is not None:
        p = Path(path).expanduser()
        if not p.is_file():
            raise FileNotFoundError(f"Config file not found: {p}")
        return p

    default = DEFAULT_CONFIG_PATH.expanduser()
    if default.is_file():
        return default
    return None


def _parse_duration_string(text: str) -> float:
    if not text:
        raise ConfigError("Invalid duration: empty string")
    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ConfigError(f"Invalid duration: {text!r}")
    return total


def _as_int(name: str, value: object) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _as_bool(name: str, value: object) -> bool:
    # YAML already maps true/false/yes/no to bool; a quoted "false" is a str.
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false, got {value!r}")
    return value
