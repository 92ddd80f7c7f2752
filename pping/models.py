"""Data models: ProbeStats and ProbeResult dataclasses."""

from dataclasses import dataclass, field
from typing import Literal

AddressFamily = Literal["ipv4", "ipv6"]

# Value reported for every RTT statistic when the probe failed or the
# platform's ping does not print that statistic.
FAILURE_SENTINEL = 0.0

STAT_NAMES = ("loss", "min", "avg", "max", "mdev")


@dataclass(frozen=True)
class ProbeStats:
    """Packet loss and round-trip statistics from one ping run.

    Attributes:
        loss: Packet loss in percent, between 0 and 100.
        min: Minimum round-trip time in milliseconds.
        avg: Average round-trip time in milliseconds.
        max: Maximum round-trip time in milliseconds.
        mdev: Mean deviation (or stddev, depending on platform) in
            milliseconds.
    """

    loss: float = 100.0
    min: float = FAILURE_SENTINEL
    avg: float = FAILURE_SENTINEL
    max: float = FAILURE_SENTINEL
    mdev: float = FAILURE_SENTINEL

    def as_dict(self) -> dict[str, float]:
        """Return the stats keyed by name, in ``STAT_NAMES`` order."""
        return {name: getattr(self, name) for name in STAT_NAMES}


@dataclass(frozen=True)
class ProbeResult:
    """One parsed probe cycle for a destination and address family.

    Attributes:
        origin: Identity of the observing host (hostname unless
            overridden in configuration).
        destination: The destination as given in configuration.
        hostname: The destination as echoed by the ping footer line; may
            be formatted differently from ``destination``.
        address_family: ``"ipv4"`` or ``"ipv6"``.
        timestamp: Unix time in seconds at which the output was parsed.
        stats: Loss and RTT statistics.
        succeeded: Whether the ping process exited successfully.
    """

    origin: str
    destination: str
    hostname: str
    address_family: AddressFamily
    timestamp: int
    stats: ProbeStats = field(default_factory=ProbeStats)
    succeeded: bool = False
