"""Turn raw ping output into a ``ProbeResult`` using a ``ProbeProfile``.

The parser knows nothing about platforms: every platform difference
(``rtt`` vs ``round-trip``, ``mdev`` vs ``stddev``, three or four RTT
columns) is carried by the profile's patterns.  Captures are read by group
name and checked for presence, so malformed or truncated output produces a
``ParseError`` and never an ``IndexError``.
"""

import logging
import math
import re
import socket
import time
from enum import Enum
from functools import lru_cache

from pping.models import AddressFamily, ProbeResult, ProbeStats
from pping.profiles import ProbeProfile

logger = logging.getLogger(__name__)


class ParseFailure(str, Enum):
    """Why a block of ping output could not be parsed."""

    MISSING_FOOTER = "missing_footer"
    MISSING_LOSS_LINE = "missing_loss_line"
    MISSING_RTT_LINE = "missing_rtt_line"
    INVALID_VALUE = "invalid_value"


class ParseError(ValueError):
    """Raised when ping output does not match the active profile.

    Attributes:
        reason: The ``ParseFailure`` describing what was missing or wrong.
    """

    def __init__(self, reason: ParseFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason


@lru_cache(maxsize=1)
def default_origin() -> str:
    """Return this host's name, looked up once per process."""
    return socket.gethostname()


def parse_output(
    raw: str,
    succeeded: bool,
    profile: ProbeProfile,
    *,
    destination: str | None = None,
    address_family: AddressFamily = "ipv4",
    origin: str | None = None,
    now: float | None = None,
) -> ProbeResult:
    """Parse one ping run's output.

    Steps, in order:

    1. The footer (``--- host ping statistics ---``) gives the hostname.
    2. The loss line gives the packet loss percentage.
    3. For a failed run the RTT statistics are left at the failure
       sentinel; no RTT line is expected.
    4. For a successful run the RTT line gives min/avg/max and, when the
       profile captures it, mdev.

    Args:
        raw: Text printed by ping.
        succeeded: Whether the ping process exited successfully.
        profile: Profile whose patterns describe *raw*.
        destination: The configured destination; defaults to the hostname
            echoed in the footer.
        address_family: ``"ipv4"`` or ``"ipv6"``.
        origin: Observing host name; defaults to ``default_origin()``.
        now: Unix time to stamp the result with (default: current time).

    Returns:
        An immutable ``ProbeResult``.

    Raises:
        ParseError: If *raw* does not conform to the profile's grammar or
            holds out-of-range values.
    """
    hostname = _capture(profile.footer_pattern, raw, "hostname")
    if not hostname:
        raise ParseError(
            ParseFailure.MISSING_FOOTER,
            f"No statistics footer in ping output for {destination or '?'}",
        )

    loss_text = _capture(profile.loss_pattern, raw, "loss")
    if loss_text is None:
        raise ParseError(
            ParseFailure.MISSING_LOSS_LINE,
            f"No packet loss line in ping output for {hostname}",
        )
    loss = _to_float("loss", loss_text)
    if loss > 100.0:
        raise ParseError(
            ParseFailure.INVALID_VALUE,
            f"Packet loss {loss}% for {hostname} is out of range",
        )

    if succeeded:
        stats = _parse_rtt(raw, profile, loss, hostname)
    else:
        stats = ProbeStats(loss=loss)

    return ProbeResult(
        origin=origin if origin is not None else default_origin(),
        destination=destination or hostname,
        hostname=hostname,
        address_family=address_family,
        timestamp=int(time.time() if now is None else now),
        stats=stats,
        succeeded=succeeded,
    )


def _parse_rtt(
    raw: str,
    profile: ProbeProfile,
    loss: float,
    hostname: str,
) -> ProbeStats:
    match = profile.rtt_pattern.search(raw)
    if match is None:
        raise ParseError(
            ParseFailure.MISSING_RTT_LINE,
            f"No round-trip statistics in ping output for {hostname}",
        )

    values: dict[str, float] = {}
    for name in ("min", "avg", "max", "mdev"):
        text = _group(match, name)
        if text is None:
            if name == "mdev":
                continue
            raise ParseError(
                ParseFailure.MISSING_RTT_LINE,
                f"Round-trip line for {hostname} has no {name!r} value",
            )
        values[name] = _to_float(name, text)

    if not values["min"] <= values["avg"] <= values["max"]:
        raise ParseError(
            ParseFailure.INVALID_VALUE,
            f"Inconsistent round-trip statistics for {hostname}: "
            f"min={values['min']} avg={values['avg']} max={values['max']}",
        )

    return ProbeStats(loss=loss, **values)


def _capture(pattern: re.Pattern[str], raw: str, name: str) -> str | None:
    """Return group *name* of the first match of *pattern*, or ``None``."""
    match = pattern.search(raw)
    if match is None:
        return None
    return _group(match, name)


def _group(match: re.Match[str], name: str) -> str | None:
    if name not in match.re.groupindex:
        return None
    return match.group(name)


def _to_float(name: str, text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise ParseError(
            ParseFailure.INVALID_VALUE, f"{name} value {text!r} is not a number"
        ) from None
    if not math.isfinite(value) or value < 0:
        raise ParseError(
            ParseFailure.INVALID_VALUE, f"{name} value {text!r} is out of range"
        )
    return value
