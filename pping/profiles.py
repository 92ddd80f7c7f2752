"""Ping profiles: binary path and output grammar for each supported platform."""

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path

from pping.config import ConfigError

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")

_NUM = r"\d+(?:\.\d+)?"

FOOTER_PATTERN = re.compile(r"--- (?P<hostname>\S+) ping statistics ---")
LOSS_PATTERN = re.compile(rf"(?P<loss>{_NUM})% packet loss")


@dataclass(frozen=True)
class ProbeProfile:
    """Everything needed to run and parse one platform's ``ping``.

    Profiles are chosen once at startup and shared read-only by every
    probe thread.

    Attributes:
        name: Registry name of the profile.
        binary_path: Absolute path of the ping executable.
        ipv4_flag: Argument selecting IPv4, or ``""`` to pass none.
        ipv6_flag: Argument selecting IPv6, or ``""`` to pass none.
        loss_pattern: Regex with a ``loss`` group (percent).
        rtt_pattern: Regex with ``min``, ``avg``, ``max`` and optionally
            ``mdev`` groups (milliseconds).
        footer_pattern: Regex with a ``hostname`` group matching the
            statistics header that echoes the destination.
    """

    name: str
    binary_path: str
    loss_pattern: re.Pattern[str]
    rtt_pattern: re.Pattern[str]
    footer_pattern: re.Pattern[str] = FOOTER_PATTERN
    ipv4_flag: str = "-4"
    ipv6_flag: str = "-6"

    def address_family_flag(self, use_ipv6: bool) -> str:
        """Return the argument selecting the requested address family."""
        return self.ipv6_flag if use_ipv6 else self.ipv4_flag

    @property
    def reports_mdev(self) -> bool:
        """Whether this platform's RTT line includes a deviation figure."""
        return "mdev" in self.rtt_pattern.groupindex


# Linux iputils (Debian, Ubuntu, Fedora, ...):
#   rtt min/avg/max/mdev = 10.123/12.456/15.789/1.234 ms
IPUTILS = ProbeProfile(
    name="iputils",
    binary_path="/usr/bin/ping",
    loss_pattern=LOSS_PATTERN,
    rtt_pattern=re.compile(
        r"(?:rtt|round-trip) min/avg/max/(?:mdev|stddev) = "
        rf"(?P<min>{_NUM})/(?P<avg>{_NUM})/(?P<max>{_NUM})/(?P<mdev>{_NUM}) ms"
    ),
)

# BusyBox (Alpine): no deviation column.
#   round-trip min/avg/max = 10.123/12.456/15.789 ms
BUSYBOX = ProbeProfile(
    name="busybox",
    binary_path="/bin/ping",
    loss_pattern=LOSS_PATTERN,
    rtt_pattern=re.compile(
        r"round-trip min/avg/max = "
        rf"(?P<min>{_NUM})/(?P<avg>{_NUM})/(?P<max>{_NUM}) ms"
    ),
)

# OpenBSD: fractional loss and a std-dev column.
#   5 packets transmitted, 5 packets received, 0.0% packet loss
#   round-trip min/avg/max/std-dev = 10.123/12.456/15.789/1.234 ms
OPENBSD = ProbeProfile(
    name="openbsd",
    binary_path="/sbin/ping",
    loss_pattern=LOSS_PATTERN,
    rtt_pattern=re.compile(
        r"round-trip min/avg/max/std-dev = "
        rf"(?P<min>{_NUM})/(?P<avg>{_NUM})/(?P<max>{_NUM})/(?P<mdev>{_NUM}) ms"
    ),
)

_PROFILES: dict[str, ProbeProfile] = {
    profile.name: profile for profile in (IPUTILS, BUSYBOX, OPENBSD)
}

# /etc/os-release ID → profile name.  Unlisted Linux distributions get
# iputils.
_DISTRO_PROFILES: dict[str, str] = {
    "alpine": "busybox",
    "debian": "iputils",
    "ubuntu": "iputils",
}


def get_profile(name: str) -> ProbeProfile:
    """Look up a built-in profile by name.

    Raises:
        ConfigError: If *name* is not a known profile.
    """
    profile = _PROFILES.get(name)
    if profile is None:
        known = ", ".join(registered_profiles())
        raise ConfigError(f"Unknown profile {name!r}. Known profiles: {known}")
    return profile


def registered_profiles() -> list[str]:
    """Return a sorted list of all built-in profile names."""
    return sorted(_PROFILES)


def read_distro_id(os_release: Path = OS_RELEASE_PATH) -> str | None:
    """Return the ``ID`` field of an os-release file, lower-cased.

    Returns ``None`` when the file is missing, unreadable or has no ``ID``.
    """
    try:
        text = os_release.read_text(encoding="utf-8")
    except OSError as exc:
        logger.debug("Cannot read %s: %s", os_release, exc)
        return None

    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() == "ID":
            return value.strip().strip("\"'").lower() or None
    return None


def detect_profile(
    platform: str | None = None,
    os_release: Path = OS_RELEASE_PATH,
) -> ProbeProfile:
    """Pick the profile matching the running system.

    Args:
        platform: ``sys.platform``-style identifier (default: the running
            interpreter's).
        os_release: os-release file consulted on Linux.

    Returns:
        The matching built-in ``ProbeProfile``.

    Raises:
        ConfigError: If the platform is not supported.
    """
    platform = platform or sys.platform

    if platform.startswith("openbsd"):
        profile = OPENBSD
    elif platform.startswith("linux"):
        distro = read_distro_id(os_release)
        logger.debug("Distribution determined to be: %s", distro)
        profile = _PROFILES[_DISTRO_PROFILES.get(distro or "", "iputils")]
    else:
        raise ConfigError(
            f"No ping profile for platform {platform!r}; "
            f"choose one explicitly from: {', '.join(registered_profiles())}"
        )

    logger.info("Using %s ping profile (%s)", profile.name, profile.binary_path)
    return profile
