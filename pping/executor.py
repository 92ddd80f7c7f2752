"""Run the external ping binary for one destination and address family."""

import logging
import shlex
import subprocess
from dataclasses import dataclass

from pping.profiles import ProbeProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """Captured outcome of one ping invocation.

    Attributes:
        output: Combined stdout and stderr of the process (empty if it
            could not be started).
        succeeded: True only when the process exited with status 0.
        returncode: Exit status, or ``None`` if the process never started.
    """

    output: str
    succeeded: bool
    returncode: int | None = None


def build_command(
    profile: ProbeProfile,
    destination: str,
    count: int,
    use_ipv6: bool = False,
) -> list[str]:
    """Build the argument vector for one ping run.

    The layout is ``[binary, family_flag, "-c<N>", destination]``; the
    family flag is left out when the profile defines it as empty.
    """
    cmd = [profile.binary_path]
    family_flag = profile.address_family_flag(use_ipv6)
    if family_flag:
        cmd.append(family_flag)
    cmd.append(f"-c{count}")
    cmd.append(destination)
    return cmd


def execute(
    destination: str,
    count: int,
    use_ipv6: bool,
    profile: ProbeProfile,
) -> ExecutionResult:
    """Run ping against *destination* and capture what it printed.

    No timeout is imposed here; the run lasts as long as the tool's own
    count takes.  A non-zero exit is not an error: the output (for example
    a 100% packet loss report) is still returned for parsing.  Failing to
    start the process at all is reported the same way as a non-zero exit.

    Args:
        destination: Hostname or address to ping.
        count: Number of echo requests.
        use_ipv6: Probe over IPv6 instead of IPv4.
        profile: Active ping profile.

    Returns:
        An ``ExecutionResult``; this function does not raise for process
        failures.
    """
    cmd = build_command(profile, destination, count, use_ipv6)
    logger.debug("Ping command: %s", shlex.join(cmd))

    try:
        proc = subprocess.run(
            cmd,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
    except OSError as exc:
        logger.error("Could not run %s for %s: %s", cmd[0], destination, exc)
        return ExecutionResult(output="", succeeded=False, returncode=None)

    output = proc.stdout or ""
    logger.debug("Raw ping output for %s:\n%s", destination, output)

    if proc.returncode != 0:
        logger.info(
            "Ping for %s exited with status %d", destination, proc.returncode
        )
        return ExecutionResult(output=output, succeeded=False, returncode=proc.returncode)

    return ExecutionResult(output=output, succeeded=True, returncode=0)
