"""DNS helpers used to prune destinations before probing starts."""

import logging
import socket
from collections.abc import Iterable

logger = logging.getLogger(__name__)


def resolve_all(hostname: str, port: int = 0) -> list[tuple[str, int]]:
    """Resolve a hostname to all A and AAAA records.

    Wraps ``socket.getaddrinfo`` to return deduplicated ``(ip, port)``
    pairs for both IPv4 and IPv6 addresses.

    Args:
        hostname: The hostname or address literal to resolve.
        port: Service port to pass to ``getaddrinfo``.  Defaults to ``0``
            (any port).

    Returns:
        A deduplicated list of ``(ip, port)`` tuples, in resolver order.

    Raises:
        socket.gaierror: If DNS resolution fails entirely.
    """
    logger.debug("Resolving %s (port=%d)", hostname, port)

    results = socket.getaddrinfo(
        hostname,
        port,
        family=socket.AF_UNSPEC,
        type=socket.SOCK_STREAM,
    )

    seen: set[tuple[str, int]] = set()
    out: list[tuple[str, int]] = []
    for _family, _type, _proto, _canonname, sockaddr in results:
        # sockaddr is (ip, port) for AF_INET, (ip, port, flow, scope) for AF_INET6
        key = (sockaddr[0], sockaddr[1])
        if key not in seen:
            seen.add(key)
            out.append(key)

    logger.debug("Resolved %s → %d unique address(es)", hostname, len(out))
    return out


def destination_exists(destination: str) -> bool:
    """Return True if *destination* resolves to at least one address.

    Lookup failures of any kind (unknown name, resolver timeout, invalid
    literal) count as "does not exist".
    """
    try:
        return bool(resolve_all(destination))
    except (OSError, UnicodeError) as exc:
        logger.debug("Lookup for %s failed: %s", destination, exc)
        return False


def get_valid_destinations(destinations: Iterable[str]) -> list[str]:
    """Filter *destinations* down to the ones that resolve.

    The original names are kept (not the resolved addresses) and input
    order is preserved.  Blank entries are skipped.  Nothing is retried:
    a destination dropped here stays dropped for the life of the process.

    Args:
        destinations: Hostnames or address literals.

    Returns:
        The resolvable subset of *destinations*.
    """
    valid: list[str] = []
    for destination in destinations:
        destination = destination.strip()
        if not destination:
            continue
        if destination_exists(destination):
            valid.append(destination)
        else:
            logger.warning("Dropping %s: destination does not resolve", destination)

    logger.info("Destinations to ping: %s", ", ".join(valid) or "(none)")
    return valid
