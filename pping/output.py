"""Output renderer: rich table formatter, JSON-lines formatter, format dispatch."""

import dataclasses
import json
import logging
import sys
from collections.abc import Sequence
from io import StringIO

from rich.console import Console
from rich.table import Table

from pping.models import ProbeResult

logger = logging.getLogger(__name__)

# (header, attribute on ProbeResult or ProbeStats, justify)
_RESULT_COLUMNS = [
    ("Destination", "destination", "left"),
    ("Family", "address_family", "left"),
    ("Hostname", "hostname", "left"),
    ("Loss %", "loss", "right"),
    ("Min ms", "min", "right"),
    ("Avg ms", "avg", "right"),
    ("Max ms", "max", "right"),
    ("Mdev ms", "mdev", "right"),
    ("Status", "succeeded", "left"),
]


def render(
    results: Sequence[ProbeResult],
    fmt: str,
    *,
    file: object | None = None,
    width: int | None = None,
) -> None:
    """Dispatch output to the appropriate formatter.

    Args:
        results: Probe results to render.
        fmt: Output format, ``"table"`` or ``"json"``.
        file: Writable file object for output (default: ``sys.stdout``).
        width: Explicit console width (default: auto-detect).

    Raises:
        ValueError: If *fmt* is not ``"table"`` or ``"json"``.
    """
    if fmt == "table":
        render_table(results, file=file, width=width)
    elif fmt == "json":
        render_json(results, file=file)
    else:
        raise ValueError(f"Unknown output format: {fmt!r}")


# ---------------------------------------------------------------------------
# Table (rich) formatter
# ---------------------------------------------------------------------------


def render_table(
    results: Sequence[ProbeResult],
    *,
    file: object | None = None,
    width: int | None = None,
) -> None:
    """Render *results* as a ``rich`` table, one row per result.

    The table title names the observing host (the origin of the first
    result).
    """
    out = file or sys.stdout
    console = Console(file=out, highlight=False, width=width)

    origin = results[0].origin if results else "—"
    table = Table(title=f"ping from {origin}")
    for header, _, justify in _RESULT_COLUMNS:
        table.add_column(header, justify=justify)  # type: ignore[arg-type]

    for result in results:
        table.add_row(*[_cell(result, attr) for _, attr, _ in _RESULT_COLUMNS])

    console.print(table)


def _cell(result: ProbeResult, attr: str) -> str:
    if attr == "succeeded":
        return "ok" if result.succeeded else "failed"
    if hasattr(result.stats, attr):
        return _fmt_number(getattr(result.stats, attr))
    return _fmt(getattr(result, attr))


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------


def render_json(results: Sequence[ProbeResult], *, file: object | None = None) -> None:
    """Render *results* as JSON lines, one object per result.

    Each object holds every ``ProbeResult`` field, with ``stats`` nested.
    """
    out = file or sys.stdout
    for result in results:
        out.write(json.dumps(dataclasses.asdict(result), default=str))  # type: ignore[union-attr]
        out.write("\n")  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fmt(value: object) -> str:
    """Format a field value for table display.

    ``None`` becomes ``"—"``, everything else is stringified.
    """
    if value is None:
        return "—"
    return str(value)


def _fmt_number(value: float) -> str:
    return f"{value:.3f}"


def render_to_string(
    results: Sequence[ProbeResult], fmt: str, *, width: int = 200
) -> str:
    """Render to a string instead of stdout; useful for testing.

    Args:
        results: Probe results to render.
        fmt: Output format, ``"table"`` or ``"json"``.
        width: Console width for table rendering (default: 200).

    Returns:
        The rendered output as a string.
    """
    buf = StringIO()
    render(results, fmt, file=buf, width=width)
    return buf.getvalue()
