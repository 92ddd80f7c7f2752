"""Console sink: print each result locally instead of shipping it."""

import logging

from pping.config import PingConfig
from pping.models import ProbeResult
from pping.output import render
from pping.sinks import Sink

logger = logging.getLogger(__name__)


class ConsoleSink(Sink):
    """Render every result to a file (stdout by default).

    Used when no telemetry backend is configured and as the fallback when
    the configured sink turns out to be unusable, so the result queue is
    always drained.

    Args:
        fmt: ``"table"`` or ``"json"``.
        file: Writable file object (default: ``sys.stdout``).
    """

    name = "console"

    def __init__(self, fmt: str = "table", file: object | None = None) -> None:
        self.fmt = fmt
        self.file = file

    @classmethod
    def from_config(cls, config: PingConfig) -> "ConsoleSink":
        return cls(fmt=config.output_format)

    def send(self, result: ProbeResult) -> None:
        logger.debug("Result: %s", result)
        render([result], self.fmt, file=self.file)
