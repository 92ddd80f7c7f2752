"""Result dispatcher: the single consumer feeding the active sink."""

import logging
import queue
import threading

from pping.models import ProbeResult
from pping.sinks import Sink, SinkConfigError, SinkError
from pping.sinks.console import ConsoleSink

logger = logging.getLogger(__name__)

# Placed on the queue by ``stop()``; everything queued before it is still
# dispatched.
_STOP = object()


class Dispatcher:
    """Drain the shared result queue into one sink on a dedicated thread.

    The dispatcher is the only code that calls into the sink while probing
    is running.  A failed ``send`` is logged and the next result is tried;
    nothing a sink raises ends the loop.  A ``SinkConfigError`` replaces
    the sink with *fallback* for the rest of the run.

    Args:
        results: Queue shared with every probe task.
        sink: Sink to deliver results to.
        fallback: Sink used once *sink* is found misconfigured (default: a
            ``ConsoleSink`` rendering tables).
    """

    def __init__(
        self, results: queue.Queue, sink: Sink, fallback: Sink | None = None
    ) -> None:
        self.results = results
        self.sink = sink
        self.fallback = fallback or ConsoleSink()
        self.dispatched = 0
        self.failed = 0
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the consumer thread."""
        self._thread = threading.Thread(
            target=self.run, name="pping-dispatcher", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Dispatch whatever is still queued, then end the consumer thread.

        Call this only after every producer has finished, otherwise results
        put after the stop marker are never dispatched.
        """
        self.results.put(_STOP)
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self) -> None:
        """Consume results until the stop marker is seen."""
        while True:
            item = self.results.get()
            try:
                if item is _STOP:
                    logger.debug(
                        "Dispatcher stopping (%d sent, %d failed)",
                        self.dispatched,
                        self.failed,
                    )
                    return
                self.dispatch(item)
            finally:
                self.results.task_done()

    def dispatch(self, result: ProbeResult) -> bool:
        """Send one result to the sink.

        Returns:
            True if the sink accepted the result.
        """
        logger.debug("Dispatching %s", result)
        try:
            self.sink.send(result)
        except SinkConfigError as exc:
            self.failed += 1
            logger.error("%s sink is misconfigured: %s", self.sink.name, exc)
            self._degrade()
            return False
        except SinkError as exc:
            self.failed += 1
            logger.error(
                "Failed to send %s (%s) to %s: %s",
                result.destination,
                result.address_family,
                self.sink.name,
                exc,
            )
            return False
        except Exception:
            self.failed += 1
            logger.exception(
                "Unexpected error sending %s to %s", result.destination, self.sink.name
            )
            return False

        self.dispatched += 1
        return True

    def _degrade(self) -> None:
        if self.sink is self.fallback:
            return
        logger.warning("Falling back to %s output for the rest of the run", self.fallback.name)
        try:
            self.sink.close()
        except Exception:
            logger.exception("Error closing %s sink", self.sink.name)
        self.sink = self.fallback
