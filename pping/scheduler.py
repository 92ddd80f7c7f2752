"""Probe scheduler: one looping thread per destination."""

import logging
import queue
import threading
from collections.abc import Callable, Sequence
from enum import Enum

from pping.config import PingConfig
from pping.executor import ExecutionResult, execute
from pping.models import AddressFamily, ProbeResult
from pping.parser import ParseError, default_origin, parse_output
from pping.profiles import ProbeProfile

logger = logging.getLogger(__name__)

ExecuteFn = Callable[[str, int, bool, ProbeProfile], ExecutionResult]


class TaskState(str, Enum):
    """Where a probe task is in its cycle."""

    IDLE = "idle"
    PROBING = "probing"
    EMITTING = "emitting"
    SLEEPING = "sleeping"
    DONE = "done"


class ProbeTask:
    """Probe one destination repeatedly and emit parsed results.

    Each cycle probes IPv4 and, when ``config.ipv6`` is set, IPv6, then puts
    every successfully parsed result on the shared queue.  Output that
    cannot be parsed is logged and skipped; it is not retried within the
    cycle.  In one-shot mode the task ends after its first cycle, otherwise
    it sleeps ``config.interval`` seconds (or until *stop_event* is set)
    and starts over.

    Args:
        destination: Destination to probe.
        config: Application configuration.
        profile: Active ping profile.
        results: Queue shared with the dispatcher.
        origin: Observing host name stamped on every result.
        stop_event: Set to end the loop after the current cycle.
        execute_fn: Runs one ping; replaceable for tests.
    """

    def __init__(
        self,
        destination: str,
        config: PingConfig,
        profile: ProbeProfile,
        results: queue.Queue,
        *,
        origin: str,
        stop_event: threading.Event,
        execute_fn: ExecuteFn = execute,
    ) -> None:
        self.destination = destination
        self.config = config
        self.profile = profile
        self.results = results
        self.origin = origin
        self.stop_event = stop_event
        self.execute_fn = execute_fn
        self.state = TaskState.IDLE
        self.cycles = 0

    @property
    def families(self) -> list[AddressFamily]:
        return ["ipv4", "ipv6"] if self.config.ipv6 else ["ipv4"]

    def run(self) -> None:
        """Loop until one-shot completion or until the stop event is set."""
        try:
            while True:
                try:
                    self.run_cycle()
                except Exception:
                    logger.exception("Probe cycle for %s failed", self.destination)

                if self.config.oneshot:
                    break
                self.state = TaskState.SLEEPING
                if self.stop_event.wait(self.config.interval):
                    break
        finally:
            self.state = TaskState.DONE
            logger.debug("Probe task for %s done after %d cycle(s)", self.destination, self.cycles)

    def run_cycle(self) -> int:
        """Probe every address family once and emit what parsed.

        Returns:
            Number of results put on the queue.
        """
        parsed: list[ProbeResult] = []
        for family in self.families:
            result = self.probe(family)
            if result is not None:
                parsed.append(result)

        self.state = TaskState.EMITTING
        for result in parsed:
            self.results.put(result)

        self.cycles += 1
        return len(parsed)

    def probe(self, family: AddressFamily) -> ProbeResult | None:
        """Run and parse one ping; ``None`` if the output was unusable."""
        self.state = TaskState.PROBING
        logger.debug("Pinging %s over %s", self.destination, family)
        execution = self.execute_fn(
            self.destination,
            self.config.ping_count,
            family == "ipv6",
            self.profile,
        )
        if not execution.succeeded:
            logger.info("%s ping for %s did not succeed", family, self.destination)

        try:
            return parse_output(
                execution.output,
                execution.succeeded,
                self.profile,
                destination=self.destination,
                address_family=family,
                origin=self.origin,
            )
        except ParseError as exc:
            logger.warning(
                "Skipping %s result for %s (%s): %s",
                family,
                self.destination,
                exc.reason.value,
                exc,
            )
            return None


class Scheduler:
    """Own one ``ProbeTask`` thread per destination.

    Args:
        destinations: Validated destinations.
        config: Application configuration.
        profile: Active ping profile, shared read-only by every task.
        results: Queue shared with the dispatcher.
        origin: Observing host name; defaults to ``config.origin`` or the
            local hostname.
        execute_fn: Runs one ping; replaceable for tests.
    """

    def __init__(
        self,
        destinations: Sequence[str],
        config: PingConfig,
        profile: ProbeProfile,
        results: queue.Queue,
        *,
        origin: str | None = None,
        execute_fn: ExecuteFn = execute,
    ) -> None:
        self.stop_event = threading.Event()
        self.origin = origin or config.origin or default_origin()
        self.tasks = [
            ProbeTask(
                destination,
                config,
                profile,
                results,
                origin=self.origin,
                stop_event=self.stop_event,
                execute_fn=execute_fn,
            )
            for destination in destinations
        ]
        self._threads: list[threading.Thread] = []

    def start(self) -> None:
        """Start every task on its own thread."""
        for task in self.tasks:
            logger.info("Spawning ping loop for %s", task.destination)
            thread = threading.Thread(
                target=task.run, name=f"pping-{task.destination}", daemon=True
            )
            thread.start()
            self._threads.append(thread)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every task has finished.

        This is the one-shot completion barrier.  In continuous mode it
        returns only after ``stop()``.

        Args:
            timeout: Upper bound in seconds for each thread join (default:
                wait indefinitely).

        Returns:
            True if all tasks are done.
        """
        for thread in self._threads:
            thread.join(timeout)
        return not self.running

    def stop(self) -> None:
        """Ask every task to finish after its current cycle."""
        logger.info("Stopping %d probe task(s)", len(self.tasks))
        self.stop_event.set()

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)
