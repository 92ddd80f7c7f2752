"""Tests for the result dispatcher."""

import io
import json
import queue
from unittest.mock import MagicMock

import pytest

from pping.config import PingConfig
from pping.dispatcher import Dispatcher
from pping.executor import ExecutionResult
from pping.models import ProbeResult, ProbeStats
from pping.profiles import IPUTILS
from pping.scheduler import Scheduler
from pping.sinks import Sink, SinkConfigError, SinkError
from pping.sinks.console import ConsoleSink


def _result(destination: str = "example.com") -> ProbeResult:
    return ProbeResult(
        origin="probe-1",
        destination=destination,
        hostname=destination,
        address_family="ipv4",
        timestamp=1700000000,
        stats=ProbeStats(loss=0.0, min=1.0, avg=2.0, max=3.0, mdev=0.5),
        succeeded=True,
    )


class RecordingSink(Sink):
    """Sink that remembers what it was sent; fails on demand."""

    name = "recording"

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.sent: list[ProbeResult] = []
        self.fail_on = fail_on or set()
        self.closed = False

    @classmethod
    def from_config(cls, config: PingConfig) -> "RecordingSink":
        return cls()

    def send(self, result: ProbeResult) -> None:
        if result.destination in self.fail_on:
            raise SinkError(f"refused {result.destination}")
        self.sent.append(result)

    def close(self) -> None:
        self.closed = True


class TestDispatch:
    def test_success_counts(self) -> None:
        sink = RecordingSink()
        dispatcher = Dispatcher(queue.Queue(), sink)

        assert dispatcher.dispatch(_result()) is True
        assert dispatcher.dispatched == 1
        assert sink.sent == [_result()]

    def test_failure_does_not_stop_next_send(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = MagicMock(spec=Sink)
        sink.name = "mock"
        sink.send.side_effect = [SinkError("connection refused"), None]
        dispatcher = Dispatcher(queue.Queue(), sink)

        assert dispatcher.dispatch(_result("first.example.com")) is False
        assert dispatcher.dispatch(_result("second.example.com")) is True

        assert sink.send.call_count == 2
        assert sink.send.call_args.args[0].destination == "second.example.com"
        assert dispatcher.failed == 1
        assert dispatcher.dispatched == 1
        assert "connection refused" in caplog.text

    def test_unexpected_exception_is_contained(self) -> None:
        sink = MagicMock(spec=Sink)
        sink.name = "mock"
        sink.send.side_effect = [KeyError("bug"), None]
        dispatcher = Dispatcher(queue.Queue(), sink)

        assert dispatcher.dispatch(_result()) is False
        assert dispatcher.dispatch(_result()) is True

    def test_config_error_degrades_to_console(self) -> None:
        sink = MagicMock(spec=Sink)
        sink.name = "mock"
        sink.send.side_effect = SinkConfigError("bad credentials")
        dispatcher = Dispatcher(queue.Queue(), sink)

        dispatcher.dispatch(_result())

        sink.close.assert_called_once_with()
        assert isinstance(dispatcher.sink, ConsoleSink)

    def test_config_error_uses_given_fallback(self) -> None:
        sink = MagicMock(spec=Sink)
        sink.name = "mock"
        sink.send.side_effect = SinkConfigError("bad credentials")
        buf = io.StringIO()
        fallback = ConsoleSink(fmt="json", file=buf)
        dispatcher = Dispatcher(queue.Queue(), sink, fallback=fallback)

        dispatcher.dispatch(_result("first.example.com"))
        assert dispatcher.dispatch(_result("second.example.com")) is True

        assert dispatcher.sink is fallback
        assert json.loads(buf.getvalue())["destination"] == "second.example.com"


class TestRunLoop:
    def test_drains_queue_before_stopping(self) -> None:
        results: queue.Queue = queue.Queue()
        sink = RecordingSink(fail_on={"b.example.com"})
        for name in ("a.example.com", "b.example.com", "c.example.com"):
            results.put(_result(name))
        dispatcher = Dispatcher(results, sink)

        dispatcher.start()
        dispatcher.stop(timeout=5)

        assert [r.destination for r in sink.sent] == ["a.example.com", "c.example.com"]
        assert dispatcher.dispatched == 2
        assert dispatcher.failed == 1
        assert results.unfinished_tasks == 0


class TestEndToEnd:
    """Scheduler → bounded queue → dispatcher → sink."""

    @staticmethod
    def _execute(destination, count, use_ipv6, profile) -> ExecutionResult:
        return ExecutionResult(
            output=(
                f"--- {destination} ping statistics ---\n"
                f"{count} packets transmitted, {count} received, 0% packet loss\n"
                "rtt min/avg/max/mdev = 1.0/2.0/3.0/0.5 ms\n"
            ),
            succeeded=True,
            returncode=0,
        )

    def test_bounded_queue_delivers_everything(self) -> None:
        destinations = [f"host{i}.example.com" for i in range(8)]
        config = PingConfig(destinations=tuple(destinations), oneshot=True, ipv6=True, queue_size=1)
        results: queue.Queue = queue.Queue(maxsize=config.queue_size)
        sink = RecordingSink()
        dispatcher = Dispatcher(results, sink)
        scheduler = Scheduler(
            destinations, config, IPUTILS, results, origin="o", execute_fn=self._execute
        )

        dispatcher.start()
        scheduler.start()
        assert scheduler.wait(timeout=10) is True
        dispatcher.stop(timeout=5)

        assert len(sink.sent) == 2 * len(destinations)
        assert sorted({r.destination for r in sink.sent}) == sorted(destinations)
