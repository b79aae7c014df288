import asyncio
import time

import pytest

from wait_for import poller as poller_module
from wait_for.errors import DialTransient, WaitCancelled
from wait_for.events import Status
from wait_for.poller import CancelScope, dial, poll
from wait_for.spec import EndpointSpec


async def _collect(spec, scope, started):
    return [event async for event in poll(spec, scope, started)]


def test_poll_reports_ready_for_live_listener(listener):
    spec = EndpointSpec("127.0.0.1", str(listener), 0.1)

    async def _run():
        return await _collect(spec, CancelScope(), time.monotonic())

    events = asyncio.run(_run())
    assert [event.status for event in events] == [Status.START, Status.READY]
    assert all(event.spec is spec for event in events)
    assert events[1].error is None


def test_poll_fails_with_cancellation_reason(closed_port):
    spec = EndpointSpec("127.0.0.1", str(closed_port), 0.05)

    async def _run():
        scope = CancelScope()
        task = asyncio.create_task(_collect(spec, scope, time.monotonic()))
        await asyncio.sleep(0.2)
        scope.cancel("stop now")
        return await asyncio.wait_for(task, timeout=1)

    events = asyncio.run(_run())
    assert [event.status for event in events] == [Status.START, Status.FAILED]
    assert isinstance(events[1].error, WaitCancelled)
    assert events[1].error.reason == "stop now"


def test_poll_keeps_retrying_until_endpoint_accepts(monkeypatch):
    attempts = {"count": 0}

    async def _flaky_dial(spec):
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise DialTransient(spec.target, ConnectionRefusedError("refused"))

    monkeypatch.setattr(poller_module, "dial", _flaky_dial)
    spec = EndpointSpec("example.invalid", "80", 0.01)

    async def _run():
        return await _collect(spec, CancelScope(), time.monotonic())

    events = asyncio.run(_run())
    assert [event.status for event in events] == [Status.START, Status.READY]
    assert attempts["count"] == 3


def test_first_dial_is_immediate(monkeypatch):
    dialed_at: list[float] = []

    async def _dial(spec):
        dialed_at.append(time.monotonic())

    monkeypatch.setattr(poller_module, "dial", _dial)
    spec = EndpointSpec("localhost", "80", 5.0)
    started = time.monotonic()

    events = asyncio.run(_collect(spec, CancelScope(), started))
    assert [event.status for event in events] == [Status.START, Status.READY]
    assert dialed_at[0] - started < 1.0


def test_poll_on_cancelled_scope_never_dials(monkeypatch):
    async def _dial(spec):  # pragma: no cover - must not be reached
        raise AssertionError("dial should not run")

    monkeypatch.setattr(poller_module, "dial", _dial)
    spec = EndpointSpec("localhost", "80", 0.1)

    async def _run():
        scope = CancelScope()
        scope.cancel("already over")
        return await _collect(spec, scope, time.monotonic())

    events = asyncio.run(_run())
    assert [event.status for event in events] == [Status.START, Status.FAILED]


def test_cancel_after_termination_has_no_effect(listener):
    spec = EndpointSpec("127.0.0.1", str(listener), 0.1)

    async def _run():
        scope = CancelScope()
        events = await _collect(spec, scope, time.monotonic())
        assert scope.cancel("late") is True
        assert scope.cancel("later") is False
        return events, scope

    events, scope = asyncio.run(_run())
    assert [event.status for event in events] == [Status.START, Status.READY]
    assert scope.reason == "late"


def test_elapsed_uses_shared_start_and_clock():
    ticks = iter([10.0, 12.5])
    spec = EndpointSpec("localhost", "80", 0.1)

    async def _run():
        scope = CancelScope()
        scope.cancel()
        return [event async for event in poll(spec, scope, 9.0, clock=lambda: next(ticks))]

    events = asyncio.run(_run())
    assert [event.elapsed for event in events] == [1.0, 3.5]


def test_dial_wraps_connection_errors(closed_port):
    spec = EndpointSpec("127.0.0.1", str(closed_port), 0.5)
    with pytest.raises(DialTransient) as excinfo:
        asyncio.run(dial(spec))
    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.target == spec.target


def test_scope_sleep_returns_after_timeout():
    async def _run():
        scope = CancelScope()
        await scope.sleep(0.01)
        return scope.cancelled

    assert asyncio.run(_run()) is False


def test_scope_sleep_interrupted_by_cancel():
    async def _run():
        scope = CancelScope()
        asyncio.get_running_loop().call_later(0.01, scope.cancel, "bye")
        started = time.monotonic()
        with pytest.raises(WaitCancelled):
            await scope.sleep(5)
        return time.monotonic() - started

    assert asyncio.run(_run()) < 1.0


def test_cancel_interrupts_dial_in_flight(monkeypatch):
    async def _hanging_dial(spec):
        await asyncio.sleep(30)

    monkeypatch.setattr(poller_module, "dial", _hanging_dial)
    spec = EndpointSpec("10.255.255.1", "80", 3600)

    async def _run():
        scope = CancelScope()
        asyncio.get_running_loop().call_later(0.05, scope.cancel, "decided")
        started = time.monotonic()
        events = await asyncio.wait_for(_collect(spec, scope, started), timeout=5)
        return events, time.monotonic() - started

    events, took = asyncio.run(_run())
    assert [event.status for event in events] == [Status.START, Status.FAILED]
    assert events[1].error.reason == "decided"
    assert took < 1.0


def test_scope_guard_returns_result():
    async def _value():
        return 42

    async def _run():
        return await CancelScope().guard(_value())

    assert asyncio.run(_run()) == 42


def test_scope_guard_reaps_cancelled_work():
    async def _run():
        scope = CancelScope()
        work = asyncio.ensure_future(asyncio.sleep(30))
        asyncio.get_running_loop().call_later(0.01, scope.cancel, "stop")
        with pytest.raises(WaitCancelled):
            await scope.guard(work)
        return work.cancelled(), asyncio.all_tasks() - {asyncio.current_task()}

    cancelled, leftover = asyncio.run(_run())
    assert cancelled
    assert leftover == set()
