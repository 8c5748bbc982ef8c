from __future__ import annotations

import asyncio

import pytest

from timerbot.models import Timer
from timerbot.services import CompleteOutcome, ExpirationScheduler

from .conftest import timer_payload


def make_timer(timer_id: int, **kwargs) -> Timer:
    return Timer.from_api(timer_payload(timer_id, **kwargs))


class FakeTimerAPI:
    def __init__(self, timers: list[Timer] | None = None) -> None:
        self.timers = list(timers or [])
        self.completed: set[int] = set()
        self.calls: list[tuple[str, int | None]] = []
        self.list_error: Exception | None = None
        self.unavailable = False
        self.complete_outcomes: dict[int, list[CompleteOutcome]] = {}

    async def list_expired(self) -> list[Timer] | None:
        self.calls.append(("list", None))
        if self.list_error is not None:
            raise self.list_error
        if self.unavailable:
            return None
        return [t for t in self.timers if t.id not in self.completed]

    async def mark_complete(self, timer_id: int) -> CompleteOutcome:
        self.calls.append(("complete", timer_id))
        scripted = self.complete_outcomes.get(timer_id)
        if scripted:
            outcome = scripted.pop(0)
        elif timer_id in self.completed:
            outcome = CompleteOutcome.ALREADY_COMPLETED
        else:
            outcome = CompleteOutcome.COMPLETED
        if outcome is CompleteOutcome.COMPLETED:
            self.completed.add(timer_id)
        return outcome


class FakeNotifier:
    def __init__(self, api: FakeTimerAPI, *, fail: set[int] | None = None, raise_on: set[int] | None = None):
        self.api = api
        self.fail = fail or set()
        self.raise_on = raise_on or set()
        self.sent: list[int] = []

    async def send(self, timer: Timer) -> bool:
        self.api.calls.append(("notify", timer.id))
        if timer.id in self.raise_on:
            raise RuntimeError("gateway exploded")
        if timer.id in self.fail:
            return False
        self.sent.append(timer.id)
        return True


def make_scheduler(api: FakeTimerAPI, notifier: FakeNotifier, *, ready: bool = True, interval: float = 30):
    return ExpirationScheduler(api, notifier, is_ready=lambda: ready, interval_seconds=interval)


@pytest.mark.asyncio
async def test_tick_notifies_then_completes_in_api_order() -> None:
    api = FakeTimerAPI([make_timer(3), make_timer(1), make_timer(2)])
    notifier = FakeNotifier(api)

    result = await make_scheduler(api, notifier).run_tick()

    assert result.ok
    assert (result.processed, result.delivered, result.completed) == (3, 3, 3)
    assert api.calls == [
        ("list", None),
        ("notify", 3),
        ("complete", 3),
        ("notify", 1),
        ("complete", 1),
        ("notify", 2),
        ("complete", 2),
    ]


@pytest.mark.asyncio
async def test_failed_delivery_still_completes_every_timer() -> None:
    api = FakeTimerAPI([make_timer(1), make_timer(2), make_timer(3)])
    notifier = FakeNotifier(api, fail={2})

    result = await make_scheduler(api, notifier).run_tick()

    assert notifier.sent == [1, 3]
    assert api.completed == {1, 2, 3}
    assert result.completed == 3
    assert [(f.timer_id, f.stage) for f in result.failures] == [(2, "notify")]
    assert not result.ok


@pytest.mark.asyncio
async def test_notifier_exception_is_isolated_to_one_timer() -> None:
    api = FakeTimerAPI([make_timer(1), make_timer(2)])
    notifier = FakeNotifier(api, raise_on={1})

    result = await make_scheduler(api, notifier).run_tick()

    assert notifier.sent == [2]
    assert api.completed == {1, 2}
    assert result.failures[0].timer_id == 1
    assert "gateway exploded" in result.failures[0].reason


@pytest.mark.asyncio
async def test_tick_is_skipped_while_gateway_not_ready() -> None:
    api = FakeTimerAPI([make_timer(1)])

    result = await make_scheduler(api, FakeNotifier(api), ready=False).run_tick()

    assert result.skipped
    assert api.calls == []


@pytest.mark.asyncio
async def test_list_error_is_contained_in_tick_result() -> None:
    api = FakeTimerAPI()
    api.list_error = RuntimeError("store down")

    result = await make_scheduler(api, FakeNotifier(api)).run_tick()

    assert result.error == "RuntimeError: store down"
    assert not result.ok


@pytest.mark.asyncio
async def test_unavailable_store_is_not_an_empty_tick() -> None:
    api = FakeTimerAPI([make_timer(1)])
    api.unavailable = True
    notifier = FakeNotifier(api)

    result = await make_scheduler(api, notifier).run_tick()

    assert result.error == "list_expired unavailable"
    assert not result.ok
    assert result.processed == 0
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_empty_tick_is_ok() -> None:
    api = FakeTimerAPI()

    result = await make_scheduler(api, FakeNotifier(api)).run_tick()

    assert result.ok and result.processed == 0


@pytest.mark.asyncio
async def test_already_completed_is_not_a_failure() -> None:
    api = FakeTimerAPI([make_timer(1)])
    api.complete_outcomes[1] = [CompleteOutcome.ALREADY_COMPLETED]

    result = await make_scheduler(api, FakeNotifier(api)).run_tick()

    assert result.ok
    assert result.completed == 1


@pytest.mark.asyncio
async def test_completion_retry_does_not_notify_twice() -> None:
    api = FakeTimerAPI([make_timer(1)])
    api.complete_outcomes[1] = [CompleteOutcome.UNAVAILABLE]
    notifier = FakeNotifier(api)
    scheduler = make_scheduler(api, notifier)

    first = await scheduler.run_tick()
    second = await scheduler.run_tick()

    assert [(f.timer_id, f.stage, f.reason) for f in first.failures] == [(1, "complete", "unavailable")]
    assert second.ok
    assert notifier.sent == [1]
    assert api.completed == {1}
    assert api.calls.count(("complete", 1)) == 2


@pytest.mark.asyncio
async def test_run_loop_keeps_polling_after_errors_and_stops_cooperatively() -> None:
    api = FakeTimerAPI()
    api.list_error = RuntimeError("transient")
    scheduler = make_scheduler(api, FakeNotifier(api), interval=0.01)

    scheduler.start()
    assert scheduler.running
    await asyncio.sleep(0.1)
    await scheduler.stop()

    assert not scheduler.running
    assert api.calls.count(("list", None)) >= 2
    assert scheduler.last_result is not None
    assert scheduler.last_result.error == "RuntimeError: transient"
    assert scheduler.last_tick_at is not None


@pytest.mark.asyncio
async def test_stop_waits_for_in_flight_delivery() -> None:
    api = FakeTimerAPI([make_timer(1)])
    started = asyncio.Event()
    release = asyncio.Event()

    class SlowNotifier(FakeNotifier):
        async def send(self, timer: Timer) -> bool:
            started.set()
            await release.wait()
            return await super().send(timer)

    notifier = SlowNotifier(api)
    scheduler = make_scheduler(api, notifier, interval=60)
    scheduler.start()
    await started.wait()

    stopping = asyncio.create_task(scheduler.stop())
    await asyncio.sleep(0.01)
    assert not stopping.done()

    release.set()
    await stopping

    assert notifier.sent == [1]
    assert api.completed == {1}


@pytest.mark.asyncio
async def test_stop_interrupts_the_wait() -> None:
    api = FakeTimerAPI()
    scheduler = make_scheduler(api, FakeNotifier(api), interval=3600)

    scheduler.start()
    await asyncio.sleep(0.01)
    await asyncio.wait_for(scheduler.stop(), timeout=1)

    assert api.calls == [("list", None)]
