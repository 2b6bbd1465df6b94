from __future__ import annotations

import asyncio


def test_asyncio_scheduler_runs_timer_and_task() -> None:
    from topnote.scheduling import AsyncioScheduler

    events: list[str] = []

    async def job() -> str:
        events.append("task")
        return "done"

    async def scenario() -> str:
        scheduler = AsyncioScheduler()
        scheduler.call_later(0.01, lambda: events.append("timer"))
        cancelled = scheduler.call_later(0.01, lambda: events.append("cancelled"))
        cancelled.cancel()
        result = await scheduler.spawn(job())
        await asyncio.sleep(0.05)
        return result

    assert asyncio.run(scenario()) == "done"
    assert events == ["task", "timer"]


def test_manual_scheduler_fires_in_due_order(scheduler) -> None:
    fired: list[int] = []
    scheduler.call_later(0.3, lambda: fired.append(3))
    scheduler.call_later(0.1, lambda: fired.append(1))
    scheduler.call_later(0.2, lambda: fired.append(2))

    scheduler.advance(0.25)
    assert fired == [1, 2]

    scheduler.advance(0.05)
    assert fired == [1, 2, 3]


def test_clocks_are_monotonic(scheduler) -> None:
    from topnote.scheduling import AsyncioScheduler

    real = AsyncioScheduler()
    first = real.time()
    assert real.time() >= first

    scheduler.advance(1.5)
    assert scheduler.time() == 1.5
