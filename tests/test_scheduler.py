# ABOUTME: Tests for the aligned poll scheduler using an injected clock and sleep.
# ABOUTME: Covers boundary alignment, fixed-period ticks, failure isolation, overlap skipping, and start/stop.

import asyncio

import pytest

from src.scheduler import PollScheduler, SchedulerPhase, seconds_until_next_boundary

INTERVAL_S = 600.0
BOUNDARY = INTERVAL_S * 1000


class FakeTime:
    """Clock plus sleep that advances instantly and stops the scheduler after a number of sleeps."""

    def __init__(self, start: float, stop_after: int):
        self.now = start
        self.stop_after = stop_after
        self.sleeps: list[float] = []
        self.scheduler: PollScheduler | None = None
        self.on_sleep = None

    def clock(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        if self.on_sleep is not None:
            self.on_sleep(len(self.sleeps))
        if len(self.sleeps) >= self.stop_after:
            self.scheduler.request_stop()
        # let cycles started on this tick run before time moves on
        for _ in range(3):
            await asyncio.sleep(0)
        self.now += delay


def _scheduler(cycle, fake: FakeTime) -> PollScheduler:
    scheduler = PollScheduler(cycle, 10, clock=fake.clock, sleep=fake.sleep)
    fake.scheduler = scheduler
    return scheduler


class TestSecondsUntilNextBoundary:
    def test_mid_interval(self):
        assert seconds_until_next_boundary(BOUNDARY + 125, INTERVAL_S) == 475

    def test_exactly_on_boundary_is_zero(self):
        assert seconds_until_next_boundary(BOUNDARY, INTERVAL_S) == 0

    def test_just_after_boundary_waits_almost_full_interval(self):
        assert seconds_until_next_boundary(BOUNDARY + 1, INTERVAL_S) == INTERVAL_S - 1


class TestPollScheduler:
    @pytest.mark.asyncio
    async def test_aligns_first_cycle_then_ticks_every_interval(self):
        """The first cycle fires on the next round mark and later ones every interval.

        Implementation: Starts 125s past a 10-minute mark; records the clock at each cycle.
        Passing implies: Samples land on :00/:10/:20 marks regardless of start time.
        """
        fake = FakeTime(BOUNDARY + 125, stop_after=4)
        fired: list[float] = []

        async def cycle():
            fired.append(fake.clock())

        scheduler = _scheduler(cycle, fake)
        await scheduler.run()

        assert fake.sleeps == [475, INTERVAL_S, INTERVAL_S, INTERVAL_S]
        assert fired == [BOUNDARY + INTERVAL_S, BOUNDARY + 2 * INTERVAL_S, BOUNDARY + 3 * INTERVAL_S]
        assert all(t % INTERVAL_S == 0 for t in fired)
        assert scheduler.phase is SchedulerPhase.STOPPED
        assert scheduler.last_fired == fired[-1]

    @pytest.mark.asyncio
    async def test_on_boundary_fires_immediately(self):
        """Starting exactly on a boundary runs the first cycle without waiting.

        Implementation: Starts at a multiple of the interval.
        Passing implies: A zero alignment delay skips the alignment sleep.
        """
        fake = FakeTime(BOUNDARY, stop_after=1)
        fired: list[float] = []

        async def cycle():
            fired.append(fake.clock())

        await _scheduler(cycle, fake).run()

        assert fired == [BOUNDARY]
        assert fake.sleeps == [INTERVAL_S]

    @pytest.mark.asyncio
    async def test_cycle_failure_does_not_stop_schedule(self, caplog):
        """An exception from one cycle is logged and the next tick still fires.

        Implementation: Cycle raises on every call; runs three ticks.
        Passing implies: Cycle failures are isolated from scheduling.
        """
        fake = FakeTime(BOUNDARY, stop_after=3)
        calls = 0

        async def cycle():
            nonlocal calls
            calls += 1
            raise RuntimeError("disk full")

        scheduler = _scheduler(cycle, fake)
        with caplog.at_level("ERROR", logger="src.scheduler"):
            await scheduler.run()

        assert calls == 3
        assert scheduler.cycles_started == 3
        assert sum("Poll cycle failed" in r.getMessage() for r in caplog.records) == 3

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self):
        """A tick that arrives while the previous cycle is still running is skipped.

        Implementation: The first cycle blocks until the third sleep; counts cycles and skips.
        Passing implies: Cycles never overlap on the aggregate file.
        """
        fake = FakeTime(BOUNDARY, stop_after=5)
        release = asyncio.Event()
        fake.on_sleep = lambda n: release.set() if n == 3 else None
        running = 0
        max_running = 0

        async def cycle():
            nonlocal running, max_running
            running += 1
            max_running = max(max_running, running)
            await release.wait()
            running -= 1

        scheduler = _scheduler(cycle, fake)
        await scheduler.run()

        # tick 1 starts a cycle, ticks 2-3 are skipped, it finishes on sleep 3, ticks 4-5 run
        assert max_running == 1
        assert scheduler.ticks_skipped == 2
        assert scheduler.cycles_started == 3

    @pytest.mark.asyncio
    async def test_stop_during_alignment_runs_nothing(self):
        fake = FakeTime(BOUNDARY + 30, stop_after=1)
        calls = 0

        async def cycle():
            nonlocal calls
            calls += 1

        await _scheduler(cycle, fake).run()
        assert calls == 0

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """start() runs in the background and stop() cancels the wait and finishes the cycle.

        Implementation: Real asyncio.sleep with a fixed clock on a boundary.
        Passing implies: The scheduler can be controlled without waiting a full interval.
        """
        finished = asyncio.Event()

        async def cycle():
            await asyncio.sleep(0.01)
            finished.set()

        scheduler = PollScheduler(cycle, 10, clock=lambda: BOUNDARY)
        task = scheduler.start()
        for _ in range(3):
            await asyncio.sleep(0)

        assert scheduler.phase is SchedulerPhase.RUNNING
        assert scheduler.cycles_started == 1
        with pytest.raises(RuntimeError):
            scheduler.start()

        await scheduler.stop()

        assert task.done()
        assert finished.is_set()
        assert scheduler.phase is SchedulerPhase.STOPPED

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            PollScheduler(lambda: None, 0)


class TestScheduleDrift:
    @pytest.mark.asyncio
    async def test_falling_behind_realigns_to_next_mark(self):
        """A clock jump past the next tick realigns instead of firing a burst of catch-up cycles.

        Implementation: The first interval sleep overshoots by 25 minutes.
        Passing implies: After one overdue cycle, samples return to round marks.
        """
        fake = FakeTime(BOUNDARY, stop_after=3)
        fired: list[float] = []

        async def cycle():
            fired.append(fake.clock())

        original_sleep = fake.sleep

        async def overshooting_sleep(delay):
            await original_sleep(delay)
            if len(fake.sleeps) == 1:
                fake.now += 1500

        scheduler = PollScheduler(cycle, 10, clock=fake.clock, sleep=overshooting_sleep)
        fake.scheduler = scheduler
        await scheduler.run()

        # after the jump the clock sits at +2100s; next round mark is +2400s
        assert fake.sleeps == [INTERVAL_S, 300, INTERVAL_S]
        assert fired == [BOUNDARY, BOUNDARY + 2100, BOUNDARY + 2400]
