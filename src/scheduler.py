# ABOUTME: Wall-clock aligned poll scheduler that fires one sampling cycle per interval.
# ABOUTME: Cycles run one at a time; a tick that lands while a cycle is still running is skipped.

import asyncio
import enum
import logging
import math
import time

logger = logging.getLogger(__name__)


class SchedulerPhase(enum.Enum):
    IDLE = "idle"
    ALIGNING = "aligning"
    RUNNING = "running"
    STOPPED = "stopped"


def seconds_until_next_boundary(now: float, interval_s: float) -> float:
    """Seconds from ``now`` (epoch seconds) to the next multiple of ``interval_s``.

    Returns 0 when ``now`` already sits exactly on a boundary.
    """
    next_boundary = math.ceil(now / interval_s) * interval_s
    return max(next_boundary - now, 0.0)


class PollScheduler:
    """Runs ``cycle`` on round interval marks until stopped.

    The first cycle fires on the next boundary of the interval (e.g. :00, :10, :20
    for ten minutes), later ones every ``interval_minutes`` after it. Exceptions
    from a cycle are logged and never stop the schedule. ``clock`` and ``sleep``
    are injectable so tests can drive time.
    """

    def __init__(self, cycle, interval_minutes: int, *, clock=time.time, sleep=asyncio.sleep):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self._cycle = cycle
        self.interval_s = interval_minutes * 60
        self._clock = clock
        self._sleep = sleep

        self.phase = SchedulerPhase.IDLE
        self.last_fired: float | None = None
        self.cycles_started = 0
        self.ticks_skipped = 0

        self._stop_requested = False
        self._task: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None

    @property
    def busy(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self) -> asyncio.Task:
        """Schedule ``run()`` on the running event loop."""
        if self._task is not None and not self._task.done():
            raise RuntimeError("Scheduler already started")
        self._task = asyncio.create_task(self.run())
        return self._task

    def request_stop(self) -> None:
        """Stop firing new cycles after the current wait. Safe to call from a signal handler."""
        self._stop_requested = True

    async def stop(self) -> None:
        """Stop the schedule and wait for an in-flight cycle to finish."""
        self.request_stop()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await self._drain()
        self.phase = SchedulerPhase.STOPPED

    async def run(self) -> None:
        self.phase = SchedulerPhase.ALIGNING
        delay = seconds_until_next_boundary(self._clock(), self.interval_s)
        if delay > 0:
            logger.info("Aligning first poll in %ds", round(delay))
            await self._sleep(delay)

        self.phase = SchedulerPhase.RUNNING
        due = self._clock()
        while not self._stop_requested:
            self._fire()
            due += self.interval_s
            now = self._clock()
            if due <= now:
                # fell behind (suspend or clock jump): rejoin the next round mark
                logger.warning("Poll schedule fell behind by %ds, realigning", round(now - due))
                due = now + seconds_until_next_boundary(now, self.interval_s)
            await self._sleep(max(due - now, 0.0))

        await self._drain()
        self.phase = SchedulerPhase.STOPPED

    def _fire(self) -> None:
        if self.busy:
            self.ticks_skipped += 1
            logger.warning("Previous poll cycle still running, skipping this tick")
            return
        self.last_fired = self._clock()
        self.cycles_started += 1
        self._inflight = asyncio.create_task(self._run_cycle())

    async def _run_cycle(self) -> None:
        try:
            await self._cycle()
        except Exception:
            logger.exception("Poll cycle failed")

    async def _drain(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            await asyncio.shield(self._inflight)
