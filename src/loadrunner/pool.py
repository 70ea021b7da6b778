import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from .config import ConfigurationError
from .flows import FlowSelector
from .models import EndCallback
from .ramp import RampScheduler
from .utils import now

logger = logging.getLogger(__name__)

LaunchFunction = Callable[[int, int], Awaitable[object]]


class PoolState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


class WorkerPool:
    """Starts ``total_runs`` runs, never more at once than the ramp allows.

    Every tick the ramp scheduler gives the number of slots for the elapsed
    time; free slots are filled with new runs until ``total_runs`` have been
    started. The pool finishes once every started run has completed.
    """

    def __init__(
        self,
        total_runs: int,
        scheduler: RampScheduler,
        launch: LaunchFunction,
        flows: FlowSelector | None = None,
        tick_s: float = 0.1,
        on_end: EndCallback | None = None,
    ) -> None:
        if total_runs < 1:
            raise ValueError(f"total_runs must be >= 1, got {total_runs}")
        if tick_s <= 0:
            raise ValueError(f"tick_s must be > 0, got {tick_s}")
        if scheduler.slots(scheduler.profile.points[-1][0]) < 1:
            raise ConfigurationError("concurrency profile must end with a target of at least 1")
        self.total_runs = total_runs
        self.scheduler = scheduler
        self.launch = launch
        self.flows = flows or FlowSelector()
        self.tick_s = tick_s
        self.on_end = on_end

        self.state = PoolState.IDLE
        self.active = 0
        self.started = 0
        self.finished = 0
        self.failed_launches = 0
        self.peak_active = 0
        self.elapsed_s: float | None = None
        self._t0: float | None = None
        self._tasks: set[asyncio.Task] = set()
        self._done = asyncio.Event()

    @property
    def current_target(self) -> int:
        if self._t0 is None:
            return 0
        return self.scheduler.slots(now() - self._t0)

    async def run(self) -> float:
        if self.state is not PoolState.IDLE:
            raise RuntimeError(f"pool already {self.state.value}")
        self.state = PoolState.RUNNING
        self._t0 = now()
        logger.info(f"Starting {self.total_runs} runs (flow mode: {self.flows.mode})")

        while self.started < self.total_runs:
            self._fill_slots()
            if self.started >= self.total_runs:
                break
            await asyncio.sleep(self.tick_s)

        logger.debug(f"All {self.total_runs} runs launched, draining {self.active} active")
        await self._done.wait()

        self.elapsed_s = now() - self._t0
        self.state = PoolState.FINISHED
        logger.info(
            f"Pool finished: {self.finished} runs in {self.elapsed_s:.2f}s "
            f"(peak concurrency {self.peak_active})"
        )
        if self.on_end:
            self.on_end(self.elapsed_s)
        return self.elapsed_s

    def _fill_slots(self) -> None:
        target = self.scheduler.slots(now() - self._t0)
        while self.active < target and self.started < self.total_runs:
            run_index = self.started + 1
            flow_number = self.flows.flow_for(run_index)
            self.started += 1
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
            try:
                awaitable = self.launch(run_index, flow_number)
            except Exception:
                logger.exception(f"{run_index}: launch failed")
                self.failed_launches += 1
                self._run_finished()
                continue
            t = asyncio.ensure_future(awaitable)
            self._tasks.add(t)
            t.add_done_callback(self._on_task_done)

    def _on_task_done(self, t: asyncio.Task) -> None:
        self._tasks.discard(t)
        if not t.cancelled() and t.exception() is not None:
            logger.error(f"Run raised an exception: {t.exception()!r}")
            self.failed_launches += 1
        self._run_finished()

    def _run_finished(self) -> None:
        self.active -= 1
        self.finished += 1
        if self.finished >= self.total_runs:
            self._done.set()
