import logging
import random

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .config import LoadConfig
from .flows import FlowSelector
from .models import EndCallback, RunTask, Summary
from .persistence import RunReporter
from .pool import WorkerPool
from .protocol import Marker
from .ramp import ConcurrencyProfile, RampScheduler
from .rendering import render_duration_histogram, render_summary
from .runner import ProcessRunner, RunHandle
from .setup_script import run_before_script
from .stats import StatsAggregator
from .utils import epoch_ms

logger = logging.getLogger(__name__)

_SEED_RANGE = 2**31 - 1


class LoadRunner:
    def __init__(
        self,
        config: LoadConfig,
        reporter: RunReporter | None = None,
        rng: random.Random | None = None,
        use_progress_bar: bool = True,
        histogram_bins: int = 20,
        on_end: EndCallback | None = None,
    ) -> None:
        self.config = config
        self.reporter = reporter
        self.use_progress_bar = use_progress_bar
        self.histogram_bins = histogram_bins
        self.on_end = on_end

        # one generator for every draw; unseeded runs still record the seed they used
        self.seed = config.seed or random.SystemRandom().randint(1, _SEED_RANGE)
        self.rng = rng or random.Random(self.seed)

        # weighted flow numbers are drawn before any per-run LR_RAND draw
        self.flows = FlowSelector.from_config(config, self.rng)
        self.scheduler = RampScheduler(
            ConcurrencyProfile.ramp(config.ramp_up_s, config.concurrency)
        )
        self.runner = ProcessRunner(
            config.command(),
            total_runs=config.total_runs,
            rng=self.rng,
            on_marker=self._on_marker,
        )
        self.stats = StatsAggregator()
        self.pool = WorkerPool(
            config.total_runs,
            self.scheduler,
            self._launch,
            flows=self.flows,
            tick_s=config.tick_s,
            on_end=self._on_pool_end,
        )

        self.steps_in_progress = 0
        self.started_ms: int | None = None
        self.ended_ms: int | None = None
        self._progress: Progress | None = None
        self._progress_task: TaskID | None = None

        logger.info(
            f"Initialized load runner: script={config.script}, runs={config.total_runs}, "
            f"concurrency={config.concurrency}, ramp_up={config.ramp_up_s}s, "
            f"seed={self.seed}, flows={self.flows.mode}"
        )

    # ────────────────────────────────
    # Per-run Lifecycle
    # ────────────────────────────────

    def _launch(self, run_index: int, flow_number: int):
        handle = self.runner.spawn(run_index, flow_number)
        logger.info(f"{run_index}:START")
        logger.debug(f"current target concurrency: {self.pool.current_target}")
        return self._execute(handle)

    async def _execute(self, handle: RunHandle) -> RunTask:
        try:
            task = await handle.run()
        except Exception as e:
            logger.exception(f"{handle.task.run_index}: run failed")
            task = handle.fail(e)
        logger.info(f"{task.run_index}:END - exit code = {task.exit_code}")
        self._fold(task)
        return task

    def _fold(self, task: RunTask) -> None:
        self.stats.record_task(task)
        # markers from a run that ended without closing its steps no longer count
        self.steps_in_progress -= task.steps_started - task.steps_finished

        result = task.result
        if not task.ok:
            logger.debug(f"{task.run_index}: Error response: {task.raw_output()}")
        if self.reporter is not None:
            self.reporter.record_run(
                task.run_index,
                task.ok,
                task.duration_ms,
                result if result is not None else task.raw_output(),
            )
        self._update_progress(advance=1)

    def _on_marker(self, run_index: int, marker: Marker) -> None:
        if marker is Marker.STEP_STARTED:
            self.steps_in_progress += 1
        else:
            self.steps_in_progress -= 1
        logger.debug(f"{run_index}: {marker.value} steps in progress={self.steps_in_progress}")
        self._update_progress()

    def _on_pool_end(self, elapsed_s: float) -> None:
        logger.info(f"All runs finished in {elapsed_s:.2f}s")
        if self.on_end:
            self.on_end(elapsed_s)

    # ────────────────────────────────
    # Progress Bar
    # ────────────────────────────────

    def _describe(self) -> str:
        return (
            f"[cyan]Running[/] ok={self.stats.success_count} "
            f"err={self.stats.error_count} active={self.pool.active} "
            f"steps={self.steps_in_progress}"
        )

    def _update_progress(self, advance: int = 0) -> None:
        if self._progress is None or self._progress_task is None:
            return
        self._progress.update(self._progress_task, advance=advance, description=self._describe())

    # ────────────────────────────────
    # Main Runner
    # ────────────────────────────────

    def parameters(self) -> dict:
        params = self.config.parameters()
        params["seed"] = self.seed
        params["startTime"] = self.started_ms
        params["endTime"] = self.ended_ms
        params["duration"] = (
            self.ended_ms - self.started_ms
            if self.started_ms is not None and self.ended_ms is not None
            else None
        )
        return params

    def summary(self) -> Summary:
        return self.stats.finalize(self.parameters())

    async def run(self) -> Summary:
        await run_before_script(self.config)

        self.started_ms = epoch_ms()
        if self.use_progress_bar:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
            )
            self._progress.start()
            self._progress_task = self._progress.add_task(
                self._describe(), total=self.config.total_runs
            )
        try:
            await self.pool.run()
        finally:
            if self._progress is not None:
                self._progress.stop()
        self.ended_ms = epoch_ms()

        summary = self.summary()
        if self.reporter is not None:
            self.reporter.record_summary(summary)

        durations = self.stats.success_runs.duration.samples + self.stats.error_runs.duration.samples
        print("\n" + "=" * 60)
        print(render_duration_histogram(durations, self.histogram_bins))
        print()
        print(render_summary(summary.to_dict()))
        print("=" * 60)

        logger.info(
            f"Run completed: {self.stats.success_count} succeeded, "
            f"{self.stats.error_count} failed"
        )
        return summary
