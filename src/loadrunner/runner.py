import asyncio
import logging
import os
import random
from collections.abc import Sequence

from .models import MarkerCallback, ParsedPayload, RunState, RunTask
from .protocol import Marker, StreamProtocolParser
from .utils import now

logger = logging.getLogger(__name__)

RUN_NUMBER_PLACEHOLDER = "{runNum}"

ENV_RUN_NUMBER = "LR_RUN_NUMBER"
ENV_RAND = "LR_RAND"
ENV_TOTAL_RUNS = "LR_TOTAL_RUNS"
ENV_FLOW_NUMBER = "LR_FLOW_NUMBER"


class ProcessRunner:
    """Spawns one worker subprocess per run."""

    def __init__(
        self,
        command: Sequence[str],
        total_runs: int,
        rng: random.Random,
        cwd: str | None = None,
        chunk_size: int = 4096,
        on_marker: MarkerCallback | None = None,
    ) -> None:
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.total_runs = total_runs
        self.rng = rng
        self.cwd = cwd
        self.chunk_size = chunk_size
        self.on_marker = on_marker

    def spawn(self, run_index: int, flow_number: int) -> "RunHandle":
        # the draw happens here, synchronously, so draws follow launch order
        task = RunTask(run_index=run_index, flow_number=flow_number, rand=self.rng.random())
        argv = [str(run_index) if a == RUN_NUMBER_PLACEHOLDER else a for a in self.command]
        env = {
            **os.environ,
            ENV_RUN_NUMBER: str(run_index),
            ENV_RAND: repr(task.rand),
            ENV_TOTAL_RUNS: str(self.total_runs),
            ENV_FLOW_NUMBER: str(flow_number),
        }
        logger.debug(f"{run_index}: spawning with args {argv} flow number: {flow_number}")
        return RunHandle(task, argv, env, self.cwd, self.chunk_size, self.on_marker)


class RunHandle:
    """Drives one run through PENDING -> SPAWNED -> STREAMING -> EXITED -> PARSED.

    stdout and stderr are read by two pump coroutines that post
    ``(stream, chunk)`` messages on a queue; ``None`` as chunk means EOF.
    """

    def __init__(
        self,
        task: RunTask,
        argv: list[str],
        env: dict[str, str],
        cwd: str | None,
        chunk_size: int,
        on_marker: MarkerCallback | None,
    ) -> None:
        self.task = task
        self.argv = argv
        self.env = env
        self.cwd = cwd
        self.chunk_size = chunk_size
        self.on_marker = on_marker
        self.parser = StreamProtocolParser()
        self._stderr = bytearray()

    @property
    def state(self) -> RunState:
        return self.task.state

    async def run(self) -> RunTask:
        if self.task.state is not RunState.PENDING:
            raise RuntimeError(f"run {self.task.run_index} already started")
        task = self.task
        task.started_at = now()
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.argv,
                env=self.env,
                cwd=self.cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            # ValueError: arguments Popen refuses, such as an embedded null byte
            logger.error(f"{task.run_index}: failed to spawn {self.argv}: {e}")
            return self.fail(e, prefix="failed to spawn worker")

        task.state = RunState.SPAWNED
        queue: asyncio.Queue[tuple[str, bytes | None]] = asyncio.Queue()
        pumps = [
            asyncio.create_task(self._pump(proc.stdout, "stdout", queue)),
            asyncio.create_task(self._pump(proc.stderr, "stderr", queue)),
        ]

        task.state = RunState.STREAMING
        open_streams = 2
        try:
            while open_streams:
                name, chunk = await queue.get()
                if chunk is None:
                    open_streams -= 1
                elif name == "stdout":
                    self._on_stdout(chunk)
                else:
                    self._on_stderr(chunk)
        finally:
            await asyncio.gather(*pumps, return_exceptions=True)

        task.exit_code = await proc.wait()
        task.ended_at = now()
        task.state = RunState.EXITED

        task.stderr = self._stderr.decode("utf-8", errors="replace")
        task.payload = self.parser.close()
        task.stdout = task.payload.raw
        task.state = RunState.PARSED
        if task.payload.error:
            logger.info(f"{task.run_index}: could not parse result: {task.payload.error}")
        return task

    def fail(self, exc: BaseException, prefix: str = "run failed") -> RunTask:
        """Close the run as an error run without an exit code."""
        task = self.task
        if task.started_at is None:
            task.started_at = now()
        task.ended_at = now()
        task.exit_code = None
        task.spawn_error = f"{prefix}: {exc}"
        task.stderr = self._stderr.decode("utf-8", errors="replace")
        task.state = RunState.EXITED
        task.payload = ParsedPayload(result=None, raw=self.parser.payload_text, error=task.spawn_error)
        task.state = RunState.PARSED
        return task

    async def _pump(
        self,
        stream: asyncio.StreamReader,
        name: str,
        queue: "asyncio.Queue[tuple[str, bytes | None]]",
    ) -> None:
        try:
            while True:
                chunk = await stream.read(self.chunk_size)
                if not chunk:
                    break
                await queue.put((name, chunk))
        finally:
            await queue.put((name, None))

    def _on_stdout(self, chunk: bytes) -> None:
        logger.debug(f"{self.task.run_index}: received data length={len(chunk)}")
        for marker in self.parser.feed(chunk):
            if marker is Marker.STEP_STARTED:
                self.task.steps_started += 1
            else:
                self.task.steps_finished += 1
            if self.on_marker:
                self.on_marker(self.task.run_index, marker)

    def _on_stderr(self, chunk: bytes) -> None:
        self._stderr.extend(chunk)
        logger.info(
            f"{self.task.run_index}: received error data:"
            f"{chunk.decode('utf-8', errors='replace').rstrip()}"
        )
