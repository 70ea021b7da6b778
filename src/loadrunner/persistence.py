import logging
import json
import os
from typing import Any

from .config import LoadConfig
from .models import Summary, WorkerResult
from .utils import epoch_ms, safe_name, zero_pad

logger = logging.getLogger(__name__)


def output_dir_name(config: LoadConfig, started_ms: int | None = None) -> str:
    """run_<script>_<epoch ms>_<runs>_<concurrency>_<ramp-up>_<profile>"""
    ts = started_ms if started_ms is not None else epoch_ms()
    ramp = f"{config.ramp_up_s:g}"
    return (
        f"run_{safe_name(config.script)}_{ts}_{config.total_runs}_"
        f"{config.concurrency}_{ramp}_{config.profile}"
    )


class RunReporter:
    """Writes per-run results and the final summary into one output directory.

    Write failures are logged and never raised: losing a report file must not
    stop the load test.
    """

    def __init__(self, output_dir: str, total_runs: int):
        self.output_dir = output_dir
        self.total_runs = total_runs
        self.write_errors = 0

    @classmethod
    def create(cls, config: LoadConfig) -> "RunReporter":
        os.makedirs(config.runs_dir, exist_ok=True)
        output_dir = os.path.join(config.runs_dir, output_dir_name(config))
        os.makedirs(output_dir)
        logger.info(f"Output will be saved to {output_dir}")
        return cls(output_dir, config.total_runs)

    def path(self, name: str) -> str:
        return os.path.join(self.output_dir, name)

    def record_run(
        self,
        run_index: int,
        success: bool,
        duration_ms: float,
        result: WorkerResult | str | None,
    ) -> None:
        if isinstance(result, WorkerResult):
            content = json.dumps(result.model_dump(exclude_unset=True), indent=2)
        elif result:
            content = f"RAW DATA\n{result}"
        else:
            content = "no content returned from test script"

        base = f"{zero_pad(run_index, self.total_runs)}-{'ok' if success else 'error'}-{round(duration_ms)}"
        self._write(f"{base}.json", content)

        if isinstance(result, WorkerResult) and result.log is not None:
            log = result.log if isinstance(result.log, str) else json.dumps(result.log, indent=2)
            self._write(f"{base}.txt", log)

        if not success:
            self._write("errors.txt", f"{run_index}:{content}\n", mode="a")

    def record_summary(self, summary: Summary) -> None:
        self._write("summary.json", json.dumps(summary.to_dict(), indent=2, default=str))
        logger.info(f"Summary saved to {self.path('summary.json')}")

    def _write(self, name: str, content: str, mode: str = "w") -> None:
        file_path = self.path(name)
        try:
            with open(file_path, mode, encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            self.write_errors += 1
            logger.error(f"Error writing file:{file_path}\n{e}")

    def to_dict(self) -> dict[str, Any]:
        return {"output_dir": self.output_dir, "write_errors": self.write_errors}
