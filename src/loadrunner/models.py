from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict


# Status values a worker may report: HTTP-like numbers or tokens such as "ok"
StatusValue = int | float | str


class ActionRecord(BaseModel):
    """One sub-step reported inside a worker's result payload."""

    model_config = ConfigDict(extra="allow")

    action: str
    duration: Optional[float] = None
    status: Optional[StatusValue] = None


class WorkerResult(BaseModel):
    """JSON object a worker prints on stdout once it is done."""

    model_config = ConfigDict(extra="allow")

    status: Optional[StatusValue] = None
    actions: list[ActionRecord] = []
    # usually text, but workers sometimes log a JSON structure
    log: Any = None


@dataclass
class ParsedPayload:
    result: WorkerResult | None
    raw: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class RunState(str, Enum):
    PENDING = "pending"
    SPAWNED = "spawned"
    STREAMING = "streaming"
    EXITED = "exited"
    PARSED = "parsed"


@dataclass
class RunTask:
    run_index: int
    flow_number: int
    rand: float
    state: RunState = RunState.PENDING
    started_at: float | None = None
    ended_at: float | None = None
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    payload: ParsedPayload | None = None
    spawn_error: str | None = None
    steps_started: int = 0
    steps_finished: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def ok(self) -> bool:
        """Exited 0 and produced a parseable result."""
        return self.success and self.result is not None

    @property
    def duration_ms(self) -> float:
        if self.started_at is None or self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at) * 1000.0

    @property
    def result(self) -> WorkerResult | None:
        return self.payload.result if self.payload else None

    def raw_output(self) -> str:
        raw = self.payload.raw if self.payload else self.stdout
        if self.stderr:
            raw = f"{raw}\n--- stderr ---\n{self.stderr}" if raw else self.stderr
        if self.spawn_error:
            raw = f"{raw}\n{self.spawn_error}" if raw else self.spawn_error
        return raw


@dataclass(frozen=True)
class Summary:
    parameters: dict[str, Any]
    success_runs: dict[str, Any]
    error_runs: dict[str, Any]
    actions: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total_runs(self) -> int:
        return self.success_runs["duration"]["count"] + self.error_runs["duration"]["count"]

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.parameters,
            "successRuns": self.success_runs,
            "errorRuns": self.error_runs,
            "actions": self.actions,
        }


# Marker callback: (run_index, marker)
MarkerCallback = Callable[[int, Any], None]

# End-of-pool callback: elapsed seconds
EndCallback = Callable[[float], None]
