import math
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .models import ActionRecord, RunTask, StatusValue, Summary

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = ("complete", "ok")


def is_success_status(status: Any) -> bool:
    """An action succeeded iff it reported numeric 200, "complete" or "ok"."""
    if isinstance(status, bool):
        return False
    if isinstance(status, (int, float)):
        return status == 200
    return status in SUCCESS_STATUSES


class Histogram:
    """Append-only sample set with summary statistics."""

    def __init__(self) -> None:
        self._samples: list[float] = []

    def put(self, value: float) -> None:
        self._samples.append(float(value))

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> list[float]:
        return list(self._samples)

    def percentile(self, p: float) -> float | None:
        n = len(self._samples)
        if n == 0:
            return None
        sl = sorted(self._samples)
        return sl[max(0, min(n - 1, int(p * (n - 1))))]

    def summary(self) -> dict[str, Any]:
        n = len(self._samples)
        if n == 0:
            return {
                "count": 0,
                "min": None,
                "max": None,
                "mean": None,
                "std": None,
                "p50": None,
                "p90": None,
                "p95": None,
                "p99": None,
            }

        mean = sum(self._samples) / n
        sum_sq = sum(x * x for x in self._samples)
        std = math.sqrt(max(0.0, (sum_sq / n) - (mean * mean)))

        return {
            "count": n,
            "min": min(self._samples),
            "max": max(self._samples),
            "mean": mean,
            "std": std,
            "p50": self.percentile(0.50),
            "p90": self.percentile(0.90),
            "p95": self.percentile(0.95),
            "p99": self.percentile(0.99),
        }


class ResultsCounter:
    def __init__(self) -> None:
        self._counts: dict[Any, int] = {}

    def put(self, value: StatusValue | None) -> None:
        self._counts[value] = self._counts.get(value, 0) + 1

    def __getitem__(self, value: Any) -> int:
        return self._counts.get(value, 0)

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def summary(self) -> dict[str, Any]:
        # 200 and "200" share one JSON key, so their counts are summed
        counts: dict[str, int] = {}
        for k, v in self._counts.items():
            counts[str(k)] = counts.get(str(k), 0) + v
        return {"total": self.total, "counts": counts}


class RunBucket:
    def __init__(self) -> None:
        self.duration = Histogram()
        self.status = ResultsCounter()

    def summary(self) -> dict[str, Any]:
        return {"duration": self.duration.summary(), "status": self.status.summary()}


class ActionBucket:
    def __init__(self, name: str) -> None:
        self.name = name
        self.success_duration = Histogram()
        self.error_duration = Histogram()
        self.status = ResultsCounter()
        self.count = 0

    def put(self, duration_ms: float | None, status: Any) -> None:
        self.status.put(status)
        if duration_ms is not None:
            if is_success_status(status):
                self.success_duration.put(duration_ms)
            else:
                self.error_duration.put(duration_ms)
        self.count += 1

    def summary(self) -> dict[str, Any]:
        return {
            "action": self.name,
            "successDuration": self.success_duration.summary(),
            "errorDuration": self.error_duration.summary(),
            "status": self.status.summary(),
            "count": self.count,
        }


class StatsAggregator:
    def __init__(self) -> None:
        self.success_runs = RunBucket()
        self.error_runs = RunBucket()
        # dicts keep insertion order, which is the first-seen order of actions
        self.actions: dict[str, ActionBucket] = {}

    @property
    def success_count(self) -> int:
        return len(self.success_runs.duration)

    @property
    def error_count(self) -> int:
        return len(self.error_runs.duration)

    @property
    def recorded(self) -> int:
        return self.success_count + self.error_count

    def record(
        self,
        duration_ms: float,
        success: bool,
        status: StatusValue | None,
        actions: Iterable[ActionRecord] = (),
    ) -> None:
        bucket = self.success_runs if success else self.error_runs
        bucket.duration.put(duration_ms)
        bucket.status.put(status)
        for action in actions:
            ab = self.actions.get(action.action)
            if ab is None:
                logger.debug(f"First sight of action '{action.action}'")
                ab = self.actions[action.action] = ActionBucket(action.action)
            ab.put(action.duration, action.status)

    def record_task(self, task: RunTask) -> None:
        result = task.result
        if result is None:
            self.record(task.duration_ms, False, "error")
            return
        self.record(task.duration_ms, task.success, result.status, result.actions)

    def finalize(self, parameters: Mapping[str, Any] | None = None) -> Summary:
        summary = Summary(
            parameters=dict(parameters or {}),
            success_runs=self.success_runs.summary(),
            error_runs=self.error_runs.summary(),
            actions=[ab.summary() for ab in self.actions.values()],
        )
        logger.debug(
            f"Stats finalized: success={self.success_count}, errors={self.error_count}, "
            f"actions={len(self.actions)}"
        )
        return summary
