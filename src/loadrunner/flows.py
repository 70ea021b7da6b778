import logging
import random
from collections.abc import Sequence

from .config import ConfigurationError, LoadConfig

logger = logging.getLogger(__name__)


class FlowSelector:
    """Chooses the flow number handed to each run.

    Three mutually exclusive modes:

    * default  - every run gets flow 0
    * weighted - flow ``i`` drawn with probability ``weights[i] / sum(weights)``;
      the whole sequence is drawn up front from the injected generator so a
      fixed seed reproduces it exactly
    * pattern  - run ``i`` (1-based) gets ``pattern[(i - 1) % len(pattern)]``
    """

    def __init__(
        self,
        sequence: Sequence[int] | None = None,
        pattern: Sequence[int] | None = None,
    ) -> None:
        if sequence is not None and pattern is not None:
            raise ConfigurationError("flow weights and flow pattern are mutually exclusive")
        self._sequence = list(sequence) if sequence is not None else None
        self._pattern = list(pattern) if pattern is not None else None

    @property
    def mode(self) -> str:
        if self._sequence is not None:
            return "weighted"
        if self._pattern is not None:
            return "pattern"
        return "default"

    @classmethod
    def weighted(
        cls, weights: Sequence[float], total_runs: int, rng: random.Random
    ) -> "FlowSelector":
        if not weights:
            raise ConfigurationError("flow weights must not be empty")
        if any(w < 0 for w in weights) or sum(weights) <= 0:
            raise ConfigurationError(f"flow weights must be non-negative with a positive sum: {list(weights)}")
        if len(weights) == 1:
            return cls(sequence=[0] * total_runs)
        sequence = rng.choices(range(len(weights)), weights=weights, k=total_runs)
        logger.debug(f"Drew {total_runs} weighted flow numbers from weights {list(weights)}")
        return cls(sequence=sequence)

    @classmethod
    def pattern(cls, pattern: Sequence[int]) -> "FlowSelector":
        if not pattern:
            raise ConfigurationError("flow pattern must not be empty")
        if any(int(p) != p or p < 0 for p in pattern):
            raise ConfigurationError(f"flow pattern must hold non-negative integers: {list(pattern)}")
        return cls(pattern=[int(p) for p in pattern])

    @classmethod
    def from_config(cls, config: LoadConfig, rng: random.Random) -> "FlowSelector":
        if config.flow_weights and config.flow_pattern:
            raise ConfigurationError("flow weights and flow pattern are mutually exclusive")
        if config.flow_weights:
            return cls.weighted(config.flow_weights, config.total_runs, rng)
        if config.flow_pattern:
            return cls.pattern(config.flow_pattern)
        return cls()

    def flow_for(self, run_index: int) -> int:
        if run_index < 1:
            raise ValueError(f"run index is 1-based, got {run_index}")
        if self._sequence is not None:
            return self._sequence[run_index - 1]
        if self._pattern is not None:
            return self._pattern[(run_index - 1) % len(self._pattern)]
        return 0

    def sequence(self, total_runs: int) -> list[int]:
        return [self.flow_for(i) for i in range(1, total_runs + 1)]
