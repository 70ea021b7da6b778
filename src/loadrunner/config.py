import math
import sys
from dataclasses import dataclass
from typing import Any


class ConfigurationError(ValueError):
    """Invalid load-test configuration, raised before any run starts."""


@dataclass(frozen=True)
class LoadConfig:
    script: str
    script_args: tuple[str, ...] = ()
    total_runs: int = 1
    concurrency: int = 1
    ramp_up_s: float = 1.0
    seed: int | None = None
    flow_weights: tuple[float, ...] | None = None
    flow_pattern: tuple[int, ...] | None = None
    before_script: str | None = None
    interpreter: str = sys.executable
    output: bool = False
    profile: str | None = None
    runs_dir: str = "./runs"
    tick_s: float = 0.1

    def __post_init__(self) -> None:
        if not self.script:
            raise ConfigurationError("a worker script is required")
        if self.total_runs < 1:
            raise ConfigurationError(f"total runs must be >= 1, got {self.total_runs}")
        if self.concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.ramp_up_s < 0 or math.isnan(self.ramp_up_s):
            raise ConfigurationError(f"ramp-up must be >= 0 seconds, got {self.ramp_up_s}")
        if self.seed is not None and self.seed <= 0:
            raise ConfigurationError("--seed must be positive number")
        if self.flow_weights and self.flow_pattern:
            raise ConfigurationError("flow weights and flow pattern are mutually exclusive")
        if self.tick_s <= 0:
            raise ConfigurationError(f"tick interval must be > 0, got {self.tick_s}")

    def command(self) -> list[str]:
        if self.interpreter:
            return [self.interpreter, self.script, *self.script_args]
        return [self.script, *self.script_args]

    def parameters(self) -> dict[str, Any]:
        """Invocation parameters recorded at the top of the summary."""
        return {
            "invocation": " ".join(["loadrunner", self.script, *self.script_args]),
            "concurrency": self.concurrency,
            "numUsers": self.total_runs,
            "rampUp": self.ramp_up_s,
            "before": self.before_script,
            "script": self.script,
            "seed": self.seed,
            "flows": list(self.flow_weights) if self.flow_weights else None,
            "pattern": list(self.flow_pattern) if self.flow_pattern else None,
            "profile": self.profile,
        }
