import logging
import math
from collections.abc import Iterable, Sequence

from .config import ConfigurationError

logger = logging.getLogger(__name__)

# (time offset in seconds, target concurrency)
ControlPoint = tuple[float, float]

_EPSILON = 1e-9


class ConcurrencyProfile:
    """Ordered control points, strictly ascending in time."""

    def __init__(self, points: Iterable[Sequence[float]]) -> None:
        pts = [(float(t), float(c)) for t, c in points]
        if not pts:
            raise ConfigurationError("concurrency profile needs at least one point")
        for (t0, _), (t1, _) in zip(pts, pts[1:]):
            if t1 <= t0:
                raise ConfigurationError(
                    f"concurrency profile must be strictly ascending in time: {pts}"
                )
        if any(c < 0 for _, c in pts):
            raise ConfigurationError(f"concurrency profile has a negative target: {pts}")
        self.points: list[ControlPoint] = pts

    @classmethod
    def ramp(cls, ramp_up_s: float, concurrency: int) -> "ConcurrencyProfile":
        if ramp_up_s <= 0:
            return cls([(0.0, concurrency)])
        return cls([(0.0, 0.0), (ramp_up_s, concurrency)])

    def __repr__(self) -> str:
        return f"ConcurrencyProfile({self.points!r})"


class RampScheduler:
    def __init__(self, profile: ConcurrencyProfile) -> None:
        self.profile = profile
        logger.debug(f"Ramp scheduler using {profile!r}")

    def target_concurrency(self, elapsed_s: float) -> float:
        pts = self.profile.points
        first_t, first_c = pts[0]
        if elapsed_s <= first_t:
            return first_c
        last_t, last_c = pts[-1]
        if elapsed_s >= last_t:
            return last_c
        for (t0, c0), (t1, c1) in zip(pts, pts[1:]):
            if t0 <= elapsed_s <= t1:
                return c0 + (c1 - c0) * (elapsed_s - t0) / (t1 - t0)
        return last_c

    def slots(self, elapsed_s: float) -> int:
        """Whole number of runs allowed in flight at ``elapsed_s``."""
        return max(0, math.floor(self.target_concurrency(elapsed_s) + _EPSILON))
