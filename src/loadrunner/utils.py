import logging
import re
import time

logger = logging.getLogger(__name__)

# ────────────────────────────────
# Time Helpers
# ────────────────────────────────


def now() -> float:
    return time.perf_counter()


def epoch_ms() -> int:
    return int(time.time() * 1000)


# ────────────────────────────────
# Naming
# ────────────────────────────────


def zero_pad(run_index: int, total_runs: int) -> str:
    """Pad a run number to the width of the total run count (7 of 100 -> 007)."""
    return str(run_index).zfill(len(str(total_runs)))


def safe_name(name: str) -> str:
    """Make a script path or action name usable inside a file name."""
    cleaned = re.sub(r"[/\\:]", "_", name)
    if cleaned != name:
        logger.debug(f"Normalized name: {name} → {cleaned}")
    return cleaned
