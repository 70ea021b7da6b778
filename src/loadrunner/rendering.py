from typing import Any, Dict, List, Optional


def render_duration_histogram(durations: List[float], bins: int = 20, title: str = "Run Duration Histogram") -> str:
    if not durations:
        return "No duration data."
    lo, hi = min(durations), max(durations)
    if hi <= lo:
        return f"{title}: single value {lo:.1f}ms"

    width = 40
    counts = [0] * bins
    for x in durations:
        j = int((x - lo) / (hi - lo) * bins)
        if j == bins:
            j -= 1
        counts[j] += 1

    peak = max(counts)
    lines = []
    for i, c in enumerate(counts):
        left = lo + (hi - lo) * (i / bins)
        right = lo + (hi - lo) * ((i + 1) / bins)
        bar = "#" * max(1, int((c / peak) * width)) if c else ""
        lines.append(f"{left:9.1f}ms - {right:9.1f}ms | {bar} ({c})")
    return f"{title}\n" + "\n".join(lines)


def _fmt(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.1f}"


def render_summary(summary: Dict[str, Any]) -> str:
    """Plain-text digest of a summary dict (as produced by ``Summary.to_dict``)."""
    lines = [f"{'':24} {'count':>7} {'mean':>9} {'p50':>9} {'p95':>9} {'max':>9}"]

    def row(label: str, h: Dict[str, Any]) -> str:
        return (
            f"{label[:24]:24} {h['count']:>7} {_fmt(h['mean']):>9} {_fmt(h['p50']):>9} "
            f"{_fmt(h['p95']):>9} {_fmt(h['max']):>9}"
        )

    lines.append(row("runs ok", summary["successRuns"]["duration"]))
    lines.append(row("runs error", summary["errorRuns"]["duration"]))
    for a in summary.get("actions", []):
        lines.append(row(f"{a['action']} ok", a["successDuration"]))
        if a["errorDuration"]["count"]:
            lines.append(row(f"{a['action']} error", a["errorDuration"]))
    return "Summary (durations in ms)\n" + "\n".join(lines)
