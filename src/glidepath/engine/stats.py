"""Reduce terminal values into percentiles and a histogram."""

import math
from typing import Callable, Sequence

import numpy as np

from . import HistogramBin, InvalidInputError, SimulationStats

PERCENTILES = {"p10": 0.10, "p50": 0.50, "p90": 0.90}
DEFAULT_BIN_COUNT = 20


def numeric_range_label(start: float, end: float) -> str:
    return f"{start:,.0f}~{end:,.0f}"


def _sorted_values(values: Sequence[float]) -> np.ndarray:
    arr = np.sort(np.asarray(values, dtype=float))
    if arr.size == 0:
        raise InvalidInputError("cannot reduce an empty value collection")
    return arr


def nearest_rank(sorted_values: np.ndarray, p: float) -> float:
    """Lower nearest-rank percentile: element ``floor(p * n)``, clamped."""
    count = len(sorted_values)
    index = min(int(math.floor(p * count)), count - 1)
    return float(sorted_values[index])


def compute_percentiles(values: Sequence[float]) -> SimulationStats:
    """p10/p50/p90 plus extremes. Every returned value is an input element."""
    arr = _sorted_values(values)
    stats = SimulationStats(
        p10=nearest_rank(arr, PERCENTILES["p10"]),
        p50=nearest_rank(arr, PERCENTILES["p50"]),
        p90=nearest_rank(arr, PERCENTILES["p90"]),
        min=float(arr[0]),
        max=float(arr[-1]),
    )
    return stats


def compute_histogram(
    values: Sequence[float],
    bin_count: int = DEFAULT_BIN_COUNT,
    label_fn: Callable[[float, float], str] = numeric_range_label,
) -> list[HistogramBin]:
    """Split ``[min, max]`` into ``bin_count`` equal-width bins and count.

    Bins are half-open except the last, which is closed at ``max``. When all
    values are equal the width is zero and every value lands in bin 0; the
    remaining bins are returned empty. Labels come from ``label_fn``, plain
    grouped numbers by default.
    """
    if bin_count <= 0:
        raise InvalidInputError(f"bin_count must be > 0, got {bin_count}")

    stats = compute_percentiles(values)
    lo, hi = stats["min"], stats["max"]
    step = (hi - lo) / bin_count

    arr = np.asarray(values, dtype=float)
    if step == 0:
        indices = np.zeros(arr.size, dtype=int)
    else:
        indices = np.floor((arr - lo) / step).astype(int)
        indices = np.clip(indices, 0, bin_count - 1)
    counts = np.bincount(indices, minlength=bin_count)

    bins: list[HistogramBin] = []
    for i in range(bin_count):
        start = lo + i * step
        end = hi if i == bin_count - 1 else start + step
        bins.append(
            HistogramBin(
                range_start=start,
                range_end=end,
                count=int(counts[i]),
                label=label_fn(start, end),
            )
        )
    return bins
