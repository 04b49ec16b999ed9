"""Delta engine: turns successive raw counter samples into percentages.

All integer percentages in hostpulse go through :func:`round_half_up`, which
rounds halves away from zero (``2.5 -> 3``, ``-2.5 -> -3``).
"""

import math
from collections.abc import Sequence

from hostpulse.errors import SampleMismatch
from hostpulse.models import CpuReading, CpuSample


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def clamp_percent(value: int) -> int:
    """Clamp a percentage to [0, 100]."""
    return max(0, min(100, value))


def percent(part: float, whole: float) -> int:
    """Integer percentage of part in whole, 0 when whole is not positive."""
    if whole <= 0:
        return 0
    return clamp_percent(round_half_up(part / whole * 100))


def core_utilization(previous: CpuSample, current: CpuSample) -> tuple[int, ...]:
    """
    Compute per-core utilization between two samples.

    A core whose counters did not advance (or went backwards) reports 0%.

    Raises:
        SampleMismatch: If the samples have a different number of cores.
    """
    if len(previous) != len(current):
        raise SampleMismatch(len(previous), len(current))

    usages = []
    for before, after in zip(previous, current):
        total_delta = after.total - before.total
        if total_delta <= 0:
            usages.append(0)
            continue
        idle_delta = after.idle - before.idle
        usage = round_half_up((1 - idle_delta / total_delta) * 100)
        usages.append(clamp_percent(usage))
    return tuple(usages)


def average_utilization(values: Sequence[int]) -> int:
    """Rounded mean of per-core utilizations."""
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def compute_cpu_reading(
    previous: CpuSample,
    current: CpuSample,
    model: str = "",
    load_average: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> CpuReading:
    """Build a CpuReading from two successive samples."""
    per_core = core_utilization(previous, current)
    return CpuReading(
        per_core=per_core,
        average=average_utilization(per_core),
        model=model,
        core_count=len(current),
        load_average=load_average,
    )


def zero_cpu_reading(
    model: str,
    core_count: int,
    load_average: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> CpuReading:
    """Reading with every core at 0%."""
    return CpuReading(
        per_core=(0,) * core_count,
        average=0,
        model=model,
        core_count=core_count,
        load_average=load_average,
    )
