"""Sampler: reads raw OS counters through psutil."""

import os
import platform
import socket
import sys
import threading
import time
from collections.abc import Callable, Sequence
from typing import Any

import psutil
from loguru import logger

from hostpulse.errors import CounterUnavailable
from hostpulse.models import CpuSample, CpuTimes, HostFacts

CounterReader = Callable[[], Sequence[Any]]

_ZERO_TIMES = CpuTimes(user=0.0, nice=0.0, system=0.0, idle=0.0, irq=0.0)


def read_psutil_counters() -> Sequence[Any]:
    """Per-core CPU times as reported by psutil."""
    return psutil.cpu_times(percpu=True)


def to_cpu_times(raw: Any) -> CpuTimes:
    """
    Convert one psutil ``scputimes`` row to CpuTimes.

    Fields psutil only reports on some platforms default to zero. Guest time
    is already part of user/nice on Linux, so it is not added again.
    """
    if isinstance(raw, CpuTimes):
        return raw
    return CpuTimes(
        user=float(raw.user),
        nice=float(getattr(raw, "nice", 0.0)),
        system=float(raw.system),
        idle=float(raw.idle) + float(getattr(raw, "iowait", 0.0)),
        irq=float(getattr(raw, "irq", 0.0)) + float(getattr(raw, "interrupt", 0.0)),
        other=(
            float(getattr(raw, "softirq", 0.0))
            + float(getattr(raw, "steal", 0.0))
            + float(getattr(raw, "dpc", 0.0))
        ),
    )


def detect_cpu_model() -> str:
    """Best-effort CPU model name."""
    try:
        with open("/proc/cpuinfo", encoding="utf-8") as cpuinfo:
            for line in cpuinfo:
                if line.lower().startswith("model name"):
                    return line.split(":", 1)[1].strip()
    except OSError:
        pass  # Not Linux
    return platform.processor().strip() or "unknown"


class Sampler:
    """
    Reads CPU counters and retains the previous sample between calls.

    The previous sample is only ever read and replaced inside
    :meth:`advance`, under a lock, so the pull endpoint and every stream
    subscriber can share one Sampler without corrupting the delta baseline.
    """

    def __init__(self, read_counters: CounterReader | None = None) -> None:
        """
        Initialize the Sampler and take the first sample immediately.

        Args:
            read_counters: Callable returning one counter row per logical core.
                Defaults to ``psutil.cpu_times(percpu=True)``.
        """
        self._read_counters = read_counters or read_psutil_counters
        self._lock = threading.Lock()
        self._previous: CpuSample = ()
        self._previous = self._read_sample()
        self._host_facts = HostFacts(
            name=socket.gethostname(),
            platform=sys.platform,
            release=platform.release(),
            architecture=platform.machine(),
            cpu_model=detect_cpu_model(),
            core_count=len(self._previous),
        )

    @property
    def host_facts(self) -> HostFacts:
        """Static host identity."""
        return self._host_facts

    @property
    def previous(self) -> CpuSample:
        """The sample the next delta will be computed against."""
        with self._lock:
            return self._previous

    def advance(self) -> tuple[CpuSample, CpuSample]:
        """Read a fresh sample and swap it in as the new baseline."""
        with self._lock:
            current = self._read_sample()
            previous, self._previous = self._previous, current
        return previous, current

    def sample(self) -> tuple[CpuSample, HostFacts]:
        """Take a sample, returning it with the static host facts."""
        _, current = self.advance()
        return current, self._host_facts

    def _read_sample(self) -> CpuSample:
        """Read counters, falling back to the previous sample on failure."""
        try:
            rows = list(self._read_counters())
        except (CounterUnavailable, OSError, psutil.Error) as e:
            logger.warning(f"CPU counters unavailable, reporting no change: {e}")
            return self._previous

        sample = []
        for index, row in enumerate(rows):
            try:
                sample.append(to_cpu_times(row))
            except (AttributeError, TypeError, ValueError):
                logger.warning(f"CPU counters unavailable for core {index}")
                sample.append(self._previous_core(index))
        return tuple(sample)

    def _previous_core(self, index: int) -> CpuTimes:
        if index < len(self._previous):
            return self._previous[index]
        return _ZERO_TIMES

    @staticmethod
    def load_average() -> tuple[float, float, float]:
        """1, 5 and 15 minute load averages, rounded to two decimals."""
        try:
            one, five, fifteen = psutil.getloadavg()
        except (OSError, AttributeError):
            return (0.0, 0.0, 0.0)
        return (round(one, 2), round(five, 2), round(fifteen, 2))

    @staticmethod
    def memory() -> tuple[int, int]:
        """Total and available physical memory, in bytes."""
        mem = psutil.virtual_memory()
        return mem.total, mem.available

    @staticmethod
    def system_uptime() -> int:
        """Seconds since the host booted."""
        return int(time.time() - psutil.boot_time())

    @staticmethod
    def process() -> tuple[int, str, int]:
        """PID, runtime version and resident set size of this process."""
        rss = psutil.Process().memory_info().rss
        return os.getpid(), f"Python {platform.python_version()}", rss
