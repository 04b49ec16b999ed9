"""Snapshot builder: packages one Snapshot from fresh readings."""

import time
from collections.abc import Callable
from typing import Any

import psutil
from loguru import logger

from hostpulse.delta import compute_cpu_reading, percent, round_half_up, zero_cpu_reading
from hostpulse.errors import DiskQueryFailed, SampleMismatch
from hostpulse.models import CpuReading, DiskReading, MemoryReading, ProcessReading, Snapshot
from hostpulse.sampler import Sampler

DiskUsage = Callable[[str], Any]

MB = 1024**2
GB = 1024**3


def memory_reading(total: int, available: int) -> MemoryReading:
    """
    Build a MemoryReading from total and available bytes.

    The percentage is taken from the reported megabyte values so that
    ``used_percent == round(used_mb / total_mb * 100)`` always holds.
    """
    total_mb = round_half_up(total / MB)
    used_mb = round_half_up(max(0, total - available) / MB)
    return MemoryReading(
        total_mb=total_mb,
        used_mb=used_mb,
        free_mb=round_half_up(max(0, available) / MB),
        used_percent=percent(used_mb, total_mb),
    )


def disk_reading(total: int, used: int, free: int) -> DiskReading:
    """
    Build a DiskReading from byte counts.

    The percentage is relative to the space available to unprivileged users
    (used + free), the way ``df`` reports it.
    """
    if min(total, used, free) < 0:
        raise DiskQueryFailed(f"negative disk usage: total={total} used={used} free={free}")
    return DiskReading(
        total_gb=round(total / GB, 1),
        used_gb=round(used / GB, 1),
        free_gb=round(free / GB, 1),
        used_percent=percent(used, used + free),
    )


def format_duration(seconds: float) -> str:
    """Format seconds as ``"{d}d {h}h {m}m {s}s"``."""
    total = max(0, int(seconds))
    days, remainder = divmod(total, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{days}d {hours}h {minutes}m {secs}s"


class SnapshotBuilder:
    """
    Assembles Snapshots from a Sampler.

    Every call to :meth:`build` does fresh work; callers own the cadence.
    """

    def __init__(
        self,
        sampler: Sampler,
        disk_path: str = "/",
        disk_usage: DiskUsage | None = None,
        clock: Callable[[], float] = time.time,
        started_at: float | None = None,
    ) -> None:
        """
        Initialize the SnapshotBuilder.

        Args:
            sampler: Shared sampler holding the CPU baseline.
            disk_path: Mount point whose usage is reported.
            disk_usage: Callable returning an object with ``total``, ``used``
                and ``free`` bytes for a path. Defaults to psutil.disk_usage.
            clock: Wall-clock source in seconds.
            started_at: Application start time, defaults to now.
        """
        self._sampler = sampler
        self._disk_path = disk_path
        self._disk_usage = disk_usage or psutil.disk_usage
        self._clock = clock
        self._started_at = clock() if started_at is None else started_at

    @property
    def sampler(self) -> Sampler:
        return self._sampler

    def build(self) -> Snapshot:
        """Build a new Snapshot."""
        now = self._clock()
        host = self._sampler.host_facts
        total, available = self._sampler.memory()
        pid, runtime_version, rss = self._sampler.process()

        return Snapshot(
            timestamp_ms=int(now * 1000),
            app_uptime=format_duration(now - self._started_at),
            system_uptime_seconds=self._sampler.system_uptime(),
            host=host,
            cpu=self.cpu(),
            memory=memory_reading(total, available),
            disk=self.disk(),
            process=ProcessReading(
                pid=pid,
                runtime_version=runtime_version,
                resident_mb=round_half_up(rss / MB),
            ),
        )

    def cpu(self) -> CpuReading:
        """Advance the sampler and compute utilization since the last call."""
        host = self._sampler.host_facts
        load_average = self._sampler.load_average()
        previous, current = self._sampler.advance()
        try:
            return compute_cpu_reading(previous, current, host.cpu_model, load_average)
        except SampleMismatch as e:
            logger.warning(f"Reporting zero CPU utilization for this tick: {e}")
            return zero_cpu_reading(host.cpu_model, len(current), load_average)

    def disk(self) -> DiskReading:
        """Query disk usage, substituting a zero reading on failure."""
        try:
            return self._query_disk()
        except DiskQueryFailed as e:
            logger.warning(f"Disk usage query for {self._disk_path!r} failed: {e}")
            return DiskReading.zero()

    def _query_disk(self) -> DiskReading:
        try:
            usage = self._disk_usage(self._disk_path)
            return disk_reading(int(usage.total), int(usage.used), int(usage.free))
        except DiskQueryFailed:
            raise
        except (OSError, psutil.Error, AttributeError, TypeError, ValueError) as e:
            raise DiskQueryFailed(str(e)) from e
