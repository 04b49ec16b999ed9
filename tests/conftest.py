"""Shared fixtures for hostpulse tests."""

import threading
from collections.abc import Callable, Sequence

import pytest

from hostpulse.models import (
    CpuReading,
    CpuTimes,
    DiskReading,
    HostFacts,
    MemoryReading,
    ProcessReading,
    Snapshot,
)


def cpu_times(busy: float = 0.0, idle: float = 0.0) -> CpuTimes:
    """Counters with all busy time in ``user``."""
    return CpuTimes(user=busy, nice=0.0, system=0.0, idle=idle, irq=0.0)


class FakeCounters:
    """Counter reader replaying a fixed list of samples, repeating the last."""

    def __init__(self, samples: Sequence[Sequence[CpuTimes]]) -> None:
        self._samples = list(samples)
        self._lock = threading.Lock()
        self.calls = 0

    def __call__(self) -> Sequence[CpuTimes]:
        with self._lock:
            index = min(self.calls, len(self._samples) - 1)
            self.calls += 1
            return self._samples[index]


@pytest.fixture
def times() -> Callable[..., CpuTimes]:
    return cpu_times


@pytest.fixture
def fake_counters() -> type[FakeCounters]:
    return FakeCounters


@pytest.fixture
def make_snapshot() -> Callable[..., Snapshot]:
    """Factory for Snapshots with chosen utilization figures."""

    def factory(
        cpu_percent: int = 10,
        memory_percent: int = 50,
        disk_percent: int = 40,
        timestamp_ms: int = 1_700_000_000_000,
    ) -> Snapshot:
        return Snapshot(
            timestamp_ms=timestamp_ms,
            app_uptime="0d 0h 1m 5s",
            system_uptime_seconds=3600,
            host=HostFacts(
                name="web-01",
                platform="linux",
                release="6.1.0",
                architecture="x86_64",
                cpu_model="Test CPU @ 3.00GHz",
                core_count=2,
            ),
            cpu=CpuReading(
                per_core=(cpu_percent, cpu_percent),
                average=cpu_percent,
                model="Test CPU @ 3.00GHz",
                core_count=2,
                load_average=(0.5, 0.25, 0.1),
            ),
            memory=MemoryReading(
                total_mb=8000,
                used_mb=8000 * memory_percent // 100,
                free_mb=8000 - 8000 * memory_percent // 100,
                used_percent=memory_percent,
            ),
            disk=DiskReading(
                total_gb=100.0,
                used_gb=float(disk_percent),
                free_gb=float(100 - disk_percent),
                used_percent=disk_percent,
            ),
            process=ProcessReading(pid=4242, runtime_version="Python 3.12.0", resident_mb=42),
        )

    return factory
