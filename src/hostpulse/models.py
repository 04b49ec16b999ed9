"""Data models for hostpulse."""

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class CpuTimes:
    """Raw counters of one logical core, in seconds."""

    user: float
    nice: float
    system: float
    idle: float  # includes iowait
    irq: float
    other: float = 0.0  # softirq + steal

    @property
    def total(self) -> float:
        """Sum of every counter."""
        return self.user + self.nice + self.system + self.idle + self.irq + self.other


# One CpuTimes per logical core, in core order.
CpuSample = tuple[CpuTimes, ...]


@dataclass(slots=True, frozen=True)
class HostFacts:
    """Static identity of the host, collected once."""

    name: str
    platform: str
    release: str
    architecture: str
    cpu_model: str
    core_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "platform": self.platform,
            "releaseId": self.release,
            "architecture": self.architecture,
        }


@dataclass(slots=True, frozen=True)
class CpuReading:
    """CPU utilization derived from two successive samples."""

    per_core: tuple[int, ...]  # 0 - 100 per core
    average: int
    model: str
    core_count: int
    load_average: tuple[float, float, float]

    def to_dict(self) -> dict[str, Any]:
        return {
            "perCoreUtilization": list(self.per_core),
            "averageUtilization": self.average,
            "model": self.model,
            "coreCount": self.core_count,
            "loadAverage": list(self.load_average),
        }


@dataclass(slots=True, frozen=True)
class MemoryReading:
    """Physical memory usage in megabytes."""

    total_mb: int
    used_mb: int
    free_mb: int
    used_percent: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalMB": self.total_mb,
            "usedMB": self.used_mb,
            "freeMB": self.free_mb,
            "usedPercent": self.used_percent,
        }


@dataclass(slots=True, frozen=True)
class DiskReading:
    """Filesystem usage in gigabytes, rounded to one decimal."""

    total_gb: float
    used_gb: float
    free_gb: float
    used_percent: int

    @classmethod
    def zero(cls) -> "DiskReading":
        """Reading reported when the disk query fails."""
        return cls(total_gb=0.0, used_gb=0.0, free_gb=0.0, used_percent=0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalGB": self.total_gb,
            "usedGB": self.used_gb,
            "freeGB": self.free_gb,
            "usedPercent": self.used_percent,
        }


@dataclass(slots=True, frozen=True)
class ProcessReading:
    """Facts about the hostpulse process itself."""

    pid: int
    runtime_version: str
    resident_mb: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "runtimeVersion": self.runtime_version,
            "residentMB": self.resident_mb,
        }


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable, fully assembled set of metrics for one tick or request."""

    timestamp_ms: int
    app_uptime: str
    system_uptime_seconds: int
    host: HostFacts
    cpu: CpuReading
    memory: MemoryReading
    disk: DiskReading
    process: ProcessReading

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON contract consumed by the dashboards."""
        return {
            "timestampMillis": self.timestamp_ms,
            "appUptime": self.app_uptime,
            "systemUptimeSeconds": self.system_uptime_seconds,
            "host": self.host.to_dict(),
            "cpu": self.cpu.to_dict(),
            "memory": self.memory.to_dict(),
            "disk": self.disk.to_dict(),
            "process": self.process.to_dict(),
        }
