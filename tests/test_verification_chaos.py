"""Verification Test: Chaos Monkey - randomly failing OS queries.

Counter reads, disk queries and the core count fail at random while
subscribers are streaming. Every snapshot must still be produced and every
utilization must stay within bounds.
"""

import random
import time

from hostpulse.broadcaster import StreamBroadcaster
from hostpulse.builder import SnapshotBuilder
from hostpulse.errors import CounterUnavailable
from hostpulse.models import CpuTimes, DiskReading
from hostpulse.sampler import Sampler, read_psutil_counters


class ChaosCounters:
    """Real counters that sometimes vanish, lose a core or go missing."""

    def __init__(self, seed: int = 1234) -> None:
        self._random = random.Random(seed)

    def __call__(self):
        roll = self._random.random()
        if roll < 0.2:
            raise CounterUnavailable("counters vanished")
        rows = list(read_psutil_counters())
        if roll < 0.3 and len(rows) > 1:
            return rows[:-1]
        if roll < 0.4:
            rows[0] = None
        return rows


def chaos_disk(seed: int = 99):
    rng = random.Random(seed)

    def query(path):
        if rng.random() < 0.5:
            raise OSError("device not ready")
        return type("Usage", (), {"total": 100, "used": 40, "free": 60})()

    return query


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_builder_survives_random_failures(self):
        """Test hundreds of builds under random failures all succeed."""
        builder = SnapshotBuilder(Sampler(ChaosCounters()), disk_usage=chaos_disk())

        for _ in range(300):
            snapshot = builder.build()
            assert all(0 <= usage <= 100 for usage in snapshot.cpu.per_core)
            assert 0 <= snapshot.cpu.average <= 100
            assert len(snapshot.cpu.per_core) == snapshot.cpu.core_count
            assert snapshot.disk == DiskReading.zero() or snapshot.disk.used_percent == 40

    def test_stream_survives_random_failures(self):
        """Test subscribers keep receiving snapshots while queries fail."""
        builder = SnapshotBuilder(Sampler(ChaosCounters(seed=7)), disk_usage=chaos_disk(seed=3))
        broadcaster = StreamBroadcaster(builder.build, interval=0.02)

        try:
            subscribers = [broadcaster.subscribe() for _ in range(5)]
            time.sleep(0.5)

            assert broadcaster.active_count == 5
            for subscriber in subscribers:
                assert subscriber.is_running
                assert subscriber.ticks > 0
        finally:
            broadcaster.close()

    def test_random_sample_pairs_stay_in_bounds(self):
        """Test arbitrary counter pairs never leave [0, 100]."""
        rng = random.Random(42)

        def random_sample():
            return [
                CpuTimes(
                    user=rng.uniform(0, 1000),
                    nice=rng.uniform(0, 10),
                    system=rng.uniform(0, 500),
                    idle=rng.uniform(0, 5000),
                    irq=rng.uniform(0, 5),
                    other=rng.uniform(0, 5),
                )
                for _ in range(4)
            ]

        sampler = Sampler(random_sample)
        builder = SnapshotBuilder(sampler, disk_usage=chaos_disk())

        for _ in range(500):
            reading = builder.cpu()
            assert all(0 <= usage <= 100 for usage in reading.per_core)
