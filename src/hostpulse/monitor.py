"""Background snapshot polling for the terminal dashboard."""

import threading
from collections import deque
from queue import Queue

from loguru import logger

from hostpulse.builder import SnapshotBuilder
from hostpulse.models import Snapshot

HISTORY_LENGTH = 40
MIN_POLL_RATE = 0.5
MAX_POLL_RATE = 30.0


class SnapshotMonitor:
    """
    Builds Snapshots on a fixed cadence in a daemon thread.

    Each Snapshot is pushed to a thread-safe Queue, and the average CPU
    utilization is kept in a rolling window for sparkline rendering.
    """

    def __init__(
        self,
        builder: SnapshotBuilder,
        update_queue: Queue[Snapshot],
        poll_rate: float = 2.0,
    ) -> None:
        """
        Initialize the SnapshotMonitor.

        Args:
            builder: Builder producing each Snapshot.
            update_queue: Thread-safe queue receiving every Snapshot.
            poll_rate: Seconds between snapshots, kept within
                ``MIN_POLL_RATE`` and ``MAX_POLL_RATE``.
        """
        self._builder = builder
        self._queue = update_queue
        self._poll_rate = MIN_POLL_RATE
        self.poll_rate = poll_rate
        self._halt = threading.Event()
        self._worker: threading.Thread | None = None
        self._cpu_history: deque[int] = deque(maxlen=HISTORY_LENGTH)

    @property
    def poll_rate(self) -> float:
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, seconds: float) -> None:
        # Picked up by the loop after the current wait.
        self._poll_rate = min(MAX_POLL_RATE, max(MIN_POLL_RATE, seconds))

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        """Start polling; a monitor that is already running is left alone."""
        if self.is_running:
            return
        self._halt.clear()
        self._worker = threading.Thread(target=self._poll_loop, name="SnapshotMonitor", daemon=True)
        self._worker.start()
        logger.debug(f"Snapshot monitor started, one snapshot every {self._poll_rate}s")

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the polling thread and wait up to ``timeout`` seconds for it."""
        self._halt.set()
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.join(timeout=timeout)

    def _poll_loop(self) -> None:
        while not self._halt.is_set():
            try:
                snapshot = self._builder.build()
            except Exception:
                logger.exception("Snapshot polling failed, retrying next tick")
            else:
                self._cpu_history.append(snapshot.cpu.average)
                self._queue.put(snapshot)
            self._halt.wait(timeout=self._poll_rate)

    def get_cpu_history(self) -> list[int]:
        """Get the average CPU history for sparkline rendering."""
        return list(self._cpu_history)
