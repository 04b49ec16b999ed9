"""Stream broadcaster: fans Snapshots out to Server-Sent-Events subscribers."""

import itertools
import json
import threading
from collections.abc import Callable, Iterator
from queue import Empty, Full, Queue

from loguru import logger

from hostpulse.errors import TransportGone
from hostpulse.models import Snapshot

SnapshotSource = Callable[[], Snapshot]


def encode_snapshot(snapshot: Snapshot) -> str:
    """Encode a Snapshot as one self-contained SSE ``data`` frame."""
    return f"data: {json.dumps(snapshot.to_dict(), separators=(',', ':'))}\n\n"


def retry_directive(retry_ms: int) -> str:
    """SSE frame suggesting the client reconnect delay."""
    return f"retry: {retry_ms}\n\n"


class Subscriber:
    """
    One open stream connection with its own tick timer.

    The tick thread only ever enqueues; the transport drains the queue. A
    subscriber whose transport stalls therefore never delays the tick thread,
    and stale messages are dropped once ``max_pending`` is reached.
    """

    def __init__(
        self,
        subscriber_id: int,
        source: SnapshotSource,
        interval: float,
        max_pending: int = 8,
    ) -> None:
        self.id = subscriber_id
        self._source = source
        self._interval = interval
        self._messages: Queue[str] = Queue(maxsize=max_pending)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.ticks = 0

    @property
    def is_running(self) -> bool:
        """Check if the tick thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Start the tick thread."""
        if self.is_running or self.stopped:
            return

        self._thread = threading.Thread(
            target=self._tick_loop,
            daemon=True,
            name=f"hostpulse-tick-{self.id}",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the tick thread. No tick is enqueued after this returns.

        Args:
            timeout: How long to wait for the thread to stop (seconds).
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def push(self, message: str) -> None:
        """Enqueue a message, dropping the oldest pending one when full."""
        while True:
            try:
                self._messages.put_nowait(message)
                return
            except Full:
                try:
                    self._messages.get_nowait()
                except Empty:
                    pass  # Drained concurrently

    def next_message(self, timeout: float) -> str | None:
        """
        Wait for the next message.

        Returns:
            The message, or None if nothing arrived within ``timeout``.

        Raises:
            TransportGone: If the subscriber has been stopped.
        """
        if self.stopped:
            raise TransportGone(f"subscriber {self.id} is closed")
        try:
            return self._messages.get(timeout=timeout)
        except Empty:
            return None

    def _tick_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._interval):
            try:
                message = encode_snapshot(self._source())
            except Exception:
                logger.exception(f"Skipping tick for subscriber {self.id}")
                continue
            if self._stop_event.is_set():
                break
            self.push(message)
            self.ticks += 1


class StreamBroadcaster:
    """
    Maintains the live set of subscribers.

    Each subscriber receives the retry directive and one Snapshot as soon as
    it subscribes, then one Snapshot per ``interval`` from its own timer.
    """

    def __init__(
        self,
        source: SnapshotSource,
        interval: float = 2.0,
        retry_ms: int = 3000,
        max_pending: int = 8,
        poll_timeout: float = 0.5,
    ) -> None:
        """
        Initialize the StreamBroadcaster.

        Args:
            source: Callable building a fresh Snapshot.
            interval: Seconds between pushes for each subscriber.
            retry_ms: Reconnect delay suggested to clients.
            max_pending: Messages buffered per subscriber before dropping.
            poll_timeout: How often a waiting stream re-checks for closure.
        """
        self._source = source
        self._interval = interval
        self._retry_ms = retry_ms
        self._max_pending = max_pending
        self._poll_timeout = poll_timeout
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def active_count(self) -> int:
        """Number of live subscribers."""
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscriber:
        """Register a subscriber and start its timer."""
        subscriber = Subscriber(
            next(self._ids), self._source, self._interval, self._max_pending
        )
        subscriber.push(retry_directive(self._retry_ms))
        try:
            subscriber.push(encode_snapshot(self._source()))
        except Exception:
            logger.exception(f"Could not build initial snapshot for subscriber {subscriber.id}")

        with self._lock:
            self._subscribers[subscriber.id] = subscriber
        subscriber.start()
        logger.debug(f"Subscriber {subscriber.id} connected ({self.active_count} active)")
        return subscriber

    def unsubscribe(self, subscriber_id: int) -> bool:
        """
        Stop a subscriber's timer and forget it.

        Returns:
            True if the subscriber was live, False if it was already gone.
        """
        with self._lock:
            subscriber = self._subscribers.pop(subscriber_id, None)
        if subscriber is None:
            return False
        subscriber.stop()
        logger.debug(f"Subscriber {subscriber_id} disconnected ({self.active_count} active)")
        return True

    def stream(self, subscriber: Subscriber) -> Iterator[str]:
        """
        Yield encoded frames for a subscriber until it is closed.

        Closing the generator (the transport went away) unsubscribes.
        """
        try:
            while True:
                try:
                    message = subscriber.next_message(timeout=self._poll_timeout)
                except TransportGone:
                    return
                if message is not None:
                    yield message
        finally:
            self.unsubscribe(subscriber.id)

    def close(self) -> None:
        """Release every subscriber."""
        with self._lock:
            subscribers = list(self._subscribers.values())
            self._subscribers.clear()
        for subscriber in subscribers:
            subscriber.stop()
        if subscribers:
            logger.info(f"Closed {len(subscribers)} stream subscriber(s)")
