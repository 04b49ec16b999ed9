"""Error taxonomy for hostpulse.

Every error here is recovered inside the package. None of them is allowed to
turn a metrics request or a stream message into a failed response.
"""


class HostPulseError(Exception):
    """Base class for hostpulse errors."""


class CounterUnavailable(HostPulseError):
    """Raw CPU counters could not be read for one or more cores."""


class SampleMismatch(HostPulseError):
    """Two CPU samples have a different number of cores."""

    def __init__(self, previous_cores: int, current_cores: int) -> None:
        super().__init__(
            f"core count changed between samples: {previous_cores} -> {current_cores}"
        )
        self.previous_cores = previous_cores
        self.current_cores = current_cores


class DiskQueryFailed(HostPulseError):
    """The filesystem usage query errored or returned unusable values."""


class TransportGone(HostPulseError):
    """A stream subscriber's connection has been closed."""
