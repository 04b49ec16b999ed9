"""hostpulse - terminal dashboard built with Textual."""

from collections.abc import Sequence
from enum import Enum
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.widgets import DataTable, Footer, Sparkline, Static

from hostpulse.builder import SnapshotBuilder
from hostpulse.models import Snapshot
from hostpulse.monitor import SnapshotMonitor
from hostpulse.sampler import Sampler

CPU_ALERT = 85
MEMORY_ALERT = 85
DISK_ALERT = 90


class Level(Enum):
    """Severity of a utilization percentage."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


LEVEL_COLORS = {
    Level.NORMAL: "green",
    Level.WARNING: "yellow",
    Level.CRITICAL: "red",
}


def level_for(percent: int) -> Level:
    """Classify a percentage: above 85 is critical, above 60 a warning."""
    if percent > 85:
        return Level.CRITICAL
    if percent > 60:
        return Level.WARNING
    return Level.NORMAL


def alert_messages(snapshot: Snapshot) -> list[str]:
    """Threshold breaches to show in the alert banner."""
    messages = []
    if snapshot.cpu.average > CPU_ALERT:
        messages.append(f"High CPU: {snapshot.cpu.average}%")
    if snapshot.memory.used_percent > MEMORY_ALERT:
        messages.append(f"High Memory: {snapshot.memory.used_percent}%")
    if snapshot.disk.used_percent > DISK_ALERT:
        messages.append(f"Disk almost full: {snapshot.disk.used_percent}%")
    return messages


def render_bar(percent: int, width: int = 20) -> str:
    """Render a percentage as a colored bar using Rich markup."""
    filled = min(width, max(0, percent * width // 100))
    color = LEVEL_COLORS[level_for(percent)]
    # Escaped brackets for the bar container
    return f"\\[[{color}]{'█' * filled}[/{color}][dim]{'░' * (width - filled)}[/dim]]"


class HeaderStats(Static):
    """Header widget showing CPU, memory and disk statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._snapshot: Snapshot | None = None

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_usage_info(), id="usage-info"),
        )

    def update_stats(self, snapshot: Snapshot) -> None:
        """Update the statistics from a snapshot."""
        self._snapshot = snapshot
        self.query_one("#cpu-info", Static).update(self._get_cpu_info())
        self.query_one("#usage-info", Static).update(self._get_usage_info())

    def _get_cpu_info(self) -> str:
        if self._snapshot is None:
            return "Loading CPU info..."
        cpu = self._snapshot.cpu
        lines = [f"CPU   {render_bar(cpu.average)} {cpu.average:3d}%"]
        for i, usage in enumerate(cpu.per_core):
            lines.append(f"CPU{i:<2} {render_bar(usage)} {usage:3d}%")
        return "\n".join(lines)

    def _get_usage_info(self) -> str:
        if self._snapshot is None:
            return "Loading memory info..."
        memory = self._snapshot.memory
        disk = self._snapshot.disk
        load = self._snapshot.cpu.load_average
        return (
            f"Mem  {render_bar(memory.used_percent)} {memory.used_mb}M/{memory.total_mb}M\n"
            f"Disk {render_bar(disk.used_percent)} {disk.used_gb:.1f}G/{disk.total_gb:.1f}G\n"
            f"Load average: {load[0]:.2f} {load[1]:.2f} {load[2]:.2f}\n"
            f"Uptime: {self._snapshot.app_uptime} (system {self._snapshot.system_uptime_seconds}s)"
        )


class AlertBanner(Static):
    """Banner listing threshold breaches, hidden when there are none."""

    DEFAULT_CSS = """
    AlertBanner {
        display: none;
        background: $error 20%;
        color: $text;
        padding: 0 1;
    }
    AlertBanner.-active {
        display: block;
    }
    """

    def show_alerts(self, messages: Sequence[str]) -> None:
        self.update("⚠ " + " · ".join(messages) if messages else "")
        self.set_class(bool(messages), "-active")


class HostTable(DataTable):
    """Static host facts and process details."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._fields: set[str] = set()

    def on_mount(self) -> None:
        self.add_column("Field", key="field", width=14)
        self.add_column("Value", key="value")

    def update_host(self, snapshot: Snapshot) -> None:
        rows = [
            ("Hostname", snapshot.host.name),
            ("Platform", snapshot.host.platform),
            ("Release", snapshot.host.release),
            ("Architecture", snapshot.host.architecture),
            ("CPU model", snapshot.cpu.model),
            ("Cores", str(snapshot.cpu.core_count)),
            ("PID", str(snapshot.process.pid)),
            ("Runtime", snapshot.process.runtime_version),
            ("RSS", f"{snapshot.process.resident_mb} MB"),
        ]
        for field, value in rows:
            if field in self._fields:
                self.update_cell(field, "value", value)
            else:
                self.add_row(field, value, key=field)
                self._fields.add(field)


class HostPulseApp(App):
    """Main hostpulse terminal application."""

    TITLE = "hostpulse"
    SUB_TITLE = "Server Health Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
    }

    Horizontal {
        height: auto;
    }

    #cpu-info {
        width: 1fr;
        padding-right: 2;
    }

    #usage-info {
        width: 1fr;
        padding-left: 2;
    }

    #cpu-history {
        height: 4;
        margin: 1 0;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("plus", "faster", "Faster"),
        ("minus", "slower", "Slower"),
    ]

    def __init__(self, builder: SnapshotBuilder | None = None, poll_rate: float = 2.0) -> None:
        """Initialize the HostPulseApp."""
        super().__init__()
        self._builder = builder or SnapshotBuilder(Sampler())
        self._update_queue: Queue[Snapshot] = Queue()
        self._monitor = SnapshotMonitor(self._builder, self._update_queue, poll_rate=poll_rate)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield AlertBanner(id="alerts")
        yield Sparkline([], summary_function=max, id="cpu-history")
        yield HostTable(id="host-table")
        yield Footer()

    def on_mount(self) -> None:
        """Start the snapshot monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent snapshot."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self.update_ui(snapshot)

    def update_ui(self, snapshot: Snapshot) -> None:
        """Render a snapshot into every widget."""
        self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
        self.query_one("#alerts", AlertBanner).show_alerts(alert_messages(snapshot))
        self.query_one("#cpu-history", Sparkline).data = self._monitor.get_cpu_history()
        self.query_one("#host-table", HostTable).update_host(snapshot)

    def action_refresh(self) -> None:
        """Build a snapshot right away instead of waiting for the next tick."""
        self._update_queue.put(self._builder.build())
        self._check_for_updates()

    def action_faster(self) -> None:
        """Halve the time between snapshots."""
        self._change_poll_rate(self._monitor.poll_rate / 2)

    def action_slower(self) -> None:
        """Double the time between snapshots."""
        self._change_poll_rate(self._monitor.poll_rate * 2)

    def _change_poll_rate(self, seconds: float) -> None:
        self._monitor.poll_rate = seconds
        self.sub_title = f"{self.SUB_TITLE} · every {self._monitor.poll_rate:g}s"

    def on_unmount(self) -> None:
        self._monitor.stop()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()
