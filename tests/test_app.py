"""Tests for the hostpulse terminal dashboard."""

import pytest
from textual.widgets import Sparkline

from hostpulse.app import (
    AlertBanner,
    HeaderStats,
    HostPulseApp,
    HostTable,
    Level,
    alert_messages,
    level_for,
    render_bar,
)
from hostpulse.builder import SnapshotBuilder
from hostpulse.monitor import MIN_POLL_RATE
from hostpulse.sampler import Sampler


class TestLevels:
    """Tests for threshold classification."""

    @pytest.mark.parametrize(
        ("percent", "level"),
        [(0, Level.NORMAL), (60, Level.NORMAL), (61, Level.WARNING), (85, Level.WARNING), (86, Level.CRITICAL)],
    )
    def test_level_for(self, percent, level):
        """Test the warning and critical boundaries are exclusive."""
        assert level_for(percent) is level

    def test_render_bar_fill(self):
        """Test the bar fills proportionally."""
        bar = render_bar(50, width=10)
        assert bar.count("█") == 5
        assert bar.count("░") == 5
        assert "[green]" in bar

    def test_render_bar_critical_color(self):
        """Test critical values render red."""
        assert "[red]" in render_bar(95)


class TestAlerts:
    """Tests for alert messages."""

    def test_no_alerts_when_healthy(self, make_snapshot):
        """Test nothing is reported below the thresholds."""
        assert alert_messages(make_snapshot(cpu_percent=85, memory_percent=85, disk_percent=90)) == []

    def test_all_alerts(self, make_snapshot):
        """Test every breach is reported."""
        snapshot = make_snapshot(cpu_percent=90, memory_percent=86, disk_percent=95)
        assert alert_messages(snapshot) == [
            "High CPU: 90%",
            "High Memory: 86%",
            "Disk almost full: 95%",
        ]


@pytest.mark.asyncio
async def test_app_creation():
    """Test HostPulseApp can be instantiated."""
    app = HostPulseApp()
    assert app.title == "hostpulse"
    assert app.sub_title == "Server Health Monitor"
    assert app._monitor is not None
    assert app._update_queue is not None


@pytest.mark.asyncio
async def test_app_compose():
    """Test HostPulseApp composes correctly."""
    app = HostPulseApp()
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#header-stats", HeaderStats) is not None
        assert pilot.app.query_one("#alerts", AlertBanner) is not None
        assert pilot.app.query_one("#cpu-history", Sparkline) is not None
        assert pilot.app.query_one("#host-table", HostTable) is not None


@pytest.mark.asyncio
async def test_app_starts_monitor():
    """Test mounting the app starts background polling."""
    app = HostPulseApp(SnapshotBuilder(Sampler()), poll_rate=0.1)
    async with app.run_test() as pilot:
        assert pilot.app._monitor.is_running


@pytest.mark.asyncio
async def test_update_ui_shows_alerts(make_snapshot):
    """Test a snapshot over the thresholds shows the alert banner."""
    app = HostPulseApp()
    async with app.run_test() as pilot:
        pilot.app.update_ui(make_snapshot(cpu_percent=95))
        banner = pilot.app.query_one("#alerts", AlertBanner)
        assert banner.has_class("-active")

        pilot.app.update_ui(make_snapshot(cpu_percent=5))
        assert not banner.has_class("-active")


@pytest.mark.asyncio
async def test_update_ui_fills_host_table(make_snapshot):
    """Test host facts are listed once and updated in place."""
    app = HostPulseApp()
    async with app.run_test() as pilot:
        pilot.app.update_ui(make_snapshot())
        pilot.app.update_ui(make_snapshot())
        table = pilot.app.query_one("#host-table", HostTable)
        assert table.row_count == 9
        assert table.get_cell("Hostname", "value") == "web-01"


@pytest.mark.asyncio
async def test_app_refresh_binding():
    """Test 'r' renders a snapshot immediately."""
    app = HostPulseApp(poll_rate=10.0)
    async with app.run_test() as pilot:
        await pilot.press("r")
        table = pilot.app.query_one("#host-table", HostTable)
        assert table.row_count == 9


@pytest.mark.asyncio
async def test_app_poll_rate_bindings():
    """Test '+' and '-' change the monitor cadence within its limits."""
    app = HostPulseApp(poll_rate=2.0)
    async with app.run_test() as pilot:
        await pilot.press("plus")
        assert pilot.app._monitor.poll_rate == 1.0
        assert pilot.app.sub_title.endswith("every 1s")

        await pilot.press("plus", "plus", "plus")
        assert pilot.app._monitor.poll_rate == MIN_POLL_RATE

        await pilot.press("minus")
        assert pilot.app._monitor.poll_rate == MIN_POLL_RATE * 2


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' binding triggers quit and stops the monitor."""
    app = HostPulseApp()
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert not pilot.app._monitor.is_running
