"""Tests for the dashboard event handling and rendering."""

from pathlib import Path
from typing import List, Optional

import click
import pytest
from rich.console import Console

from gitscope.core import editor
from gitscope.core.config import Config
from gitscope.core.errors import EditorLaunchError, ScanError
from gitscope.core.models import Repo
from gitscope.core.repository import ScanResult
from gitscope.core.state import FilterMode, Panel, SortMode, UIState
from gitscope.core.stats import DiskUsageData, TimelineData
from gitscope.dashboard import KEY_DOWN, KEY_ESC, KEY_TAB, Dashboard, render


class FakeManager:
    """Stand-in for RepositoryManager that records what was asked of it."""

    def __init__(self, repos: List[Repo], error: Optional[Exception] = None):
        self.repos = repos
        self.error = error
        self.calls: List[tuple] = []

    def find_repositories(self, force_scan: bool = False) -> ScanResult:
        self.calls.append(("find", force_scan))
        if self.error is not None:
            raise self.error
        return ScanResult(repos=self.repos, from_cache=not force_scan)

    def scan_workspace(self, workspace: str) -> ScanResult:
        self.calls.append(("workspace", workspace))
        return ScanResult(repos=self.repos[:1], workspace=workspace)


def settle(dashboard: Dashboard) -> None:
    """Wait for background work and deliver it to the state."""
    for future in (dashboard._scan, dashboard._panel):
        if future is not None:
            future.exception(timeout=10)
    dashboard.poll()


@pytest.fixture
def repos(make_repo, tmp_path: Path) -> List[Repo]:
    first = tmp_path / "api"
    second = tmp_path / "web"
    first.mkdir()
    second.mkdir()
    return [
        make_repo("api", branch="main", dirty=True, path=str(first)),
        make_repo("web", branch="develop", path=str(second)),
    ]


@pytest.fixture
def dashboard(repos, tmp_path: Path):
    config = Config()
    config.load_from_dict({"roots": [str(tmp_path)], "editor": "code"})
    board = Dashboard(config, manager=FakeManager(repos), console=Console(record=True))
    board.state.start_loading()
    board.request_scan()
    settle(board)
    yield board
    board._executor.shutdown(wait=True)


def screen(dashboard: Dashboard) -> str:
    console = Console(record=True, width=140)
    console.print(dashboard._render())
    return console.export_text()


def test_initial_scan_uses_cache_path(dashboard: Dashboard) -> None:
    assert dashboard.manager.calls == [("find", False)]
    assert dashboard.state.ui_state is UIState.READY
    assert dashboard.state.status_message == "Loaded 2 repos from cache"


def test_rescan_forces_scan(dashboard: Dashboard) -> None:
    dashboard.handle_key("r")
    assert dashboard.state.ui_state is UIState.LOADING
    settle(dashboard)
    assert dashboard.manager.calls[-1] == ("find", True)
    assert dashboard.state.status_message == "Found 2 repos"


def test_scan_failure_and_retry(repos, tmp_path: Path) -> None:
    manager = FakeManager(repos, error=ScanError("walk failed"))
    board = Dashboard(Config(), manager=manager)
    board.request_scan()
    settle(board)
    assert board.state.ui_state is UIState.ERROR
    assert "walk failed" in screen(board)

    manager.error = None
    board.handle_key("r")
    settle(board)
    assert board.state.ui_state is UIState.READY
    board._executor.shutdown(wait=True)


def test_navigation_keys(dashboard: Dashboard) -> None:
    dashboard.handle_key(KEY_DOWN)
    assert dashboard.state.selected_repo().name == "web"
    dashboard.handle_key("k")
    assert dashboard.state.selected_repo().name == "api"


def test_filter_and_sort_keys(dashboard: Dashboard) -> None:
    dashboard.handle_key("f")
    assert dashboard.state.filter_mode is FilterMode.DIRTY
    dashboard.handle_key("3")
    assert dashboard.state.sort_mode is SortMode.BRANCH
    dashboard.handle_key("s")
    assert dashboard.state.sort_mode is SortMode.LAST_COMMIT
    dashboard.handle_key("c")
    assert dashboard.state.filter_mode is FilterMode.ALL


def test_search_keys(dashboard: Dashboard) -> None:
    """Test that typing in search mode filters instead of running commands."""
    dashboard.handle_key("/")
    for key in "web":
        dashboard.handle_key(key)
    assert dashboard.state.ui_state is UIState.SEARCHING
    assert [r.name for r in dashboard.state.sorted_repos] == ["web"]
    assert "Search" in screen(dashboard)

    dashboard.handle_key("\r")
    assert dashboard.state.search_query == "web"

    dashboard.handle_key("/")
    dashboard.handle_key("\x7f")
    dashboard.handle_key(KEY_ESC)
    assert dashboard.state.search_query == "web"


def test_quit_is_text_while_searching(dashboard: Dashboard) -> None:
    dashboard.handle_key("/")
    dashboard.handle_key("q")
    assert dashboard.running
    assert dashboard.state.search_input == "q"
    dashboard.handle_key(KEY_ESC)
    dashboard.handle_key("q")
    assert not dashboard.running


def test_workspace_switch_scans_workspace(dashboard: Dashboard, tmp_path: Path) -> None:
    dashboard.handle_key("w")
    for key in str(tmp_path / "ap"):
        dashboard.handle_key(key)
    dashboard.handle_key(KEY_TAB)
    assert dashboard.state.workspace_input == str(tmp_path / "api") + "/"

    dashboard.handle_key("\r")
    assert dashboard.state.ui_state is UIState.LOADING
    settle(dashboard)

    workspace = str((tmp_path / "api").resolve())
    assert dashboard.manager.calls[-1] == ("workspace", workspace)
    assert dashboard.state.status_message == f"Switched to {workspace} (1 repos)"
    assert f"Workspace: {workspace}" in screen(dashboard)

    dashboard.handle_key("r")
    settle(dashboard)
    assert dashboard.manager.calls[-1] == ("workspace", workspace)


def test_workspace_switch_inline_error(dashboard: Dashboard, tmp_path: Path) -> None:
    dashboard.handle_key("w")
    for key in str(tmp_path / "missing"):
        dashboard.handle_key(key)
    dashboard.handle_key("\r")
    assert dashboard.state.ui_state is UIState.WORKSPACE_SWITCH
    assert "does not exist" in screen(dashboard)
    dashboard.handle_key(KEY_ESC)
    assert dashboard.state.ui_state is UIState.READY


def test_panels(dashboard: Dashboard) -> None:
    dashboard.handle_key("d")
    assert dashboard.state.active_panel is Panel.DISK
    settle(dashboard)
    assert isinstance(dashboard.disk, DiskUsageData)
    assert "across 2 repos" in dashboard.state.status_message
    assert "Disk Usage" in screen(dashboard)

    dashboard.handle_key("t")
    assert dashboard.state.active_panel is Panel.TIMELINE
    settle(dashboard)
    assert isinstance(dashboard.timeline, TimelineData)
    assert "Timeline" in screen(dashboard)

    dashboard.handle_key(KEY_ESC)
    assert dashboard.state.active_panel is Panel.NONE


def test_missing_editor_reports_instead_of_launching(
    dashboard: Dashboard, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(editor.shutil, "which", lambda name: None)
    calls = dashboard.manager.calls[:]
    dashboard.handle_key("\r")
    assert "not found in PATH" in dashboard.state.status_message
    assert dashboard.state.ui_state is UIState.READY
    assert dashboard.manager.calls == calls


def test_editor_exit_triggers_rescan(
    dashboard: Dashboard, monkeypatch: pytest.MonkeyPatch
) -> None:
    opened = []
    monkeypatch.setattr(editor.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(
        "gitscope.dashboard.open_in_editor", lambda command, path: opened.append(path) or 0
    )

    dashboard.handle_key("\r")

    assert opened == [dashboard.state.repos[0].path]
    assert dashboard.state.ui_state is UIState.LOADING
    settle(dashboard)
    assert dashboard.manager.calls[-1] == ("find", True)


def test_render_ready_screen(dashboard: Dashboard) -> None:
    text = screen(dashboard)
    assert "git-scope" in text
    assert "2 repos" in text
    assert "1 dirty" in text
    assert "api" in text and "develop" in text
    assert "Page 1/1" in text


def test_render_loading_lists_roots(tmp_path: Path) -> None:
    from gitscope.core.state import DashboardState

    console = Console(record=True, width=120)
    console.print(render(DashboardState(), [str(tmp_path)]))
    text = console.export_text()
    assert "Searching for git repos in:" in text
    assert str(tmp_path) in text


class FakeTerminal:
    """Terminal stand-in that records mode changes and always has a key waiting."""

    def __init__(self) -> None:
        self.active = True
        self.events: List[str] = []

    def start(self) -> None:
        self.active = True
        self.events.append("start")

    def stop(self) -> None:
        self.active = False
        self.events.append("stop")

    def key_ready(self, timeout: float) -> bool:
        return True


def test_keys_are_not_read_while_editor_runs(
    dashboard: Dashboard, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that the editor owns stdin and keys queued meanwhile are dropped."""
    terminal = FakeTerminal()
    dashboard._terminal = terminal
    reads = []
    monkeypatch.setattr(click, "getchar", lambda: reads.append(1) or "j")
    monkeypatch.setattr(editor.shutil, "which", lambda name: f"/usr/bin/{name}")

    def fake_editor(command: str, path: str) -> int:
        assert not terminal.active
        assert dashboard._read_key(timeout=0.01) is None
        dashboard._keys.put("q")
        dashboard._keys.put(KEY_DOWN)
        return 0

    monkeypatch.setattr("gitscope.dashboard.open_in_editor", fake_editor)

    dashboard._keys.put("x")
    dashboard.handle_key("\r")

    assert reads == []
    assert dashboard._keys.empty()
    assert terminal.events == ["stop", "start"]
    assert dashboard._read_key(timeout=0.01) == "j"
    assert reads == [1]


def test_failed_editor_launch_restores_input(
    dashboard: Dashboard, monkeypatch: pytest.MonkeyPatch
) -> None:
    terminal = FakeTerminal()
    dashboard._terminal = terminal
    monkeypatch.setattr(editor.shutil, "which", lambda name: f"/usr/bin/{name}")

    def failing_editor(command: str, path: str) -> int:
        raise EditorLaunchError("Failed to launch editor: denied")

    monkeypatch.setattr("gitscope.dashboard.open_in_editor", failing_editor)

    dashboard.handle_key("\r")

    assert "Failed to launch editor" in dashboard.state.status_message
    assert terminal.active
    assert dashboard._keys_enabled.is_set()
    assert dashboard.state.ui_state is UIState.READY
