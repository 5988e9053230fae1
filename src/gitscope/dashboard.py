"""Interactive terminal dashboard.

Rendering is a pure function of :class:`~gitscope.core.state.DashboardState`
and a style mapping. :class:`Dashboard` runs the event loop: a rich ``Live``
display on the main thread, a daemon thread reading keys, and a worker pool
for scans and panel data so the display keeps animating while git runs.
"""

from __future__ import annotations

import logging
import queue
import select
import sys
import termios
import threading
import tty
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, TextIO

import click
from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel as RichPanel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from .core.config import Config
from .core.editor import open_in_editor, parse_editor_command
from .core.errors import EditorLaunchError
from .core.models import Repo
from .core.repository import RepositoryManager
from .core.state import DashboardState, Panel, SortMode, UIState
from .core.stats import DiskUsageData, TimelineData, format_bytes, get_disk_usage, get_timeline

logger = logging.getLogger(__name__)

DEFAULT_STYLES: Dict[str, str] = {
    "title": "bold white on #7C3AED",
    "header": "bold white",
    "border": "#7C3AED",
    "dirty": "bold yellow",
    "clean": "green",
    "branch": "cyan",
    "selected": "bold black on #A78BFA",
    "muted": "grey50",
    "error": "bold red",
    "status": "italic #A78BFA",
    "key": "bold #A78BFA",
    "path": "cyan",
}

KEY_ENTER = ("\r", "\n")
KEY_ESC = "\x1b"
KEY_TAB = "\t"
KEY_BACKSPACE = ("\x7f", "\x08")
KEY_CTRL_C = "\x03"
KEY_UP = ("\x1b[A", "\x1bOA")
KEY_DOWN = ("\x1b[B", "\x1bOB")
KEY_RIGHT = ("\x1b[C", "\x1bOC")
KEY_LEFT = ("\x1b[D", "\x1bOD")

SORT_KEYS = {
    "1": SortMode.DIRTY_FIRST,
    "2": SortMode.NAME,
    "3": SortMode.BRANCH,
    "4": SortMode.LAST_COMMIT,
}

KEY_POLL_INTERVAL = 0.1


class TerminalInput:
    """Keeps stdin in cbreak mode so single key presses can be detected.

    :meth:`key_ready` lets the reader call :func:`click.getchar` only when a
    key is already waiting, so it never sits blocked on stdin.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdin
        self._saved: Optional[list] = None

    @property
    def active(self) -> bool:
        return self._saved is not None

    def start(self) -> None:
        if self.active or not self.stream.isatty():
            return
        fd = self.stream.fileno()
        self._saved = termios.tcgetattr(fd)
        tty.setcbreak(fd)

    def stop(self) -> None:
        if self._saved is None:
            return
        termios.tcsetattr(self.stream.fileno(), termios.TCSADRAIN, self._saved)
        self._saved = None

    def key_ready(self, timeout: float) -> bool:
        ready, _, _ = select.select([self.stream], [], [], timeout)
        return bool(ready)


def _is_printable(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


def _truncate(value: str, max_len: int) -> str:
    if len(value) <= max_len:
        return value
    return value[: max_len - 1] + "…"


def _count(value: int) -> str:
    return str(value) if value else "—"


def _help(items: List[tuple], styles: Dict[str, str]) -> Text:
    text = Text()
    for i, (key, label) in enumerate(items):
        if i:
            text.append("  •  ", style=styles["muted"])
        text.append(key, style=styles["key"])
        text.append(f" {label}", style=styles["muted"])
    return text


def render_table(state: DashboardState, styles: Dict[str, str]) -> Table:
    """Render the current page of repositories."""
    table = Table(
        expand=True,
        border_style=styles["border"],
        header_style=styles["header"],
        show_lines=False,
    )
    table.add_column("Status", width=8, no_wrap=True)
    table.add_column("Repository", min_width=18, no_wrap=True)
    table.add_column("Branch", min_width=14, no_wrap=True, style=styles["branch"])
    table.add_column("Staged", justify="right")
    table.add_column("Modified", justify="right")
    table.add_column("Untracked", justify="right")
    table.add_column("Last Commit", no_wrap=True)

    for row, repo in enumerate(state.page_repos()):
        status = repo.status
        if status.scan_error:
            badge = Text("✗ Error", style=styles["error"])
        elif status.is_dirty:
            badge = Text("● Dirty", style=styles["dirty"])
        else:
            badge = Text("✓ Clean", style=styles["clean"])
        last_commit = status.last_commit.strftime("%b %d %H:%M") if status.last_commit else "N/A"
        table.add_row(
            badge,
            _truncate(repo.name, 30),
            _truncate(status.branch, 20),
            _count(status.staged),
            _count(status.unstaged),
            _count(status.untracked),
            last_commit,
            style=styles["selected"] if row == state.cursor else None,
        )
    return table


def render_disk_panel(data: Optional[DiskUsageData], styles: Dict[str, str]) -> RichPanel:
    if data is None:
        body: RenderableType = Text("Calculating disk usage...", style=styles["muted"])
    else:
        table = Table.grid(padding=(0, 2))
        table.add_column()
        table.add_column(justify="right")
        for entry in data.entries[:15]:
            table.add_row(_truncate(entry.name, 24), format_bytes(entry.size))
        table.add_row(Text("Total", style=styles["header"]), format_bytes(data.total_size))
        body = table
    return RichPanel(body, title="Disk Usage", border_style=styles["border"])


def render_timeline_panel(data: Optional[TimelineData], styles: Dict[str, str]) -> RichPanel:
    if data is None:
        body: RenderableType = Text("Loading timeline...", style=styles["muted"])
    elif not data.entries:
        body = Text("No commits in the last 7 days", style=styles["muted"])
    else:
        table = Table.grid(padding=(0, 2))
        for entry in data.entries[:15]:
            marker = Text("●", style=styles["dirty"] if entry.is_dirty else styles["clean"])
            table.add_row(
                Text(entry.day_label, style=styles["muted"]),
                marker,
                _truncate(entry.name, 24),
                Text(_truncate(entry.branch, 16), style=styles["branch"]),
            )
        body = table
    return RichPanel(body, title="Timeline", border_style=styles["border"])


def render(
    state: DashboardState,
    roots: List[str],
    styles: Optional[Dict[str, str]] = None,
    disk: Optional[DiskUsageData] = None,
    timeline: Optional[TimelineData] = None,
    spinner: Optional[Spinner] = None,
) -> RenderableType:
    """Build the whole screen for ``state``."""
    styles = styles or DEFAULT_STYLES
    title = Text(" git-scope ", style=styles["title"])

    if state.ui_state is UIState.LOADING:
        lines: List[RenderableType] = [
            Text.assemble(title, "  "),
            spinner or Spinner("dots", text="Scanning repositories..."),
            Text("Searching for git repos in:", style=styles["muted"]),
        ]
        targets = [state.active_workspace] if state.active_workspace else roots
        lines.extend(Text(f"  → {root}", style=styles["path"]) for root in targets)
        if state.status_message:
            lines.append(Text(state.status_message, style=styles["status"]))
        lines.append(_help([("q", "quit")], styles))
        return Group(*lines)

    if state.ui_state is UIState.ERROR:
        message = str(state.error) if state.error else "Unknown error occurred"
        return Group(
            Text.assemble(title, "  ", Text("✗ Error", style=styles["error"])),
            RichPanel(Text(message), border_style="red"),
            _help([("q", "quit"), ("r", "retry")], styles),
        )

    dirty = state.dirty_count
    summary = Text.assemble(
        title,
        "  ",
        (f"{len(state.repos)} repos", styles["header"]),
        "  ",
        (f"{dirty} dirty", styles["dirty"]),
        "  ",
        (f"{len(state.repos) - dirty} clean", styles["clean"]),
        "  ",
        (f"Filter: {state.filter_mode.value}", styles["muted"]),
        "  ",
        (f"Sort: {state.sort_mode.value}", styles["muted"]),
        "  ",
        (f"Page {state.current_page + 1}/{state.total_pages}", styles["muted"]),
    )
    parts: List[RenderableType] = [summary]

    if state.active_workspace:
        parts.append(Text(f"Workspace: {state.active_workspace}", style=styles["path"]))

    if state.ui_state is UIState.SEARCHING:
        parts.append(
            RichPanel(
                Text(state.search_input + "▏"),
                title="Search",
                border_style=styles["border"],
            )
        )
    elif state.search_query:
        parts.append(Text(f"🔍 {state.search_query}", style=styles["status"]))

    table = render_table(state, styles)
    if state.active_panel is Panel.DISK:
        side: Optional[RenderableType] = render_disk_panel(disk, styles)
    elif state.active_panel is Panel.TIMELINE:
        side = render_timeline_panel(timeline, styles)
    else:
        side = None

    if side is not None:
        layout = Table.grid(expand=True)
        layout.add_column(ratio=3)
        layout.add_column(ratio=2)
        layout.add_row(table, side)
        parts.append(layout)
    else:
        parts.append(table)

    if state.ui_state is UIState.WORKSPACE_SWITCH:
        body = Text(state.workspace_input + "▏")
        if state.workspace_error:
            body.append(f"\n{state.workspace_error}", style=styles["error"])
        parts.append(
            RichPanel(
                body,
                title="Switch Workspace (tab to complete, enter to scan, esc to cancel)",
                border_style=styles["border"],
            )
        )

    if state.status_message:
        parts.append(Text(state.status_message, style=styles["status"]))

    parts.append(
        _help(
            [
                ("enter", "open"),
                ("/", "search"),
                ("f", "filter"),
                ("s", "sort"),
                ("c", "clear"),
                ("w", "workspace"),
                ("d", "disk"),
                ("t", "timeline"),
                ("r", "rescan"),
                ("q", "quit"),
            ],
            styles,
        )
    )
    return Group(*parts)


class Dashboard:
    """Event loop tying key presses, scans and rendering together.

    Attributes:
        config (Config): Roots, ignore names and editor command.
        manager (RepositoryManager): Runs scans and the cached fast path.
        state (DashboardState): Everything the screen shows.
    """

    def __init__(
        self,
        config: Config,
        manager: Optional[RepositoryManager] = None,
        console: Optional[Console] = None,
        styles: Optional[Dict[str, str]] = None,
        force_refresh: bool = False,
        terminal: Optional[TerminalInput] = None,
    ):
        """Initialize the dashboard."""
        self.config = config
        self.manager = manager or RepositoryManager(config)
        self.console = console or Console()
        self.styles = styles or DEFAULT_STYLES
        self.state = DashboardState()
        self.disk: Optional[DiskUsageData] = None
        self.timeline: Optional[TimelineData] = None
        self.running = True
        self._force_refresh = force_refresh
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="dashboard")
        self._scan: Optional[Future] = None
        self._panel: Optional[Future] = None
        self._keys: "queue.Queue[str]" = queue.Queue()
        self._terminal = terminal or TerminalInput()
        self._keys_enabled = threading.Event()
        self._keys_enabled.set()
        self._stdin_lock = threading.Lock()
        self._live: Optional[Live] = None
        self._spinner = Spinner("dots", text="Scanning repositories...")

    # -- background work --------------------------------------------------

    def request_scan(self, force: bool = False) -> None:
        """Start a scan of the active workspace or the configured roots."""
        workspace = self.state.active_workspace
        if workspace is not None:
            self._scan = self._executor.submit(self.manager.scan_workspace, workspace)
        else:
            self._scan = self._executor.submit(self.manager.find_repositories, force_scan=force)

    def _load_panel(self, loader: Callable[[List[Repo]], Any]) -> None:
        repos = list(self.state.repos)
        self._panel = self._executor.submit(loader, repos)

    def poll(self) -> None:
        """Deliver finished background work to the state."""
        if self._scan is not None and self._scan.done():
            future, self._scan = self._scan, None
            error = future.exception()
            if error is not None:
                self.state.scan_failed(error)
            else:
                self.state.scan_succeeded(future.result())

        if self._panel is not None and self._panel.done():
            future, self._panel = self._panel, None
            error = future.exception()
            if error is not None:
                logger.debug("Panel data failed: %s", error)
                self.state.status_message = f"Error: {error}"
                return
            data = future.result()
            if isinstance(data, DiskUsageData):
                self.disk = data
                self.state.status_message = (
                    f"{format_bytes(data.total_size)} total across {data.repo_count} repos"
                )
            elif isinstance(data, TimelineData):
                self.timeline = data
                self.state.status_message = f"{len(data.entries)} repos with recent activity"

    # -- editor -----------------------------------------------------------

    def check_editor(self) -> None:
        try:
            parse_editor_command(self.config.editor)
        except EditorLaunchError as e:
            self.state.status_message = f"{e}. Install it or edit your git-scope config."
            return
        self.state.status_message = f"Editor: {self.config.editor}"

    def open_selected(self) -> None:
        """Open the repository under the cursor, then rescan."""
        repo = self.state.selected_repo()
        if repo is None:
            return
        try:
            parse_editor_command(self.config.editor)
        except EditorLaunchError as e:
            self.state.status_message = str(e)
            return

        try:
            with self.suspended():
                open_in_editor(self.config.editor, repo.path)
            self.state.status_message = ""
        except EditorLaunchError as e:
            self.state.status_message = f"Error: {e}"
            return

        self.state.start_loading("Rescanning...")
        self.request_scan(force=True)

    # -- keys -------------------------------------------------------------

    def handle_key(self, key: str) -> None:
        """Apply one key press to the state."""
        state = self.state
        if key == KEY_CTRL_C:
            self.running = False
            return

        if state.ui_state is UIState.SEARCHING:
            self._handle_search_key(key)
            return
        if state.ui_state is UIState.WORKSPACE_SWITCH:
            self._handle_workspace_key(key)
            return

        if key == "q":
            self.running = False
            return

        if state.ui_state is UIState.ERROR:
            if key == "r":
                state.start_loading("Retrying...")
                self.request_scan(force=True)
            return

        if state.ui_state is not UIState.READY:
            return

        if key == "/":
            state.start_search()
        elif key in KEY_ENTER:
            self.open_selected()
        elif key == "r":
            state.start_loading("Rescanning...")
            self.request_scan(force=True)
        elif key == "f":
            state.cycle_filter()
        elif key == "s":
            state.cycle_sort()
        elif key in SORT_KEYS:
            state.set_sort(SORT_KEYS[key])
        elif key == "c":
            state.clear_filters()
        elif key == "e":
            self.check_editor()
        elif key == "w":
            state.start_workspace_switch()
        elif key == "d":
            if state.toggle_panel(Panel.DISK):
                self.disk = None
                state.status_message = "Calculating disk usage..."
                self._load_panel(get_disk_usage)
        elif key == "t":
            if state.toggle_panel(Panel.TIMELINE):
                self.timeline = None
                state.status_message = "Loading timeline..."
                self._load_panel(get_timeline)
        elif key == KEY_ESC:
            state.close_panel()
        elif key in KEY_DOWN or key == "j":
            state.move_cursor(1)
        elif key in KEY_UP or key == "k":
            state.move_cursor(-1)
        elif key in KEY_RIGHT or key == "n":
            state.next_page()
        elif key in KEY_LEFT or key == "p":
            state.prev_page()

    def _handle_search_key(self, key: str) -> None:
        state = self.state
        if key == KEY_ESC:
            state.cancel_search()
        elif key in KEY_ENTER:
            state.confirm_search()
        elif key in KEY_BACKSPACE:
            state.search_backspace()
        elif _is_printable(key):
            state.type_search(key)

    def _handle_workspace_key(self, key: str) -> None:
        state = self.state
        if key == KEY_ESC:
            state.cancel_workspace_switch()
        elif key in KEY_ENTER:
            if state.submit_workspace() is not None:
                self.request_scan()
        elif key == KEY_TAB:
            state.complete_workspace()
        elif key in KEY_BACKSPACE:
            state.workspace_backspace()
        elif _is_printable(key):
            state.type_workspace(key)

    # -- loop -------------------------------------------------------------

    @contextmanager
    def suspended(self) -> Iterator[None]:
        """Hand the terminal to a foreground program such as an editor.

        Key reading stops before the program starts. Keys queued before or
        during the run are discarded afterwards.
        """
        with self._stdin_lock:
            self._keys_enabled.clear()
        was_active = self._terminal.active
        if self._live is not None:
            self._live.stop()
        self._terminal.stop()
        try:
            yield
        finally:
            if was_active:
                self._terminal.start()
            if self._live is not None:
                self._live.start()
            self._drain_keys()
            self._keys_enabled.set()

    def _drain_keys(self) -> None:
        while True:
            try:
                self._keys.get_nowait()
            except queue.Empty:
                return

    def _read_key(self, timeout: float = KEY_POLL_INTERVAL) -> Optional[str]:
        """Read one key if input is enabled and a key is waiting."""
        if not self._keys_enabled.wait(timeout):
            return None
        if not self._terminal.key_ready(timeout):
            return None
        with self._stdin_lock:
            # Suspended between the readiness check and here
            if not self._keys_enabled.is_set():
                return None
            try:
                return click.getchar()
            except (KeyboardInterrupt, EOFError):
                return KEY_CTRL_C

    def _read_keys(self) -> None:
        while self.running:
            key = self._read_key()
            if key is not None:
                self._keys.put(key)

    def _render(self) -> RenderableType:
        return render(
            self.state,
            self.config.roots,
            styles=self.styles,
            disk=self.disk,
            timeline=self.timeline,
            spinner=self._spinner,
        )

    def run(self) -> None:
        """Run until the user quits."""
        self.state.start_loading()
        self.request_scan(force=self._force_refresh)
        self._terminal.start()
        threading.Thread(target=self._read_keys, name="keys", daemon=True).start()

        try:
            with Live(
                self._render(),
                console=self.console,
                screen=True,
                auto_refresh=True,
                refresh_per_second=12,
            ) as live:
                self._live = live
                while self.running:
                    try:
                        key = self._keys.get(timeout=0.08)
                    except queue.Empty:
                        key = None
                    if key is not None:
                        self.handle_key(key)
                    self.poll()
                    live.update(self._render())
        except KeyboardInterrupt:
            # cbreak mode leaves ctrl+c as a signal between key reads
            logger.debug("Interrupted")
        finally:
            self.running = False
            self._live = None
            self._terminal.stop()
            self._executor.shutdown(wait=False, cancel_futures=True)
