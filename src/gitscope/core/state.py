"""Presentation state for the dashboard.

:class:`DashboardState` owns the scanned repositories and every input that
shapes what the user sees: filter mode, sort mode, search query and the
pagination cursor. Whenever one of those inputs changes the visible list is
recomputed in a fixed order: filter, then search, then sort. Pagination
slices the result.

The state knows nothing about terminals. The dashboard feeds it key presses
and scan results and renders whatever it holds.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from .errors import InvalidPathError
from .models import Repo
from .repository import ScanResult
from .workspace import complete_directory_path, normalize_workspace_path

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 15


class UIState(Enum):
    """Which screen the dashboard is showing."""

    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    SEARCHING = "searching"
    WORKSPACE_SWITCH = "workspace_switch"


class FilterMode(Enum):
    """Which repositories are visible, cycled in declaration order."""

    ALL = "All"
    DIRTY = "Dirty Only"
    CLEAN = "Clean Only"


class SortMode(Enum):
    """How visible repositories are ordered, cycled in declaration order."""

    DIRTY_FIRST = "Dirty First"
    NAME = "Name"
    BRANCH = "Branch"
    LAST_COMMIT = "Recent"


class Panel(Enum):
    """Optional side panel next to the repository table."""

    NONE = "none"
    DISK = "disk"
    TIMELINE = "timeline"


def _next(member: Enum) -> Enum:
    members = list(type(member))
    return members[(members.index(member) + 1) % len(members)]


def filter_repos(repos: List[Repo], mode: FilterMode) -> List[Repo]:
    """Keep the repositories selected by ``mode``."""
    if mode is FilterMode.DIRTY:
        return [r for r in repos if r.status.is_dirty]
    if mode is FilterMode.CLEAN:
        return [r for r in repos if not r.status.is_dirty]
    return list(repos)


def search_repos(repos: List[Repo], query: str) -> List[Repo]:
    """Case-insensitive substring match on name and branch.

    The path is not searched so that a parent directory's name does not
    match every repository below it.
    """
    if not query:
        return list(repos)
    needle = query.lower()
    return [
        r for r in repos if needle in r.name.lower() or needle in r.status.branch.lower()
    ]


def sort_repos(repos: List[Repo], mode: SortMode) -> List[Repo]:
    """Return ``repos`` ordered by ``mode``."""
    if mode is SortMode.DIRTY_FIRST:
        return sorted(repos, key=lambda r: (not r.status.is_dirty, r.name))
    if mode is SortMode.NAME:
        return sorted(repos, key=lambda r: r.name)
    if mode is SortMode.BRANCH:
        return sorted(repos, key=lambda r: r.status.branch)
    # Newest first; repositories without commits go last
    return sorted(
        repos,
        key=lambda r: r.status.last_commit.timestamp() if r.status.last_commit else float("-inf"),
        reverse=True,
    )


class DashboardState:
    """State machine behind the interactive dashboard.

    Attributes:
        ui_state (UIState): Current screen.
        repos (List[Repo]): Every repository from the last scan.
        filtered_repos (List[Repo]): ``repos`` after filter mode and search.
        sorted_repos (List[Repo]): ``filtered_repos`` in sort order; the
            authoritative visible list.
        filter_mode (FilterMode): Active filter.
        sort_mode (SortMode): Active sort.
        search_query (str): Query applied to the visible list.
        search_input (str): Text in the search box while searching.
        current_page (int): Zero-based page into ``sorted_repos``.
        cursor (int): Row within the current page.
        page_size (int): Rows per page.
        workspace_input (str): Text in the workspace box.
        workspace_error (str): Inline validation message for the workspace box.
        active_workspace (Optional[str]): Workspace chosen at runtime, if any.
        active_panel (Panel): Side panel being shown.
        status_message (str): One-line transient message.
        error (Optional[BaseException]): Failure that put the state in ERROR.
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE):
        """Initialize an empty state waiting for its first scan."""
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.ui_state = UIState.LOADING
        self.repos: List[Repo] = []
        self.filtered_repos: List[Repo] = []
        self.sorted_repos: List[Repo] = []
        self.filter_mode = FilterMode.ALL
        self.sort_mode = SortMode.DIRTY_FIRST
        self.search_query = ""
        self.search_input = ""
        self._committed_query = ""
        self.current_page = 0
        self.cursor = 0
        self.page_size = page_size
        self.workspace_input = ""
        self.workspace_error = ""
        self.active_workspace: Optional[str] = None
        self.active_panel = Panel.NONE
        self.status_message = ""
        self.error: Optional[BaseException] = None

    # -- derived view -----------------------------------------------------

    def _recompute(self) -> None:
        visible = filter_repos(self.repos, self.filter_mode)
        self.filtered_repos = search_repos(visible, self.search_query)
        self.sorted_repos = sort_repos(self.filtered_repos, self.sort_mode)

    def _recompute_and_reset_page(self) -> None:
        self._recompute()
        self.current_page = 0
        self.cursor = 0

    @property
    def total_pages(self) -> int:
        """Number of pages, at least one."""
        if not self.sorted_repos:
            return 1
        return (len(self.sorted_repos) + self.page_size - 1) // self.page_size

    def page_repos(self) -> List[Repo]:
        """Repositories on the current page."""
        start = self.current_page * self.page_size
        return self.sorted_repos[start : start + self.page_size]

    def absolute_index(self) -> int:
        """Index into ``sorted_repos`` of the row under the cursor."""
        return self.current_page * self.page_size + self.cursor

    def selected_repo(self) -> Optional[Repo]:
        """The repository under the cursor, or None if there is none."""
        if self.ui_state is not UIState.READY:
            return None
        index = self.absolute_index()
        if 0 <= index < len(self.sorted_repos):
            return self.sorted_repos[index]
        return None

    @property
    def dirty_count(self) -> int:
        return sum(1 for r in self.repos if r.status.is_dirty)

    # -- scanning ---------------------------------------------------------

    def start_loading(self, message: str = "") -> None:
        """Enter LOADING for a scan, a rescan or a retry."""
        self.ui_state = UIState.LOADING
        self.error = None
        self.status_message = message

    def scan_succeeded(self, result: ScanResult) -> None:
        """Replace every repository with a completed scan's result."""
        self.repos = list(result.repos)
        self.ui_state = UIState.READY
        self.error = None
        self._recompute()
        if self.current_page >= self.total_pages:
            self.current_page = self.total_pages - 1
        self._clamp_cursor()

        count = len(self.repos)
        if result.workspace is not None:
            if count == 0:
                self.status_message = f"No git repos found in {result.workspace}"
            else:
                self.status_message = f"Switched to {result.workspace} ({count} repos)"
        elif count == 0:
            self.status_message = (
                "No git repos found in configured directories. "
                "Press 'r' to rescan or run 'git-scope init' to configure."
            )
        elif result.from_cache:
            self.status_message = f"Loaded {count} repos from cache"
        else:
            self.status_message = f"Found {count} repos"

    def scan_failed(self, error: BaseException) -> None:
        """Enter ERROR after a scan could not complete."""
        logger.debug("Scan failed: %s", error)
        self.ui_state = UIState.ERROR
        self.error = error

    # -- filter and sort --------------------------------------------------

    def set_filter(self, mode: FilterMode) -> None:
        self.filter_mode = mode
        self._recompute_and_reset_page()
        self.status_message = f"Filter: {mode.value}"

    def cycle_filter(self) -> None:
        self.set_filter(_next(self.filter_mode))

    def set_sort(self, mode: SortMode) -> None:
        self.sort_mode = mode
        self._recompute_and_reset_page()
        self.status_message = f"Sorted by: {mode.value}"

    def cycle_sort(self) -> None:
        self.set_sort(_next(self.sort_mode))

    def clear_filters(self) -> None:
        """Drop the search query and show all repositories."""
        self.search_query = ""
        self.search_input = ""
        self._committed_query = ""
        self.filter_mode = FilterMode.ALL
        self._recompute_and_reset_page()
        self.status_message = "Filters cleared"

    # -- search -----------------------------------------------------------

    def start_search(self) -> None:
        if self.ui_state is not UIState.READY:
            return
        self.ui_state = UIState.SEARCHING
        self._committed_query = self.search_query
        self.search_input = self.search_query

    def set_search_input(self, text: str) -> None:
        """Replace the search box text and apply it immediately."""
        if self.ui_state is not UIState.SEARCHING:
            return
        self.search_input = text
        self.search_query = text
        self._recompute_and_reset_page()

    def type_search(self, char: str) -> None:
        self.set_search_input(self.search_input + char)

    def search_backspace(self) -> None:
        self.set_search_input(self.search_input[:-1])

    def confirm_search(self) -> None:
        """Commit the typed query and return to READY."""
        if self.ui_state is not UIState.SEARCHING:
            return
        self.search_query = self.search_input
        self._committed_query = self.search_query
        self.ui_state = UIState.READY
        self._recompute_and_reset_page()
        if self.search_query:
            self.status_message = f"Searching: {self.search_query}"
        else:
            self.status_message = "Search cleared"

    def cancel_search(self) -> None:
        """Discard the typed query, restoring the last committed one."""
        if self.ui_state is not UIState.SEARCHING:
            return
        self.ui_state = UIState.READY
        self.search_input = self._committed_query
        if self.search_query != self._committed_query:
            self.search_query = self._committed_query
            self._recompute_and_reset_page()

    # -- workspace switch -------------------------------------------------

    def start_workspace_switch(self) -> None:
        if self.ui_state is not UIState.READY:
            return
        self.ui_state = UIState.WORKSPACE_SWITCH
        self.workspace_input = ""
        self.workspace_error = ""

    def set_workspace_input(self, text: str) -> None:
        if self.ui_state is not UIState.WORKSPACE_SWITCH:
            return
        self.workspace_input = text
        self.workspace_error = ""

    def type_workspace(self, char: str) -> None:
        self.set_workspace_input(self.workspace_input + char)

    def workspace_backspace(self) -> None:
        self.set_workspace_input(self.workspace_input[:-1])

    def complete_workspace(self) -> None:
        """Tab-complete the workspace box."""
        if self.ui_state is not UIState.WORKSPACE_SWITCH or not self.workspace_input:
            return
        completed = complete_directory_path(self.workspace_input)
        if completed != self.workspace_input:
            self.workspace_input = completed

    def submit_workspace(self) -> Optional[str]:
        """Validate the workspace box.

        Returns:
            Optional[str]: The normalized workspace path, after which the
                state is LOADING and the caller should scan it; None if the
                input was rejected, leaving an inline error.
        """
        if self.ui_state is not UIState.WORKSPACE_SWITCH:
            return None
        if not self.workspace_input:
            self.workspace_error = "Please enter a path"
            return None
        try:
            path = normalize_workspace_path(self.workspace_input)
        except InvalidPathError as e:
            self.workspace_error = str(e)
            return None

        self.workspace_error = ""
        self.active_workspace = path
        self.start_loading(f"Switching to {path}...")
        return path

    def cancel_workspace_switch(self) -> None:
        if self.ui_state is not UIState.WORKSPACE_SWITCH:
            return
        self.ui_state = UIState.READY
        self.workspace_error = ""

    # -- pagination -------------------------------------------------------

    def _clamp_cursor(self) -> None:
        rows = len(self.page_repos())
        self.cursor = min(max(self.cursor, 0), max(rows - 1, 0))

    def move_cursor(self, delta: int) -> None:
        """Move the cursor within the current page."""
        self.cursor += delta
        self._clamp_cursor()

    def next_page(self) -> bool:
        if self.current_page >= self.total_pages - 1:
            return False
        self.current_page += 1
        self.cursor = 0
        return True

    def prev_page(self) -> bool:
        if self.current_page <= 0:
            return False
        self.current_page -= 1
        self.cursor = 0
        return True

    # -- panels -----------------------------------------------------------

    def toggle_panel(self, panel: Panel) -> bool:
        """Show ``panel``, or hide it if it is already shown.

        Returns:
            bool: True when the panel is now shown.
        """
        if self.active_panel is panel:
            self.active_panel = Panel.NONE
            self.status_message = ""
            return False
        self.active_panel = panel
        return True

    def close_panel(self) -> bool:
        if self.active_panel is Panel.NONE:
            return False
        self.active_panel = Panel.NONE
        self.status_message = ""
        return True
