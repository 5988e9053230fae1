"""Concurrent discovery of git repositories under a set of roots."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Set

from .errors import GitScopeError, ScanError
from .models import Repo, RepoStatus
from .status import inspect

logger = logging.getLogger(__name__)

GIT_MARKER = ".git"

# Directories that never hold a user's own repositories; always ignored
SMART_IGNORE_PATTERNS = frozenset(
    [
        # macOS/Linux system directories
        "Library",
        ".Trash",
        ".cache",
        ".local",
        # Package managers and runtimes
        ".npm",
        ".yarn",
        ".pnpm",
        ".bun",
        ".cargo",
        ".rustup",
        ".go",
        ".venv",
        ".pyenv",
        ".rbenv",
        ".nvm",
        ".sdkman",
        # IDE extensions
        ".vscode",
        ".vscode-server",
        ".cursor",
        ".zed",
        ".idea",
        ".atom",
        # Shell and tool configs
        ".oh-my-zsh",
        ".tmux",
        ".vim",
        ".emacs.d",
        ".gemini",
        # Docker/Cloud
        ".docker",
        ".kube",
        ".ssh",
        ".gnupg",
        # Cloud sync
        "Google Drive",
        "OneDrive",
        "Dropbox",
        "iCloud",
    ]
)

Inspector = Callable[[str], RepoStatus]


def build_ignore_set(ignore: Optional[Iterable[str]] = None) -> Set[str]:
    """Merge caller ignores with the built-in set."""
    ignore_set = set(SMART_IGNORE_PATTERNS)
    if ignore:
        ignore_set.update(pattern for pattern in ignore if pattern)
    return ignore_set


def should_ignore(name: str, ignore_set: Set[str]) -> bool:
    """Check a single path segment against the ignore set.

    A segment matches when it equals an ignore name or ends with one.
    """
    if name in ignore_set:
        return True
    return any(name.endswith(pattern) for pattern in ignore_set)


class _Collector:
    """Result list shared by the per-root workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._repos: List[Repo] = []

    def append(self, repo: Repo) -> None:
        with self._lock:
            self._repos.append(repo)

    @property
    def repos(self) -> List[Repo]:
        return list(self._repos)


def _inspect_repo(repo_path: str, inspector: Inspector) -> Repo:
    name = os.path.basename(repo_path)
    try:
        status = inspector(repo_path)
    except GitScopeError as e:
        logger.debug("Status failed for %s: %s", repo_path, e)
        status = RepoStatus(scan_error=str(e))
    return Repo(name=name, path=repo_path, status=status)


def _walk_root(
    root: str, ignore_set: Set[str], inspector: Inspector, collector: _Collector
) -> None:
    """Walk one root, inspecting every repository found beneath it."""

    def on_error(error: OSError) -> None:
        logger.debug("Skipping unreadable entry: %s", error)

    for dirpath, dirnames, _filenames in os.walk(root, onerror=on_error):
        kept = []
        for dirname in dirnames:
            if dirname == GIT_MARKER:
                collector.append(_inspect_repo(dirpath, inspector))
                continue
            if should_ignore(dirname, ignore_set):
                continue
            kept.append(dirname)
        # Prune in place so os.walk never descends into ignored trees or .git
        dirnames[:] = kept


def scan_roots(
    roots: List[str],
    ignore: Optional[Iterable[str]] = None,
    inspector: Inspector = inspect,
) -> List[Repo]:
    """Find every git repository under ``roots``.

    One worker runs per root; repositories below the same root are inspected
    one at a time by that root's worker. Missing roots are skipped.

    Args:
        roots: Absolute root directories, already expanded.
        ignore: Extra directory names (or name suffixes) to prune.
        inspector: Callable returning the status of a repository path.

    Returns:
        List[Repo]: Discovered repositories in no particular order. A
            repository whose status could not be read is still returned, with
            ``status.scan_error`` set.

    Raises:
        ScanError: If none of ``roots`` exist, or a worker fails for a reason
            other than a status query.
    """
    ignore_set = build_ignore_set(ignore)
    collector = _Collector()

    existing = []
    for root in roots:
        if not os.path.isdir(root):
            logger.debug("Skipping missing root %s", root)
            continue
        existing.append(root)

    if not existing:
        if roots:
            raise ScanError(f"None of the configured roots exist: {', '.join(roots)}")
        return []

    with ThreadPoolExecutor(max_workers=len(existing), thread_name_prefix="scan") as executor:
        futures = [
            (root, executor.submit(_walk_root, root, ignore_set, inspector, collector))
            for root in existing
        ]

    for root, future in futures:
        error = future.exception()
        if error is not None:
            raise ScanError(f"Scan of {root} failed: {error}") from error

    repos = collector.repos
    logger.info("Found %d repositories under %d roots", len(repos), len(existing))
    return repos
