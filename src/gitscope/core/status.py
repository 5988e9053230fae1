"""Git status inspection for a single repository.

The inspector runs ``git status --porcelain=v2 -b`` and a one-line
``git log`` inside the repository and folds their output into a
:class:`~gitscope.core.models.RepoStatus`.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .errors import StatusQueryError
from .models import RepoStatus, from_timestamp

logger = logging.getLogger(__name__)

# Seconds before a single git invocation is abandoned
DEFAULT_TIMEOUT = 10.0

HEADER_PREFIX = "#"
BRANCH_HEAD = "# branch.head "
BRANCH_AB = "# branch.ab "
DETACHED = "(detached)"

# Porcelain v2 entry codes
CHANGED = "1"
RENAMED = "2"
UNTRACKED = "?"
UNCHANGED = "."


def run_git_command(
    repo_path: Union[str, Path],
    command: List[str],
    error_message: str,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> str:
    """Run a git command inside ``repo_path`` and return its stdout.

    Raises:
        StatusQueryError: If git cannot be started, exits non-zero, or runs
            past ``timeout`` seconds.
    """
    full_command = ["git", "-C", str(repo_path)] + command
    try:
        result = subprocess.run(
            full_command,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        raise StatusQueryError(
            message=f"{error_message}: {(e.stderr or e.stdout or '').strip() or 'no output'}",
            command=" ".join(full_command),
            output=f"stdout: {e.stdout}\nstderr: {e.stderr}",
        ) from e
    except subprocess.TimeoutExpired as e:
        raise StatusQueryError(
            message=f"{error_message}: timed out after {timeout}s",
            command=" ".join(full_command),
        ) from e
    except OSError as e:
        raise StatusQueryError(
            message=f"{error_message}: {e}",
            command=" ".join(full_command),
        ) from e
    return result.stdout


@dataclass
class _Counts:
    """Mutable accumulator used while parsing."""

    branch: str = ""
    ahead: int = 0
    behind: int = 0
    staged: int = 0
    unstaged: int = 0
    untracked: int = 0


def _apply_header(counts: _Counts, line: str) -> None:
    if line.startswith(BRANCH_HEAD):
        head = line[len(BRANCH_HEAD) :]
        counts.branch = "" if head == DETACHED else head
        return

    if line.startswith(BRANCH_AB):
        parsed = parse_ahead_behind(line)
        if parsed is not None:
            counts.ahead, counts.behind = parsed


def parse_ahead_behind(line: str) -> Optional[Tuple[int, int]]:
    """Extract ``(ahead, behind)`` from a ``# branch.ab +N -M`` header.

    Returns None when the line does not have that shape.
    """
    parts = line.split()
    if len(parts) < 4:
        return None
    ahead, behind = parts[2], parts[3]
    if not ahead.startswith("+") or not behind.startswith("-"):
        return None
    try:
        ahead_count = int(ahead[1:])
        behind_count = int(behind[1:])
    except ValueError:
        return None
    if ahead_count < 0 or behind_count < 0:
        return None
    return ahead_count, behind_count


def _apply_entry(counts: _Counts, line: str) -> None:
    code = line[:2]
    if code in (CHANGED + " ", RENAMED + " "):
        parts = line.split(" ", 2)
        if len(parts) < 2 or len(parts[1]) < 2:
            return
        xy = parts[1]
        if xy[0] != UNCHANGED:
            counts.staged += 1
        if xy[1] != UNCHANGED:
            counts.unstaged += 1
    elif code == UNTRACKED + " ":
        counts.untracked += 1


def parse_porcelain(output: str) -> RepoStatus:
    """Parse ``git status --porcelain=v2 -b`` output.

    Lines that do not look like a known header or entry are skipped and the
    affected fields keep their defaults.

    Example:
        ```python
        status = parse_porcelain(
            "# branch.head main\\n"
            "# branch.ab +2 -0\\n"
            "? notes.txt\\n"
        )
        status.branch, status.ahead, status.untracked  # ("main", 2, 1)
        ```
    """
    counts = _Counts()
    for line in output.splitlines():
        if not line:
            continue
        if line.startswith(HEADER_PREFIX):
            _apply_header(counts, line)
        else:
            _apply_entry(counts, line)

    return RepoStatus(
        branch=counts.branch,
        ahead=counts.ahead,
        behind=counts.behind,
        staged=counts.staged,
        unstaged=counts.unstaged,
        untracked=counts.untracked,
    )


def last_commit_time(
    repo_path: Union[str, Path], timeout: Optional[float] = DEFAULT_TIMEOUT
) -> Optional[datetime]:
    """Return the time of the newest commit.

    Returns None when git prints no timestamp.

    Raises:
        StatusQueryError: If git log fails, which includes a branch with no
            commits yet.
    """
    output = run_git_command(
        repo_path,
        ["log", "-1", "--format=%ct"],
        "Failed to read last commit",
        timeout=timeout,
    )

    stamp = output.strip()
    if not stamp:
        return None
    try:
        return from_timestamp(int(stamp))
    except ValueError as e:
        raise StatusQueryError(f"Unexpected commit timestamp {stamp!r}") from e


def inspect(repo_path: Union[str, Path], timeout: Optional[float] = DEFAULT_TIMEOUT) -> RepoStatus:
    """Read the full status of the repository at ``repo_path``.

    Args:
        repo_path: Repository working tree (the parent of its ``.git``).
        timeout: Deadline in seconds for each git invocation, None for no limit.

    Returns:
        RepoStatus: Branch, divergence and change counts plus last commit time.

    Raises:
        StatusQueryError: If git status fails or times out.
    """
    output = run_git_command(
        repo_path,
        ["status", "--porcelain=v2", "-b"],
        "Failed to check repository status",
        timeout=timeout,
    )
    status = parse_porcelain(output)

    try:
        commit_time = last_commit_time(repo_path, timeout=timeout)
    except StatusQueryError as e:
        logger.debug("Could not read last commit in %s: %s", repo_path, e)
        commit_time = None

    return replace(status, last_commit=commit_time)
