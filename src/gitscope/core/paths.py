"""Path expansion helpers used wherever a user supplies a directory."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List


def home_dir() -> str:
    """Return the current user's home directory."""
    return str(Path.home())


def expand_home(path: str) -> str:
    """Expand a leading ``~`` (bare or followed by a separator).

    ``~user`` forms are left alone.
    """
    if path == "~":
        return home_dir()
    if path.startswith("~/") or path.startswith("~" + os.sep):
        return os.path.join(home_dir(), path[2:])
    return path


def expand_path(path: str) -> str:
    """Return an absolute path with ``~`` and relative segments resolved.

    Symbolic links are not resolved and the path is not required to exist.

    Example:
        ```python
        expand_path("~/code")   # "/home/me/code"
        expand_path("work/..")  # the current working directory
        ```
    """
    path = expand_home(path)
    return os.path.abspath(path)


def contract_home(path: str) -> str:
    """Rewrite ``path`` to use the ``~`` shorthand when it lives under home."""
    home = home_dir()
    if path == home:
        return "~"
    if path.startswith(home.rstrip(os.sep) + os.sep):
        return "~" + path[len(home.rstrip(os.sep)) :]
    return path


def expand_dirs(dirs: List[str]) -> List[str]:
    """Expand a list of command line directories, dropping empty entries."""
    return [expand_path(d) for d in dirs if d]
