"""Runtime workspace switching: validate and tab-complete directory input."""

from __future__ import annotations

import os

from .errors import InvalidPathError
from .paths import contract_home, expand_home


def normalize_workspace_path(user_input: str) -> str:
    """Turn user input into the canonical path of an existing directory.

    Steps: expand ``~``, make absolute against the working directory, require
    an existing directory, then resolve symlinks. If symlink resolution fails
    the unresolved absolute path is returned.

    Raises:
        InvalidPathError: If the input is empty, missing, or not a directory.
    """
    if not user_input:
        raise InvalidPathError("path cannot be empty")

    path = os.path.abspath(expand_home(user_input))

    try:
        is_dir = os.path.isdir(path)
        exists = is_dir or os.path.exists(path)
    except OSError as e:
        raise InvalidPathError(f"cannot access path: {e}") from e

    if not exists:
        raise InvalidPathError(f"path does not exist: {user_input}")
    if not is_dir:
        raise InvalidPathError(f"path is not a directory: {user_input}")

    try:
        return os.path.realpath(path, strict=True)
    except (OSError, RuntimeError):
        return path


def _with_separator(path: str) -> str:
    return path if path.endswith(os.sep) else path + os.sep


def _present(path: str, had_tilde: bool) -> str:
    return contract_home(path) if had_tilde else path


def complete_directory_path(user_input: str) -> str:
    """Complete a partially typed directory path.

    Returns the input unchanged when nothing can be completed. Never raises.

    Example:
        ```python
        # with ~/projects and ~/prototypes on disk
        complete_directory_path("~/proj")   # "~/projects/"
        complete_directory_path("~/pro")    # "~/pro" (common prefix is not longer)
        ```
    """
    if not user_input:
        return user_input

    had_tilde = user_input.startswith("~")
    path = os.path.abspath(expand_home(user_input))

    if os.path.isdir(path):
        return _with_separator(_present(path, had_tilde))

    parent = os.path.dirname(path)
    prefix = os.path.basename(path)

    try:
        entries = list(os.scandir(parent))
    except OSError:
        return user_input

    matches = []
    for entry in entries:
        try:
            if entry.is_dir() and entry.name.startswith(prefix):
                matches.append(entry.name)
        except OSError:
            continue

    if not matches:
        return user_input

    if len(matches) == 1:
        return _with_separator(_present(os.path.join(parent, matches[0]), had_tilde))

    common = os.path.commonprefix(matches)
    if len(common) > len(prefix):
        return _present(os.path.join(parent, common), had_tilde)

    return user_input
