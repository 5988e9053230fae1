"""Open a repository in the user's configured editor."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from typing import List

from .errors import EditorLaunchError

logger = logging.getLogger(__name__)


def parse_editor_command(command: str) -> List[str]:
    """Split an editor command such as ``"code --wait"`` into argv.

    Raises:
        EditorLaunchError: If the command is empty, cannot be tokenized, or
            its program is not on PATH.
    """
    try:
        fields = shlex.split(command)
    except ValueError as e:
        raise EditorLaunchError(f"Invalid editor command: '{command}'") from e

    if not fields:
        raise EditorLaunchError(f"Invalid editor command: '{command}'")

    if shutil.which(fields[0]) is None:
        raise EditorLaunchError(f"Editor '{fields[0]}' not found in PATH")

    return fields


def editor_argv(command: str, path: str) -> List[str]:
    """Return the full argv that opens ``path`` with ``command``."""
    return parse_editor_command(command) + [path]


def open_in_editor(command: str, path: str) -> int:
    """Run the editor on ``path`` and wait for it to exit.

    Returns:
        int: The editor's exit status.

    Raises:
        EditorLaunchError: If the command is invalid or cannot be started.
    """
    argv = editor_argv(command, path)
    logger.debug("Launching editor: %s", argv)
    try:
        return subprocess.call(argv)
    except OSError as e:
        raise EditorLaunchError(f"Failed to launch editor: {e}") from e
