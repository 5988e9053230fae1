"""Repository records produced by a scan."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def is_dirty(staged: int, unstaged: int, untracked: int, ahead: int, behind: int) -> bool:
    """Decide whether a repository needs attention.

    Ahead/behind divergence counts as dirty even with a clean working tree:
    an unpushed or unpulled repository still needs attention.
    """
    return staged > 0 or unstaged > 0 or untracked > 0 or ahead > 0 or behind > 0


@dataclass(frozen=True)
class RepoStatus:
    """Synchronization state of a single repository.

    Attributes:
        branch: Current branch, empty when detached or unknown.
        ahead: Local commits not yet pushed to the upstream.
        behind: Upstream commits not yet pulled.
        staged: Files with index changes.
        unstaged: Files with worktree changes.
        untracked: Untracked files.
        last_commit: Time of the newest commit, None for an empty repository.
        scan_error: Why the status could not be read, if it could not.
    """

    branch: str = ""
    ahead: int = 0
    behind: int = 0
    staged: int = 0
    unstaged: int = 0
    untracked: int = 0
    last_commit: Optional[datetime] = None
    scan_error: Optional[str] = None

    @property
    def is_dirty(self) -> bool:
        """Whether the repository has changes or has diverged from upstream."""
        return is_dirty(self.staged, self.unstaged, self.untracked, self.ahead, self.behind)

    def with_error(self, message: str) -> RepoStatus:
        """Return a copy carrying a scan error."""
        return replace(self, scan_error=message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["last_commit"] = self.last_commit.isoformat() if self.last_commit else None
        data["is_dirty"] = self.is_dirty
        if data["scan_error"] is None:
            del data["scan_error"]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RepoStatus:
        """Build a status from :meth:`to_dict` output.

        ``is_dirty`` in the input is ignored; it is always recomputed.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Repository status must be a mapping, got {type(data).__name__}")
        last_commit = data.get("last_commit")
        return cls(
            branch=str(data.get("branch", "")),
            ahead=int(data.get("ahead", 0)),
            behind=int(data.get("behind", 0)),
            staged=int(data.get("staged", 0)),
            unstaged=int(data.get("unstaged", 0)),
            untracked=int(data.get("untracked", 0)),
            last_commit=datetime.fromisoformat(last_commit) if last_commit else None,
            scan_error=data.get("scan_error"),
        )


@dataclass(frozen=True)
class Repo:
    """A discovered repository and its status."""

    name: str
    path: str
    status: RepoStatus = field(default_factory=RepoStatus)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {"name": self.name, "path": self.path, "status": self.status.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Repo:
        """Build a repo from :meth:`to_dict` output."""
        if not isinstance(data, dict):
            raise ValueError(f"Repository must be a mapping, got {type(data).__name__}")
        return cls(
            name=str(data["name"]),
            path=str(data["path"]),
            status=RepoStatus.from_dict(data.get("status") or {}),
        )


def from_timestamp(seconds: int) -> datetime:
    """Convert a unix timestamp to an aware local datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone()
