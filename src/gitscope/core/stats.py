"""Read-only aggregations over a scan result for the dashboard side panels."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from .models import Repo

TIMELINE_DAYS = 7


@dataclass(frozen=True)
class DiskUsageEntry:
    name: str
    path: str
    size: int


@dataclass(frozen=True)
class DiskUsageData:
    entries: List[DiskUsageEntry] = field(default_factory=list)
    total_size: int = 0

    @property
    def repo_count(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class TimelineEntry:
    name: str
    branch: str
    last_commit: datetime
    day_label: str
    is_dirty: bool


@dataclass(frozen=True)
class TimelineData:
    entries: List[TimelineEntry] = field(default_factory=list)


def directory_size(path: str) -> int:
    """Total size in bytes of regular files below ``path``.

    Unreadable entries are skipped and symbolic links are not followed.
    """
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for filename in filenames:
            try:
                st = os.lstat(os.path.join(dirpath, filename))
            except OSError:
                continue
            if stat.S_ISREG(st.st_mode):
                total += st.st_size
    return total


def get_disk_usage(repos: List[Repo]) -> DiskUsageData:
    """Measure every repository, largest first."""
    entries = [
        DiskUsageEntry(name=repo.name, path=repo.path, size=directory_size(repo.path))
        for repo in repos
    ]
    entries.sort(key=lambda e: e.size, reverse=True)
    return DiskUsageData(entries=entries, total_size=sum(e.size for e in entries))


def format_bytes(size: int) -> str:
    """Format a byte count as B, KB, MB or GB."""
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def day_label(moment: datetime, now: datetime) -> str:
    """Label a commit time relative to ``now``: Today, Yesterday or a weekday."""
    delta_days = (now.date() - moment.date()).days
    if delta_days <= 0:
        return "Today"
    if delta_days == 1:
        return "Yesterday"
    return moment.strftime("%A")


def get_timeline(repos: List[Repo], now: Optional[datetime] = None) -> TimelineData:
    """Repositories with a commit in the last week, newest first."""
    now = now or datetime.now().astimezone()
    cutoff = now - timedelta(days=TIMELINE_DAYS)
    entries = []
    for repo in repos:
        last_commit = repo.status.last_commit
        if last_commit is None or last_commit < cutoff:
            continue
        entries.append(
            TimelineEntry(
                name=repo.name,
                branch=repo.status.branch,
                last_commit=last_commit,
                day_label=day_label(last_commit.astimezone(now.tzinfo), now),
                is_dirty=repo.status.is_dirty,
            )
        )
    entries.sort(key=lambda e: e.last_commit, reverse=True)
    return TimelineData(entries=entries)
