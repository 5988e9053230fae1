"""On-disk cache of the most recent scan.

Only one record is kept. It is replaced wholesale by every fresh scan and is
trusted on the next launch only while it is young enough and was produced
from exactly the same roots.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import CacheIOError
from .models import Repo

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(minutes=5)


def default_cache_path() -> Path:
    """Return the per-user cache file location."""
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / "git-scope" / "cache.json"


@dataclass(frozen=True)
class CacheRecord:
    """The persisted result of one scan."""

    repos: List[Repo]
    timestamp: datetime
    roots: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repos": [repo.to_dict() for repo in self.repos],
            "timestamp": self.timestamp.isoformat(),
            "roots": list(self.roots),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CacheRecord:
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            repos=[Repo.from_dict(item) for item in data.get("repos") or []],
            timestamp=timestamp,
            roots=[str(root) for root in data.get("roots") or []],
        )


class CacheStore:
    """JSON file backed store for the last scan result.

    Attributes:
        path (Path): Location of the cache file.
        record (Optional[CacheRecord]): Record read by the last :meth:`load`
            or written by the last :meth:`save`.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """Initialize the store."""
        self.path = Path(path) if path is not None else default_cache_path()
        self.record: Optional[CacheRecord] = None

    def _read(self) -> CacheRecord:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return CacheRecord.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheIOError(f"Cannot read cache {self.path}: {e}") from e

    def _write(self, record: CacheRecord) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise CacheIOError(f"Cannot write cache {self.path}: {e}") from e

    def load(self) -> Optional[CacheRecord]:
        """Load the cached record.

        Returns:
            Optional[CacheRecord]: The record, or None on any read failure
                (missing file, corrupt JSON, unreadable location).
        """
        try:
            self.record = self._read()
        except CacheIOError as e:
            logger.debug("Cache miss: %s", e)
            self.record = None
        return self.record

    def save(self, repos: List[Repo], roots: List[str]) -> bool:
        """Replace the cached record with a fresh scan result.

        Failures are logged and reported through the return value only.
        """
        record = CacheRecord(
            repos=list(repos), timestamp=datetime.now(timezone.utc), roots=list(roots)
        )
        self.record = record
        try:
            self._write(record)
        except CacheIOError as e:
            logger.debug("Cache not saved: %s", e)
            return False
        return True

    def is_valid(self, max_age: timedelta = DEFAULT_MAX_AGE) -> bool:
        """Whether the loaded record is younger than ``max_age``.

        A record stamped in the future is not trusted.
        """
        if self.record is None:
            return False
        age = datetime.now(timezone.utc) - self.record.timestamp
        return timedelta(0) <= age < max_age

    def is_same_roots(self, roots: List[str]) -> bool:
        """Whether the loaded record was produced from exactly ``roots``, in order."""
        if self.record is None:
            return False
        return list(self.record.roots) == list(roots)
