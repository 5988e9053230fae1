"""Repository discovery with a cached fast path."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from .cache import DEFAULT_MAX_AGE, CacheStore
from .config import Config
from .models import Repo
from .scanner import Inspector, scan_roots
from .status import inspect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    """The outcome of one scan request, delivered to the dashboard as a unit."""

    repos: List[Repo] = field(default_factory=list)
    from_cache: bool = False
    workspace: Optional[str] = None


class RepositoryManager:
    """Finds repositories for a configuration, using the cache when it can.

    Attributes:
        config (Config): Roots, ignore names and editor settings.
        cache (CacheStore): Store for the most recent scan.
        max_age (timedelta): How long a cached scan stays usable.
    """

    def __init__(
        self,
        config: Config,
        cache: Optional[CacheStore] = None,
        max_age: timedelta = DEFAULT_MAX_AGE,
        inspector: Inspector = inspect,
    ):
        """Initialize the manager."""
        self.config = config
        self.cache = cache or CacheStore()
        self.max_age = max_age
        self.inspector = inspector

    def find_repositories(self, force_scan: bool = False) -> ScanResult:
        """Return the repositories under the configured roots.

        A cached record is used when it is younger than ``max_age`` and was
        produced from the same roots in the same order. Otherwise the roots
        are scanned and the cache is overwritten.

        Raises:
            ScanError: If the scan itself fails.
        """
        roots = list(self.config.roots)

        if not force_scan:
            record = self.cache.load()
            if (
                record is not None
                and self.cache.is_valid(self.max_age)
                and self.cache.is_same_roots(roots)
            ):
                logger.debug("Using cached scan from %s", record.timestamp.isoformat())
                return ScanResult(repos=list(record.repos), from_cache=True)

        repos = scan_roots(roots, self.config.ignore, inspector=self.inspector)
        self.cache.save(repos, roots)
        return ScanResult(repos=repos, from_cache=False)

    def scan_workspace(self, workspace: str) -> ScanResult:
        """Scan a single workspace directory, bypassing the cache."""
        repos = scan_roots([workspace], self.config.ignore, inspector=self.inspector)
        return ScanResult(repos=repos, from_cache=False, workspace=workspace)
