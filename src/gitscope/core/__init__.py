"""Core functionality for git-scope."""

from .cache import CacheStore
from .config import Config
from .models import Repo, RepoStatus
from .repository import RepositoryManager, ScanResult
from .scanner import scan_roots
from .state import DashboardState

__all__ = [
    "CacheStore",
    "Config",
    "DashboardState",
    "Repo",
    "RepoStatus",
    "RepositoryManager",
    "ScanResult",
    "scan_roots",
]
