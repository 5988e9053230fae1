"""Tests for repository discovery."""

import os
import threading
from pathlib import Path
from typing import List

import pytest

from gitscope.core.errors import ScanError, StatusQueryError
from gitscope.core.models import RepoStatus
from gitscope.core.scanner import (
    SMART_IGNORE_PATTERNS,
    build_ignore_set,
    scan_roots,
    should_ignore,
)


def fake_inspector(path: str) -> RepoStatus:
    """Return a fixed status without running git."""
    return RepoStatus(branch="main")


def found_paths(repos) -> List[str]:
    return sorted(repo.path for repo in repos)


def test_should_ignore_exact_and_suffix() -> None:
    """Test exact-name and suffix-name matching."""
    ignore = {"node_modules", ".venv"}
    assert should_ignore("node_modules", ignore)
    assert should_ignore("project.venv", ignore)
    assert not should_ignore("node_modules_backup", ignore)
    assert not should_ignore("src", ignore)


def test_builtin_ignores_always_present() -> None:
    """Test that caller ignores are merged with, not replacing, the built-ins."""
    ignore_set = build_ignore_set(["custom"])
    assert "custom" in ignore_set
    assert SMART_IGNORE_PATTERNS <= ignore_set
    assert SMART_IGNORE_PATTERNS <= build_ignore_set([])


def test_scan_finds_repositories(tmp_path: Path, make_tree) -> None:
    """Test that each .git marker yields its parent directory."""
    first = make_tree("root", "alpha")
    second = make_tree("root", "group", "beta")
    (tmp_path / "root" / "not_a_repo").mkdir()

    repos = scan_roots([str(tmp_path / "root")], [], inspector=fake_inspector)

    assert found_paths(repos) == sorted([str(first), str(second)])
    names = {repo.name for repo in repos}
    assert names == {"alpha", "beta"}
    assert all(repo.status.branch == "main" for repo in repos)


def test_scan_finds_nested_repositories(tmp_path: Path, make_tree) -> None:
    """Test that a repository inside another repository's worktree is found."""
    outer = make_tree("root", "outer")
    inner = make_tree("root", "outer", "vendor_libs", "inner")

    repos = scan_roots([str(tmp_path / "root")], [], inspector=fake_inspector)

    assert found_paths(repos) == sorted([str(outer), str(inner)])


def test_scan_prunes_ignored_directories(tmp_path: Path, make_tree) -> None:
    """Test that nothing below an ignored name or suffix is reported."""
    kept = make_tree("root", "kept")
    make_tree("root", "node_modules", "pkg")
    make_tree("root", "deep", "my.venv", "tool")
    make_tree("root", "build", "nested", "repo")

    repos = scan_roots(
        [str(tmp_path / "root")], ["node_modules", ".venv", "build"], inspector=fake_inspector
    )

    assert found_paths(repos) == [str(kept)]


def test_scan_prunes_builtin_ignores(tmp_path: Path, make_tree) -> None:
    """Test that built-in ignores apply without caller ignores."""
    kept = make_tree("root", "kept")
    make_tree("root", ".cache", "thing")
    make_tree("root", "Library", "thing")

    repos = scan_roots([str(tmp_path / "root")], None, inspector=fake_inspector)

    assert found_paths(repos) == [str(kept)]


def test_scan_does_not_descend_into_marker(tmp_path: Path, make_tree) -> None:
    """Test that directories inside .git are never inspected."""
    repo = make_tree("root", "repo")
    (repo / ".git" / "modules" / "sub" / ".git").mkdir(parents=True)

    repos = scan_roots([str(tmp_path / "root")], [], inspector=fake_inspector)

    assert found_paths(repos) == [str(repo)]


def test_scan_marker_is_not_subject_to_ignores(tmp_path: Path, make_tree) -> None:
    """Test that an ignore suffix matching the marker name does not hide repos."""
    repo = make_tree("root", "repo")

    repos = scan_roots([str(tmp_path / "root")], ["git"], inspector=fake_inspector)

    assert found_paths(repos) == [str(repo)]


def test_scan_skips_missing_roots(tmp_path: Path, make_tree) -> None:
    """Test that a missing root is skipped and other roots still scan."""
    repo = make_tree("root", "repo")

    repos = scan_roots(
        [str(tmp_path / "missing"), str(tmp_path / "root")], [], inspector=fake_inspector
    )

    assert found_paths(repos) == [str(repo)]


def test_scan_fails_when_no_root_exists(tmp_path: Path) -> None:
    """Test that a scan with no reachable root is a scan failure."""
    missing = [str(tmp_path / "missing-a"), str(tmp_path / "missing-b")]
    with pytest.raises(ScanError, match="None of the configured roots exist"):
        scan_roots(missing, [], inspector=fake_inspector)


def test_scan_without_roots_finds_nothing() -> None:
    assert scan_roots([], [], inspector=fake_inspector) == []


def test_scan_records_status_errors(tmp_path: Path, make_tree) -> None:
    """Test that a failed status query is kept on the repository."""
    make_tree("root", "broken")

    def failing(path: str) -> RepoStatus:
        raise StatusQueryError("git exploded")

    repos = scan_roots([str(tmp_path / "root")], [], inspector=failing)

    assert len(repos) == 1
    assert repos[0].name == "broken"
    assert repos[0].status.scan_error == "git exploded"


def test_scan_runs_roots_in_parallel(tmp_path: Path, make_tree) -> None:
    """Test that each root gets its own worker thread."""
    make_tree("one", "a")
    make_tree("two", "b")
    threads = set()
    lock = threading.Lock()
    # Both inspections must be in flight at once for the barrier to release
    barrier = threading.Barrier(2, timeout=10)

    def recording(path: str) -> RepoStatus:
        with lock:
            threads.add(threading.current_thread().name)
        barrier.wait()
        return RepoStatus()

    repos = scan_roots([str(tmp_path / "one"), str(tmp_path / "two")], [], inspector=recording)

    assert len(repos) == 2
    assert len(threads) == 2


@pytest.mark.skipif(os.geteuid() == 0, reason="root can read any directory")
def test_scan_skips_unreadable_directories(tmp_path: Path, make_tree) -> None:
    """Test that permission errors do not stop the walk."""
    kept = make_tree("root", "kept")
    locked = tmp_path / "root" / "locked"
    make_tree("root", "locked", "hidden")
    locked.chmod(0)
    try:
        repos = scan_roots([str(tmp_path / "root")], [], inspector=fake_inspector)
    finally:
        locked.chmod(0o755)

    assert found_paths(repos) == [str(kept)]


def test_scan_with_real_git(temp_git_repo: Path) -> None:
    """Test a scan backed by the real status inspector."""
    (temp_git_repo / "new.txt").write_text("new\n")

    repos = scan_roots([str(temp_git_repo.parent)], [])

    assert len(repos) == 1
    assert repos[0].path == str(temp_git_repo)
    assert repos[0].status.untracked == 1
    assert repos[0].status.is_dirty
