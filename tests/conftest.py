"""Test configuration."""

from __future__ import annotations

import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import pytest

from gitscope.core.models import Repo, RepoStatus


def run_git(repo_path: Path, *args: str) -> str:
    """Run git inside ``repo_path`` and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo_path,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


def configure_identity(repo_path: Path) -> None:
    run_git(repo_path, "config", "user.name", "Test User")
    run_git(repo_path, "config", "user.email", "test@example.com")
    run_git(repo_path, "config", "commit.gpgsign", "false")


def commit_file(repo_path: Path, name: str, content: str, message: str) -> None:
    (repo_path / name).write_text(content)
    run_git(repo_path, "add", name)
    run_git(repo_path, "commit", "-m", message)


@pytest.fixture
def git() -> Callable[..., str]:
    """Return a helper that runs git in a directory."""
    return run_git


@pytest.fixture
def temp_git_repo(tmp_path: Path) -> Path:
    """Create a Git repository on branch main with one commit."""
    repo_path = tmp_path / "repo"
    repo_path.mkdir()
    run_git(repo_path, "init")
    configure_identity(repo_path)
    run_git(repo_path, "checkout", "-b", "main")
    commit_file(repo_path, "README.md", "# Test Repository\n", "Initial commit")
    return repo_path


@pytest.fixture
def empty_git_repo(tmp_path: Path) -> Path:
    """Create a Git repository with no commits."""
    repo_path = tmp_path / "empty"
    repo_path.mkdir()
    run_git(repo_path, "init")
    return repo_path


@pytest.fixture
def tracking_repo(tmp_path: Path) -> Path:
    """Create a clone of a bare remote so the branch has an upstream."""
    seed = tmp_path / "seed"
    seed.mkdir()
    run_git(seed, "init")
    configure_identity(seed)
    run_git(seed, "checkout", "-b", "main")
    commit_file(seed, "README.md", "seed\n", "Initial commit")

    remote = tmp_path / "remote.git"
    subprocess.run(
        ["git", "clone", "--bare", str(seed), str(remote)], check=True, capture_output=True
    )

    work = tmp_path / "work"
    subprocess.run(["git", "clone", str(remote), str(work)], check=True, capture_output=True)
    configure_identity(work)
    return work


@pytest.fixture
def make_repo() -> Callable[..., Repo]:
    """Return a factory for in-memory repositories."""

    def factory(
        name: str,
        branch: str = "main",
        dirty: bool = False,
        last_commit: Optional[datetime] = None,
        path: Optional[str] = None,
    ) -> Repo:
        status = RepoStatus(
            branch=branch,
            unstaged=1 if dirty else 0,
            last_commit=last_commit or datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        return Repo(name=name, path=path or f"/src/{name}", status=status)

    return factory


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper that creates fake repositories (a bare .git directory)."""

    def factory(*relative: str) -> Path:
        path = tmp_path.joinpath(*relative)
        (path / ".git").mkdir(parents=True)
        return path

    return factory
