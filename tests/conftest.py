"""Shared fixtures: an isolated git environment, a repository and a storage root."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

import pytest

from wtree.core.storage import WorktreeStorage
from wtree.git.repo import GitRepo


def git(cwd: Path, *args: str) -> str:
    """Run git in *cwd* and return stripped stdout; fail the test on error."""
    proc = subprocess.run(
        ["git", "-C", str(cwd), *args], capture_output=True, text=True, check=True
    )
    return proc.stdout.strip()


@pytest.fixture(autouse=True)
def isolated_git(tmp_path, monkeypatch):
    """Point git at a throwaway global config with a known identity."""
    gitconfig = tmp_path / "gitconfig"
    gitconfig.write_text(
        "[user]\n"
        "\tname = Test User\n"
        "\temail = test@test.com\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")


@pytest.fixture(autouse=True)
def reset_root_logger():
    """CLI invocations attach a stderr handler to the root logger; drop it."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


@pytest.fixture
def storage_root(tmp_path, monkeypatch) -> Path:
    root = tmp_path / "worktrees"
    root.mkdir()
    monkeypatch.setenv("WORKTREE_STORAGE_ROOT", str(root))
    return root


@pytest.fixture
def storage(storage_root) -> WorktreeStorage:
    return WorktreeStorage(storage_root)


@pytest.fixture
def repo_path(tmp_path) -> Path:
    """A git repository named ``myrepo`` with one commit on ``main``."""
    path = tmp_path / "myrepo"
    path.mkdir()
    git(path, "init", "-q", "-b", "main")
    (path / "README.md").write_text("# myrepo\n")
    git(path, "add", "README.md")
    git(path, "commit", "-q", "-m", "Initial commit")
    return path


@pytest.fixture
def repo(repo_path) -> GitRepo:
    return GitRepo(repo_path)
