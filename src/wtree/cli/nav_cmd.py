"""Navigation commands; each prints a single path for the shell wrapper to ``cd`` into."""

from __future__ import annotations

from pathlib import Path

import click

from wtree.cli.common import current_repo_name, select_worktree
from wtree.core.errors import NotFound
from wtree.core.resolve import TargetResolver, find_origin
from wtree.core.storage import WorktreeStorage


def run_jump(target: str | None, interactive: bool, current: bool) -> None:
    storage = WorktreeStorage.from_env()
    repo_name = current_repo_name(storage)
    if current and repo_name is None:
        raise NotFound("Not inside a git repository; --current needs one")

    resolver = TargetResolver(storage, repo_name)
    if interactive or target is None:
        entry = select_worktree(
            resolver.candidates(all_repos=not current), "Jump to which worktree?"
        )
        path = entry.path
    else:
        path = resolver.find(target, all_repos=not current).path

    click.echo(str(path))


def run_back() -> None:
    storage = WorktreeStorage.from_env()
    click.echo(str(find_origin(storage, Path.cwd())))
