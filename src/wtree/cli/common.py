"""Shared helpers for wtree commands: repository context, selection, completion."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from click.shell_completion import CompletionItem

from wtree.core.errors import NotFound, VcsFailure, WorktreeError
from wtree.core.models import WorktreeEntry
from wtree.core.resolve import TargetResolver
from wtree.core.storage import WorktreeStorage, default_storage_root
from wtree.git.repo import GitRepo
from wtree.git.worktree import WorktreeManager

logger = logging.getLogger(__name__)


def open_repo(path: Path | None = None) -> GitRepo:
    """Discover the repository containing *path* (default: the cwd)."""
    where = path or Path.cwd()
    try:
        return GitRepo.discover(where)
    except VcsFailure as exc:
        raise NotFound(f"Not inside a git repository: {where}") from exc


def open_manager(path: Path | None = None) -> WorktreeManager:
    return WorktreeManager(open_repo(path), WorktreeStorage.from_env())


def current_repo_name(storage: WorktreeStorage) -> str | None:
    """Name of the repository at the cwd, or None outside any repository."""
    try:
        repo = GitRepo.discover(Path.cwd())
    except VcsFailure:
        return None
    return storage.repo_name_for(repo.main_worktree_path())


def report_error(exc: WorktreeError) -> None:
    click.echo(click.style(f"Error: {exc}", fg="red"), err=True)


# ---------------------------------------------------------------------------
# Interactive selection
# ---------------------------------------------------------------------------


def select_worktree(entries: list[WorktreeEntry], prompt: str) -> WorktreeEntry:
    """Ask the user to pick one entry by number.

    Everything but the answer goes to stderr so stdout stays free for a path.
    ``click.prompt`` is not used: its line reader echoes to stdout.
    """
    if not entries:
        raise NotFound("No worktrees found")

    click.echo(prompt, err=True)
    for index, entry in enumerate(entries, start=1):
        click.echo(f"  {index:>2}) {entry.qualified} ({entry.path})", err=True)

    stdin = click.get_text_stream("stdin")
    while True:
        click.echo(f"Select a worktree [1-{len(entries)}]: ", nl=False, err=True)
        line = stdin.readline()
        if not line:
            raise click.Abort()
        answer = line.strip()
        if answer.isdigit() and 1 <= int(answer) <= len(entries):
            return entries[int(answer) - 1]
        click.echo(f"Error: '{answer}' is not a number from the list.", err=True)


# ---------------------------------------------------------------------------
# Shell completion
# ---------------------------------------------------------------------------


def complete_worktrees(
    ctx: click.Context, param: click.Parameter, incomplete: str
) -> list[CompletionItem]:
    """Complete canonical names of existing worktrees."""
    try:
        storage = WorktreeStorage(default_storage_root())
        repo_name = current_repo_name(storage)
        current_only = bool(ctx.params.get("current")) or ctx.info_name == "remove"
        all_repos = repo_name is None or not current_only
        entries = TargetResolver(storage, repo_name).candidates(all_repos=all_repos)
    except WorktreeError as exc:
        logger.debug("Worktree completion unavailable: %s", exc)
        return []
    names = sorted({entry.display_name for entry in entries})
    return [CompletionItem(name) for name in names if incomplete in name]


def complete_refs(
    ctx: click.Context, param: click.Parameter, incomplete: str
) -> list[CompletionItem]:
    """Complete local branches, remote branches and tags for ``--from``."""
    try:
        repo = GitRepo.discover(Path.cwd())
        refs = repo.list_local_branches() + repo.list_remote_branches() + repo.list_tags()
    except VcsFailure as exc:
        logger.debug("Reference completion unavailable: %s", exc)
        return []
    return [CompletionItem(ref) for ref in dict.fromkeys(refs) if incomplete in ref]
