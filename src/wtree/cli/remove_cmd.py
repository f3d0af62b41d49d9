"""Remove a managed worktree and retire its branch."""

from __future__ import annotations

import click

from wtree.cli.common import current_repo_name, open_repo, select_worktree
from wtree.core.errors import NotFound
from wtree.core.models import BranchDeletePolicy, RemovalReport, StepStatus
from wtree.core.resolve import TargetResolver
from wtree.core.storage import WorktreeStorage
from wtree.git.repo import GitRepo
from wtree.git.worktree import WorktreeManager


def run_remove(
    target: str | None,
    keep_branch: bool,
    managed_only: bool,
    interactive: bool,
    current: bool,
) -> None:
    if keep_branch:
        policy = BranchDeletePolicy.never
    elif managed_only:
        policy = BranchDeletePolicy.managed_only
    else:
        policy = BranchDeletePolicy.always

    if interactive or target is None:
        manager, target = _select(current)
    else:
        manager = _main_manager(open_repo(), WorktreeStorage.from_env())

    report = manager.remove(target, policy=policy)
    _print_report(report)


def _select(current: bool) -> tuple[WorktreeManager, str]:
    """Pick a worktree interactively; returns its manager and absolute path.

    The selected worktree may belong to another repository, so its manager
    is opened from that worktree's main checkout.
    """
    storage = WorktreeStorage.from_env()
    repo_name = current_repo_name(storage)
    if current and repo_name is None:
        raise NotFound("Not inside a git repository; --current needs one")

    entries = TargetResolver(storage, repo_name).candidates(all_repos=not current)
    entry = select_worktree(entries, "Remove which worktree?")
    return _main_manager(open_repo(entry.path), storage, entry.repo), str(entry.path)


def _main_manager(
    repo: GitRepo, storage: WorktreeStorage, repo_name: str | None = None
) -> WorktreeManager:
    """Run removals from the main checkout; the target may be the current worktree."""
    return WorktreeManager(GitRepo(repo.main_worktree_path()), storage, repo_name=repo_name)


def _print_report(report: RemovalReport) -> None:
    click.echo(f"Removing worktree: {report.target.path}")
    click.echo(f"Branch: {report.target.canonical}")

    for step in report.failures:
        click.echo(
            click.style(f"⚠ Warning: {step.step} failed: {step.detail}", fg="yellow"),
            err=True,
        )

    if report.branch_deleted:
        click.echo("✓ Branch deleted")
    else:
        for step in report.steps:
            if step.step == "delete_branch" and step.status is StepStatus.skipped:
                click.echo(f"Branch kept ({step.detail})")

    click.echo(click.style("✓ Worktree removed successfully!", fg="green"))
