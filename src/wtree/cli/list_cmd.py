"""Listing and status output for managed worktrees."""

from __future__ import annotations

from collections import defaultdict

import click

from wtree.cli.common import current_repo_name, open_manager
from wtree.core.errors import NotFound
from wtree.core.models import WorktreeEntry
from wtree.core.resolve import TargetResolver
from wtree.core.storage import WorktreeStorage


def run_list(current: bool) -> None:
    storage = WorktreeStorage.from_env()

    if current:
        repo_name = current_repo_name(storage)
        if repo_name is None:
            raise NotFound("Not inside a git repository; --current needs one")
        click.echo(f"Worktrees for repository: {repo_name}")
        click.echo("=" * 40)
        entries = TargetResolver(storage, repo_name).candidates()
        if not entries:
            click.echo("No worktrees found for this repository.")
            return
        for entry in entries:
            _print_entry(entry)
        return

    click.echo("All managed worktrees:")
    click.echo("=" * 40)
    entries = TargetResolver(storage, None).candidates(all_repos=True)
    if not entries:
        click.echo("No worktrees found.")
        return

    by_repo: dict[str, list[WorktreeEntry]] = defaultdict(list)
    for entry in entries:
        by_repo[entry.repo].append(entry)
    for repo, repo_entries in by_repo.items():
        click.echo()
        click.echo(click.style(repo, bold=True))
        for entry in repo_entries:
            _print_entry(entry)


def _print_entry(entry: WorktreeEntry) -> None:
    marker = click.style("✓", fg="green") if entry.path.exists() else click.style("✗", fg="red")
    click.echo(f"  {marker} {entry.display_name} ({entry.path})")


def run_status() -> None:
    manager = open_manager()
    report = manager.status()
    storage = manager.storage

    click.echo("Git Worktree Status")
    click.echo("=" * 40)
    click.echo(f"Repository: {report.repo}")
    click.echo(f"Repository path: {report.repo_path}")
    click.echo()

    managed_names = {entry.sanitized for entry in report.managed}

    click.echo(f"Git worktrees ({len(report.git_worktrees)}):")
    for record in report.git_worktrees:
        managed = "managed" if record.path.name in managed_names else "unmanaged"
        exists = "✓" if record.path.exists() else "✗"
        label = record.branch or ("detached" if record.detached else "-")
        click.echo(f"  {exists} {label} [{managed}] ({record.path})")

    click.echo()
    click.echo(f"Managed worktrees ({len(report.managed)}):")
    for entry in report.managed:
        registered = "in git" if entry.sanitized in report.registered_names else "not in git"
        exists = "✓" if entry.path.exists() else "✗"
        click.echo(f"  {exists} {entry.display_name} [{registered}] ({entry.path})")

    orphaned = [
        name
        for name in (row[0] for row in storage.mapping_rows(report.repo))
        if name not in managed_names
    ]
    if orphaned:
        click.echo()
        click.echo(
            click.style(
                f"{len(orphaned)} stale mapping(s); run 'wtree cleanup' to drop them.",
                fg="yellow",
            )
        )
