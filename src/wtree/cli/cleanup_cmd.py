"""Reconcile the registry with git and print what changed."""

from __future__ import annotations

from pathlib import Path

import click

from wtree.cli.common import open_repo
from wtree.core.cleanup import DEFAULT_PROTECTED, Reconciler
from wtree.core.models import CleanupReport, StepOutcome
from wtree.core.storage import WorktreeStorage


def run_cleanup(managed_only: bool, protect: tuple[str, ...]) -> None:
    repo = open_repo()
    storage = WorktreeStorage.from_env()
    repo_name = storage.repo_name_for(repo.main_worktree_path())

    click.echo(f"Cleaning up worktree references for {repo_name}...")
    reconciler = Reconciler(
        repo,
        storage,
        repo_name,
        protected=(*DEFAULT_PROTECTED, *protect),
        current_dir=Path.cwd(),
        managed_only=managed_only,
    )
    report = reconciler.run()
    _print_report(report)


def _print_report(report: CleanupReport) -> None:
    sections: list[tuple[str, list[StepOutcome]]] = [
        ("Pruned git worktree records", report.pruned_records),
        ("Deleted orphaned branches", report.deleted_branches),
        ("Dropped stale branch mappings", report.dropped_mappings),
        ("Dropped stale origin entries", report.dropped_origins),
    ]
    for title, outcomes in sections:
        done = [o for o in outcomes if o.ok]
        if not done:
            continue
        click.echo(f"{title}:")
        for outcome in done:
            click.echo(f"  ✓ {outcome.subject}")

    failures = [o for _, outcomes in sections for o in outcomes if not o.ok] + report.errors
    for outcome in failures:
        click.echo(
            click.style(
                f"⚠ Warning: {outcome.step} failed for {outcome.subject}: {outcome.detail}",
                fg="yellow",
            ),
            err=True,
        )

    if report.is_clean and not failures:
        click.echo("Nothing to clean up.")
    elif report.changes:
        click.echo(click.style(f"✓ Cleanup complete ({len(report.changes)} change(s))", fg="green"))
