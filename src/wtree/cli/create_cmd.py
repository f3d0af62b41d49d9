"""Create worktrees and propagate config files between them."""

from __future__ import annotations

import click

from wtree.cli.common import open_manager
from wtree.core.models import CreateMode


def run_create(branch: str, mode: CreateMode, from_ref: str | None) -> None:
    manager = open_manager()
    result = manager.create(branch, mode=mode, from_ref=from_ref)

    if result.created_branch:
        click.echo(f"Created branch '{result.branch}' from {from_ref or 'HEAD'}")
    else:
        click.echo(f"Using existing branch '{result.branch}'")
    click.echo(f"Worktree: {result.path}")

    if result.copied:
        click.echo("Copied config files:")
        for item in result.copied:
            click.echo(f"  {item.as_posix()}")

    for warning in result.warnings:
        click.echo(
            click.style(f"Warning: {warning.step} failed: {warning.detail}", fg="yellow"),
            err=True,
        )

    click.echo(click.style("✓ Worktree created successfully!", fg="green"))
    click.echo(f"  Jump to it with: wtree jump {result.branch}")


def run_sync_config(source: str, target: str) -> None:
    manager = open_manager()
    copied = manager.sync_config(source, target)

    if not copied:
        click.echo("No config files matched; nothing copied.")
        return

    click.echo(f"Copied {len(copied)} item(s) from '{source}' to '{target}':")
    for item in copied:
        click.echo(f"  {item.as_posix()}")
