"""wtree CLI entry point."""

from __future__ import annotations

from collections.abc import Callable

import click

from wtree.cli.common import complete_refs, complete_worktrees, report_error
from wtree.core.errors import WorktreeError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _run(action: Callable[..., None], *args: object) -> None:
    """Run a command body, turning wtree errors into exit status 1."""
    try:
        action(*args)
    except WorktreeError as exc:
        report_error(exc)
        raise SystemExit(1)


@click.group()
@click.version_option(package_name="wtree")
@click.option("--json-logs", is_flag=True, default=False, help="Output logs as JSON.")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Minimum level of log records written to stderr.",
)
def cli(json_logs: bool, log_level: str) -> None:
    """wtree: git worktrees in one central place, tracked by branch."""
    from wtree.core.logging import configure_logging

    configure_logging(json_output=json_logs, level=log_level)


@cli.command()
@click.argument("branch")
@click.option(
    "--new-branch",
    "new_branch",
    is_flag=True,
    default=False,
    help="Require that BRANCH does not exist yet.",
)
@click.option(
    "--existing-branch",
    "existing_branch",
    is_flag=True,
    default=False,
    help="Require that BRANCH already exists.",
)
@click.option(
    "--from",
    "from_ref",
    default=None,
    metavar="REF",
    shell_complete=complete_refs,
    help="Branch, tag or commit to start a new branch from.",
)
def create(branch: str, new_branch: bool, existing_branch: bool, from_ref: str | None) -> None:
    """Create a worktree for BRANCH, creating the branch if needed."""
    from wtree.cli.create_cmd import run_create
    from wtree.core.models import CreateMode

    if new_branch and existing_branch:
        raise click.UsageError("--new-branch and --existing-branch are mutually exclusive")
    if existing_branch and from_ref:
        raise click.UsageError("--from cannot be combined with --existing-branch")

    if new_branch:
        mode = CreateMode.new_branch
    elif existing_branch:
        mode = CreateMode.existing_branch
    else:
        mode = CreateMode.smart
    _run(run_create, branch, mode, from_ref)


@cli.command(name="list")
@click.option("--current", is_flag=True, default=False, help="Only the current repository.")
def list_(current: bool) -> None:
    """List managed worktrees."""
    from wtree.cli.list_cmd import run_list

    _run(run_list, current)


@cli.command()
@click.argument("target", required=False, shell_complete=complete_worktrees)
@click.option(
    "--keep-branch",
    is_flag=True,
    default=False,
    help="Keep the branch after removing the worktree.",
)
@click.option(
    "--managed-only",
    is_flag=True,
    default=False,
    help="Delete the branch only if wtree created it.",
)
@click.option("--interactive", "-i", is_flag=True, default=False, help="Pick from a list.")
@click.option(
    "--current",
    is_flag=True,
    default=False,
    help="Only offer worktrees of the current repository.",
)
def remove(
    target: str | None,
    keep_branch: bool,
    managed_only: bool,
    interactive: bool,
    current: bool,
) -> None:
    """Remove a worktree and, by default, its branch.

    TARGET is a branch name, a sanitized directory name or an absolute
    worktree path. Without TARGET a selection list is shown.
    """
    from wtree.cli.remove_cmd import run_remove

    _run(run_remove, target, keep_branch, managed_only, interactive, current)


@cli.command()
def status() -> None:
    """Compare git's worktree records with the managed worktrees."""
    from wtree.cli.list_cmd import run_status

    _run(run_status)


@cli.command(name="sync-config")
@click.argument("source", shell_complete=complete_worktrees)
@click.argument("target", shell_complete=complete_worktrees)
def sync_config(source: str, target: str) -> None:
    """Copy config files from worktree SOURCE into worktree TARGET."""
    from wtree.cli.create_cmd import run_sync_config

    _run(run_sync_config, source, target)


@cli.command()
@click.argument("target", required=False, shell_complete=complete_worktrees)
@click.option("--interactive", "-i", is_flag=True, default=False, help="Pick from a list.")
@click.option("--current", is_flag=True, default=False, help="Only the current repository.")
def jump(target: str | None, interactive: bool, current: bool) -> None:
    """Print the path of a worktree (use via the shell integration to cd)."""
    from wtree.cli.nav_cmd import run_jump

    _run(run_jump, target, interactive, current)


@cli.command()
def back() -> None:
    """Print the path of the repository the current worktree came from."""
    from wtree.cli.nav_cmd import run_back

    _run(run_back)


@cli.command()
@click.option(
    "--managed-only",
    is_flag=True,
    default=False,
    help="Only delete orphaned branches that wtree created.",
)
@click.option(
    "--protect",
    multiple=True,
    metavar="BRANCH",
    help="Additional branch to never delete (repeatable).",
)
def cleanup(managed_only: bool, protect: tuple[str, ...]) -> None:
    """Drop stale git records, orphaned branches and registry entries."""
    from wtree.cli.cleanup_cmd import run_cleanup

    _run(run_cleanup, managed_only, protect)


@cli.command()
@click.argument("shell", type=click.Choice(["bash", "zsh", "fish"]))
def init(shell: str) -> None:
    """Print shell integration for SHELL.

    For bash, add ``eval "$(wtree init bash)"`` to ~/.bashrc.
    """
    from wtree.cli.init_cmd import run_init

    run_init(shell)
