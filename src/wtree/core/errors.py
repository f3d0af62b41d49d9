"""Error taxonomy for worktree resolution, storage and git operations.

Lookup *absence* is never an error inside the registry; these exceptions are
raised only when a caller asked for something that must exist, or when an
underlying read/write or git command actually failed.
"""

from __future__ import annotations

from pathlib import Path


class WorktreeError(RuntimeError):
    """Base class for every failure surfaced to the command layer."""


class NotFound(WorktreeError):
    """The target does not resolve to any managed worktree."""


class Ambiguous(WorktreeError):
    """More than one worktree matches; carries every candidate."""

    def __init__(self, target: str, candidates: list[tuple[str, str]]) -> None:
        self.target = target
        self.candidates = candidates
        listing = "\n".join(f"  {repo}/{branch}" for repo, branch in candidates)
        super().__init__(
            f"Multiple worktrees match '{target}'. Please be more specific:\n{listing}"
        )


class AmbiguousUnresolvable(WorktreeError):
    """Registry and git disagree (or are both silent) about a name."""

    def __init__(self, target: str, reason: str) -> None:
        self.target = target
        self.reason = reason
        super().__init__(
            f"Cannot safely resolve '{target}': {reason}. "
            "Pass the full branch name or the absolute worktree path."
        )


class InvalidPath(WorktreeError):
    """A supplied path lies outside the managed storage subtree."""


class IoFailure(WorktreeError):
    """A registry file exists but could not be read or written."""

    def __init__(self, path: Path, cause: Exception) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"I/O error on {path}: {cause}")


class VcsFailure(WorktreeError):
    """A git command exited non-zero."""

    def __init__(self, command: list[str], returncode: int, stderr: str) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"git command failed (exit {returncode}): "
            f"{' '.join(command)}\nstderr: {stderr}"
        )
