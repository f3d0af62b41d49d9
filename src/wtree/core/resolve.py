"""Resolve user-supplied identifiers to exactly one managed worktree.

A target may be an absolute path, a canonical branch name (``feature/auth``),
the sanitized directory name (``feature-auth``) or, for navigation only, a
substring of a branch name. Canonical and sanitized forms coincide for most
branch names, so when the registry has no mapping the live branch list is
consulted before anything is returned. If both signals are silent, resolution
refuses instead of guessing: a wrong guess on the remove path deletes the
wrong branch.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from pathlib import Path

from wtree.core.errors import (
    Ambiguous,
    AmbiguousUnresolvable,
    InvalidPath,
    NotFound,
)
from wtree.core.models import ResolvedTarget, WorktreeEntry
from wtree.core.storage import MANAGED_DIR, WorktreeStorage, needs_sanitizing

logger = logging.getLogger(__name__)

_RESERVED_NAMES = frozenset({"", ".", "..", MANAGED_DIR})


class TargetResolver:
    """Resolve targets within one repository's storage directory.

    *branches* is a snapshot of the repository's local branch names. Callers
    about to delete something must pass it; without it, a name that exists
    on disk but has no mapping is accepted as canonical.
    """

    def __init__(
        self,
        storage: WorktreeStorage,
        repo_name: str | None,
        branches: Collection[str] | None = None,
    ) -> None:
        self.storage = storage
        self.repo_name = repo_name
        self._branches = set(branches) if branches is not None else None

    # ------------------------------------------------------------------
    # Strict resolution
    # ------------------------------------------------------------------

    def resolve(self, target: str) -> ResolvedTarget:
        """Resolve *target* to a single worktree or raise a typed failure."""
        repo = self._require_repo()

        if Path(target).is_absolute():
            return self._resolve_path(repo, Path(target))

        if needs_sanitizing(target):
            # Sanitized names never contain these characters.
            path = self.storage.worktree_path(repo, target)
            if path.is_dir():
                return self._target(repo, target, path)
            raise NotFound(
                f"No worktree found for branch '{target}' (expected {path})"
            )

        if target in _RESERVED_NAMES:
            raise NotFound(f"'{target}' is not a worktree name")

        direct = self.storage.repo_dir(repo) / target
        mapped = self.storage.get_canonical_name(repo, target)

        if direct.is_dir():
            if mapped is not None:
                return self._target(repo, mapped, direct)
            if self._branches is None or target in self._branches:
                return self._target(repo, target, direct)
            raise AmbiguousUnresolvable(
                target,
                "a worktree directory exists but the registry has no mapping for "
                "it and no branch with that name exists",
            )

        if mapped is not None:
            path = self.storage.worktree_path(repo, mapped)
            if path.is_dir():
                return self._target(repo, mapped, path)
            raise NotFound(
                f"'{target}' maps to branch '{mapped}' but its worktree directory "
                f"{path} is missing"
            )

        raise NotFound(
            f"No worktree found matching '{target}': no directory with that name "
            "and no sanitized-name mapping"
        )

    def _resolve_path(self, repo: str, path: Path) -> ResolvedTarget:
        repo_dir = self.storage.repo_dir(repo).resolve()
        try:
            relative = path.resolve().relative_to(repo_dir)
        except ValueError:
            raise InvalidPath(f"Invalid worktree path: {path} is not under {repo_dir}") from None

        if not relative.parts or relative.parts[0] == MANAGED_DIR:
            raise InvalidPath(f"Invalid worktree path: {path}")

        sanitized = relative.parts[0]
        canonical = self.storage.get_canonical_name(repo, sanitized)
        if canonical is None:
            logger.debug("No mapping for '%s'; using the directory name as branch", sanitized)
            canonical = sanitized
        return ResolvedTarget(
            repo=repo, canonical=canonical, sanitized=sanitized, path=repo_dir / sanitized
        )

    # ------------------------------------------------------------------
    # Partial matching (navigation)
    # ------------------------------------------------------------------

    def find(self, target: str, all_repos: bool = False) -> ResolvedTarget:
        """Resolve for navigation: strict first, then exact, then substring matches."""
        if not all_repos and self.repo_name is not None:
            try:
                return self.resolve(target)
            except NotFound:
                logger.debug("No strict match for '%s'; trying partial matches", target)

        entries = self.candidates(all_repos=all_repos)

        if Path(target).is_absolute():
            wanted = Path(target).resolve()
            hits = [e for e in entries if wanted == e.path or e.path in wanted.parents]
            if hits:
                return _from_entry(hits[0])
            raise InvalidPath(f"Invalid worktree path: {target}")

        exact = [e for e in entries if target in (e.display_name, e.sanitized)]
        if len(exact) == 1:
            return _from_entry(exact[0])
        if len(exact) > 1:
            raise Ambiguous(target, [(e.repo, e.display_name) for e in exact])

        partial = [e for e in entries if target in e.display_name]
        if not partial:
            raise NotFound(f"No worktree found matching '{target}'")
        if len(partial) > 1:
            raise Ambiguous(target, [(e.repo, e.display_name) for e in partial])
        return _from_entry(partial[0])

    def candidates(self, all_repos: bool = False) -> list[WorktreeEntry]:
        """Existing worktrees in scope, labelled with their canonical names."""
        if all_repos:
            scope = self.storage.list_all_repos()
        elif self.repo_name is not None:
            scope = {self.repo_name: self.storage.list_worktrees_for_repo(self.repo_name)}
        else:
            scope = {}

        entries: list[WorktreeEntry] = []
        for repo, names in scope.items():
            repo_dir = self.storage.repo_dir(repo).resolve()
            for sanitized in sorted(names):
                display = self.storage.get_canonical_name(repo, sanitized) or sanitized
                entries.append(
                    WorktreeEntry(
                        repo=repo,
                        display_name=display,
                        sanitized=sanitized,
                        path=repo_dir / sanitized,
                    )
                )
        return entries

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_repo(self) -> str:
        if self.repo_name is None:
            raise NotFound("Not inside a git repository; cannot resolve a worktree name")
        return self.repo_name

    @staticmethod
    def _target(repo: str, canonical: str, path: Path) -> ResolvedTarget:
        return ResolvedTarget(repo=repo, canonical=canonical, sanitized=path.name, path=path)


def _from_entry(entry: WorktreeEntry) -> ResolvedTarget:
    return ResolvedTarget(
        repo=entry.repo,
        canonical=entry.display_name,
        sanitized=entry.sanitized,
        path=entry.path,
    )


def find_origin(storage: WorktreeStorage, current_dir: Path) -> Path:
    """Return the repository the worktree containing *current_dir* was created from.

    Both sides are canonicalized before comparing, since e.g. ``/var`` and
    ``/private/var`` name the same directory on macOS.
    """
    root = storage.root.resolve()
    here = current_dir.resolve()
    try:
        relative = here.relative_to(root)
    except ValueError:
        relative = None

    if relative is None or len(relative.parts) < 2 or relative.parts[1] == MANAGED_DIR:
        raise NotFound(
            "Not currently in a worktree directory managed by wtree. "
            "'back' only works from inside worktrees created with 'wtree create'."
        )

    repo, sanitized = relative.parts[:2]
    origin = storage.get_origin(repo, sanitized)
    if origin is None:
        raise NotFound(f"No origin information recorded for worktree {repo}/{sanitized}")
    if not origin.exists():
        raise NotFound(
            f"Origin repository no longer exists at {origin}; it may have been moved or deleted"
        )
    if not origin.is_dir():
        raise InvalidPath(f"Origin path is not a directory: {origin}")
    return origin
