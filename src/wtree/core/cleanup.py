"""Repair drift between git, the registry and the storage directories.

Three independent passes, each of which records per-item outcomes and keeps
going past individual failures:

1. git worktree records whose directory no longer exists are unregistered;
2. local branches without a storage directory are deleted;
3. mapping and origin rows whose directory no longer exists are dropped.

Records are pruned before branches are deleted so a branch held by a dead
worktree record is deletable in the same run, which keeps a second run a
no-op. Only references are ever removed, never worktree files.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from wtree.core.errors import IoFailure, VcsFailure, WorktreeError
from wtree.core.models import CleanupReport, StepOutcome, StepStatus
from wtree.core.storage import WorktreeStorage, sanitize
from wtree.git.repo import GitRepo

logger = logging.getLogger(__name__)

DEFAULT_PROTECTED: tuple[str, ...] = ("main", "master")


class Reconciler:
    """Detect and repair registry drift for one repository."""

    def __init__(
        self,
        repo: GitRepo,
        storage: WorktreeStorage,
        repo_name: str,
        *,
        protected: Iterable[str] = DEFAULT_PROTECTED,
        current_dir: Path | None = None,
        managed_only: bool = False,
    ) -> None:
        self.repo = repo
        self.storage = storage
        self.repo_name = repo_name
        self.protected = frozenset(protected)
        self.current_dir = current_dir
        self.managed_only = managed_only

    def run(self) -> CleanupReport:
        report = CleanupReport()
        passes: list[tuple[str, Callable[[CleanupReport], None]]] = [
            ("prune_records", self.prune_orphan_records),
            ("delete_branches", self.delete_orphan_branches),
            ("drop_rows", self.drop_stale_rows),
        ]
        for name, step in passes:
            try:
                step(report)
            except WorktreeError as exc:
                logger.warning("Cleanup pass %s failed: %s", name, exc)
                report.errors.append(
                    StepOutcome(
                        step=name,
                        subject=self.repo_name,
                        status=StepStatus.failed,
                        detail=str(exc),
                    )
                )
        return report

    # -- Passes --------------------------------------------------------------

    def prune_orphan_records(self, report: CleanupReport) -> None:
        cwd = (self.current_dir or Path.cwd()).resolve()
        records = self.repo.list_worktrees()

        # The first record is the main worktree.
        for record in records[1:]:
            if record.bare or record.path.exists():
                continue
            if record.path.resolve() == cwd:
                continue

            logger.info("Found orphaned git worktree record: %s", record.path)
            try:
                self.repo.remove_worktree(record.path)
            except VcsFailure as exc:
                report.pruned_records.append(
                    _failed("prune_record", str(record.path), exc.stderr or str(exc))
                )
                continue
            report.pruned_records.append(StepOutcome(step="prune_record", subject=str(record.path)))

    def delete_orphan_branches(self, report: CleanupReport) -> None:
        existing = self.storage.list_worktrees_for_repo(self.repo_name)

        for branch in self.repo.list_local_branches():
            if branch in self.protected or sanitize(branch) in existing:
                continue
            if self.managed_only and not self.storage.is_managed(self.repo_name, branch):
                continue

            logger.info("Found orphaned branch: %s", branch)
            try:
                self.repo.delete_branch(branch)
            except VcsFailure as exc:
                logger.warning("Could not delete branch %s: %s", branch, exc.stderr)
                report.deleted_branches.append(
                    _failed("delete_branch", branch, exc.stderr or str(exc))
                )
                continue

            report.deleted_branches.append(StepOutcome(step="delete_branch", subject=branch))
            try:
                self.storage.unmark_managed(self.repo_name, branch)
                self.storage.remove_branch_mapping(self.repo_name, branch)
            except IoFailure as exc:
                report.errors.append(_failed("retire_branch", branch, str(exc)))

    def drop_stale_rows(self, report: CleanupReport) -> None:
        existing = self.storage.list_worktrees_for_repo(self.repo_name)

        def keep(sanitized: str, _value: str) -> bool:
            return sanitized in existing

        for sanitized, canonical in self.storage.retain_mapping_rows(self.repo_name, keep):
            logger.info("Dropped mapping for %s", canonical)
            report.dropped_mappings.append(
                StepOutcome(step="drop_mapping", subject=canonical, detail=sanitized)
            )
        for sanitized, origin in self.storage.retain_origin_rows(self.repo_name, keep):
            report.dropped_origins.append(
                StepOutcome(step="drop_origin", subject=sanitized, detail=origin)
            )


def _failed(step: str, subject: str, detail: str) -> StepOutcome:
    return StepOutcome(step=step, subject=subject, status=StepStatus.failed, detail=detail)
