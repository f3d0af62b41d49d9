"""Git worktree lifecycle for centrally stored, registry-tracked checkouts.

Each worktree lives at ``<storage root>/<repo>/<sanitized branch>``. The
registry is only written after the corresponding git operation succeeded, and
removal runs directory, then git record, then registry, so an interruption
leaves state that :class:`~wtree.core.cleanup.Reconciler` can repair.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from wtree.core.config import load_worktree_config
from wtree.core.copy import copy_config_files
from wtree.core.errors import IoFailure, NotFound, VcsFailure, WorktreeError
from wtree.core.models import (
    BranchDeletePolicy,
    CreateMode,
    CreateResult,
    RemovalReport,
    StatusReport,
    StepOutcome,
    StepStatus,
)
from wtree.core.resolve import TargetResolver
from wtree.core.storage import WorktreeStorage
from wtree.git.repo import GitRepo

logger = logging.getLogger(__name__)


class WorktreeManager:
    """Create, remove, sync and inspect managed worktrees of one repository."""

    def __init__(
        self, repo: GitRepo, storage: WorktreeStorage, repo_name: str | None = None
    ) -> None:
        self.repo = repo
        self.storage = storage
        self.repo_name = repo_name or storage.repo_name_for(repo.main_worktree_path())

    def resolver(self, strict: bool = True) -> TargetResolver:
        """A resolver for this repository; *strict* adds the live branch list."""
        branches = self.repo.list_local_branches() if strict else None
        return TargetResolver(self.storage, self.repo_name, branches=branches)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        branch: str,
        mode: CreateMode = CreateMode.smart,
        from_ref: str | None = None,
    ) -> CreateResult:
        """Create a worktree for *branch*, creating the branch if needed.

        The branch is marked managed only if this call created it.
        """
        if not branch.strip():
            raise WorktreeError("Branch name must not be empty")

        wt_path = self.storage.worktree_path(self.repo_name, branch)
        if wt_path.exists():
            raise WorktreeError(f"Worktree path already exists: {wt_path}")

        branch_exists = self.repo.branch_exists(branch)
        if mode is CreateMode.new_branch and branch_exists:
            raise WorktreeError(
                f"Branch '{branch}' already exists. Use 'wtree create {branch}' "
                "(without --new-branch) to create a worktree for it"
            )
        if mode is CreateMode.existing_branch and not branch_exists:
            raise WorktreeError(
                f"Branch '{branch}' doesn't exist. Use 'wtree create {branch}' "
                "(without --existing-branch) to create it"
            )
        if from_ref and branch_exists:
            logger.warning("Branch '%s' already exists; ignoring --from %s", branch, from_ref)

        wt_path.parent.mkdir(parents=True, exist_ok=True)

        created_branch = not branch_exists
        if created_branch:
            self.repo.create_branch(branch, from_ref)
            logger.info("Created branch '%s' from %s", branch, from_ref or "HEAD")

        try:
            self.repo.create_worktree(branch, wt_path)
        except VcsFailure:
            if created_branch:
                self._rollback_branch(branch)
            raise
        logger.info("Created worktree for branch '%s' at %s", branch, wt_path)

        warnings: list[StepOutcome] = []
        try:
            if failed := self.repo.inherit_config(wt_path):
                warnings.append(
                    _failed("inherit_config", branch, f"could not set: {', '.join(failed)}")
                )
        except VcsFailure as exc:
            warnings.append(_failed("inherit_config", branch, str(exc)))

        self.storage.put_branch_mapping(self.repo_name, branch, wt_path.name)

        copied: list[Path] = []
        try:
            copied = copy_config_files(
                self.repo.path, wt_path, load_worktree_config(self.repo.path)
            )
        except OSError as exc:
            warnings.append(_failed("copy_config", branch, str(exc)))

        self.storage.put_origin(self.repo_name, wt_path.name, self.repo.path)

        if created_branch:
            try:
                self.storage.mark_managed(self.repo_name, branch)
            except IoFailure as exc:
                warnings.append(_failed("mark_managed", branch, str(exc)))

        return CreateResult(
            repo=self.repo_name,
            branch=branch,
            path=wt_path,
            created_branch=created_branch,
            copied=copied,
            warnings=warnings,
        )

    def _rollback_branch(self, branch: str) -> None:
        try:
            self.repo.delete_branch(branch)
        except VcsFailure as exc:
            logger.warning("Could not roll back branch '%s': %s", branch, exc.stderr)

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove(
        self, target: str, policy: BranchDeletePolicy = BranchDeletePolicy.always
    ) -> RemovalReport:
        """Remove the worktree *target* resolves to, then retire its branch.

        Only failing to remove the worktree itself is fatal; every later step
        is attempted independently and reported.
        """
        branches = set(self.repo.list_local_branches())
        resolved = TargetResolver(self.storage, self.repo_name, branches=branches).resolve(target)
        if not resolved.path.exists():
            raise NotFound(f"Worktree path does not exist: {resolved.path}")

        report = RemovalReport(target=resolved)
        branch = resolved.canonical

        self.repo.remove_worktree(resolved.path)
        report.steps.append(StepOutcome(step="remove_worktree", subject=str(resolved.path)))

        if resolved.path.exists():
            try:
                shutil.rmtree(resolved.path)
                report.steps.append(StepOutcome(step="remove_directory", subject=str(resolved.path)))
            except OSError as exc:
                report.steps.append(_failed("remove_directory", str(resolved.path), str(exc)))

        report.steps.append(self._attempt("prune_records", self.repo_name, self.repo.prune_worktrees))
        report.steps.append(
            self._attempt(
                "remove_origin",
                resolved.sanitized,
                lambda: self.storage.remove_origin(self.repo_name, resolved.sanitized),
            )
        )

        if branch not in branches:
            report.steps.append(
                StepOutcome(
                    step="delete_branch",
                    subject=branch,
                    status=StepStatus.skipped,
                    detail="branch does not exist",
                )
            )
            branch_gone = True
        elif policy is BranchDeletePolicy.never or (
            policy is BranchDeletePolicy.managed_only
            and not self.storage.is_managed(self.repo_name, branch)
        ):
            report.steps.append(
                StepOutcome(
                    step="delete_branch",
                    subject=branch,
                    status=StepStatus.skipped,
                    detail="branch kept" if policy is BranchDeletePolicy.never
                    else "branch was not created by wtree",
                )
            )
            branch_gone = False
        else:
            outcome = self._attempt("delete_branch", branch, lambda: self.repo.delete_branch(branch))
            report.steps.append(outcome)
            branch_gone = outcome.status is StepStatus.ok

        if branch_gone:
            report.steps.append(
                self._attempt(
                    "unmark_managed",
                    branch,
                    lambda: self.storage.unmark_managed(self.repo_name, branch),
                )
            )
            report.steps.append(
                self._attempt(
                    "remove_mapping",
                    branch,
                    lambda: self.storage.remove_branch_mapping(self.repo_name, branch),
                )
            )

        logger.info("Removed worktree %s (%d failed steps)", resolved.path, len(report.failures))
        return report

    @staticmethod
    def _attempt(step: str, subject: str, action) -> StepOutcome:
        try:
            action()
        except WorktreeError as exc:
            logger.warning("%s failed for %s: %s", step, subject, exc)
            return _failed(step, subject, str(exc))
        return StepOutcome(step=step, subject=subject)

    # ------------------------------------------------------------------
    # Sync and status
    # ------------------------------------------------------------------

    def sync_config(self, source: str, target: str) -> list[Path]:
        """Copy config files from one managed worktree into another."""
        resolver = self.resolver()
        source_wt = resolver.resolve(source)
        target_wt = resolver.resolve(target)

        if not source_wt.path.is_dir():
            raise NotFound(f"Source worktree does not exist: {source_wt.path}")
        if not target_wt.path.is_dir():
            raise NotFound(f"Target worktree does not exist: {target_wt.path}")

        patterns = load_worktree_config(self.repo.path)
        try:
            return copy_config_files(source_wt.path, target_wt.path, patterns)
        except OSError as exc:
            raise IoFailure(target_wt.path, exc) from exc

    def status(self) -> StatusReport:
        records = self.repo.list_worktrees()
        return StatusReport(
            repo=self.repo_name,
            repo_path=self.repo.main_worktree_path(),
            git_worktrees=records[1:],
            managed=self.resolver(strict=False).candidates(),
            registered_names={record.path.name for record in records[1:]},
        )


def _failed(step: str, subject: str, detail: str) -> StepOutcome:
    return StepOutcome(step=step, subject=subject, status=StepStatus.failed, detail=detail)
