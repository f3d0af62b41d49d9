"""Core domain models for wtree.

All domain objects are Pydantic BaseModel classes. Paths are stored as
``pathlib.Path`` and branch names as the raw git identifiers (canonical
names) unless a field says otherwise.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Copy patterns
# ---------------------------------------------------------------------------


class CopyPatterns(BaseModel):
    """Effective include/exclude glob lists for config-file propagation."""

    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class ResolvedTarget(BaseModel):
    """A user-supplied identifier pinned to one worktree."""

    repo: str
    canonical: str
    sanitized: str
    path: Path


class WorktreeEntry(BaseModel):
    """A worktree directory known to the registry."""

    repo: str
    display_name: str
    sanitized: str
    path: Path

    @property
    def qualified(self) -> str:
        return f"{self.repo}/{self.display_name}"


# ---------------------------------------------------------------------------
# Git
# ---------------------------------------------------------------------------


class WorktreeRecord(BaseModel):
    """One entry of ``git worktree list --porcelain``."""

    path: Path
    head: str | None = None
    branch: str | None = None
    bare: bool = False
    detached: bool = False
    prunable: bool = False


class BoolValue(BaseModel):
    kind: Literal["bool"] = "bool"
    value: bool


class IntValue(BaseModel):
    kind: Literal["int"] = "int"
    value: int


class StrValue(BaseModel):
    kind: Literal["str"] = "str"
    value: str


ConfigValue = Annotated[BoolValue | IntValue | StrValue, Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class CreateMode(StrEnum):
    smart = "smart"
    new_branch = "new_branch"
    existing_branch = "existing_branch"


class BranchDeletePolicy(StrEnum):
    always = "always"
    managed_only = "managed_only"
    never = "never"


class StepStatus(StrEnum):
    ok = "ok"
    skipped = "skipped"
    failed = "failed"


class StepOutcome(BaseModel):
    """Result of one independently attempted side effect."""

    step: str
    subject: str
    status: StepStatus = StepStatus.ok
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not StepStatus.failed


class CreateResult(BaseModel):
    """Outcome of creating a managed worktree."""

    repo: str
    branch: str
    path: Path
    created_branch: bool
    copied: list[Path] = Field(default_factory=list)
    warnings: list[StepOutcome] = Field(default_factory=list)


class RemovalReport(BaseModel):
    """Aggregated per-step outcomes of a worktree removal."""

    target: ResolvedTarget
    steps: list[StepOutcome] = Field(default_factory=list)

    @property
    def branch_deleted(self) -> bool:
        return any(
            s.step == "delete_branch" and s.status is StepStatus.ok for s in self.steps
        )

    @property
    def failures(self) -> list[StepOutcome]:
        return [s for s in self.steps if s.status is StepStatus.failed]


class CleanupReport(BaseModel):
    """Per-item results of a reconciliation run, grouped by pass."""

    deleted_branches: list[StepOutcome] = Field(default_factory=list)
    dropped_mappings: list[StepOutcome] = Field(default_factory=list)
    dropped_origins: list[StepOutcome] = Field(default_factory=list)
    pruned_records: list[StepOutcome] = Field(default_factory=list)
    errors: list[StepOutcome] = Field(default_factory=list)

    @property
    def changes(self) -> list[StepOutcome]:
        every = (
            self.deleted_branches
            + self.dropped_mappings
            + self.dropped_origins
            + self.pruned_records
        )
        return [s for s in every if s.status is StepStatus.ok]

    @property
    def is_clean(self) -> bool:
        return not self.changes and not self.errors


class StatusReport(BaseModel):
    """Cross-reference of git's worktree records against storage directories."""

    repo: str
    repo_path: Path
    git_worktrees: list[WorktreeRecord] = Field(default_factory=list)
    managed: list[WorktreeEntry] = Field(default_factory=list)
    registered_names: set[str] = Field(default_factory=set)
