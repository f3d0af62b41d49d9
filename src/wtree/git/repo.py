"""Git repository operations using the ``git`` CLI.

Every call is a blocking ``subprocess.run``; wtree is a short-lived CLI
process, so there is nothing to overlap. Failures raise
:class:`~wtree.core.errors.VcsFailure` carrying the command and stderr.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from wtree.core.errors import VcsFailure
from wtree.core.models import (
    BoolValue,
    ConfigValue,
    IntValue,
    StrValue,
    WorktreeRecord,
)

logger = logging.getLogger(__name__)

# Keys describing the main repository's own layout; never copied.
_EXCLUDED_KEYS = frozenset({
    "core.bare",
    "core.worktree",
    "core.repositoryformatversion",
    "extensions.worktreeconfig",
})
_EXCLUDED_PREFIXES = ("branch.", "remote.", "submodule.")
_INHERITED_PREFIXES = (
    "user.",
    "commit.",
    "gpg.",
    "credential.",
    "push.",
    "pull.",
    "merge.",
    "diff.",
    "log.",
    "color.",
)
_INHERITED_KEYS = frozenset({
    "core.editor",
    "core.pager",
    "core.autocrlf",
    "core.filemode",
    "init.defaultbranch",
})

_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off"})
_INT_RE = re.compile(r"^[+-]?\d+[kmg]?$", re.IGNORECASE)
_INT_SUFFIXES = {"k": 1024, "m": 1024**2, "g": 1024**3}


def parse_config_value(raw: str) -> ConfigValue:
    """Classify a git config value: bool, then int, then string fallback.

    Boolean parsing accepts git's boolean words only; integers such as ``1``
    are left for integer parsing so they keep their numeric meaning.
    """
    lowered = raw.strip().lower()
    if lowered in _TRUE_WORDS:
        return BoolValue(value=True)
    if lowered in _FALSE_WORDS:
        return BoolValue(value=False)
    if _INT_RE.match(lowered):
        suffix = lowered[-1]
        if suffix in _INT_SUFFIXES:
            return IntValue(value=int(lowered[:-1]) * _INT_SUFFIXES[suffix])
        return IntValue(value=int(lowered))
    return StrValue(value=raw)


def should_inherit_config_key(key: str) -> bool:
    """Whether a parent-repository config key should be copied to a worktree."""
    key = key.lower()
    if key in _EXCLUDED_KEYS or key.startswith(_EXCLUDED_PREFIXES):
        return False
    return key.startswith(_INHERITED_PREFIXES) or key in _INHERITED_KEYS


class GitRepo:
    """Synchronous wrapper around a local git repository."""

    def __init__(self, project_dir: Path) -> None:
        self.project_dir = project_dir

    @classmethod
    def discover(cls, path: Path) -> GitRepo:
        """Open the repository containing *path* at its top-level directory.

        From inside a linked worktree this returns the worktree's top level;
        callers wanting the main checkout use :meth:`main_worktree_path`.
        """
        top = _run_git(["git", "-C", str(path), "rev-parse", "--show-toplevel"])
        return cls(Path(top))

    @property
    def path(self) -> Path:
        return self.project_dir

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run(self, *args: str, cwd: Path | None = None) -> str:
        """Run a git command and return stripped stdout."""
        return _run_git(["git", "-C", str(cwd or self.project_dir), *args])

    # ------------------------------------------------------------------
    # Branches and references
    # ------------------------------------------------------------------

    def branch_exists(self, name: str) -> bool:
        try:
            self._run("show-ref", "--verify", "--quiet", f"refs/heads/{name}")
        except VcsFailure as exc:
            if exc.returncode == 1:
                return False
            raise
        return True

    def create_branch(self, name: str, start_point: str | None = None) -> None:
        """Create *name* at *start_point* (a ref resolved to a commit) or HEAD."""
        commit = self.resolve_reference(start_point) if start_point else "HEAD"
        self._run("branch", name, commit)

    def resolve_reference(self, ref: str) -> str:
        """Resolve a branch, tag or commit-ish to a full commit SHA."""
        return self._run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")

    def delete_branch(self, name: str) -> None:
        self._run("branch", "-D", name)

    def list_local_branches(self) -> list[str]:
        return self._refs("refs/heads")

    def list_remote_branches(self) -> list[str]:
        return [ref for ref in self._refs("refs/remotes") if not ref.endswith("/HEAD")]

    def list_tags(self) -> list[str]:
        return self._refs("refs/tags")

    def _refs(self, namespace: str) -> list[str]:
        raw = self._run("for-each-ref", "--format=%(refname)", namespace)
        prefix = f"{namespace}/"
        return [line.removeprefix(prefix) for line in raw.splitlines() if line]

    # ------------------------------------------------------------------
    # Worktrees
    # ------------------------------------------------------------------

    def create_worktree(self, branch: str, path: Path) -> None:
        """Check out existing *branch* into a new linked worktree at *path*.

        git names the worktree's admin directory after ``path.name``.
        """
        self._run("worktree", "add", str(path), branch)

    def remove_worktree(self, path: Path) -> None:
        """Unregister the worktree at *path*.

        A worktree whose directory is already gone is dropped with
        ``git worktree prune``.
        """
        if path.exists():
            self._run("worktree", "remove", "--force", str(path))
        else:
            self.prune_worktrees()

    def prune_worktrees(self) -> None:
        self._run("worktree", "prune")

    def list_worktrees(self) -> list[WorktreeRecord]:
        """Return git's worktree records; the main worktree comes first."""
        raw = self._run("worktree", "list", "--porcelain")

        records: list[WorktreeRecord] = []
        current: dict | None = None

        for line in raw.splitlines():
            if line.startswith("worktree "):
                if current is not None:
                    records.append(WorktreeRecord(**current))
                current = {"path": Path(line.removeprefix("worktree ").strip())}
            elif current is None:
                continue
            elif line.startswith("HEAD "):
                current["head"] = line.removeprefix("HEAD ").strip()
            elif line.startswith("branch "):
                ref = line.removeprefix("branch ").strip()
                current["branch"] = ref.removeprefix("refs/heads/")
            elif line == "bare":
                current["bare"] = True
            elif line == "detached":
                current["detached"] = True
            elif line.startswith("prunable"):
                current["prunable"] = True

        if current is not None:
            records.append(WorktreeRecord(**current))
        return records

    def main_worktree_path(self) -> Path:
        records = self.list_worktrees()
        return records[0].path if records else self.project_dir

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def config_entries(self) -> dict[str, ConfigValue]:
        """Effective config (all scopes, includes resolved), typed per value."""
        raw = self._run("config", "--list", "--includes", "--null")
        entries: dict[str, ConfigValue] = {}
        for record in raw.split("\0"):
            if not record:
                continue
            key, sep, value = record.partition("\n")
            # A key listed without a value is an implicit boolean true.
            entries[key.strip()] = parse_config_value(value) if sep else BoolValue(value=True)
        return entries

    def set_config(self, key: str, value: ConfigValue, worktree_path: Path | None = None) -> None:
        """Write *key* to this repo's config, or a worktree's ``config.worktree``."""
        cwd = worktree_path or self.project_dir
        scope = ["--worktree"] if worktree_path is not None else []
        match value:
            case BoolValue(value=flag):
                self._run("config", *scope, "--bool", key, "true" if flag else "false", cwd=cwd)
            case IntValue(value=number):
                self._run("config", *scope, "--int", key, str(number), cwd=cwd)
            case StrValue(value=text):
                self._run("config", *scope, key, text, cwd=cwd)

    def inherit_config(self, worktree_path: Path) -> list[str]:
        """Copy user-level settings into the worktree's own config.

        Enables ``extensions.worktreeConfig`` on the main repository first.
        Returns the keys that could not be written.
        """
        self.set_config("extensions.worktreeConfig", BoolValue(value=True))

        failed: list[str] = []
        for key, value in self.config_entries().items():
            if not should_inherit_config_key(key):
                continue
            try:
                self.set_config(key, value, worktree_path=worktree_path)
            except VcsFailure as exc:
                logger.warning("Failed to set config %s: %s", key, exc.stderr)
                failed.append(key)
        return failed


def _run_git(cmd: list[str]) -> str:
    logger.debug("git command: %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError as exc:
        raise VcsFailure(cmd, 127, "git executable not found") from exc
    if proc.returncode != 0:
        raise VcsFailure(cmd, proc.returncode, proc.stderr.strip())
    return proc.stdout.strip()
