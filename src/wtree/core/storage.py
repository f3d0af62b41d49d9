"""Registry of managed worktrees under a central storage root.

Layout::

    <root>/<repo>/<sanitized>/               worktree checkout
    <root>/<repo>/.branch-mapping            "<sanitized> -> <canonical>" per line
    <root>/<repo>/.worktree-origins          "<sanitized> -> <origin path>" per line
    <root>/<repo>/.managed-branches/<name>   zero-byte marker per managed branch

The line files are plain text so they stay human-inspectable. Canonical names
containing the literal separator ``" -> "`` are not supported. Every rewrite
goes through a temp file and ``os.replace`` so readers never see a truncated
file; concurrent writers can still lose an update.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path

from wtree.core.errors import InvalidPath, IoFailure

logger = logging.getLogger(__name__)

STORAGE_ROOT_ENV = "WORKTREE_STORAGE_ROOT"
MAPPING_FILE = ".branch-mapping"
ORIGINS_FILE = ".worktree-origins"
MANAGED_DIR = ".managed-branches"
SEPARATOR = " -> "

UNSAFE_CHARS = '/\\:*?"<>|'
SAFE_CHAR = "-"
_SANITIZE_TABLE = str.maketrans({c: SAFE_CHAR for c in UNSAFE_CHARS})

Row = tuple[str, str]


def sanitize(name: str) -> str:
    """Replace every filesystem-unsafe character in *name* with ``-``."""
    return name.translate(_SANITIZE_TABLE)


def needs_sanitizing(name: str) -> bool:
    return any(c in UNSAFE_CHARS for c in name)


def default_storage_root() -> Path:
    """``$WORKTREE_STORAGE_ROOT`` if set, else ``~/.worktrees``."""
    custom = os.environ.get(STORAGE_ROOT_ENV)
    if custom:
        return Path(custom).expanduser()
    return Path.home() / ".worktrees"


class WorktreeStorage:
    """Flat-file registry: branch mappings, origins and managed-branch markers."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @classmethod
    def from_env(cls) -> WorktreeStorage:
        """Build a store on the default root, creating it if needed."""
        root = default_storage_root()
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IoFailure(root, exc) from exc
        return cls(root)

    # -- Paths ---------------------------------------------------------------

    @property
    def root(self) -> Path:
        return self._root

    @staticmethod
    def repo_name_for(repo_path: Path) -> str:
        name = repo_path.name
        if not name:
            raise InvalidPath(f"Could not determine repository name from {repo_path}")
        return name

    def repo_dir(self, repo: str) -> Path:
        return self._root / repo

    def worktree_path(self, repo: str, canonical: str) -> Path:
        return self._root / repo / sanitize(canonical)

    def _mapping_file(self, repo: str) -> Path:
        return self._root / repo / MAPPING_FILE

    def _origins_file(self, repo: str) -> Path:
        return self._root / repo / ORIGINS_FILE

    def _marker(self, repo: str, canonical: str) -> Path:
        return self._root / repo / MANAGED_DIR / sanitize(canonical)

    # -- Branch mapping ------------------------------------------------------

    def put_branch_mapping(self, repo: str, canonical: str, sanitized: str) -> None:
        """Record ``sanitized -> canonical``; the latest write for a key wins."""
        self._put_row(self._mapping_file(repo), sanitized, canonical)

    def get_canonical_name(self, repo: str, sanitized: str) -> str | None:
        return self._lookup(self._mapping_file(repo), sanitized)

    def remove_branch_mapping(self, repo: str, canonical: str) -> None:
        self._retain(self._mapping_file(repo), lambda _key, value: value != canonical)

    def mapping_rows(self, repo: str) -> list[Row]:
        return _parse_rows(self._read_lines(self._mapping_file(repo)) or [])

    def retain_mapping_rows(self, repo: str, keep: Callable[[str, str], bool]) -> list[Row]:
        """Drop mapping rows for which *keep* is False; return the dropped rows."""
        return self._retain(self._mapping_file(repo), keep)

    # -- Origins -------------------------------------------------------------

    def put_origin(self, repo: str, sanitized: str, origin: Path | str) -> None:
        """Record where the worktree was created from, as a resolved absolute path."""
        resolved = Path(origin).resolve()
        self._put_row(self._origins_file(repo), sanitized, str(resolved))

    def get_origin(self, repo: str, sanitized: str) -> Path | None:
        value = self._lookup(self._origins_file(repo), sanitized)
        return Path(value) if value is not None else None

    def remove_origin(self, repo: str, sanitized: str) -> None:
        self._retain(self._origins_file(repo), lambda key, _value: key != sanitized)

    def origin_rows(self, repo: str) -> list[Row]:
        return _parse_rows(self._read_lines(self._origins_file(repo)) or [])

    def retain_origin_rows(self, repo: str, keep: Callable[[str, str], bool]) -> list[Row]:
        return self._retain(self._origins_file(repo), keep)

    # -- Managed-branch markers ----------------------------------------------

    def mark_managed(self, repo: str, canonical: str) -> None:
        """Create the marker atomically so a reader never sees a partial write."""
        marker = self._marker(repo, canonical)
        try:
            marker.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(marker, b"")
        except OSError as exc:
            raise IoFailure(marker, exc) from exc
        logger.debug("Marked branch '%s' as managed in %s", canonical, repo)

    def is_managed(self, repo: str, canonical: str) -> bool:
        return self._marker(repo, canonical).is_file()

    def unmark_managed(self, repo: str, canonical: str) -> None:
        # A concurrent cleanup may already have removed it.
        marker = self._marker(repo, canonical)
        try:
            marker.unlink(missing_ok=True)
        except OSError as exc:
            raise IoFailure(marker, exc) from exc

    # -- Enumeration ---------------------------------------------------------

    def list_worktrees_for_repo(self, repo: str) -> set[str]:
        repo_dir = self.repo_dir(repo)
        if not repo_dir.is_dir():
            return set()
        try:
            return {
                entry.name
                for entry in repo_dir.iterdir()
                if entry.is_dir() and entry.name != MANAGED_DIR
            }
        except OSError as exc:
            raise IoFailure(repo_dir, exc) from exc

    def list_all_repos(self) -> dict[str, set[str]]:
        if not self._root.is_dir():
            return {}
        try:
            repos = sorted(entry.name for entry in self._root.iterdir() if entry.is_dir())
        except OSError as exc:
            raise IoFailure(self._root, exc) from exc
        return {repo: self.list_worktrees_for_repo(repo) for repo in repos}

    # -- Internals -----------------------------------------------------------

    @staticmethod
    def _read_lines(path: Path) -> list[str] | None:
        """Return the lines of *path*, or None if it does not exist."""
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise IoFailure(path, exc) from exc

        lines = raw.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        return lines

    def _lookup(self, path: Path, key: str) -> str | None:
        for row_key, value in _parse_rows(self._read_lines(path) or []):
            if row_key == key:
                return value
        return None

    def _put_row(self, path: Path, key: str, value: str) -> None:
        lines = self._read_lines(path) or []
        entry = f"{key}{SEPARATOR}{value}"
        if entry in lines:
            return

        kept = [line for line in lines if (row := _split(line)) is None or row[0] != key]
        if len(kept) != len(lines):
            logger.warning("Replacing existing %s entry for '%s'", path.name, key)
        kept.append(entry)
        self._write_lines(path, kept)

    def _retain(self, path: Path, keep: Callable[[str, str], bool]) -> list[Row]:
        lines = self._read_lines(path)
        if lines is None:
            return []

        kept: list[str] = []
        dropped: list[Row] = []
        for line in lines:
            row = _split(line)
            if row is None or keep(*row):
                kept.append(line)
            else:
                dropped.append(row)

        if dropped:
            self._write_lines(path, kept)
        return dropped

    @staticmethod
    def _write_lines(path: Path, lines: list[str]) -> None:
        content = "".join(f"{line}\n" for line in lines)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(path, content.encode("utf-8"))
        except OSError as exc:
            raise IoFailure(path, exc) from exc


def _split(line: str) -> Row | None:
    key, sep, value = line.partition(SEPARATOR)
    if not sep:
        return None
    return key, value


def _parse_rows(lines: list[str]) -> list[Row]:
    return [row for line in lines if (row := _split(line)) is not None]


def _atomic_write(path: Path, data: bytes) -> None:
    """Write via tmp + fsync + replace."""
    tmp_path = path.parent / f"{path.name}.tmp"
    fd = os.open(str(tmp_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
    try:
        try:
            os.write(fd, data)
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
