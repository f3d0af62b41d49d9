"""Copy untracked configuration files between checkouts.

Matching rules:

* include ``dir/`` selects that directory; patterns containing ``*``, ``?`` or
  ``[`` are expanded with :meth:`pathlib.Path.glob`; anything else must name an
  existing path.
* exclude ``dir/`` matches any path having that directory among its
  components; other exclude patterns are matched with :func:`fnmatch.fnmatchcase`
  against the relative POSIX path and against the basename.
* A path matching both an include and an exclude pattern is **excluded**.
  Because merging never removes a default exclude, including e.g.
  ``node_modules/.cache`` has no effect while ``node_modules/`` is excluded.
* Include patterns must stay inside the source checkout: absolute patterns and
  patterns with a ``..`` component are skipped with a warning.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
from pathlib import Path, PurePosixPath

from wtree.core.models import CopyPatterns

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[")


def is_excluded(relative: PurePosixPath | str, exclude: list[str]) -> bool:
    """Return True if *relative* (POSIX, relative to the source root) is excluded."""
    rel = PurePosixPath(relative)
    rel_str = rel.as_posix()
    padded = f"/{rel_str}/"

    for pattern in exclude:
        if pattern.endswith("/"):
            name = pattern.strip("/")
            if name and f"/{name}/" in padded:
                return True
        elif fnmatch.fnmatchcase(rel_str, pattern) or fnmatch.fnmatchcase(rel.name, pattern):
            return True
    return False


def is_contained_pattern(pattern: str) -> bool:
    """Return True if *pattern* can only match paths below the checkout root."""
    if PurePosixPath(pattern).is_absolute() or Path(pattern).is_absolute():
        return False
    return ".." not in PurePosixPath(pattern.replace("\\", "/")).parts


def find_matches(source: Path, pattern: str) -> list[Path]:
    """Expand one include *pattern* under *source*.

    Raises ValueError for patterns that could reach outside *source*.
    """
    if not is_contained_pattern(pattern):
        raise ValueError(f"include pattern {pattern!r} leaves the checkout")

    if pattern.endswith("/"):
        candidate = source / pattern.rstrip("/")
        return [candidate] if candidate.is_dir() else []

    if _GLOB_CHARS & set(pattern):
        return sorted(source.glob(pattern))

    candidate = source / pattern
    return [candidate] if candidate.exists() else []


def copy_config_files(source: Path, target: Path, patterns: CopyPatterns) -> list[Path]:
    """Copy every included, non-excluded path from *source* into *target*.

    Returns the relative paths of the top-level items that were copied.
    """
    copied: list[Path] = []
    seen: set[Path] = set()

    for pattern in patterns.include:
        try:
            matches = [(m, m.relative_to(source)) for m in find_matches(source, pattern)]
        except (ValueError, NotImplementedError) as exc:
            logger.warning("Skipping include pattern %r: %s", pattern, exc)
            continue

        for match, relative in matches:
            if relative in seen:
                continue
            seen.add(relative)

            if is_excluded(PurePosixPath(relative.as_posix()), patterns.exclude):
                logger.debug("Skipping excluded path %s", relative)
                continue

            destination = target / relative
            if match.is_file():
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(match, destination)
            elif match.is_dir():
                _copy_tree(source, match, target, patterns.exclude)
            else:
                continue

            logger.info("Copied %s", relative)
            copied.append(relative)

    return copied


def _copy_tree(root: Path, directory: Path, target: Path, exclude: list[str]) -> None:
    (target / directory.relative_to(root)).mkdir(parents=True, exist_ok=True)

    for entry in sorted(directory.iterdir()):
        relative = entry.relative_to(root)
        if is_excluded(PurePosixPath(relative.as_posix()), exclude):
            continue
        if entry.is_dir():
            _copy_tree(root, entry, target, exclude)
        elif entry.is_file():
            destination = target / relative
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(entry, destination)
