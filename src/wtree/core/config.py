"""Config loading utilities for wtree.

A source repository may carry a ``.worktree-config.yaml`` describing which
untracked configuration files should follow it into new worktrees::

    copy-patterns:
      include: ["mise.toml", "docker-compose.override.yml"]
      exclude: ["*.secret"]

User patterns are *added* to the built-in defaults; nothing is ever removed.
A pattern present in both lists stays in both, and the copy step resolves the
overlap with exclude taking precedence (see :mod:`wtree.core.copy`).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from wtree.core.copy import is_contained_pattern
from wtree.core.models import CopyPatterns

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".worktree-config.yaml"
SECTION = "copy-patterns"

DEFAULT_INCLUDE: tuple[str, ...] = (
    ".env*",
    ".vscode/",
    "*.local.json",
    "config/local/*",
)

DEFAULT_EXCLUDE: tuple[str, ...] = (
    "node_modules/",
    "target/",
    ".git/",
    "*.log",
    "*.tmp",
)


def default_patterns() -> CopyPatterns:
    return CopyPatterns(include=list(DEFAULT_INCLUDE), exclude=list(DEFAULT_EXCLUDE))


def merge_patterns(
    user: CopyPatterns | None, defaults: CopyPatterns | None = None
) -> CopyPatterns:
    """Append *user* patterns to *defaults*, order-preserving and deduplicated.

    A user include that is also a default exclude is kept in both lists.
    """
    base = defaults if defaults is not None else default_patterns()
    include = _dedupe(base.include)
    exclude = _dedupe(base.exclude)

    if user is not None:
        for pattern in user.include:
            if pattern not in include:
                include.append(pattern)
        for pattern in user.exclude:
            if pattern not in exclude:
                exclude.append(pattern)

    return CopyPatterns(include=include, exclude=exclude)


def load_worktree_config(repo_path: Path) -> CopyPatterns:
    """Load ``.worktree-config.yaml`` from *repo_path* merged with defaults.

    Missing, blank, unparsable or wrongly shaped files all yield the defaults;
    problems are logged as warnings and never raised.
    """
    path = repo_path / CONFIG_FILENAME
    if not path.exists():
        logger.debug("No worktree config found at %s; using defaults", path)
        return default_patterns()

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s (%s); using defaults", path, exc)
        return default_patterns()

    if not raw.strip():
        return default_patterns()

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        logger.warning(
            "Invalid YAML in %s; using default configuration. Fix the syntax and "
            "try again.\n  %s",
            path,
            exc,
        )
        return default_patterns()

    logger.info("Loading worktree config from %s", path)
    return merge_patterns(parse_copy_patterns(data, source=path))


def parse_copy_patterns(data: Any, source: Path | str = "<config>") -> CopyPatterns | None:
    """Extract the user's ``copy-patterns`` section, or None if unusable."""
    if data is None:
        return None
    if not isinstance(data, dict):
        logger.warning("%s did not contain a mapping; using defaults", source)
        return None

    section = data.get(SECTION)
    if section is None:
        return None
    if not isinstance(section, dict):
        logger.warning("'%s' in %s is not a mapping; ignoring", SECTION, source)
        return None

    if dropped := set(section) - {"include", "exclude"}:
        logger.warning("Ignoring unknown %s keys: %s", SECTION, sorted(dropped))

    return CopyPatterns(
        include=_pattern_list(section.get("include"), "include", source),
        exclude=_pattern_list(section.get("exclude"), "exclude", source),
    )


def _pattern_list(value: Any, key: str, source: Path | str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        logger.warning("'%s.%s' in %s is not a list; ignoring", SECTION, key, source)
        return []

    patterns = []
    for item in value:
        if not isinstance(item, str) or not item:
            logger.warning("Ignoring non-string %s pattern %r", key, item)
        elif not is_contained_pattern(item):
            logger.warning("Ignoring %s pattern %r outside the repository", key, item)
        else:
            patterns.append(item)
    return patterns


def _dedupe(patterns: list[str]) -> list[str]:
    seen: list[str] = []
    for pattern in patterns:
        if pattern not in seen:
            seen.append(pattern)
    return seen
