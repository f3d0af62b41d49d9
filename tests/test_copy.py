"""Tests for copying untracked config files between checkouts."""

from __future__ import annotations

from pathlib import Path

import pytest

from wtree.core.config import default_patterns, merge_patterns
from wtree.core.copy import (
    copy_config_files,
    find_matches,
    is_contained_pattern,
    is_excluded,
)
from wtree.core.models import CopyPatterns


def _touch(path: Path, content: str = "x") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


class TestIsExcluded:
    def test_directory_pattern_matches_any_component(self):
        assert is_excluded("node_modules", ["node_modules/"])
        assert is_excluded("web/node_modules/pkg/index.js", ["node_modules/"])
        assert not is_excluded("node_modules_backup/a", ["node_modules/"])

    def test_glob_on_basename(self):
        assert is_excluded("logs/app.log", ["*.log"])
        assert not is_excluded("app.logger", ["*.log"])

    def test_glob_on_relative_path(self):
        assert is_excluded("config/local/secret.json", ["config/local/*"])

    def test_no_patterns(self):
        assert not is_excluded(".env", [])


class TestFindMatches:
    def test_directory_pattern(self, tmp_path):
        (tmp_path / ".vscode").mkdir()
        assert find_matches(tmp_path, ".vscode/") == [tmp_path / ".vscode"]
        assert find_matches(tmp_path, "missing/") == []

    def test_glob(self, tmp_path):
        _touch(tmp_path / ".env")
        _touch(tmp_path / ".env.local")
        assert find_matches(tmp_path, ".env*") == [tmp_path / ".env", tmp_path / ".env.local"]

    def test_literal(self, tmp_path):
        _touch(tmp_path / "mise.toml")
        assert find_matches(tmp_path, "mise.toml") == [tmp_path / "mise.toml"]
        assert find_matches(tmp_path, "absent.toml") == []

    @pytest.mark.parametrize("pattern", ["/etc/hostname", "/etc/*.conf", "../x", "a/../../b"])
    def test_patterns_leaving_the_checkout_rejected(self, tmp_path, pattern):
        assert not is_contained_pattern(pattern)
        with pytest.raises(ValueError, match="leaves the checkout"):
            find_matches(tmp_path, pattern)

    def test_contained_patterns(self):
        for pattern in (".env*", ".vscode/", "config/local/*", "a..b"):
            assert is_contained_pattern(pattern)


class TestCopyConfigFiles:
    def test_copies_default_patterns(self, tmp_path):
        source, target = tmp_path / "src", tmp_path / "dst"
        _touch(source / ".env", "SECRET=1")
        _touch(source / ".vscode" / "settings.json", "{}")
        _touch(source / "app.local.json", "{}")
        _touch(source / "config" / "local" / "db.yml", "db: x")
        _touch(source / "README.md", "not config")
        target.mkdir()

        copied = copy_config_files(source, target, default_patterns())

        assert (target / ".env").read_text() == "SECRET=1"
        assert (target / ".vscode" / "settings.json").exists()
        assert (target / "app.local.json").exists()
        assert (target / "config" / "local" / "db.yml").exists()
        assert not (target / "README.md").exists()
        assert Path(".env") in copied
        assert Path(".vscode") in copied

    def test_exclude_wins_over_include(self, tmp_path):
        source, target = tmp_path / "src", tmp_path / "dst"
        _touch(source / "debug.log")
        target.mkdir()

        patterns = merge_patterns(CopyPatterns(include=["debug.log"]))
        assert "debug.log" in patterns.include
        assert "*.log" in patterns.exclude

        assert copy_config_files(source, target, patterns) == []
        assert not (target / "debug.log").exists()

    def test_excluded_entries_skipped_inside_included_directory(self, tmp_path):
        source, target = tmp_path / "src", tmp_path / "dst"
        _touch(source / ".vscode" / "settings.json")
        _touch(source / ".vscode" / "trace.log")
        _touch(source / ".vscode" / "node_modules" / "x.js")
        target.mkdir()

        copy_config_files(source, target, default_patterns())

        assert (target / ".vscode" / "settings.json").exists()
        assert not (target / ".vscode" / "trace.log").exists()
        assert not (target / ".vscode" / "node_modules").exists()

    def test_overlapping_patterns_copy_once(self, tmp_path):
        source, target = tmp_path / "src", tmp_path / "dst"
        _touch(source / ".env")
        target.mkdir()

        patterns = CopyPatterns(include=[".env*", ".env"], exclude=[])
        assert copy_config_files(source, target, patterns) == [Path(".env")]

    def test_escaping_patterns_skipped(self, tmp_path, caplog):
        source, target = tmp_path / "repo" / "src", tmp_path / "repo" / "dst"
        _touch(source / ".env", "A=1")
        _touch(tmp_path / "repo" / "outside.txt")
        target.mkdir()

        outside = str(tmp_path / "repo" / "outside.txt")
        patterns = CopyPatterns(
            include=[outside, "/etc/*.conf", "../outside.txt", ".env"], exclude=[]
        )
        with caplog.at_level("WARNING"):
            assert copy_config_files(source, target, patterns) == [Path(".env")]
        assert "Skipping include pattern" in caplog.text
        assert sorted(p.name for p in target.iterdir()) == [".env"]

    def test_nothing_matches(self, tmp_path):
        source, target = tmp_path / "src", tmp_path / "dst"
        source.mkdir()
        target.mkdir()
        assert copy_config_files(source, target, default_patterns()) == []
