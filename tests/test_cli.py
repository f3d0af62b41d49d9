"""Tests for the wtree command line."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from conftest import git
from wtree.cli.init_cmd import shell_script
from wtree.cli.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def in_repo(repo_path, storage_root, monkeypatch):
    monkeypatch.chdir(repo_path)
    return repo_path


class TestCLIGroup:
    def test_cli_has_expected_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for cmd in (
            "create",
            "list",
            "remove",
            "status",
            "sync-config",
            "jump",
            "back",
            "cleanup",
            "init",
        ):
            assert cmd in result.output

    def test_create_help(self, runner):
        result = runner.invoke(cli, ["create", "--help"])
        assert result.exit_code == 0
        for flag in ("--new-branch", "--existing-branch", "--from"):
            assert flag in result.output

    def test_conflicting_modes(self, runner, in_repo):
        result = runner.invoke(cli, ["create", "x", "--new-branch", "--existing-branch"])
        assert result.exit_code == 2


class TestLifecycle:
    def test_create_list_remove(self, runner, in_repo, storage_root):
        result = runner.invoke(cli, ["create", "feature/auth"])
        assert result.exit_code == 0, result.output
        assert "Worktree created successfully" in result.stdout
        assert (storage_root / "myrepo" / "feature-auth").is_dir()

        result = runner.invoke(cli, ["list", "--current"])
        assert result.exit_code == 0
        assert "Worktrees for repository: myrepo" in result.stdout
        assert "feature/auth" in result.stdout

        result = runner.invoke(cli, ["remove", "feature/auth"])
        assert result.exit_code == 0, result.output
        assert "Branch deleted" in result.stdout
        assert not (storage_root / "myrepo" / "feature-auth").exists()

    def test_remove_keep_branch(self, runner, in_repo):
        runner.invoke(cli, ["create", "feature/auth"])
        result = runner.invoke(cli, ["remove", "feature/auth", "--keep-branch"])
        assert result.exit_code == 0
        assert "Branch kept (branch kept)" in result.stdout
        assert "Branch deleted" not in result.stdout

    def test_remove_managed_only(self, runner, in_repo):
        runner.invoke(cli, ["create", "feature/auth"])
        result = runner.invoke(cli, ["remove", "feature/auth", "--managed-only"])
        assert "Branch deleted" in result.stdout

        git(in_repo, "branch", "preexisting")
        runner.invoke(cli, ["create", "preexisting"])
        result = runner.invoke(cli, ["remove", "preexisting", "--managed-only"])
        assert result.exit_code == 0, result.output
        assert "Branch kept (branch was not created by wtree)" in result.stdout

    def test_list_all_repositories(self, runner, in_repo):
        runner.invoke(cli, ["create", "feature/auth"])
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "All managed worktrees:" in result.stdout
        assert "myrepo" in result.stdout

    def test_status(self, runner, in_repo):
        runner.invoke(cli, ["create", "feature/auth"])
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "Repository: myrepo" in result.stdout
        assert "Git worktrees (1):" in result.stdout
        assert "Managed worktrees (1):" in result.stdout

    def test_sync_config(self, runner, in_repo, storage_root):
        runner.invoke(cli, ["create", "feature/a"])
        runner.invoke(cli, ["create", "feature/b"])
        (storage_root / "myrepo" / "feature-a" / ".env").write_text("X=1")

        result = runner.invoke(cli, ["sync-config", "feature/a", "feature/b"])
        assert result.exit_code == 0, result.output
        assert (storage_root / "myrepo" / "feature-b" / ".env").read_text() == "X=1"

    def test_cleanup_nothing_to_do(self, runner, in_repo):
        result = runner.invoke(cli, ["cleanup"])
        assert result.exit_code == 0
        assert "Nothing to clean up." in result.stdout


class TestNavigation:
    def test_jump_prints_only_the_path(self, runner, in_repo, storage_root):
        runner.invoke(cli, ["create", "feature/payments"])
        result = runner.invoke(cli, ["jump", "pay"])
        assert result.exit_code == 0, result.output
        assert result.stdout == f"{storage_root / 'myrepo' / 'feature-payments'}\n"

    def test_jump_ambiguous_lists_candidates(self, runner, in_repo):
        runner.invoke(cli, ["create", "feature/auth-api"])
        runner.invoke(cli, ["create", "feature/auth-ui"])
        result = runner.invoke(cli, ["jump", "auth"])
        assert result.exit_code == 1
        assert result.stdout == ""
        assert "myrepo/feature/auth-api" in result.stderr
        assert "myrepo/feature/auth-ui" in result.stderr

    def test_jump_interactive(self, runner, in_repo, storage_root):
        runner.invoke(cli, ["create", "feature/a"])
        runner.invoke(cli, ["create", "feature/b"])
        result = runner.invoke(cli, ["jump", "--interactive"], input="9\n2\n")
        assert result.exit_code == 0, result.output
        assert result.stdout == f"{storage_root / 'myrepo' / 'feature-b'}\n"
        assert "'9' is not a number from the list" in result.stderr
        assert "myrepo/feature/a" in result.stderr

    def test_remove_interactive(self, runner, in_repo, storage_root):
        runner.invoke(cli, ["create", "feature/a"])
        result = runner.invoke(cli, ["remove", "--current"], input="1\n")
        assert result.exit_code == 0, result.output
        assert not (storage_root / "myrepo" / "feature-a").exists()

    def test_back_from_worktree(self, runner, in_repo, storage_root, monkeypatch):
        runner.invoke(cli, ["create", "feature/auth"])
        monkeypatch.chdir(storage_root / "myrepo" / "feature-auth")
        result = runner.invoke(cli, ["back"])
        assert result.exit_code == 0, result.output
        assert result.stdout == f"{in_repo.resolve()}\n"

    def test_back_outside_worktree(self, runner, in_repo):
        result = runner.invoke(cli, ["back"])
        assert result.exit_code == 1
        assert "Not currently in a worktree directory" in result.stderr


class TestErrors:
    def test_remove_unknown(self, runner, in_repo):
        result = runner.invoke(cli, ["remove", "nothing"])
        assert result.exit_code == 1
        assert "Error:" in result.stderr

    def test_outside_repository(self, runner, storage_root, tmp_path, monkeypatch):
        plain = tmp_path / "plain"
        plain.mkdir()
        monkeypatch.chdir(plain)
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 1
        assert "Not inside a git repository" in result.stderr


class TestInit:
    @pytest.mark.parametrize("shell", ["bash", "zsh", "fish"])
    def test_prints_integration(self, runner, shell):
        result = runner.invoke(cli, ["init", shell])
        assert result.exit_code == 0
        assert result.stdout == shell_script(shell)
        assert "command wtree" in result.stdout
        assert f"_WTREE_COMPLETE={shell}_source" in result.stdout

    def test_unknown_shell(self, runner):
        result = runner.invoke(cli, ["init", "tcsh"])
        assert result.exit_code == 2
