"""Tests for aura.repos. Discovery walks real tmp_path trees; git is faked."""

import os
from pathlib import Path

import pytest

from aura.models import LocalRepo
from aura.repos import discover_repos, find_repos, get_current_branch, is_repo_dirty, list_directories
from conftest import FakeRunner, fail, ok


def _make_repo(path: Path) -> Path:
    (path / ".git").mkdir(parents=True)
    return path


def _git_runner(branch: str = "main", status: str = "") -> FakeRunner:
    return FakeRunner(
        {
            ("git", "rev-parse", "--abbrev-ref", "HEAD"): ok(f"{branch}\n"),
            ("git", "status", "--porcelain"): ok(status),
        }
    )


class TestFindRepos:
    def test_finds_direct_child_at_depth_zero(self, tmp_path: Path) -> None:
        repo = _make_repo(tmp_path / "alpha")
        assert find_repos(tmp_path, max_depth=0) == [repo]

    def test_depth_limit(self, tmp_path: Path) -> None:
        deep = _make_repo(tmp_path / "a" / "b" / "deep")  # child of a/b, i.e. depth 2
        assert find_repos(tmp_path, max_depth=1) == []
        assert find_repos(tmp_path, max_depth=2) == [deep]

    def test_does_not_descend_into_repos(self, tmp_path: Path) -> None:
        outer = _make_repo(tmp_path / "outer")
        _make_repo(outer / "vendored")
        assert find_repos(tmp_path, max_depth=4) == [outer]

    def test_skips_hidden_and_build_dirs(self, tmp_path: Path) -> None:
        _make_repo(tmp_path / ".cache" / "hidden-repo")
        _make_repo(tmp_path / "node_modules" / "pkg")
        _make_repo(tmp_path / "target" / "built")
        _make_repo(tmp_path / ".dotrepo")
        assert find_repos(tmp_path, max_depth=4) == []

    def test_git_file_marks_worktree(self, tmp_path: Path) -> None:
        worktree = tmp_path / "linked"
        worktree.mkdir()
        (worktree / ".git").write_text("gitdir: /elsewhere/.git/worktrees/linked\n")
        assert find_repos(tmp_path, max_depth=0) == [worktree]

    def test_files_are_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "notes.txt").write_text("hi")
        assert find_repos(tmp_path, max_depth=4) == []

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
    def test_unreadable_directory_is_empty(self, tmp_path: Path) -> None:
        locked = tmp_path / "locked"
        _make_repo(locked / "inside")
        locked.chmod(0)
        try:
            assert find_repos(tmp_path, max_depth=4) == []
        finally:
            locked.chmod(0o755)


class TestGitQueries:
    def test_branch(self, tmp_path: Path) -> None:
        runner = _git_runner(branch="feature/x")
        assert get_current_branch(tmp_path, runner) == "feature/x"
        assert runner.calls[0][1] == tmp_path

    def test_branch_failure_is_unknown(self, tmp_path: Path) -> None:
        assert get_current_branch(tmp_path, FakeRunner({("git",): fail("fatal: not a git repository")})) == "unknown"
        assert get_current_branch(tmp_path, FakeRunner()) == "unknown"

    def test_dirty_iff_output(self, tmp_path: Path) -> None:
        assert is_repo_dirty(tmp_path, _git_runner(status=" M README.md\n")) is True
        assert is_repo_dirty(tmp_path, _git_runner(status="")) is False

    def test_status_failure_is_clean(self, tmp_path: Path) -> None:
        failing = FakeRunner({("git", "status"): fail("fatal: bad object", returncode=128)})
        assert is_repo_dirty(tmp_path, failing) is False
        assert is_repo_dirty(tmp_path, FakeRunner()) is False


class TestDiscoverRepos:
    def test_empty_roots(self) -> None:
        assert discover_repos([], runner=_git_runner()) == []

    def test_nonexistent_root(self, tmp_path: Path) -> None:
        assert discover_repos([str(tmp_path / "nope")], runner=_git_runner()) == []

    def test_root_that_is_a_file(self, tmp_path: Path) -> None:
        f = tmp_path / "file"
        f.write_text("")
        assert discover_repos([f], runner=_git_runner()) == []

    def test_root_that_is_a_repo_is_searched_not_reported(self, tmp_path: Path) -> None:
        # e.g. a dotfiles repo at ~/.git with ~ as the scan root
        home = _make_repo(tmp_path / "home")
        app = _make_repo(home / "src" / "app")
        repos = discover_repos([home], runner=_git_runner())
        assert [r.path for r in repos] == [str(app)]

    def test_root_repo_alone_yields_nothing(self, tmp_path: Path) -> None:
        root = _make_repo(tmp_path / "solo")
        assert discover_repos([root], max_depth=0, runner=_git_runner()) == []

    def test_reports_branch_and_dirty(self, tmp_path: Path) -> None:
        _make_repo(tmp_path / "alpha")
        (repo,) = discover_repos([tmp_path], runner=_git_runner(branch="develop", status="?? new.txt\n"))
        assert repo == LocalRepo(name="alpha", path=str(tmp_path / "alpha"), current_branch="develop", is_dirty=True)

    def test_sorted_case_insensitively(self, tmp_path: Path) -> None:
        for name in ["charlie", "Bravo", "alpha"]:
            _make_repo(tmp_path / name)
        repos = discover_repos([tmp_path], runner=_git_runner())
        assert [r.name for r in repos] == ["alpha", "Bravo", "charlie"]

    def test_multiple_roots_and_duplicate_names(self, tmp_path: Path) -> None:
        # Same name under two roots: both are reported, identity is the path.
        # Their relative order is not part of the contract.
        _make_repo(tmp_path / "one" / "app")
        _make_repo(tmp_path / "two" / "app")
        _make_repo(tmp_path / "two" / "Zeta")
        repos = discover_repos([tmp_path / "one", tmp_path / "two", tmp_path / "missing"], runner=_git_runner())
        assert [r.name for r in repos] == ["app", "app", "Zeta"]
        assert {r.path for r in repos[:2]} == {str(tmp_path / "one" / "app"), str(tmp_path / "two" / "app")}

    def test_git_unavailable_degrades(self, tmp_path: Path) -> None:
        _make_repo(tmp_path / "alpha")
        (repo,) = discover_repos([tmp_path], runner=FakeRunner())
        assert repo.current_branch == "unknown"
        assert repo.is_dirty is False

    def test_expands_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        _make_repo(tmp_path / "dev" / "alpha")
        repos = discover_repos(["~/dev"], runner=_git_runner())
        assert [r.name for r in repos] == ["alpha"]


class TestListDirectories:
    def test_lists_children_after_separator(self, tmp_path: Path) -> None:
        (tmp_path / "projects").mkdir()
        (tmp_path / "Photos").mkdir()
        (tmp_path / ".hidden").mkdir()
        (tmp_path / "file.txt").write_text("")
        assert list_directories(f"{tmp_path}{os.sep}") == [str(tmp_path / "Photos"), str(tmp_path / "projects")]

    def test_prefix_match_is_case_insensitive(self, tmp_path: Path) -> None:
        (tmp_path / "projects").mkdir()
        (tmp_path / "Proto").mkdir()
        (tmp_path / "music").mkdir()
        assert list_directories(str(tmp_path / "pro")) == [str(tmp_path / "Proto"), str(tmp_path / "projects")]

    def test_hidden_only_with_dot_prefix(self, tmp_path: Path) -> None:
        (tmp_path / ".config").mkdir()
        assert list_directories(str(tmp_path / ".c")) == [str(tmp_path / ".config")]

    def test_missing_parent_and_empty_input(self, tmp_path: Path) -> None:
        assert list_directories(str(tmp_path / "nope" / "x")) == []
        assert list_directories("") == []

    def test_capped(self, tmp_path: Path) -> None:
        for i in range(30):
            (tmp_path / f"d{i:02d}").mkdir()
        assert len(list_directories(f"{tmp_path}{os.sep}")) == 20
