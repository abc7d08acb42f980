"""Local git repository discovery."""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from aura.models import LocalRepo
from aura.process import CommandRunner, probe, run_command

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 4
SKIPPED_DIRS = frozenset({"node_modules", "target"})
UNKNOWN_BRANCH = "unknown"
MAX_SUGGESTIONS = 20


def _is_repo(path: Path) -> bool:
    try:
        return (path / ".git").exists()
    except OSError:
        return False


def _subdirectories(path: Path) -> list[Path]:
    """Directory children of ``path``; an unreadable or missing directory has none."""
    try:
        return [entry for entry in path.iterdir() if entry.is_dir()]
    except OSError:
        return []


def find_repos(root: Path, max_depth: int, current_depth: int = 0) -> list[Path]:
    """Walk ``root`` looking for git working trees.

    Children of ``root`` sit at ``current_depth``; the walk goes no deeper than
    ``max_depth``. Hidden directories and build output are skipped, and a
    directory that is a repository is never descended into.
    """
    if current_depth > max_depth:
        return []

    repos: list[Path] = []
    for path in _subdirectories(root):
        if path.name.startswith(".") or path.name in SKIPPED_DIRS:
            continue
        if _is_repo(path):
            repos.append(path)
            continue
        repos.extend(find_repos(path, max_depth, current_depth + 1))
    return repos


def get_current_branch(repo_path: Path, runner: CommandRunner = run_command) -> str:
    result = probe(runner, ["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_path)
    if result is None or not result.ok:
        return UNKNOWN_BRANCH
    return result.stdout.strip() or UNKNOWN_BRANCH


def is_repo_dirty(repo_path: Path, runner: CommandRunner = run_command) -> bool:
    """True iff `git status --porcelain` prints anything. A failed command counts as clean."""
    result = probe(runner, ["git", "status", "--porcelain"], cwd=repo_path)
    if result is None or not result.ok:
        return False
    return bool(result.stdout)


def discover_repos(
    roots: Iterable[str | Path],
    max_depth: int = DEFAULT_MAX_DEPTH,
    runner: CommandRunner = run_command,
) -> list[LocalRepo]:
    """Find every repository under ``roots`` and report its branch and dirty state.

    Roots are searched but never reported themselves, so a repository at a
    root does not hide the repositories beneath it. Sorted case-insensitively
    by directory name. The sort is stable, so repos with equal names keep
    discovery order (root order, then filesystem listing order), which is not
    otherwise guaranteed.
    """
    root_list = list(roots)
    found: list[Path] = []
    for root in root_list:
        root_path = Path(root).expanduser()
        if not root_path.is_dir():
            logger.debug("Skipping scan root %s: not a directory", root_path)
            continue
        found.extend(find_repos(root_path, max_depth))

    repos = [
        LocalRepo(
            name=path.name or str(path),
            path=str(path),
            current_branch=get_current_branch(path, runner),
            is_dirty=is_repo_dirty(path, runner),
        )
        for path in found
    ]
    repos.sort(key=lambda repo: repo.name.lower())
    logger.info("Found %d repositories under %d root(s)", len(repos), len(root_list))
    return repos


def list_directories(partial: str) -> list[str]:
    """Complete a partially typed directory path.

    "~/dev/" lists the subdirectories of ~/dev; "~/dev/pro" lists those whose
    name starts with "pro" (case-insensitive). Hidden directories only show up
    when the typed prefix itself starts with a dot.
    """
    if not partial:
        return []
    expanded = os.path.expanduser(partial)
    if expanded.endswith(os.sep):
        parent, prefix = Path(expanded), ""
    else:
        path = Path(expanded)
        parent, prefix = path.parent, path.name

    show_hidden = prefix.startswith(".")
    matches = sorted(
        str(child)
        for child in _subdirectories(parent)
        if child.name.lower().startswith(prefix.lower()) and (show_hidden or not child.name.startswith("."))
    )
    return matches[:MAX_SUGGESTIONS]
