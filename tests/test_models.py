"""Tests for aura.models."""

import pytest
from pydantic import SecretStr

from aura.models import (
    AzureWorkItem,
    FogBugzCase,
    GitHubAuthStatus,
    GitHubIssue,
    JiraIssue,
    LocalRepo,
)


def test_github_issue_frozen() -> None:
    issue = GitHubIssue(id=1, number=1, title="t", state="open", url="https://github.com/a/b/issues/1")
    with pytest.raises(Exception):  # ValidationError or TypeError depending on pydantic version
        issue.title = "changed"  # type: ignore[misc]


def test_github_issue_defaults() -> None:
    issue = GitHubIssue(id=1, number=1, title="t", state="closed", url="https://github.com/a/b/issues/1")
    assert issue.labels == []
    assert issue.author is None
    assert issue.is_pull_request is False
    assert issue.provider == "github"
    assert issue.is_open is False


def test_auth_status_hides_token() -> None:
    status = GitHubAuthStatus(cli_available=True, cli_authenticated=True, auth_method="cli", token=SecretStr("gho_x"))
    assert "gho_x" not in repr(status)
    assert "gho_x" not in status.model_dump_json()


def test_auth_method_is_restricted() -> None:
    with pytest.raises(Exception):
        GitHubAuthStatus(cli_available=True, cli_authenticated=True, auth_method="oauth")  # type: ignore[arg-type]


def test_provider_tags() -> None:
    item = AzureWorkItem(id=1, title="t", state="New", work_item_type="Task", url="https://x/1")
    jira = JiraIssue(key="ENG-1", summary="s", status="To Do", url="https://x/browse/ENG-1")
    case = FogBugzCase(id=1, title="t", url="https://x/f/cases/1")
    assert (item.provider, jira.provider, case.provider) == ("azure", "jira", "fogbugz")
    assert case.is_open is True
    assert jira.priority is None


def test_local_repo_frozen() -> None:
    repo = LocalRepo(name="a", path="/src/a", current_branch="main", is_dirty=False)
    with pytest.raises(Exception):
        repo.is_dirty = True  # type: ignore[misc]
