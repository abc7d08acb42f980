"""Shared pydantic models: the contract between providers, the repo scanner and callers.

Every record is rebuilt from scratch on each call and never mutated afterwards.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, SecretStr

# ---------------------------------------------------------------------------
# Auth status
# ---------------------------------------------------------------------------


class GitHubAuthStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    cli_available: bool
    cli_authenticated: bool
    username: str | None = None  # best-effort, parsed from `gh auth status`
    auth_method: Literal["cli", "pat", "none"] = "none"  # "pat" is never produced
    token: SecretStr | None = None


class AzureAuthStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    cli_available: bool
    logged_in: bool
    organization: str | None = None
    project: str | None = None


class JiraAuthStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    display_name: str | None = None
    email: str | None = None


class FogBugzAuthStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    person_name: str | None = None


# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------


class GitHubUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    login: str
    id: int
    avatar_url: str = ""
    html_url: str = ""
    name: str | None = None


class GitHubLabel(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    color: str = ""


class GitHubIssue(BaseModel):
    """An issue or pull request; both come back from the same REST shape."""

    model_config = ConfigDict(frozen=True)

    id: int
    number: int
    title: str
    state: str  # "open" | "closed"
    url: str  # html_url
    author: str | None = None
    labels: list[GitHubLabel] = []
    created_at: str = ""
    updated_at: str = ""
    body: str | None = None
    repository: str = ""  # owner/repo
    is_pull_request: bool = False
    provider: Literal["github"] = "github"

    @property
    def is_open(self) -> bool:
        return self.state == "open"


# ---------------------------------------------------------------------------
# Azure DevOps
# ---------------------------------------------------------------------------


class AzureWorkItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    state: str
    work_item_type: str
    assigned_to: str | None = None
    changed_date: str = ""
    tags: list[str] = []
    url: str
    provider: Literal["azure"] = "azure"


class AzurePullRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    status: str
    created_by: str
    repository: str
    source_branch: str
    target_branch: str
    creation_date: str = ""
    url: str
    provider: Literal["azure"] = "azure"


# ---------------------------------------------------------------------------
# Jira
# ---------------------------------------------------------------------------


class JiraIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str  # PROJ-123
    summary: str
    status: str
    status_color: str = ""  # statusCategory.colorName, for UI tinting only
    issue_type: str = ""
    priority: str | None = None
    updated: str = ""
    url: str
    labels: list[str] = []
    project: str = ""
    provider: Literal["jira"] = "jira"


# ---------------------------------------------------------------------------
# FogBugz
# ---------------------------------------------------------------------------


class FogBugzCase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int  # ixBug
    title: str
    status: str = ""
    category: str = ""
    priority: str | None = None
    project: str = ""
    area: str = ""
    updated: str = ""
    url: str  # synthesized: <base>/f/cases/<id>
    tags: list[str] = []
    is_open: bool = True
    provider: Literal["fogbugz"] = "fogbugz"


# ---------------------------------------------------------------------------
# Local repositories
# ---------------------------------------------------------------------------


class LocalRepo(BaseModel):
    """A git working tree found on disk. Identity is ``path``; names may collide."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    current_branch: str
    is_dirty: bool
