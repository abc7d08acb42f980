"""GitHub: gh CLI credential resolution + REST API v3 client."""

import logging
import re
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, SecretStr

from aura.errors import PreconditionError, ProviderApplicationError
from aura.models import GitHubAuthStatus, GitHubIssue, GitHubLabel, GitHubUser
from aura.process import CommandRunner, probe, run_command
from aura.providers.base import new_client, request_json

logger = logging.getLogger(__name__)

BASE_URL = "https://api.github.com"
PAGE_SIZE = 100
PROVIDER = "GitHub"

_REPO_FROM_API_URL = re.compile(r"repos/(.+)$")

# ---------------------------------------------------------------------------
# Raw wire shapes: every field optional. Defaults are applied in _issue_from_node
# ---------------------------------------------------------------------------


class _RawUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    login: str | None = None
    id: int | None = None
    avatar_url: str | None = None
    html_url: str | None = None
    name: str | None = None


class _RawLabel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    color: str | None = None


class _RawIssue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    number: int | None = None
    title: str | None = None
    state: str | None = None
    html_url: str | None = None
    user: _RawUser | None = None
    labels: list[_RawLabel] | None = None
    created_at: str | None = None
    updated_at: str | None = None
    body: str | None = None
    pull_request: dict[str, Any] | None = None  # present and non-null only for PRs
    repository_url: str | None = None


class _RawSearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_count: int | None = None
    incomplete_results: bool | None = None
    items: list[_RawIssue] | None = None


# ---------------------------------------------------------------------------
# Credential resolution (gh CLI)
# ---------------------------------------------------------------------------


def is_gh_installed(runner: CommandRunner = run_command) -> bool:
    result = probe(runner, ["gh", "--version"])
    return result is not None and result.ok


def extract_gh_token(runner: CommandRunner = run_command) -> str | None:
    """Return the token printed by `gh auth token`, or None if gh cannot provide one."""
    result = probe(runner, ["gh", "auth", "token"])
    if result is None:
        return None
    if not result.ok:
        logger.info("gh auth token failed: %s", result.stderr.strip())
        return None
    token = result.stdout.strip()
    return token or None


def parse_gh_username(output: str) -> str | None:
    """Pull USERNAME out of a "Logged in to github.com account USERNAME (...)" line."""
    for line in output.splitlines():
        if "Logged in to" not in line or "account " not in line:
            continue
        tail = line.split("account ", 1)[1].split()
        if tail:
            return tail[0]
    return None


def get_gh_username(runner: CommandRunner = run_command) -> str | None:
    result = probe(runner, ["gh", "auth", "status"])
    if result is None:
        return None
    # Older gh releases print the status report on stderr.
    return parse_gh_username(result.stdout + "\n" + result.stderr)


def resolve_github_auth(runner: CommandRunner = run_command) -> GitHubAuthStatus:
    """Probe gh presence, then its token, then (best-effort) the username.

    Resolved fresh on every call: gh state can change outside this process.
    """
    if not is_gh_installed(runner):
        return GitHubAuthStatus(cli_available=False, cli_authenticated=False, auth_method="none")

    token = extract_gh_token(runner)
    if token is None:
        return GitHubAuthStatus(cli_available=True, cli_authenticated=False, auth_method="none")

    return GitHubAuthStatus(
        cli_available=True,
        cli_authenticated=True,
        username=get_gh_username(runner),
        auth_method="cli",
        token=SecretStr(token),
    )


def check_github_auth(runner: CommandRunner = run_command) -> GitHubAuthStatus:
    return resolve_github_auth(runner)


def get_github_token(runner: CommandRunner = run_command) -> str:
    """The gh CLI token, without the username lookup `check_github_auth` does."""
    if not is_gh_installed(runner):
        return _require_token(GitHubAuthStatus(cli_available=False, cli_authenticated=False))
    token = extract_gh_token(runner)
    if token is None:
        return _require_token(GitHubAuthStatus(cli_available=True, cli_authenticated=False))
    return token


def _require_token(status: GitHubAuthStatus) -> str:
    if status.token is None:
        if not status.cli_available:
            raise PreconditionError("GitHub CLI not installed. Install from https://cli.github.com/")
        raise PreconditionError("GitHub CLI not authenticated. Run `gh auth login`.")
    return status.token.get_secret_value()


# ---------------------------------------------------------------------------
# REST client
# ---------------------------------------------------------------------------


def _repository_name(raw: _RawIssue) -> str:
    if raw.repository_url:
        match = _REPO_FROM_API_URL.search(raw.repository_url)
        if match:
            return match.group(1)
    # html_url format: https://github.com/owner/repo/issues/123
    if raw.html_url:
        parts = raw.html_url.split("/")
        if len(parts) > 4:
            return f"{parts[3]}/{parts[4]}"
    return ""


class GitHubClient:
    def __init__(self, token: str) -> None:
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "aura",
        }

    async def _get(self, client: httpx.AsyncClient, path: str, shape: Any, params: dict | None = None) -> Any:
        return await request_json(
            client,
            "GET",
            f"{BASE_URL}{path}",
            shape,
            provider=PROVIDER,
            headers=self._headers,
            params=params or {},
        )

    def _issue_from_node(self, raw: _RawIssue) -> GitHubIssue:
        labels = [GitHubLabel(name=label.name or "", color=label.color or "") for label in raw.labels or []]
        return GitHubIssue(
            id=raw.id or 0,
            number=raw.number or 0,
            title=raw.title or "",
            state=raw.state or "",
            url=raw.html_url or "",
            author=raw.user.login if raw.user else None,
            labels=labels,
            created_at=raw.created_at or "",
            updated_at=raw.updated_at or "",
            body=raw.body,
            repository=_repository_name(raw),
            is_pull_request=raw.pull_request is not None,
        )

    async def fetch_user(self) -> GitHubUser:
        async with new_client() as client:
            raw: _RawUser = await self._get(client, "/user", _RawUser)
        if raw.login is None or raw.id is None:
            raise ProviderApplicationError("GitHub /user response did not identify a user")
        return GitHubUser(
            login=raw.login,
            id=raw.id,
            avatar_url=raw.avatar_url or "",
            html_url=raw.html_url or "",
            name=raw.name,
        )

    async def fetch_assigned_issues(self) -> list[GitHubIssue]:
        """All open issues assigned to the token owner, across every repo.

        /issues mixes in pull requests; those are dropped. Pages are requested
        one after another until a short page comes back.
        """
        issues: list[GitHubIssue] = []
        page = 1
        async with new_client() as client:
            while True:
                nodes: list[_RawIssue] = await self._get(
                    client,
                    "/issues",
                    list[_RawIssue],
                    params={"filter": "assigned", "state": "open", "per_page": PAGE_SIZE, "page": page},
                )
                issues.extend(self._issue_from_node(n) for n in nodes if n.pull_request is None)
                if len(nodes) < PAGE_SIZE:
                    break
                page += 1
        logger.info("Fetched %d GitHub issues over %d page(s)", len(issues), page)
        return issues

    async def fetch_assigned_prs(self, username: str | None) -> list[GitHubIssue]:
        """Open PRs the user is involved in (author, assignee, reviewer, mentioned). One page."""
        if not username:
            raise PreconditionError("Could not determine GitHub username from gh auth status")
        async with new_client() as client:
            result: _RawSearchResult = await self._get(
                client,
                "/search/issues",
                _RawSearchResult,
                params={"q": f"type:pr is:open involves:{username}", "sort": "updated", "per_page": PAGE_SIZE},
            )
        prs = [self._issue_from_node(n) for n in result.items or []]
        logger.info("Fetched %d GitHub pull requests for %s", len(prs), username)
        return prs


# ---------------------------------------------------------------------------
# Caller-facing operations
# ---------------------------------------------------------------------------


async def github_fetch_issues(runner: CommandRunner = run_command) -> list[GitHubIssue]:
    return await GitHubClient(get_github_token(runner)).fetch_assigned_issues()


async def github_fetch_prs(runner: CommandRunner = run_command) -> list[GitHubIssue]:
    status = resolve_github_auth(runner)
    return await GitHubClient(_require_token(status)).fetch_assigned_prs(status.username)


async def github_fetch_user(runner: CommandRunner = run_command) -> GitHubUser:
    return await GitHubClient(get_github_token(runner)).fetch_user()
