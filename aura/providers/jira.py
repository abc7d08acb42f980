"""Jira Cloud REST API v3 provider. Credentials (email + API token) are supplied per call."""

import logging

from pydantic import BaseModel, ConfigDict

from aura.models import JiraAuthStatus, JiraIssue
from aura.providers.base import new_client, normalize_base_url, parse_json, request_json, send

logger = logging.getLogger(__name__)

PROVIDER = "Jira"
MYSELF_PATH = "/rest/api/3/myself"
SEARCH_PATH = "/rest/api/3/search/jql"
JQL = "assignee = currentUser() AND resolution = Unresolved ORDER BY updated DESC"
FIELDS = "summary,status,issuetype,priority,updated,labels,project"
MAX_RESULTS = 100


class _Named(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None


class _RawStatusCategory(BaseModel):
    model_config = ConfigDict(extra="ignore")

    colorName: str | None = None


class _RawStatus(_Named):
    statusCategory: _RawStatusCategory | None = None


class _RawIssueFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    summary: str | None = None
    status: _RawStatus | None = None
    issuetype: _Named | None = None
    priority: _Named | None = None
    updated: str | None = None
    labels: list[str] | None = None
    project: _Named | None = None


class _RawIssue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str | None = None
    fields: _RawIssueFields | None = None


class _RawSearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    issues: list[_RawIssue] | None = None


class _RawMyself(BaseModel):
    model_config = ConfigDict(extra="ignore")

    displayName: str | None = None
    emailAddress: str | None = None


def _issue_from_node(raw: _RawIssue, base: str) -> JiraIssue:
    key = raw.key or ""
    fields = raw.fields or _RawIssueFields()
    status = fields.status
    category = status.statusCategory if status else None
    return JiraIssue(
        key=key,
        summary=fields.summary or "",
        status=(status.name if status else None) or "",
        status_color=(category.colorName if category else None) or "",
        issue_type=(fields.issuetype.name if fields.issuetype else None) or "",
        priority=fields.priority.name if fields.priority else None,
        updated=fields.updated or "",
        url=f"{base}/browse/{key}",
        labels=fields.labels or [],
        project=(fields.project.name if fields.project else None) or "",
    )


async def check_jira_auth(instance_url: str, email: str, api_token: str) -> JiraAuthStatus:
    """Validate credentials against /myself.

    Any non-2xx answer is reported as ``valid=False``; failing to reach the
    server at all still raises TransportError.
    """
    base = normalize_base_url(instance_url)
    async with new_client(auth=(email, api_token), headers={"Accept": "application/json"}) as client:
        response = await send(client, "GET", f"{base}{MYSELF_PATH}", provider=PROVIDER)
    if not response.is_success:
        logger.info("Jira credentials rejected for %s (HTTP %d)", email, response.status_code)
        return JiraAuthStatus(valid=False, email=email)
    myself = parse_json(response, _RawMyself, PROVIDER)
    return JiraAuthStatus(valid=True, display_name=myself.displayName, email=myself.emailAddress or email)


async def jira_fetch_issues(instance_url: str, email: str, api_token: str) -> list[JiraIssue]:
    """Unresolved issues assigned to the caller, most recently updated first (max 100)."""
    base = normalize_base_url(instance_url)
    async with new_client(auth=(email, api_token), headers={"Accept": "application/json"}) as client:
        result: _RawSearchResult = await request_json(
            client,
            "GET",
            f"{base}{SEARCH_PATH}",
            _RawSearchResult,
            provider=PROVIDER,
            params={"jql": JQL, "maxResults": MAX_RESULTS, "fields": FIELDS},
        )
    issues = [_issue_from_node(raw, base) for raw in result.issues or []]
    logger.info("Fetched %d Jira issues from %s", len(issues), base)
    return issues
