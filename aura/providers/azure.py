"""Azure DevOps via the `az` CLI (with the azure-devops extension)."""

import logging
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from aura.errors import ParseError, PreconditionError, ProviderApplicationError
from aura.models import AzureAuthStatus, AzurePullRequest, AzureWorkItem
from aura.process import CommandRunner, probe, run_command

logger = logging.getLogger(__name__)

PROVIDER = "Azure DevOps"
REF_PREFIX = "refs/heads/"

WIQL = (
    "SELECT [System.Id], [System.Title], [System.State], [System.WorkItemType], "
    "[System.AssignedTo], [System.ChangedDate], [System.Tags] "
    "FROM workitems WHERE [System.AssignedTo] = @Me "
    "AND [System.State] <> 'Closed' AND [System.State] <> 'Removed' "
    "AND [System.State] <> 'Done' ORDER BY [System.ChangedDate] DESC"
)

# ---------------------------------------------------------------------------
# Raw JSON shapes from az
# ---------------------------------------------------------------------------


class _RawWorkItemFields(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str | None = Field(None, alias="System.Title")
    state: str | None = Field(None, alias="System.State")
    work_item_type: str | None = Field(None, alias="System.WorkItemType")
    assigned_to: Any = Field(None, alias="System.AssignedTo")  # str or identity object
    changed_date: str | None = Field(None, alias="System.ChangedDate")
    tags: str | None = Field(None, alias="System.Tags")  # "a; b; c"


class _RawQueryItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    fields: _RawWorkItemFields | None = None
    url: str | None = None


class _RawIdentity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    displayName: str | None = None


class _RawRepository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None


class _RawPullRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    pullRequestId: int | None = None
    title: str | None = None
    status: str | None = None
    createdBy: _RawIdentity | None = None
    repository: _RawRepository | None = None
    sourceRefName: str | None = None
    targetRefName: str | None = None
    creationDate: str | None = None


# ---------------------------------------------------------------------------
# Credential resolution
# ---------------------------------------------------------------------------


def is_az_installed(runner: CommandRunner = run_command) -> bool:
    result = probe(runner, ["az", "--version"])
    return result is not None and result.ok


def is_az_logged_in(runner: CommandRunner = run_command) -> bool:
    result = probe(runner, ["az", "account", "show", "--output", "none"])
    return result is not None and result.ok


def parse_devops_defaults(output: str) -> tuple[str | None, str | None]:
    """Parse `az devops configure --list` key=value lines into (organization, project).

    Blank values and the literal ``None`` mean "not configured".
    """
    org = project = None
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key, value = key.strip(), value.strip()
        if not value or value == "None":
            continue
        if key == "organization":
            org = value
        elif key == "project":
            project = value
    return org, project


def get_devops_defaults(runner: CommandRunner = run_command) -> tuple[str | None, str | None]:
    result = probe(runner, ["az", "devops", "configure", "--list"])
    if result is None or not result.ok:
        return None, None
    return parse_devops_defaults(result.stdout)


def resolve_azure_auth(runner: CommandRunner = run_command) -> AzureAuthStatus:
    if not is_az_installed(runner):
        return AzureAuthStatus(cli_available=False, logged_in=False)
    if not is_az_logged_in(runner):
        return AzureAuthStatus(cli_available=True, logged_in=False)
    org, project = get_devops_defaults(runner)
    return AzureAuthStatus(cli_available=True, logged_in=True, organization=org, project=project)


def check_azure_auth(runner: CommandRunner = run_command) -> AzureAuthStatus:
    return resolve_azure_auth(runner)


def _require_org_project(status: AzureAuthStatus) -> tuple[str, str]:
    if not status.cli_available:
        raise PreconditionError("Azure CLI not installed. Install from https://aka.ms/azure-cli")
    if not status.logged_in:
        raise PreconditionError("Azure CLI not authenticated. Run `az login` first.")
    if not status.organization:
        raise PreconditionError(
            "No Azure DevOps organization configured. "
            "Run `az devops configure --defaults organization=https://dev.azure.com/YOUR_ORG`"
        )
    if not status.project:
        raise PreconditionError(
            "No Azure DevOps project configured. Run `az devops configure --defaults project=YOUR_PROJECT`"
        )
    return status.organization, status.project


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------


def extract_display_name(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        name = value.get("displayName") or value.get("uniqueName")
        return name if isinstance(name, str) else None
    return None


def strip_ref_prefix(ref: str) -> str:
    return ref.removeprefix(REF_PREFIX)


def parse_tags(raw: str | None) -> list[str]:
    return [tag.strip() for tag in (raw or "").split(";") if tag.strip()]


def work_item_web_url(org: str, project: str, item_id: int) -> str:
    """<org>/<project>/_workitems/edit/<id>, composed from segments.

    ``org`` is the organization URL exactly as `az devops configure` stores it
    (e.g. https://dev.azure.com/contoso); it must not already contain the project.
    """
    return "/".join([org.strip().rstrip("/"), quote(project, safe=""), "_workitems", "edit", str(item_id)])


def pr_web_url(org: str, project: str, repo: str, pr_id: int) -> str:
    return "/".join(
        [org.strip().rstrip("/"), quote(project, safe=""), "_git", quote(repo, safe=""), "pullrequest", str(pr_id)]
    )


def _is_browsable(url: str) -> bool:
    # az returns REST resource URLs (…/_apis/wit/workItems/<id>), which a browser can't render.
    return "/_apis/" not in url


def _run_json(runner: CommandRunner, args: list[str], shape: Any, what: str) -> Any:
    result = runner(args)
    if not result.ok:
        raise ProviderApplicationError(f"{what} failed: {result.stderr.strip()}")
    try:
        return TypeAdapter(shape).validate_json(result.stdout)
    except ValidationError as exc:
        raise ParseError(f"Failed to parse {PROVIDER} output from {what}: {exc}") from exc


def _work_item_from_raw(raw: _RawQueryItem, org: str, project: str) -> AzureWorkItem:
    fields = raw.fields or _RawWorkItemFields()
    item_id = raw.id or 0
    return AzureWorkItem(
        id=item_id,
        title=fields.title or "",
        state=fields.state or "",
        work_item_type=fields.work_item_type or "",
        assigned_to=extract_display_name(fields.assigned_to),
        changed_date=fields.changed_date or "",
        tags=parse_tags(fields.tags),
        url=raw.url if raw.url and _is_browsable(raw.url) else work_item_web_url(org, project, item_id),
    )


def _pull_request_from_raw(raw: _RawPullRequest, org: str, project: str) -> AzurePullRequest:
    pr_id = raw.pullRequestId or 0
    repo_name = (raw.repository.name if raw.repository else None) or ""
    return AzurePullRequest(
        id=pr_id,
        title=raw.title or "",
        status=raw.status or "",
        created_by=(raw.createdBy.displayName if raw.createdBy else None) or "",
        repository=repo_name,
        source_branch=strip_ref_prefix(raw.sourceRefName or ""),
        target_branch=strip_ref_prefix(raw.targetRefName or ""),
        creation_date=raw.creationDate or "",
        url=pr_web_url(org, project, repo_name, pr_id),
    )


# ---------------------------------------------------------------------------
# Caller-facing operations
# ---------------------------------------------------------------------------


def azure_fetch_work_items(runner: CommandRunner = run_command) -> list[AzureWorkItem]:
    """Open work items assigned to the signed-in user, most recently changed first."""
    org, project = _require_org_project(resolve_azure_auth(runner))
    raw_items: list[_RawQueryItem] = _run_json(
        runner,
        ["az", "boards", "query", "--wiql", WIQL, "--output", "json"],
        list[_RawQueryItem],
        "az boards query",
    )
    items = [_work_item_from_raw(raw, org, project) for raw in raw_items]
    logger.info("Fetched %d Azure DevOps work items", len(items))
    return items


def azure_fetch_prs(runner: CommandRunner = run_command) -> list[AzurePullRequest]:
    org, project = _require_org_project(resolve_azure_auth(runner))
    raw_prs: list[_RawPullRequest] = _run_json(
        runner,
        ["az", "repos", "pr", "list", "--status", "active", "--output", "json"],
        list[_RawPullRequest],
        "az repos pr list",
    )
    prs = [_pull_request_from_raw(raw, org, project) for raw in raw_prs]
    logger.info("Fetched %d Azure DevOps pull requests", len(prs))
    return prs
