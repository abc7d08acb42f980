"""Aura command line interface."""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Annotated

import tomlkit
import typer
from rich import print as rprint
from rich.logging import RichHandler
from rich.table import Table

from aura.errors import AuraError
from aura.models import (
    AzurePullRequest,
    AzureWorkItem,
    FogBugzCase,
    GitHubIssue,
    JiraIssue,
)
from aura.providers import azure, fogbugz, github, jira
from aura.repos import discover_repos, list_directories
from aura.settings import CONFIG_PATH, _list_profiles, get_settings

app = typer.Typer(help="aura: work owed to you across GitHub, Azure DevOps, Jira and FogBugz", no_args_is_help=True)


class Provider(str, Enum):
    github = "github"
    azure = "azure"
    jira = "jira"
    fogbugz = "fogbugz"


class PrProvider(str, Enum):
    github = "github"
    azure = "azure"


ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Profile name from ~/.config/aura/config.toml"),
]

_NOT_SET = "[dim](not set)[/dim]"


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log requests and CLI calls")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Turn provider errors into a red message and exit status 1."""
    try:
        yield
    except AuraError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


def _yes_no(value: bool) -> str:
    return "[green]yes[/green]" if value else "[red]no[/red]"


# ---------------------------------------------------------------------------
# Table renderers
# ---------------------------------------------------------------------------


def _github_table(title: str, items: list[GitHubIssue]) -> Table:
    table = Table(title=title)
    table.add_column("Repo", style="cyan")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Labels")
    table.add_column("Updated", style="dim")
    table.add_column("URL", style="dim")
    for item in items:
        labels = ", ".join(label.name for label in item.labels)
        table.add_row(item.repository, str(item.number), item.title, labels, item.updated_at, item.url)
    return table


def _azure_items_table(items: list[AzureWorkItem]) -> Table:
    table = Table(title="Azure DevOps Work Items")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Type")
    table.add_column("State")
    table.add_column("Title")
    table.add_column("Tags")
    table.add_column("URL", style="dim")
    for item in items:
        table.add_row(str(item.id), item.work_item_type, item.state, item.title, ", ".join(item.tags), item.url)
    return table


def _azure_prs_table(prs: list[AzurePullRequest]) -> Table:
    table = Table(title="Azure DevOps Pull Requests")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Repo")
    table.add_column("Title")
    table.add_column("Branches")
    table.add_column("Author")
    table.add_column("URL", style="dim")
    for pr in prs:
        branches = f"{pr.source_branch} → {pr.target_branch}"
        table.add_row(str(pr.id), pr.repository, pr.title, branches, pr.created_by, pr.url)
    return table


def _jira_table(issues: list[JiraIssue]) -> Table:
    table = Table(title="Jira Issues")
    table.add_column("Key", style="cyan")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Pri")
    table.add_column("Summary")
    table.add_column("URL", style="dim")
    for issue in issues:
        table.add_row(issue.key, issue.issue_type, issue.status, issue.priority or "-", issue.summary, issue.url)
    return table


def _fogbugz_table(cases: list[FogBugzCase]) -> Table:
    table = Table(title="FogBugz Cases")
    table.add_column("Case", style="cyan", justify="right")
    table.add_column("Project")
    table.add_column("Status")
    table.add_column("Pri")
    table.add_column("Title")
    table.add_column("URL", style="dim")
    for case in cases:
        table.add_row(str(case.id), case.project, case.status, case.priority or "-", case.title, case.url)
    return table


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


def _auth_row(provider: Provider, profile: str | None) -> tuple[str, str, str]:
    """Return a (provider, status, detail) row."""
    match provider:
        case Provider.github:
            gh = github.check_github_auth()
            detail = f"gh installed: {gh.cli_available}, user: {gh.username or '-'}, method: {gh.auth_method}"
            return ("GitHub", _yes_no(gh.cli_authenticated), detail)
        case Provider.azure:
            az = azure.check_azure_auth()
            detail = f"az installed: {az.cli_available}, org: {az.organization or '-'}, project: {az.project or '-'}"
            return ("Azure DevOps", _yes_no(az.logged_in), detail)
        case Provider.jira:
            status = asyncio.run(jira.check_jira_auth(*get_settings(profile).jira_credentials()))
            return ("Jira", _yes_no(status.valid), f"{status.display_name or '-'} <{status.email or '-'}>")
        case Provider.fogbugz:
            fb = asyncio.run(fogbugz.check_fogbugz_auth(*get_settings(profile).fogbugz_credentials()))
            return ("FogBugz", _yes_no(fb.valid), fb.person_name or "-")
    raise ValueError(provider)


@app.command("auth")
def auth_cmd(
    provider: Annotated[Provider | None, typer.Argument(help="Only check this provider")] = None,
    profile: ProfileOpt = None,
) -> None:
    """Show whether each provider can be reached right now."""
    table = Table(title="Provider Auth")
    table.add_column("Provider", style="bold")
    table.add_column("Authenticated")
    table.add_column("Detail")

    for p in [provider] if provider else list(Provider):
        try:
            row = _auth_row(p, profile)
        except AuraError as exc:
            if provider:
                rprint(f"[red]{exc}[/red]")
                raise typer.Exit(1) from exc
            row = (p.value, "[yellow]skipped[/yellow]", str(exc))
        table.add_row(*row)

    rprint(table)


# ---------------------------------------------------------------------------
# Work items
# ---------------------------------------------------------------------------


@app.command("issues")
def issues_cmd(
    provider: Annotated[Provider, typer.Argument(help="github | azure | jira | fogbugz")],
    profile: ProfileOpt = None,
) -> None:
    """List open issues / work items / cases assigned to me."""
    with _reported_errors():
        match provider:
            case Provider.github:
                rprint(_github_table("GitHub Issues", asyncio.run(github.github_fetch_issues())))
            case Provider.azure:
                rprint(_azure_items_table(azure.azure_fetch_work_items()))
            case Provider.jira:
                creds = get_settings(profile).jira_credentials()
                rprint(_jira_table(asyncio.run(jira.jira_fetch_issues(*creds))))
            case Provider.fogbugz:
                creds = get_settings(profile).fogbugz_credentials()
                rprint(_fogbugz_table(asyncio.run(fogbugz.fogbugz_fetch_cases(*creds))))


@app.command("prs")
def prs_cmd(
    provider: Annotated[PrProvider, typer.Argument(help="github | azure")],
) -> None:
    """List open pull requests I am involved in."""
    with _reported_errors():
        match provider:
            case PrProvider.github:
                rprint(_github_table("GitHub Pull Requests", asyncio.run(github.github_fetch_prs())))
            case PrProvider.azure:
                rprint(_azure_prs_table(azure.azure_fetch_prs()))


@app.command("whoami")
def whoami_cmd() -> None:
    """Show the GitHub account behind the gh CLI token."""
    with _reported_errors():
        user = asyncio.run(github.github_fetch_user())
    rprint(f"[bold]{user.login}[/bold] {user.name or ''}")
    rprint(f"  {user.html_url}")


# ---------------------------------------------------------------------------
# Local repositories
# ---------------------------------------------------------------------------


@app.command("repos")
def repos_cmd(
    roots: Annotated[
        list[Path] | None,
        typer.Argument(help="Directories to scan (defaults to repo_roots from config)"),
    ] = None,
    depth: Annotated[int | None, typer.Option("--depth", "-d", min=0, help="Maximum directory depth")] = None,
    profile: ProfileOpt = None,
) -> None:
    """Find git repositories on disk with their branch and dirty state."""
    settings = get_settings(profile)
    scan_roots = roots or [Path(r) for r in settings.repo_roots]
    if not scan_roots:
        rprint("[red]No roots given. Pass directories or set repo_roots in your config profile.[/red]")
        raise typer.Exit(1)

    repos = discover_repos(scan_roots, depth if depth is not None else settings.scan_depth)

    table = Table(title="Local Repositories")
    table.add_column("Name", style="cyan")
    table.add_column("Branch")
    table.add_column("Dirty")
    table.add_column("Path", style="dim")
    for repo in repos:
        table.add_row(repo.name, repo.current_branch, "[yellow]●[/yellow]" if repo.is_dirty else "", repo.path)

    rprint(table)


@app.command("complete-path")
def complete_path_cmd(
    partial: Annotated[str, typer.Argument(help="Partially typed directory path")],
) -> None:
    """Print directory completions for a partial path, one per line."""
    for path in list_directories(partial):
        typer.echo(path)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(profile)

    def mask(val: str | None) -> str:
        if val is None:
            return _NOT_SET
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    table = Table(title="Aura Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("jira_url", settings.jira_url or _NOT_SET)
    table.add_row("jira_email", settings.jira_email or _NOT_SET)
    table.add_row(
        "jira_api_token",
        mask(settings.jira_api_token.get_secret_value() if settings.jira_api_token else None),
    )
    table.add_row("fogbugz_url", settings.fogbugz_url or _NOT_SET)
    table.add_row("fogbugz_email", settings.fogbugz_email or _NOT_SET)
    table.add_row(
        "fogbugz_password",
        mask(settings.fogbugz_password.get_secret_value() if settings.fogbugz_password else None),
    )
    table.add_row("repo_roots", ", ".join(settings.repo_roots) or _NOT_SET)
    table.add_row("scan_depth", str(settings.scan_depth))

    rprint(table)


@app.command("set-default")
def set_default(
    profile: Annotated[str, typer.Argument(help="Profile name to use when --profile is not given")],
) -> None:
    """Set default_profile in ~/.config/aura/config.toml."""
    if not CONFIG_PATH.exists():
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        doc = tomlkit.document()
        doc.add("default_profile", profile)
    else:
        with CONFIG_PATH.open() as fh:
            doc = tomlkit.load(fh)
        profiles = _list_profiles(doc)
        if profile not in profiles:
            rprint(f"[red]Profile '{profile}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}[/red]")
            raise typer.Exit(1)
        doc["default_profile"] = profile

    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    rprint(f'[green]✓[/green] Default profile set to "{profile}" in {CONFIG_PATH}')
