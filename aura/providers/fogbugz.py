"""FogBugz JSON API provider.

There is no long-lived credential: every operation logs on with email and
password, gets a session token, and uses it for the follow-up call.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict

from aura.errors import AuraError, ProviderApplicationError
from aura.models import FogBugzAuthStatus, FogBugzCase
from aura.providers.base import new_client, normalize_base_url, request_json

logger = logging.getLogger(__name__)

PROVIDER = "FogBugz"
SEARCH_QUERY = "assignedto:me status:active"
SEARCH_COLUMNS = [
    "ixBug",
    "sTitle",
    "sStatus",
    "sCategory",
    "sPriority",
    "sProject",
    "sArea",
    "dtLastUpdated",
    "tags",
    "fOpen",
]
MAX_CASES = 200

HEADERS = {"Content-Type": "application/json; charset=utf-8"}


class _RawError(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str | None = None


class _RawCase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ixBug: int | None = None
    sTitle: str | None = None
    sStatus: str | None = None
    sCategory: str | None = None
    sPriority: str | None = None
    sProject: str | None = None
    sArea: str | None = None
    dtLastUpdated: str | None = None
    tags: list[str] | None = None
    fOpen: bool | None = None


class _RawPerson(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sFullName: str | None = None


class _RawData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str | None = None  # logon only
    cases: list[_RawCase] | None = None  # search only
    person: _RawPerson | None = None  # viewPerson only


class _RawEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: _RawData | None = None
    errors: list[_RawError] | None = None
    errorCode: Any = None


def check_api_errors(envelope: _RawEnvelope, context: str = "FogBugz API error") -> None:
    """Raise if the envelope reports errors; must run before ``data`` is read."""
    messages = [e.message for e in envelope.errors or [] if e.message]
    if messages:
        raise ProviderApplicationError(f"{context}: {'; '.join(messages)}")
    if envelope.errorCode is not None:
        raise ProviderApplicationError(f"FogBugz error code: {envelope.errorCode}")


def _case_from_raw(raw: _RawCase, base: str) -> FogBugzCase:
    case_id = raw.ixBug or 0
    return FogBugzCase(
        id=case_id,
        title=raw.sTitle or "",
        status=raw.sStatus or "",
        category=raw.sCategory or "",
        priority=raw.sPriority,
        project=raw.sProject or "",
        area=raw.sArea or "",
        updated=raw.dtLastUpdated or "",
        url=f"{base}/f/cases/{case_id}",
        tags=raw.tags or [],
        is_open=raw.fOpen if raw.fOpen is not None else True,
    )


def parse_cases(envelope: _RawEnvelope, base: str) -> list[FogBugzCase]:
    check_api_errors(envelope)
    cases = envelope.data.cases if envelope.data else None
    return [_case_from_raw(raw, base) for raw in cases or []]


async def _post(client: httpx.AsyncClient, base: str, command: str, body: dict) -> _RawEnvelope:
    return await request_json(
        client,
        "POST",
        f"{base}/api/{command}",
        _RawEnvelope,
        provider=PROVIDER,
        headers=HEADERS,
        json=body,
    )


async def logon(client: httpx.AsyncClient, base: str, email: str, password: str) -> str:
    """Exchange email + password for a session token."""
    envelope = await _post(client, base, "logon", {"email": email, "password": password})
    check_api_errors(envelope, context="Logon failed")
    token = envelope.data.token if envelope.data else None
    if not token:
        raise ProviderApplicationError("FogBugz logon succeeded but no token returned")
    return token


async def check_fogbugz_auth(instance_url: str, email: str, password: str) -> FogBugzAuthStatus:
    """Log on to validate the credentials; any logon failure means ``valid=False``."""
    base = normalize_base_url(instance_url)
    async with new_client() as client:
        try:
            token = await logon(client, base, email, password)
        except AuraError as exc:
            logger.info("FogBugz logon rejected: %s", exc)
            return FogBugzAuthStatus(valid=False)

        person_name = None
        try:
            envelope = await _post(client, base, "viewPerson", {"token": token})
            if envelope.data and envelope.data.person:
                person_name = envelope.data.person.sFullName
        except AuraError as exc:
            logger.debug("FogBugz viewPerson failed: %s", exc)

    return FogBugzAuthStatus(valid=True, person_name=person_name)


async def fogbugz_fetch_cases(instance_url: str, email: str, password: str) -> list[FogBugzCase]:
    """Active cases assigned to the caller (max 200). A failed logon raises."""
    base = normalize_base_url(instance_url)
    async with new_client() as client:
        token = await logon(client, base, email, password)
        envelope = await _post(
            client,
            base,
            "search",
            {"token": token, "q": SEARCH_QUERY, "cols": SEARCH_COLUMNS, "max": MAX_CASES},
        )
    cases = parse_cases(envelope, base)
    logger.info("Fetched %d FogBugz cases from %s", len(cases), base)
    return cases
