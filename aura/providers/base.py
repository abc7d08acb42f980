"""Shared HTTP plumbing for the REST-backed providers (GitHub, Jira, FogBugz)."""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from aura.errors import HttpStatusError, ParseError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TIMEOUT = 30


def normalize_base_url(url: str) -> str:
    return url.strip().rstrip("/")


def new_client(**kwargs: Any) -> httpx.AsyncClient:
    """One client per operation; nothing is shared across calls."""
    return httpx.AsyncClient(timeout=TIMEOUT, **kwargs)


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    provider: str,
    **kwargs: Any,
) -> httpx.Response:
    try:
        response = await client.request(method, url, **kwargs)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("%s %s failed: %s", method, url, exc)
        raise TransportError(f"{provider} request failed: {exc}") from exc
    logger.debug("%s %s -> %d", method, url, response.status_code)
    return response


def ensure_success(response: httpx.Response, provider: str) -> None:
    if not response.is_success:
        raise HttpStatusError(provider, response.status_code, response.text)


def parse_json(response: httpx.Response, shape: type[T] | Any, provider: str) -> T:
    """Validate a response body against a DTO type (a model or e.g. ``list[Model]``)."""
    try:
        return TypeAdapter(shape).validate_json(response.content)
    except ValidationError as exc:
        raise ParseError(f"{provider} returned an unexpected payload: {exc}") from exc


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    shape: type[T] | Any,
    *,
    provider: str,
    **kwargs: Any,
) -> T:
    response = await send(client, method, url, provider=provider, **kwargs)
    ensure_success(response, provider)
    return parse_json(response, shape, provider)
