"""Interfaces and helpers for environmental data providers."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

import requests
from retry_requests import retry

from ecowatch.domain import Coordinates, WeatherSnapshot
from ecowatch.errors import MalformedResponse, ProviderUnavailable
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/base")


class WeatherProvider(Protocol):
    """Interface for anything that can return the current conditions at a point."""

    name: str

    def fetch(self, coordinates: Coordinates, label: str, *, destination_id: str = "") -> WeatherSnapshot:
        """Return a normalized snapshot; raises FetchError on failure. One network call."""
        ...


def build_session(retries: int = 2, backoff_factor: float = 0.2) -> requests.Session:
    """Return a requests session that retries transient 5xx and connection failures."""
    return retry(requests.Session(), retries=retries, backoff_factor=backoff_factor)


def get_json(
    session: requests.Session,
    url: str,
    *,
    params: Mapping[str, Any],
    timeout: float,
    provider: str,
) -> dict:
    """GET `url` and return its JSON object body, translating failures into FetchErrors."""
    try:
        resp = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        raise ProviderUnavailable(f"{provider} request failed: {exc}", provider=provider) from exc

    status = getattr(resp, "status_code", 200)
    try:
        resp.raise_for_status()
    except requests.HTTPError as exc:
        raise ProviderUnavailable(
            f"{provider} returned HTTP {status}", provider=provider, status_code=status
        ) from exc

    try:
        data = resp.json()
    except ValueError as exc:
        raise MalformedResponse(f"{provider} returned a non-JSON body", provider=provider) from exc
    if not isinstance(data, dict):
        raise MalformedResponse(f"{provider} returned {type(data).__name__}, expected an object", provider=provider)
    return data


def number(value: Any, default: float = 0.0) -> float:
    """Coerce a provider field to float; missing or non-numeric values become `default`."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
