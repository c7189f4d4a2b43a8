"""Online data fetchers: location datasets and the current US mortgage rate.

All fetches are user-triggered (no background polling).
"""
from __future__ import annotations

import logging
import os
from decimal import Decimal

import requests

from .locations import StaticLocationProvider, location_from_dict

logger = logging.getLogger(__name__)

# Timeout for HTTP calls (seconds)
_TIMEOUT = 10

# FRED: 30-year fixed mortgage rate
_FRED_SERIES = "MORTGAGE30US"
_FRED_URL = "https://api.stlouisfed.org/fred/series/observations"


class FetchError(Exception):
    """Raised when an online fetch fails for any reason."""


def fetch_mortgage_rate() -> Decimal:
    """Fetch the latest 30-year fixed mortgage rate from FRED.

    Returns the rate as a Decimal fraction (e.g. 0.0672 for 6.72%).
    Raises FetchError on any error (network, parsing, missing data).
    """
    api_key = os.environ.get("FRED_API_KEY")
    if not api_key:
        raise FetchError(
            "FRED_API_KEY environment variable is not set. "
            "Get a free key at https://fred.stlouisfed.org/docs/api/api_key.html"
        )
    params = {
        "series_id": _FRED_SERIES,
        "api_key": api_key,
        "file_type": "json",
        "sort_order": "desc",
        "limit": 1,
    }
    try:
        resp = requests.get(_FRED_URL, params=params, timeout=_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"FRED API request failed: {exc}") from exc

    try:
        observations = resp.json()["observations"]
        if not observations:
            raise FetchError("FRED returned no observations.")
        value_str = observations[0]["value"]
        if value_str == ".":
            raise FetchError("FRED returned missing value ('.').")
        rate = Decimal(value_str) / Decimal("100")
    except (KeyError, IndexError, ValueError, ArithmeticError) as exc:
        raise FetchError(f"Failed to parse FRED response: {exc}") from exc
    logger.debug("FRED %s latest value %s", _FRED_SERIES, rate)
    return rate


def fetch_locations(url: str) -> StaticLocationProvider:
    """Download a JSON location dataset and wrap it in a provider.

    The payload is either a list of location records or an object with a
    ``locations`` list, the same shapes ``load_locations`` accepts.
    """
    try:
        resp = requests.get(url, timeout=_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Location dataset request failed: {exc}") from exc

    try:
        records = resp.json()
        if isinstance(records, dict):
            records = records["locations"]
        locations = [location_from_dict(r) for r in records]
    except (KeyError, TypeError, ValueError) as exc:
        raise FetchError(f"Failed to parse location dataset from {url}: {exc}") from exc
    logger.debug("fetched %d locations from %s", len(locations), url)
    return StaticLocationProvider(locations)
