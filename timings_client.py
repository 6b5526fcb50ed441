"""Client for the prayer timings backend."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from prayer_clock import PRAYER_ORDER

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080/api"
DEFAULT_CITY = "Toronto"
DEFAULT_COUNTRY = "Canada"
REQUEST_TIMEOUT = 10

TRANSPORT = "transport"
HTTP_STATUS = "http_status"
INVALID_PAYLOAD = "invalid_payload"


class NetworkFailure(Exception):
    """A backend call that did not produce a usable response."""

    def __init__(self, message: str, kind: str = TRANSPORT, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


@dataclass(frozen=True)
class Timings:
    """Raw prayer time strings for one day, exactly as the backend sent them."""

    fajr: str
    dhuhr: str
    asr: str
    maghrib: str
    isha: str

    @classmethod
    def from_payload(cls, payload: Any) -> "Timings":
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
        values: Dict[str, str] = {}
        for name in PRAYER_ORDER:
            value = payload.get(name)
            if not isinstance(value, str):
                raise ValueError(f"Missing or non-string field {name!r}")
            values[name.lower()] = value
        return cls(**values)

    def get(self, prayer: str) -> str:
        return getattr(self, prayer.lower())

    def as_dict(self) -> Dict[str, str]:
        return {name: self.get(name) for name in PRAYER_ORDER}


class TimingsClient:
    """Reads today's timings and the day label for a city."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")

    def fetch_timings(self, city: str = DEFAULT_CITY, country: str = DEFAULT_COUNTRY) -> Timings:
        response = self._get("/today", city, country)
        try:
            payload = response.json()
        except ValueError as exc:
            raise NetworkFailure("Timings response is not valid JSON", kind=INVALID_PAYLOAD) from exc
        LOGGER.debug("Timings payload: %s", payload)

        try:
            return Timings.from_payload(payload)
        except ValueError as exc:
            raise NetworkFailure(f"Invalid timings payload: {exc}", kind=INVALID_PAYLOAD) from exc

    def fetch_day_label(self, city: str = DEFAULT_CITY, country: str = DEFAULT_COUNTRY) -> str:
        response = self._get("/ramadan/day", city, country)
        LOGGER.debug("Day label payload: %r", response.text)
        return response.text

    def _get(self, path: str, city: str, country: str) -> requests.Response:
        url = f"{self.base_url}{path}"
        params = {"city": city, "country": country}
        LOGGER.debug("Requesting %s with params=%s", url, params)
        try:
            response = requests.get(url, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise NetworkFailure(f"Request to {url} failed: {exc}") from exc

        LOGGER.debug("Response status for %s: %s", url, response.status_code)
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise NetworkFailure(
                f"Backend returned HTTP {response.status_code} for {url}",
                kind=HTTP_STATUS,
                status_code=response.status_code,
            ) from exc
        return response
