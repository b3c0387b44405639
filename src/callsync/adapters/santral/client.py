from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import requests

from callsync.adapters.santral.rate_limit import RateLimiter, RateLimitExceeded
from callsync.domain.models import CallRecord
from callsync.domain.rules import ValidationError

LOGGER = logging.getLogger(__name__)

BASE_URL = "https://api.bulutsantralim.com"
DEFAULT_LIMIT = 10


class SantralError(RuntimeError):
    pass


@dataclass(frozen=True)
class CallFilter:
    start_from: datetime | None = None
    start_to: datetime | None = None
    limit: int = DEFAULT_LIMIT
    page: int | None = None
    direction: str | None = None
    caller_id_number: str | None = None
    destination_number: str | None = None
    queue: str | None = None
    missed: bool | None = None
    recording_present: bool | None = None


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    total_count: int = 0
    total_pages: int = 0
    limit: int = 0


@dataclass(frozen=True)
class FetchResult:
    success: bool
    records: list[CallRecord] = field(default_factory=list)
    pagination: Pagination | None = None
    error: str | None = None


def format_utc(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + " UTC"


class SantralClient:
    """CDR reader for the Bulut Santralim API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        rate_limiter: RateLimiter | None = None,
        session: requests.Session | None = None,
        timeout: float = 30,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter or RateLimiter(None)
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_calls(self, call_filter: CallFilter) -> FetchResult:
        try:
            data = self._get("/cdrs", self._query_params(call_filter))
        except (SantralError, RateLimitExceeded) as exc:
            LOGGER.warning("CDR fetch failed: %s", exc)
            return FetchResult(success=False, error=str(exc))

        records: list[CallRecord] = []
        for payload in data.get("cdrs") or []:
            try:
                records.append(CallRecord.from_payload(payload))
            except ValidationError as exc:
                LOGGER.warning("Ignoring malformed CDR %r: %s", payload, exc)
        return FetchResult(success=True, records=records, pagination=_pagination(data.get("pagination")))

    def get_call_detail(self, call_uuid: str) -> dict[str, Any]:
        return self._get(f"/cdrs/{call_uuid}", {"key": self.api_key})

    def _query_params(self, call_filter: CallFilter) -> dict[str, Any]:
        params: dict[str, Any] = {"key": self.api_key, "limit": call_filter.limit or DEFAULT_LIMIT}
        if call_filter.start_from:
            params["start_stamp_from"] = format_utc(call_filter.start_from)
        if call_filter.start_to:
            params["start_stamp_to"] = format_utc(call_filter.start_to)
        if call_filter.recording_present is not None:
            params["recording_present"] = str(call_filter.recording_present).lower()
        if call_filter.missed is not None:
            params["missed"] = str(call_filter.missed).lower()
        for name in ("direction", "caller_id_number", "destination_number", "queue", "page"):
            value = getattr(call_filter, name)
            if value:
                params[name] = value
        return params

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        self.rate_limiter.acquire()
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request("GET", url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SantralError(f"Santral request failed: {exc}") from exc
        if response.status_code >= 400:
            raise SantralError(f"Santral error {response.status_code}: {response.text}")
        try:
            data = response.json()
        except ValueError as exc:
            raise SantralError(f"Santral returned non-JSON response: {response.text[:200]}") from exc
        if not isinstance(data, dict):
            raise SantralError(f"Santral returned unexpected payload: {type(data).__name__}")
        return data


def _pagination(data: Any) -> Pagination | None:
    if not isinstance(data, dict):
        return None
    return Pagination(
        page=int(data.get("page") or 1),
        total_count=int(data.get("total_count") or 0),
        total_pages=int(data.get("total_pages") or 0),
        limit=int(data.get("limit") or 0),
    )
