from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from callsync.adapters.santral.client import BASE_URL
from callsync.adapters.santral.rate_limit import RateLimiter, RateLimitExceeded

LOGGER = logging.getLogger(__name__)

PUBLIC_RECORDING_URL = "https://api.bulutsantralim.com/recording/{call_uuid}"


@dataclass(frozen=True)
class RecordingResult:
    success: bool
    url: str | None = None
    error: str | None = None


def public_recording_url(call_uuid: str) -> str:
    return PUBLIC_RECORDING_URL.format(call_uuid=call_uuid)


class RecordingClient:
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

    def get_recording_url(self, call_uuid: str) -> RecordingResult:
        try:
            self.rate_limiter.acquire()
        except RateLimitExceeded as exc:
            LOGGER.warning("Recording URL for %s not requested: %s", call_uuid, exc)
            return RecordingResult(success=False, error=str(exc))

        try:
            response = self.session.request(
                "POST",
                f"{self.base_url}/recording_url/",
                params={"key": self.api_key, "call_uuid": call_uuid},
                headers={"Accept": "*/*"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            return RecordingResult(success=False, error=f"Recording request failed: {exc}")
        if response.status_code >= 400:
            return RecordingResult(success=False, error=f"Santral error {response.status_code}: {response.text}")
        url = response.text.strip().strip('"')
        if not url:
            return RecordingResult(success=False, error="Empty recording URL.")
        return RecordingResult(success=True, url=url)
