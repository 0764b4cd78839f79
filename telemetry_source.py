from __future__ import annotations

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from dashboard_config import DEFAULT_COLLECTOR_URL
from telemetry import MalformedResponse, NetworkFailure, TelemetryPayload, parse_payload
from time_range import TimeRange

logger = logging.getLogger(__name__)

# -----------------------------
# Sunny collector (REST / JSON)
# -----------------------------
# GET {base}/values-with-stats/{startEpochMillis}/{endEpochMillis}
# Body: {"values": [[ts, {...}], ...], "energy_kwh": {...}, "maxes": {...}, "average": {...}}
# An empty window comes back as "{ }" (HTTP 200).
# -----------------------------
VALUES_WITH_STATS_PATH = "values-with-stats"
HEADERS = {"Accept": "application/json", "User-Agent": "sunny-dashboard/1.0"}


def build_session(retries: int = 0) -> requests.Session:
    retry_strategy = Retry(
        total=retries,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class CollectorClient:
    """Fetches one TelemetryPayload per TimeRange from the collector."""

    def __init__(
        self,
        base_url: str = DEFAULT_COLLECTOR_URL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        retries: int = 0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or build_session(retries)

    def url_for(self, time_range: TimeRange) -> str:
        return f"{self.base_url}/{VALUES_WITH_STATS_PATH}/{time_range.start}/{time_range.end}"

    def fetch_values_with_stats(self, time_range: TimeRange) -> TelemetryPayload:
        if time_range.is_inverted:
            logger.info("Inverted range %s, answering with an empty payload", time_range)
            return TelemetryPayload()

        url = self.url_for(time_range)
        logger.debug("GET %s", url)
        try:
            resp = self.session.get(url, headers=HEADERS, timeout=self.timeout)
        except requests.exceptions.RequestException as ex:
            raise NetworkFailure(f"Collector request failed: {ex}") from ex

        if not 200 <= resp.status_code < 300:
            raise NetworkFailure(
                f"Collector answered HTTP {resp.status_code} for {url}",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as ex:
            raise MalformedResponse(f"Body is not valid JSON: {ex}") from ex
        return parse_payload(data)

    __call__ = fetch_values_with_stats
