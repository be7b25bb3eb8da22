"""FPL API client for HTTP requests.

Handles all communication with the official FPL API including:
- Retry logic with exponential backoff (bounded attempts)
- Rate limiting via Retry-After on HTTP 429
- Response caching for bootstrap data

Key Classes:
    FPLApiClient - HTTP client for FPL API

Usage:
    from touchline.data.api_client import FPLApiClient

    client = FPLApiClient()
    bootstrap = client.get_bootstrap()
    fixtures = client.get_fixtures()
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Dict, List, Optional

import requests

from touchline.config import BACKOFF_BASE, FPL_BASE_URL, MAX_RETRIES, REQUEST_TIMEOUT
from touchline.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

# FPL API endpoints (relative to base URL)
ENDPOINTS = {
    "bootstrap": "/bootstrap-static/",
    "fixtures": "/fixtures/",
}

MAX_DELAY = 60  # Maximum backoff delay in seconds
RATE_LIMIT_STATUS = 429  # HTTP "Too Many Requests"


class FPLApiClient:
    """HTTP client for FPL API with bounded retries and caching."""

    def __init__(
        self,
        base_url: str = FPL_BASE_URL,
        retries: int = MAX_RETRIES,
        backoff_base: float = BACKOFF_BASE,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if retries < 1:
            raise ValueError(f"retries must be >= 1, got {retries}")
        self.base_url = base_url.rstrip("/")
        self.retries = retries
        self.backoff_base = backoff_base
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "Touchline/0.1 (+FPL refresh pipeline)"})
        self._bootstrap_cache: Optional[Dict] = None

    def _backoff(self, attempt: int) -> float:
        """Delay before the next attempt: base, 2*base, 4*base... plus jitter."""
        delay = self.backoff_base * (2 ** attempt)
        jitter = random.uniform(0, 0.1 * delay)
        return min(delay + jitter, MAX_DELAY)

    def _get(self, endpoint: str) -> Any:
        """GET an endpoint with bounded retries.

        Raises:
            UpstreamUnavailable: If every attempt fails.
        """
        url = f"{self.base_url}{endpoint}"
        last_error: Optional[str] = None

        for attempt in range(self.retries):
            wait_time = self._backoff(attempt)
            try:
                resp = self.session.get(url, timeout=self.timeout)

                if resp.status_code == RATE_LIMIT_STATUS:
                    retry_after = resp.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        wait_time = min(max(int(retry_after), wait_time), MAX_DELAY)
                    last_error = "rate limited (429)"
                    logger.warning(
                        f"Rate limited (429) on {url} "
                        f"(attempt {attempt + 1}/{self.retries})"
                    )
                else:
                    resp.raise_for_status()
                    return resp.json()

            except requests.RequestException as e:
                last_error = str(e)
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{self.retries}): {e}"
                )
            except ValueError as e:
                # Body was not JSON (e.g. a maintenance page)
                last_error = f"invalid JSON: {e}"
                logger.warning(
                    f"Invalid JSON from {url} (attempt {attempt + 1}/{self.retries})"
                )

            if attempt < self.retries - 1:
                logger.info(f"Retrying in {wait_time:.1f}s")
                time.sleep(wait_time)

        logger.error(f"All {self.retries} attempts failed for {url}")
        raise UpstreamUnavailable(
            f"{url} unreachable after {self.retries} attempts: {last_error}"
        )

    def get_bootstrap(self, force: bool = False) -> Dict:
        """Get bootstrap-static data (cached).

        Args:
            force: If True, bypass cache and fetch fresh data.

        Returns:
            Bootstrap data dict with elements, teams and events.

        Raises:
            UpstreamUnavailable: If bootstrap data cannot be fetched or
                is not the expected shape.
        """
        if self._bootstrap_cache is None or force:
            logger.info("Fetching bootstrap-static data...")
            data = self._get(ENDPOINTS["bootstrap"])
            if not isinstance(data, dict) or not isinstance(data.get("elements"), list):
                raise UpstreamUnavailable("bootstrap-static payload missing 'elements'")
            self._bootstrap_cache = data

        return self._bootstrap_cache

    def get_fixtures(self) -> List[Dict]:
        """Get all fixtures for the season.

        Raises:
            UpstreamUnavailable: If fixtures cannot be fetched.
        """
        logger.info("Fetching fixtures...")
        data = self._get(ENDPOINTS["fixtures"])
        if not isinstance(data, list):
            raise UpstreamUnavailable("fixtures payload is not a list")
        return data

    def _events(self) -> List[Dict]:
        """Bootstrap events that carry an integer id; malformed ones are skipped."""
        events = self.get_bootstrap().get("events") or []
        return [e for e in events if isinstance(e, dict) and isinstance(e.get("id"), int)]

    def get_current_gw(self) -> Optional[int]:
        """Get the gameweek flagged is_current, if any."""
        for event in self._events():
            if event.get("is_current"):
                return event["id"]
        return None

    def get_target_gw(self) -> int:
        """Get the gameweek recommendations are produced for.

        Priority: the next gameweek, then the current one, then the
        gameweek after the latest finished one. Defaults to 1 before the
        season calendar is published.
        """
        events = self._events()

        for event in events:
            if event.get("is_next"):
                return event["id"]

        current = self.get_current_gw()
        if current is not None:
            return current

        finished = [e["id"] for e in events if e.get("finished")]
        if finished:
            return max(finished) + 1

        logger.warning("No gameweek flags in bootstrap, defaulting to GW1")
        return 1
