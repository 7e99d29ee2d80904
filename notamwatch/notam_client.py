"""NOTAM API client module with retry, bounded parallelism and per-region fault isolation."""
import requests
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from abc import ABC, abstractmethod
import logging

from notamwatch.config import Config
from notamwatch.errors import (
    AllFetchesFailedError,
    ApiError,
    InvalidRequestError,
    InvalidResponseError,
    NetworkUnavailableError,
    ParsingFailedError,
    RateLimitedError,
    ServerError,
    is_transient,
)
from notamwatch.models.notam import Notam
from notamwatch.models.settings import is_valid_icao_code
from notamwatch.parser import NotamParser

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Outcome of fetching one region: either notams or error is set."""
    region: str
    notams: Optional[List[Notam]] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def aggregate_results(results: Dict[str, FetchResult]) -> Tuple[Dict[str, List[Notam]], Dict[str, Exception]]:
    """
    Split per-region results into (notams, errors).

    Partial failure is not an error. Raises AllFetchesFailedError when no
    region succeeded.
    """
    notams = {region: r.notams for region, r in results.items() if r.ok}
    errors = {region: r.error for region, r in results.items() if not r.ok}

    for region, error in errors.items():
        logger.warning(f"  → {region} failed: {error}")

    if errors and not notams:
        raise AllFetchesFailedError(errors)

    return notams, errors


class BaseNotamClient(ABC):
    """
    Abstract base class for NOTAM API clients.

    Subclasses build the request and perform the HTTP call; retry, parsing and
    aggregation across regions live here.
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 parser: Optional[NotamParser] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = Config()
        self.session = session or requests.Session()
        self.parser = parser or NotamParser()
        self.sleep = sleep
        self.max_retries = self.config.MAX_RETRIES
        self.retry_delays = list(self.config.RETRY_DELAYS)
        self.timeout = self.config.REQUEST_TIMEOUT_SECONDS
        self.max_workers = self.config.MAX_CONCURRENT_REQUESTS

    @abstractmethod
    def _build_request(self, region: str) -> tuple[str, dict, dict]:
        """
        Build the API request parameters.

        Returns:
            Tuple of (url, headers, form payload)
        """
        pass

    @abstractmethod
    def _send(self, url: str, headers: dict, payload: dict) -> requests.Response:
        """Perform the HTTP call."""
        pass

    def _perform_fetch(self, region: str) -> List[Notam]:
        """One attempt: request, classify the status, parse the body."""
        url, headers, payload = self._build_request(region)

        try:
            response = self._send(url, headers, payload)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise NetworkUnavailableError(f"Network error fetching {region}: {e}") from e
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema) as e:
            raise InvalidRequestError(f"Invalid request for {region}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise NetworkUnavailableError(f"Request failed for {region}: {e}") from e

        status = response.status_code
        if status == 429:
            raise RateLimitedError()
        if 500 <= status < 600:
            raise ServerError(status)
        if 400 <= status < 500:
            raise ApiError(status_code=status)
        if status != 200:
            raise InvalidResponseError(f"Unexpected status {status} for {region}")

        try:
            response_data = response.json()
        except ValueError as e:
            raise ParsingFailedError(e) from e

        return self.parser.parse_response(response_data, region)

    def fetch_notams_for_region(self, region: str) -> List[Notam]:
        """
        Fetch NOTAMs for a single region, retrying transient failures.

        Up to max_retries attempts; between attempts sleep retry_delays[attempt].
        Non-transient errors are raised immediately.
        """
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                notams = self._perform_fetch(region)
                if attempt:
                    logger.info(f"{region}: succeeded on attempt {attempt + 1}")
                return notams
            except Exception as e:
                if not is_transient(e):
                    logger.error(f"{region}: non-transient error, not retrying: {e}")
                    raise
                last_error = e

            if attempt < self.max_retries - 1:
                delay = self.retry_delays[attempt]
                logger.warning(
                    f"{region}: attempt {attempt + 1}/{self.max_retries} failed ({last_error}), "
                    f"retrying in {delay:.1f}s"
                )
                self.sleep(delay)

        logger.error(f"{region}: giving up after {self.max_retries} attempt(s): {last_error}")
        raise last_error

    def _fetch_result(self, region: str) -> FetchResult:
        try:
            return FetchResult(region=region, notams=self.fetch_notams_for_region(region))
        except Exception as e:
            return FetchResult(region=region, error=e)

    def fetch_all_results(self, regions: Sequence[str]) -> Dict[str, FetchResult]:
        """Fetch every region concurrently; each result carries notams or an error."""
        regions = list(dict.fromkeys(r.strip().upper() for r in regions if r.strip()))
        if not regions:
            return {}

        workers = min(self.max_workers, len(regions))
        logger.info(f"Fetching NOTAMs for {len(regions)} region(s) with {workers} worker(s)")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notam-fetch") as pool:
            results = list(pool.map(self._fetch_result, regions))

        return {result.region: result for result in results}

    def fetch_all(self, regions: Sequence[str]) -> Dict[str, List[Notam]]:
        """
        Fetch NOTAMs for all regions.

        Returns only the regions that succeeded. Missing regions mean "not
        refreshed", not "empty". Raises AllFetchesFailedError when every
        region failed.
        """
        notams, errors = aggregate_results(self.fetch_all_results(regions))

        total = sum(len(n) for n in notams.values())
        logger.info(
            f"Fetched {total} NOTAM(s) from {len(notams)} region(s), {len(errors)} failed"
        )
        return notams


class FAANotamClient(BaseNotamClient):
    """
    NOTAM client for the FAA public notice-search endpoint (no authentication).
    """

    def _build_request(self, region: str) -> tuple[str, dict, dict]:
        """
        Build request for FAA endpoint.

        Returns:
            Tuple of (url, headers, payload)
        """
        if not is_valid_icao_code(region):
            raise InvalidRequestError(f"Invalid region code: {region!r}")

        url = self.config.NOTAM_API_URL
        if not url:
            raise InvalidRequestError("NOTAM_API_URL is not configured")

        headers = {
            "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
            "Accept": "application/json",
            "User-Agent": f"notamwatch/{self.config.VERSION}",
        }

        # Payload structure expected by FAA endpoint
        payload = {
            "searchType": "0",
            "designatorsForLocation": region,
            "notamType": "",
            "flightPathBuffer": "10",
            "flightPathIncludeNavaids": "true",
            "flightPathIncludeArtcc": "false",
            "flightPathIncludeTfr": "true",
            "flightPathIncludeRegulatory": "false",
            "flightPathResultsType": "0",
            "archiveDate": "",
            "archiveDesignator": "",
            "offset": "0",
            "notamsOnly": "false",
            "radius": "10",
        }

        return url, headers, payload

    def _send(self, url: str, headers: dict, payload: dict) -> requests.Response:
        return self.session.post(url, data=payload, headers=headers, timeout=self.timeout)


def get_notam_client(**kwargs) -> BaseNotamClient:
    """
    Factory function to instantiate the NOTAM client.

    Returns:
        Instance of appropriate NotamClient subclass
    """
    logger.info("Using FAA public endpoint client (no authentication)")
    return FAANotamClient(**kwargs)
