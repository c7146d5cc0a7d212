"""Companies House client: one company profile lookup per identifier."""

import base64
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

from .errors import TransportFailure
from .logger import get_logger
from .ratelimit import SlidingWindowRateLimiter
from .retry import RetryError, exponential_backoff
from .schema import profile_fields, validate_company_profile

logger = get_logger()

DEFAULT_BASE_URL = "https://api.companieshouse.gov.uk"
DEFAULT_TIMEOUT = 15.0
HTTP_OK = 200
NOT_REQUESTED = 0  # status of a lookup that never reached the registry

TRANSIENT_ERRORS = (requests.exceptions.Timeout, requests.exceptions.ConnectionError)


@dataclass
class LookupResult:
    status_code: int
    domain_codes: List[str] = field(default_factory=list)
    company_status: str = ""

    @property
    def has_data(self) -> bool:
        return self.status_code == HTTP_OK


def build_auth_header(api_key: str) -> Dict[str, str]:
    """Basic auth with the API key as user name and an empty password."""
    password = ""
    token = base64.b64encode(f"{api_key}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


class RegistryClient:
    """
    Looks up company profiles on the Companies House API.

    The API key is fetched from ``api_key_provider.get_api_key()`` on
    every lookup. Non-200 answers are returned as a LookupResult without
    data; only transport problems raise TransportFailure.
    """

    def __init__(
        self,
        api_key_provider,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        max_retries: int = 2,
        retry_delay: float = 1.0,
    ):
        self.api_key_provider = api_key_provider
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.rate_limiter = rate_limiter
        self._get = exponential_backoff(
            max_retries=max_retries,
            base_delay=retry_delay,
            exceptions=TRANSIENT_ERRORS,
            on_retry=self._log_retry,
        )(self._send)

    def company_url(self, normalized_id: str) -> str:
        return f"{self.base_url}/company/{normalized_id}"

    def lookup(self, normalized_id: str) -> LookupResult:
        """
        Fetch the company profile for an already normalized identifier.

        Raises:
            TransportFailure: missing API key, network fault after retries,
                or a 200 response whose body is not a usable profile
        """
        if not normalized_id:
            logger.debug("Empty company number, lookup skipped")
            return LookupResult(status_code=NOT_REQUESTED)

        api_key = self.api_key_provider.get_api_key()
        if not api_key:
            raise TransportFailure("Companies House API key is not configured", registry_id=normalized_id)

        url = self.company_url(normalized_id)
        logger.record_lookup()
        try:
            resp = self._get(url, build_auth_header(api_key))
        except RetryError as e:
            raise TransportFailure(f"Registry unreachable: {e}", registry_id=normalized_id) from e
        except requests.exceptions.RequestException as e:
            raise TransportFailure(f"Registry request error: {e}", registry_id=normalized_id) from e

        if resp.status_code != HTTP_OK:
            logger.debug("No registry data", company_no=normalized_id, status=resp.status_code)
            return LookupResult(status_code=resp.status_code)

        try:
            body = resp.json()
        except ValueError as e:
            raise TransportFailure(f"Malformed registry response body: {e}", registry_id=normalized_id) from e

        errors = validate_company_profile(body)
        if errors:
            raise TransportFailure(
                f"Unexpected company profile shape: {'; '.join(errors)}",
                registry_id=normalized_id,
            )

        fields = profile_fields(body)
        logger.debug(
            "Registry data received",
            company_no=normalized_id,
            sic_codes=fields["sic_codes"],
            company_status=fields["company_status"],
        )
        return LookupResult(
            status_code=resp.status_code,
            domain_codes=fields["sic_codes"],
            company_status=fields["company_status"],
        )

    def _send(self, url: str, headers: Dict[str, str]) -> requests.Response:
        # every attempt, retries included, takes a slot
        if self.rate_limiter is not None:
            waited = self.rate_limiter.acquire()
            if waited:
                logger.info("Registry rate limit reached, waited before request", seconds=round(waited, 2))
        return self.session.get(url, headers=headers, timeout=self.timeout)

    @staticmethod
    def _log_retry(attempt: int, exc: Exception, delay: float):
        logger.warning("Registry request failed, retrying", attempt=attempt, delay=delay, error=str(exc))
