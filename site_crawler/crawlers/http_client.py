"""
HTTP client used by the fetcher.
"""

from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urljoin

import requests
from requests.structures import CaseInsensitiveDict

from site_crawler.utils.logging import get_logger
from site_crawler.utils.errors import ConfigurationError, FetchError


logger = get_logger(__name__)

DEFAULT_USER_AGENT = "site-crawler/1.0"

REDIRECT_STATUSES = (301, 302)


@dataclass
class HTTPResponse:
    """The parts of a response the crawler needs."""
    url: str
    status_code: int
    reason: str
    text: str
    headers: Mapping[str, str]

    @property
    def status(self) -> str:
        return f"{self.status_code} {self.reason}".strip()


class HTTPClient:
    """GET-only client that follows at most one redirect hop."""

    def __init__(self, timeout: float = 5.0, user_agent: str = DEFAULT_USER_AGENT,
                 session: Optional[requests.Session] = None):
        """
        Initialize HTTP client.

        Args:
            timeout: Per-request deadline in seconds
            user_agent: User-Agent header sent with every request
            session: Optional preconfigured session (tests inject one)

        Raises:
            ConfigurationError: If the timeout is not a positive number
        """
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigurationError(f"HTTP timeout must be positive, got {timeout!r}")
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            'User-Agent': self.user_agent,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        })
        return session

    def get(self, url: str) -> HTTPResponse:
        """
        Fetch a URL, following one 301/302 redirect if the server sends one.

        Non-2xx responses are returned, not raised.

        Raises:
            FetchError: On connection failures, timeouts or a bad Location header
        """
        response = self._request(url)

        if response.status_code in REDIRECT_STATUSES:
            location = response.headers.get("Location")
            if not location:
                raise FetchError(
                    f"redirect without Location header from {url}",
                    {"url": url, "status": response.status_code}
                )
            redirect_url = urljoin(url, location)
            logger.debug(f"Following redirect {url} -> {redirect_url}")
            response = self._request(redirect_url)

        return response

    def _request(self, url: str) -> HTTPResponse:
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=False)
        except requests.exceptions.Timeout as e:
            raise FetchError(f"request timed out after {self.timeout}s: {url}",
                             {"url": url, "last_error": str(e)})
        except requests.exceptions.RequestException as e:
            raise FetchError(f"request failed: {url}",
                             {"url": url, "last_error": str(e)})

        try:
            return HTTPResponse(
                url=url,
                status_code=response.status_code,
                reason=response.reason or "",
                text=response.text,
                headers=CaseInsensitiveDict(response.headers),
            )
        finally:
            response.close()

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
