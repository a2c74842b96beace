"""
Page fetcher: URL in, filtered outbound links out.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from site_crawler.utils.logging import get_logger
from site_crawler.utils.errors import FetchError, ValidationError
from .http_client import HTTPClient
from .links import LinkFilter, extract_links


logger = get_logger(__name__)


@dataclass
class FetchResult:
    """Outcome of fetching one page."""
    links: List[str] = field(default_factory=list)
    status: str = ""
    status_code: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class LinkFetcher:
    """
    Fetches a page and returns the in-scope links found on it.

    ``fetch`` reports per-page failures through ``FetchResult.error`` rather
    than raising, so a worker handler can mark the page done and carry on.
    """

    def __init__(self, client: Optional[HTTPClient] = None, link_filter: Optional[LinkFilter] = None):
        self.client = client or HTTPClient()
        self.link_filter = link_filter or LinkFilter()

    def fetch(self, url: str) -> FetchResult:
        try:
            response = self.client.get(url)
        except (FetchError, ValidationError) as e:
            return FetchResult(error=e.message)

        try:
            raw_links = extract_links(response.text)
            links = self.link_filter.filter(raw_links, url)
        except (ValidationError, ValueError) as e:
            return FetchResult(
                status=response.status,
                status_code=response.status_code,
                error=f"failed to parse links from {url}: {e}",
            )

        return FetchResult(
            links=links,
            status=response.status,
            status_code=response.status_code,
        )

    def close(self) -> None:
        self.client.close()
