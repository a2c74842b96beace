"""
Link extraction, URL sanitising and link filtering.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, SoupStrainer

from site_crawler.utils.errors import ValidationError


# Only <a href> elements matter for link discovery
LINK_STRAINER = SoupStrainer("a", href=True)

ALLOWED_SCHEMES = ("http", "https")


def split_url(raw_url: str) -> Tuple[str, str, str]:
    """
    Validate a URL and split it into scheme, host and path.

    Raises:
        ValidationError: If the URL is empty, has no http(s) scheme or no host
    """
    if raw_url is None or not raw_url.strip():
        raise ValidationError(f"empty url for input {raw_url!r}", {"url": raw_url})

    try:
        parsed = urlparse(raw_url.strip())
    except ValueError as e:
        raise ValidationError(f"unparseable url {raw_url}: {e}", {"url": raw_url})

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise ValidationError(f"missing or invalid scheme for input {raw_url}", {"url": raw_url})

    # Drop any userinfo; keep host[:port]
    host = parsed.netloc.rpartition("@")[2].lower()
    if not host:
        raise ValidationError(f"missing host for input {raw_url}", {"url": raw_url})

    return scheme, host, parsed.path


def sanitise_url(raw_url: str) -> str:
    """
    Normalise a URL to ``scheme://host/path`` without a trailing slash.

    Query strings and fragments are dropped, so two links differing only in
    those parts name the same task.

    Raises:
        ValidationError: If the URL is not an absolute http(s) URL
    """
    scheme, host, path = split_url(raw_url)
    return f"{scheme}://{host}{path.rstrip('/')}"


def extract_links(html: str) -> List[str]:
    """Return every ``href`` of every anchor in the document, in document order."""
    soup = BeautifulSoup(html, "html.parser", parse_only=LINK_STRAINER)
    return [a["href"].strip() for a in soup.find_all("a", href=True)]


@dataclass
class LinkFilterOptions:
    """Rules applied to links found on a page."""
    same_subdomain: bool = True
    distinct: bool = True
    ignore_fragments: bool = True
    ignored_extensions: List[str] = field(default_factory=list)
    ignored_paths: List[str] = field(default_factory=list)


class LinkFilter:
    """Turns raw hrefs into sanitised, in-scope task URLs."""

    def __init__(self, options: Optional[LinkFilterOptions] = None):
        self.options = options or LinkFilterOptions()

    def filter(self, links: Iterable[str], page_url: str) -> List[str]:
        """
        Filter and normalise links found on ``page_url``.

        Args:
            links: Raw href values
            page_url: URL of the page the links came from

        Returns:
            Sanitised links, de-duplicated in first-seen order when ``distinct``
        """
        opts = self.options
        base_host = split_url(page_url)[1]

        filtered: List[str] = []
        for link in links:
            if not link:
                continue

            if opts.ignore_fragments and "#" in link:
                continue

            if any(link.endswith(ext) for ext in opts.ignored_extensions if ext):
                continue

            if any(path in link for path in opts.ignored_paths if path):
                continue

            absolute = urljoin(page_url, link)

            try:
                scheme, host, path = split_url(absolute)
            except ValidationError:
                continue

            if opts.same_subdomain and host != base_host:
                continue

            filtered.append(f"{scheme}://{host}{path.rstrip('/')}")

        if opts.distinct:
            filtered = list(dict.fromkeys(filtered))

        return filtered


def normalise_extensions(extensions: Iterable[str]) -> List[str]:
    """Accept ``jpg`` or ``.jpg`` and return ``.jpg``."""
    result = []
    for ext in extensions:
        ext = ext.strip()
        if not ext:
            continue
        result.append(ext if ext.startswith(".") else f".{ext}")
    return result
