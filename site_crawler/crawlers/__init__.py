"""
Page fetching and link extraction.
"""

from .fetcher import FetchResult, LinkFetcher
from .http_client import HTTPClient, HTTPResponse
from .links import LinkFilter, LinkFilterOptions, extract_links, sanitise_url

__all__ = [
    'FetchResult',
    'LinkFetcher',
    'HTTPClient',
    'HTTPResponse',
    'LinkFilter',
    'LinkFilterOptions',
    'extract_links',
    'sanitise_url'
]
