"""
Unit tests for URL sanitising, link extraction and link filtering.
"""

import pytest
from hypothesis import given, strategies as st

from site_crawler.crawlers.links import (
    LinkFilter, LinkFilterOptions, extract_links,
    normalise_extensions, sanitise_url, split_url
)
from site_crawler.utils.errors import ValidationError


PAGE = "https://monzo.com/about"


class TestSanitiseUrl:
    """Test URL validation and normalisation."""

    @pytest.mark.parametrize("raw", [
        "",
        "   ",
        "monzo.com",
        "://monzo.com",
        "bad://monzo.com",
        "http://",
        "https://",
        "mailto:someone@monzo.com",
    ])
    def test_rejects_invalid_urls(self, raw):
        with pytest.raises(ValidationError):
            sanitise_url(raw)

    @pytest.mark.parametrize("raw,expected", [
        ("https://monzo.com", "https://monzo.com"),
        ("https://monzo.com/", "https://monzo.com"),
        ("http://monzo.com/about/", "http://monzo.com/about"),
        ("https://monzo.com/a?b=c#d", "https://monzo.com/a"),
        ("HTTPS://Monzo.COM/Path", "https://monzo.com/Path"),
        ("https://user:pw@monzo.com/x", "https://monzo.com/x"),
        ("https://monzo.com:8443/x", "https://monzo.com:8443/x"),
    ])
    def test_normalises_valid_urls(self, raw, expected):
        assert sanitise_url(raw) == expected

    def test_split_url(self):
        assert split_url("https://monzo.com/a/b") == ("https", "monzo.com", "/a/b")

    @given(path=st.lists(st.text(alphabet="abcdefgh", min_size=1, max_size=6), max_size=4))
    def test_sanitise_is_idempotent(self, path):
        url = "https://monzo.com/" + "/".join(path) + "/"
        once = sanitise_url(url)

        assert sanitise_url(once) == once
        assert not once.endswith("/")


class TestExtractLinks:
    """Test anchor href extraction."""

    def test_extracts_hrefs_in_document_order(self):
        html = """
        <html><body>
          <a href="/one">One</a>
          <p><a href=" https://monzo.com/two ">Two</a></p>
          <a>no href</a>
          <link href="/style.css">
          <a href="#top">Top</a>
        </body></html>
        """

        assert extract_links(html) == ["/one", "https://monzo.com/two", "#top"]

    def test_empty_document(self):
        assert extract_links("") == []


class TestLinkFilter:
    """Test link filtering rules."""

    def test_resolves_relative_links_against_page(self):
        result = LinkFilter().filter(["/careers", "blog", "../faq/"], PAGE)

        assert result == [
            "https://monzo.com/careers",
            "https://monzo.com/blog",
            "https://monzo.com/faq",
        ]

    def test_same_subdomain_drops_other_hosts(self):
        links = ["https://monzo.com/a", "https://community.monzo.com/b", "https://example.com/c"]

        assert LinkFilter().filter(links, PAGE) == ["https://monzo.com/a"]

    def test_other_hosts_kept_when_not_restricted(self):
        links = ["https://monzo.com/a", "https://community.monzo.com/b"]
        link_filter = LinkFilter(LinkFilterOptions(same_subdomain=False))

        assert link_filter.filter(links, PAGE) == links

    def test_fragments_dropped_by_default(self):
        links = ["/a#section", "#top", "/b"]

        assert LinkFilter().filter(links, PAGE) == ["https://monzo.com/b"]

    def test_fragments_kept_when_allowed(self):
        link_filter = LinkFilter(LinkFilterOptions(ignore_fragments=False))

        assert link_filter.filter(["/a#section"], PAGE) == ["https://monzo.com/a"]

    def test_ignored_extensions(self):
        link_filter = LinkFilter(LinkFilterOptions(ignored_extensions=[".jpg", ".pdf"]))
        links = ["/cat.jpg", "/terms.pdf", "/page"]

        assert link_filter.filter(links, PAGE) == ["https://monzo.com/page"]

    def test_ignored_paths(self):
        link_filter = LinkFilter(LinkFilterOptions(ignored_paths=["blog/", "/help"]))
        links = ["/blog/post-1", "/help", "/legal"]

        assert link_filter.filter(links, PAGE) == ["https://monzo.com/legal"]

    def test_distinct_keeps_first_seen_order(self):
        links = ["/b", "/a", "/b/", "/a?x=1"]

        assert LinkFilter().filter(links, PAGE) == ["https://monzo.com/b", "https://monzo.com/a"]

    def test_duplicates_kept_without_distinct(self):
        link_filter = LinkFilter(LinkFilterOptions(distinct=False))

        assert link_filter.filter(["/a", "/a"], PAGE) == ["https://monzo.com/a", "https://monzo.com/a"]

    def test_non_http_links_dropped(self):
        links = ["mailto:hi@monzo.com", "javascript:void(0)", "tel:123", "", "/ok"]

        assert LinkFilter().filter(links, PAGE) == ["https://monzo.com/ok"]


class TestNormaliseExtensions:

    def test_adds_leading_dot_and_skips_blanks(self):
        assert normalise_extensions(["jpg", ".pdf", " ", " png "]) == [".jpg", ".pdf", ".png"]
