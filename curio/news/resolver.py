"""Multi-strategy source resolution.

A configured source may be a feed URL, a page that advertises a feed, or a
plain HTML site. Resolution walks an ordered chain of named stages and stops
at the first one that yields entries:

1. direct_feed      - the configured URL parsed as RSS/Atom
2. site_root        - fetch scheme://host as HTML (no entries on its own)
3. discovered_feed  - follow <link rel="alternate"> from that HTML
4. html_scrape      - heuristic article containers as a last resort

Every stage absorbs its own network/parse errors; the resolver never raises.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urljoin

import feedparser
import httpx
from bs4 import BeautifulSoup

from ..config.settings import settings
from .extractors import site_root
from .models import Source

logger = logging.getLogger(__name__)

MAX_SCRAPED_STUBS = 10
MIN_SCRAPED_TITLE_LENGTH = 10
SCRAPED_SUMMARY_CHARS = 300

SCRAPE_SELECTORS = "article, .post, .entry, .card, .item, main > div"
FEED_TYPES = ("application/rss+xml", "application/atom+xml")

_FEED_HEADERS = {
    "User-Agent": settings.user_agent,
    "Accept": (
        "application/rss+xml, application/atom+xml, application/xml;q=0.9, "
        "text/xml;q=0.8, */*;q=0.5"
    ),
}
_HTML_HEADERS = {
    "User-Agent": settings.user_agent,
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
}


@dataclass
class ResolveResult:
    """Outcome of resolving one source."""

    source: Source
    strategy: str = "none"  # direct_feed | discovered_feed | html_scrape | none
    feed_title: Optional[str] = None
    entries: list[Any] = field(default_factory=list)
    attempts: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.entries)


@dataclass
class _Page:
    url: str
    body: str


def looks_like_html(body: str) -> bool:
    head = body.lstrip()[:200].lower()
    return head.startswith("<!doctype html") or head.startswith("<html")


def parse_feed(body: str) -> Optional[feedparser.FeedParserDict]:
    """Parse a feed body; None unless it produced at least one entry."""
    feed = feedparser.parse(body)
    if not feed.entries:
        if feed.bozo:
            logger.debug("[RESOLVER] Feed parse error: %s", feed.get("bozo_exception"))
        return None
    return feed


def find_feed_link(html: str, base_url: str) -> Optional[str]:
    """Return the absolute URL of the first advertised RSS/Atom feed."""
    soup = BeautifulSoup(html, "html.parser")
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "alternate" not in [r.lower() for r in rel]:
            continue
        if (link.get("type") or "").lower().strip() in FEED_TYPES:
            # urljoin passes absolute hrefs through and resolves root- and sibling-relative ones
            return urljoin(base_url, link["href"].strip())
    return None


def scrape_articles(html: str, base_url: str, limit: int = MAX_SCRAPED_STUBS) -> list[dict]:
    """
    Heuristic article stubs from common container markup.

    Stubs are plain dicts shaped like feed entries (title, link, summary,
    image) so the normalizer treats them like any other item.
    """
    soup = BeautifulSoup(html, "html.parser")
    stubs = []
    seen_links = set()

    for container in soup.select(SCRAPE_SELECTORS):
        anchor = container.find("a", href=True)
        if anchor is None:
            continue

        title = anchor.get_text(" ", strip=True)
        if len(title) < MIN_SCRAPED_TITLE_LENGTH:
            heading = container.find(["h1", "h2", "h3", "h4"])
            title = heading.get_text(" ", strip=True) if heading else title
        href = anchor["href"].strip()
        if len(title) < MIN_SCRAPED_TITLE_LENGTH or not href or href.startswith(("#", "javascript:")):
            continue

        link = urljoin(base_url, href)
        if link in seen_links:
            continue
        seen_links.add(link)

        stub = {
            "title": title,
            "link": link,
            "summary": container.get_text(" ", strip=True)[:SCRAPED_SUMMARY_CHARS],
        }
        img = container.find("img")
        src = img and (img.get("src") or img.get("data-src"))
        if src:
            stub["image"] = {"href": urljoin(base_url, src)}
        stubs.append(stub)

        if len(stubs) >= limit:
            break

    return stubs


class SourceResolver:
    """Resolves sources into raw entries over a shared HTTP client."""

    def __init__(self, client: httpx.AsyncClient, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout or settings.feed_timeout

    async def resolve(self, source: Source) -> ResolveResult:
        """Run the fallback chain for one source. Never raises."""
        result = ResolveResult(source=source)
        try:
            await self._run_chain(source, result)
        except Exception as e:
            logger.error("[RESOLVER] Unexpected failure for %s: %s", source.url, e)

        if result.ok:
            logger.info(
                "[RESOLVER] %s -> %d entries via %s",
                source.url,
                len(result.entries),
                result.strategy,
            )
        else:
            logger.warning("[RESOLVER] No entries for %s (tried %s)", source.url, ", ".join(result.attempts))
        return result

    async def _run_chain(self, source: Source, result: ResolveResult) -> None:
        # 1. direct feed
        result.attempts.append("direct_feed")
        page = await self._get(source.url, _FEED_HEADERS)
        configured_html = None
        if page is not None:
            if looks_like_html(page.body):
                configured_html = page
            elif self._accept_feed(result, page.body, "direct_feed"):
                return

        # 2. site root
        result.attempts.append("site_root")
        root_url = site_root(source.url)
        if configured_html is not None and configured_html.url.rstrip("/") == root_url:
            root_page = configured_html
        else:
            root_page = await self._get(root_url, _HTML_HEADERS)

        # 3. discovered feed advertised by the configured page or the root
        tried = {source.url}
        for html_page in (configured_html, root_page):
            if html_page is None:
                continue
            feed_url = find_feed_link(html_page.body, html_page.url)
            if not feed_url or feed_url in tried:
                continue
            tried.add(feed_url)
            result.attempts.append("discovered_feed")
            feed_page = await self._get(feed_url, _FEED_HEADERS)
            if feed_page is not None and self._accept_feed(result, feed_page.body, "discovered_feed"):
                logger.info("[RESOLVER] Discovered feed %s for %s", feed_url, source.url)
                return

        # 4. HTML scrape, preferring the configured page when it was HTML
        result.attempts.append("html_scrape")
        scrape_page = configured_html or root_page
        if scrape_page is None:
            return
        try:
            stubs = scrape_articles(scrape_page.body, scrape_page.url)
        except Exception as e:
            logger.warning("[RESOLVER] Scrape failed for %s: %s", scrape_page.url, e)
            return
        if stubs:
            result.strategy = "html_scrape"
            result.entries = stubs

    def _accept_feed(self, result: ResolveResult, body: str, strategy: str) -> bool:
        try:
            feed = parse_feed(body)
        except Exception as e:
            logger.debug("[RESOLVER] %s parse failed for %s: %s", strategy, result.source.url, e)
            return False
        if feed is None:
            return False
        result.strategy = strategy
        result.feed_title = feed.feed.get("title")
        result.entries = list(feed.entries)
        return True

    async def _get(self, url: str, headers: dict) -> Optional[_Page]:
        try:
            resp = await self.client.get(url, headers=headers, timeout=self.timeout, follow_redirects=True)
            resp.raise_for_status()
            return _Page(url=str(resp.url), body=resp.text)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("[RESOLVER] GET %s failed: %s", url, e)
            return None
