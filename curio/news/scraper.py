"""Page scraping helpers: preview images, full text and outbound links.

All functions take a shared `httpx.AsyncClient` and degrade to empty values
on any network or parse failure.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urldefrag, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from ..config.settings import settings

logger = logging.getLogger(__name__)

FULL_TEXT_MAX_CHARS = 20000
LINK_CONTEXT_CHARS = 160
MAX_LINKS_PER_PAGE = 40

_HTML_HEADERS = {
    "User-Agent": settings.user_agent,
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
}

_SKIP_LINK_PATTERN = re.compile(
    r"(privacy|terms|cookie|login|signin|signup|subscribe|newsletter|advert|"
    r"facebook\.com|twitter\.com|x\.com/intent|linkedin\.com/share|mailto:)",
    re.IGNORECASE,
)


@dataclass
class PageLink:
    url: str
    context: str


@dataclass
class PageContent:
    """Scraped article page."""

    url: str
    title: str = ""
    text: str = ""
    links: list[PageLink] = field(default_factory=list)


async def fetch_html(client: httpx.AsyncClient, url: str, timeout: float) -> Optional[httpx.Response]:
    """GET a page as HTML; None on any HTTP failure or malformed URL."""
    try:
        resp = await client.get(url, headers=_HTML_HEADERS, timeout=timeout, follow_redirects=True)
        resp.raise_for_status()
        return resp
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug("[SCRAPER] GET %s failed: %s", url, e)
        return None


async def fetch_preview_image(client: httpx.AsyncClient, url: str) -> Optional[str]:
    """Read the social preview image (og:image, then twitter:image) of a page."""
    resp = await fetch_html(client, url, settings.metadata_timeout)
    if resp is None:
        return None

    soup = BeautifulSoup(resp.text, "html.parser")
    og_image = soup.find("meta", property="og:image")
    if og_image and og_image.get("content"):
        return urljoin(str(resp.url), og_image["content"])

    twitter_image = soup.find("meta", attrs={"name": "twitter:image"})
    if twitter_image and twitter_image.get("content"):
        return urljoin(str(resp.url), twitter_image["content"])

    return None


def page_title(soup: BeautifulSoup) -> str:
    og_title = soup.find("meta", property="og:title")
    if og_title and og_title.get("content"):
        return og_title["content"].strip()
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    h1 = soup.find("h1")
    return h1.get_text(" ", strip=True) if h1 else ""


def extract_text(soup: BeautifulSoup) -> str:
    """Main text of a page: paragraphs inside article/main, else the whole body."""
    for tag in soup(["script", "style", "nav", "footer", "aside", "noscript"]):
        tag.decompose()

    container = soup.find("article") or soup.find("main") or soup.body or soup
    paragraphs = [p.get_text(" ", strip=True) for p in container.find_all("p")]
    text = "\n".join(p for p in paragraphs if p)
    if not text:
        text = container.get_text(" ", strip=True)
    return re.sub(r"[ \t]+", " ", text)[:FULL_TEXT_MAX_CHARS]


def extract_links(soup: BeautifulSoup, base_url: str) -> list[PageLink]:
    """Outbound http(s) links with the surrounding text as context."""
    page_url, _ = urldefrag(base_url)
    seen = {page_url}
    links = []

    for anchor in soup.find_all("a", href=True):
        url, _ = urldefrag(urljoin(base_url, anchor["href"]))
        if urlparse(url).scheme not in ("http", "https") or url in seen:
            continue
        if _SKIP_LINK_PATTERN.search(url):
            continue
        seen.add(url)

        anchor_text = anchor.get_text(" ", strip=True)
        parent = anchor.find_parent(["p", "li", "div"]) or anchor
        context = parent.get_text(" ", strip=True)[:LINK_CONTEXT_CHARS]
        links.append(PageLink(url=url, context=context or anchor_text))

        if len(links) >= MAX_LINKS_PER_PAGE:
            break

    return links


async def fetch_article_page(client: httpx.AsyncClient, url: str) -> Optional[PageContent]:
    """Fetch an article page and pull its title, full text and outbound links."""
    resp = await fetch_html(client, url, settings.page_timeout)
    if resp is None:
        return None

    try:
        soup = BeautifulSoup(resp.text, "html.parser")
        title = page_title(soup)
        links = extract_links(soup, str(resp.url))
        text = extract_text(soup)
    except Exception as e:
        logger.warning("[SCRAPER] Could not parse %s: %s", url, e)
        return None

    return PageContent(url=str(resp.url), title=title, text=text, links=links)
