import asyncio

import httpx

from curio.news.models import Source
from curio.news.resolver import MAX_SCRAPED_STUBS, SourceResolver, find_feed_link, scrape_articles

RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Example Blog</title>
<item><title>First post about parsers</title><link>https://blog.example/first</link>
<description>A first look at parser combinators</description>
<pubDate>Sun, 01 Jun 2025 10:00:00 GMT</pubDate></item>
<item><title>Second post about lexers</title><link>https://blog.example/second</link></item>
</channel></rss>"""

EMPTY_RSS = """<?xml version="1.0"?><rss version="2.0"><channel><title>Empty</title></channel></rss>"""

HTML_WITH_FEED = """<!DOCTYPE html><html><head><title>Blog</title>
<link rel="alternate" type="application/rss+xml" href="/feed.xml"></head>
<body><p>Welcome</p></body></html>"""


def _article_html(count):
    cards = "".join(
        f'<article><a href="/posts/{i}">A sufficiently long headline {i}</a>'
        f'<img src="/img/{i}.png"></article>'
        for i in range(count)
    )
    return f"<!DOCTYPE html><html><body>{cards}<article><a href='/x'>short</a></article></body></html>"


def _resolve(routes, url):
    def handler(request):
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await SourceResolver(client).resolve(Source(url=url, category="Tech"))

    return asyncio.run(run())


def test_direct_feed():
    result = _resolve({"https://blog.example/rss": RSS}, "https://blog.example/rss")
    assert result.strategy == "direct_feed"
    assert result.feed_title == "Example Blog"
    assert [e["link"] for e in result.entries] == [
        "https://blog.example/first",
        "https://blog.example/second",
    ]


def test_html_page_leads_to_discovered_feed():
    routes = {
        "https://blog.example/": HTML_WITH_FEED,
        "https://blog.example": HTML_WITH_FEED,
        "https://blog.example/feed.xml": RSS,
    }
    result = _resolve(routes, "https://blog.example/")
    assert result.strategy == "discovered_feed"
    assert len(result.entries) == 2
    assert result.attempts[:2] == ["direct_feed", "site_root"]


def test_empty_feed_falls_through_to_scrape():
    routes = {
        "https://news.example/rss": EMPTY_RSS,
        "https://news.example/": _article_html(3),
    }
    result = _resolve(routes, "https://news.example/rss")
    assert result.strategy == "html_scrape"
    assert len(result.entries) == 3
    assert result.entries[0]["link"] == "https://news.example/posts/0"
    assert result.entries[0]["image"] == {"href": "https://news.example/img/0.png"}


def test_scrape_is_capped_and_filters_short_titles():
    stubs = scrape_articles(_article_html(25), "https://news.example/")
    assert len(stubs) == MAX_SCRAPED_STUBS
    assert all(len(s["title"]) >= 10 for s in stubs)
    assert len({s["link"] for s in stubs}) == len(stubs)


def test_unreachable_source_yields_empty_result():
    result = _resolve({}, "https://down.example/feed")
    assert not result.ok
    assert result.strategy == "none"
    assert result.entries == []
    assert "html_scrape" in result.attempts


def test_find_feed_link_resolves_relative_href():
    assert find_feed_link(HTML_WITH_FEED, "https://blog.example/about/") == "https://blog.example/feed.xml"
    assert find_feed_link("<html><head></head></html>", "https://blog.example/") is None


def test_malformed_discovered_feed_url_falls_through_to_scrape():
    page = _article_html(2).replace(
        "<body>",
        '<head><link rel="alternate" type="application/rss+xml" href="https://news.example:feed/rss.xml"></head><body>',
    )
    result = _resolve({"https://news.example/": page}, "https://news.example/")
    assert result.strategy == "html_scrape"
    assert len(result.entries) == 2
    assert result.attempts == ["direct_feed", "site_root", "discovered_feed", "html_scrape"]
