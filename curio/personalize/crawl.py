"""Adaptive crawl: read the best articles, follow the links worth following."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import httpx

from ..agents.curator import CuratorAgent, LinkCandidate
from ..news.extractors import normalize_url
from ..news.models import Article, ScoringRubric
from ..news.scraper import PageContent, fetch_article_page

logger = logging.getLogger(__name__)

MAX_DISCOVERY_HOPS = 1
MAX_CRAWL_SEEDS = 10
MAX_FOLLOWED_LINKS = 5
MAX_LINK_CANDIDATES = 60
DISCOVERY_BASELINE_SCORE = 50.0


@dataclass
class CrawlResult:
    """Full text fetched for seed articles (by article id) and new discovery stubs."""

    full_texts: dict[str, str] = field(default_factory=dict)
    stubs: list[Article] = field(default_factory=list)

    @property
    def found_anything(self) -> bool:
        return bool(self.full_texts or self.stubs)


class AdaptiveCrawler:
    """One discovery hop out from the triage-approved articles."""

    def __init__(self, client: httpx.AsyncClient, curator: CuratorAgent):
        self.client = client
        self.curator = curator

    async def crawl(
        self,
        good_articles: list[Article],
        rubric: ScoringRubric,
        known_urls: Optional[set[str]] = None,
        now: Optional[datetime] = None,
    ) -> CrawlResult:
        """
        Fetch seed pages, let the curator pick outbound links, fetch those.

        Args:
            good_articles: Triage-approved articles; only the first
                MAX_CRAWL_SEEDS are read
            rubric: Rubric the link planner judges against
            known_urls: Normalized URLs already in the feed, never re-added
            now: Timestamp for discovery stubs

        Returns:
            CrawlResult with full text per seed id and title-only stubs
        """
        result = CrawlResult()
        seeds = [a for a in good_articles if a.url][:MAX_CRAWL_SEEDS]
        if not seeds:
            return result

        now = now or datetime.now(timezone.utc)
        known = set(known_urls or ())
        known.update(normalize_url(a.url) for a in seeds)

        pages = await self._fetch_pages([a.url for a in seeds])
        candidates: list[LinkCandidate] = []
        origin: dict[str, Article] = {}

        for seed, page in zip(seeds, pages):
            if page is None:
                continue
            if page.text and not seed.full_text:
                result.full_texts[seed.id] = page.text
            for link in page.links:
                key = normalize_url(link.url)
                if key in known or link.url in origin:
                    continue
                origin[link.url] = seed
                candidates.append(LinkCandidate(url=link.url, context=link.context))

        logger.info(
            "[CRAWL] Read %d of %d seed pages, %d outbound links",
            len(result.full_texts),
            len(seeds),
            len(candidates),
        )

        for _hop in range(MAX_DISCOVERY_HOPS):
            if not candidates:
                break
            planned = await self.curator.plan_next_links(
                candidates[:MAX_LINK_CANDIDATES], rubric, max_links=MAX_FOLLOWED_LINKS
            )
            planned = [url for url in planned if url in origin][:MAX_FOLLOWED_LINKS]
            if not planned:
                logger.info("[CRAWL] Nothing worth following")
                break

            followed = await self._fetch_pages(planned)
            for url, page in zip(planned, followed):
                if page is None or not page.title:
                    continue
                key = normalize_url(page.url)
                if key in known:
                    continue
                known.add(key)
                result.stubs.append(_discovery_stub(page, origin[url], now))
            candidates = []

        logger.info("[CRAWL] %d discovery stubs", len(result.stubs))
        return result

    async def _fetch_pages(self, urls: list[str]) -> list[Optional[PageContent]]:
        pages = await asyncio.gather(
            *(fetch_article_page(self.client, url) for url in urls),
            return_exceptions=True,
        )
        fetched = []
        for url, page in zip(urls, pages):
            if isinstance(page, BaseException):
                logger.warning("[CRAWL] Fetch failed for %s: %s", url, page)
                page = None
            fetched.append(page)
        return fetched


def _discovery_stub(page: PageContent, origin: Article, now: datetime) -> Article:
    return Article(
        id=page.url,
        title=page.title,
        url=page.url,
        source_id=origin.source_id,
        source_name=origin.source_name,
        topic=origin.topic,
        published_at=now,
        score=DISCOVERY_BASELINE_SCORE,
        is_discovery=True,
    )
