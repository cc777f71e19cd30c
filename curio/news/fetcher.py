"""Run-level feed aggregation.

Resolves every configured source concurrently, normalizes and scores the
entries, then hands the heuristic list to the AI personalization pipeline
(with one adaptive crawl pass) before delivering the ranked feed.
"""

import asyncio
import dataclasses
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Optional

import httpx

from ..agents.curator import CuratorAgent
from ..config.settings import settings
from ..personalize import AdaptiveCrawler, PersonalizationPipeline, PersonalizationResult
from ..storage import PreferenceStore
from ..utils.cost_tracker import PipelineCosts
from .extractors import normalize_url
from .models import Article, Source
from .normalizer import dedupe_by_url, normalize_result
from .resolver import SourceResolver

logger = logging.getLogger(__name__)


class FeedAggregator:
    """
    Builds the ranked feed for one user.

    Every source resolves on its own task; a failing source contributes
    nothing. AI stages only ever reorder, annotate or drop articles and fall
    back to the heuristic ranking when the model is unavailable.
    """

    def __init__(
        self,
        store: PreferenceStore,
        curator: Optional[CuratorAgent] = None,
        client: Optional[httpx.AsyncClient] = None,
        use_ai: bool = True,
        max_articles: Optional[int] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            store: Preference store read for sites and scoring, written by
                the AI stages
            curator: LLM collaborator (default: a CuratorAgent from settings)
            client: Shared HTTP client; one is opened per run when omitted
            use_ai: Skip every AI stage when False
            max_articles: Delivery cap (default: settings.max_articles)
        """
        self.store = store
        self.use_ai = use_ai
        self.client = client
        self.max_articles = max_articles or settings.max_articles
        self.curator = curator
        if self.curator is None and use_ai:
            self.curator = CuratorAgent()
        self.costs: PipelineCosts = self.curator.costs if self.curator is not None else PipelineCosts()

    async def fetch_all_articles(self) -> list[Article]:
        """
        Fetch, score and personalize articles from all unblocked sources.

        Returns:
            At most max_articles articles, highest score first
        """
        if self.client is not None:
            return await self._run(self.client)
        async with httpx.AsyncClient() as client:
            return await self._run(client)

    def fetch_sync(self) -> list[Article]:
        """Synchronous wrapper for fetch_all_articles()."""
        return asyncio.run(self.fetch_all_articles())

    async def _run(self, client: httpx.AsyncClient) -> list[Article]:
        sources = [s for s in self.store.get_sites() if not s.blocked]
        logger.info("[FETCHER] Resolving %d sources", len(sources))

        articles = await self._collect(client, sources)
        random.shuffle(articles)

        if self.use_ai and self.curator is not None and articles:
            articles = await self._personalize(client, articles)

        ranked = sorted(articles, key=lambda a: a.score, reverse=True)[: self.max_articles]
        if self.costs.total_calls():
            logger.info(
                "[AI] Run used %d LLM calls, $%.4f",
                self.costs.total_calls(),
                self.costs.total_cost(),
            )
        logger.info("[FETCHER] Delivering %d articles", len(ranked))
        return ranked

    async def _collect(self, client: httpx.AsyncClient, sources: list[Source]) -> list[Article]:
        prefs = self.store.get_preferences()
        resolver = SourceResolver(client)
        salt = uuid.uuid4().hex
        now = datetime.now(timezone.utc)

        async def one(source: Source) -> list[Article]:
            result = await resolver.resolve(source)
            if not result.ok:
                return []
            return await normalize_result(result, prefs, client=client, now=now, salt=salt)

        results = await asyncio.gather(*(one(s) for s in sources), return_exceptions=True)

        articles = []
        failed = 0
        for source, batch in zip(sources, results):
            if isinstance(batch, BaseException):
                logger.error("[FETCHER] %s failed: %s", source.url, batch)
                failed += 1
                continue
            if not batch:
                failed += 1
            articles.extend(a for a in batch if a.id and a.url)

        logger.info(
            "[FETCHER] Fetched %d articles from %d sources (%d empty or failed)",
            len(articles),
            len(sources) - failed,
            failed,
        )
        return dedupe_by_url(articles)

    async def _personalize(self, client: httpx.AsyncClient, articles: list[Article]) -> list[Article]:
        pipeline = PersonalizationPipeline(self.store, self.curator)
        first = await pipeline.run(articles)
        if not first.ai_applied:
            return first.articles

        return await self._adaptive_pass(client, pipeline, articles, first)

    async def _adaptive_pass(
        self,
        client: httpx.AsyncClient,
        pipeline: PersonalizationPipeline,
        articles: list[Article],
        first: PersonalizationResult,
    ) -> list[Article]:
        crawler = AdaptiveCrawler(client, self.curator)
        known = {normalize_url(a.url) for a in articles}
        crawl = await crawler.crawl(first.good, first.rubric, known_urls=known)
        if not crawl.found_anything:
            return first.articles

        enriched = [
            dataclasses.replace(a, full_text=crawl.full_texts[a.id]) if a.id in crawl.full_texts else a
            for a in articles
        ]
        logger.info(
            "[CRAWL] Re-running pipeline with %d new full texts and %d discovery stubs",
            len(crawl.full_texts),
            len(crawl.stubs),
        )
        second = await pipeline.run(enriched + crawl.stubs)
        return second.articles
