"""AI personalization pipeline.

Stage order is a strict dependency chain:

    rubric -> triage -> stratified selection -> content cards
           -> detailed scoring -> reputation -> semantic dedup -> active learning

Every stage degrades to passing its input through. With no rubric the
heuristic ranking is returned untouched.
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from ..agents.curator import CuratorAgent
from ..news.models import Article, ScoringRubric
from ..storage import PreferenceStore
from .dedup import apply_clusters
from .learning import propose_questions
from .reputation import apply_reputation, record_feedback
from .rubric import resolve_rubric
from .selection import stratified_candidates

logger = logging.getLogger(__name__)

TRIAGE_BATCH_SIZE = 50
SCORING_BATCH_SIZE = 10


@dataclass
class PersonalizationResult:
    """Output of one pipeline pass."""

    articles: list[Article]
    rubric: Optional[ScoringRubric] = None
    ai_applied: bool = False
    timings: dict = field(default_factory=dict)

    @property
    def good(self) -> list[Article]:
        return [a for a in self.articles if a.triage_status == "good"]


def _batches(items: list, size: int) -> list[list]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class PersonalizationPipeline:
    """Runs the AI stages over heuristic-scored articles."""

    def __init__(self, store: PreferenceStore, curator: CuratorAgent):
        self.store = store
        self.curator = curator

    async def run(self, articles: list[Article]) -> PersonalizationResult:
        """
        Personalize one set of articles.

        Works on copies: the caller's articles keep their heuristic scores
        and can be fed through the pipeline again.
        """
        timings = {}
        t0 = time.time()

        rubric = await resolve_rubric(self.store, self.curator)
        timings["rubric"] = round(time.time() - t0, 2)
        if rubric is None or not articles:
            return PersonalizationResult(articles=list(articles), rubric=rubric, timings=timings)

        working = [copy.copy(a) for a in articles]

        # 1. Triage (metadata only)
        t1 = time.time()
        await self._triage(working, rubric)
        pool = [a for a in working if a.triage_status != "reject"]
        rejected = [a for a in working if a.triage_status == "reject"]
        timings["triage"] = round(time.time() - t1, 2)
        logger.info("[AI] Triage complete. Pool size: %d (rejected %d)", len(pool), len(rejected))

        if not pool:
            logger.warning("[AI] All articles rejected by triage, returning pre-triage pool")
            return PersonalizationResult(articles=list(articles), rubric=rubric, timings=timings)

        # 2. Stratified selection
        candidates, passive = stratified_candidates(pool)
        logger.info("[AI] Stratified candidates: %d. Passive feed: %d", len(candidates), len(passive))

        # 3. Content cards for candidates with full text
        t2 = time.time()
        await self._extract_cards(candidates)
        timings["content_cards"] = round(time.time() - t2, 2)

        # 4. Detailed scoring
        t3 = time.time()
        await self._score(candidates, rubric)
        timings["scoring"] = round(time.time() - t3, 2)

        # 5. Reputation adjustment, then the feedback write
        scored = candidates + passive
        apply_reputation(scored, self.store.get_preferences().source_reputation)
        record_feedback(self.store, scored, rejected)

        # 6. Semantic dedup
        t4 = time.time()
        clusters = await self.curator.detect_semantic_duplicates([a.title for a in scored])
        stories = apply_clusters(scored, clusters)
        timings["dedup"] = round(time.time() - t4, 2)

        # 7. Active learning
        await propose_questions(self.store, self.curator, stories)

        timings["total"] = round(time.time() - t0, 2)
        return PersonalizationResult(articles=stories, rubric=rubric, ai_applied=True, timings=timings)

    async def _triage(self, articles: list[Article], rubric: ScoringRubric) -> None:
        batches = _batches(articles, TRIAGE_BATCH_SIZE)
        verdicts = await asyncio.gather(
            *(self.curator.triage(batch, rubric) for batch in batches),
            return_exceptions=True,
        )
        for batch, batch_verdicts in zip(batches, verdicts):
            if not isinstance(batch_verdicts, list):
                if isinstance(batch_verdicts, BaseException):
                    logger.error("[TRIAGE] Batch failed: %s", batch_verdicts)
                for article in batch:
                    article.triage_status = "maybe"
                continue
            for article, verdict in zip(batch, batch_verdicts):
                article.triage_status = verdict.status
                article.seo_flags = list(verdict.flags)

    async def _extract_cards(self, candidates: list[Article]) -> None:
        targets = [a for a in candidates if a.full_text and a.content_card is None]
        if not targets:
            return
        cards = await asyncio.gather(
            *(self.curator.extract_content_card(a.full_text) for a in targets),
            return_exceptions=True,
        )
        extracted = 0
        for article, card in zip(targets, cards):
            if card is not None and not isinstance(card, BaseException):
                article.content_card = card
                extracted += 1
        logger.info("[AI] Content cards: %d of %d", extracted, len(targets))

    async def _score(self, candidates: list[Article], rubric: ScoringRubric) -> None:
        batches = _batches(candidates, SCORING_BATCH_SIZE)
        results = await asyncio.gather(
            *(self.curator.score_batch(batch, rubric) for batch in batches),
            return_exceptions=True,
        )
        scored = 0
        for batch, scores in zip(batches, results):
            if not isinstance(scores, dict):
                if isinstance(scores, BaseException):
                    logger.error("[AI] Scoring batch failed: %s", scores)
                continue
            for idx, explanation in scores.items():
                if 0 <= idx < len(batch):
                    batch[idx].score = explanation.overall * 100
                    batch[idx].explanation = explanation
                    scored += 1
        logger.info("[AI] Detailed scores for %d of %d candidates", scored, len(candidates))
