"""Source reputation: adjust scores from history, then feed results back."""

import logging

from ..news.models import Article, SourceReputation
from ..storage import PreferenceStore

logger = logging.getLogger(__name__)

HIGH_PASS_RATE = 0.8
LOW_PASS_RATE = 0.3
HIGH_PASS_BOOST = 1.1
LOW_PASS_PENALTY = 0.7
CURRENT_WEIGHT = 0.9
HISTORY_WEIGHT = 0.1
DIVERSITY_FREE_PER_SOURCE = 3
DIVERSITY_PENALTY = 0.8


def apply_reputation(articles: list[Article], reputations: dict[str, SourceReputation]) -> None:
    """
    Adjust scores in place, in the order given.

    Known sources: x1.1 above an 0.8 pass rate, x0.7 below 0.3, then a
    90/10 blend with the source's historical average score. Every article
    after the third from the same source is multiplied by 0.8.
    """
    seen: dict[str, int] = {}
    for article in articles:
        rep = reputations.get(article.source_id)
        if rep is not None:
            if rep.pass_rate > HIGH_PASS_RATE:
                article.score *= HIGH_PASS_BOOST
            elif rep.pass_rate < LOW_PASS_RATE:
                article.score *= LOW_PASS_PENALTY
            article.score = article.score * CURRENT_WEIGHT + rep.avg_score * HISTORY_WEIGHT

        count = seen.get(article.source_id, 0)
        if count >= DIVERSITY_FREE_PER_SOURCE:
            article.score *= DIVERSITY_PENALTY
        seen[article.source_id] = count + 1


def record_feedback(store: PreferenceStore, kept: list[Article], rejected: list[Article]) -> None:
    """Write one reputation observation per article; rejected ones count as failures scoring 0."""
    observations = [(a.source_id, True, a.score) for a in kept]
    observations += [(a.source_id, False, 0.0) for a in rejected]
    store.update_source_reputations(observations)
    logger.info(
        "[REPUTATION] Recorded %d passes and %d rejections",
        len(kept),
        len(rejected),
    )
