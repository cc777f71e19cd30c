"""Fold same-story clusters into their canonical article."""

import logging
from typing import Optional

from ..agents.curator import SemanticCluster
from ..news.models import Article

logger = logging.getLogger(__name__)


def apply_clusters(articles: list[Article], clusters: Optional[list[SemanticCluster]]) -> list[Article]:
    """
    Keep one canonical article per cluster with the others as its similar_articles.

    Output order is stable: a canonical article takes the position of its
    cluster's first member, unclustered articles keep theirs. An index that
    already belongs to an earlier cluster is not reassigned. Never returns
    an empty list for non-empty input.
    """
    if not clusters:
        return articles

    owner: dict[int, int] = {}
    members_of: dict[int, list[int]] = {}
    for cluster in clusters:
        head = cluster.canonical_idx
        if head in owner:
            continue
        members = [
            idx
            for idx in dict.fromkeys(cluster.member_indices)
            if idx != head and idx not in owner
        ]
        owner[head] = head
        for idx in members:
            owner[idx] = head
        members_of[head] = members

    unique: list[Article] = []
    emitted: set[int] = set()
    for idx, article in enumerate(articles):
        head = owner.get(idx)
        if head is None:
            unique.append(article)
            continue
        if head in emitted:
            continue
        emitted.add(head)

        canonical = articles[head]
        similar = [articles[i] for i in members_of[head]]
        for member in similar:
            member.canonical_id = canonical.id
        canonical.similar_articles = similar or None
        unique.append(canonical)

    if not unique:
        return articles

    logger.info("[DEDUP] %d articles folded into %d stories", len(articles), len(unique))
    return unique
