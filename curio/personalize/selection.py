"""Stratified candidate selection for detailed scoring."""

from ..news.models import Article

PER_SOURCE_MINIMUM = 2
CANDIDATE_CAP = 100


def stratified_candidates(
    pool: list[Article],
    per_source: int = PER_SOURCE_MINIMUM,
    cap: int = CANDIDATE_CAP,
) -> tuple[list[Article], list[Article]]:
    """
    Pick the articles that get expensive detailed scoring.

    Every source first contributes its top `per_source` articles by score,
    then the remaining slots up to `cap` go to the globally highest scored
    leftovers. When there are more sources than the cap allows, each
    source's best article is placed before any source's second best.

    Returns:
        (candidates, passive) where passive keeps the pool's order
    """
    groups: dict[str, list[Article]] = {}
    for article in pool:
        groups.setdefault(article.source_id, []).append(article)

    ranked = [sorted(group, key=lambda a: a.score, reverse=True) for group in groups.values()]

    chosen: list[Article] = []
    chosen_ids: set[int] = set()

    def take(article: Article) -> None:
        chosen.append(article)
        chosen_ids.add(id(article))

    for rank in range(per_source):
        tier = [group[rank] for group in ranked if len(group) > rank]
        for article in sorted(tier, key=lambda a: a.score, reverse=True):
            if len(chosen) >= cap:
                break
            take(article)

    remaining = sorted(
        (a for a in pool if id(a) not in chosen_ids),
        key=lambda a: a.score,
        reverse=True,
    )
    for article in remaining[: max(0, cap - len(chosen))]:
        take(article)

    passive = [a for a in pool if id(a) not in chosen_ids]
    return chosen, passive
