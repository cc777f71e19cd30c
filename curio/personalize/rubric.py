"""Rubric lifecycle: reuse the cached rubric or generate a fresh one."""

import logging
from datetime import datetime
from typing import Optional

from ..agents.curator import CuratorAgent
from ..config.settings import settings
from ..news.models import ScoringRubric
from ..storage import PreferenceStore

logger = logging.getLogger(__name__)


async def resolve_rubric(
    store: PreferenceStore,
    curator: CuratorAgent,
    max_age_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Optional[ScoringRubric]:
    """
    Return a usable rubric, generating and caching one when needed.

    The cached rubric is reused while younger than `max_age_hours`; the
    store drops it whenever the interest model changes. A freshly generated
    rubric also refreshes the stored discovery queries.

    Returns:
        The rubric, or None when generation failed (AI stages are skipped)
    """
    max_age = settings.rubric_max_age_hours if max_age_hours is None else max_age_hours
    prefs = store.get_preferences()

    cached = prefs.current_rubric
    if cached is not None and cached.is_fresh(max_age, now):
        logger.info("[RUBRIC] Reusing cached rubric from %s", cached.generated_at.isoformat())
        return cached

    rubric = await curator.generate_rubric(prefs.interest_model, store.get_categories())
    if rubric is None:
        logger.warning("[RUBRIC] No rubric available, skipping AI stages")
        return None

    store.save_rubric(rubric)

    queries = await curator.mutate_discovery_queries(rubric)
    if queries:
        store.save_discovery_queries(queries)
        logger.info("[RUBRIC] Stored %d discovery queries", len(queries))

    return rubric
