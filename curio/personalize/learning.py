"""Active learning: ask micro-questions and fold the answers into the interest model."""

import logging
from typing import Optional

from ..agents.curator import CuratorAgent
from ..news.models import Article, InterestModel, MicroQuestion
from ..storage import PreferenceStore

logger = logging.getLogger(__name__)

QUESTION_MIN_STORIES = 20
QUESTION_SAMPLE_SIZE = 10


async def propose_questions(
    store: PreferenceStore,
    curator: CuratorAgent,
    stories: list[Article],
) -> list[MicroQuestion]:
    """Queue clarification questions when the feed is large enough to learn from."""
    if len(stories) <= QUESTION_MIN_STORIES:
        return []

    top = sorted(stories, key=lambda a: a.score, reverse=True)[:QUESTION_SAMPLE_SIZE]
    questions = await curator.generate_micro_questions(top, store.get_preferences().interest_model)
    if not questions:
        return []

    store.push_questions(questions)
    logger.info("[LEARNING] Queued %d micro-questions", len(questions))
    return questions


async def answer_question(
    store: PreferenceStore,
    curator: CuratorAgent,
    question_id: str,
    answer: str,
) -> Optional[InterestModel]:
    """
    Refine the interest model from the user's answer.

    The question is consumed only when refinement succeeds, so a failed
    model call leaves it in the queue to be answered again.

    Returns:
        The new interest model, or None if the question is unknown or
        refinement failed
    """
    question = store.get_question(question_id)
    if question is None:
        logger.warning("[LEARNING] Unknown question %s", question_id)
        return None

    model = store.get_preferences().interest_model
    refined = await curator.refine_interest_model(model, question, answer)
    if refined is None:
        return None

    store.take_question(question_id)
    store.set_interest_model(refined)
    return refined
