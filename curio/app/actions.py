"""User actions posted by the feed UI.

Each action mutates preference state through the store and reports whether
it took effect. An unrecognized action name is the only client error the
dispatcher raises on its own; a known action missing a required payload
field raises InvalidPayloadError.
"""

import logging
from typing import Any, Optional

from ..agents.curator import CuratorAgent
from ..personalize import answer_question
from ..storage import PreferenceStore

logger = logging.getLogger(__name__)

CLICK_SITE_DELTA = 1.0
CLICK_TOPIC_DELTA = 0.5
DEMOTE_DELTA = -5.0


class UnknownActionError(ValueError):
    """Raised for an action name the dispatcher does not handle."""


class InvalidPayloadError(ValueError):
    """Raised when a known action is missing a required payload field."""


def _require(payload: dict, action: str, *keys: str) -> list[Any]:
    values = []
    for key in keys:
        value = payload.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidPayloadError(f"{action}: missing '{key}'")
        values.append(value)
    return values


async def dispatch_action(
    store: PreferenceStore,
    action: str,
    payload: Optional[dict] = None,
    curator: Optional[CuratorAgent] = None,
) -> bool:
    """
    Apply one user action.

    Payload keys follow the web client: `siteUrl`, `topic`, `articleId`,
    `url`, `category`, `questionId`, `answer`.

    Returns:
        True if the action changed state
    """
    payload = payload or {}

    if action == "click":
        site_url, topic = _require(payload, action, "siteUrl", "topic")
        store.update_site_score(site_url, CLICK_SITE_DELTA)
        store.update_topic_score(topic, CLICK_TOPIC_DELTA)
        article_id = payload.get("articleId")
        if article_id:
            store.record_click(article_id, site_url)
        return True

    if action == "block-site":
        (site_url,) = _require(payload, action, "siteUrl")
        blocked = store.toggle_blocked_site(site_url)
        logger.info("[ACTION] %s %s", "Blocked" if blocked else "Unblocked", site_url)
        return True

    if action == "demote-site":
        (site_url,) = _require(payload, action, "siteUrl")
        if store.demote_site(site_url):
            store.update_site_score(site_url, DEMOTE_DELTA)
            logger.info("[ACTION] Demoted site %s", site_url)
        return True

    if action == "demote-topic":
        (topic,) = _require(payload, action, "topic")
        if store.demote_topic(topic):
            store.update_topic_score(topic, DEMOTE_DELTA)
            logger.info("[ACTION] Demoted topic %s", topic)
        return True

    if action == "add-site":
        (url,) = _require(payload, action, "url")
        return store.add_site(url, payload.get("category") or "")

    if action == "answer-question":
        question_id, answer = _require(payload, action, "questionId", "answer")
        if curator is None:
            curator = CuratorAgent()
        refined = await answer_question(store, curator, question_id, answer)
        return refined is not None

    raise UnknownActionError(f"Invalid action: {action}")
