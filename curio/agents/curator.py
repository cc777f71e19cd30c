"""Curator agent: every question the ranking pipeline asks a language model.

Each method builds a prompt from a template, asks for JSON and converts the
answer into domain objects. Failure is always a neutral value (None or an
empty list), never an exception.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ..news.models import (
    TRIAGE_STATUSES,
    Article,
    ContentCard,
    InterestModel,
    MicroQuestion,
    ScoreExplanation,
    ScoringRubric,
)
from ..prompts import render
from .base_agent import BaseAgent

logger = logging.getLogger(__name__)

RUBRIC_VERSION = 4
CONTENT_CARD_MAX_CHARS = 4000
MAX_MICRO_QUESTIONS = 3
MAX_DISCOVERY_QUERIES = 5


@dataclass
class TriageVerdict:
    status: str = "maybe"
    flags: list[str] = field(default_factory=list)


@dataclass
class SemanticCluster:
    """Indices into the submitted title list."""

    canonical_idx: int
    member_indices: list[int]


@dataclass
class LinkCandidate:
    """An outbound link plus the text around it."""

    url: str
    context: str


class CuratorAgent(BaseAgent):
    """LLM collaborator for rubric, triage, scoring, clustering, crawl planning and learning."""

    async def generate_rubric(
        self,
        interest_model: InterestModel,
        categories: list[str],
    ) -> Optional[ScoringRubric]:
        prompt = render(
            "rubric",
            stable_preferences=interest_model.stable_preferences,
            session_intent=interest_model.session_intent,
            categories=", ".join(categories),
            version=str(RUBRIC_VERSION),
        )
        data = await self._complete_json("rubric", prompt)
        if data is None:
            return None

        data["generated_at"] = datetime.now(timezone.utc)
        data.setdefault("version", RUBRIC_VERSION)
        try:
            rubric = ScoringRubric.from_dict(data)
        except (AttributeError, TypeError, ValueError) as e:
            logger.error("[AI] Unusable rubric: %s", e)
            return None

        logger.info(
            "[AI] Generated rubric v%d with %d topic weights",
            rubric.version,
            len(rubric.topic_weights),
        )
        return rubric

    async def triage(self, batch: list[Article], rubric: ScoringRubric) -> Optional[list[TriageVerdict]]:
        """
        Classify a batch as reject / maybe / good from title and summary only.

        Returns:
            One verdict per article in batch order (missing ones are "maybe"),
            or None if the call failed
        """
        lines = "\n".join(
            f"{idx}: T:{a.title} | D:{a.summary or ''}" for idx, a in enumerate(batch)
        )
        prompt = render("triage", rubric=_rubric_json(rubric), articles=lines)
        data = await self._complete_json("triage", prompt)
        if data is None:
            return None

        by_idx = {}
        for item in _as_list(data.get("results")):
            if not isinstance(item, dict) or not isinstance(item.get("idx"), int):
                continue
            status = item.get("status")
            flags = _as_list(item.get("flags"))
            by_idx[item["idx"]] = TriageVerdict(
                status=status if status in TRIAGE_STATUSES else "maybe",
                flags=[str(f) for f in flags],
            )
        return [by_idx.get(idx, TriageVerdict()) for idx in range(len(batch))]

    async def extract_content_card(self, full_text: str) -> Optional[ContentCard]:
        if not full_text:
            return None
        prompt = render("content_card", text=full_text[:CONTENT_CARD_MAX_CHARS])
        data = await self._complete_json("content_card", prompt)
        if data is None:
            return None
        try:
            return ContentCard.from_dict(data)
        except (AttributeError, TypeError) as e:
            logger.warning("[AI] Malformed content card: %s", e)
            return None

    async def score_batch(
        self,
        batch: list[Article],
        rubric: ScoringRubric,
    ) -> Optional[dict[int, ScoreExplanation]]:
        """
        Detailed multi-dimension scoring of up to ten articles.

        Returns:
            Mapping of batch index to its explanation (unscored indices are
            absent), or None if the call failed
        """
        blocks = []
        for idx, a in enumerate(batch):
            desc = a.summary or ""
            if a.content_card:
                desc = (
                    f"[AI SUMMARY]: {'. '.join(a.content_card.summary)}\n"
                    f"[DEPTH]: {a.content_card.depth}"
                )
            blocks.append(f"{idx}: {a.title}\n{desc}\n[FLAGS]: {', '.join(a.seo_flags)}")

        prompt = render("scoring", rubric=_rubric_json(rubric), articles="\n---\n".join(blocks))
        data = await self._complete_json("scoring", prompt)
        if data is None:
            return None

        scores = {}
        for item in _as_list(data.get("scores")):
            if not isinstance(item, dict):
                continue
            idx = item.get("idx")
            if not isinstance(idx, int) or not 0 <= idx < len(batch):
                continue
            try:
                scores[idx] = ScoreExplanation(
                    overall=_clamp(item["overall"]),
                    topic_match=_clamp(item.get("topic_match", 0)),
                    novelty=_clamp(item.get("novelty", 0)),
                    depth=_clamp(item.get("depth", 0)),
                    credibility=_clamp(item.get("credibility", 0)),
                    junk_risk=_clamp(item.get("junk_risk", 0)),
                    why=[str(w) for w in _as_list(item.get("why"))],
                    filters_triggered=[str(f) for f in _as_list(item.get("filters_triggered"))],
                )
            except (KeyError, TypeError, ValueError):
                continue
        return scores

    async def detect_semantic_duplicates(self, titles: list[str]) -> Optional[list[SemanticCluster]]:
        if len(titles) < 2:
            return None

        lines = "\n".join(f"{i}: {t}" for i, t in enumerate(titles))
        data = await self._complete_json("dedup", render("dedup", titles=lines))
        if data is None:
            return None

        raw_clusters = data.get("clusters")
        if not isinstance(raw_clusters, list):
            logger.info("[AI] No clusters found in dedup response")
            return None

        clusters = []
        for raw in raw_clusters:
            if not isinstance(raw, dict):
                continue
            canonical = raw.get("canonical_idx")
            if not isinstance(canonical, int) or not 0 <= canonical < len(titles):
                continue
            members = [
                idx
                for idx in _as_list(raw.get("member_indices"))
                if isinstance(idx, int) and 0 <= idx < len(titles)
            ]
            clusters.append(SemanticCluster(canonical_idx=canonical, member_indices=members))
        return clusters

    async def plan_next_links(
        self,
        links: list[LinkCandidate],
        rubric: ScoringRubric,
        max_links: int = 5,
    ) -> list[str]:
        if not links:
            return []

        lines = "\n".join(f"{i}: [Context: {l.context}] URL: {l.url}" for i, l in enumerate(links))
        prompt = render(
            "plan_links",
            rubric=_rubric_json(rubric),
            links=lines,
            max_links=str(max_links),
        )
        data = await self._complete_json("plan_links", prompt)
        if data is None:
            return []

        planned = []
        for idx in _as_list(data.get("follow")):
            if isinstance(idx, int) and 0 <= idx < len(links) and links[idx].url not in planned:
                planned.append(links[idx].url)
        return planned

    async def generate_micro_questions(
        self,
        articles: list[Article],
        interest_model: InterestModel,
    ) -> list[MicroQuestion]:
        if not articles:
            return []

        topics = "\n".join(f"- {a.title} ({a.topic})" for a in articles)
        prompt = render(
            "micro_questions",
            stable_preferences=interest_model.stable_preferences,
            session_intent=interest_model.session_intent,
            topics=topics,
            max_questions=str(MAX_MICRO_QUESTIONS),
        )
        data = await self._complete_json("micro_questions", prompt)
        if data is None:
            return []

        questions = []
        for raw in _as_list(data.get("questions"))[:MAX_MICRO_QUESTIONS]:
            if not isinstance(raw, dict) or not raw.get("question"):
                continue
            options = [str(o) for o in _as_list(raw.get("options")) if o]
            if len(options) < 2:
                continue
            questions.append(
                MicroQuestion(
                    # Model-supplied ids are not trusted to be unique across runs
                    id=uuid.uuid4().hex[:12],
                    question=str(raw["question"]),
                    options=options,
                    context=str(raw.get("context") or ""),
                    topic=str(raw["topic"]) if raw.get("topic") else None,
                )
            )
        return questions

    async def refine_interest_model(
        self,
        model: InterestModel,
        question: MicroQuestion,
        answer: str,
    ) -> Optional[InterestModel]:
        prompt = render(
            "refine_interest",
            model=json.dumps(
                {
                    "stable_preferences": model.stable_preferences,
                    "session_intent": model.session_intent,
                }
            ),
            question=question.question,
            answer=answer,
            context=question.context,
        )
        data = await self._complete_json("refine_interest", prompt)
        if data is None:
            return None

        stable = data.get("stable_preferences")
        session = data.get("session_intent")
        if not isinstance(stable, str) or not isinstance(session, str):
            logger.warning("[AI] Refined interest model is missing fields")
            return None
        return InterestModel(stable_preferences=stable, session_intent=session)

    async def mutate_discovery_queries(self, rubric: ScoringRubric) -> list[str]:
        prompt = render(
            "discovery_queries",
            rubric=_rubric_json(rubric),
            max_queries=str(MAX_DISCOVERY_QUERIES),
        )
        data = await self._complete_json("discovery_queries", prompt)
        if data is None:
            return []
        return [str(q) for q in _as_list(data.get("queries")) if q][:MAX_DISCOVERY_QUERIES]


def _rubric_json(rubric: ScoringRubric) -> str:
    return json.dumps(rubric.to_dict())


def _clamp(value) -> float:
    return min(1.0, max(0.0, float(value)))


def _as_list(value) -> list:
    """Model output fields that should be arrays; anything else counts as empty."""
    return value if isinstance(value, list) else []
