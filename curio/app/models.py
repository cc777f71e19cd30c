"""Pydantic request/response models for the web API."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..news.models import Article, MicroQuestion


class CamelModel(BaseModel):
    """Serializes with camelCase keys, the shape the feed UI reads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContentCardOut(CamelModel):
    summary: list[str] = []
    claims: list[str] = []
    entities: dict[str, list[str]] = {}
    metadata: dict[str, Any] = {}


class ScoreExplanationOut(CamelModel):
    overall: float
    topic_match: float = 0.0
    novelty: float = 0.0
    depth: float = 0.0
    credibility: float = 0.0
    junk_risk: float = 0.0
    why: list[str] = []
    filters_triggered: list[str] = []


class ArticleOut(CamelModel):
    """One ranked article as delivered to the UI."""

    id: str
    title: str
    url: str
    source_id: str
    source_name: str
    topic: str
    published_at: datetime
    score: float
    image_url: Optional[str] = None
    summary: Optional[str] = None
    triage_status: Optional[str] = None
    seo_flags: list[str] = []
    content_card: Optional[ContentCardOut] = None
    canonical_id: Optional[str] = None
    similar_articles: Optional[list["ArticleOut"]] = None
    explanation: Optional[ScoreExplanationOut] = None
    is_discovery: bool = False

    @classmethod
    def from_article(cls, article: Article) -> "ArticleOut":
        data = article.to_dict()
        data.pop("full_text", None)
        return cls.model_validate(data)


class ActionRequest(BaseModel):
    """Request body for POST /api/feeds."""

    action: str
    payload: dict[str, Any] = {}


class ActionResponse(BaseModel):
    success: bool


class QuestionOut(CamelModel):
    id: str
    question: str
    options: list[str]
    context: str = ""
    topic: Optional[str] = None

    @classmethod
    def from_question(cls, question: MicroQuestion) -> "QuestionOut":
        return cls(
            id=question.id,
            question=question.question,
            options=question.options,
            context=question.context,
            topic=question.topic,
        )
