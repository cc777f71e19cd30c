"""Data models for sources, articles and the personalization state."""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

TRIAGE_STATUSES = ("reject", "maybe", "good")


@dataclass
class Source:
    """A configured site; `url` doubles as the source id."""

    url: str
    category: str = "Uncategorized"
    blocked: bool = False


@dataclass
class ContentCard:
    """Structured extraction from an article's full text."""

    summary: list[str] = field(default_factory=list)
    claims: list[str] = field(default_factory=list)
    entities: dict[str, list[str]] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def depth(self) -> str:
        return str(self.metadata.get("depth", "unknown"))

    @classmethod
    def from_dict(cls, data: dict) -> "ContentCard":
        entities = data.get("entities")
        if not isinstance(entities, dict):
            entities = {}
        metadata = data.get("metadata")
        return cls(
            summary=_str_list(data.get("summary")),
            claims=_str_list(data.get("claims")),
            entities={
                str(k): [str(v) for v in vals]
                for k, vals in entities.items()
                if isinstance(vals, list)
            },
            metadata=dict(metadata) if isinstance(metadata, dict) else {},
        )


@dataclass
class ScoreExplanation:
    """Per-dimension breakdown returned by detailed scoring (all 0..1)."""

    overall: float
    topic_match: float = 0.0
    novelty: float = 0.0
    depth: float = 0.0
    credibility: float = 0.0
    junk_risk: float = 0.0
    why: list[str] = field(default_factory=list)
    filters_triggered: list[str] = field(default_factory=list)


@dataclass
class Article:
    """Normalized article flowing through the ranking pipeline."""

    id: str
    title: str
    url: str
    source_id: str
    source_name: str
    topic: str
    published_at: datetime
    score: float = 0.0
    image_url: Optional[str] = None
    summary: Optional[str] = None
    full_text: Optional[str] = None
    triage_status: Optional[str] = None
    seo_flags: list[str] = field(default_factory=list)
    content_card: Optional[ContentCard] = None
    canonical_id: Optional[str] = None
    similar_articles: Optional[list["Article"]] = None
    explanation: Optional[ScoreExplanation] = None
    is_discovery: bool = False

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        data = asdict(self)
        data["published_at"] = self.published_at.isoformat()
        if self.similar_articles is not None:
            data["similar_articles"] = [a.to_dict() for a in self.similar_articles]
        return data


@dataclass
class InterestModel:
    """Long-term preferences plus the current session's intent, free text."""

    stable_preferences: str = ""
    session_intent: str = ""


@dataclass
class ScoringRubric:
    """Scoring configuration generated from an InterestModel."""

    version: int
    generated_at: datetime
    topic_weights: dict[str, float] = field(default_factory=dict)
    novelty_preference: float = 0.5
    technical_depth_preference: float = 0.5
    instant_junk_rules: list[str] = field(default_factory=list)

    def is_fresh(self, max_age_hours: float, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return (now - self.generated_at).total_seconds() < max_age_hours * 3600

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "generated_at": self.generated_at.isoformat(),
            "topic_weights": dict(self.topic_weights),
            "novelty_preference": self.novelty_preference,
            "technical_depth_preference": self.technical_depth_preference,
            "instant_junk_rules": list(self.instant_junk_rules),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoringRubric":
        generated_at = data.get("generated_at")
        if isinstance(generated_at, str):
            generated_at = datetime.fromisoformat(generated_at)
        if not isinstance(generated_at, datetime):
            generated_at = datetime.now(timezone.utc)
        if generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=timezone.utc)

        raw_weights = data.get("topic_weights")
        weights = {}
        for topic, weight in (raw_weights.items() if isinstance(raw_weights, dict) else []):
            try:
                weights[str(topic)] = min(1.0, max(0.0, float(weight)))
            except (TypeError, ValueError):
                continue

        return cls(
            version=int(data.get("version", 1)),
            generated_at=generated_at,
            topic_weights=weights,
            novelty_preference=_unit(data.get("novelty_preference"), 0.5),
            technical_depth_preference=_unit(data.get("technical_depth_preference"), 0.5),
            instant_junk_rules=_str_list(data.get("instant_junk_rules")),
        )


@dataclass
class SourceReputation:
    """Running quality signal for one source."""

    pass_rate: float = 0.5
    avg_score: float = 50.0
    user_engagement: int = 0
    total_triaged: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "SourceReputation":
        if not isinstance(data, dict):
            return cls()
        return cls(
            pass_rate=_unit(data.get("pass_rate"), 0.5),
            avg_score=min(100.0, max(0.0, _number(data.get("avg_score"), 50.0))),
            user_engagement=max(0, int(_number(data.get("user_engagement"), 0))),
            total_triaged=max(0, int(_number(data.get("total_triaged"), 0))),
        )


@dataclass
class MicroQuestion:
    """A pending clarification question for the user."""

    id: str
    question: str
    options: list[str]
    context: str = ""
    topic: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> Optional["MicroQuestion"]:
        """None when the entry lacks an id, a question or two options."""
        options = _str_list(data.get("options"))
        if not data.get("id") or not data.get("question") or len(options) < 2:
            return None
        return cls(
            id=str(data["id"]),
            question=str(data["question"]),
            options=options,
            context=str(data.get("context") or ""),
            topic=str(data["topic"]) if data.get("topic") else None,
        )


@dataclass
class Preferences:
    """Everything the preference store persists between runs."""

    blocked_sites: list[str] = field(default_factory=list)
    demoted_sites: list[str] = field(default_factory=list)
    demoted_topics: list[str] = field(default_factory=list)
    site_scores: dict[str, float] = field(default_factory=dict)
    topic_scores: dict[str, float] = field(default_factory=dict)
    click_history: list[str] = field(default_factory=list)
    interest_model: InterestModel = field(default_factory=InterestModel)
    current_rubric: Optional[ScoringRubric] = None
    source_reputation: dict[str, SourceReputation] = field(default_factory=dict)
    pending_questions: list[MicroQuestion] = field(default_factory=list)
    discovery_queries: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["current_rubric"] = self.current_rubric.to_dict() if self.current_rubric else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        """Rebuild from stored JSON. Unknown keys are ignored and a damaged entry
        falls back to its default without discarding the rest."""
        rubric = None
        if isinstance(data.get("current_rubric"), dict):
            try:
                rubric = ScoringRubric.from_dict(data["current_rubric"])
            except (TypeError, ValueError):
                rubric = None

        model = data.get("interest_model")
        reputations = data.get("source_reputation")
        questions = [
            MicroQuestion.from_dict(q) for q in _list(data.get("pending_questions")) if isinstance(q, dict)
        ]
        return cls(
            blocked_sites=_str_list(data.get("blocked_sites")),
            demoted_sites=_str_list(data.get("demoted_sites")),
            demoted_topics=_str_list(data.get("demoted_topics")),
            site_scores=_score_map(data.get("site_scores")),
            topic_scores=_score_map(data.get("topic_scores")),
            click_history=_str_list(data.get("click_history")),
            interest_model=InterestModel(
                stable_preferences=str(model.get("stable_preferences") or ""),
                session_intent=str(model.get("session_intent") or ""),
            )
            if isinstance(model, dict)
            else InterestModel(),
            current_rubric=rubric,
            source_reputation={
                str(source_id): SourceReputation.from_dict(rep)
                for source_id, rep in (reputations.items() if isinstance(reputations, dict) else [])
            },
            pending_questions=[q for q in questions if q is not None],
            discovery_queries=_str_list(data.get("discovery_queries")),
        )


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _str_list(value: Any) -> list[str]:
    return [str(v) for v in _list(value) if v is not None]


def _score_map(value: Any) -> dict[str, float]:
    scores = {}
    for key, score in (value.items() if isinstance(value, dict) else []):
        try:
            number = float(score)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            scores[str(key)] = number
    return scores


def _number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _unit(value: Any, default: float) -> float:
    """Coerce to a float in [0, 1]."""
    try:
        return min(1.0, max(0.0, float(value)))
    except (TypeError, ValueError):
        return default
