import copy
from datetime import datetime, timedelta, timezone

from curio.agents.curator import TriageVerdict
from curio.news.models import Article, InterestModel, MicroQuestion, ScoreExplanation, ScoringRubric
from curio.utils.cost_tracker import PipelineCosts

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_article(idx, source="https://a.example", score=50.0, title=None, hours_ago=1, topic="Tech", **kwargs):
    return Article(
        id=f"{source}/post-{idx}",
        title=title or f"Article number {idx} from {source}",
        url=f"{source}/post-{idx}",
        source_id=source,
        source_name=source.split("//")[-1],
        topic=topic,
        published_at=NOW - timedelta(hours=hours_ago),
        score=score,
        **kwargs,
    )


class FakeCurator:
    """Deterministic stand-in for CuratorAgent; every hook is overridable."""

    def __init__(self, rubric=True, triage_status="good", rejects=(), overall=None):
        self.costs = PipelineCosts()
        self.rubric_enabled = rubric
        self.triage_status = triage_status
        self.rejects = set(rejects)
        self.overall = overall
        self.clusters = None
        self.questions = []
        self.refined = None
        self.planned = []
        self.card = None
        self.scored_batches = []
        self.calls = {}

    def _count(self, name):
        self.calls[name] = self.calls.get(name, 0) + 1

    async def generate_rubric(self, interest_model, categories):
        self._count("generate_rubric")
        if not self.rubric_enabled:
            return None
        return ScoringRubric(version=4, generated_at=datetime.now(timezone.utc), topic_weights={"Tech": 0.8})

    async def mutate_discovery_queries(self, rubric):
        self._count("mutate_discovery_queries")
        return ["rust async runtimes"]

    async def triage(self, batch, rubric):
        self._count("triage")
        if self.triage_status is None:
            return None
        return [
            TriageVerdict(status="reject" if a.id in self.rejects else self.triage_status)
            for a in batch
        ]

    async def extract_content_card(self, full_text):
        self._count("extract_content_card")
        return self.card

    async def score_batch(self, batch, rubric):
        self._count("score_batch")
        self.scored_batches.append([copy.copy(a) for a in batch])
        if self.overall is None:
            return None
        return {idx: ScoreExplanation(overall=self.overall(a)) for idx, a in enumerate(batch)}

    async def detect_semantic_duplicates(self, titles):
        self._count("detect_semantic_duplicates")
        return self.clusters

    async def plan_next_links(self, links, rubric, max_links=5):
        self._count("plan_next_links")
        return list(self.planned)

    async def generate_micro_questions(self, articles, interest_model):
        self._count("generate_micro_questions")
        return list(self.questions)

    async def refine_interest_model(self, model, question, answer):
        self._count("refine_interest_model")
        return self.refined


def make_question(qid="q1"):
    return MicroQuestion(id=qid, question="More systems or more ML?", options=["Systems", "ML"])


def refined_model():
    return InterestModel(stable_preferences="systems programming", session_intent="rust")
