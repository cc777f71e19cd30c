import asyncio

from curio.agents.curator import CuratorAgent, LinkCandidate
from curio.news.models import InterestModel, ScoringRubric

from helpers import NOW, make_article, make_question


def _agent(monkeypatch, response):
    agent = CuratorAgent(enabled=True)
    prompts = []

    async def fake_complete(stage, prompt, user_content=None):
        prompts.append((stage, prompt))
        return response

    monkeypatch.setattr(agent, "_complete_json", fake_complete)
    agent.prompts = prompts
    return agent


RUBRIC = ScoringRubric(version=4, generated_at=NOW)


def test_disabled_agent_returns_neutral_values():
    agent = CuratorAgent(enabled=False)
    assert asyncio.run(agent.generate_rubric(InterestModel(), ["Tech"])) is None
    assert asyncio.run(agent.triage([make_article(1)], RUBRIC)) is None
    assert asyncio.run(agent.plan_next_links([LinkCandidate("https://x.example", "ctx")], RUBRIC)) == []
    assert asyncio.run(agent.generate_micro_questions([make_article(1)], InterestModel())) == []


def test_generate_rubric_clamps_weights(monkeypatch):
    agent = _agent(
        monkeypatch,
        {"topic_weights": {"Tech": 1.7, "Crypto": -1, "Bad": "x"}, "novelty_preference": 0.8},
    )
    rubric = asyncio.run(agent.generate_rubric(InterestModel("systems", "rust"), ["Tech", "Crypto"]))
    assert rubric.version == 4
    assert rubric.topic_weights == {"Tech": 1.0, "Crypto": 0.0}
    assert rubric.novelty_preference == 0.8
    assert "Tech, Crypto" in agent.prompts[0][1]


def test_triage_missing_items_default_to_maybe(monkeypatch):
    agent = _agent(
        monkeypatch,
        {"results": [{"idx": 0, "status": "reject", "flags": ["clickbait"]}, {"idx": 2, "status": "bogus"}]},
    )
    verdicts = asyncio.run(agent.triage([make_article(i) for i in range(3)], RUBRIC))
    assert [v.status for v in verdicts] == ["reject", "maybe", "maybe"]
    assert verdicts[0].flags == ["clickbait"]


def test_score_batch_skips_malformed_items(monkeypatch):
    agent = _agent(
        monkeypatch,
        {
            "scores": [
                {"idx": 0, "overall": 0.82, "novelty": 2, "why": ["original benchmark"]},
                {"idx": 1},
                {"idx": 9, "overall": 0.5},
            ]
        },
    )
    scores = asyncio.run(agent.score_batch([make_article(0), make_article(1)], RUBRIC))
    assert list(scores) == [0]
    assert scores[0].overall == 0.82
    assert scores[0].novelty == 1.0
    assert scores[0].why == ["original benchmark"]


def test_detect_duplicates_filters_out_of_range(monkeypatch):
    agent = _agent(
        monkeypatch,
        {"clusters": [{"canonical_idx": 0, "member_indices": [1, 7]}, {"canonical_idx": 5, "member_indices": [0]}]},
    )
    clusters = asyncio.run(agent.detect_semantic_duplicates(["a", "b", "c"]))
    assert len(clusters) == 1
    assert clusters[0].canonical_idx == 0
    assert clusters[0].member_indices == [1]


def test_plan_next_links_maps_indices(monkeypatch):
    agent = _agent(monkeypatch, {"follow": [1, 1, 5, 0]})
    links = [LinkCandidate("https://x.example/a", "a"), LinkCandidate("https://x.example/b", "b")]
    planned = asyncio.run(agent.plan_next_links(links, RUBRIC))
    assert planned == ["https://x.example/b", "https://x.example/a"]


def test_micro_questions_need_two_options(monkeypatch):
    agent = _agent(
        monkeypatch,
        {
            "questions": [
                {"question": "Deeper dives into databases?", "options": ["Yes", "No"], "topic": "Data"},
                {"question": "Only one option", "options": ["Yes"]},
            ]
        },
    )
    questions = asyncio.run(agent.generate_micro_questions([make_article(1)], InterestModel()))
    assert len(questions) == 1
    assert questions[0].options == ["Yes", "No"]
    assert questions[0].topic == "Data"
    assert questions[0].id


def test_refine_interest_model_requires_both_fields(monkeypatch):
    agent = _agent(monkeypatch, {"stable_preferences": "databases"})
    assert asyncio.run(agent.refine_interest_model(InterestModel(), make_question(), "Yes")) is None

    agent = _agent(monkeypatch, {"stable_preferences": "databases", "session_intent": "postgres"})
    refined = asyncio.run(agent.refine_interest_model(InterestModel(), make_question(), "Yes"))
    assert refined == InterestModel(stable_preferences="databases", session_intent="postgres")


def test_rubric_with_wrongly_typed_fields(monkeypatch):
    agent = _agent(monkeypatch, {"topic_weights": ["Tech", 0.9], "instant_junk_rules": "no listicles"})
    rubric = asyncio.run(agent.generate_rubric(InterestModel(), ["Tech"]))
    assert rubric.topic_weights == {}
    assert rubric.instant_junk_rules == []

    agent = _agent(monkeypatch, {"version": "four"})
    assert asyncio.run(agent.generate_rubric(InterestModel(), ["Tech"])) is None


def test_wrongly_typed_collections_read_as_empty(monkeypatch):
    articles = [make_article(0), make_article(1)]

    verdicts = asyncio.run(_agent(monkeypatch, {"results": {"0": "good"}}).triage(articles, RUBRIC))
    assert [v.status for v in verdicts] == ["maybe", "maybe"]

    verdicts = asyncio.run(
        _agent(monkeypatch, {"results": [{"idx": 0, "status": "good", "flags": "seo"}]}).triage(articles, RUBRIC)
    )
    assert verdicts[0].status == "good"
    assert verdicts[0].flags == []

    scores = asyncio.run(
        _agent(monkeypatch, {"scores": [{"idx": 0, "overall": 0.7, "why": 3, "filters_triggered": "x"}]}).score_batch(
            articles, RUBRIC
        )
    )
    assert scores[0].why == [] and scores[0].filters_triggered == []
    assert asyncio.run(_agent(monkeypatch, {"scores": "none"}).score_batch(articles, RUBRIC)) == {}

    clusters = asyncio.run(
        _agent(monkeypatch, {"clusters": [{"canonical_idx": 0, "member_indices": 1}]}).detect_semantic_duplicates(
            ["a", "b"]
        )
    )
    assert clusters[0].member_indices == []

    links = [LinkCandidate("https://x.example/a", "a")]
    assert asyncio.run(_agent(monkeypatch, {"follow": 3}).plan_next_links(links, RUBRIC)) == []
    assert asyncio.run(_agent(monkeypatch, {"queries": 5}).mutate_discovery_queries(RUBRIC)) == []
    questions = asyncio.run(
        _agent(monkeypatch, {"questions": {"question": "Why?"}}).generate_micro_questions(articles, InterestModel())
    )
    assert questions == []


def test_content_card_tolerates_wrong_types(monkeypatch):
    agent = _agent(monkeypatch, {"summary": ["Measured 3x speedup"], "entities": ["Postgres"], "metadata": 4})
    card = asyncio.run(agent.extract_content_card("Full article text"))
    assert card.summary == ["Measured 3x speedup"]
    assert card.entities == {}
    assert card.metadata == {}


def test_micro_question_fields_are_strings(monkeypatch):
    agent = _agent(
        monkeypatch,
        {"questions": [{"question": 42, "options": ["Yes", 2], "topic": 7, "context": None}]},
    )
    question = asyncio.run(agent.generate_micro_questions([make_article(1)], InterestModel()))[0]
    assert question.question == "42"
    assert question.options == ["Yes", "2"]
    assert question.topic == "7"
    assert question.context == ""
