import pytest

from curio.news.models import SourceReputation
from curio.personalize.reputation import apply_reputation, record_feedback
from curio.storage import InMemoryPreferenceStore

from helpers import make_article


def test_high_pass_rate_boosts_and_blends():
    article = make_article(1, source="https://good.example", score=80)
    reps = {"https://good.example": SourceReputation(pass_rate=0.9, avg_score=70)}
    apply_reputation([article], reps)
    assert article.score == pytest.approx(0.9 * (80 * 1.1) + 0.1 * 70)


def test_low_pass_rate_penalizes():
    article = make_article(1, source="https://spam.example", score=80)
    reps = {"https://spam.example": SourceReputation(pass_rate=0.2, avg_score=10)}
    apply_reputation([article], reps)
    assert article.score == pytest.approx(0.9 * (80 * 0.7) + 0.1 * 10)


def test_unknown_source_untouched():
    article = make_article(1, source="https://new.example", score=42)
    apply_reputation([article], {})
    assert article.score == 42


def test_diversity_penalty_after_third_article():
    articles = [make_article(i, source="https://a.example", score=100) for i in range(5)]
    apply_reputation(articles, {})
    assert [a.score for a in articles] == pytest.approx([100, 100, 100, 80, 80])


def test_record_feedback_moves_pass_rate():
    store = InMemoryPreferenceStore()
    kept = [make_article(1, source="https://a.example", score=90)]
    rejected = [make_article(2, source="https://b.example")]
    record_feedback(store, kept, rejected)

    reps = store.get_preferences().source_reputation
    assert reps["https://a.example"].pass_rate == 1.0
    assert reps["https://a.example"].avg_score == 90
    assert reps["https://b.example"].pass_rate == 0.0
    assert reps["https://b.example"].total_triaged == 1


def test_record_feedback_writes_once():
    store = InMemoryPreferenceStore()
    writes = []
    original = store._write_preferences

    def counting_write(data):
        writes.append(data)
        original(data)

    store._write_preferences = counting_write
    kept = [make_article(i, source="https://a.example", score=70) for i in range(4)]
    rejected = [make_article(i, source="https://b.example") for i in range(4, 7)]
    record_feedback(store, kept, rejected)

    assert len(writes) == 1
    reps = store.get_preferences().source_reputation
    assert reps["https://a.example"].total_triaged == 4
    assert reps["https://b.example"].total_triaged == 3
