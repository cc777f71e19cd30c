import pytest
from fastapi.testclient import TestClient

from curio.app import main
from curio.app.main import app, get_store
from curio.news.models import MicroQuestion, Preferences
from curio.storage import InMemoryPreferenceStore

from helpers import make_article, make_question


@pytest.fixture
def store():
    store = InMemoryPreferenceStore(preferences=Preferences(pending_questions=[make_question("q1")]))
    app.dependency_overrides[get_store] = lambda: store
    yield store
    app.dependency_overrides.clear()


def test_health():
    client = TestClient(app)
    assert client.get("/health").json() == {"status": "ok"}


def test_post_action(store):
    client = TestClient(app)
    response = client.post("/api/feeds", json={"action": "demote-topic", "payload": {"topic": "Crypto"}})
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert store.get_preferences().demoted_topics == ["Crypto"]


def test_unknown_action_is_400(store):
    client = TestClient(app)
    response = client.post("/api/feeds", json={"action": "explode", "payload": {}})
    assert response.status_code == 400


def test_missing_payload_is_400(store):
    client = TestClient(app)
    response = client.post("/api/feeds", json={"action": "block-site", "payload": {}})
    assert response.status_code == 400


def test_pending_questions(store):
    client = TestClient(app)
    payload = client.get("/api/questions").json()
    assert payload[0]["id"] == "q1"
    assert payload[0]["options"] == ["Systems", "ML"]


def test_feeds_serialize_camel_case(store, monkeypatch):
    async def fake_fetch(self):
        return [make_article(1, image_url="https://img.example/1.jpg")]

    monkeypatch.setattr(main.FeedAggregator, "fetch_all_articles", fake_fetch)
    monkeypatch.setattr(main.FeedAggregator, "__init__", lambda self, store: None)

    client = TestClient(app)
    article = client.get("/api/feeds").json()[0]
    assert article["sourceId"] == "https://a.example"
    assert article["imageUrl"] == "https://img.example/1.jpg"
    assert article["isDiscovery"] is False
    assert "fullText" not in article


def test_questions_with_numeric_fields_serialize():
    stored = MicroQuestion(id="q7", question="Which era?", options=["1990s", 2000], topic=7)
    store = InMemoryPreferenceStore(preferences=Preferences(pending_questions=[stored]))
    app.dependency_overrides[get_store] = lambda: store
    try:
        response = TestClient(app).get("/api/questions")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()[0]["topic"] == "7"
    assert response.json()[0]["options"] == ["1990s", "2000"]
