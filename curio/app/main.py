"""FastAPI web application for the Curio feed ranker."""

import logging
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logging.getLogger("LiteLLM").setLevel(logging.WARNING)

import os
import uvicorn
from fastapi import Depends, FastAPI, HTTPException

from .actions import InvalidPayloadError, UnknownActionError, dispatch_action
from .models import ActionRequest, ActionResponse, ArticleOut, QuestionOut
from ..config.settings import settings
from ..news.fetcher import FeedAggregator
from ..storage import JsonPreferenceStore, PreferenceStore, seed_defaults

logger = logging.getLogger(__name__)

app = FastAPI(title="Curio")


@lru_cache(maxsize=1)
def get_store() -> PreferenceStore:
    """Process-wide preference store, seeded on first use."""
    store = JsonPreferenceStore(settings.data_dir)
    seed_defaults(store, settings.defaults_file)
    return store


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/api/feeds", response_model=list[ArticleOut], response_model_by_alias=True)
async def get_feeds(store: PreferenceStore = Depends(get_store)):
    """Run the ranking pipeline and return the personalized feed."""
    aggregator = FeedAggregator(store)
    articles = await aggregator.fetch_all_articles()
    return [ArticleOut.from_article(a) for a in articles]


@app.post("/api/feeds", response_model=ActionResponse)
async def post_action(request: ActionRequest, store: PreferenceStore = Depends(get_store)):
    """Apply a user action (click, block, demote, add site, answer question)."""
    try:
        success = await dispatch_action(store, request.action, request.payload)
    except (UnknownActionError, InvalidPayloadError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ActionResponse(success=success)


@app.get("/api/questions", response_model=list[QuestionOut], response_model_by_alias=True)
async def get_questions(store: PreferenceStore = Depends(get_store)):
    """Pending micro-questions, oldest first."""
    return [QuestionOut.from_question(q) for q in store.get_preferences().pending_questions]


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "curio.app.main:app",
        host="0.0.0.0",
        port=port,
    )
