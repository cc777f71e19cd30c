"""Convert resolved feed entries into canonical Articles."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

import httpx

from . import scorer
from .extractors import extract_image, extract_summary, is_video_url, normalize_url
from .models import Article, Preferences
from .resolver import ResolveResult
from .scraper import fetch_preview_image

logger = logging.getLogger(__name__)

DEEP_IMAGE_FETCH_LIMIT = 10


def parse_date(entry: Mapping[str, Any]) -> Optional[datetime]:
    """Parse entry date from various feed formats."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return None


def entry_identity(entry: Mapping[str, Any]) -> str:
    """Link, else guid, else a random id (collisions accepted as rare)."""
    return entry.get("link") or entry.get("id") or entry.get("guid") or uuid.uuid4().hex


def source_display_name(result: ResolveResult) -> str:
    if result.feed_title:
        return result.feed_title
    host = urlparse(result.source.url).netloc
    return host[4:] if host.startswith("www.") else host or result.source.url


async def normalize_result(
    result: ResolveResult,
    prefs: Preferences,
    client: Optional[httpx.AsyncClient] = None,
    now: Optional[datetime] = None,
    salt: Optional[str] = None,
) -> list[Article]:
    """
    Build scored Articles for every entry of one resolved source.

    Items of the first DEEP_IMAGE_FETCH_LIMIT entries that found no image in
    the feed get their page's social preview image, fetched concurrently.
    """
    now = now or datetime.now(timezone.utc)
    source = result.source
    source_name = source_display_name(result)

    articles = []
    deep_fetch: list[tuple[int, str]] = []

    for position, entry in enumerate(result.entries):
        try:
            image_url, decided = extract_image(entry)
        except Exception as e:
            logger.debug("[NORMALIZE] Image extraction failed on %s: %s", source.url, e)
            image_url, decided = None, False

        identity = entry_identity(entry)
        link = entry.get("link") or ""
        published_at = parse_date(entry) or now

        article = Article(
            id=identity,
            title=(entry.get("title") or "").strip() or "Untitled",
            url=link,
            source_id=source.url,
            source_name=source_name,
            topic=source.category,
            published_at=published_at,
            score=scorer.score(published_at, identity, source, prefs, now=now, salt=salt),
            image_url=image_url,
            summary=_safe_summary(entry),
        )
        articles.append(article)

        if not decided and link and client is not None and position < DEEP_IMAGE_FETCH_LIMIT:
            deep_fetch.append((len(articles) - 1, link))

    if deep_fetch:
        images = await asyncio.gather(
            *(fetch_preview_image(client, link) for _, link in deep_fetch),
            return_exceptions=True,
        )
        for (idx, _), image in zip(deep_fetch, images):
            if isinstance(image, str) and not is_video_url(image):
                articles[idx].image_url = image

    return articles


def _safe_summary(entry: Mapping[str, Any]) -> str:
    try:
        return extract_summary(entry)
    except Exception as e:
        logger.debug("[NORMALIZE] Summary extraction failed: %s", e)
        return ""


def dedupe_by_url(articles: list[Article]) -> list[Article]:
    """First-seen wins per normalized URL; articles without a URL dedupe by id."""
    seen = set()
    seen_ids = set()
    unique = []
    for article in articles:
        key = normalize_url(article.url) or f"id:{article.id}"
        if key in seen or article.id in seen_ids:
            continue
        seen.add(key)
        seen_ids.add(article.id)
        unique.append(article)

    dropped = len(articles) - len(unique)
    if dropped:
        logger.info("[NORMALIZE] Dropped %d duplicate articles", dropped)
    return unique
