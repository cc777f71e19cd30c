"""Field extractors for heterogeneous feed entries.

Entries are anything with a mapping-style `.get`: feedparser entries or the
plain dicts produced by the HTML scraper. Image extraction is an ordered list
of pure strategies `entry -> Optional[url]`; the first one that finds
something wins.
"""

import re
from typing import Any, Callable, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from bs4 import BeautifulSoup

SUMMARY_MAX_LENGTH = 300
MIN_SUMMARY_LENGTH = 10
MAX_MARKUP_PASSES = 10
VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".ogv")

_BOILERPLATE_EXACT = {"comments", "read more"}
_BOILERPLATE_PREFIXES = ("comments on",)
_TRACKING_PREFIXES = ("utm_",)
_TRACKING_KEYS = {"gclid", "fbclid", "mc_cid", "mc_eid"}

ImageExtractor = Callable[[Mapping[str, Any]], Optional[str]]


# --- Image strategies ---


def platform_thumbnail(entry: Mapping[str, Any]) -> Optional[str]:
    """YouTube entries carry a video id from which the thumbnail URL follows."""
    video_id = entry.get("yt_videoid")
    if video_id:
        return f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"
    return None


def media_content(entry: Mapping[str, Any]) -> Optional[str]:
    for media in entry.get("media_content") or []:
        url = media.get("url")
        if not url:
            continue
        medium = media.get("medium", "")
        mime = media.get("type", "")
        if medium == "image" or mime.startswith("image/") or (not medium and not mime):
            return url
    return None


def media_thumbnail(entry: Mapping[str, Any]) -> Optional[str]:
    for thumb in entry.get("media_thumbnail") or []:
        if thumb.get("url"):
            return thumb["url"]
    return None


def image_resource(entry: Mapping[str, Any]) -> Optional[str]:
    """`<itunes:image href=...>` style per-item image element."""
    image = entry.get("image")
    if isinstance(image, Mapping):
        return image.get("href") or image.get("url")
    if isinstance(image, str) and image:
        return image
    return None


def enclosure(entry: Mapping[str, Any]) -> Optional[str]:
    for enc in entry.get("enclosures") or []:
        url = enc.get("href") or enc.get("url")
        if url:
            return url
    for link in entry.get("links") or []:
        if link.get("rel") == "enclosure" and link.get("href"):
            return link["href"]
    return None


def inline_image(entry: Mapping[str, Any]) -> Optional[str]:
    for html in _body_candidates(entry):
        if not html or "<img" not in html:
            continue
        img = BeautifulSoup(html, "html.parser").find("img", src=True)
        if img:
            return img["src"]
    return None


IMAGE_EXTRACTORS: list[ImageExtractor] = [
    platform_thumbnail,
    media_content,
    media_thumbnail,
    image_resource,
    enclosure,
    inline_image,
]


def is_video_url(url: str) -> bool:
    return urlparse(url).path.lower().endswith(VIDEO_EXTENSIONS)


def extract_image(entry: Mapping[str, Any]) -> tuple[Optional[str], bool]:
    """
    Run the image strategies in precedence order.

    Returns:
        (image_url, decided): decided is True once a strategy matched, even
        if the match was a rejected video, so no later fallback applies
    """
    for extractor in IMAGE_EXTRACTORS:
        url = extractor(entry)
        if url:
            return (None if is_video_url(url) else url), True
    return None, False


# --- Summary ---


def _strip_markup(text: str) -> str:
    """Parse until stable so entity-escaped markup (`&amp;lt;b&amp;gt;`) is stripped too."""
    for _ in range(MAX_MARKUP_PASSES):
        if "<" not in text and "&" not in text:
            break
        stripped = BeautifulSoup(text, "html.parser").get_text(" ")
        if stripped == text:
            break
        text = stripped
    return text


def clean_summary(text: Optional[str]) -> str:
    """Strip markup, collapse whitespace and drop boilerplate. Idempotent."""
    if not text:
        return ""

    cleaned = re.sub(r"\s+", " ", _strip_markup(text)).strip()

    lower = cleaned.lower()
    if lower in _BOILERPLATE_EXACT:
        return ""
    if lower.startswith(_BOILERPLATE_PREFIXES):
        return ""
    if len(cleaned) < MIN_SUMMARY_LENGTH:
        return ""

    return cleaned


def clamp_text(text: str, max_length: int = SUMMARY_MAX_LENGTH) -> str:
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def extract_summary(entry: Mapping[str, Any]) -> str:
    """First non-empty cleaned candidate of snippet, description, content, encoded content."""
    contents = [c.get("value", "") for c in entry.get("content") or [] if isinstance(c, Mapping)]
    candidates = [
        entry.get("content_snippet"),
        entry.get("description") or entry.get("summary"),
        contents[0] if contents else None,
        entry.get("content_encoded") or (contents[1] if len(contents) > 1 else None),
    ]
    for candidate in candidates:
        summary = clean_summary(candidate)
        if summary:
            return clamp_text(summary)
    return ""


def _body_candidates(entry: Mapping[str, Any]) -> list[str]:
    bodies = [c.get("value", "") for c in entry.get("content") or [] if isinstance(c, Mapping)]
    bodies.append(entry.get("content_encoded") or "")
    bodies.append(entry.get("description") or entry.get("summary") or "")
    return bodies


# --- URLs ---


def normalize_url(url: str) -> str:
    """Canonical form used for run-wide deduplication."""
    if not url:
        return ""
    parsed = urlparse(url.strip())
    scheme = (parsed.scheme or "http").lower()
    netloc = parsed.netloc.lower()
    if ":" in netloc:
        host, port = netloc.rsplit(":", 1)
        if (scheme == "http" and port == "80") or (scheme == "https" and port == "443"):
            netloc = host
    if netloc.startswith("www."):
        netloc = netloc[4:]
    path = parsed.path or "/"
    if path != "/" and path.endswith("/"):
        path = path[:-1]
    query_pairs = [
        (k, v)
        for k, v in parse_qsl(parsed.query, keep_blank_values=True)
        if k and not k.startswith(_TRACKING_PREFIXES) and k not in _TRACKING_KEYS
    ]
    query = urlencode(sorted(query_pairs))
    return urlunparse((scheme, netloc, path, "", query, ""))


def site_root(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme or 'https'}://{parsed.netloc}"
