"""Heuristic baseline score for a normalized article.

score = freshness + site preference + topic preference - demotion + jitter

The preference terms are clamped so DEMOTION_PENALTY always exceeds the
largest achievable bonus: a demoted item can never outrank a non-demoted
one on this score alone.
"""

import hashlib
from datetime import datetime, timezone
from typing import Optional

from .models import Preferences, Source

FRESHNESS_HORIZON_HOURS = 100.0
PREFERENCE_WEIGHT = 10.0
PREFERENCE_CAP = 50.0
JITTER_MAX = 1.0
DEMOTION_PENALTY = 1000.0

MAX_BONUS = FRESHNESS_HORIZON_HOURS + 2 * PREFERENCE_CAP + JITTER_MAX
MIN_UNDEMOTED_SCORE = -2 * PREFERENCE_CAP


def freshness(published_at: datetime, now: Optional[datetime] = None) -> float:
    """Linear decay from 100 to zero over FRESHNESS_HORIZON_HOURS."""
    now = now or datetime.now(timezone.utc)
    hours_ago = max(0.0, (now - published_at).total_seconds() / 3600)
    return max(0.0, FRESHNESS_HORIZON_HOURS - hours_ago)


def jitter(identity: str, salt: Optional[str]) -> float:
    """
    Bounded tie-breaker in [0, JITTER_MAX).

    Derived from the run salt and the item identity, so it varies between
    runs but is identical for two copies of the same item within a run.
    """
    if salt is None:
        return 0.0
    digest = hashlib.sha256(f"{salt}:{identity}".encode()).digest()
    return int.from_bytes(digest[:8], "big") / 2**64 * JITTER_MAX


def _preference(value: float) -> float:
    return max(-PREFERENCE_CAP, min(PREFERENCE_CAP, value * PREFERENCE_WEIGHT))


def is_demoted(source: Source, prefs: Preferences) -> bool:
    return source.url in prefs.demoted_sites or source.category in prefs.demoted_topics


def score(
    published_at: datetime,
    identity: str,
    source: Source,
    prefs: Preferences,
    now: Optional[datetime] = None,
    salt: Optional[str] = None,
) -> float:
    """Baseline priority used to seed AI candidate selection."""
    total = freshness(published_at, now)
    total += _preference(prefs.site_scores.get(source.url, 0))
    total += _preference(prefs.topic_scores.get(source.category, 0))
    if is_demoted(source, prefs):
        total -= DEMOTION_PENALTY
    return total + jitter(identity, salt)
