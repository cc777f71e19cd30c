"""Preference and reputation persistence.

`PreferenceStore` is the only way the pipeline and the action handlers touch
persisted state. Every mutation is a narrow read-modify-write under one lock,
so concurrent stages of a run never lose each other's updates.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import yaml

from ..news.models import (
    InterestModel,
    MicroQuestion,
    Preferences,
    ScoringRubric,
    Source,
    SourceReputation,
)

logger = logging.getLogger(__name__)

MAX_PENDING_QUESTIONS = 5
MAX_CLICK_HISTORY = 500
REPUTATION_ALPHA = 0.1


class StoreReadError(Exception):
    """The stored preferences document exists but cannot be parsed."""


class PreferenceStore(ABC):
    """Read/update interface over sites and preferences."""

    def __init__(self):
        self._lock = threading.RLock()

    # --- Backend hooks ---

    @abstractmethod
    def _read_sites(self) -> list[tuple[str, str]]:
        """Return (url, category) pairs in insertion order."""

    @abstractmethod
    def _append_site(self, url: str, category: str) -> None:
        ...

    @abstractmethod
    def _read_preferences(self) -> Optional[dict]:
        """Return the raw preferences document, or None if nothing is stored.

        Raises StoreReadError when a document exists but cannot be read.
        """

    @abstractmethod
    def _write_preferences(self, data: dict) -> None:
        ...

    # --- Sites ---

    def get_sites(self) -> list[Source]:
        blocked = set(self.get_preferences().blocked_sites)
        return [
            Source(url=url, category=category, blocked=url in blocked)
            for url, category in self._read_sites()
        ]

    def add_site(self, url: str, category: str) -> bool:
        """Add a site; returns False if the URL is already configured."""
        url = url.strip()
        category = (category or "").strip() or "Uncategorized"
        with self._lock:
            if any(existing == url for existing, _ in self._read_sites()):
                return False
            self._append_site(url, category)
        logger.info("[STORE] Added site %s (%s)", url, category)
        return True

    def get_categories(self) -> list[str]:
        categories = []
        for _, category in self._read_sites():
            if category not in categories:
                categories.append(category)
        return categories

    # --- Whole-document access ---

    def _load(self) -> tuple[Preferences, bool]:
        """Current preferences, and whether they came from a usable document."""
        with self._lock:
            try:
                data = self._read_preferences()
            except StoreReadError as e:
                logger.error("[STORE] Unreadable preferences, using defaults: %s", e)
                return Preferences(), False
        if not data:
            return Preferences(), True
        if not isinstance(data, dict):
            logger.error("[STORE] Corrupt preferences, expected an object")
            return Preferences(), False
        try:
            return Preferences.from_dict(data), True
        except (AttributeError, TypeError, ValueError) as e:
            logger.error("[STORE] Corrupt preferences, using defaults: %s", e)
            return Preferences(), False

    def get_preferences(self) -> Preferences:
        return self._load()[0]

    def save_preferences(self, prefs: Preferences) -> None:
        with self._lock:
            self._write_preferences(prefs.to_dict())

    def _modify(self, mutate) -> Preferences:
        """Read-modify-write; never replaces a document that could not be read."""
        with self._lock:
            prefs, readable = self._load()
            mutate(prefs)
            if readable:
                self.save_preferences(prefs)
            else:
                logger.error("[STORE] Stored preferences are unreadable, update not saved")
            return prefs

    # --- Narrow updates ---

    def update_site_score(self, source_id: str, delta: float) -> None:
        def mutate(prefs: Preferences) -> None:
            prefs.site_scores[source_id] = prefs.site_scores.get(source_id, 0) + delta

        self._modify(mutate)

    def update_topic_score(self, topic: str, delta: float) -> None:
        def mutate(prefs: Preferences) -> None:
            prefs.topic_scores[topic] = prefs.topic_scores.get(topic, 0) + delta

        self._modify(mutate)

    def toggle_blocked_site(self, source_id: str) -> bool:
        """Block or unblock a site; returns the new blocked state."""

        def mutate(prefs: Preferences) -> None:
            if source_id in prefs.blocked_sites:
                prefs.blocked_sites.remove(source_id)
            else:
                prefs.blocked_sites.append(source_id)

        return source_id in self._modify(mutate).blocked_sites

    def demote_site(self, source_id: str) -> bool:
        """Returns True if the site was newly demoted."""
        with self._lock:
            if source_id in self.get_preferences().demoted_sites:
                return False
            self._modify(lambda prefs: prefs.demoted_sites.append(source_id))
        return True

    def demote_topic(self, topic: str) -> bool:
        """Returns True if the topic was newly demoted."""
        with self._lock:
            if topic in self.get_preferences().demoted_topics:
                return False
            self._modify(lambda prefs: prefs.demoted_topics.append(topic))
        return True

    def record_click(self, article_id: str, source_id: str) -> None:
        def mutate(prefs: Preferences) -> None:
            prefs.click_history = (prefs.click_history + [article_id])[-MAX_CLICK_HISTORY:]
            rep = prefs.source_reputation.setdefault(source_id, SourceReputation())
            rep.user_engagement += 1

        self._modify(mutate)

    def update_source_reputation(self, source_id: str, passed: bool, score: float) -> SourceReputation:
        """Fold one triage+score observation into a source's reputation."""
        return self.update_source_reputations([(source_id, passed, score)])[source_id]

    def update_source_reputations(
        self, observations: list[tuple[str, bool, float]]
    ) -> dict[str, SourceReputation]:
        """
        Fold (source_id, passed, score) observations into reputations in one write.

        Uses a running mean for the first observations and an exponential
        moving average (alpha = REPUTATION_ALPHA) afterwards. Observations
        are applied in order.
        """

        def mutate(prefs: Preferences) -> None:
            for source_id, passed, score in observations:
                rep = prefs.source_reputation.setdefault(source_id, SourceReputation())
                rep.total_triaged += 1
                alpha = max(REPUTATION_ALPHA, 1.0 / rep.total_triaged)
                rep.pass_rate += alpha * ((1.0 if passed else 0.0) - rep.pass_rate)
                rep.avg_score += alpha * (min(100.0, max(0.0, score)) - rep.avg_score)

        if not observations:
            return {}
        reputations = self._modify(mutate).source_reputation
        return {source_id: reputations[source_id] for source_id, _, _ in observations}

    # --- Rubric and interest model ---

    def save_rubric(self, rubric: ScoringRubric) -> None:
        def mutate(prefs: Preferences) -> None:
            prefs.current_rubric = rubric

        self._modify(mutate)

    def invalidate_rubric(self) -> None:
        def mutate(prefs: Preferences) -> None:
            prefs.current_rubric = None

        self._modify(mutate)

    def set_interest_model(self, model: InterestModel) -> None:
        """Replace the interest model; a new model always invalidates the rubric."""

        def mutate(prefs: Preferences) -> None:
            prefs.interest_model = model
            prefs.current_rubric = None

        self._modify(mutate)
        logger.info("[STORE] Interest model replaced, rubric invalidated")

    def save_discovery_queries(self, queries: list[str]) -> None:
        def mutate(prefs: Preferences) -> None:
            prefs.discovery_queries = list(queries)

        self._modify(mutate)

    # --- Micro-questions ---

    def push_questions(self, questions: list[MicroQuestion]) -> list[MicroQuestion]:
        """Append to the pending queue, keeping only the most recent ones."""

        def mutate(prefs: Preferences) -> None:
            prefs.pending_questions = (prefs.pending_questions + questions)[-MAX_PENDING_QUESTIONS:]

        return self._modify(mutate).pending_questions

    def get_question(self, question_id: str) -> Optional[MicroQuestion]:
        for question in self.get_preferences().pending_questions:
            if question.id == question_id:
                return question
        return None

    def take_question(self, question_id: str) -> Optional[MicroQuestion]:
        """Remove a pending question from the queue and return it."""
        taken = []

        def mutate(prefs: Preferences) -> None:
            for question in prefs.pending_questions:
                if question.id == question_id:
                    taken.append(question)
            prefs.pending_questions = [q for q in prefs.pending_questions if q.id != question_id]

        self._modify(mutate)
        return taken[0] if taken else None


class JsonPreferenceStore(PreferenceStore):
    """
    File-backed store.

    sites.txt holds one `url|category` per line; store.json holds the
    preferences document.
    """

    def __init__(self, data_dir: Path):
        super().__init__()
        self.data_dir = Path(data_dir)
        self.sites_file = self.data_dir / "sites.txt"
        self.store_file = self.data_dir / "store.json"

    def _read_sites(self) -> list[tuple[str, str]]:
        if not self.sites_file.exists():
            return []
        sites = []
        for line in self.sites_file.read_text().splitlines():
            if not line.strip():
                continue
            url, _, category = line.partition("|")
            sites.append((url.strip(), category.strip() or "Uncategorized"))
        return sites

    def _append_site(self, url: str, category: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.sites_file, "a") as f:
            f.write(f"{url}|{category}\n")

    def _read_preferences(self) -> Optional[dict]:
        if not self.store_file.exists():
            return None
        try:
            with open(self.store_file) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreReadError(f"{self.store_file}: {e}") from e

    def _write_preferences(self, data: dict) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp = self.store_file.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, indent=2, default=str))
        tmp.replace(self.store_file)


class InMemoryPreferenceStore(PreferenceStore):
    """Store kept entirely in memory (tests, one-off runs)."""

    def __init__(self, sites: Optional[list[Source]] = None, preferences: Optional[Preferences] = None):
        super().__init__()
        self._sites = [(s.url, s.category) for s in sites or []]
        self._data = preferences.to_dict() if preferences else None

    def _read_sites(self) -> list[tuple[str, str]]:
        return list(self._sites)

    def _append_site(self, url: str, category: str) -> None:
        self._sites.append((url, category))

    def _read_preferences(self) -> Optional[dict]:
        return json.loads(json.dumps(self._data, default=str)) if self._data else None

    def _write_preferences(self, data: dict) -> None:
        self._data = json.loads(json.dumps(data, default=str))


def seed_defaults(store: PreferenceStore, defaults_file: Path) -> bool:
    """
    Populate an empty store from the YAML defaults file.

    Returns:
        True if anything was seeded
    """
    if store.get_sites() or not defaults_file.exists():
        return False

    with open(defaults_file) as f:
        data = yaml.safe_load(f) or {}

    for site in data.get("sites", []):
        store.add_site(site["url"], site.get("category", "Uncategorized"))

    model = data.get("interest_model")
    if model:
        store.set_interest_model(
            InterestModel(
                stable_preferences=model.get("stable_preferences", ""),
                session_intent=model.get("session_intent", ""),
            )
        )
    logger.info("[STORE] Seeded defaults from %s", defaults_file.name)
    return True
