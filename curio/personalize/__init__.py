from .crawl import AdaptiveCrawler, CrawlResult
from .learning import answer_question, propose_questions
from .pipeline import PersonalizationPipeline, PersonalizationResult
from .rubric import resolve_rubric

__all__ = [
    "AdaptiveCrawler",
    "CrawlResult",
    "PersonalizationPipeline",
    "PersonalizationResult",
    "answer_question",
    "propose_questions",
    "resolve_rubric",
]
