"""Output formatting for ranked feed runs.

Generates both JSON (structured) and Markdown (human-readable)
outputs for one run of the feed ranker.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..news.models import Article
from ..utils.cost_tracker import PipelineCosts


class OutputFormatter:
    """Formats ranked articles in multiple formats."""

    def __init__(self, output_dir: Path):
        """
        Initialize formatter.

        Args:
            output_dir: Base directory for output files
        """
        self.output_dir = output_dir

    def save_run(
        self,
        articles: list[Article],
        run_timestamp: Optional[datetime] = None,
        costs: Optional[PipelineCosts] = None,
    ) -> Path:
        """
        Save complete run output.

        Creates:
        - articles.json: Every delivered article with AI annotations
        - articles.md: Human-readable ranked list

        Returns:
            Path to run directory
        """
        run_timestamp = run_timestamp or datetime.now()
        timestamp = run_timestamp.strftime("%Y-%m-%d_%H-%M-%S")
        run_dir = self.output_dir / timestamp
        run_dir.mkdir(parents=True, exist_ok=True)

        run_json = self.format_articles_json(articles, run_timestamp, costs)
        (run_dir / "articles.json").write_text(json.dumps(run_json, indent=2, default=str))

        run_md = self.format_articles_markdown(articles, run_timestamp)
        (run_dir / "articles.md").write_text(run_md)

        return run_dir

    def format_articles_json(
        self,
        articles: list[Article],
        run_timestamp: datetime,
        costs: Optional[PipelineCosts] = None,
    ) -> dict:
        """Format the run as JSON."""
        return {
            "generated_at": run_timestamp.isoformat(),
            "total_articles": len(articles),
            "costs": costs.to_dict() if costs else None,
            "articles": [a.to_dict() for a in articles],
        }

    def format_articles_markdown(self, articles: list[Article], run_timestamp: datetime) -> str:
        """Format the ranked list as markdown."""
        lines = [f"# Curio feed - {run_timestamp.strftime('%Y-%m-%d %H:%M')}", ""]

        for rank, article in enumerate(articles, start=1):
            tag = " *(discovered)*" if article.is_discovery else ""
            lines.append(f"## {rank}. [{article.title}]({article.url}){tag}")
            lines.append("")
            lines.append(
                f"**Source:** {article.source_name} | **Topic:** {article.topic} | "
                f"**Score:** {article.score:.1f}"
            )
            if article.summary:
                lines.append("")
                lines.append(article.summary)
            if article.explanation and article.explanation.why:
                lines.append("")
                lines.extend(f"- {reason}" for reason in article.explanation.why)
            if article.similar_articles:
                lines.append("")
                lines.append(f"Also covered by {len(article.similar_articles)} similar articles:")
                lines.extend(f"- [{s.title}]({s.url})" for s in article.similar_articles)
            lines.append("")

        return "\n".join(lines)
