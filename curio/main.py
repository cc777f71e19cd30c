#!/usr/bin/env python3
"""
Curio personalized feed ranker.

Entry point for command-line runs.
Resolves every configured source, ranks the articles, prints the feed.

Usage:
    python -m curio.main                                  # Full pipeline
    python -m curio.main --no-ai                          # Heuristic ranking only
    python -m curio.main --limit 20 --save                # Top 20, saved to output/runs
    python -m curio.main --import-opml feeds.opml --category Tech
    python -m curio.main --questions                      # Show pending questions
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .agents.curator import CuratorAgent
from .config.settings import settings
from .news.fetcher import FeedAggregator
from .news.opml_parser import parse_opml
from .output.formatter import OutputFormatter
from .storage import JsonPreferenceStore, PreferenceStore, seed_defaults


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Personalized feed ranking pipeline")

    parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Skip every AI stage and print the heuristic ranking",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=30,
        help="Number of articles to print (default: 30)",
    )

    parser.add_argument(
        "--save",
        action="store_true",
        help=f"Save articles.json and articles.md under {settings.output_dir}",
    )

    parser.add_argument(
        "--import-opml",
        type=Path,
        metavar="PATH",
        help="Add every feed from an OPML file as a site",
    )

    parser.add_argument(
        "--category",
        default=None,
        help="Category for imported sites (default: the OPML folder name)",
    )

    parser.add_argument(
        "--questions",
        action="store_true",
        help="Print pending micro-questions and exit",
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=settings.data_dir,
        help=f"Directory holding sites.txt and store.json (default: {settings.data_dir})",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Debug logging",
    )

    return parser.parse_args()


def import_opml(store: PreferenceStore, path: Path, category: str | None) -> int:
    """Bulk add-site from an OPML file; returns the number of new sites."""
    added = sum(store.add_site(s.url, s.category) for s in parse_opml(path, category))
    print(f"Imported {added} new sites from {path.name}")
    return added


def print_questions(store: PreferenceStore) -> None:
    questions = store.get_preferences().pending_questions
    if not questions:
        print("No pending questions")
        return
    for q in questions:
        print(f"\n[{q.id}] {q.question}")
        if q.context:
            print(f"   {q.context}")
        for option in q.options:
            print(f"   - {option}")


async def run_feed(args: argparse.Namespace, store: PreferenceStore) -> None:
    """Run the ranking pipeline and print the feed."""
    curator = None if args.no_ai else CuratorAgent()
    aggregator = FeedAggregator(store, curator=curator, use_ai=not args.no_ai)

    print("\n📰 Fetching and ranking articles...")
    articles = await aggregator.fetch_all_articles()
    print(f"   {len(articles)} articles ranked\n")

    for i, article in enumerate(articles[: args.limit]):
        marker = "+" if article.is_discovery else " "
        status = f" [{article.triage_status}]" if article.triage_status else ""
        print(f"{i + 1:3d}.{marker}[{article.score:6.1f}]{status} {article.title[:70]}")
        print(f"       {article.source_name} | {article.topic} | {article.url}")
        if article.similar_articles:
            print(f"       + {len(article.similar_articles)} similar")

    if aggregator.costs.total_calls():
        print(
            f"\n💰 {aggregator.costs.total_calls()} LLM calls, "
            f"${aggregator.costs.total_cost():.4f}"
        )

    if args.save:
        formatter = OutputFormatter(settings.output_dir)
        run_dir = formatter.save_run(articles, costs=aggregator.costs)
        print(f"\n📁 Output saved to: {run_dir}")


async def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    store = JsonPreferenceStore(args.data_dir)
    seed_defaults(store, settings.defaults_file)

    if args.import_opml:
        if not args.import_opml.exists():
            print(f"❌ OPML file not found: {args.import_opml}")
            return 1
        import_opml(store, args.import_opml, args.category)
        return 0

    if args.questions:
        print_questions(store)
        return 0

    print("=" * 60)
    print("Curio")
    print("=" * 60)
    print(f"Model: {settings.llm_model if not args.no_ai else 'disabled'}")
    print(f"Sites: {len(store.get_sites())}")

    await run_feed(args, store)
    return 0


def cli() -> None:
    """CLI entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
