import json

from curio.agents.curator import SemanticCluster
from curio.news.models import ScoreExplanation
from curio.news.opml_parser import parse_opml
from curio.output.formatter import OutputFormatter
from curio.personalize.dedup import apply_clusters

from helpers import NOW, make_article

OPML = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0"><head><title>Export</title></head><body>
<outline text="Databases" title="Databases">
  <outline type="rss" text="Postgres Weekly" xmlUrl="https://postgres.example/rss"/>
  <outline type="rss" text="DB Blog" xmlUrl="https://db.example/atom.xml"/>
</outline>
<outline type="rss" text="Loose Feed" xmlUrl="https://loose.example/feed"/>
<outline type="rss" text="Duplicate" xmlUrl="https://db.example/atom.xml"/>
</body></opml>"""


def test_parse_opml_uses_folder_as_category(tmp_path):
    path = tmp_path / "feeds.opml"
    path.write_text(OPML)
    sources = parse_opml(path)
    assert [(s.url, s.category) for s in sources] == [
        ("https://postgres.example/rss", "Databases"),
        ("https://db.example/atom.xml", "Databases"),
        ("https://loose.example/feed", "Uncategorized"),
    ]


def test_parse_opml_category_override(tmp_path):
    path = tmp_path / "feeds.opml"
    path.write_text(OPML)
    assert {s.category for s in parse_opml(path, category="Reading")} == {"Reading"}


def test_save_run_writes_json_and_markdown(tmp_path):
    articles = [make_article(i, score=90 - i) for i in range(3)]
    articles[0].explanation = ScoreExplanation(overall=0.9, why=["primary source"])
    articles = apply_clusters(articles, [SemanticCluster(canonical_idx=0, member_indices=[2])])

    run_dir = OutputFormatter(tmp_path).save_run(articles, run_timestamp=NOW)

    assert run_dir == tmp_path / "2025-06-01_12-00-00"
    data = json.loads((run_dir / "articles.json").read_text())
    assert data["total_articles"] == 2
    assert data["articles"][0]["similar_articles"][0]["id"] == "https://a.example/post-2"

    markdown = (run_dir / "articles.md").read_text()
    assert "## 1. [Article number 0 from https://a.example](https://a.example/post-0)" in markdown
    assert "- primary source" in markdown
    assert "Also covered by 1 similar articles" in markdown
