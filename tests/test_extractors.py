from curio.news.extractors import (
    clean_summary,
    extract_image,
    extract_summary,
    is_video_url,
    normalize_url,
    site_root,
)


def test_clean_summary_strips_markup_and_whitespace():
    raw = "<p>Rust   1.80 ships <b>LazyCell</b>&nbsp;and more</p>\n\n"
    assert clean_summary(raw) == "Rust 1.80 ships LazyCell and more"


def test_clean_summary_is_idempotent():
    samples = [
        "<div>Hello <i>world</i>, this is a summary</div>",
        "Plain text that needs no cleaning at all",
        "Entities &amp; markup <br/> mixed   together here",
        "The &amp;lt;div&amp;gt; element explained in depth",
    ]
    for raw in samples:
        once = clean_summary(raw)
        assert clean_summary(once) == once


def test_clean_summary_rejects_boilerplate():
    assert clean_summary("Comments") == ""
    assert clean_summary("<a href='#'>Comments on this story</a>") == ""
    assert clean_summary("Read more") == ""
    assert clean_summary("short") == ""
    assert clean_summary(None) == ""


def test_extract_summary_precedence_and_clamp():
    entry = {
        "content_snippet": "Comments",
        "description": "<p>" + "x" * 400 + "</p>",
        "content": [{"value": "content body that should not win"}],
    }
    summary = extract_summary(entry)
    assert summary == "x" * 300 + "..."


def test_extract_summary_falls_back_to_content():
    entry = {"description": "Read more", "content": [{"value": "<p>The real article body text</p>"}]}
    assert extract_summary(entry) == "The real article body text"


def test_image_precedence_media_content_over_enclosure():
    entry = {
        "media_content": [{"url": "https://img.example/media.jpg", "medium": "image"}],
        "enclosures": [{"href": "https://img.example/enclosure.jpg"}],
        "description": '<img src="https://img.example/inline.jpg">',
    }
    assert extract_image(entry) == ("https://img.example/media.jpg", True)


def test_image_platform_thumbnail_wins():
    entry = {
        "yt_videoid": "abc123",
        "media_thumbnail": [{"url": "https://img.example/thumb.jpg"}],
    }
    assert extract_image(entry) == ("https://i.ytimg.com/vi/abc123/hqdefault.jpg", True)


def test_image_inline_fallback():
    entry = {"summary": '<p>Intro</p><img src="https://img.example/inline.png"/>'}
    assert extract_image(entry) == ("https://img.example/inline.png", True)


def test_image_scraped_stub_shape():
    entry = {"title": "x", "image": {"href": "https://img.example/card.webp"}}
    assert extract_image(entry)[0] == "https://img.example/card.webp"


def test_video_image_is_rejected_without_fallthrough():
    entry = {
        "enclosures": [{"href": "https://cdn.example/clip.MP4"}],
        "description": '<img src="https://img.example/inline.jpg">',
    }
    assert extract_image(entry) == (None, True)


def test_no_image_is_undecided():
    assert extract_image({"title": "nothing here"}) == (None, False)


def test_is_video_url_ignores_query():
    assert is_video_url("https://cdn.example/v.webm?token=1")
    assert not is_video_url("https://cdn.example/v.jpg?format=mp4")


def test_normalize_url_collapses_variants():
    a = normalize_url("https://www.Example.com/post/?utm_source=rss&b=2&a=1#top")
    b = normalize_url("https://example.com:443/post?a=1&b=2")
    assert a == b == "https://example.com/post?a=1&b=2"


def test_site_root():
    assert site_root("https://blog.example.com/feeds/all.xml") == "https://blog.example.com"


def test_clean_summary_strips_escaped_markup():
    assert clean_summary("The &amp;lt;div&amp;gt; element explained in depth") == "The element explained in depth"
    assert clean_summary("Costs &lt; benefits for small teams") == "Costs < benefits for small teams"
