"""Tests for markdown rendering, CSS generation and the page layout."""

from __future__ import annotations

import datetime as dt
import json
import re

from solosite.models import SeoMeta
from solosite.render import build_nav, fix_relative_img_src, generate_css, layout, render_markdown


def json_ld(page: str) -> dict:
    match = re.search(r'<script type="application/ld\+json">(.*?)</script>', page, re.S)
    assert match is not None
    return json.loads(match.group(1))


class TestRenderMarkdown:
    def test_basic_markdown(self) -> None:
        assert render_markdown("# Title") == "<h1>Title</h1>"

    def test_fenced_code_is_highlighted(self) -> None:
        out = render_markdown("```python\nprint('hi')\n```")
        assert 'class="codehilite"' in out

    def test_tables(self) -> None:
        out = render_markdown("| a | b |\n|---|---|\n| 1 | 2 |")
        assert "<table>" in out


class TestFixRelativeImgSrc:
    def test_relative_becomes_site_absolute(self) -> None:
        assert fix_relative_img_src('<img alt="x" src="img/a.png">', "") == '<img alt="x" src="/img/a.png">'

    def test_absolute_untouched(self) -> None:
        html = '<img src="https://cdn.test/a.png"><img src="/a.png">'
        assert fix_relative_img_src(html, "") == html


class TestGenerateCss:
    def test_theme_variables(self, theme: dict) -> None:
        css = generate_css(theme)
        assert "--md-sys-color-primary: #112233;" in css
        assert "--md-sys-shape-corner: 8px;" in css
        assert "family=Inter" in css
        assert ".codehilite" in css

    def test_defaults_fill_missing_colors(self) -> None:
        css = generate_css({"colors": {"primary": "#000000"}})
        assert "--md-sys-color-surface: #fffbfe;" in css

    def test_empty_theme_only_highlight_styles(self) -> None:
        css = generate_css({})
        assert ":root" not in css
        assert ".codehilite" in css


class TestBuildNav:
    def test_internal_and_external_modes(self, site_config: dict) -> None:
        site_config["features"]["events"] = {
            "mode": "external",
            "label": "Meetups",
            "external_url": "https://events.test",
        }
        site_config["features"]["podcast"] = {"mode": "disabled"}
        nav = build_nav(site_config)
        assert '<a href="/">Home</a>' in nav
        assert '<a href="/blog/index.html">Blog</a>' in nav
        assert 'href="https://events.test"' in nav
        assert "Meetups" in nav
        assert "/podcast/" not in nav

    def test_missing_feature_is_disabled(self, site_config: dict) -> None:
        del site_config["features"]["podcast"]
        assert "/podcast/" not in build_nav(site_config)


class TestLayout:
    def test_canonical_and_og_tags(self, site_config: dict) -> None:
        page = layout("<p>Hi</p>", "About", site_config, "", SeoMeta(path="/about.html", description="About us"))
        assert '<link rel="canonical" href="https://site.test/about.html">' in page
        assert '<meta property="og:title" content="About | Test Site">' in page
        assert '<meta name="description" content="About us">' in page
        assert "<p>Hi</p>" in page
        assert json_ld(page)["@type"] == "WebPage"

    def test_article_structured_data(self, site_config: dict) -> None:
        seo = SeoMeta(type="article", path="/blog/x.html", image="/img.png", date=dt.datetime(2025, 1, 2))
        page = layout("", "Post", site_config, "", seo)
        data = json_ld(page)
        assert data["@type"] == "BlogPosting"
        assert data["datePublished"] == "2025-01-02T00:00:00Z"
        assert '<meta property="og:image" content="https://site.test/img.png">' in page
        assert '<meta property="og:type" content="article">' in page

    def test_event_structured_data(self, site_config: dict) -> None:
        page = layout("", "Meet", site_config, "", SeoMeta(type="event", location="Berlin"))
        data = json_ld(page)
        assert data["@type"] == "Event"
        assert data["location"]["name"] == "Berlin"
        assert '<meta property="og:type" content="website">' in page

    def test_script_close_tag_escaped_in_json_ld(self, site_config: dict) -> None:
        page = layout("", "</script><b>", site_config, "", SeoMeta())
        assert json_ld(page)["name"].startswith("</script><b>")

    def test_feed_links_follow_features(self, site_config: dict) -> None:
        page = layout("", "T", site_config, "", None)
        assert 'href="/rss.xml"' in page
        assert 'href="/feed.xml"' in page
        site_config["features"]["blog"]["mode"] = "external"
        site_config["features"]["podcast"]["mode"] = "disabled"
        page = layout("", "T", site_config, "", None)
        assert 'href="/rss.xml"' not in page
        assert 'href="/feed.xml"' not in page

    def test_default_domain(self) -> None:
        page = layout("", "T", {"nav_links": []}, "", None)
        assert '<link rel="canonical" href="https://example.com/">' in page

    def test_footer_year_from_argument(self, site_config: dict) -> None:
        page = layout("", "T", site_config, "", None, year=1999)
        assert "&copy; 1999 Tester." in page

    def test_escapes_title(self, site_config: dict) -> None:
        page = layout("", "A & <B>", site_config, "", None)
        assert "<title>A &amp; &lt;B&gt; | Test Site</title>" in page
