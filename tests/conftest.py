"""Shared pytest fixtures and helpers for solosite tests."""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Any, Optional

import pytest
import yaml

from solosite.builder import BuildReport, build_site
from solosite.models import SiteContext
from solosite.render import generate_css

BUILD_TIME = dt.datetime(2025, 6, 1, 12, 0, 0)


def write_doc(root: Path, rel: str, front_matter: Optional[dict[str, Any]], body: str = "Body text.\n") -> Path:
    """Write a markdown file with an optional YAML front matter block."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    if front_matter is None:
        text = body
    else:
        dumped = yaml.safe_dump(front_matter, sort_keys=False, allow_unicode=True)
        text = f"---\n{dumped}---\n{body}"
    path.write_text(text, encoding="utf-8")
    return path


def read_tree(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def site_config() -> dict:
    return {
        "site_title": "Test Site",
        "site_description": "A site for tests",
        "author_name": "Tester",
        "domain": "https://site.test",
        "nav_links": [{"label": "Home", "url": "/"}],
        "features": {
            "blog": {"mode": "internal", "label": "Blog"},
            "events": {"mode": "internal", "label": "Events"},
            "podcast": {"mode": "internal", "label": "Podcast"},
        },
    }


@pytest.fixture
def theme() -> dict:
    return {
        "colors": {"primary": "#112233", "secondary": "#445566", "on_primary": "#ffffff"},
        "fonts": {"heading": "'Inter', sans-serif", "body": "'Inter', sans-serif"},
        "scale": {"border_radius": "8px", "spacing_unit": "4px"},
    }


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    """Content tree with a home page and a few documents of every kind."""
    root = tmp_path / "content"
    write_doc(root, "home.md", {"title": "Welcome home"}, "# Hello\n\nThis is the home page.\n")
    write_doc(
        root,
        "blog/2025/my-post.md",
        {"title": "My Post", "date": "2025-03-01", "tags": ["python", "web"]},
        "First post body about Python.\n",
    )
    write_doc(
        root,
        "blog/older.md",
        {"title": "Older Post", "date": "2024-12-24", "tags": ["python"], "description": "An older one"},
        "Older body.\n",
    )
    write_doc(
        root,
        "blog/newest.md",
        {"title": "Newest Post", "date": "2025-05-20", "tags": ["rust"], "cover_image": "https://cdn.test/c.png"},
        "Newest body.\n",
    )
    write_doc(
        root,
        "events/meetup.md",
        {"title": "Meetup", "event_date": "2025-07-10", "location": "Berlin", "rsvp_link": "https://rsvp.test"},
        "Come along.\n",
    )
    write_doc(
        root,
        "events/conference.md",
        {"title": "Conference", "event_date": "2025-06-15", "location": "Online"},
        "Talks all day.\n",
    )
    write_doc(
        root,
        "podcast/episode-1.md",
        {
            "title": "Episode 1",
            "date": "2025-01-05",
            "audio_url": "https://audio.test/ep1.mp3",
            "duration": "42:00",
            "length_bytes": 123456,
        },
        "Show notes one.\n",
    )
    write_doc(root, "podcast/episode-2.md", {"title": "Episode 2", "date": "2025-02-05"}, "Show notes two.\n")
    return root


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "dist"


@pytest.fixture
def site_context(site_config: dict, theme: dict, content_dir: Path, output_dir: Path) -> SiteContext:
    output_dir.mkdir(parents=True, exist_ok=True)
    return SiteContext(
        config=site_config,
        theme=theme,
        css=generate_css(theme),
        content_dir=content_dir,
        output_dir=output_dir,
        now=BUILD_TIME,
        workers=1,
    )


@pytest.fixture
def built_site(site_config: dict, theme: dict, content_dir: Path, output_dir: Path) -> BuildReport:
    return build_site(site_config, theme, content_dir, output_dir, workers=2, now=BUILD_TIME)
