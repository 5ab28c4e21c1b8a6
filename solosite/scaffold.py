from __future__ import annotations

import datetime as dt
import sys
from pathlib import Path
from typing import Optional

import yaml

from .content import slugify
from .models import COLLECTION_SPECS

BODY_PLACEHOLDERS = {
    "blog": "# {title}\n\nWrite your post here...\n",
    "events": "Write event details...\n",
    "podcast": "Show notes...\n",
}


def template_fields(kind: str, title: str, today: dt.date) -> dict:
    if kind == "blog":
        return {
            "title": title,
            "date": today.isoformat(),
            "tags": [],
            "cover_image": "",
            "published": False,
        }
    if kind == "events":
        return {
            "title": title,
            "event_date": today.isoformat(),
            "location": "Virtual",
            "rsvp_link": "",
            "published": False,
        }
    return {
        "title": title,
        "date": today.isoformat(),
        "audio_url": "",
        "duration": "00:00",
        "length_bytes": 0,
        "published": False,
    }


def content_path(content_dir: Path, kind: str, title: str, today: dt.date) -> Path:
    """Blog posts go under a year folder so their slugs read ``<year>/<title>``."""
    name = f"{slugify(title)}.md"
    if kind == "blog":
        return content_dir / kind / str(today.year) / name
    return content_dir / kind / name


def render_template(kind: str, title: str, today: dt.date) -> str:
    front_matter = yaml.safe_dump(
        template_fields(kind, title, today), sort_keys=False, allow_unicode=True
    ).rstrip()
    body = BODY_PLACEHOLDERS[kind].format(title=title)
    return f"---\n{front_matter}\n---\n\n{body}"


def create_content(content_dir: Path, kind: str, title: str, today: Optional[dt.date] = None) -> Path:
    if kind not in COLLECTION_SPECS:
        print(f"Invalid type. Must be one of: {', '.join(COLLECTION_SPECS)}", file=sys.stderr)
        sys.exit(1)
    title = title.strip()
    if not title:
        print("A title is required.", file=sys.stderr)
        sys.exit(1)
    today = today or dt.date.today()
    path = content_path(content_dir, kind, title, today)
    if path.exists():
        print(f"File already exists: {path}", file=sys.stderr)
        sys.exit(1)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_template(kind, title, today), encoding="utf-8")
    print(f"Created {kind}: {path}")
    return path
