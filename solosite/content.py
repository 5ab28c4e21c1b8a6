from __future__ import annotations

import datetime as dt
import hashlib
import math
import re
import sys
from pathlib import Path
from typing import Callable, Optional

import yaml
from dateutil import parser as dateutil_parser

from .models import (
    HOME,
    CollectionSpec,
    Document,
    EpisodeMeta,
    EventMeta,
    PageMeta,
    PostMeta,
)
from .render import fix_relative_img_src, render_markdown
from .utils import list_files, parse_bool, parse_int

CONTENT_SUFFIX = ".md"
WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 150
LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")
MARKDOWN_CONTROL_RE = re.compile(r"[#*`]")
# Fills the fields a loose date leaves out, so "March 2025" is always the 1st.
DATE_DEFAULT = dt.datetime(2000, 1, 1)

Synthesizer = Callable[[str, str, str], str]


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", "-", text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", "-")
    return text or "post"


def tag_slug(tag: str) -> str:
    """File name for a tag page.

    Tags that are already slugs keep their name; any other tag gets a short
    digest of its exact text appended, so ``C`` and ``C++`` never share a page.
    """
    base = slugify(tag)
    if base == tag:
        return base
    digest = hashlib.sha1(tag.encode("utf-8")).hexdigest()[:8]
    return f"{base}-{digest}"


def parse_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(item).strip() for item in value if item is not None]
        return [item for item in items if item]
    value = str(value).strip()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    items = [item.strip().strip("'\"") for item in value.split(",")]
    return [item for item in items if item]


def parse_front_matter(text: str) -> tuple[dict, str]:
    """Split a leading ``---`` delimited YAML block from the markdown body.

    A missing or unterminated block yields an empty mapping and the whole
    text as body. Invalid YAML raises ``yaml.YAMLError``.
    """
    clean_text = text.lstrip("\ufeff").replace("\r\n", "\n")
    lines = clean_text.split("\n")
    if not lines or lines[0].strip() != "---":
        return {}, clean_text

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            end = i
            break
    if end is None:
        return {}, clean_text

    meta = yaml.safe_load("\n".join(lines[1:end]))
    if meta is None:
        meta = {}
    elif not isinstance(meta, dict):
        print(f"Front matter is not a mapping, ignoring it ({type(meta).__name__}).", file=sys.stderr)
        meta = {}
    body = "\n".join(lines[end + 1 :])
    return meta, body


def read_document(path: Path) -> tuple[dict, str]:
    return parse_front_matter(path.read_text(encoding="utf-8"))


def list_sources(root: Path) -> list[Path]:
    if not root.is_dir():
        return []
    return list_files(root, CONTENT_SUFFIX)


def derive_slug(rel_path: str | Path) -> str:
    rel = Path(rel_path)
    return rel.with_suffix("").as_posix()


def unique_sources(root: Path, sources: list[Path]) -> list[Path]:
    """Drop sources whose slug was already claimed by an earlier file."""
    seen: dict[str, Path] = {}
    kept = []
    for path in sources:
        slug = derive_slug(path.relative_to(root))
        if slug in seen:
            print(
                f"Duplicate slug '{slug}': skipping {path} (already built from {seen[slug]}).",
                file=sys.stderr,
            )
            continue
        seen[slug] = path
        kept.append(path)
    return kept


def parse_date(value: object) -> Optional[dt.datetime]:
    """Parse a front matter date; ``None`` marks an absent or invalid date."""
    if isinstance(value, dt.datetime):
        result = value
    elif isinstance(value, dt.date):
        result = dt.datetime.combine(value, dt.time())
    elif isinstance(value, str):
        text = value.strip().strip("'\"")
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            result = dt.datetime.fromisoformat(text)
        except ValueError:
            try:
                result = dateutil_parser.parse(text, default=DATE_DEFAULT)
            except (ValueError, OverflowError):
                return None
    else:
        return None
    if result.tzinfo is not None:
        result = result.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return result


def strip_markdown(text: str) -> str:
    return MARKDOWN_CONTROL_RE.sub("", text)


def count_words(text: str) -> int:
    return len(strip_markdown(text).split())


def reading_minutes(body: str) -> int:
    return max(1, math.ceil(count_words(body) / WORDS_PER_MINUTE))


def make_excerpt(body: str, length: int = EXCERPT_LENGTH) -> str:
    return strip_markdown(body).strip()[:length] + "..."


def normalize_list_spacing(text: str) -> str:
    lines = text.splitlines()
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in lines:
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker
            elif marker == fence_marker:
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        list_match = LIST_MARKER_RE.match(line)
        if list_match and not list_match.group("indent"):
            if out and out[-1].strip() and not LIST_MARKER_RE.match(out[-1]):
                out.append("")
        out.append(line)
    return "\n".join(out)


def is_published(meta: dict) -> bool:
    if "published" in meta and meta["published"] is not None:
        return parse_bool(meta["published"])
    if "draft" in meta:
        return not parse_bool(meta["draft"])
    return True


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_document(
    spec: CollectionSpec,
    rel_path: str | Path,
    front_matter: dict,
    body: str,
    synthesize: Optional[Synthesizer] = None,
) -> Document:
    """Build the canonical document record for one source file.

    Never raises for bad field values: a missing title becomes ``""`` and an
    absent or unparsable date becomes ``None``, each with a diagnostic.
    """
    slug = derive_slug(rel_path)
    label = f"{spec.kind}/{Path(rel_path).as_posix()}"
    collection_kind = spec is not HOME

    title = _text(front_matter.get("title"))
    if not title and collection_kind:
        print(f"{label}: missing title.", file=sys.stderr)

    raw_date = front_matter.get(spec.date_field)
    date_value = parse_date(raw_date)
    if date_value is None and collection_kind:
        if raw_date in (None, ""):
            print(f"{label}: missing {spec.date_field}.", file=sys.stderr)
        else:
            print(f"{label}: unparsable {spec.date_field} {raw_date!r}.", file=sys.stderr)

    common = {
        "title": title,
        "slug": slug,
        "description": _text(front_matter.get("description")),
        "published": is_published(front_matter),
        "date": date_value,
        "date_text": _text(raw_date),
        "fields": dict(front_matter),
    }
    if spec.meta_class is PostMeta:
        meta = PostMeta(
            **common,
            tags=tuple(parse_list(front_matter.get("tags"))),
            cover_image=_text(front_matter.get("cover_image")),
        )
    elif spec.meta_class is EventMeta:
        meta = EventMeta(
            **common,
            location=_text(front_matter.get("location")),
            rsvp_link=_text(front_matter.get("rsvp_link")),
        )
    elif spec.meta_class is EpisodeMeta:
        meta = EpisodeMeta(
            **common,
            audio_url=_text(front_matter.get("audio_url")),
            duration=_text(front_matter.get("duration")),
            length_bytes=parse_int(front_matter.get("length_bytes"), 0),
        )
    else:
        meta = PageMeta(**common, hero_image=_text(front_matter.get("hero_image")))

    html_content = render_markdown(normalize_list_spacing(body))
    html_content = fix_relative_img_src(html_content, "")

    cover_image = ""
    if isinstance(meta, PostMeta):
        cover_image = meta.cover_image
        if not cover_image and synthesize is not None:
            cover_image = synthesize(title, slug, "cover")

    return Document(
        kind=spec.kind,
        source_path=Path(rel_path).as_posix(),
        slug=slug,
        meta=meta,
        body=body,
        html=html_content,
        reading_minutes=reading_minutes(body),
        excerpt=make_excerpt(body),
        cover_image=cover_image,
    )
