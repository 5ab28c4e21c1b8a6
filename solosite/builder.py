from __future__ import annotations

import datetime as dt
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import active_kinds, resolve_features, validate_config
from .images import synthesize_image
from .indexes import (
    build_atom,
    build_podcast_feed,
    build_rss,
    build_sitemap,
    build_tag_index,
    write_robots,
    write_search_index,
    write_tag_pages,
)
from .models import COLLECTION_SPECS, FinalizedCollection, SearchEntry, SiteContext
from .pages import build_collection, build_home
from .render import copy_static, generate_css
from .utils import reset_output_dir, utc_now

MAX_WORKERS = 32


@dataclass
class BuildReport:
    collections: dict[str, FinalizedCollection] = field(default_factory=dict)
    search_entries: list[SearchEntry] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return sum(len(collection) for collection in self.collections.values())


def resolve_workers(workers: int) -> int:
    if workers <= 0:
        workers = os.cpu_count() or 1
    return max(1, min(workers, MAX_WORKERS))


def build_site(
    config: dict,
    theme: dict,
    content_dir: Path,
    output_dir: Path,
    public_dir: Optional[Path] = None,
    workers: int = 0,
    include_drafts: bool = False,
    now: Optional[dt.datetime] = None,
) -> BuildReport:
    """Run the full pipeline from ``content_dir`` into a fresh ``output_dir``.

    Order matters: every collection is finalised before its tag pages and
    feeds are written, and the sitemap is generated last because it reads
    the output tree back from disk.
    """
    validate_config(config)
    config = resolve_features(config, content_dir)
    protected = [content_dir]
    if public_dir is not None:
        protected.append(public_dir)
    reset_output_dir(output_dir, protected)

    ctx = SiteContext(
        config=config,
        theme=theme or {},
        css=generate_css(theme or {}),
        content_dir=content_dir,
        output_dir=output_dir,
        now=now or utc_now(),
        workers=resolve_workers(workers),
        include_drafts=include_drafts,
    )

    if public_dir is not None and public_dir.is_dir():
        copy_static(public_dir, output_dir)
        print("Copied public assets.")
    if not (output_dir / "assets" / "favicon.svg").exists():
        synthesize_image(output_dir, str(config.get("site_title", "")), "favicon", ctx.theme, "favicon")

    build_home(ctx)

    report = BuildReport()
    for kind in active_kinds(config):
        result = build_collection(ctx, COLLECTION_SPECS[kind])
        report.collections[kind] = result.collection
        report.search_entries.extend(result.search_entries)
        if kind == "blog":
            tag_index = build_tag_index(result.collection)
            write_tag_pages(ctx, tag_index)
            report.tags = sorted(tag_index, key=lambda name: (name.lower(), name))
            build_rss(ctx, result.collection)
            build_atom(ctx, result.collection)
        elif kind == "podcast":
            build_podcast_feed(ctx, result.collection)

    write_search_index(output_dir, report.search_entries)
    write_robots(ctx)
    build_sitemap(ctx)
    return report
