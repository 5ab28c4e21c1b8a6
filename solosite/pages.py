from __future__ import annotations

import html
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Optional, TypeVar

import yaml

from .config import feature_label
from .content import (
    is_published,
    list_sources,
    normalize_document,
    read_document,
    tag_slug,
    unique_sources,
)
from .images import synthesize_image
from .models import (
    HOME,
    Collection,
    CollectionResult,
    CollectionSpec,
    Document,
    EpisodeMeta,
    EventMeta,
    PostMeta,
    SearchEntry,
    SeoMeta,
    SiteContext,
)
from .render import layout, write_text

T = TypeVar("T")
R = TypeVar("R")

INDEX_HEADINGS = {
    "blog": "Blog",
    "events": "Upcoming Events",
    "podcast": "Podcast Episodes",
}
INDEX_DESCRIPTIONS = {
    "blog": "Latest blog posts",
    "events": "Upcoming events",
    "podcast": "All podcast episodes",
}


def run_parallel(func: Callable[[T], R], items: list[T], workers: int) -> list[R]:
    """Map ``func`` over ``items`` in order; returns only once every call has finished."""
    workers = max(1, int(workers or 1))
    if workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
        return list(executor.map(func, items))


def render_page(ctx: SiteContext, body_html: str, title: str, seo: SeoMeta) -> str:
    return layout(body_html, title, ctx.config, ctx.css, seo, year=ctx.now.year)


def tag_links(tags: Iterable[str]) -> str:
    return " ".join(
        f'<a class="chip" href="/tags/{tag_slug(tag)}.html">{html.escape(tag)}</a>' for tag in tags
    )


def post_card(post: Document) -> str:
    title = html.escape(post.title)
    cover = ""
    if post.cover_image:
        cover = (
            f'<img src="{html.escape(post.cover_image)}" alt="" '
            'style="height: 200px; object-fit: cover; width: 100%; margin: 0 0 1rem 0;" />'
        )
    return (
        '<div class="card">'
        f"{cover}"
        f'<h2><a href="{post.url}">{title}</a></h2>'
        f'<p class="meta"><small>{html.escape(post.meta.date_text)} &bull; {post.reading_time}</small></p>'
        f"<p>{html.escape(post.description)}</p>"
        "</div>"
    )


def event_card(event: Document) -> str:
    meta = event.meta
    rsvp = ""
    if isinstance(meta, EventMeta) and meta.rsvp_link:
        rsvp = f'<a href="{html.escape(meta.rsvp_link)}" target="_blank" rel="noopener">RSVP &#8599;</a>'
    location = html.escape(meta.location) if isinstance(meta, EventMeta) else ""
    return (
        '<div class="card">'
        f'<h2><a href="{event.url}">{html.escape(event.title)}</a></h2>'
        f"<p>{html.escape(meta.date_text)} @ {location}</p>"
        f"{rsvp}"
        "</div>"
    )


def episode_card(episode: Document) -> str:
    meta = episode.meta
    duration = html.escape(meta.duration) if isinstance(meta, EpisodeMeta) else ""
    return (
        '<div class="card">'
        f'<h2><a href="{episode.url}">{html.escape(episode.title)}</a></h2>'
        f"<p>{duration}</p>"
        f"<small>{html.escape(meta.date_text)}</small>"
        "</div>"
    )


CARD_RENDERERS = {
    "blog": post_card,
    "events": event_card,
    "podcast": episode_card,
}


def post_page(ctx: SiteContext, post: Document) -> str:
    meta = post.meta
    tags = meta.tags if isinstance(meta, PostMeta) else ()
    cover = ""
    if post.cover_image:
        cover = (
            f'<img src="{html.escape(post.cover_image)}" alt="Cover Image" '
            'style="margin-bottom: 2rem; box-shadow: 0 4px 12px rgba(0,0,0,0.15);" />'
        )
    content = (
        "<article>"
        f"<h1>{html.escape(post.title)}</h1>"
        f'<p class="meta"><small>{html.escape(meta.date_text)} | {post.reading_time}</small></p>'
        f'<div class="post-tags">{tag_links(tags)}</div>'
        f"{cover}"
        f'<div class="content">{post.html}</div>'
        '<p><a href="/blog/index.html">Back to all posts</a></p>'
        "</article>"
    )
    seo = SeoMeta(
        type="article",
        path=post.url,
        image=post.cover_image,
        description=post.description,
        date=post.date,
    )
    return render_page(ctx, content, post.title, seo)


def event_page(ctx: SiteContext, event: Document) -> str:
    meta = event.meta
    location = meta.location if isinstance(meta, EventMeta) else ""
    rsvp = ""
    if isinstance(meta, EventMeta) and meta.rsvp_link:
        rsvp = (
            f'<a href="{html.escape(meta.rsvp_link)}" target="_blank" rel="noopener" '
            'class="btn-support">RSVP / Register</a>'
        )
    content = (
        "<article>"
        f"<h1>{html.escape(event.title)}</h1>"
        f'<p class="meta"><strong>Date:</strong> {html.escape(meta.date_text)} | '
        f"<strong>Location:</strong> {html.escape(location)}</p>"
        f"{rsvp}"
        "<hr>"
        f'<div class="content">{event.html}</div>'
        "</article>"
    )
    seo = SeoMeta(
        type="event",
        path=event.url,
        description=event.description,
        date=event.date,
        location=location,
    )
    return render_page(ctx, content, event.title, seo)


def episode_page(ctx: SiteContext, episode: Document) -> str:
    meta = episode.meta
    audio = ""
    duration = ""
    if isinstance(meta, EpisodeMeta):
        duration = meta.duration
        if meta.audio_url:
            audio_url = html.escape(meta.audio_url)
            audio = (
                f'<audio controls src="{audio_url}" style="width:100%; margin: 1rem 0;"></audio>'
                f'<p><a href="{audio_url}" download>Download MP3</a></p>'
            )
    content = (
        "<article>"
        f"<h1>{html.escape(episode.title)}</h1>"
        f'<p class="meta">Posted: {html.escape(meta.date_text)} | Duration: {html.escape(duration)}</p>'
        f"{audio}"
        f'<div class="content">{episode.html}</div>'
        "</article>"
    )
    seo = SeoMeta(path=episode.url, description=episode.description, date=episode.date)
    return render_page(ctx, content, episode.title, seo)


PAGE_RENDERERS = {
    "blog": post_page,
    "events": event_page,
    "podcast": episode_page,
}


def load_document(
    ctx: SiteContext,
    spec: CollectionSpec,
    root: Path,
    path: Path,
) -> Optional[Document]:
    """Read and normalise one source; ``None`` when it is skipped."""
    rel = path.relative_to(root)
    label = f"{spec.kind}/{rel.as_posix()}"
    try:
        front_matter, body = read_document(path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        print(f"Skipping {label}: {exc}", file=sys.stderr)
        return None
    if not ctx.include_drafts and not is_published(front_matter):
        return None

    def synthesize(title: str, slug: str, kind: str) -> str:
        return synthesize_image(ctx.output_dir, title, slug, ctx.theme, kind)

    return normalize_document(spec, rel, front_matter, body, synthesize)


def build_collection(ctx: SiteContext, spec: CollectionSpec) -> CollectionResult:
    """Render every document of one kind and its index page.

    Detail pages are written from worker threads; the collection is only
    finalised once every worker has returned.
    """
    root = ctx.content_dir / spec.kind
    sources = unique_sources(root, list_sources(root))
    render_detail = PAGE_RENDERERS[spec.kind]

    def process(path: Path) -> Optional[Document]:
        document = load_document(ctx, spec, root, path)
        if document is None:
            return None
        write_text(ctx.output_dir / spec.kind / f"{document.slug}.html", render_detail(ctx, document))
        return document

    collection = Collection(spec)
    search_entries: list[SearchEntry] = []
    for document in run_parallel(process, sources, ctx.workers):
        if document is None:
            continue
        collection.add(document)
        search_entries.append(
            SearchEntry(
                title=document.title,
                type=spec.search_type,
                url=document.url,
                description=document.description,
            )
        )

    finalized = collection.finalize()
    card = CARD_RENDERERS[spec.kind]
    cards = "\n".join(card(document) for document in finalized)
    if not cards:
        cards = "<p>Nothing here yet.</p>"
    content = f"<h1>{html.escape(INDEX_HEADINGS[spec.kind])}</h1>\n{cards}"
    seo = SeoMeta(path=f"/{spec.kind}/index.html", description=INDEX_DESCRIPTIONS[spec.kind])
    write_text(
        ctx.output_dir / spec.kind / "index.html",
        render_page(ctx, content, feature_label(ctx.config, spec.kind), seo),
    )
    print(f"Built {spec.label} ({len(finalized)} documents).")
    return CollectionResult(finalized, search_entries)


def build_home(ctx: SiteContext) -> None:
    home_path = ctx.content_dir / "home.md"
    body_html = "<h1>Welcome</h1>"
    hero = ""
    description = ""
    if home_path.exists():
        try:
            front_matter, body = read_document(home_path)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            print(f"Skipping home page content: {exc}", file=sys.stderr)
        else:
            document = normalize_document(HOME, "home.md", front_matter, body)
            hero = document.meta.hero_image
            if hero == "auto":
                title = document.title or str(ctx.config.get("site_title", ""))
                hero = synthesize_image(ctx.output_dir, title, "home", ctx.theme, "hero")
            hero_html = ""
            if hero:
                hero_html = f'<div class="hero"><img src="{html.escape(hero)}" alt="Hero Image"></div>'
            body_html = f"{hero_html}\n{document.html}"
            description = document.meta.description
    seo = SeoMeta(path="/", image=hero, description=description)
    write_text(ctx.output_dir / "index.html", render_page(ctx, body_html, "Home", seo))
    print("Built home page.")
