from __future__ import annotations

import html
import json
from pathlib import Path
from typing import Optional

from .config import active_kinds, site_domain
from .content import tag_slug
from .models import FinalizedCollection, SearchEntry, SeoMeta, SiteContext, TagBucket
from .pages import post_card, render_page
from .render import write_text
from .utils import iso_date, join_url, parse_int, rfc822_date

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
SEED_PRIORITY_HOME = "1.0"
SEED_PRIORITY_INDEX = "0.8"
SEED_PRIORITY_COLLECTION = "0.9"
DEFAULT_PRIORITY = "0.6"


def xml_escape(value: object) -> str:
    return html.escape(str(value or ""), quote=True)


def cdata(value: str) -> str:
    return "<![CDATA[" + value.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def build_tag_index(posts: FinalizedCollection) -> dict[str, TagBucket]:
    """Group finalized posts by exact tag name; posts keep their sort order."""
    tag_index: dict[str, TagBucket] = {}
    for post in posts:
        for tag in getattr(post.meta, "tags", ()):
            bucket = tag_index.get(tag)
            if bucket is None:
                bucket = tag_index[tag] = TagBucket(name=tag, slug=tag_slug(tag))
            if post not in bucket.posts:
                bucket.posts.append(post)
    return tag_index


def write_tag_pages(ctx: SiteContext, tag_index: dict[str, TagBucket]) -> None:
    for bucket in tag_index.values():
        cards = "\n".join(post_card(post) for post in bucket.posts)
        content = (
            f"<h1>#{html.escape(bucket.name)}</h1>\n"
            f"<p>{len(bucket.posts)} posts tagged {html.escape(bucket.name)}.</p>\n"
            f"{cards}\n"
            '<p><a href="/tags/index.html">All tags</a></p>'
        )
        seo = SeoMeta(path=bucket.url, description=f"Posts tagged {bucket.name}")
        write_text(ctx.output_dir / "tags" / f"{bucket.slug}.html", render_page(ctx, content, f"#{bucket.name}", seo))

    rows = []
    for bucket in sorted(tag_index.values(), key=lambda b: (b.name.lower(), b.name)):
        rows.append(
            f'<li><a href="{bucket.url}">{html.escape(bucket.name)}</a>'
            f' <span class="count">{len(bucket.posts)}</span></li>'
        )
    listing = f'<ul class="tag-list">{"".join(rows)}</ul>' if rows else "<p>No tags yet.</p>"
    seo = SeoMeta(path="/tags/index.html", description="All tags")
    write_text(ctx.output_dir / "tags" / "index.html", render_page(ctx, f"<h1>Tags</h1>\n{listing}", "Tags", seo))
    print(f"Built tag pages ({len(tag_index)} tags).")


def feed_limit(ctx: SiteContext) -> Optional[int]:
    """Number of posts in the blog feeds; ``None`` (the default) lists them all."""
    limit = parse_int(ctx.config.get("feed_limit"), 0)
    return limit if limit > 0 else None


def build_rss(ctx: SiteContext, posts: FinalizedCollection) -> None:
    domain = site_domain(ctx.config)
    items = []
    for post in posts.documents[: feed_limit(ctx)]:
        link = join_url(domain, post.url)
        lines = [
            "<item>",
            f"<title>{xml_escape(post.title)}</title>",
            f"<link>{xml_escape(link)}</link>",
            f'<guid isPermaLink="true">{xml_escape(link)}</guid>',
        ]
        if post.date is not None:
            lines.append(f"<pubDate>{rfc822_date(post.date)}</pubDate>")
        for tag in getattr(post.meta, "tags", ()):
            lines.append(f"<category>{xml_escape(tag)}</category>")
        lines.append(f"<description>{xml_escape(post.description)}</description>")
        lines.append("</item>")
        items.append("\n".join(lines))
    rss = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0">',
            "<channel>",
            f"<title>{xml_escape(ctx.config.get('site_title', ''))}</title>",
            f"<link>{xml_escape(domain)}/</link>",
            f"<description>{xml_escape(ctx.config.get('site_description', ''))}</description>",
            f"<lastBuildDate>{rfc822_date(ctx.now)}</lastBuildDate>",
            "\n".join(items),
            "</channel>",
            "</rss>",
        ]
    )
    write_text(ctx.output_dir / "rss.xml", rss)


def build_atom(ctx: SiteContext, posts: FinalizedCollection) -> None:
    domain = site_domain(ctx.config)
    entries = []
    for post in posts.documents[: feed_limit(ctx)]:
        link = join_url(domain, post.url)
        updated = iso_date(post.date) if post.date is not None else iso_date(ctx.now)
        entries.append(
            "\n".join(
                [
                    "<entry>",
                    f"<title>{xml_escape(post.title)}</title>",
                    f'<link href="{xml_escape(link)}" />',
                    f"<id>{xml_escape(link)}</id>",
                    f"<updated>{updated}</updated>",
                    f"<summary>{xml_escape(post.description)}</summary>",
                    "</entry>",
                ]
            )
        )
    atom = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f"<title>{xml_escape(ctx.config.get('site_title', ''))}</title>",
            f"<id>{xml_escape(domain)}/</id>",
            f"<updated>{iso_date(ctx.now)}</updated>",
            f"<author><name>{xml_escape(ctx.config.get('author_name', ''))}</name></author>",
            f'<link href="{xml_escape(domain)}/atom.xml" rel="self" />',
            f'<link href="{xml_escape(domain)}/" />',
            "\n".join(entries),
            "</feed>",
        ]
    )
    write_text(ctx.output_dir / "atom.xml", atom)


def build_podcast_feed(ctx: SiteContext, episodes: FinalizedCollection) -> None:
    domain = site_domain(ctx.config)
    items = []
    for episode in episodes:
        meta = episode.meta
        link = join_url(domain, episode.url)
        lines = [
            "<item>",
            f"<title>{xml_escape(episode.title)}</title>",
            f"<link>{xml_escape(link)}</link>",
            f'<guid isPermaLink="true">{xml_escape(link)}</guid>',
            f"<description>{cdata(episode.html)}</description>",
        ]
        audio_url = getattr(meta, "audio_url", "")
        if audio_url:
            length = getattr(meta, "length_bytes", 0)
            lines.append(f'<enclosure url="{xml_escape(audio_url)}" length="{length}" type="audio/mpeg" />')
            duration = getattr(meta, "duration", "")
            if duration:
                lines.append(f"<itunes:duration>{xml_escape(duration)}</itunes:duration>")
        if episode.date is not None:
            lines.append(f"<pubDate>{rfc822_date(episode.date)}</pubDate>")
        lines.append("</item>")
        items.append("\n".join(lines))
    title = f"{ctx.config.get('site_title', '')} Podcast".strip()
    rss = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<rss version="2.0" xmlns:itunes="{ITUNES_NS}">',
            "<channel>",
            f"<title>{xml_escape(title)}</title>",
            f"<description>{xml_escape(ctx.config.get('site_description', ''))}</description>",
            f"<link>{xml_escape(domain)}</link>",
            f"<itunes:author>{xml_escape(ctx.config.get('author_name', ''))}</itunes:author>",
            f"<lastBuildDate>{rfc822_date(ctx.now)}</lastBuildDate>",
            "\n".join(items),
            "</channel>",
            "</rss>",
        ]
    )
    write_text(ctx.output_dir / "feed.xml", rss)


def write_search_index(output_dir: Path, entries: list[SearchEntry]) -> None:
    payload = [entry.to_dict() for entry in entries]
    write_text(output_dir / "search.json", json.dumps(payload, indent=2, ensure_ascii=True))


def write_robots(ctx: SiteContext) -> None:
    domain = site_domain(ctx.config)
    write_text(ctx.output_dir / "robots.txt", f"User-agent: *\nAllow: /\nSitemap: {domain}/sitemap.xml\n")


def collect_html_files(output_dir: Path) -> list[str]:
    return sorted(
        path.relative_to(output_dir).as_posix()
        for path in output_dir.rglob("*.html")
        if path.is_file()
    )


def build_sitemap(ctx: SiteContext) -> None:
    """Write sitemap.xml from the files on disk; must run after every other writer."""
    domain = site_domain(ctx.config)
    seeds = [
        (f"{domain}/", SEED_PRIORITY_HOME),
        (f"{domain}/index.html", SEED_PRIORITY_INDEX),
    ]
    for kind in active_kinds(ctx.config):
        seeds.append((f"{domain}/{kind}/index.html", SEED_PRIORITY_COLLECTION))
    seen = {url for url, _ in seeds}
    urls = list(seeds)
    for rel in collect_html_files(ctx.output_dir):
        url = f"{domain}/{rel}"
        if url in seen:
            continue
        seen.add(url)
        urls.append((url, DEFAULT_PRIORITY))

    lastmod = iso_date(ctx.now)
    items = [
        "\n".join(
            [
                "<url>",
                f"<loc>{xml_escape(url)}</loc>",
                f"<lastmod>{lastmod}</lastmod>",
                f"<priority>{priority}</priority>",
                "</url>",
            ]
        )
        for url, priority in urls
    ]
    sitemap = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
            "\n".join(items),
            "</urlset>",
        ]
    )
    write_text(ctx.output_dir / "sitemap.xml", sitemap)
    print(f"Built sitemap.xml ({len(urls)} urls).")
