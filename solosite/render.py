from __future__ import annotations

import datetime as dt
import html
import json
import re
import shutil
from pathlib import Path
from typing import Optional

import markdown
from pygments.formatters import HtmlFormatter

from .config import feature, feature_mode, site_domain
from .models import COLLECTION_SPECS, SeoMeta
from .utils import iso_date

IMG_SRC_RE = re.compile(r'<img([^>]*?)src="([^"]+)"', re.IGNORECASE)
MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "codehilite"]
MARKDOWN_EXTENSION_CONFIGS = {"codehilite": {"guess_lang": False, "css_class": "codehilite"}}

DEFAULT_THEME = {
    "colors": {
        "primary": "#6750a4",
        "on_primary": "#ffffff",
        "primary_container": "#eaddff",
        "on_primary_container": "#21005d",
        "secondary": "#625b71",
        "secondary_container": "#e8def8",
        "on_secondary_container": "#1d192b",
        "tertiary": "#7d5260",
        "surface": "#fffbfe",
        "on_surface": "#1c1b1f",
        "outline": "#79747e",
    },
    "fonts": {"heading": "'Roboto', sans-serif", "body": "'Roboto', sans-serif"},
    "scale": {"border_radius": "12px", "spacing_unit": "8px"},
}


def render_markdown(text: str) -> str:
    md = markdown.Markdown(
        extensions=MARKDOWN_EXTENSIONS,
        extension_configs=MARKDOWN_EXTENSION_CONFIGS,
    )
    return md.convert(text)


def fix_relative_img_src(html_text: str, root: str) -> str:
    def repl(match: re.Match) -> str:
        attrs = match.group(1)
        src = match.group(2)
        if src.startswith(("http://", "https://", "data:", "#", "/", "./", "../")):
            return match.group(0)
        src = src.lstrip("/")
        return f'<img{attrs}src="{root}/{src}"'

    return IMG_SRC_RE.sub(repl, html_text)


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def copy_static(static_dir: Path, output_dir: Path) -> None:
    for item in sorted(static_dir.iterdir()):
        dest = output_dir / item.name
        if item.is_dir():
            shutil.copytree(item, dest, dirs_exist_ok=True)
        else:
            shutil.copy2(item, dest)


def theme_section(theme: dict, name: str) -> dict:
    merged = dict(DEFAULT_THEME[name])
    value = (theme or {}).get(name)
    if isinstance(value, dict):
        merged.update({key: str(item) for key, item in value.items() if item is not None})
    return merged


def generate_css(theme: dict) -> str:
    if not theme or not isinstance(theme.get("colors"), dict):
        return HtmlFormatter().get_style_defs(".codehilite")
    colors = theme_section(theme, "colors")
    fonts = theme_section(theme, "fonts")
    scale = theme_section(theme, "scale")
    heading_font = fonts["heading"].split(",")[0].replace("'", "").replace('"', "").strip()
    body_font = fonts["body"].split(",")[0].replace("'", "").replace('"', "").strip()
    fonts_url = (
        f"https://fonts.googleapis.com/css2?family={heading_font.replace(' ', '+')}:wght@400;700"
        f"&family={body_font.replace(' ', '+')}:wght@300;400;600&display=swap"
    )
    variables = "\n".join(
        [
            f"  --md-sys-color-primary: {colors['primary']};",
            f"  --md-sys-color-on-primary: {colors['on_primary']};",
            f"  --md-sys-color-primary-container: {colors['primary_container']};",
            f"  --md-sys-color-on-primary-container: {colors['on_primary_container']};",
            f"  --md-sys-color-secondary: {colors['secondary']};",
            f"  --md-sys-color-secondary-container: {colors['secondary_container']};",
            f"  --md-sys-color-on-secondary-container: {colors['on_secondary_container']};",
            f"  --md-sys-color-surface: {colors['surface']};",
            f"  --md-sys-color-on-surface: {colors['on_surface']};",
            f"  --md-sys-color-outline: {colors['outline']};",
            f"  --md-sys-typescale-headline-font: {fonts['heading']};",
            f"  --md-sys-typescale-body-font: {fonts['body']};",
            f"  --md-sys-shape-corner: {scale['border_radius']};",
            f"  --spacing: {scale['spacing_unit']};",
            "  --max-width: 900px;",
        ]
    )
    rules = """
*, *::before, *::after { box-sizing: border-box; }
body { font-family: var(--md-sys-typescale-body-font); background: var(--md-sys-color-surface);
  color: var(--md-sys-color-on-surface); margin: 0; line-height: 1.6; }
header { padding: 1rem 2rem; display: flex; justify-content: space-between; align-items: center;
  background: var(--md-sys-color-primary-container); color: var(--md-sys-color-on-primary-container); }
header .brand h1 { margin: 0; font-size: 1.5rem; }
nav { display: flex; align-items: center; gap: 1.5rem; flex-wrap: wrap; }
nav a { text-decoration: none; color: inherit; font-weight: 600; }
main { max-width: var(--max-width); margin: 3rem auto; padding: 0 1.5rem; min-height: 80vh; }
footer { text-align: center; padding: 3rem 1rem; margin-top: 4rem;
  background: var(--md-sys-color-secondary-container); color: var(--md-sys-color-on-secondary-container); }
h1, h2, h3, h4 { font-family: var(--md-sys-typescale-headline-font); line-height: 1.2; }
h1 { color: var(--md-sys-color-primary); }
a { color: var(--md-sys-color-primary); text-underline-offset: 3px; }
img { max-width: 100%; height: auto; border-radius: var(--md-sys-shape-corner); display: block; margin: 2rem 0; }
blockquote { margin: 2rem 0; padding-left: 1.5rem; border-left: 4px solid var(--md-sys-color-primary); }
.btn-support { display: inline-block; background: var(--md-sys-color-primary); color: var(--md-sys-color-on-primary);
  padding: 0.6rem 1.2rem; border-radius: 50px; text-decoration: none; font-weight: 600; }
.card { background: white; padding: 2rem; border-radius: var(--md-sys-shape-corner);
  box-shadow: 0 2px 8px rgba(0,0,0,0.05); margin-bottom: 1.5rem; }
.card h2 { margin-top: 0; }
.card h2 a { text-decoration: none; color: inherit; }
.chip { display: inline-block; padding: 0.1rem 0.6rem; border-radius: 50px; margin-right: 0.3rem;
  background: var(--md-sys-color-secondary-container); text-decoration: none; }
.meta { font-size: 0.9rem; color: var(--md-sys-color-outline); text-transform: uppercase; font-weight: 600; }
@media (max-width: 768px) {
  header { flex-direction: column; gap: 1rem; }
  main { padding: 0 1rem; }
}
"""
    highlight_css = HtmlFormatter().get_style_defs(".codehilite")
    return f"@import url('{fonts_url}');\n:root {{\n{variables}\n}}\n{rules}\n{highlight_css}"


def build_nav(config: dict) -> str:
    links = [
        f'<a href="{html.escape(str(link["url"]))}">{html.escape(str(link.get("label", "")))}</a>'
        for link in config.get("nav_links", [])
    ]
    for kind in COLLECTION_SPECS:
        mode = feature_mode(config, kind)
        entry = feature(config, kind)
        label = html.escape(str(entry.get("label") or COLLECTION_SPECS[kind].label))
        if mode == "internal":
            links.append(f'<a href="/{kind}/index.html">{label}</a>')
        elif mode == "external" and entry.get("external_url"):
            url = html.escape(str(entry["external_url"]))
            links.append(f'<a href="{url}" target="_blank" rel="noopener">{label} <small>&#8599;</small></a>')
    return " ".join(links)


def structured_data(page_title: str, full_title: str, url: str, description: str,
                    image: str, config: dict, seo: SeoMeta) -> dict:
    author = {"@type": "Person", "name": str(config.get("author_name", ""))}
    published = iso_date(seo.date) if seo.date else ""
    if seo.type == "article":
        return {
            "@context": "https://schema.org",
            "@type": "BlogPosting",
            "mainEntityOfPage": {"@type": "WebPage", "@id": url},
            "headline": page_title,
            "description": description,
            "image": image,
            "author": author,
            "datePublished": published,
            "dateModified": published,
        }
    if seo.type == "event":
        return {
            "@context": "https://schema.org",
            "@type": "Event",
            "name": page_title,
            "description": description,
            "startDate": published,
            "eventStatus": "https://schema.org/EventScheduled",
            "eventAttendanceMode": "https://schema.org/OfflineEventAttendanceMode",
            "location": {"@type": "Place", "name": seo.location, "address": seo.location},
            "image": [image] if image else [],
            "organizer": {**author, "url": site_domain(config)},
        }
    return {
        "@context": "https://schema.org",
        "@type": "WebPage",
        "url": url,
        "name": full_title,
        "description": description,
        "author": author,
    }


SEARCH_SCRIPT = """
const searchInput = document.getElementById('searchInput');
let searchIndex = null;
searchInput.addEventListener('input', async (e) => {
  const q = e.target.value.toLowerCase();
  const resultsDiv = document.getElementById('searchResults');
  if (q.length < 2) { resultsDiv.innerHTML = '<p>Type 2+ characters...</p>'; return; }
  if (!searchIndex) {
    try { searchIndex = await fetch('/search.json').then(r => r.json()); }
    catch (err) { console.error('Failed to load search index'); return; }
  }
  const results = searchIndex.filter(i =>
    (i.title && i.title.toLowerCase().includes(q)) ||
    (i.description && i.description.toLowerCase().includes(q)));
  resultsDiv.innerHTML = results.length === 0 ? '<p>No results found.</p>' : results.map(r => `
    <div class="card"><span class="meta">${r.type}</span>
    <a href="${r.url}">${r.title}</a><p>${r.description.substring(0, 80)}...</p></div>`).join('');
});
"""


def layout(
    body_html: str,
    page_title: str,
    config: dict,
    css: str,
    seo: Optional[SeoMeta] = None,
    year: Optional[int] = None,
) -> str:
    """Wrap a rendered body in the full page shell with navigation and SEO tags."""
    seo = seo or SeoMeta()
    domain = site_domain(config)
    site_title = str(config.get("site_title", ""))
    full_title = f"{page_title} | {site_title}" if site_title else page_title
    description = seo.description or str(config.get("site_description", ""))
    url = f"{domain}{seo.path}" if seo.path else f"{domain}/"
    image = ""
    if seo.image:
        image = seo.image if seo.image.startswith(("http://", "https://")) else f"{domain}{seo.image}"
    og_type = seo.type if seo.type in {"website", "article"} else "website"

    esc_title = html.escape(full_title)
    esc_description = html.escape(description)
    esc_url = html.escape(url)
    head = [
        '<meta charset="UTF-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">',
        f"<title>{esc_title}</title>",
        f'<meta name="description" content="{esc_description}">',
        f'<link rel="canonical" href="{esc_url}">',
        '<link rel="icon" type="image/svg+xml" href="/assets/favicon.svg">',
        f'<meta property="og:type" content="{og_type}">',
        f'<meta property="og:url" content="{esc_url}">',
        f'<meta property="og:title" content="{esc_title}">',
        f'<meta property="og:description" content="{esc_description}">',
        '<meta name="twitter:card" content="summary_large_image">',
        f'<meta name="twitter:url" content="{esc_url}">',
        f'<meta name="twitter:title" content="{esc_title}">',
        f'<meta name="twitter:description" content="{esc_description}">',
    ]
    if image:
        head.append(f'<meta property="og:image" content="{html.escape(image)}">')
        head.append(f'<meta name="twitter:image" content="{html.escape(image)}">')
    if config.get("twitter_handle"):
        head.append(f'<meta name="twitter:creator" content="{html.escape(str(config["twitter_handle"]))}">')
    if feature_mode(config, "blog") == "internal":
        head.append(f'<link rel="alternate" type="application/rss+xml" title="{html.escape(site_title)}" href="/rss.xml">')
    if feature_mode(config, "podcast") == "internal":
        head.append('<link rel="alternate" type="application/rss+xml" title="Podcast" href="/feed.xml">')
    json_ld = json.dumps(
        structured_data(page_title, full_title, url, description, image, config, seo),
        ensure_ascii=False,
    ).replace("</", "<\\/")
    head.append(f'<script type="application/ld+json">{json_ld}</script>')
    if config.get("custom_head_html"):
        head.append(str(config["custom_head_html"]))
    head.append(f"<style>{css}</style>")

    support = ""
    if config.get("support_link"):
        support = f'<a href="{html.escape(str(config["support_link"]))}" class="btn-support">Support Me</a>'
    subscribe = ""
    if config.get("email_subscribe_form_url"):
        subscribe = (
            '<section class="card">'
            "<h3>Join the Mailing List</h3>"
            "<p>Get updates directly to your inbox.</p>"
            f'<a href="{html.escape(str(config["email_subscribe_form_url"]))}" target="_blank" '
            'rel="noopener" class="btn-support">Subscribe Now</a>'
            "</section>"
        )
    socials = " | ".join(
        f'<a href="{html.escape(str(url_value))}">{html.escape(str(name))}</a>'
        for name, url_value in (config.get("social_links") or {}).items()
    )
    year = year or dt.date.today().year
    author = html.escape(str(config.get("author_name", "")))

    return "\n".join(
        [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            "\n".join(head),
            "</head>",
            "<body>",
            "<header>",
            f'<div class="brand"><h1><a href="/" style="text-decoration:none;color:inherit;">{html.escape(site_title)}</a></h1></div>',
            f"<nav>{build_nav(config)} "
            "<button onclick=\"document.getElementById('searchDialog').showModal()\" aria-label=\"Search\">Search</button>"
            f" {support}</nav>",
            "</header>",
            "<main>",
            body_html,
            subscribe,
            "</main>",
            "<footer>",
            f"<p>&copy; {year} {author}. Powered by solosite.</p>",
            f'<div class="socials">{socials}</div>',
            "</footer>",
            '<dialog id="searchDialog">',
            '<form method="dialog"><button aria-label="Close">&times;</button></form>',
            '<input type="text" id="searchInput" placeholder="Type to find posts, events...">',
            '<div id="searchResults"></div>',
            "</dialog>",
            f"<script>{SEARCH_SCRIPT}</script>",
            "</body>",
            "</html>",
        ]
    )
