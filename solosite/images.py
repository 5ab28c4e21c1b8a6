from __future__ import annotations

from pathlib import Path
from xml.sax.saxutils import escape

from .render import theme_section, write_text

IMAGE_KINDS = {
    "cover": (1200, 630, 64),
    "hero": (1600, 600, 80),
    "favicon": (64, 64, 40),
}


def image_url(slug: str, kind: str) -> str:
    if kind == "favicon":
        return "/assets/favicon.svg"
    if kind == "cover":
        return f"/assets/covers/{slug}.svg"
    return f"/assets/{kind}/{slug}.svg"


def build_svg(text: str, theme: dict, kind: str) -> str:
    width, height, font_size = IMAGE_KINDS[kind]
    colors = theme_section(theme, "colors")
    fonts = theme_section(theme, "fonts")
    font = escape(fonts["heading"], {'"': "&quot;"})
    if kind == "favicon":
        letter = escape((text.strip()[:1] or "S").upper())
        return (
            f'<svg width="{width}" height="{height}" viewBox="0 0 {width} {height}" '
            'xmlns="http://www.w3.org/2000/svg">\n'
            f'<rect width="100%" height="100%" rx="14" fill="{escape(colors["primary"])}" />\n'
            f'<text x="50%" y="50%" dominant-baseline="central" text-anchor="middle" '
            f'font-family="{font}" font-weight="bold" '
            f'font-size="{font_size}" fill="{escape(colors["on_primary"])}">{letter}</text>\n'
            "</svg>\n"
        )
    return (
        f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">\n'
        "<defs>\n"
        '<linearGradient id="grad" x1="0%" y1="0%" x2="100%" y2="100%">\n'
        f'<stop offset="0%" style="stop-color:{escape(colors["primary"])};stop-opacity:1" />\n'
        f'<stop offset="100%" style="stop-color:{escape(colors["secondary"])};stop-opacity:1" />\n'
        "</linearGradient>\n"
        '<pattern id="grid" width="40" height="40" patternUnits="userSpaceOnUse">\n'
        f'<path d="M 40 0 L 0 0 0 40" fill="none" stroke="{escape(colors["on_primary"])}" '
        'stroke-width="1" opacity="0.1"/>\n'
        "</pattern>\n"
        "</defs>\n"
        '<rect width="100%" height="100%" fill="url(#grad)" />\n'
        '<rect width="100%" height="100%" fill="url(#grid)" />\n'
        f'<text x="50%" y="50%" dominant-baseline="middle" text-anchor="middle" '
        f'font-family="{font}" font-weight="bold" '
        f'font-size="{font_size}" fill="{escape(colors["on_primary"])}">{escape(text)}</text>\n'
        f'<rect x="45%" y="60%" width="10%" height="6" fill="{escape(colors["tertiary"])}" rx="3" />\n'
        "</svg>\n"
    )


def synthesize_image(output_dir: Path, title: str, slug: str, theme: dict, kind: str) -> str:
    """Write a placeholder SVG for ``slug`` and return its site-absolute URL.

    The file name depends only on ``slug`` and ``kind`` and the content only on
    the inputs, so repeated builds produce identical files.
    """
    if kind not in IMAGE_KINDS:
        raise ValueError(f"Unknown image kind: {kind}")
    url = image_url(slug, kind)
    write_text(output_dir / url.lstrip("/"), build_svg(title, theme, kind))
    return url
