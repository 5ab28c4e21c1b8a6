"""Markdown content to static site: blog, events, podcast, tags, feeds."""

__version__ = "0.1.0"
