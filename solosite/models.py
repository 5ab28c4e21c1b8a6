from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class DocumentMeta:
    title: str
    slug: str
    description: str = ""
    published: bool = True
    date: Optional[dt.datetime] = None
    date_text: str = ""
    fields: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class PostMeta(DocumentMeta):
    tags: tuple[str, ...] = ()
    cover_image: str = ""


@dataclass(frozen=True)
class EventMeta(DocumentMeta):
    location: str = ""
    rsvp_link: str = ""


@dataclass(frozen=True)
class EpisodeMeta(DocumentMeta):
    audio_url: str = ""
    duration: str = ""
    length_bytes: int = 0


@dataclass(frozen=True)
class PageMeta(DocumentMeta):
    hero_image: str = ""


@dataclass(frozen=True)
class CollectionSpec:
    """Static description of one content kind."""

    kind: str
    label: str
    search_type: str
    date_field: str
    newest_first: bool
    meta_class: type


BLOG = CollectionSpec("blog", "Blog", "Blog", "date", True, PostMeta)
EVENTS = CollectionSpec("events", "Events", "Event", "event_date", False, EventMeta)
PODCAST = CollectionSpec("podcast", "Podcast", "Podcast", "date", True, EpisodeMeta)
HOME = CollectionSpec("page", "Home", "Page", "date", True, PageMeta)

COLLECTION_SPECS = {spec.kind: spec for spec in (BLOG, EVENTS, PODCAST)}


@dataclass(frozen=True)
class Document:
    kind: str
    source_path: str
    slug: str
    meta: DocumentMeta
    body: str
    html: str = ""
    reading_minutes: int = 1
    excerpt: str = ""
    cover_image: str = ""

    @property
    def url(self) -> str:
        return f"/{self.kind}/{self.slug}.html"

    @property
    def title(self) -> str:
        return self.meta.title

    @property
    def date(self) -> Optional[dt.datetime]:
        return self.meta.date

    @property
    def reading_time(self) -> str:
        return f"{self.reading_minutes} min read"

    @property
    def description(self) -> str:
        if self.meta.description:
            return self.meta.description
        if isinstance(self.meta, EventMeta):
            return f"Event: {self.meta.title} at {self.meta.location}"
        if isinstance(self.meta, EpisodeMeta):
            return f"Podcast Episode: {self.meta.title}"
        return self.excerpt


@dataclass(frozen=True)
class SearchEntry:
    title: str
    type: str
    url: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "type": self.type,
            "url": self.url,
            "description": self.description,
        }


@dataclass(frozen=True)
class SeoMeta:
    type: str = "website"
    path: str = ""
    image: str = ""
    description: str = ""
    date: Optional[dt.datetime] = None
    location: str = ""


def sort_documents(documents: list[Document], newest_first: bool) -> list[Document]:
    """Order by date; documents without a valid date keep discovery order at the end."""
    dated = [doc for doc in documents if doc.date is not None]
    undated = [doc for doc in documents if doc.date is None]
    dated.sort(key=lambda doc: doc.date, reverse=newest_first)
    return dated + undated


@dataclass
class Collection:
    """A collection that is still accumulating documents."""

    spec: CollectionSpec
    documents: list[Document] = field(default_factory=list)

    def add(self, document: Document) -> None:
        self.documents.append(document)

    def finalize(self) -> FinalizedCollection:
        ordered = sort_documents(self.documents, self.spec.newest_first)
        return FinalizedCollection(self.spec, tuple(ordered))


@dataclass(frozen=True)
class FinalizedCollection:
    """Fully populated, sorted collection; the only form index generators accept."""

    spec: CollectionSpec
    documents: tuple[Document, ...]

    @property
    def kind(self) -> str:
        return self.spec.kind

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self):
        return iter(self.documents)


@dataclass(frozen=True)
class CollectionResult:
    collection: FinalizedCollection
    search_entries: list[SearchEntry]


@dataclass(frozen=True)
class SiteContext:
    """Everything a page or index writer needs, fixed for one build."""

    config: dict
    theme: dict
    css: str
    content_dir: Path
    output_dir: Path
    now: dt.datetime
    workers: int = 1
    include_drafts: bool = False


@dataclass
class TagBucket:
    name: str
    slug: str
    posts: list[Document] = field(default_factory=list)

    @property
    def url(self) -> str:
        return f"/tags/{self.slug}.html"
