"""Catalog records as returned by the Admin API, plus per-locale overrides."""

from dataclasses import dataclass, field
from datetime import datetime

WILDCARD = "*"


@dataclass(frozen=True)
class ImageRef:
    id: str
    url: str
    alt_text: str | None = None


@dataclass(frozen=True)
class CatalogEntity:
    kind: str  # "product" | "collection"
    id: str
    title: str
    handle: str
    updated_at: datetime
    images: tuple[ImageRef, ...] = ()
    canonical_url: str | None = None


@dataclass
class LocalizedOverride:
    title: str | None = None
    image_alt: dict[str, str] = field(default_factory=dict)

    @property
    def usable(self) -> bool:
        return bool(self.title) or any(self.image_alt.values())


@dataclass(frozen=True)
class Edge:
    """One listing edge. ``entity`` is None for skip-shaped (cursor-only) queries."""

    cursor: str
    updated_at: datetime
    entity: CatalogEntity | None = None


@dataclass(frozen=True)
class Page:
    edges: list[Edge]
    has_next_page: bool


def parse_timestamp(value: str) -> datetime:
    """Admin API timestamps are ISO-8601 with a trailing Z."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
