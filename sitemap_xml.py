"""Sitemap documents with the Google image extension."""

import re
from dataclasses import dataclass, field
from urllib.parse import urlsplit
from xml.sax.saxutils import escape

from locales import strip_port
from models import CatalogEntity, LocalizedOverride
from translations import resolve_caption, resolve_title

NS = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9", "image": "http://www.google.com/schemas/sitemap-image/1.1"}

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}
_SCHEME_HOST = re.compile(r"^https?://[^/]+")
# /s/files/<shop ids>/<folder>/<name>; only these folders are mirrored under /cdn/shop
_CDN_SHOP_PATH = re.compile(r"^/s/files/(?:\d+/)+((?:products|files|collections)/.+)$")


@dataclass(frozen=True)
class ImageEntry:
    loc: str
    title: str = ""
    caption: str = ""


@dataclass(frozen=True)
class UrlEntry:
    loc: str
    lastmod: str | None = None
    images: list[ImageEntry] = field(default_factory=list)


def x(value) -> str:
    """Escape &, <, >, " and ' for element text."""
    return escape(str(value or ""), _XML_ENTITIES)


def prefer_host_image_url(original_url: str, host: str) -> str:
    """Serve Shopify CDN product, collection and file images from the storefront's own /cdn/shop path."""
    try:
        u = urlsplit(original_url)
    except ValueError:
        return original_url
    if u.hostname != "cdn.shopify.com":
        return original_url
    m = _CDN_SHOP_PATH.match(u.path)
    if not m:
        return original_url
    query = f"?{u.query}" if u.query else ""
    return f"https://{strip_port(host)}/cdn/shop/{m.group(1)}{query}"


def page_url(entity: CatalogEntity, host: str) -> str:
    h = strip_port(host)
    if entity.kind == "collection":
        return f"https://{h}/collections/{entity.handle}"
    if entity.canonical_url:
        return _SCHEME_HOST.sub(f"https://{h}", entity.canonical_url)
    return f"https://{h}/products/{entity.handle}"


def build_url_entries(
    entities: list[CatalogEntity],
    overrides: dict[str, LocalizedOverride],
    *,
    host: str,
    prefer_host: bool = True,
    captions: bool = True,
) -> list[UrlEntry]:
    """Entities become <url> entries in the given order; entities without images are dropped."""
    entries = []
    for entity in entities:
        if not entity.images:
            continue
        override = overrides.get(entity.id)
        title = resolve_title(entity, override)
        images = [
            ImageEntry(
                loc=prefer_host_image_url(img.url, host) if prefer_host else img.url,
                title=title,
                caption=resolve_caption(entity, img, override) if captions else "",
            )
            for img in entity.images
        ]
        entries.append(UrlEntry(
            loc=page_url(entity, host),
            lastmod=entity.updated_at.isoformat().replace("+00:00", "Z"),
            images=images,
        ))
    return entries


def _image_xml(image: ImageEntry) -> str:
    parts = [f"    <image:image>\n      <image:loc>{x(image.loc)}</image:loc>\n"]
    if image.title:
        parts.append(f"      <image:title>{x(image.title)}</image:title>\n")
    if image.caption:
        parts.append(f"      <image:caption>{x(image.caption)}</image:caption>\n")
    parts.append("    </image:image>\n")
    return "".join(parts)


def _url_xml(entry: UrlEntry) -> str:
    parts = [f"  <url>\n    <loc>{x(entry.loc)}</loc>\n"]
    if entry.lastmod:
        parts.append(f"    <lastmod>{x(entry.lastmod)}</lastmod>\n")
    parts.extend(_image_xml(img) for img in entry.images)
    parts.append("  </url>\n")
    return "".join(parts)


def render_urlset(entries: list[UrlEntry]) -> bytes:
    body = "".join(_url_xml(e) for e in entries)
    xml = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<urlset xmlns="{NS["sm"]}" xmlns:image="{NS["image"]}">\n'
        f"{body}"
        "</urlset>\n"
    )
    return xml.encode("utf-8")


def render_sitemap_index(locs: list[str]) -> bytes:
    body = "".join(f"  <sitemap>\n    <loc>{x(loc)}</loc>\n  </sitemap>\n" for loc in locs)
    xml = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<sitemapindex xmlns="{NS["sm"]}">\n'
        f"{body}"
        "</sitemapindex>\n"
    )
    return xml.encode("utf-8")
