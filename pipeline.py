"""One image sitemap page: slice → translations → XML."""

import logging
from dataclasses import dataclass

from config import Settings
from locales import expand_candidates, normalize_locale
from paginator import fetch_slice
from sitemap_xml import build_url_entries, render_urlset
from translations import hydrate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SitemapRequest:
    host: str
    resource_type: str = "all"
    page: int = 1
    per_page: int = 1000
    locale: str = "en"
    captions: bool = True
    prefer_host: bool = True

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


async def generate_image_sitemap(client, req: SitemapRequest, settings: Settings) -> bytes:
    entities = await fetch_slice(
        client,
        req.resource_type,
        req.offset,
        req.per_page,
        full_page_size=settings.UPSTREAM_FULL_PAGE_SIZE,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
    )

    overrides = {}
    if normalize_locale(req.locale) != normalize_locale(settings.PRIMARY_LOCALE):
        candidates = expand_candidates(
            req.locale,
            regions=settings.LOCALE_REGIONS,
            overrides=settings.LOCALE_CANDIDATE_OVERRIDES,
        )
        overrides = await hydrate(
            client,
            entities,
            candidates,
            concurrency=settings.TRANSLATION_CONCURRENCY,
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        )
        logger.debug("Hydrated %d/%d entities for %s", len(overrides), len(entities), req.locale)

    entries = build_url_entries(
        entities,
        overrides,
        host=req.host,
        prefer_host=req.prefer_host,
        captions=req.captions,
    )
    return render_urlset(entries)
