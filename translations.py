"""Locale overrides for one slice of entities, and the field fallback rules that apply them.

Precedence (most specific first):

* page title: translated title, then base title.
* image caption: translated alt for that exact image, then the entity's
  wildcard translated alt, then translated title, then the image's base alt,
  then base title.
"""

import logging

from concurrency import bounded_gather, call_upstream
from models import WILDCARD, CatalogEntity, ImageRef, LocalizedOverride

logger = logging.getLogger(__name__)


async def _lookup(client, entity: CatalogEntity, candidates: list[str], timeout: float) -> LocalizedOverride | None:
    for locale in candidates:
        try:
            override = await call_upstream(client.fetch_translations, entity, locale, timeout=timeout)
        except Exception as exc:
            logger.warning("Translation lookup failed for %s (%s): %s", entity.id, locale, exc)
            continue
        if override is not None and override.usable:
            return override
    return None


async def hydrate(
    client,
    entities: list[CatalogEntity],
    candidates: list[str],
    *,
    concurrency: int = 5,
    timeout: float = 30.0,
) -> dict[str, LocalizedOverride]:
    """Overrides keyed by entity id. Entities without images are not looked up."""
    targets = [e for e in entities if e.images]
    if not targets or not candidates:
        return {}

    async def worker(entity: CatalogEntity):
        return entity.id, await _lookup(client, entity, candidates, timeout)

    results = await bounded_gather(targets, worker, concurrency)
    return {entity_id: override for entity_id, override in results if override is not None}


def resolve_title(entity: CatalogEntity, override: LocalizedOverride | None) -> str:
    if override and override.title:
        return override.title
    return entity.title


def resolve_caption(entity: CatalogEntity, image: ImageRef, override: LocalizedOverride | None) -> str:
    if override:
        for value in (override.image_alt.get(image.id), override.image_alt.get(WILDCARD), override.title):
            if value:
                return value
    return image.alt_text or entity.title
