"""Shared fixtures: a fake Admin API serving an in-memory catalog."""

import hashlib
import hmac
import os
import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

os.environ.setdefault("APP_API_KEY", "test-key")
os.environ.setdefault("APP_API_SECRET", "test-secret")
os.environ.setdefault("HOST", "https://proxy.example.com")
os.environ.setdefault("TOKEN_STORE_BACKEND", "memory")

from errors import UpstreamUnavailable  # noqa: E402
from models import CatalogEntity, Edge, ImageRef, Page  # noqa: E402

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def ts(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def make_entity(kind: str, handle: str, minutes: int, images: int = 1, **kwargs) -> CatalogEntity:
    prefix = "Product" if kind == "product" else "Collection"
    entity_id = f"gid://shopify/{prefix}/{handle}"
    return CatalogEntity(
        kind=kind,
        id=entity_id,
        title=kwargs.pop("title", handle.upper()),
        handle=handle,
        updated_at=ts(minutes),
        images=tuple(
            ImageRef(id=f"{entity_id}/img{i}", url=f"https://cdn.shopify.com/s/files/1/0001/products/{handle}-{i}.jpg")
            for i in range(images)
        ),
        **kwargs,
    )


class FakeAdminClient:
    """Mimics AdminClient: listings sorted newest first upstream, cursor = "<kind>:<index>"."""

    def __init__(self, products=(), collections=(), translations=None, fail_translations=(),
                 fail_listing_after=None, translation_delay=0.0, listing_delay=0.0):
        self.items = {
            "product": sorted(products, key=lambda e: e.updated_at, reverse=True),
            "collection": sorted(collections, key=lambda e: e.updated_at, reverse=True),
        }
        self.translations = translations or {}
        self.fail_translations = set(fail_translations)
        self.fail_listing_after = fail_listing_after
        self.translation_delay = translation_delay
        self.listing_delay = listing_delay
        self.calls: list[tuple] = []
        self.translation_calls: list[tuple] = []
        self._lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0

    def list_page(self, kind, first, after=None, full=True):
        if self.fail_listing_after is not None and len(self.calls) >= self.fail_listing_after:
            raise UpstreamUnavailable("Admin API 503")
        self.calls.append((kind, first, after, full))
        if self.listing_delay:
            time.sleep(self.listing_delay)
        items = self.items[kind]
        start = 0 if after is None else int(after.split(":")[1]) + 1
        chunk = items[start:start + first]
        edges = [
            Edge(cursor=f"{kind}:{start + i}", updated_at=e.updated_at, entity=e if full else None)
            for i, e in enumerate(chunk)
        ]
        return Page(edges=edges, has_next_page=start + first < len(items))

    def fetch_translations(self, entity, locale):
        with self._lock:
            self.translation_calls.append((entity.id, locale))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.translation_delay:
                time.sleep(self.translation_delay)
            if entity.id in self.fail_translations:
                raise UpstreamUnavailable("Admin API 500")
            return self.translations.get((entity.id, locale))
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def abc_catalog():
    """A, B, C updated at T3, T1, T2."""
    return [
        make_entity("product", "a", 3),
        make_entity("product", "b", 1),
        make_entity("product", "c", 2),
    ]


def sign_proxy(params: list[tuple[str, str]], secret: str) -> list[tuple[str, str]]:
    """Append an App Proxy ``signature`` the way Shopify computes it."""
    grouped: dict[str, list[str]] = {}
    for k, v in params:
        grouped.setdefault(k, []).append(v)
    msg = "".join(f"{k}={','.join(grouped[k])}" for k in sorted(grouped))
    sig = hmac.new(secret.encode(), msg.encode(), hashlib.sha256).hexdigest()
    return params + [("signature", sig)]
