"""Offset/limit windows over the Admin API's cursor-paginated, newest-first listings.

The upstream has no offset addressing, so a window ``[offset, offset + limit)``
is reached by walking cursors. Edges before ``offset`` are requested in a
cursor-only shape and dropped; once the walk reaches ``offset`` it switches to
the full node shape and resumes from the last consumed cursor. Each call asks
for exactly as many edges as are still needed (up to the upstream cap), so a
window costs the fewest round trips the API allows.

``type=all`` walks the product and collection listings side by side and merges
them by ``updatedAt``; both listings are already sorted upstream, so the merge
never re-sorts anything.
"""

import logging
from collections import deque

from concurrency import call_upstream
from models import CatalogEntity, Edge
from shopify_admin import MAX_PAGE_SIZE

logger = logging.getLogger(__name__)

RESOURCE_TYPES = {
    "products": ("product",),
    "collections": ("collection",),
    "all": ("product", "collection"),
}


class _Listing:
    """Forward-only reader over one upstream listing."""

    def __init__(self, client, kind: str, full: bool, full_page_size: int, timeout: float):
        self.client = client
        self.kind = kind
        self.full = full
        self.full_page_size = full_page_size
        self.timeout = timeout
        self.buffer: deque[Edge] = deque()
        self.after: str | None = None
        self.last_consumed: str | None = None
        self.exhausted = False
        self.calls = 0

    async def fill(self, wanted: int) -> None:
        if self.buffer or self.exhausted:
            return
        cap = min(self.full_page_size, MAX_PAGE_SIZE) if self.full else MAX_PAGE_SIZE
        first = max(1, min(wanted, cap))
        page = await call_upstream(
            self.client.list_page, self.kind, first, self.after, self.full, timeout=self.timeout
        )
        self.calls += 1
        self.buffer.extend(page.edges)
        if page.edges:
            self.after = page.edges[-1].cursor
        if not page.edges or not page.has_next_page:
            self.exhausted = True

    def head(self) -> Edge | None:
        return self.buffer[0] if self.buffer else None

    def pop(self) -> Edge:
        edge = self.buffer.popleft()
        self.last_consumed = edge.cursor
        return edge

    def switch_to_full(self) -> None:
        # Buffered skip-shaped edges carry no entity data; re-read them in full.
        if self.full:
            return
        self.full = True
        if self.buffer:
            self.buffer.clear()
            self.after = self.last_consumed
            self.exhausted = False


def _next_listing(listings: list[_Listing]) -> _Listing | None:
    best = None
    for listing in listings:
        head = listing.head()
        if head is None:
            continue
        # Strict comparison keeps ties in listing order (products first).
        if best is None or head.updated_at > best.head().updated_at:
            best = listing
    return best


async def fetch_slice(
    client,
    resource_type: str,
    offset: int,
    limit: int,
    *,
    full_page_size: int = 50,
    timeout: float = 30.0,
) -> list[CatalogEntity]:
    """Entities at positions ``[offset, offset + limit)`` of the newest-first catalog.

    Returns fewer than ``limit`` when the catalog runs out. Any upstream failure
    propagates as UpstreamUnavailable and nothing is returned.
    """
    if offset < 0:
        raise ValueError("offset must be >= 0")
    if limit < 1:
        raise ValueError("limit must be >= 1")

    skipping = offset > 0
    listings = [
        _Listing(client, kind, not skipping, full_page_size, timeout)
        for kind in RESOURCE_TYPES[resource_type]
    ]
    position = 0
    out: list[CatalogEntity] = []

    while len(out) < limit:
        if skipping and position >= offset:
            skipping = False
            for listing in listings:
                listing.switch_to_full()

        wanted = offset - position if skipping else limit - len(out)
        for listing in listings:
            await listing.fill(wanted)

        listing = _next_listing(listings)
        if listing is None:
            break
        edge = listing.pop()
        position += 1
        if not skipping:
            out.append(edge.entity)

    logger.debug(
        "fetch_slice %s offset=%d limit=%d -> %d entities in %d calls",
        resource_type, offset, limit, len(out), sum(listing.calls for listing in listings),
    )
    return out
