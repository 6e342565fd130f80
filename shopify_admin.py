"""Shopify Admin GraphQL: catalog listing pages and translation lookups."""

import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from errors import UpstreamUnavailable
from models import CatalogEntity, Edge, ImageRef, LocalizedOverride, Page, WILDCARD, parse_timestamp

logger = logging.getLogger(__name__)

# Upstream hard limit for `first` on a connection
MAX_PAGE_SIZE = 250

RESOURCES = {
    "product": ("products", "status:active"),
    "collection": ("collections", "published_status:published"),
}

# Skip shape: only what the cursor walk needs
SKIP_QUERY = """
query Skip($first: Int!, $after: String, $filter: String) {
  %(connection)s(first: $first, after: $after, query: $filter, sortKey: UPDATED_AT, reverse: true) {
    edges { cursor node { updatedAt } }
    pageInfo { hasNextPage }
  }
}
"""

PRODUCTS_QUERY = """
query Products($first: Int!, $after: String, $filter: String, $images: Int!) {
  products(first: $first, after: $after, query: $filter, sortKey: UPDATED_AT, reverse: true) {
    edges {
      cursor
      node {
        id
        title
        handle
        onlineStoreUrl
        updatedAt
        images(first: $images) { edges { node { id url altText } } }
      }
    }
    pageInfo { hasNextPage }
  }
}
"""

COLLECTIONS_QUERY = """
query Collections($first: Int!, $after: String, $filter: String) {
  collections(first: $first, after: $after, query: $filter, sortKey: UPDATED_AT, reverse: true) {
    edges {
      cursor
      node {
        id
        title
        handle
        updatedAt
        image { id url altText }
      }
    }
    pageInfo { hasNextPage }
  }
}
"""

TRANSLATIONS_QUERY = """
query Translations($rid: ID!, $imageIds: [ID!]!, $imageCount: Int!, $locale: String!) {
  translatableResource(resourceId: $rid) {
    resourceId
    translations(locale: $locale) { key value }
  }
  translatableResourcesByIds(first: $imageCount, resourceIds: $imageIds) {
    edges { node { resourceId translations(locale: $locale) { key value } } }
  }
}
"""

# Entity-level translation keys that apply to every image of the entity
WILDCARD_ALT_KEYS = ("image_alt", "alt")


def entity_from_node(kind: str, node: dict) -> CatalogEntity:
    if kind == "product":
        raw_images = [e["node"] for e in (node.get("images") or {}).get("edges", [])]
    else:
        raw_images = [node["image"]] if node.get("image") else []
    images = tuple(
        ImageRef(id=img.get("id") or img["url"], url=img["url"], alt_text=img.get("altText") or None)
        for img in raw_images
        if img and img.get("url")
    )
    return CatalogEntity(
        kind=kind,
        id=node["id"],
        title=node.get("title") or "",
        handle=node["handle"],
        updated_at=parse_timestamp(node["updatedAt"]),
        images=images,
        canonical_url=node.get("onlineStoreUrl") or None,
    )


def _find_value(translations: list[dict] | None, *keys: str) -> str | None:
    for t in translations or []:
        if t.get("key") in keys and t.get("value"):
            return t["value"]
    return None


def parse_translation_payload(data: dict) -> LocalizedOverride | None:
    """Flatten a Translations response. None when the resource is unknown upstream."""
    resource = data.get("translatableResource")
    if not resource:
        return None
    override = LocalizedOverride(title=_find_value(resource.get("translations"), "title"))
    wildcard = _find_value(resource.get("translations"), *WILDCARD_ALT_KEYS)
    if wildcard:
        override.image_alt[WILDCARD] = wildcard
    for e in (data.get("translatableResourcesByIds") or {}).get("edges", []):
        node = e.get("node") or {}
        alt = _find_value(node.get("translations"), "alt")
        if alt and node.get("resourceId"):
            override.image_alt[node["resourceId"]] = alt
    return override


def _session(token: str) -> requests.Session:
    s = requests.Session()
    s.headers["Content-Type"] = "application/json"
    s.headers["X-Shopify-Access-Token"] = token
    # GraphQL reads are idempotent, so POST is safe to retry
    retries = Retry(
        total=3,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=frozenset({"POST"}),
        raise_on_status=False,
    )
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


class AdminClient:
    """Blocking client. Call from async code through ``concurrency.call_upstream``."""

    def __init__(
        self,
        shop: str,
        token: str,
        api_version: str = "2024-04",
        timeout: float = 30.0,
        product_images_limit: int = 50,
        session: requests.Session | None = None,
    ):
        self.shop = shop
        self.url = f"https://{shop}/admin/api/{api_version}/graphql.json"
        self.timeout = timeout
        self.product_images_limit = product_images_limit
        self.session = session or _session(token)

    def execute(self, query: str, variables: dict | None = None) -> dict:
        r = self.session.post(self.url, json={"query": query, "variables": variables or {}}, timeout=self.timeout)
        if not r.ok:
            logger.warning("Admin API %s for %s: %s", r.status_code, self.shop, r.text[:200])
            raise UpstreamUnavailable(f"Admin API {r.status_code}")
        data = r.json()
        if data.get("errors"):
            logger.warning("Admin API GraphQL errors for %s: %s", self.shop, data["errors"])
            raise UpstreamUnavailable(f"GraphQL errors: {data['errors']}")
        return data.get("data") or {}

    def list_page(self, kind: str, first: int, after: str | None = None, full: bool = True) -> Page:
        """One listing page, newest first. ``full=False`` returns cursor/updatedAt only."""
        connection, query_filter = RESOURCES[kind]
        variables = {"first": max(1, min(first, MAX_PAGE_SIZE)), "after": after, "filter": query_filter}
        if not full:
            query = SKIP_QUERY % {"connection": connection}
        elif kind == "product":
            query = PRODUCTS_QUERY
            variables["images"] = self.product_images_limit
        else:
            query = COLLECTIONS_QUERY
        data = self.execute(query, variables)
        conn = data.get(connection) or {}
        edges = []
        for e in conn.get("edges", []):
            node = e["node"]
            edges.append(Edge(
                cursor=e["cursor"],
                updated_at=parse_timestamp(node["updatedAt"]),
                entity=entity_from_node(kind, node) if full else None,
            ))
        return Page(edges=edges, has_next_page=bool((conn.get("pageInfo") or {}).get("hasNextPage")))

    def fetch_translations(self, entity: CatalogEntity, locale: str) -> LocalizedOverride | None:
        image_ids = [img.id for img in entity.images]
        data = self.execute(TRANSLATIONS_QUERY, {
            "rid": entity.id,
            "imageIds": image_ids,
            "imageCount": max(1, len(image_ids)),
            "locale": locale,
        })
        return parse_translation_payload(data)
