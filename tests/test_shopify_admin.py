import pytest
import requests

from errors import UpstreamUnavailable
from models import WILDCARD
from shopify_admin import AdminClient


class FakeResponse:
    def __init__(self, payload=None, status=200, text=""):
        self._payload = payload
        self.status_code = status
        self.ok = 200 <= status < 300
        self.text = text

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        return self.responses.pop(0)


def _client(*responses):
    return AdminClient("s.myshopify.com", "tok", api_version="2024-04", timeout=7, session=FakeSession(responses))


PRODUCT_PAGE = {
    "data": {
        "products": {
            "edges": [
                {
                    "cursor": "c1",
                    "node": {
                        "id": "gid://shopify/Product/1",
                        "title": "Rose",
                        "handle": "rose",
                        "onlineStoreUrl": None,
                        "updatedAt": "2024-05-01T10:00:00Z",
                        "images": {"edges": [{"node": {"id": "gid://shopify/ProductImage/9", "url": "https://cdn.shopify.com/rose.jpg", "altText": ""}}]},
                    },
                }
            ],
            "pageInfo": {"hasNextPage": True},
        }
    }
}


def test_list_page_parses_full_nodes():
    client = _client(FakeResponse(PRODUCT_PAGE))
    page = client.list_page("product", 500, after="c0")
    post = client.session.posts[0]
    assert post["url"] == "https://s.myshopify.com/admin/api/2024-04/graphql.json"
    assert post["timeout"] == 7
    assert post["json"]["variables"]["first"] == 250
    assert post["json"]["variables"]["after"] == "c0"
    assert "sortKey: UPDATED_AT, reverse: true" in post["json"]["query"]
    assert page.has_next_page
    entity = page.edges[0].entity
    assert entity.handle == "rose"
    assert entity.images[0].alt_text is None
    assert entity.updated_at.isoformat() == "2024-05-01T10:00:00+00:00"


def test_skip_shape_requests_cursor_only():
    payload = {"data": {"collections": {"edges": [{"cursor": "x", "node": {"updatedAt": "2024-05-01T10:00:00Z"}}], "pageInfo": {"hasNextPage": False}}}}
    client = _client(FakeResponse(payload))
    page = client.list_page("collection", 3, full=False)
    query = client.session.posts[0]["json"]["query"]
    assert "collections(" in query and "images" not in query and "handle" not in query
    assert page.edges[0].entity is None
    assert not page.has_next_page


def test_collection_image_becomes_single_image():
    payload = {"data": {"collections": {"edges": [{"cursor": "x", "node": {
        "id": "gid://shopify/Collection/1", "title": "Summer", "handle": "summer",
        "updatedAt": "2024-05-01T10:00:00Z", "image": {"id": "gid://shopify/CollectionImage/1", "url": "https://cdn.shopify.com/s.jpg", "altText": "Sun"},
    }}], "pageInfo": {"hasNextPage": False}}}}
    entity = _client(FakeResponse(payload)).list_page("collection", 1).edges[0].entity
    assert [i.alt_text for i in entity.images] == ["Sun"]


def test_non_success_and_graphql_errors_raise():
    with pytest.raises(UpstreamUnavailable):
        _client(FakeResponse(status=502, text="bad gateway")).execute("{ shop { name } }")
    with pytest.raises(UpstreamUnavailable):
        _client(FakeResponse({"errors": [{"message": "Throttled"}]})).execute("{ shop { name } }")


def test_fetch_translations_sends_image_ids():
    from conftest import make_entity

    entity = make_entity("product", "rose", 1, images=2)
    payload = {"data": {
        "translatableResource": {"resourceId": entity.id, "translations": [{"key": "alt", "value": "Tout"}]},
        "translatableResourcesByIds": {"edges": []},
    }}
    client = _client(FakeResponse(payload))
    override = client.fetch_translations(entity, "fr")
    variables = client.session.posts[0]["json"]["variables"]
    assert variables["imageIds"] == [img.id for img in entity.images]
    assert variables["imageCount"] == 2
    assert variables["locale"] == "fr"
    assert override.image_alt == {WILDCARD: "Tout"}


def test_transport_errors_surface_through_call_upstream():
    import asyncio

    from concurrency import call_upstream

    def boom():
        raise requests.ConnectionError("refused")

    with pytest.raises(UpstreamUnavailable):
        asyncio.run(call_upstream(boom, timeout=1))


def test_call_within_deadline_returns_result():
    import asyncio

    from concurrency import call_upstream

    assert asyncio.run(call_upstream(lambda: 42, timeout=5)) == 42
