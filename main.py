"""
Image sitemap proxy: FastAPI service.
Served behind the Shopify App Proxy (/apps/sitemaps/*). Reads products/collections from the
Admin API, localizes titles and image captions, renders paginated image sitemaps.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from urllib.parse import urlencode

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from config import settings
from errors import NotAuthorized, SitemapError
from locales import resolve_locale, strip_port
from log_setup import setup_logging
from paginator import RESOURCE_TYPES
from pipeline import SitemapRequest, generate_image_sitemap
from shop_auth import (
    authorize_url,
    consume_state,
    exchange_code,
    is_valid_shop,
    new_state,
    require_token,
    save_token,
    verify_oauth_hmac,
    verify_proxy_signature,
)
from shopify_admin import AdminClient
from sitemap_xml import render_sitemap_index
from storage import MemoryStore, ResponseCache, cache_key

logger = logging.getLogger(__name__)


def build_token_store():
    """Credential store. Supabase when configured, else in-process (lost on restart)."""
    if settings.TOKEN_STORE_BACKEND.lower() == "supabase":
        from supabase_client import SupabaseStore, get_client
        client = get_client()
        if client is not None:
            return SupabaseStore(client, settings.SUPABASE_KV_TABLE)
        logger.warning("TOKEN_STORE_BACKEND=supabase but SUPABASE_URL/SUPABASE_SERVICE_KEY not set; using memory")
    return MemoryStore()


token_store = build_token_store()
response_cache = ResponseCache(MemoryStore(max_entries=settings.CACHE_MAX_ENTRIES))


def make_admin_client(shop: str, token: str) -> AdminClient:
    return AdminClient(
        shop,
        token,
        api_version=settings.API_VERSION,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        product_images_limit=settings.PRODUCT_IMAGES_LIMIT,
    )


def _int_param(raw: str | None, default: int, low: int, high: int | None = None) -> int:
    try:
        value = int(str(raw).strip()) if raw not in (None, "") else default
    except ValueError:
        value = default
    value = max(value, low)
    return min(value, high) if high is not None else value


def _flag(raw: str | None, default: bool = True) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip() == "1"


def _resource_type(raw: str | None) -> str:
    value = (raw or "all").strip().lower()
    return value if value in RESOURCE_TYPES else "all"


def _request_host(request: Request) -> str:
    return strip_port(request.headers.get("x-forwarded-host") or request.headers.get("host"))


def _require_signature(request: Request) -> None:
    if not verify_proxy_signature(request.query_params.multi_items(), settings.APP_API_SECRET):
        raise NotAuthorized("Invalid proxy signature")


def _xml_response(body: bytes) -> Response:
    return Response(
        content=body,
        media_type="application/xml; charset=utf-8",
        headers={"Cache-Control": f"public, max-age={settings.CACHE_TTL_SECONDS}"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    if not settings.oauth_ok:
        logger.warning("APP_API_KEY/APP_API_SECRET/HOST not fully set. Install flow and signed requests will fail.")
    yield


app = FastAPI(title="Image Sitemap Proxy", lifespan=lifespan)


@app.exception_handler(SitemapError)
async def sitemap_error_handler(request: Request, exc: SitemapError):
    logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return PlainTextResponse(exc.public_message, status_code=exc.status_code)


@app.get("/", response_class=PlainTextResponse)
def root():
    return "Image Sitemap Proxy is running. Use /health, /echo, or call via Shopify App Proxy at /apps/sitemaps/image.xml"


@app.get("/health", response_class=PlainTextResponse)
def health():
    return "ok"


@app.get("/echo", response_class=PlainTextResponse)
def echo():
    return "echo ok"


@app.get("/auth")
def auth(shop: str = ""):
    """Start the OAuth install for a shop."""
    shop = shop.strip().lower()
    if not is_valid_shop(shop):
        return PlainTextResponse("Missing/invalid shop", status_code=400)
    state = new_state(token_store, shop)
    redirect_uri = f"{settings.HOST}/auth/callback"
    return RedirectResponse(authorize_url(shop, settings.APP_API_KEY, settings.SCOPES, redirect_uri, state))


@app.get("/auth/callback")
def auth_callback(request: Request):
    """OAuth redirect target: verify, exchange code, store token. Runs in the threadpool (blocking I/O)."""
    params = request.query_params
    shop = (params.get("shop") or "").strip().lower()
    code = params.get("code") or ""
    if not is_valid_shop(shop) or not code:
        return PlainTextResponse("Missing shop/code", status_code=400)
    if not verify_oauth_hmac(params.multi_items(), settings.APP_API_SECRET):
        raise NotAuthorized("Invalid OAuth hmac")
    if not consume_state(token_store, params.get("state") or "", shop):
        return PlainTextResponse("Invalid or expired state", status_code=400)

    token = exchange_code(shop, code, settings.APP_API_KEY, settings.APP_API_SECRET)
    save_token(token_store, shop, token)
    logger.info("Installed for %s", shop)
    return PlainTextResponse(
        f"Installed for {shop}. App Proxy: https://{_request_host(request)}{settings.PROXY_PATH_PREFIX}/image.xml"
    )


@app.get("/image.xml")
async def image_sitemap(request: Request):
    """
    Query params (via App Proxy):
      shop, type=products|collections|all, page>=1, per_page<=MAX_URLS_PER_FEED,
      locale (overrides host-detected), captions=0|1, prefer_host=0|1
    """
    _require_signature(request)
    q = request.query_params
    host = _request_host(request)
    shop = (q.get("shop") or "").strip().lower()
    req = SitemapRequest(
        host=host,
        resource_type=_resource_type(q.get("type")),
        page=_int_param(q.get("page"), 1, 1),
        per_page=_int_param(q.get("per_page"), settings.per_page_default, 1, settings.MAX_URLS_PER_FEED),
        locale=resolve_locale(host, q.get("locale"), table=settings.HOST_LOCALES, default=settings.DEFAULT_LOCALE),
        captions=_flag(q.get("captions")),
        prefer_host=_flag(q.get("prefer_host")),
    )

    key = cache_key(
        route="image.xml",
        shop=shop,
        host=req.host,
        type=req.resource_type,
        page=req.page,
        per_page=req.per_page,
        locale=req.locale,
        captions=int(req.captions),
        prefer_host=int(req.prefer_host),
    )
    hit = response_cache.get(key)
    if hit is not None:
        logger.debug("cache hit %s", key)
        return _xml_response(hit)

    token = await asyncio.to_thread(require_token, token_store, shop, settings.HOST)
    try:
        body = await generate_image_sitemap(make_admin_client(shop, token), req, settings)
    except SitemapError:
        raise
    except Exception:
        logger.exception("Sitemap generation failed for %s", shop)
        return PlainTextResponse("Sitemap generation error", status_code=500)

    response_cache.put(key, body, settings.CACHE_TTL_SECONDS)
    return _xml_response(body)


@app.get("/image-index.xml")
async def image_sitemap_index(request: Request):
    _require_signature(request)
    q = request.query_params
    host = _request_host(request)
    shop = (q.get("shop") or "").strip().lower()
    pages = _int_param(q.get("pages"), 5, 1, settings.MAX_INDEX_PAGES)
    resource_type = _resource_type(q.get("type"))
    per_page = _int_param(q.get("per_page"), settings.per_page_default, 1, settings.MAX_URLS_PER_FEED)
    locale = (q.get("locale") or "").strip()

    locs = []
    for n in range(1, pages + 1):
        params = {"shop": shop, "type": resource_type, "page": n, "per_page": per_page}
        if locale:
            params["locale"] = locale
        locs.append(f"https://{host}{settings.PROXY_PATH_PREFIX}/image.xml?{urlencode(params)}")
    return _xml_response(render_sitemap_index(locs))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
