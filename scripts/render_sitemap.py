#!/usr/bin/env python3
"""Render one image sitemap page for a shop to stdout. Bypasses the proxy, signature and cache."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import settings
from locales import resolve_locale
from log_setup import setup_logging
from pipeline import SitemapRequest, generate_image_sitemap
from shopify_admin import AdminClient


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("shop", help="STORE.myshopify.com")
    parser.add_argument("token", help="Admin API access token")
    parser.add_argument("--host", help="Storefront host used for page/image URLs (default: shop)")
    parser.add_argument("--type", default="all", choices=["products", "collections", "all"])
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--per-page", type=int, default=settings.per_page_default)
    parser.add_argument("--locale", default="")
    parser.add_argument("--no-captions", action="store_true")
    parser.add_argument("--no-prefer-host", action="store_true")
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL)
    host = args.host or args.shop
    req = SitemapRequest(
        host=host,
        resource_type=args.type,
        page=max(1, args.page),
        per_page=max(1, min(args.per_page, settings.MAX_URLS_PER_FEED)),
        locale=resolve_locale(host, args.locale, table=settings.HOST_LOCALES, default=settings.DEFAULT_LOCALE),
        captions=not args.no_captions,
        prefer_host=not args.no_prefer_host,
    )
    client = AdminClient(
        args.shop,
        args.token,
        api_version=settings.API_VERSION,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        product_images_limit=settings.PRODUCT_IMAGES_LIMIT,
    )
    body = asyncio.run(generate_image_sitemap(client, req, settings))
    sys.stdout.write(body.decode("utf-8"))


if __name__ == "__main__":
    main()
