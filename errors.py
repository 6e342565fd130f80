"""Failures the sitemap endpoints turn into specific HTTP statuses."""


class SitemapError(Exception):
    """Base class. ``status_code`` and ``public_message`` are what the client sees."""

    status_code = 500
    public_message = "Sitemap generation error"


class UpstreamUnavailable(SitemapError):
    """Admin API returned non-2xx, GraphQL errors, or timed out."""

    status_code = 502
    public_message = "Upstream catalog unavailable"


class NotAuthorized(SitemapError):
    status_code = 401
    public_message = "Invalid signature"


class NotProvisioned(SitemapError):
    """No stored access token for the shop. Caller must run the install flow."""

    status_code = 403

    def __init__(self, shop: str, install_url: str):
        super().__init__(shop)
        self.shop = shop
        self.install_url = install_url
        self.public_message = f"App not installed for {shop}. Visit {install_url}"
