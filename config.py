"""Configuration from env. Same variable names as the Node proxy it replaces (APP_API_*, CACHE_*)."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Shopify app (Partners dashboard). Secret also signs App Proxy requests.
    APP_API_KEY: str = ""
    APP_API_SECRET: str = ""
    HOST: str = ""
    SCOPES: str = "read_products,read_collections,read_translations"
    API_VERSION: str = "2024-04"

    # Response cache
    CACHE_TTL_SECONDS: int = 900
    CACHE_MAX_ENTRIES: int = 0

    # Feed sizing
    MAX_URLS_PER_FEED: int = 5000
    DEFAULT_PER_PAGE: int = 1000
    MAX_INDEX_PAGES: int = 1000
    PROXY_PATH_PREFIX: str = "/apps/sitemaps"

    # Upstream calls
    UPSTREAM_TIMEOUT_SECONDS: float = 30.0
    UPSTREAM_FULL_PAGE_SIZE: int = 50
    PRODUCT_IMAGES_LIMIT: int = 50
    TRANSLATION_CONCURRENCY: int = 5

    # Locales
    DEFAULT_LOCALE: str = "en"
    PRIMARY_LOCALE: str = "en"
    HOST_LOCALES: dict[str, str] = {
        "smelltoimpress.fr": "fr",
        "smelltoimpress.it": "it",
        "smelltoimpress.jp": "ja",
        "ko.smelltoimpress.com": "ko",
        "ar.smelltoimpress.com": "ar",
        "iw.smelltoimpress.com": "he",
        "smelltoimpress.nl": "nl",
        "smelltoimpress.ch": "de",
        "smelltoimpress.co.no": "nb",
    }
    LOCALE_REGIONS: dict[str, str] = {
        "fr": "FR", "it": "IT", "nl": "NL", "de": "DE", "ar": "AR",
        "he": "IL", "ko": "KR", "ja": "JP", "nb": "NO", "en": "US",
    }
    LOCALE_CANDIDATE_OVERRIDES: dict[str, list[str]] = {"de": ["de-CH"]}

    # Credential store: "memory" or "supabase"
    TOKEN_STORE_BACKEND: str = "memory"
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    SUPABASE_KV_TABLE: str = "kv_store"

    LOG_LEVEL: str = "INFO"

    @property
    def per_page_default(self) -> int:
        return max(1, min(self.DEFAULT_PER_PAGE, self.MAX_URLS_PER_FEED))

    @property
    def oauth_ok(self) -> bool:
        return bool(self.APP_API_KEY and self.APP_API_SECRET and self.HOST)

    @property
    def supabase_ok(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_KEY)


settings = Settings()
