"""Supabase-backed key/value store (durable credential storage shared across instances)."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from supabase import create_client

from config import settings

logger = logging.getLogger(__name__)


def get_client():
    if not settings.supabase_ok:
        return None
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)


class SupabaseStore:
    """Rows of (key, value jsonb, expires_at timestamptz). Expired rows read as missing."""

    def __init__(self, client, table: str = "kv_store"):
        self.client = client
        self.table = table

    def get(self, key: str) -> Any | None:
        r = self.client.table(self.table).select("value, expires_at").eq("key", key).limit(1).execute()
        rows = r.data or []
        if not rows:
            return None
        row = rows[0]
        expires_at = row.get("expires_at")
        if expires_at and datetime.fromisoformat(expires_at) <= datetime.now(timezone.utc):
            self.delete(key)
            return None
        return row.get("value")

    def put(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        expires_at = None
        if ttl_seconds is not None:
            expires_at = (datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)).isoformat()
        self.client.table(self.table).upsert({
            "key": key,
            "value": value,
            "expires_at": expires_at,
        }, on_conflict="key").execute()

    def delete(self, key: str) -> None:
        try:
            self.client.table(self.table).delete().eq("key", key).execute()
        except Exception as e:
            logger.warning("Supabase delete failed for %s: %s", key, e)
