"""Shopify request signatures, the OAuth install handshake, and per-shop token storage."""

import hashlib
import hmac
import re
import secrets
import time
from collections.abc import Iterable
from urllib.parse import urlencode

import requests

from errors import NotProvisioned, UpstreamUnavailable
from storage import KeyValueStore

SHOP_DOMAIN = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")
STATE_TTL_SECONDS = 600


def is_valid_shop(shop: str) -> bool:
    return bool(shop and SHOP_DOMAIN.match(shop))


def _grouped(params: Iterable[tuple[str, str]], exclude: str) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for k, v in params:
        if k != exclude:
            grouped.setdefault(k, []).append(v)
    return grouped


def verify_proxy_signature(params: Iterable[tuple[str, str]], secret: str) -> bool:
    """App Proxy signature: hex(HMACSHA256(sorted "k=v" pairs concatenated, repeated values joined by ",")).

    ``params`` is the raw query as (key, value) pairs, ``signature`` included.
    """
    params = list(params)
    signature = next((v for k, v in params if k == "signature"), "")
    if not secret or not signature:
        return False
    grouped = _grouped(params, "signature")
    msg = "".join(f"{k}={','.join(grouped[k])}" for k in sorted(grouped))
    digest = hmac.new(secret.encode("utf-8"), msg.encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest, signature)


def verify_oauth_hmac(params: Iterable[tuple[str, str]], secret: str) -> bool:
    """OAuth callback HMAC: hex(HMACSHA256(sorted "k=v" pairs joined by "&"))."""
    params = list(params)
    received = next((v for k, v in params if k == "hmac"), "")
    if not secret or not received:
        return False
    grouped = _grouped(params, "hmac")
    msg = "&".join(f"{k}={','.join(grouped[k])}" for k in sorted(grouped))
    digest = hmac.new(secret.encode("utf-8"), msg.encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest, received)


def authorize_url(shop: str, api_key: str, scopes: str, redirect_uri: str, state: str) -> str:
    query = urlencode({"client_id": api_key, "scope": scopes, "redirect_uri": redirect_uri, "state": state})
    return f"https://{shop}/admin/oauth/authorize?{query}"


def new_state(store: KeyValueStore, shop: str) -> str:
    state = secrets.token_hex(12)
    store.put(f"oauth_state:{state}", shop, STATE_TTL_SECONDS)
    return state


def consume_state(store: KeyValueStore, state: str, shop: str) -> bool:
    key = f"oauth_state:{state}"
    expected = store.get(key)
    store.delete(key)
    return expected is not None and hmac.compare_digest(str(expected), shop)


def exchange_code(shop: str, code: str, api_key: str, api_secret: str, timeout: float = 15) -> str:
    """Trade the OAuth code for an offline access token."""
    try:
        r = requests.post(
            f"https://{shop}/admin/oauth/access_token",
            json={"client_id": api_key, "client_secret": api_secret, "code": code},
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise UpstreamUnavailable(f"Token exchange failed: {exc}") from exc
    if not r.ok:
        raise UpstreamUnavailable(f"Token exchange failed: {r.status_code}")
    return r.json()["access_token"]


def save_token(store: KeyValueStore, shop: str, access_token: str) -> None:
    store.put(f"token:{shop}", {"access_token": access_token, "installed_at": int(time.time())})


def require_token(store: KeyValueStore, shop: str, install_base: str) -> str:
    entry = store.get(f"token:{shop}") if shop else None
    if not entry or not entry.get("access_token"):
        raise NotProvisioned(shop, f"{install_base}/auth?shop={shop}")
    return entry["access_token"]
