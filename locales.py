"""Host → locale inference and locale → candidate expansion. Pure functions over config tables."""

from collections.abc import Mapping, Sequence


def strip_port(host: str | None) -> str:
    return (host or "").split(":", 1)[0]


def normalize_locale(code: str) -> str:
    return code.strip().replace("_", "-").lower()


def _matches(host: str, pattern: str) -> bool:
    if pattern.startswith("."):
        return host.endswith(pattern)
    return host == pattern or host.startswith(pattern)


def resolve_locale(
    host: str | None,
    override: str | None = None,
    *,
    table: Mapping[str, str],
    default: str = "en",
) -> str:
    """Explicit override wins; otherwise the longest matching host pattern; otherwise ``default``."""
    if override and override.strip():
        return normalize_locale(override)
    h = strip_port(host).lower()
    best = None
    for pattern in table:
        p = pattern.lower()
        if _matches(h, p) and (best is None or len(p) > len(best)):
            best = p
    if best is None:
        return normalize_locale(default)
    return normalize_locale(next(v for k, v in table.items() if k.lower() == best))


def expand_candidates(
    locale: str,
    *,
    regions: Mapping[str, str],
    overrides: Mapping[str, Sequence[str]] | None = None,
    default_region: str = "US",
) -> list[str]:
    """Locale variants to try, most specific first, each once.

    ``de`` → ``[de-CH, de-DE, de]`` with the default override table;
    ``fr-ca`` → ``[fr-CA, fr-FR, fr]``.
    """
    code = normalize_locale(locale) or "en"
    base, _, region = code.partition("-")
    candidates = list((overrides or {}).get(base, ()))
    if region:
        candidates.append(f"{base}-{region.upper()}")
    candidates.append(f"{base}-{regions.get(base, default_region)}")
    candidates.append(base)
    return list(dict.fromkeys(candidates))
