"""URL allow-listing for generated resources."""

from __future__ import annotations

from typing import Any, Iterable
from urllib.parse import urlparse


def is_allowed_url(url: Any, denied_domains: Iterable[str]) -> bool:
    """Only http/https URLs with a host outside the shortener denylist survive."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https"):
        return False
    host = (parsed.hostname or "").lower()
    if not host or "." not in host:
        return False
    for domain in denied_domains:
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return False
    return True


def filter_resources(
    resources: list[Any],
    denied_domains: Iterable[str],
) -> tuple[list[Any], list[int]]:
    """Drop resources without an allowed URL.

    Returns the surviving entries (unchanged) and the indexes that were dropped.
    """
    denied = tuple(denied_domains)
    kept = []
    dropped = []
    for idx, resource in enumerate(resources):
        url = resource.get("url") if isinstance(resource, dict) else None
        if is_allowed_url(url, denied):
            kept.append(resource)
        else:
            dropped.append(idx)
    return kept, dropped
