from __future__ import annotations

from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def extract_domain(url: str) -> str:
    """Lower-cased host of a URL, without a leading ``www.``."""
    try:
        host = (urlparse(url).hostname or "").lower().strip()
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host


def host_matches(url: str, domains: tuple[str, ...] | list[str]) -> bool:
    """True if the URL host is one of ``domains`` or a subdomain of one."""
    host = extract_domain(url)
    if not host:
        return False
    return any(host == d or host.endswith("." + d) for d in domains)


def clip(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")
