"""URL validation and resolution utilities."""

from urllib.parse import urljoin, urlparse


def is_valid_url(url: str | None) -> bool:
    """Check if a string is an absolute http(s) URL.

    Args:
        url: URL string to validate

    Returns:
        True if valid URL, False otherwise
    """
    if not url:
        return False

    try:
        result = urlparse(url)
        return result.scheme in ("http", "https") and bool(result.netloc)
    except ValueError:
        return False


def resolve_url(url: str | None, base_url: str) -> str | None:
    """Resolve a link found on ``base_url`` to an absolute http(s) URL.

    - Absolute http(s) URLs are returned unchanged
    - Protocol-relative URLs (``//host/x``) get ``https:``
    - Relative paths are joined against ``base_url``
    - Anything else (mailto:, javascript:, malformed) gives None

    Args:
        url: Raw href value
        base_url: URL of the page the link was found on

    Returns:
        Absolute URL or None
    """
    if not url:
        return None

    url = url.strip()
    if not url:
        return None

    if url.lower().startswith(("http://", "https://")):
        return url if is_valid_url(url) else None

    if url.startswith("//"):
        resolved = f"https:{url}"
        return resolved if is_valid_url(resolved) else None

    try:
        resolved = urljoin(base_url, url)
    except ValueError:
        return None

    return resolved if is_valid_url(resolved) else None


def extract_domain(url: str | None) -> str | None:
    """Extract domain from URL.

    Args:
        url: Full URL

    Returns:
        Domain name or None
    """
    if not url:
        return None

    try:
        parsed = urlparse(url)
        return parsed.netloc if parsed.netloc else None
    except ValueError:
        return None
